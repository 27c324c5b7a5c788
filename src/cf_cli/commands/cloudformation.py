"""Print AWS CLI commands that deploy or update a handler stack with CloudFormation.

For teams that deploy infrastructure through their own pipelines rather than
through ``cf provider install``. The provider assets must already be in the
bootstrap bucket (see ``cf provider bootstrap``).
"""

import shlex
from typing import Optional

import typer

from ..helpers.boto3_client import require_aws_credentials
from ..helpers.cloudformation import Deployer
from ..helpers.error_handler import CLIError, UserInputError, handle_info, handle_success
from ..helpers.iam import validate_handler_id
from ..helpers.prompts import ConsolePrompter
from ..helpers.provider_config import SECRET_REF_PREFIX, resolve_config
from ..helpers.registry import RegistryClient, fetch_provider, parse_provider
from ..helpers.s3 import HANDLER_ASSET, TEMPLATE_ASSET, presigned_template_url
from ..helpers.ssm import SSMSecretStore
from ..models import ParameterSet
from ..protocols import Prompter
from .install import handler_stack_parameters


def stack_command(
    action: str, stack_name: str, region: str, template_url: str, parameters: ParameterSet
) -> str:
    """Format an ``aws cloudformation create-stack`` or ``update-stack`` command."""
    parts = [
        f"aws cloudformation {action}",
        f"--stack-name {shlex.quote(stack_name)}",
        f"--region {shlex.quote(region)}",
        f"--template-url {shlex.quote(template_url)}",
        "--parameters",
    ]
    for p in parameters.parameters:
        parts.append(
            shlex.quote(f"ParameterKey={p['ParameterKey']},ParameterValue={p['ParameterValue']}")
        )
    parts.append("--capabilities CAPABILITY_NAMED_IAM")
    return " ".join(parts)


def create_command(
    provider_id: str,
    handler_id: str,
    bootstrap_bucket: str,
    cf_account_id: Optional[str] = None,
    region: Optional[str] = None,
    registry_api_url: Optional[str] = None,
    prompter: Optional[Prompter] = None,
) -> str:
    """Resolve a provider's config and print the create-stack command for its handler.

    Secret config values are written to SSM Parameter Store straight away;
    the printed command only carries references to them.
    """
    ref = parse_provider(provider_id)
    validate_handler_id(handler_id)
    prompter = prompter or ConsolePrompter()

    provider = fetch_provider(RegistryClient(registry_api_url), ref)

    if not cf_account_id:
        cf_account_id = prompter.text("The ID of the AWS account where Common Fate is deployed")
    if not region:
        region = prompter.text("The region to deploy the CloudFormation stack in")

    aws = require_aws_credentials(region)
    resolved = resolve_config(
        provider.config(),
        {},
        handler_id,
        provider,
        prompter,
        SSMSecretStore(aws.client("ssm")),
    )
    parameters = handler_stack_parameters(
        resolved.parameters, cf_account_id, provider.asset_path, bootstrap_bucket, handler_id
    )

    url = presigned_template_url(
        aws.client("s3"), bootstrap_bucket, f"{provider.asset_path}/{TEMPLATE_ASSET}"
    )
    command = stack_command("create-stack", handler_id, region, url, parameters)
    handle_info(
        "Run the following command to deploy the Handler "
        "(the template URL is valid for one hour):"
    )
    typer.echo(command)
    return command


def update_command(
    handler_id: str,
    region: Optional[str] = None,
    prompter: Optional[Prompter] = None,
) -> str:
    """Prompt for new values of a deployed handler stack and print the update-stack command.

    Plain parameters are prompted for with their current value as the
    default. Secret parameters keep their reference; the secret behind it is
    overwritten in Parameter Store only if the user asks to.
    """
    prompter = prompter or ConsolePrompter()
    aws = require_aws_credentials(region)

    current = Deployer(aws.client("cloudformation")).get_stack_parameters(handler_id)
    if current is None:
        raise UserInputError(
            f"CloudFormation stack '{handler_id}' does not exist in '{aws.region}'"
        )

    secret_store = SSMSecretStore(aws.client("ssm"))
    parameters = ParameterSet()
    for key, value in current.items():
        if value.startswith(SECRET_REF_PREFIX):
            if prompter.confirm(
                f"Do you want to update the value for {key} in AWS Parameter Store?",
                default=False,
            ):
                path = value[len(SECRET_REF_PREFIX):]
                secret_store.put_secret(path, prompter.password(key))
                handle_success(f"Updated AWS SSM Parameter Store value with name '{path}'")
        else:
            value = prompter.text(key, default=value)
        parameters.add(key, value)

    bucket = parameters.get("BootstrapBucketName")
    asset_path = parameters.get("AssetPath")
    if not bucket or not asset_path:
        raise CLIError(
            f"Stack '{handler_id}' has no BootstrapBucketName or AssetPath parameter",
            ["Was it deployed from a Common Fate provider template?"],
        )

    url = presigned_template_url(
        aws.client("s3"), bucket, asset_path.replace(HANDLER_ASSET, TEMPLATE_ASSET)
    )
    command = stack_command("update-stack", handler_id, aws.region, url, parameters)
    handle_info(
        "Run the following command to update the Handler "
        "(the template URL is valid for one hour):"
    )
    typer.echo(command)
    return command
