#!/usr/bin/env python3
"""
Common Fate provider CLI - install and manage Access Provider handlers
"""

import functools
from typing import List, Optional

import requests
import typer
from botocore.exceptions import BotoCoreError, ClientError

from . import __version__
from .commands import bootstrap as bootstrap_cmd
from .commands import cloudformation as cloudformation_cmd
from .commands import configure as configure_cmd
from .commands import handler as handler_cmd
from .commands import provider as provider_cmd
from .commands import rules as rules_cmd
from .commands import targetgroup as targetgroup_cmd
from .commands.install import InstallOptions, install_command
from .commands.uninstall import uninstall_command
from .config import load_config
from .helpers.boto3_client import require_aws_credentials
from .helpers.cloudformation import Deployer
from .helpers.control_plane import DEFAULT_RUNTIME, ControlPlaneClient
from .helpers.error_handler import CLIError, handle_error
from .helpers.logger import resolve_log_level, setup_logger
from .models import DEFAULT_LINK_PRIORITY


def configure_logging(log_level: Optional[str] = None):
    """Configure logging for the application: CLI option > environment > default."""
    setup_logger("cf_cli", resolve_log_level(log_level))


def handles_errors(func):
    """Report CLI, AWS and HTTP errors and exit with status 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (CLIError, ClientError, BotoCoreError, requests.RequestException) as e:
            handle_error(e)

    return wrapper


def control_plane() -> ControlPlaneClient:
    return ControlPlaneClient.from_config(load_config(), API_URL)


app = typer.Typer(
    help="Common Fate provider CLI - install and manage Access Provider handlers",
    no_args_is_help=True,
    add_completion=False,
    epilog="💡 Use 'cf <command> --help' for command-specific help",
)
provider_app = typer.Typer(help="Install and manage Access Providers", no_args_is_help=True)
targetgroup_app = typer.Typer(help="Manage Target Groups", no_args_is_help=True)
handler_app = typer.Typer(help="Manage Handlers", no_args_is_help=True)
rules_app = typer.Typer(help="Manage Access Rules", no_args_is_help=True)
config_app = typer.Typer(help="Manage CLI configuration", no_args_is_help=True)
cloudformation_app = typer.Typer(
    help="Generate AWS CLI commands for CloudFormation deployments", no_args_is_help=True
)
cloudformation_command_app = typer.Typer(
    help="Print create-stack or update-stack commands for a handler", no_args_is_help=True
)
cloudformation_app.add_typer(cloudformation_command_app, name="command")

app.add_typer(provider_app, name="provider", rich_help_panel="Provider Commands")
app.add_typer(targetgroup_app, name="targetgroup", rich_help_panel="Admin Commands")
app.add_typer(handler_app, name="handler", rich_help_panel="Admin Commands")
app.add_typer(cloudformation_app, name="cloudformation", rich_help_panel="Provider Commands")
app.add_typer(rules_app, name="rules", rich_help_panel="Admin Commands")
app.add_typer(config_app, name="config", rich_help_panel="Configuration")


# Global options
API_URL = None

REGISTRY_API_URL_OPTION = typer.Option(
    None, "--registry-api-url", hidden=True, help="Provider Registry API URL"
)


@app.callback()
def main(
    log_level: str = typer.Option(
        None,
        "--log-level",
        help="Set logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        case_sensitive=False,
    ),
    api_url: str = typer.Option(
        None, "--api-url", help="Override the Common Fate API URL of the current context"
    ),
):
    """Common Fate provider CLI."""
    global API_URL
    API_URL = api_url
    configure_logging(log_level)


@app.command("version", help="Show the CLI version", rich_help_panel="Configuration")
def version():
    typer.echo(f"cf-provider-cli v{__version__}")


@app.command(
    "bootstrap",
    help="Bootstrap a cloud account for deploying access providers. Prints the bucket name.",
    rich_help_panel="Provider Commands",
)
@handles_errors
def bootstrap(
    confirm: bool = typer.Option(
        False, "--confirm", "-y", help="Deploy the bootstrap stack without reviewing the changes"
    ),
):
    bootstrap_cmd.bootstrap_command(confirm)


@provider_app.command("install", help="Quickstart command to install a provider")
@handles_errors
def provider_install(
    provider: str = typer.Option(
        None,
        "--provider",
        "-p",
        help="The provider to deploy (for example, 'common-fate/aws@v0.4.0')",
    ),
    handler_id: str = typer.Option(
        None,
        "--handler-id",
        help="The Handler ID and CloudFormation stack name to use (by convention, "
        "this is 'cf-handler-[provider publisher]-[provider name]')",
    ),
    target_group_id: str = typer.Option(
        None, "--target-group-id", help="Override the ID of the Target Group which will be created"
    ),
    common_fate_account_id: str = typer.Option(
        None,
        "--common-fate-account-id",
        help="Override the Common Fate AWS Account ID (by default the current AWS account ID is used)",
    ),
    target: str = typer.Option(
        None,
        "--target",
        "-t",
        help="The target kind to use with the provider (only required if the provider "
        "grants access to multiple kinds of targets)",
    ),
    confirm_bootstrap: bool = typer.Option(
        False,
        "--confirm-bootstrap",
        help="Confirm creating a bootstrap bucket if it doesn't exist in the account and "
        "region you are deploying to",
    ),
    config: List[str] = typer.Option(
        None, "--config", help="Provide config values for the provider in key=value format"
    ),
    ok_if_exists: bool = typer.Option(
        False, "--ok-if-exists", help="Reuse the Target Group if it already exists"
    ),
    registry_api_url: str = REGISTRY_API_URL_OPTION,
):
    options = InstallOptions(
        provider=provider,
        handler_id=handler_id,
        target_group_id=target_group_id,
        common_fate_account_id=common_fate_account_id,
        target=target,
        confirm_bootstrap=confirm_bootstrap,
        config=list(config or []),
        ok_if_exists=ok_if_exists,
    )
    install_command(options, api_url=API_URL, registry_api_url=registry_api_url)


@provider_app.command("uninstall", help="Quickstart all-in-one command to remove a provider")
@handles_errors
def provider_uninstall(
    handler_id: str = typer.Option(..., "--handler-id", help="The Handler ID to remove"),
    target_group_id: str = typer.Option(
        None, "--target-group-id", help="Override the ID of the Target Group which will be deleted"
    ),
    delete_cloudformation_stack: bool = typer.Option(
        True,
        "--delete-cloudformation-stack/--keep-cloudformation-stack",
        help="Delete the CloudFormation stack for the Handler",
    ),
    confirm: bool = typer.Option(
        False, "--confirm", "-y", help="Confirm the deletion of resources"
    ),
):
    uninstall_command(
        handler_id,
        target_group_id=target_group_id,
        delete_stack=delete_cloudformation_stack,
        confirm=confirm,
        api_url=API_URL,
    )


@provider_app.command("list", help="List providers in the Provider Registry")
@handles_errors
def provider_list(registry_api_url: str = REGISTRY_API_URL_OPTION):
    provider_cmd.list_command(registry_api_url)


@provider_app.command(
    "bootstrap",
    help="Copy a provider's assets into a bucket and print the CloudFormation template URL",
)
@handles_errors
def provider_bootstrap(
    provider_id: str = typer.Option(
        ..., "--id", help="The provider to copy (publisher/name@version)"
    ),
    bootstrap_bucket: str = typer.Option(
        ..., "--bootstrap-bucket", help="The bucket to copy the provider assets into"
    ),
    registry_api_url: str = REGISTRY_API_URL_OPTION,
):
    provider_cmd.bootstrap_command(provider_id, bootstrap_bucket, registry_api_url)


@targetgroup_app.command("create", help="Create a target group")
@handles_errors
def targetgroup_create(
    target_group_id: str = typer.Option(..., "--id", help="Target Group ID"),
    schema_from: str = typer.Option(
        ..., "--schema-from", help="publisher/name@version/kind"
    ),
    ok_if_exists: bool = typer.Option(False, "--ok-if-exists"),
):
    targetgroup_cmd.create_command(control_plane(), target_group_id, schema_from, ok_if_exists)


@targetgroup_app.command("delete", help="Delete a target group")
@handles_errors
def targetgroup_delete(
    target_group_id: str = typer.Option(..., "--id", help="Target Group ID"),
):
    targetgroup_cmd.delete_command(control_plane(), target_group_id)


@targetgroup_app.command("link", help="Link a handler to a target group")
@handles_errors
def targetgroup_link(
    target_group_id: str = typer.Option(..., "--target-group"),
    handler_id: str = typer.Option(..., "--handler"),
    kind: str = typer.Option(..., "--kind"),
    priority: int = typer.Option(DEFAULT_LINK_PRIORITY, "--priority"),
):
    targetgroup_cmd.link_command(control_plane(), target_group_id, handler_id, kind, priority)


@targetgroup_app.command("unlink", help="Unlink a deployment from a target group")
@handles_errors
def targetgroup_unlink(
    deployment_id: str = typer.Option(..., "--deployment"),
    target_group_id: str = typer.Option(..., "--target-group"),
):
    targetgroup_cmd.unlink_command(control_plane(), deployment_id, target_group_id)


@targetgroup_app.command("list", help="List target groups")
@handles_errors
def targetgroup_list():
    targetgroup_cmd.list_command(control_plane())


@targetgroup_app.command("routes", help="List target group routes")
@handles_errors
def targetgroup_routes(
    target_group_id: str = typer.Option(..., "--id", help="Target Group ID"),
):
    targetgroup_cmd.routes_command(control_plane(), target_group_id)


@handler_app.command("register", help="Register a handler in Common Fate")
@handles_errors
def handler_register(
    handler_id: str = typer.Option(..., "--id"),
    aws_region: str = typer.Option(..., "--aws-region"),
    aws_account: str = typer.Option(..., "--aws-account"),
    runtime: str = typer.Option(DEFAULT_RUNTIME, "--runtime"),
):
    handler_cmd.register_command(control_plane(), handler_id, aws_region, aws_account, runtime)


@handler_app.command("list", help="List handlers")
@handles_errors
def handler_list():
    handler_cmd.list_command(control_plane())


@handler_app.command("delete", help="Delete a handler")
@handles_errors
def handler_delete(
    handler_id: str = typer.Option(..., "--handler-id"),
):
    handler_cmd.delete_command(control_plane(), handler_id)


@handler_app.command("diagnostic", help="List diagnostic logs for a handler")
@handles_errors
def handler_diagnostic(handler_id: str = typer.Option(..., "--id")):
    handler_cmd.diagnostic_command(control_plane(), handler_id)


@handler_app.command("validate", help="Validate a deployed handler")
@handles_errors
def handler_validate(
    handler_id: str = typer.Option(..., "--id"),
    aws_region: str = typer.Option(..., "--aws-region"),
    runtime: str = typer.Option(DEFAULT_RUNTIME, "--runtime"),
    stack_name: str = typer.Option(
        None,
        "--cloudformation-stack-name",
        help="If CloudFormation was used to deploy the provider, check the status of the stack",
    ),
):
    aws = require_aws_credentials(aws_region)
    deployer = Deployer(aws.client("cloudformation")) if stack_name else None
    handler_cmd.validate_command(
        control_plane(),
        handler_id,
        aws_region,
        runtime,
        deployer=deployer,
        stack_name=stack_name,
        lambda_client=aws.client("lambda"),
    )


@cloudformation_command_app.command(
    "create", help="Print an 'aws cloudformation create-stack' command for a new handler"
)
@handles_errors
def cloudformation_command_create(
    provider_id: str = typer.Option(
        ..., "--provider-id", help="The provider to deploy (publisher/name@version)"
    ),
    handler_id: str = typer.Option(
        ..., "--handler-id", help="The ID of the handler, used as the stack name"
    ),
    bootstrap_bucket: str = typer.Option(
        ..., "--bootstrap-bucket", help="The bucket the provider assets were copied into"
    ),
    cf_account_id: str = typer.Option(
        None, "--common-fate-account-id", help="The AWS account where Common Fate is deployed"
    ),
    region: str = typer.Option(None, "--region", help="The region to deploy the handler in"),
    registry_api_url: str = REGISTRY_API_URL_OPTION,
):
    cloudformation_cmd.create_command(
        provider_id, handler_id, bootstrap_bucket, cf_account_id, region, registry_api_url
    )


@cloudformation_command_app.command(
    "update", help="Print an 'aws cloudformation update-stack' command for a deployed handler"
)
@handles_errors
def cloudformation_command_update(
    handler_id: str = typer.Option(
        ..., "--handler-id", help="The ID of the handler, used as the stack name"
    ),
    region: str = typer.Option(None, "--region", help="The region the handler is deployed in"),
):
    cloudformation_cmd.update_command(handler_id, region)


@rules_app.command("list", help="List Access Rules")
@handles_errors
def rules_list():
    rules_cmd.list_command(control_plane())


@config_app.command("set", help="Set a config value (api_url or dashboard_url)")
@handles_errors
def config_set(
    key: str = typer.Argument(..., help="The key to set"),
    value: str = typer.Argument(..., help="The new value"),
):
    configure_cmd.set_command(key, value)


if __name__ == "__main__":
    app()
