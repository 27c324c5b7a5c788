"""Install command: deploy a provider from the registry and register it with Common Fate."""

import shlex
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import typer

from ..config import load_config
from ..helpers.api_client import check_response
from ..helpers.boto3_client import AWSContext, require_aws_credentials
from ..helpers.bootstrapper import Bootstrapper
from ..helpers.cloudformation import Deployer
from ..helpers.control_plane import ControlPlaneClient
from ..helpers.error_handler import handle_info, handle_success, handle_warning
from ..helpers.iam import resolve_unique_handler_id, validate_handler_id
from ..helpers.logger import get_logger
from ..helpers.prompts import ConsolePrompter
from ..helpers.provider_config import parse_config_args, resolve_config
from ..helpers.registration import register_and_wait
from ..helpers.registry import (
    RegistryClient,
    parse_provider,
    resolve_provider,
    select_target_kind,
)
from ..helpers.s3 import HANDLER_ASSET, stage_assets
from ..helpers.ssm import SSMSecretStore
from ..models import (
    PROVIDER_TAG,
    TARGET_GROUP_TAG,
    InstallState,
    ParameterSet,
    ProviderDescriptor,
    default_target_group_id,
)
from ..protocols import ControlPlane, Prompter, ProviderRegistry

logger = get_logger("install")


@dataclass
class InstallOptions:
    """Command-line options of ``cf provider install``."""

    provider: Optional[str] = None
    handler_id: Optional[str] = None
    target_group_id: Optional[str] = None
    common_fate_account_id: Optional[str] = None
    target: Optional[str] = None
    confirm_bootstrap: bool = False
    config: List[str] = field(default_factory=list)
    ok_if_exists: bool = False


class InstallTracker:
    """Records which stage an install has reached."""

    def __init__(self):
        self.state = InstallState.START
        self.history = [InstallState.START]

    def advance(self, state: InstallState) -> None:
        logger.debug(f"Install state: {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)


def handler_stack_parameters(
    config_parameters: ParameterSet,
    cf_account_id: str,
    asset_key: str,
    bucket: str,
    handler_id: str,
) -> ParameterSet:
    """Append the fixed identity parameters after the provider config."""
    parameters = ParameterSet(list(config_parameters.parameters))
    parameters.add("CommonFateAWSAccountID", cf_account_id)
    parameters.add("AssetPath", f"{asset_key}/{HANDLER_ASSET}")
    parameters.add("BootstrapBucketName", bucket)
    parameters.add("HandlerID", handler_id)
    return parameters


def one_liner_command(
    cf_account_id: str,
    handler_id: str,
    target_group_id: str,
    provider: ProviderDescriptor,
    config_args: List[str],
) -> str:
    """Command that repeats this install without any prompts."""
    parts = [
        "cf provider install",
        f"--common-fate-account-id {shlex.quote(cf_account_id)}",
        f"--handler-id {shlex.quote(handler_id)}",
        f"--target-group-id {shlex.quote(target_group_id)}",
        f"--provider {shlex.quote(str(provider))}",
    ] + config_args
    return " ".join(parts)


class Installer:
    """Runs a provider install end to end.

    Each stage runs only after the previous one succeeded. A failure stops
    the install where it is: resources created by earlier stages are left in
    place and can be removed with ``cf provider uninstall``.
    """

    def __init__(
        self,
        aws: AWSContext,
        control_plane: ControlPlane,
        registry: ProviderRegistry,
        prompter: Prompter,
        deployer: Optional[Deployer] = None,
        bootstrapper: Optional[Bootstrapper] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.aws = aws
        self.control_plane = control_plane
        self.registry = registry
        self.prompter = prompter
        self.deployer = deployer or Deployer(
            aws.client("cloudformation"), prompter=prompter
        )
        self.bootstrapper = bootstrapper or Bootstrapper(
            aws.client("cloudformation"), self.deployer
        )
        self.sleep = sleep
        self.clock = clock
        self.tracker = InstallTracker()

    def check_admin_access(self) -> None:
        """Fail early if the access token is expired or not an administrator's."""
        check_response(self.control_plane.list_handlers(), 200)

    def run(self, options: InstallOptions) -> str:
        """Install a provider and return its handler ID."""
        # validate user input before any remote calls are made
        config_overrides = parse_config_args(options.config)
        if options.provider:
            parse_provider(options.provider)
        if options.handler_id:
            validate_handler_id(options.handler_id)

        self.check_admin_access()

        cf_account_id = options.common_fate_account_id
        if not cf_account_id:
            handle_warning(
                f"Using the current AWS account ({self.aws.account}) as the Common Fate "
                "account (use --common-fate-account-id to override)"
            )
            cf_account_id = self.aws.account

        provider = resolve_provider(self.registry, self.prompter, options.provider)
        self.tracker.advance(InstallState.PROVIDER_RESOLVED)

        bootstrap = self.bootstrapper.get_or_deploy(confirm=options.confirm_bootstrap)
        self.tracker.advance(InstallState.BOOTSTRAPPED)

        kind = select_target_kind(provider, self.prompter, options.target)

        handle_info("Copying provider assets from the registry to the bootstrap bucket...")
        staged = stage_assets(
            self.aws.client("s3"), bootstrap.assets_bucket, self.aws.region, provider
        )
        handle_success("Provider assets copied to the bootstrap bucket")
        self.tracker.advance(InstallState.ASSETS_STAGED)

        handler_id = resolve_unique_handler_id(
            self.aws.client("iam"),
            options.handler_id or provider.default_handler_id(),
            self.prompter,
        )
        target_group_id = options.target_group_id or default_target_group_id(handler_id)

        resolved = resolve_config(
            provider.config(),
            config_overrides,
            handler_id,
            provider,
            self.prompter,
            SSMSecretStore(self.aws.client("ssm")),
        )
        parameters = handler_stack_parameters(
            resolved.parameters, cf_account_id, staged.asset_key, bootstrap.assets_bucket, handler_id
        )
        self.tracker.advance(InstallState.CONFIG_RESOLVED)

        handle_info(
            "You can use the following one-liner command to redeploy this Provider "
            "in future:"
        )
        typer.echo(
            one_liner_command(
                cf_account_id, handler_id, target_group_id, provider, resolved.config_args
            )
        )

        handle_info(f"Deploying CloudFormation stack for Handler '{handler_id}'")
        status = self.deployer.deploy(
            staged.template_url,
            parameters,
            handler_id,
            confirm=True,
            tags={PROVIDER_TAG: str(provider), TARGET_GROUP_TAG: target_group_id},
        )
        handle_info(f"Deployment completed with status '{status}'")
        self.tracker.advance(InstallState.DEPLOYED)

        register_and_wait(
            self.control_plane,
            handler_id=handler_id,
            aws_account=self.aws.account,
            aws_region=self.aws.region,
            target_group_id=target_group_id,
            target_schema=provider.target_schema(kind),
            kind=kind,
            allow_existing_target_group=options.ok_if_exists,
            on_state=self.tracker.advance,
            sleep=self.sleep,
            clock=self.clock,
        )
        return handler_id


def install_command(
    options: InstallOptions,
    api_url: Optional[str] = None,
    registry_api_url: Optional[str] = None,
) -> str:
    """Build the production clients and run an install."""
    control_plane = ControlPlaneClient.from_config(load_config(), api_url)
    aws = require_aws_credentials()
    installer = Installer(
        aws,
        control_plane,
        RegistryClient(registry_api_url),
        ConsolePrompter(),
    )
    handler_id = installer.run(options)
    handle_success(f"Provider installed with Handler ID '{handler_id}'")
    return handler_id
