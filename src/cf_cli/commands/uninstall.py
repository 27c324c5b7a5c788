"""Uninstall command: remove a provider's stack, target group and handler."""

from typing import Optional

from ..config import load_config
from ..helpers.api_client import ApiResponse, check_response
from ..helpers.boto3_client import require_aws_credentials
from ..helpers.cloudformation import Deployer
from ..helpers.control_plane import ControlPlaneClient
from ..helpers.error_handler import (
    UserCancelledError,
    handle_info,
    handle_success,
    handle_warning,
)
from ..helpers.logger import get_logger
from ..helpers.prompts import ConsolePrompter
from ..models import PROVIDER_TAG, TARGET_GROUP_TAG, default_target_group_id
from ..protocols import ControlPlane, Prompter

logger = get_logger("uninstall")


def resolve_target_group_id(
    handler_id: str, stack_tags: dict, target_group_id: Optional[str] = None
) -> str:
    """Pick the target group to delete.

    An explicit ID wins, then the ID recorded on the handler stack at install
    time, then the ``cf-handler-`` naming convention.
    """
    if target_group_id:
        return target_group_id
    if stack_tags.get(TARGET_GROUP_TAG):
        return stack_tags[TARGET_GROUP_TAG]
    fallback = default_target_group_id(handler_id)
    handle_warning(
        f"The stack for Handler '{handler_id}' does not record its Target Group, "
        f"assuming '{fallback}' (use --target-group-id to override)"
    )
    return fallback


def delete_if_exists(response: ApiResponse, description: str) -> None:
    """Accept a 404 from a delete call so a partial install can still be removed."""
    if response.status_code == 404:
        handle_warning(f"{description} was not found, skipping")
        return
    check_response(response, 200, 204)


def uninstall(
    control_plane: ControlPlane,
    deployer: Deployer,
    prompter: Prompter,
    handler_id: str,
    target_group_id: Optional[str] = None,
    delete_stack: bool = True,
    confirm: bool = False,
) -> None:
    """Remove everything ``cf provider install`` created for ``handler_id``.

    The stack is read before anything is deleted, so the target group and
    provider recorded on it are still available afterwards.
    """
    # fail early if the access token is expired or not an administrator's
    check_response(control_plane.list_handlers(), 200)

    stack_tags = deployer.get_stack_tags(handler_id)
    target_group_id = resolve_target_group_id(handler_id, stack_tags, target_group_id)

    if not confirm:
        resources = [f"Handler '{handler_id}'", f"Target Group '{target_group_id}'"]
        if delete_stack:
            resources.append(f"CloudFormation stack '{handler_id}'")
        handle_info(f"This will delete: {', '.join(resources)}")
        if not prompter.confirm("Do you wish to continue?", default=False):
            raise UserCancelledError("user cancelled uninstall")

    if delete_stack:
        handle_info(f"Deleting CloudFormation stack '{handler_id}'")
        deployer.delete(handler_id)

    handle_info(f"Deleting Target Group '{target_group_id}'")
    delete_if_exists(
        control_plane.delete_target_group(target_group_id),
        f"Target Group '{target_group_id}'",
    )

    handle_info(f"Deleting Handler '{handler_id}'")
    delete_if_exists(control_plane.delete_handler(handler_id), f"Handler '{handler_id}'")

    handle_success(f"Handler '{handler_id}' has been removed")
    provider = stack_tags.get(PROVIDER_TAG)
    if provider:
        handle_info(
            "You can deploy this handler again by running:\n"
            f"cf provider install -p {provider} --handler-id {handler_id}"
        )


def uninstall_command(
    handler_id: str,
    target_group_id: Optional[str] = None,
    delete_stack: bool = True,
    confirm: bool = False,
    api_url: Optional[str] = None,
) -> None:
    control_plane = ControlPlaneClient.from_config(load_config(), api_url)
    aws = require_aws_credentials()
    prompter = ConsolePrompter()
    deployer = Deployer(aws.client("cloudformation"), prompter=prompter)
    uninstall(
        control_plane,
        deployer,
        prompter,
        handler_id,
        target_group_id=target_group_id,
        delete_stack=delete_stack,
        confirm=confirm,
    )
