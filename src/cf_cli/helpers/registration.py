"""Control-plane registration of a deployed handler and its health poll."""

import time
from typing import Any, Callable, Dict, Optional

import requests

from ..models import HealthState, InstallState, TargetGroupLink
from ..protocols import ControlPlane
from .api_client import raise_api_error, raise_unhandled
from .error_handler import (
    ApiError,
    CollisionError,
    HealthCheckTimeoutError,
    handle_info,
    handle_success,
)
from .logger import get_logger
from .retry import constant_backoff, retry_with_deadline

logger = get_logger("registration")

HEALTH_POLL_INTERVAL = 5
HEALTH_POLL_MAX_DURATION = 120


class HandlerUnhealthyError(Exception):
    """The handler is registered but does not report healthy yet."""

    def __init__(self, handler: Dict[str, Any]):
        super().__init__("timed out waiting for Handler to become healthy")
        self.handler = handler


def health_state(handler: Optional[Dict[str, Any]]) -> HealthState:
    if not handler:
        return HealthState.UNKNOWN
    return HealthState.HEALTHY if handler.get("healthy") else HealthState.UNHEALTHY


def is_retryable(error: Exception) -> bool:
    """Server errors, network failures and unhealthy handlers are retried."""
    if isinstance(error, HandlerUnhealthyError):
        return True
    if isinstance(error, (requests.ConnectionError, requests.Timeout)):
        return True
    return (
        isinstance(error, ApiError)
        and error.status_code is not None
        and error.status_code >= 500
    )


def create_target_group(
    api: ControlPlane,
    target_group_id: str,
    target_schema: str,
    allow_existing: bool = False,
) -> bool:
    """Create a target group.

    Returns:
        True if the group was created, False if it already existed and
        ``allow_existing`` is set

    Raises:
        CollisionError: if the group exists and ``allow_existing`` is not set
    """
    response = api.create_target_group(target_group_id, target_schema)
    if response.status_code == 201:
        handle_success(f"Target Group created: {target_group_id}")
        return True
    if response.status_code == 409:
        if allow_existing:
            handle_info(f"Target Group with that ID already exists: '{target_group_id}'")
            return False
        raise CollisionError(
            f"Duplicate Target Group ID provided. A Target Group with the ID "
            f"'{target_group_id}' already exists",
            ["Pass --ok-if-exists to reuse the existing Target Group"],
        )
    if response.status_code in (400, 500):
        raise_api_error(response)
    raise_unhandled(response)


def register_handler(
    api: ControlPlane, handler_id: str, aws_account: str, aws_region: str
) -> None:
    response = api.register_handler(handler_id, aws_account, aws_region)
    if response.status_code == 201:
        handle_success(f"Successfully registered Handler '{handler_id}' with Common Fate")
        return
    if response.status_code in (400, 409, 500):
        raise_api_error(response)
    raise_unhandled(response)


def link(api: ControlPlane, target_group_link: TargetGroupLink) -> None:
    """Route a target group's requests to a handler."""
    response = api.create_target_group_link(
        target_group_link.target_group_id, target_group_link.to_request()
    )
    if response.status_code == 200:
        handle_success(
            f"Successfully linked Handler '{target_group_link.deployment_id}' "
            f"with Target Group '{target_group_link.target_group_id}'"
        )
        return
    if response.status_code in (400, 404, 500):
        raise_api_error(response)
    raise_unhandled(response)


def get_healthy_handler(api: ControlPlane, handler_id: str) -> Dict[str, Any]:
    """Fetch a handler, raising unless it reports healthy."""
    response = api.get_handler(handler_id)
    if response.status_code == 200:
        handler = response.json()
        if health_state(handler) is HealthState.HEALTHY:
            return handler
        logger.warning(
            f"Handler is not healthy yet, diagnostics: {handler.get('diagnostics') or []}"
        )
        raise HandlerUnhealthyError(handler)
    if response.status_code >= 500 or response.status_code == 404:
        raise_api_error(response)
    raise_unhandled(response)


def wait_for_healthy(
    api: ControlPlane,
    handler_id: str,
    interval: float = HEALTH_POLL_INTERVAL,
    max_duration: float = HEALTH_POLL_MAX_DURATION,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Dict[str, Any]:
    """Poll the handler every ``interval`` seconds until it is healthy.

    Raises:
        HealthCheckTimeoutError: if the handler is still unhealthy (or the API
            keeps failing with retryable errors) after ``max_duration``
    """
    handle_info("Waiting for Handler to become healthy...")
    try:
        handler = retry_with_deadline(
            lambda: get_healthy_handler(api, handler_id),
            backoff=constant_backoff(interval),
            retryable=is_retryable,
            max_duration=max_duration,
            sleep=sleep,
            clock=clock,
        )
    except Exception as e:
        if not is_retryable(e):
            raise
        raise HealthCheckTimeoutError(
            "timed out waiting for Handler to become healthy",
            [
                f"Last result: {e}",
                f"The Handler is still registered. Check its status with "
                f"'cf handler diagnostic --id {handler_id}'",
            ],
        ) from e

    handle_success("Handler is healthy")
    return handler


def register_and_wait(
    api: ControlPlane,
    handler_id: str,
    aws_account: str,
    aws_region: str,
    target_group_id: str,
    target_schema: str,
    kind: str,
    allow_existing_target_group: bool = False,
    on_state: Optional[Callable[[InstallState], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Dict[str, Any]:
    """Create the target group, register and link the handler, then wait for health.

    Steps run strictly in order and stop at the first failure. Nothing is
    rolled back.

    Args:
        api: Control-plane client
        handler_id: ID of the deployed handler
        aws_account: Account the handler stack is deployed in
        aws_region: Region the handler stack is deployed in
        target_group_id: Target group to create and link
        target_schema: ``publisher/name@version/kind`` schema for the target group
        kind: Target kind routed to the handler
        allow_existing_target_group: Treat an existing target group as success
        on_state: Called after each stage is reached

    Returns:
        The healthy handler as returned by the control plane
    """
    notify = on_state or (lambda state: None)

    handle_info(
        f"Creating a Target Group '{target_group_id}' to route Access Requests "
        "to the Handler"
    )
    create_target_group(api, target_group_id, target_schema, allow_existing_target_group)

    register_handler(api, handler_id, aws_account, aws_region)
    notify(InstallState.REGISTERED)

    link(api, TargetGroupLink(target_group_id, handler_id, kind))
    notify(InstallState.LINKED)

    try:
        handler = wait_for_healthy(api, handler_id, sleep=sleep, clock=clock)
    except HealthCheckTimeoutError:
        notify(InstallState.TIMED_OUT)
        raise
    notify(InstallState.HEALTHY)
    return handler
