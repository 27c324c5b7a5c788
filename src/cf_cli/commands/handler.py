"""Handler management commands."""

import json
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ..helpers.api_client import check_response
from ..helpers.cloudformation import Deployer
from ..helpers.control_plane import DEFAULT_RUNTIME, ControlPlaneClient
from ..helpers.error_handler import (
    CLIError,
    UserInputError,
    handle_info,
    handle_success,
    handle_warning,
)
from ..helpers.registration import health_state, register_handler

console = Console()

SUPPORTED_RUNTIMES = [DEFAULT_RUNTIME]


def check_runtime(runtime: str) -> None:
    if runtime not in SUPPORTED_RUNTIMES:
        raise UserInputError(
            f"unsupported runtime. Supported runtimes are [{', '.join(SUPPORTED_RUNTIMES)}]"
        )


def register_command(
    api: ControlPlaneClient,
    handler_id: str,
    aws_region: str,
    aws_account: str,
    runtime: str = DEFAULT_RUNTIME,
) -> None:
    check_runtime(runtime)
    register_handler(api, handler_id, aws_account, aws_region)


def list_command(api: ControlPlaneClient) -> None:
    response = check_response(api.list_handlers(), 200)

    table = Table()
    for column in ["ID", "Account", "Region", "Health"]:
        table.add_column(column)
    for handler in response.json().get("res") or []:
        table.add_row(
            handler.get("id", ""),
            handler.get("awsAccount", ""),
            handler.get("awsRegion", ""),
            health_state(handler).value,
        )
    console.print(table)


def delete_command(api: ControlPlaneClient, handler_id: str) -> None:
    check_response(api.delete_handler(handler_id), 200, 204)
    handle_success(f"Deleted Handler {handler_id}")


def diagnostics_table(diagnostics) -> Table:
    table = Table(title="Diagnostic Logs")
    table.add_column("Level")
    table.add_column("Message")
    for diagnostic in diagnostics or []:
        table.add_row(
            diagnostic.get("level", ""), diagnostic.get("message") or diagnostic.get("msg", "")
        )
    return table


def print_diagnostics(handler: dict) -> None:
    typer.echo(
        f"{handler.get('id')} {handler.get('awsAccount')} {handler.get('awsRegion')} "
        f"{health_state(handler).value}"
    )
    console.print(diagnostics_table(handler.get("diagnostics")))


def diagnostic_command(api: ControlPlaneClient, handler_id: str) -> dict:
    """Print the control plane's health view of a handler."""
    handler = check_response(api.get_handler(handler_id), 200).json()
    print_diagnostics(handler)
    return handler


def describe_handler(lambda_client, handler_id: str) -> dict:
    """Invoke the handler Lambda with a describe request and return its response."""
    response = lambda_client.invoke(
        FunctionName=handler_id,
        Payload=json.dumps({"type": "describe"}).encode(),
    )
    payload = response["Payload"].read()
    if response.get("FunctionError"):
        raise CLIError(
            f"Handler '{handler_id}' returned an error when invoked",
            [payload.decode(errors="replace")],
        )
    return json.loads(payload) if payload else {}


def validate_command(
    api: ControlPlaneClient,
    handler_id: str,
    aws_region: str,
    runtime: str = DEFAULT_RUNTIME,
    deployer: Optional[Deployer] = None,
    stack_name: Optional[str] = None,
    lambda_client=None,
) -> dict:
    """Check a deployed handler's stack (when given), the handler itself and its registration.

    When ``lambda_client`` is given the handler Lambda is invoked directly
    with a describe request, so a broken deployment is caught even if the
    control plane has not polled it yet.

    Raises:
        UserInputError: for an unsupported runtime
        CLIError: if the stack does not exist, the handler fails to describe
            itself or the handler is not registered
    """
    check_runtime(runtime)

    if stack_name and deployer is not None:
        status = deployer.get_stack_status(stack_name)
        if status is None:
            raise UserInputError(
                f"CloudFormation stack '{stack_name}' does not exist in '{aws_region}'"
            )
        handle_info(
            f"CloudFormation stack '{stack_name}' exists in '{aws_region}' and is in "
            f"'{status}' state"
        )

    if lambda_client is not None:
        description = describe_handler(lambda_client, handler_id)
        provider = description.get("provider") or {}
        handle_info(
            f"Provider: {provider.get('publisher')}/{provider.get('name')}"
            f"@{provider.get('version')}"
        )
        state = "healthy" if description.get("healthy") else "unhealthy"
        handle_info(f"Handler reports itself as {state}")
        console.print(diagnostics_table(description.get("diagnostics")))

    handler = check_response(api.get_handler(handler_id), 200).json()
    if handler.get("awsRegion") and handler["awsRegion"] != aws_region:
        handle_warning(
            f"Handler '{handler_id}' is registered in region '{handler['awsRegion']}', "
            f"not '{aws_region}'"
        )
    handle_info(f"Deployment is {health_state(handler).value}")
    print_diagnostics(handler)
    return handler
