"""Target group management commands."""

from rich.console import Console
from rich.table import Table

from ..helpers.api_client import check_response
from ..helpers.control_plane import ControlPlaneClient
from ..helpers.error_handler import handle_success
from ..helpers.registration import create_target_group, link
from ..models import DEFAULT_LINK_PRIORITY, TargetGroupLink

console = Console()


def target_schema_label(target_group: dict) -> str:
    source = target_group.get("from") or {}
    if not source:
        return target_group.get("targetSchema", "")
    return (
        f"{source.get('publisher')}/{source.get('name')}@{source.get('version')}"
        f"/{source.get('kind')}"
    )


def create_command(
    api: ControlPlaneClient, target_group_id: str, schema_from: str, ok_if_exists: bool
) -> None:
    create_target_group(api, target_group_id, schema_from, ok_if_exists)


def delete_command(api: ControlPlaneClient, target_group_id: str) -> None:
    check_response(api.delete_target_group(target_group_id), 200, 204)
    handle_success(f"Deleted Target Group {target_group_id}")


def link_command(
    api: ControlPlaneClient,
    target_group_id: str,
    handler_id: str,
    kind: str,
    priority: int = DEFAULT_LINK_PRIORITY,
) -> None:
    link(api, TargetGroupLink(target_group_id, handler_id, kind, priority))


def unlink_command(api: ControlPlaneClient, deployment_id: str, target_group_id: str) -> None:
    check_response(api.remove_target_group_link(target_group_id, deployment_id), 200, 204)
    handle_success(f"Unlinked deployment {deployment_id} from Target Group {target_group_id}")


def list_command(api: ControlPlaneClient) -> None:
    response = check_response(api.list_target_groups(), 200)

    table = Table()
    table.add_column("ID")
    table.add_column("Target Schema")
    for tg in response.json().get("targetGroups") or []:
        table.add_row(tg.get("id", ""), target_schema_label(tg))
    console.print(table)


def routes_command(api: ControlPlaneClient, target_group_id: str) -> None:
    response = check_response(api.list_target_routes(target_group_id), 200)

    table = Table()
    for column in ["Target Group Id", "Handler Id", "Kind", "Priority", "Valid", "Diagnostics"]:
        table.add_column(column)
    for route in response.json().get("routes") or []:
        table.add_row(
            route.get("targetGroupId", ""),
            route.get("handlerId", ""),
            route.get("kind", ""),
            str(route.get("priority", "")),
            str(route.get("valid", "")).lower(),
            ", ".join(d.get("message", "") for d in route.get("diagnostics") or []),
        )
    console.print(table)
