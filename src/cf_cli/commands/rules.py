"""Access rule commands."""

from rich.console import Console
from rich.table import Table

from ..helpers.api_client import check_response
from ..helpers.control_plane import ControlPlaneClient

console = Console()


def list_command(api: ControlPlaneClient) -> None:
    response = check_response(api.list_access_rules(), 200)

    table = Table()
    table.add_column("ID")
    table.add_column("Name")
    for rule in response.json().get("accessRules") or []:
        table.add_row(rule.get("id", ""), rule.get("name", ""))
    console.print(table)
