"""Provider registry commands: list providers and stage assets into a bucket."""

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ..helpers.boto3_client import require_aws_credentials
from ..helpers.error_handler import handle_info, handle_success
from ..helpers.registry import (
    RegistryClient,
    fetch_provider,
    list_providers,
    parse_provider,
)
from ..helpers.s3 import stage_assets

console = Console()


def list_command(registry_api_url: Optional[str] = None) -> None:
    """Print every provider version in the registry."""
    providers = list_providers(RegistryClient(registry_api_url))

    table = Table()
    table.add_column("Name")
    table.add_column("Publisher")
    table.add_column("Version")
    table.add_column("Lambda Asset")
    table.add_column("CloudFormation Template")
    for p in providers:
        table.add_row(
            p.name, p.publisher, p.version, p.lambda_asset_s3_arn, p.cfn_template_s3_arn
        )
    console.print(table)


def bootstrap_command(
    provider_id: str,
    bootstrap_bucket: str,
    registry_api_url: Optional[str] = None,
) -> str:
    """Copy a provider's assets into ``bootstrap_bucket`` and print the template URL.

    Used when deploying the handler stack with other tooling instead of
    ``cf provider install``.
    """
    ref = parse_provider(provider_id)
    provider = fetch_provider(RegistryClient(registry_api_url), ref)
    handle_success("Provider exists in the registry, beginning to clone assets.")

    aws = require_aws_credentials()
    staged = stage_assets(aws.client("s3"), bootstrap_bucket, aws.region, provider)
    handle_success(
        f"Successfully copied the provider assets into "
        f"{bootstrap_bucket}/{staged.asset_key}"
    )
    handle_info("Use the following CloudFormation template URL to deploy this handler")
    typer.echo(staged.template_url)
    return staged.template_url
