"""Bootstrap command: create the provider assets bucket for this account and region."""

import typer

from ..helpers.boto3_client import require_aws_credentials
from ..helpers.bootstrapper import Bootstrapper
from ..helpers.cloudformation import Deployer
from ..helpers.prompts import ConsolePrompter


def bootstrap_command(confirm: bool = False) -> str:
    """Detect or deploy the bootstrap stack and print the bucket name."""
    aws = require_aws_credentials()
    deployer = Deployer(aws.client("cloudformation"), prompter=ConsolePrompter())
    bootstrapper = Bootstrapper(aws.client("cloudformation"), deployer)

    output = bootstrapper.get_or_deploy(confirm=confirm)
    typer.echo(output.assets_bucket)
    return output.assets_bucket
