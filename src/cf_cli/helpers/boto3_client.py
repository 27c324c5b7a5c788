"""Centralized boto3 client creation helper."""

from dataclasses import dataclass
from typing import Optional

import boto3
from botocore.exceptions import ClientError, NoCredentialsError

from .error_handler import CLIError

CREDENTIALS_HELP = (
    "Please export valid AWS credentials to run this command "
    "(for example by setting AWS_PROFILE or running 'aws sso login')."
)


@dataclass(frozen=True)
class AWSContext:
    """The AWS account and region of the caller's current credentials."""

    account: str
    region: str
    session: boto3.session.Session

    def client(self, service_name: str):
        return self.session.client(service_name, region_name=self.region)


def require_aws_credentials(region: Optional[str] = None) -> AWSContext:
    """Load AWS credentials and validate them with STS.

    Raises:
        CLIError: if credentials are missing, expired or invalid
    """
    session = boto3.session.Session(region_name=region) if region else boto3.session.Session()

    if session.get_credentials() is None:
        raise CLIError("Failed to load AWS credentials.", [CREDENTIALS_HELP])

    if not session.region_name:
        raise CLIError(
            "No AWS region configured.",
            ["Set AWS_REGION or configure a region for your AWS profile."],
        )

    sts = session.client("sts", region_name=session.region_name)
    try:
        identity = sts.get_caller_identity()
    except NoCredentialsError:
        raise CLIError("Failed to load AWS credentials.", [CREDENTIALS_HELP])
    except ClientError as e:
        if e.response.get("Error", {}).get("Code") == "ExpiredToken":
            raise CLIError("AWS credentials are expired.", [CREDENTIALS_HELP])
        raise CLIError(
            f"Failed to call AWS get caller identity: {e}", [CREDENTIALS_HELP]
        )

    return AWSContext(
        account=identity["Account"], region=session.region_name, session=session
    )
