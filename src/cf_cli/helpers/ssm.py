"""SSM Parameter Store secret storage."""

from .logger import get_logger

logger = get_logger("ssm")


def secret_path(publisher: str, name: str, handler_id: str, key: str) -> str:
    """Parameter Store name for a provider secret."""
    return f"/common-fate/provider/{publisher}/{name}/{handler_id}/{key}"


class SSMSecretStore:
    """Writes secrets to SSM Parameter Store as ``SecureString`` parameters."""

    def __init__(self, ssm_client):
        self.client = ssm_client

    def put_secret(self, path: str, value: str) -> None:
        logger.debug(f"Writing SecureString parameter {path}")
        self.client.put_parameter(
            Name=path, Value=value, Type="SecureString", Overwrite=True
        )
