"""Capability interfaces for the external systems the installer drives."""

from typing import Any, Dict, List, Optional, Protocol

from .models import ProviderDescriptor


class ApiResult(Protocol):
    """Outcome of a single API call."""

    status_code: int
    body: str

    def json(self) -> Any:
        ...


class ProviderRegistry(Protocol):
    """Read access to the provider catalog."""

    def list_providers(self) -> ApiResult:
        """List every provider version in the registry."""
        ...

    def get_provider(self, publisher: str, name: str, version: str) -> ApiResult:
        """Fetch a single provider version."""
        ...


class ControlPlane(Protocol):
    """Admin operations on the Common Fate control plane."""

    def list_handlers(self) -> ApiResult:
        ...

    def get_handler(self, handler_id: str) -> ApiResult:
        ...

    def register_handler(
        self, handler_id: str, aws_account: str, aws_region: str, runtime: str = ...
    ) -> ApiResult:
        ...

    def delete_handler(self, handler_id: str) -> ApiResult:
        ...

    def create_target_group(self, target_group_id: str, target_schema: str) -> ApiResult:
        ...

    def delete_target_group(self, target_group_id: str) -> ApiResult:
        ...

    def create_target_group_link(
        self, target_group_id: str, body: Dict[str, Any]
    ) -> ApiResult:
        ...


class SecretStore(Protocol):
    """Write-only secret storage keyed by hierarchical path."""

    def put_secret(self, path: str, value: str) -> None:
        ...


class Prompter(Protocol):
    """Interactive prompts shown to the user."""

    def select(self, message: str, options: List[str], default: Optional[str] = None) -> str:
        ...

    def text(self, message: str, default: Optional[str] = None) -> str:
        ...

    def password(self, message: str, help_text: str = "") -> str:
        ...

    def confirm(self, message: str, default: bool = True) -> bool:
        ...
