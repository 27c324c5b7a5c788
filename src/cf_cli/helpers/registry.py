"""Provider Registry client and provider selection."""

import os
import re
from pathlib import Path
from typing import Dict, List, Optional

import jsonschema
import requests
import yaml

from ..models import ProviderDescriptor, ProviderRef
from ..protocols import Prompter, ProviderRegistry
from .api_client import ApiResponse, JSONClient, raise_api_error, raise_unhandled
from .error_handler import CLIError, UserInputError
from .logger import get_logger

logger = get_logger("registry")

DEFAULT_REGISTRY_API_URL = "https://api.registry.commonfate.io"
REGISTRY_API_URL_ENV_VAR = "CF_REGISTRY_API_URL"
REGISTRY_SERVICE = "Provider Registry"

_PROVIDER_PATTERN = re.compile(r"^([^/@\s]+)/([^/@\s]+)@([^/@\s]+)$")


def default_registry_url() -> str:
    return os.environ.get(REGISTRY_API_URL_ENV_VAR, DEFAULT_REGISTRY_API_URL)


class RegistryClient(JSONClient):
    """Read-only client for the Provider Registry API."""

    def __init__(self, api_url: Optional[str] = None, session: Optional[requests.Session] = None):
        super().__init__(api_url or default_registry_url(), session=session)

    def list_providers(self) -> ApiResponse:
        return self.request("GET", "/v1alpha1/providers")

    def get_provider(self, publisher: str, name: str, version: str) -> ApiResponse:
        return self.request("GET", f"/v1alpha1/providers/{publisher}/{name}/{version}")


def parse_provider(identifier: str) -> ProviderRef:
    """Parse a ``publisher/name@version`` identifier.

    Raises:
        UserInputError: if the identifier is not in the expected format
    """
    match = _PROVIDER_PATTERN.match(identifier.strip())
    if not match:
        raise UserInputError(
            f"invalid provider '{identifier}': expected format is publisher/name@version "
            "(for example, 'common-fate/aws@v0.4.0')"
        )
    return ProviderRef(*match.groups())


def load_provider_schema() -> Dict:
    """Load the JSON schema for registry provider payloads."""
    schema_path = Path(__file__).parent.parent / "resources" / "provider_schema.yaml"
    with open(schema_path, "r") as f:
        return yaml.safe_load(f)


def to_descriptor(payload: Dict, schema: Optional[Dict] = None) -> ProviderDescriptor:
    """Validate a registry payload and convert it to a ``ProviderDescriptor``."""
    try:
        jsonschema.validate(payload, schema or load_provider_schema())
    except jsonschema.ValidationError as e:
        raise CLIError(f"The Provider Registry returned an invalid provider: {e.message}")
    return ProviderDescriptor.from_dict(payload)


def fetch_provider(registry: ProviderRegistry, ref: ProviderRef) -> ProviderDescriptor:
    """Fetch a single provider version from the registry."""
    response = registry.get_provider(ref.publisher, ref.name, ref.version)
    if response.status_code == 200:
        return to_descriptor(response.json())
    if response.status_code in (404, 500):
        raise_api_error(response)
    raise_unhandled(response, REGISTRY_SERVICE)


def list_providers(registry: ProviderRegistry) -> List[ProviderDescriptor]:
    """List every provider version in the registry."""
    response = registry.list_providers()
    if response.status_code == 200:
        schema = load_provider_schema()
        return [to_descriptor(p, schema) for p in response.json().get("providers") or []]
    if response.status_code == 500:
        raise_api_error(response)
    raise_unhandled(response, REGISTRY_SERVICE)


def group_provider_versions(
    providers: List[ProviderDescriptor],
) -> Dict[str, List[ProviderDescriptor]]:
    """Group providers by ``publisher/name``, newest version first.

    Versions are compared as plain strings, so "v10" sorts before "v9".
    """
    groups: Dict[str, List[ProviderDescriptor]] = {}
    for provider in providers:
        groups.setdefault(provider.type_key, []).append(provider)
    for versions in groups.values():
        versions.sort(key=lambda p: p.version, reverse=True)
    return dict(sorted(groups.items()))


def prompt_for_provider(registry: ProviderRegistry, prompter: Prompter) -> ProviderDescriptor:
    """Let the user pick a provider and then a version from the registry."""
    groups = group_provider_versions(list_providers(registry))
    if not groups:
        raise CLIError("The Provider Registry doesn't contain any providers.")

    selected_type = prompter.select("The Provider to deploy", list(groups.keys()))

    by_version = {p.version: p for p in groups[selected_type]}
    versions = list(by_version.keys())
    selected_version = prompter.select(
        "The version of the Provider to deploy", versions, default=versions[0]
    )
    return by_version[selected_version]


def resolve_provider(
    registry: ProviderRegistry,
    prompter: Prompter,
    identifier: Optional[str] = None,
) -> ProviderDescriptor:
    """Resolve the provider to install, by identifier or interactively."""
    if identifier:
        ref = parse_provider(identifier)
        logger.info(f"Retrieving provider details for '{ref}' from the Provider Registry...")
        return fetch_provider(registry, ref)
    return prompt_for_provider(registry, prompter)


def select_target_kind(
    provider: ProviderDescriptor, prompter: Prompter, kind: Optional[str] = None
) -> str:
    """Pick the kind of target the provider will grant access to."""
    kinds = list(provider.target_kinds)
    if not kinds:
        raise CLIError(
            "This Provider doesn't grant access to anything. This is a problem with "
            "the Provider and should be reported to the Provider developers."
        )
    if kind:
        if kind not in kinds:
            raise UserInputError(
                f"Target kind '{kind}' is not supported by {provider}. "
                f"Available kinds: {', '.join(kinds)}"
            )
        return kind
    if len(kinds) == 1:
        logger.info(f"This Provider will grant access to {kinds[0]} targets")
        return kinds[0]
    return prompter.select(
        "Select which Kind of target to use with this provider", kinds, default=kinds[0]
    )
