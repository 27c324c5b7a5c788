"""Resolve provider configuration into CloudFormation parameters."""

import shlex
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..models import ConfigField, ParameterSet, ProviderDescriptor
from ..protocols import Prompter, SecretStore
from .error_handler import UserInputError, handle_info, handle_success
from .logger import get_logger
from .ssm import secret_path

logger = get_logger("provider_config")

SECRET_REF_PREFIX = "secretref://"
SECRET_PARAM_SUFFIX = "Secret"


@dataclass
class ResolvedConfig:
    """Parameters for the handler stack and the ``--config`` args that reproduce them."""

    parameters: ParameterSet = field(default_factory=ParameterSet)
    config_args: List[str] = field(default_factory=list)


def to_pascal_case(key: str) -> str:
    """Convert ``snake_case`` config keys to PascalCase parameter names.

    Only the first letter of each segment is upper-cased, so ``sso_api_url``
    becomes ``SsoApiUrl`` and ``apiURL`` stays ``ApiURL``.
    """
    return "".join(part[:1].upper() + part[1:] for part in key.split("_"))


def parameter_name(key: str, config_field: ConfigField) -> str:
    name = to_pascal_case(key)
    if config_field.secret:
        name += SECRET_PARAM_SUFFIX
    return name


def parse_config_args(args: Optional[List[str]]) -> Dict[str, str]:
    """Parse repeated ``key=value`` options into a mapping.

    Raises:
        UserInputError: if an argument has no ``=``
    """
    values: Dict[str, str] = {}
    for arg in args or []:
        key, sep, value = arg.partition("=")
        if not sep:
            raise UserInputError(
                f"invalid config argument (expected format is --config key=value): {arg}"
            )
        values[key] = value
    return values


def prompt_for_value(
    key: str,
    config_field: ConfigField,
    provider: ProviderDescriptor,
    handler_id: str,
    prompter: Prompter,
    secret_store: SecretStore,
) -> str:
    """Prompt for one config value.

    Plain values are returned as typed. Secrets are written to the secret
    store and a ``secretref://`` reference to them is returned instead.
    """
    if not config_field.secret:
        return prompter.text(key)

    path = secret_path(provider.publisher, provider.name, handler_id, key)
    secret = prompter.password(
        key, f"This will be stored in AWS SSM Parameter Store with name '{path}'"
    )
    secret_store.put_secret(path, secret)
    handle_success(f"Added to AWS SSM Parameter Store with name '{path}'")
    return SECRET_REF_PREFIX + path


def resolve_config(
    schema: Dict[str, ConfigField],
    overrides: Dict[str, str],
    handler_id: str,
    provider: ProviderDescriptor,
    prompter: Prompter,
    secret_store: SecretStore,
) -> ResolvedConfig:
    """Build the parameter set for every key in ``schema``.

    Keys are visited in lexicographic order. A value passed in ``overrides``
    is used verbatim and never prompted for, even for secret keys.

    Args:
        schema: Config schema of the provider being installed
        overrides: Values given on the command line with ``--config``
        handler_id: Handler ID, used to namespace secrets
        provider: Provider being installed
        prompter: Prompts for values missing from ``overrides``
        secret_store: Where secret values are written

    Returns:
        ResolvedConfig with one parameter per schema key
    """
    resolved = ResolvedConfig()
    if not schema:
        return resolved

    handle_info("This Provider requires configuration")
    for key in sorted(schema):
        config_field = schema[key]
        name = parameter_name(key, config_field)

        if key in overrides:
            value = overrides[key]
        else:
            value = prompt_for_value(
                key, config_field, provider, handler_id, prompter, secret_store
            )

        resolved.parameters.add(name, value)
        resolved.config_args.append(f"--config {shlex.quote(f'{key}={value}')}")
        logger.info(f"Setting CloudFormation parameter {name}={value}")

    unknown = sorted(set(overrides) - set(schema))
    if unknown:
        logger.warning(f"Ignoring config keys not in the provider schema: {', '.join(unknown)}")

    return resolved
