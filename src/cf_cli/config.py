"""Configuration management for the Common Fate provider CLI."""

import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .helpers.error_handler import CLIError, UserInputError

CONFIG_FILE_ENV_VAR = "CF_CONFIG_FILE"
LOGIN_HINT = "Add a context with an api_url to ~/.cf/config.yaml (or the file named by CF_CONFIG_FILE)"

# keys which can be changed with 'cf config set'
SETTABLE_KEYS = ["api_url", "dashboard_url"]


@dataclass
class Context:
    """Connection details for one Common Fate deployment."""

    auth_url: str = ""
    token_url: str = ""
    dashboard_url: str = ""
    api_url: str = ""
    client_id: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Context":
        known = {k: str(v) for k, v in (data or {}).items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass
class Config:
    """The whole CLI config document."""

    current_context: str = ""
    contexts: Dict[str, Context] = field(default_factory=dict)

    def current(self) -> Context:
        """Return the context named by ``current_context``.

        Raises:
            CLIError: if there are no contexts or the current one is missing
        """
        if not self.contexts:
            raise CLIError(
                "No contexts were found in Common Fate config file.", [LOGIN_HINT]
            )
        context = self.contexts.get(self.current_context)
        if context is None:
            raise CLIError(
                f"Could not find context '{self.current_context}' in Common Fate config file",
                [LOGIN_HINT],
            )
        return context

    def set(self, key: str, value: str) -> None:
        """Set a key on the current context."""
        if key not in SETTABLE_KEYS:
            raise UserInputError(
                f"unknown key {key}. supported keys: {', '.join(SETTABLE_KEYS)}"
            )
        setattr(self.current(), key, value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_context": self.current_context,
            "contexts": {name: asdict(ctx) for name, ctx in self.contexts.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        data = data or {}
        return cls(
            current_context=data.get("current_context", ""),
            contexts={
                name: Context.from_dict(ctx)
                for name, ctx in (data.get("contexts") or {}).items()
            },
        )


def get_config_path() -> Path:
    """Get path to the CLI config file."""
    override = os.environ.get(CONFIG_FILE_ENV_VAR)
    if override:
        return Path(override)
    return Path.home() / ".cf" / "config.yaml"


def load_config(path: Optional[Path] = None) -> Config:
    """Load the config file, returning an empty config if it does not exist."""
    config_path = path or get_config_path()

    if not config_path.exists():
        return Config()

    with open(config_path, "r") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise CLIError(f"Invalid YAML syntax in {config_path}: {e}")

    return Config.from_dict(data)


def save_config(config: Config, path: Optional[Path] = None) -> None:
    """Save the whole config document, replacing the file."""
    config_path = path or get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        yaml.safe_dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
