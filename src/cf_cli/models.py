"""Data models shared by the provider installation workflow."""

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

DEFAULT_LINK_PRIORITY = 100
HANDLER_ID_PREFIX = "cf-handler-"

# tags written to handler stacks so uninstall can find what install created
PROVIDER_TAG = "commonfate.io/provider"
TARGET_GROUP_TAG = "commonfate.io/target-group-id"


@dataclass(frozen=True)
class ProviderRef:
    """A provider identifier in ``publisher/name@version`` form."""

    publisher: str
    name: str
    version: str

    def __str__(self) -> str:
        return f"{self.publisher}/{self.name}@{self.version}"


@dataclass(frozen=True)
class ConfigField:
    """A single entry in a provider's configuration schema."""

    secret: bool = False
    usage: str = ""


@dataclass(frozen=True)
class ProviderDescriptor:
    """An installable provider fetched from the registry."""

    publisher: str
    name: str
    version: str
    config_schema: Tuple[Tuple[str, ConfigField], ...] = ()
    target_kinds: Tuple[str, ...] = ()
    lambda_asset_s3_arn: str = ""
    cfn_template_s3_arn: str = ""

    @property
    def ref(self) -> ProviderRef:
        return ProviderRef(self.publisher, self.name, self.version)

    @property
    def type_key(self) -> str:
        """The ``publisher/name`` key used to group versions."""
        return f"{self.publisher}/{self.name}"

    @property
    def asset_path(self) -> str:
        return f"{self.publisher}/{self.name}/{self.version}"

    def config(self) -> Dict[str, ConfigField]:
        return dict(self.config_schema)

    def default_handler_id(self) -> str:
        return f"{HANDLER_ID_PREFIX}{self.publisher}-{self.name}"

    def target_schema(self, kind: str) -> str:
        return f"{self.ref}/{kind}"

    def __str__(self) -> str:
        return str(self.ref)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProviderDescriptor":
        """Build a descriptor from a registry ``ProviderDetail`` payload."""
        schema = data.get("schema") or {}
        config = schema.get("config") or {}
        targets = schema.get("targets") or {}
        return cls(
            publisher=data["publisher"],
            name=data["name"],
            version=data["version"],
            config_schema=tuple(
                (
                    key,
                    ConfigField(
                        secret=bool((value or {}).get("secret", False)),
                        usage=(value or {}).get("usage", ""),
                    ),
                )
                for key, value in config.items()
            ),
            target_kinds=tuple(targets.keys()),
            lambda_asset_s3_arn=data.get("lambdaAssetS3Arn", ""),
            cfn_template_s3_arn=data.get("cfnTemplateS3Arn", ""),
        )


@dataclass(frozen=True)
class BootstrapOutput:
    """Outputs of the bootstrap CloudFormation stack."""

    assets_bucket: str

    @classmethod
    def from_stack_outputs(cls, outputs: List[Dict[str, str]]) -> "BootstrapOutput":
        output_map = {o["OutputKey"]: o["OutputValue"] for o in outputs}
        return cls(assets_bucket=output_map.get("AssetsBucket", ""))


@dataclass(frozen=True)
class StagedAssets:
    """Locations of provider assets copied into the bootstrap bucket."""

    template_url: str
    asset_key: str


@dataclass
class ParameterSet:
    """Ordered CloudFormation parameters for a handler stack."""

    parameters: List[Dict[str, str]] = field(default_factory=list)

    def add(self, key: str, value: str) -> None:
        self.parameters.append({"ParameterKey": key, "ParameterValue": value})

    def get(self, key: str) -> Optional[str]:
        for p in self.parameters:
            if p["ParameterKey"] == key:
                return p["ParameterValue"]
        return None

    def keys(self) -> List[str]:
        return [p["ParameterKey"] for p in self.parameters]

    def to_cloudformation(self) -> List[Dict[str, str]]:
        return [dict(p) for p in self.parameters]


@dataclass(frozen=True)
class TargetGroupLink:
    """Routing link from a target group to a deployed handler."""

    target_group_id: str
    deployment_id: str
    kind: str
    priority: int = DEFAULT_LINK_PRIORITY

    def to_request(self) -> Dict[str, Any]:
        return {
            "deploymentId": self.deployment_id,
            "kind": self.kind,
            "priority": self.priority,
        }


class InstallState(enum.Enum):
    """Stages of a provider install, in the order they are reached."""

    START = "start"
    PROVIDER_RESOLVED = "provider_resolved"
    BOOTSTRAPPED = "bootstrapped"
    ASSETS_STAGED = "assets_staged"
    CONFIG_RESOLVED = "config_resolved"
    DEPLOYED = "deployed"
    REGISTERED = "registered"
    LINKED = "linked"
    HEALTHY = "healthy"
    TIMED_OUT = "timed_out"


class HealthState(enum.Enum):
    UNKNOWN = "unknown"
    UNHEALTHY = "unhealthy"
    HEALTHY = "healthy"


def default_target_group_id(handler_id: str) -> str:
    """Target group ID used when none is given: the handler ID without ``cf-handler-``."""
    if handler_id.startswith(HANDLER_ID_PREFIX):
        return handler_id[len(HANDLER_ID_PREFIX):]
    return handler_id
