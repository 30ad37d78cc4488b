"""Infrastructure plan schema: the decision engine's output and the synthesizer's input."""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterator, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .signals import CloudProvider


class Topology(str, Enum):
    """High-level shape of the chosen infrastructure."""

    SINGLE_VM = "single_vm"
    CONTAINER_SERVICE = "container_service"
    KUBERNETES_CLUSTER = "kubernetes_cluster"
    SERVERLESS = "serverless"
    STATIC_SITE = "static_site"
    UNSUPPORTED = "unsupported"


class ResourceKind(str, Enum):
    COMPUTE = "compute"
    NETWORK_SECURITY_GROUP = "network_security_group"
    MANAGED_DATABASE = "managed_database"
    OBJECT_STORAGE = "object_storage"
    CDN_DISTRIBUTION = "cdn_distribution"
    CONTAINER_REGISTRY = "container_registry"
    FUNCTION_APP = "function_app"
    CLUSTER_CONTROL_PLANE = "cluster_control_plane"


COMPUTE_FAMILY = frozenset(
    {ResourceKind.COMPUTE, ResourceKind.FUNCTION_APP, ResourceKind.CLUSTER_CONTROL_PLANE}
)


class Ref(BaseModel):
    """Reference to an attribute of another resource in the same plan."""

    model_config = ConfigDict(frozen=True)

    type: Literal["ref"] = "ref"
    logical_name: str
    attribute: str


class Var(BaseModel):
    """Reference to a declared input variable."""

    model_config = ConfigDict(frozen=True)

    type: Literal["var"] = "var"
    name: str


class Interpolation(BaseModel):
    """A string with positional ``{0}`` placeholders filled by references."""

    model_config = ConfigDict(frozen=True)

    type: Literal["interpolation"] = "interpolation"
    template: str
    args: tuple[Union[Ref, Var], ...] = ()


class Block(BaseModel):
    """A nested configuration block (``name { ... }``) as opposed to a map value."""

    model_config = ConfigDict(frozen=True)

    type: Literal["block"] = "block"
    attributes: dict[str, Any] = Field(default_factory=dict)

    @field_validator("attributes", mode="before")
    @classmethod
    def _decode(cls, value: Any) -> Any:
        return decode_value(value)


_TAGGED = {"ref": Ref, "var": Var, "interpolation": Interpolation, "block": Block}


def decode_value(value: Any) -> Any:
    """Turn tagged dicts (as found in plan JSON) back into reference objects."""
    if isinstance(value, dict):
        tag = value.get("type")
        if isinstance(tag, str) and tag in _TAGGED and _looks_tagged(tag, value):
            return _TAGGED[tag].model_validate(value)
        return {k: decode_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [decode_value(v) for v in value]
    return value


def _looks_tagged(tag: str, value: dict) -> bool:
    required = {
        "ref": {"logical_name", "attribute"},
        "var": {"name"},
        "interpolation": {"template"},
        "block": {"attributes"},
    }[tag]
    return required.issubset(value)


def iter_references(value: Any) -> Iterator[Union[Ref, Var]]:
    """Yield every Ref/Var nested anywhere inside an attribute value."""
    if isinstance(value, (Ref, Var)):
        yield value
    elif isinstance(value, Interpolation):
        yield from value.args
    elif isinstance(value, Block):
        for item in value.attributes.values():
            yield from iter_references(item)
    elif isinstance(value, dict):
        for item in value.values():
            yield from iter_references(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from iter_references(item)


class ResourceSpec(BaseModel):
    """One declared infrastructure unit."""

    model_config = ConfigDict(frozen=True)

    kind: ResourceKind
    logical_name: str
    resource_type: str  # provider-native type, e.g. "aws_instance"
    attributes: dict[str, Any] = Field(default_factory=dict)

    @field_validator("attributes", mode="before")
    @classmethod
    def _decode(cls, value: Any) -> Any:
        return decode_value(value)

    def references(self) -> list[Union[Ref, Var]]:
        refs: list[Union[Ref, Var]] = []
        for value in self.attributes.values():
            refs.extend(iter_references(value))
        return refs


class VariableSpec(BaseModel):
    """An input variable. ``default=None`` means the variable is required."""

    model_config = ConfigDict(frozen=True)

    description: str
    default: Any = None
    sensitive: bool = False
    type: str = "string"


class OutputSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: Ref
    description: str = ""
    sensitive: bool = False


class CostEstimate(BaseModel):
    """Rough monthly cost. An estimate, never a quote."""

    model_config = ConfigDict(frozen=True)

    amount: float = 0.0
    currency: str = "USD"


class InfrastructurePlan(BaseModel):
    """The decided topology and resources for one deployment attempt.

    Built once by the decision engine and never mutated afterwards. Every
    Ref in ``resources`` and ``outputs`` must name a resource in
    ``resources`` (checked by the plan validator).
    """

    model_config = ConfigDict(frozen=True)

    provider: CloudProvider
    topology: Topology
    requested_topology: Optional[Topology] = None
    resources: list[ResourceSpec] = Field(default_factory=list)
    variables: dict[str, VariableSpec] = Field(default_factory=dict)
    outputs: dict[str, OutputSpec] = Field(default_factory=dict)
    estimated_monthly_cost: CostEstimate = Field(default_factory=CostEstimate)
    rationale: list[str] = Field(default_factory=list)

    def resource(self, logical_name: str) -> Optional[ResourceSpec]:
        for spec in self.resources:
            if spec.logical_name == logical_name:
                return spec
        return None

    def resources_of_kind(self, kind: ResourceKind) -> list[ResourceSpec]:
        return [spec for spec in self.resources if spec.kind == kind]

    @property
    def is_unsupported(self) -> bool:
        return self.topology == Topology.UNSUPPORTED
