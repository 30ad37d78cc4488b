"""autodeploy schemas: Pydantic models for repository signals, intents and plans."""

from .plan import (
    COMPUTE_FAMILY,
    Block,
    CostEstimate,
    InfrastructurePlan,
    Interpolation,
    OutputSpec,
    Ref,
    ResourceKind,
    ResourceSpec,
    Topology,
    Var,
    VariableSpec,
    iter_references,
)
from .signals import (
    CloudProvider,
    DatabaseEngine,
    DeploymentIntent,
    ExecutionModel,
    Framework,
    RepositorySummary,
    ScalingMode,
)

__all__ = [
    "Framework",
    "CloudProvider",
    "ScalingMode",
    "ExecutionModel",
    "DatabaseEngine",
    "RepositorySummary",
    "DeploymentIntent",
    "Topology",
    "ResourceKind",
    "COMPUTE_FAMILY",
    "Ref",
    "Var",
    "Interpolation",
    "Block",
    "ResourceSpec",
    "VariableSpec",
    "OutputSpec",
    "CostEstimate",
    "InfrastructurePlan",
    "iter_references",
]
