"""Plan validator: catch contradictions in a plan before any template is produced."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..errors import InconsistentPlan, UnsupportedProvider
from ..schemas.plan import (
    COMPUTE_FAMILY,
    Block,
    InfrastructurePlan,
    Ref,
    ResourceKind,
    Var,
    iter_references,
)

logger = logging.getLogger(__name__)

CREDENTIAL_MARKERS = ("password", "secret", "token", "private_key", "api_key", "access_key")


class ValidationStatus(str, Enum):
    OK = "ok"
    INCONSISTENT = "inconsistent"
    UNSUPPORTED = "unsupported"


@dataclass
class ValidationResult:
    """Outcome of validating one plan."""

    status: ValidationStatus
    issues: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == ValidationStatus.OK


def _is_credential_like(name: str) -> bool:
    lowered = name.lower()
    return any(marker in lowered for marker in CREDENTIAL_MARKERS)


def _walk_attributes(attributes: dict[str, Any], prefix: str = ""):
    """Yield (dotted_path, value) for every attribute, descending into blocks and maps."""
    for key, value in attributes.items():
        path = f"{prefix}{key}"
        yield path, value
        if isinstance(value, Block):
            yield from _walk_attributes(value.attributes, path + ".")
        elif isinstance(value, dict):
            yield from _walk_attributes(value, path + ".")
        elif isinstance(value, list):
            for item in value:
                if isinstance(item, Block):
                    yield from _walk_attributes(item.attributes, path + ".")


def validate(plan: InfrastructurePlan) -> ValidationResult:
    """Check referential closure, uniqueness, non-emptiness and secret handling."""
    if plan.is_unsupported:
        return ValidationResult(
            status=ValidationStatus.UNSUPPORTED,
            issues=[f"Cloud provider '{plan.provider.value}' is not supported"],
        )

    issues: list[str] = []
    names = [spec.logical_name for spec in plan.resources]
    known = set(names)

    # Referential closure
    for spec in plan.resources:
        for ref in spec.references():
            if isinstance(ref, Ref) and ref.logical_name not in known:
                issues.append(
                    f"Resource '{spec.logical_name}' references unknown resource '{ref.logical_name}'"
                )
    for var_name, var in plan.variables.items():
        for ref in iter_references(var.default):
            if isinstance(ref, Ref) and ref.logical_name not in known:
                issues.append(f"Variable '{var_name}' references unknown resource '{ref.logical_name}'")
    for out_name, output in plan.outputs.items():
        if output.value.logical_name not in known:
            issues.append(f"Output '{out_name}' references unknown resource '{output.value.logical_name}'")

    # Uniqueness
    seen: set[str] = set()
    for name in names:
        if name in seen:
            issues.append(f"Duplicate logical name '{name}'")
        seen.add(name)

    # Non-emptiness
    anchors = COMPUTE_FAMILY | {ResourceKind.OBJECT_STORAGE}
    if not any(spec.kind in anchors for spec in plan.resources):
        issues.append("Plan has no compute or object storage resource")

    # Sensitive-variable policy, by name and by the attribute a variable backs
    for var_name, var in plan.variables.items():
        if _is_credential_like(var_name) and not var.sensitive:
            issues.append(f"Variable '{var_name}' looks like a credential but is not marked sensitive")
    for spec in plan.resources:
        for attr_name, value in _walk_attributes(spec.attributes):
            if not _is_credential_like(attr_name.rsplit(".", 1)[-1]):
                continue
            for ref in iter_references(value):
                if isinstance(ref, Var) and ref.name in plan.variables and not plan.variables[ref.name].sensitive:
                    issues.append(
                        f"Variable '{ref.name}' backs credential attribute "
                        f"'{spec.logical_name}.{attr_name}' but is not marked sensitive"
                    )

    # Variable closure
    for spec in plan.resources:
        for ref in spec.references():
            if isinstance(ref, Var) and ref.name not in plan.variables:
                issues.append(f"Resource '{spec.logical_name}' uses undeclared variable '{ref.name}'")

    if issues:
        return ValidationResult(status=ValidationStatus.INCONSISTENT, issues=issues)
    return ValidationResult(status=ValidationStatus.OK)


def ensure_valid(plan: InfrastructurePlan) -> InfrastructurePlan:
    """Return the plan unchanged, or raise if it must not be synthesized."""
    result = validate(plan)
    if result.status == ValidationStatus.UNSUPPORTED:
        raise UnsupportedProvider(plan.provider.value)
    if result.status == ValidationStatus.INCONSISTENT:
        raise InconsistentPlan("; ".join(result.issues), result.issues)
    return plan
