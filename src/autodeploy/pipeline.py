"""Generation pipeline: decide -> validate -> synthesize -> write.

Nothing is written unless the plan validates and synthesis succeeds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .engine import DecisionStrategy, decide
from .errors import InconsistentPlan, UnsupportedProvider
from .schemas.plan import InfrastructurePlan
from .schemas.signals import DeploymentIntent, RepositorySummary
from .synthesis import TemplateBundle, synthesize, write_bundle
from .validation import ValidationResult, ValidationStatus, validate

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Outcome of one generation attempt."""

    plan: InfrastructurePlan
    validation: ValidationResult
    bundle: Optional[TemplateBundle] = None
    output_dir: Optional[Path] = None

    @property
    def supported(self) -> bool:
        return self.validation.status != ValidationStatus.UNSUPPORTED

    @property
    def message(self) -> str:
        if not self.supported:
            return str(UnsupportedProvider(self.plan.provider.value))
        if self.output_dir is not None:
            return f"Terraform configuration written to {self.output_dir}"
        return "Terraform configuration generated"


def build_plan(
    summary: RepositorySummary,
    intent: DeploymentIntent,
    strategy: Optional[DecisionStrategy] = None,
) -> tuple[InfrastructurePlan, ValidationResult]:
    """Decide and validate. Raises InconsistentPlan; unsupported plans are returned."""
    plan = decide(summary, intent, strategy)
    result = validate(plan)
    if result.status == ValidationStatus.INCONSISTENT:
        logger.error(
            f"Plan failed validation: {'; '.join(result.issues)}\n{plan.model_dump_json(indent=2)}"
        )
        raise InconsistentPlan("; ".join(result.issues), result.issues)
    if result.status == ValidationStatus.UNSUPPORTED:
        logger.warning(f"Refusing to synthesize: provider '{plan.provider.value}' is not supported")
    return plan, result


def generate_configuration(
    summary: RepositorySummary,
    intent: DeploymentIntent,
    output_root: Optional[str | Path] = None,
    strategy: Optional[DecisionStrategy] = None,
    save_plan: bool = True,
) -> PipelineResult:
    """Produce Terraform files for a repository and request.

    With ``output_root=None`` the bundle is returned without touching disk.
    """
    plan, result = build_plan(summary, intent, strategy)
    if result.status == ValidationStatus.UNSUPPORTED:
        return PipelineResult(plan=plan, validation=result)

    bundle = synthesize(plan)
    output_dir = None
    if output_root is not None:
        output_dir = write_bundle(bundle, output_root, plan if save_plan else None)
    return PipelineResult(plan=plan, validation=result, bundle=bundle, output_dir=output_dir)
