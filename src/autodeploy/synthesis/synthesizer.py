"""Template synthesizer: InfrastructurePlan -> main.tf / variables.tf / outputs.tf."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ..errors import SynthesisInvariantViolation
from ..schemas.plan import Block, InfrastructurePlan, Var
from ..schemas.signals import CloudProvider
from .hcl import Renderer, quote

logger = logging.getLogger(__name__)

PROVIDER_SOURCES = {
    CloudProvider.AWS: ("aws", "hashicorp/aws", "~> 5.0"),
    CloudProvider.GCP: ("google", "hashicorp/google", "~> 5.0"),
}

PROVIDER_SETTINGS = {
    CloudProvider.AWS: {"region": Var(name="region")},
    CloudProvider.GCP: {"project": Var(name="project_id"), "region": Var(name="region")},
}


@dataclass(frozen=True)
class TemplateBundle:
    """The three Terraform files for one plan."""

    main: str
    variables: str
    outputs: str

    def files(self) -> dict[str, str]:
        return {
            "main.tf": self.main,
            "variables.tf": self.variables,
            "outputs.tf": self.outputs,
        }


def synthesize(plan: InfrastructurePlan) -> TemplateBundle:
    """Render a validated plan. Same plan in, byte-identical bundle out."""
    if plan.is_unsupported or plan.provider not in PROVIDER_SOURCES:
        raise SynthesisInvariantViolation(
            f"Cannot synthesize a plan for unsupported provider '{plan.provider.value}'"
        )

    renderer = Renderer(
        resource_types={spec.logical_name: spec.resource_type for spec in plan.resources},
        variables=plan.variables,
    )
    bundle = TemplateBundle(
        main=_render_main(plan, renderer),
        variables=_render_variables(plan, renderer),
        outputs=_render_outputs(plan, renderer),
    )
    logger.debug(f"Synthesized {len(plan.resources)} resources, {len(plan.variables)} variables")
    return bundle


def _render_main(plan: InfrastructurePlan, renderer: Renderer) -> str:
    local_name, source, version = PROVIDER_SOURCES[plan.provider]
    sections = [
        "\n".join([
            "terraform {",
            "  required_providers {",
            f"    {local_name} = {{",
            f"      source  = {quote(source)}",
            f"      version = {quote(version)}",
            "    }",
            "  }",
            "}",
        ]),
        "\n".join(renderer.block(f'provider "{local_name}"', Block(attributes=PROVIDER_SETTINGS[plan.provider]), 0)),
    ]
    for spec in plan.resources:
        lines = [f'resource "{spec.resource_type}" "{spec.logical_name}" {{']
        lines.extend(renderer.body(spec.attributes))
        lines.append("}")
        sections.append("\n".join(lines))
    return "\n\n".join(sections) + "\n"


def _render_variables(plan: InfrastructurePlan, renderer: Renderer) -> str:
    sections = []
    for name, var in plan.variables.items():
        lines = [
            f'variable "{name}" {{',
            f"  description = {quote(var.description)}",
            f"  type        = {var.type}",
        ]
        if var.default is not None:
            lines.append(f"  default     = {renderer.value(var.default, 1)}")
        if var.sensitive:
            lines.append("  sensitive   = true")
        lines.append("}")
        sections.append("\n".join(lines))
    return "\n\n".join(sections) + "\n" if sections else ""


def _render_outputs(plan: InfrastructurePlan, renderer: Renderer) -> str:
    sections = []
    for name, output in plan.outputs.items():
        lines = [
            f'output "{name}" {{',
            f"  value       = {renderer.expression(output.value)}",
        ]
        if output.description:
            lines.append(f"  description = {quote(output.description)}")
        if output.sensitive:
            lines.append("  sensitive   = true")
        lines.append("}")
        sections.append("\n".join(lines))
    return "\n\n".join(sections) + "\n" if sections else ""
