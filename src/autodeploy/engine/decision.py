"""Rule-based decision engine: repository signals + intent -> infrastructure plan.

The topology is picked by an explicit, ordered rule table. The first rule
whose predicate matches wins and contributes its rationale line. Resources,
variables and outputs are then derived from the chosen topology using the
provider's resource catalog.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from ..schemas.plan import (
    InfrastructurePlan,
    OutputSpec,
    ResourceSpec,
    Topology,
    Var,
    VariableSpec,
    iter_references,
)
from ..schemas.signals import (
    CloudProvider,
    DatabaseEngine,
    DeploymentIntent,
    ExecutionModel,
    RepositorySummary,
    ScalingMode,
)
from .catalog import CATALOGS, DerivationContext, variable_spec
from .cost import estimate_monthly_cost

logger = logging.getLogger(__name__)


def needs_database(summary: RepositorySummary, intent: DeploymentIntent) -> bool:
    return summary.needs_database or intent.database_requested


@dataclass(frozen=True)
class TopologyRule:
    """One row of the precedence table."""

    name: str
    topology: Topology
    predicate: Callable[[RepositorySummary, DeploymentIntent], bool]
    rationale: str


TOPOLOGY_RULES: tuple[TopologyRule, ...] = (
    TopologyRule(
        name="kubernetes",
        topology=Topology.KUBERNETES_CLUSTER,
        predicate=lambda s, i: i.scaling == ScalingMode.KUBERNETES,
        rationale="Kubernetes was requested, so the app runs on a managed cluster",
    ),
    TopologyRule(
        name="serverless",
        topology=Topology.SERVERLESS,
        predicate=lambda s, i: (
            i.execution_model == ExecutionModel.SERVERLESS
            or "serverless" in i.description.lower()
        ),
        rationale="Serverless execution was requested, so the app is packaged as a function",
    ),
    TopologyRule(
        name="static_site",
        topology=Topology.STATIC_SITE,
        predicate=lambda s, i: (
            s.has_static_assets and not s.start_command and not needs_database(s, i)
        ),
        rationale="Repository only ships static assets with no server process, so it is hosted from object storage",
    ),
    TopologyRule(
        name="auto_scaling",
        topology=Topology.CONTAINER_SERVICE,
        predicate=lambda s, i: i.scaling == ScalingMode.AUTO_SCALING,
        rationale="Auto-scaling was requested, so the app runs as a managed container service",
    ),
    TopologyRule(
        name="default",
        topology=Topology.SINGLE_VM,
        predicate=lambda s, i: True,
        rationale="No scaling or execution preference given, defaulting to a single virtual machine",
    ),
)


def select_topology(summary: RepositorySummary, intent: DeploymentIntent) -> TopologyRule:
    """Return the first rule in the precedence table that matches."""
    for rule in TOPOLOGY_RULES:
        if rule.predicate(summary, intent):
            return rule
    # The default rule always matches
    return TOPOLOGY_RULES[-1]


def resolve_provider(intent: DeploymentIntent) -> tuple[CloudProvider, Optional[str]]:
    if intent.cloud_provider == CloudProvider.UNSPECIFIED:
        return CloudProvider.AWS, "No cloud provider specified, defaulting to aws"
    return intent.cloud_provider, None


class DecisionStrategy(Protocol):
    """Anything that can turn signals into a plan."""

    def plan(self, summary: RepositorySummary, intent: DeploymentIntent) -> InfrastructurePlan:
        ...


class RuleBasedStrategy:
    """Deterministic strategy backed by ``TOPOLOGY_RULES``."""

    def plan(self, summary: RepositorySummary, intent: DeploymentIntent) -> InfrastructurePlan:
        return self.build_plan(summary, intent)

    def build_plan(
        self,
        summary: RepositorySummary,
        intent: DeploymentIntent,
        topology: Optional[Topology] = None,
        instance_size: Optional[str] = None,
        extra_rationale: Optional[list[str]] = None,
    ) -> InfrastructurePlan:
        """Build a plan, optionally forcing the topology and instance size."""
        rationale: list[str] = []
        provider, note = resolve_provider(intent)
        if note:
            rationale.append(note)

        rule = select_topology(summary, intent)
        if topology is None or topology == Topology.UNSUPPORTED:
            topology = rule.topology
            rationale.append(rule.rationale)
        rationale.extend(extra_rationale or [])

        catalog = CATALOGS.get(provider)
        if catalog is None:
            rationale.append(
                f"Cloud provider '{provider.value}' has no resource templates; "
                f"refusing to plan a {topology.value} deployment"
            )
            logger.info(f"Unsupported provider {provider.value}, requested topology {topology.value}")
            return InfrastructurePlan(
                provider=provider,
                topology=Topology.UNSUPPORTED,
                requested_topology=topology,
                estimated_monthly_cost=estimate_monthly_cost(Topology.UNSUPPORTED, provider, []),
                rationale=rationale,
            )

        ctx = DerivationContext(
            provider=provider,
            topology=topology,
            summary=summary,
            intent=intent,
            database_engine=intent.database_engine or DatabaseEngine.POSTGRESQL,
            instance_size=instance_size,
        )
        resources = self._derive_resources(ctx, rationale)
        variables = self._derive_variables(ctx, catalog.header_variables, resources)
        outputs: dict[str, OutputSpec] = {}
        for spec in resources:
            outputs.update(catalog.outputs_for(spec))

        cost = estimate_monthly_cost(topology, provider, resources)
        rationale.append(f"Estimated monthly cost: ~${cost.amount:.2f} {cost.currency} (estimate only)")

        logger.debug(f"Planned {topology.value} on {provider.value} with {len(resources)} resources")
        return InfrastructurePlan(
            provider=provider,
            topology=topology,
            requested_topology=topology,
            resources=resources,
            variables=variables,
            outputs=outputs,
            estimated_monthly_cost=cost,
            rationale=rationale,
        )

    def _derive_resources(self, ctx: DerivationContext, rationale: list[str]) -> list[ResourceSpec]:
        catalog = CATALOGS[ctx.provider]
        summary, intent = ctx.summary, ctx.intent
        resources: list[ResourceSpec] = []

        database = None
        if needs_database(summary, intent):
            database = catalog.database(ctx)
            source = "repository dependencies" if summary.needs_database else "the request"
            rationale.append(
                f"Managed {ctx.database_engine.value} database added because {source} call for one"
            )

        if ctx.topology != Topology.STATIC_SITE:
            compute = catalog.compute(ctx)
            resources.append(compute)
            resources.append(catalog.security_group(ctx, compute, database))
            if database is not None:
                rationale.append("Security group allows the application to reach the database")

        if database is not None:
            resources.append(database)

        if summary.has_static_assets or intent.cdn_requested:
            storage = catalog.object_storage(ctx)
            resources.append(storage)
            rationale.append("Object storage bucket added for static assets")
            if intent.cdn_requested:
                resources.append(catalog.cdn(ctx, storage))
                rationale.append("CDN distribution placed in front of the asset bucket")

        if ctx.topology == Topology.CONTAINER_SERVICE:
            resources.append(catalog.registry(ctx))
            rationale.append("Container registry added to hold the application image")

        return resources

    def _derive_variables(
        self,
        ctx: DerivationContext,
        header_variables: tuple[str, ...],
        resources: list[ResourceSpec],
    ) -> dict[str, VariableSpec]:
        names: list[str] = list(header_variables)
        for spec in resources:
            for value in spec.attributes.values():
                for ref in iter_references(value):
                    if isinstance(ref, Var) and ref.name not in names:
                        names.append(ref.name)
        return {name: variable_spec(name, ctx) for name in names}


def decide(
    summary: RepositorySummary,
    intent: DeploymentIntent,
    strategy: Optional[DecisionStrategy] = None,
) -> InfrastructurePlan:
    """Choose a topology and derive the full plan. Deterministic for the default strategy."""
    strategy = strategy or RuleBasedStrategy()
    return strategy.plan(summary, intent)
