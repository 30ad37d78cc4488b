"""Rough monthly cost estimate for a plan. Never a quote."""

from __future__ import annotations

from ..schemas.plan import CostEstimate, ResourceKind, ResourceSpec, Topology
from ..schemas.signals import CloudProvider

# USD per month, on-demand list prices for the default sizes
BASE_RATES = {
    (Topology.SINGLE_VM, CloudProvider.AWS): 8.76,
    (Topology.SINGLE_VM, CloudProvider.GCP): 5.32,
}
TOPOLOGY_RATES = {
    Topology.SINGLE_VM: 8.76,
    Topology.CONTAINER_SERVICE: 25.0,
    Topology.KUBERNETES_CLUSTER: 73.0,
    Topology.SERVERLESS: 5.0,
    Topology.STATIC_SITE: 1.0,
    Topology.UNSUPPORTED: 0.0,
}
KIND_INCREMENTS = {
    ResourceKind.MANAGED_DATABASE: 15.0,
    ResourceKind.CDN_DISTRIBUTION: 5.0,
}


def estimate_monthly_cost(
    topology: Topology,
    provider: CloudProvider,
    resources: list[ResourceSpec],
) -> CostEstimate:
    if topology == Topology.UNSUPPORTED:
        return CostEstimate(amount=0.0)
    amount = BASE_RATES.get((topology, provider), TOPOLOGY_RATES[topology])
    present = {spec.kind for spec in resources}
    for kind, increment in KIND_INCREMENTS.items():
        if kind in present:
            amount += increment
    return CostEstimate(amount=round(amount, 2))
