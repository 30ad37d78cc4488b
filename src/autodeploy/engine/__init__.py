"""Decision engine: choose a topology and derive an infrastructure plan."""

from .ai_strategy import AIAssistedStrategy
from .decision import (
    TOPOLOGY_RULES,
    DecisionStrategy,
    RuleBasedStrategy,
    TopologyRule,
    decide,
    select_topology,
)

__all__ = [
    "decide",
    "select_topology",
    "DecisionStrategy",
    "RuleBasedStrategy",
    "AIAssistedStrategy",
    "TopologyRule",
    "TOPOLOGY_RULES",
]
