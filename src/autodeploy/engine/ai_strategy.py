"""LLM-assisted decision strategy.

Asks a model for a topology and instance size, then builds the plan with the
rule-based derivation. Any failure falls back to the pure rule-based plan.
"""

from __future__ import annotations

import json
import logging
from typing import Optional

from ..config import AutodeployConfig
from ..errors import AutodeployError
from ..schemas.plan import InfrastructurePlan, Topology
from ..schemas.signals import DeploymentIntent, RepositorySummary
from .catalog import CATALOGS
from .decision import RuleBasedStrategy, needs_database, resolve_provider

logger = logging.getLogger(__name__)

TOPOLOGY_SYSTEM_PROMPT = """You are a cloud infrastructure architect. Given a repository summary and a deployment request, choose the deployment topology.

Respond with ONLY a JSON object:
{"topology": "single_vm|container_service|kubernetes_cluster|serverless|static_site", "instance_size": "<provider machine type or null>", "reason": "<one sentence>"}

Prefer the cheapest topology that satisfies the request. Only choose static_site when the repository has static assets and no server process."""


class AIAssistedStrategy:
    """Strategy that lets an LLM override topology and sizing."""

    def __init__(
        self,
        llm_provider: str = "anthropic",
        base: Optional[RuleBasedStrategy] = None,
        config: Optional[AutodeployConfig] = None,
    ):
        self.llm_provider = llm_provider
        self.base = base or RuleBasedStrategy()
        self.config = config

    def plan(self, summary: RepositorySummary, intent: DeploymentIntent) -> InfrastructurePlan:
        provider, _ = resolve_provider(intent)
        if provider not in CATALOGS:
            return self.base.plan(summary, intent)

        try:
            suggestion = self._suggest(summary, intent)
            topology = Topology(suggestion["topology"])
        except (AutodeployError, KeyError, ValueError, TypeError) as e:
            logger.warning(f"AI topology suggestion unavailable, using rule table: {e}")
            return self.base.plan(summary, intent)

        if topology == Topology.UNSUPPORTED:
            logger.warning("AI suggested an unsupported topology, using rule table")
            return self.base.plan(summary, intent)
        if topology == Topology.STATIC_SITE and (not summary.has_static_assets or needs_database(summary, intent)):
            logger.warning("AI suggested a static site for a repository that cannot be one, using rule table")
            return self.base.plan(summary, intent)

        instance_size = suggestion.get("instance_size")
        if not isinstance(instance_size, str) or instance_size.strip().lower() in ("", "null", "none"):
            instance_size = None
        reason = suggestion.get("reason") or "no reason given"
        logger.info(f"AI suggested {topology.value} ({instance_size or 'default size'})")
        return self.base.build_plan(
            summary,
            intent,
            topology=topology,
            instance_size=instance_size,
            extra_rationale=[f"AI-assisted choice: {topology.value} ({reason})"],
        )

    def _suggest(self, summary: RepositorySummary, intent: DeploymentIntent) -> dict:
        from .. import llm

        user_prompt = (
            f"## Repository\n{summary.model_dump_json(indent=2)}\n\n"
            f"## Request\n{json.dumps(intent.model_dump(mode='json'), indent=2)}"
        )
        response = llm.complete(TOPOLOGY_SYSTEM_PROMPT, user_prompt, self.llm_provider, self.config)
        return llm.extract_json_from_response(response)
