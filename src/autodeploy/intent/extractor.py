"""Turn a plain-language deployment request into a DeploymentIntent.

The keyword parser is always available and deterministic. When an LLM
provider is configured, the model's structured answer is used instead, and
any failure falls back to keywords.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from ..config import AutodeployConfig
from ..errors import IntentExtractionError, LLMError
from ..schemas.signals import (
    CloudProvider,
    DatabaseEngine,
    DeploymentIntent,
    ExecutionModel,
    ScalingMode,
)

logger = logging.getLogger(__name__)

INTENT_SYSTEM_PROMPT = """You extract structured deployment requirements from a user's request.

Respond with ONLY a JSON object (no explanation):
{
  "cloud_provider": "aws|gcp|azure|unspecified",
  "scaling": "single|auto_scaling|kubernetes",
  "execution_model": "vm|container|serverless",
  "database_requested": true,
  "database_engine": "postgresql|mysql|null",
  "cdn_requested": false
}

Rules:
- cloud_provider: "unspecified" unless a provider is named
- scaling: "single" unless auto-scaling, load balancing or kubernetes is mentioned
- execution_model: "serverless" for lambda/functions, "container" for docker/containers, else "vm"
- database_requested: true only if a database is mentioned"""

PROVIDER_KEYWORDS = [
    (CloudProvider.GCP, ("gcp", "google cloud", "google")),
    (CloudProvider.AZURE, ("azure", "microsoft")),
    (CloudProvider.AWS, ("aws", "amazon", "ec2")),
]

DATABASE_KEYWORDS = [
    (DatabaseEngine.POSTGRESQL, ("postgres", "postgresql", "psql")),
    (DatabaseEngine.MYSQL, ("mysql", "mariadb")),
]


def _has_word(text: str, word: str) -> bool:
    return re.search(rf"\b{re.escape(word)}\b", text) is not None


def parse_intent_keywords(description: str) -> DeploymentIntent:
    """Deterministic keyword-based intent extraction."""
    text = description.lower()

    provider = CloudProvider.UNSPECIFIED
    for candidate, words in PROVIDER_KEYWORDS:
        if any(_has_word(text, w) for w in words):
            provider = candidate
            break

    if any(w in text for w in ("kubernetes", "k8s", "eks", "gke")):
        scaling = ScalingMode.KUBERNETES
    elif any(w in text for w in ("auto-scal", "autoscal", "auto scal", "load balanc", "high availability")):
        scaling = ScalingMode.AUTO_SCALING
    else:
        scaling = ScalingMode.SINGLE

    if any(w in text for w in ("serverless", "lambda", "cloud function")):
        execution = ExecutionModel.SERVERLESS
    elif any(w in text for w in ("docker", "container")):
        execution = ExecutionModel.CONTAINER
    else:
        execution = ExecutionModel.VM

    engine: Optional[DatabaseEngine] = None
    for candidate, words in DATABASE_KEYWORDS:
        if any(w in text for w in words):
            engine = candidate
            break
    database_requested = engine is not None or _has_word(text, "database") or _has_word(text, "db")

    cdn_requested = _has_word(text, "cdn") or "cloudfront" in text

    return DeploymentIntent(
        cloud_provider=provider,
        scaling=scaling,
        execution_model=execution,
        database_requested=database_requested,
        cdn_requested=cdn_requested,
        database_engine=engine,
        description=description,
    )


def parse_intent_response(response: str, description: str) -> DeploymentIntent:
    """Validate an LLM JSON answer into a DeploymentIntent."""
    from ..llm import extract_json_from_response

    try:
        data = extract_json_from_response(response)
    except LLMError as e:
        raise IntentExtractionError(str(e)) from e

    if data.get("database_engine") in (None, "null", "none", ""):
        data["database_engine"] = None
    data["description"] = description
    try:
        return DeploymentIntent.model_validate(data)
    except ValueError as e:
        raise IntentExtractionError(f"Response does not describe a deployment intent: {e}") from e


def extract_intent(
    description: str,
    cloud_provider: Optional[str] = None,
    llm_provider: Optional[str] = None,
    config: Optional[AutodeployConfig] = None,
) -> DeploymentIntent:
    """Extract an intent, preferring the LLM when one is configured.

    ``cloud_provider`` (from a CLI flag) overrides whatever the text says.
    """
    intent = None
    if llm_provider:
        from .. import llm

        try:
            response = llm.complete(INTENT_SYSTEM_PROMPT, description, llm_provider, config)
            intent = parse_intent_response(response, description)
            logger.info(f"Parsed deployment intent with {llm_provider}")
        except (LLMError, IntentExtractionError) as e:
            logger.warning(f"LLM intent extraction failed, falling back to keywords: {e}")

    if intent is None:
        intent = parse_intent_keywords(description)

    if cloud_provider:
        intent = intent.model_copy(update={"cloud_provider": CloudProvider(cloud_provider.lower())})
    logger.debug(f"Intent: {intent.model_dump_json()}")
    return intent
