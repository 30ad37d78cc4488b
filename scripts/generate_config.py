#!/usr/bin/env python3
"""CLI: Generate Terraform configuration without provisioning anything."""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from autodeploy.config import load_config
from autodeploy.deployment import load_repository
from autodeploy.engine import AIAssistedStrategy
from autodeploy.errors import AutodeployError
from autodeploy.intent import extract_intent
from autodeploy.pipeline import generate_configuration
from autodeploy.schemas import RepositorySummary
from autodeploy.session import format_plan


def main():
    parser = argparse.ArgumentParser(description="Generate Terraform files for a repository")
    parser.add_argument("description", help='Deployment request, e.g. "Deploy this Flask app on AWS"')
    parser.add_argument("--repository", "-r", help="Local path or git URL of the repository")
    parser.add_argument("--summary", help="Use a saved summary JSON (from analyze_repo.py) instead")
    parser.add_argument("--provider", choices=["aws", "gcp", "azure"], help="Override the cloud provider")
    parser.add_argument("--llm", choices=["anthropic", "openai", "gemini"], help="LLM for intent parsing")
    parser.add_argument("--ai-topology", action="store_true", help="Let the LLM suggest the topology")
    parser.add_argument("--output-root", help="Directory for deployment_<timestamp> folders")
    parser.add_argument("--config", help="Path to a config YAML file")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.repository and not args.summary:
        parser.error("one of --repository or --summary is required")

    config = load_config(args.config)
    if args.llm:
        config.llm_provider = args.llm

    try:
        if args.summary:
            summary = RepositorySummary.model_validate_json(Path(args.summary).read_text())
        else:
            summary = load_repository(args.repository, config)
        intent = extract_intent(args.description, args.provider, config.llm_provider, config)
        strategy = None
        if args.ai_topology:
            strategy = AIAssistedStrategy(config.llm_provider or "anthropic", config=config)
        result = generate_configuration(summary, intent, args.output_root or config.output_root, strategy)
    except AutodeployError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print()
    print(format_plan(result.plan))
    print()
    print(result.message)
    if not result.supported:
        sys.exit(2)


if __name__ == "__main__":
    main()
