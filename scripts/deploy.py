#!/usr/bin/env python3
"""CLI: Deploy an application from a plain-language description."""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from autodeploy.config import load_config
from autodeploy.deployment import deploy_application
from autodeploy.engine import AIAssistedStrategy
from autodeploy.errors import AutodeployError


def parse_var(value: str) -> tuple[str, str]:
    name, sep, val = value.partition("=")
    if not sep or not name:
        raise argparse.ArgumentTypeError(f"expected name=value, got '{value}'")
    return name.strip(), val


def main():
    parser = argparse.ArgumentParser(description="Deploy an application to the cloud")
    parser.add_argument("description", help='Deployment request, e.g. "Deploy this Flask app on AWS with Postgres"')
    parser.add_argument("repository", help="Local path or git URL of the repository")
    parser.add_argument("--provider", choices=["aws", "gcp", "azure"], help="Override the cloud provider")
    parser.add_argument("--llm", choices=["anthropic", "openai", "gemini"], help="LLM for intent parsing")
    parser.add_argument("--ai-topology", action="store_true", help="Let the LLM suggest the topology")
    parser.add_argument("--var", action="append", type=parse_var, default=[], help="Terraform variable name=value")
    parser.add_argument("--dry-run", action="store_true", help="Generate files only, do not run terraform")
    parser.add_argument("--config", help="Path to a config YAML file")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)
    if args.llm:
        config.llm_provider = args.llm
    strategy = AIAssistedStrategy(config.llm_provider or "anthropic", config=config) if args.ai_topology else None

    try:
        result = deploy_application(
            args.description,
            args.repository,
            cloud_provider=args.provider,
            dry_run=args.dry_run,
            config=config,
            strategy=strategy,
            variables=dict(args.var),
        )
    except AutodeployError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print()
    for line in result.logs:
        print(f"  {line}")
    if result.topology == "unsupported":
        sys.exit(2)
    if result.dry_run:
        print(f"\nDry run complete. Review the configuration in: {result.output_dir}")
    else:
        print(f"\nDeployment successful: {result.url or 'no URL output'}")
        print(f"Infrastructure: {result.topology}")


if __name__ == "__main__":
    main()
