#!/usr/bin/env python3
"""CLI: Analyze a repository and print its deployment summary."""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from autodeploy.config import load_config
from autodeploy.deployment import load_repository
from autodeploy.errors import AutodeployError
from autodeploy.session import format_summary


def main():
    parser = argparse.ArgumentParser(description="Analyze a repository for deployment")
    parser.add_argument("repository", help="Local path or git URL of the repository")
    parser.add_argument("--config", help="Path to a config YAML file")
    parser.add_argument("--output", "-o", help="Write the summary JSON to this path")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)
    try:
        summary = load_repository(args.repository, config)
    except AutodeployError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print()
    print(format_summary(args.repository, summary))
    if args.output:
        Path(args.output).parent.mkdir(parents=True, exist_ok=True)
        Path(args.output).write_text(summary.model_dump_json(indent=2))
        print(f"\nSaved to: {args.output}")


if __name__ == "__main__":
    main()
