#!/usr/bin/env python3
"""CLI: Interactive deployment chat."""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from autodeploy.config import load_config
from autodeploy.session import ChatSession, SessionContext


def main():
    parser = argparse.ArgumentParser(description="Interactive deployment chat")
    parser.add_argument("--repository", "-r", help="Repository to load on start")
    parser.add_argument("--llm", choices=["anthropic", "openai", "gemini"], help="LLM for intent parsing")
    parser.add_argument("--config", help="Path to a config YAML file")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)
    if args.llm:
        config.llm_provider = args.llm

    session = ChatSession(SessionContext(config=config))
    if args.repository:
        session.handle(f"load {args.repository}")
    session.run()


if __name__ == "__main__":
    main()
