"""Repository analysis: clone a checkout and summarize its deployment needs."""

from .repository import analyze_repository, clone_repository, detect_framework, generate_commands

__all__ = ["analyze_repository", "clone_repository", "detect_framework", "generate_commands"]
