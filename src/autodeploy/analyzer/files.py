"""File-system signals: languages, static assets, migrations, env files."""

from __future__ import annotations

import logging
import os
from collections import Counter
from pathlib import Path

logger = logging.getLogger(__name__)

# File extensions → language mapping
LANG_EXTENSIONS: dict[str, str] = {
    ".py": "python",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".go": "go",
    ".rs": "rust",
    ".java": "java",
    ".kt": "kotlin",
    ".rb": "ruby",
    ".php": "php",
    ".cs": "csharp",
    ".html": "html",
    ".css": "css",
}

# Markup and styles only count when nothing else is present
MARKUP_LANGUAGES = {"html", "css"}

SKIP_DIRS = {
    ".git",
    "node_modules",
    "__pycache__",
    ".venv",
    "venv",
    "env",
    ".tox",
    ".mypy_cache",
    ".pytest_cache",
    ".next",
    "vendor",
    "target",
    ".idea",
    ".vscode",
}

STATIC_DIRS = ["static", "public", "assets", "dist", "build"]
MIGRATION_DIRS = ["migrations", "migrate", "alembic", "db/migrate"]
ENV_FILES = [".env", ".env.example", ".env.template"]


def iter_source_files(repo_path: str, max_depth: int = 3):
    """Yield source file paths up to ``max_depth`` levels below the root."""
    root_depth = Path(repo_path).resolve().as_posix().count("/")
    for root, dirs, files in os.walk(repo_path):
        depth = Path(root).resolve().as_posix().count("/") - root_depth
        dirs[:] = [d for d in dirs if d not in SKIP_DIRS] if depth < max_depth - 1 else []
        for fname in files:
            if os.path.splitext(fname)[1].lower() in LANG_EXTENSIONS:
                yield Path(root) / fname


def count_loc_by_language(repo_path: str) -> dict[str, int]:
    """Count lines of code per language."""
    loc_counter: Counter[str] = Counter()
    for root, dirs, files in os.walk(repo_path):
        dirs[:] = [d for d in dirs if d not in SKIP_DIRS]
        for fname in files:
            lang = LANG_EXTENSIONS.get(os.path.splitext(fname)[1].lower())
            if lang is None:
                continue
            try:
                with open(os.path.join(root, fname), "r", errors="ignore") as f:
                    loc_counter[lang] += sum(1 for _ in f)
            except OSError:
                continue
    return dict(loc_counter)


def detect_primary_language(repo_path: str) -> str:
    loc = count_loc_by_language(repo_path)
    code = {lang: n for lang, n in loc.items() if lang not in MARKUP_LANGUAGES}
    candidates = code or loc
    if not candidates:
        return "unknown"
    # Ties broken by name so the result is stable
    return max(sorted(candidates), key=candidates.get)


def detect_static_dir(repo_path: str) -> str | None:
    repo = Path(repo_path)
    for name in STATIC_DIRS:
        if (repo / name).is_dir():
            return name
    # A bare index.html at the root is a static site too
    if (repo / "index.html").is_file():
        return "."
    return None


def detect_migrations(repo_path: str) -> bool:
    repo = Path(repo_path)
    return any((repo / name).exists() for name in MIGRATION_DIRS)


def extract_environment_variables(repo_path: str) -> list[str]:
    """Variable names declared in .env-style files, in file order, deduplicated."""
    repo = Path(repo_path)
    names: list[str] = []
    for env_file in ENV_FILES:
        path = repo / env_file
        if not path.is_file():
            continue
        try:
            content = path.read_text(errors="ignore")
        except OSError as e:
            logger.warning(f"Failed to read {path}: {e}")
            continue
        for line in content.splitlines():
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            name = line.split("=", 1)[0].strip()
            if name.startswith("export "):
                name = name[len("export "):].strip()
            if name and name not in names:
                names.append(name)
    return names
