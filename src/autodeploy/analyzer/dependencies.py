"""Dependency manifest parsing: requirements.txt, pyproject.toml, setup.py, package.json."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r"^([a-zA-Z0-9_.@/-]+)")

# Driver/ORM packages that imply a relational database
DATABASE_PACKAGES = {
    "psycopg2": "postgresql",
    "psycopg2-binary": "postgresql",
    "psycopg": "postgresql",
    "asyncpg": "postgresql",
    "pg": "postgresql",
    "postgres": "postgresql",
    "pymysql": "mysql",
    "mysqlclient": "mysql",
    "mysql-connector-python": "mysql",
    "mysql": "mysql",
    "mysql2": "mysql",
    "flask-sqlalchemy": "postgresql",
    "sequelize": "postgresql",
    "prisma": "postgresql",
    "typeorm": "postgresql",
}


def _parse_requirements_txt(path: Path) -> list[str]:
    deps = []
    try:
        with open(path) as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#") or line.startswith("-"):
                    continue
                match = NAME_PATTERN.match(line)
                if match:
                    deps.append(match.group(1))
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Failed to parse {path}: {e}")
    return deps


def _parse_pyproject_toml(path: Path) -> list[str]:
    deps = []
    try:
        import toml

        data = toml.load(path)
        for dep_str in data.get("project", {}).get("dependencies", []):
            match = NAME_PATTERN.match(dep_str)
            if match:
                deps.append(match.group(1))

        poetry_deps = data.get("tool", {}).get("poetry", {}).get("dependencies", {})
        deps.extend(name for name in poetry_deps if name != "python")
    except Exception as e:
        logger.warning(f"Failed to parse {path}: {e}")
    return deps


def _parse_setup_py(path: Path) -> list[str]:
    deps = []
    try:
        content = path.read_text()
        match = re.search(r"install_requires\s*=\s*\[(.*?)\]", content, re.DOTALL)
        if match:
            for dep_str in re.findall(r"['\"]([^'\"]+)['\"]", match.group(1)):
                name_match = NAME_PATTERN.match(dep_str)
                if name_match:
                    deps.append(name_match.group(1))
    except Exception as e:
        logger.warning(f"Failed to parse {path}: {e}")
    return deps


def _parse_package_json(path: Path) -> list[str]:
    deps = []
    try:
        with open(path) as f:
            data = json.load(f)
        deps.extend(data.get("dependencies", {}))
        deps.extend(data.get("devDependencies", {}))
    except Exception as e:
        logger.warning(f"Failed to parse {path}: {e}")
    return deps


def read_package_json(repo_path: str) -> dict:
    path = Path(repo_path) / "package.json"
    if not path.is_file():
        return {}
    try:
        with open(path) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Failed to parse {path}: {e}")
        return {}
    return data if isinstance(data, dict) else {}


def extract_dependencies(repo_path: str) -> list[str]:
    """All declared package names, lowercased and deduplicated in discovery order."""
    repo = Path(repo_path)
    found: list[str] = []

    for req_file in ["requirements.txt", "requirements/base.txt", "requirements/prod.txt"]:
        p = repo / req_file
        if p.exists():
            found.extend(_parse_requirements_txt(p))
    if (repo / "pyproject.toml").exists():
        found.extend(_parse_pyproject_toml(repo / "pyproject.toml"))
    if (repo / "setup.py").exists():
        found.extend(_parse_setup_py(repo / "setup.py"))
    if (repo / "package.json").exists():
        found.extend(_parse_package_json(repo / "package.json"))

    seen: set[str] = set()
    unique: list[str] = []
    for name in found:
        lowered = name.lower()
        if lowered not in seen:
            seen.add(lowered)
            unique.append(lowered)
    return unique


def database_engines_from_dependencies(dependencies: list[str]) -> set[str]:
    return {DATABASE_PACKAGES[d] for d in dependencies if d in DATABASE_PACKAGES}
