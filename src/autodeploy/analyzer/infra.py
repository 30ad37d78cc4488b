"""Container config signals: Dockerfile ports and docker-compose database services."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

# Known database images/services
DB_PATTERNS = {
    "postgres": "postgresql",
    "postgresql": "postgresql",
    "mysql": "mysql",
    "mariadb": "mysql",
}


def parse_dockerfile(path: Path) -> dict:
    """Base images and exposed ports from a Dockerfile."""
    result: dict = {"base_images": [], "ports": []}
    try:
        with open(path) as f:
            for line in f:
                line = line.strip()
                if line.upper().startswith("FROM "):
                    result["base_images"].append(line.split()[1])
                elif line.upper().startswith("EXPOSE "):
                    for token in line.split()[1:]:
                        port = token.split("/")[0]
                        if port.isdigit():
                            result["ports"].append(int(port))
    except OSError as e:
        logger.warning(f"Failed to parse {path}: {e}")
    return result


def parse_docker_compose(path: Path) -> set[str]:
    """Database engines declared as docker-compose services."""
    databases: set[str] = set()
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to parse {path}: {e}")
        return databases
    if not isinstance(data, dict):
        return databases
    services = data.get("services", {})
    if not isinstance(services, dict):
        return databases

    for name, svc in services.items():
        if not isinstance(svc, dict):
            continue
        combined = f"{str(svc.get('image', '')).lower()} {str(name).lower()}"
        for pattern, db_name in DB_PATTERNS.items():
            if pattern in combined:
                databases.add(db_name)
    return databases


def extract_container_info(repo_path: str) -> dict:
    repo = Path(repo_path)
    info: dict = {"has_dockerfile": False, "ports": [], "databases": set()}

    dockerfile = repo / "Dockerfile"
    if dockerfile.is_file():
        info["has_dockerfile"] = True
        info["ports"] = parse_dockerfile(dockerfile)["ports"]

    for name in ("docker-compose.yml", "docker-compose.yaml", "compose.yml", "compose.yaml"):
        compose = repo / name
        if compose.is_file():
            info["databases"] |= parse_docker_compose(compose)
    return info
