"""Repository analyzer: clone a repo and summarize what it needs to run."""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Optional

from ..errors import AnalysisError
from ..schemas.signals import Framework, RepositorySummary
from .dependencies import (
    database_engines_from_dependencies,
    extract_dependencies,
    read_package_json,
)
from .files import (
    detect_migrations,
    detect_primary_language,
    detect_static_dir,
    extract_environment_variables,
    iter_source_files,
)
from .infra import extract_container_info

logger = logging.getLogger(__name__)

PORT_PATTERN = re.compile(r"(?:port|PORT)[:=\s]*(\d+)")

DEFAULT_PORTS = {
    Framework.FLASK: 5000,
    Framework.DJANGO: 8000,
    Framework.FASTAPI: 8000,
    Framework.EXPRESS: 3000,
    Framework.NODEJS: 3000,
    Framework.REACT: 3000,
    Framework.NEXTJS: 3000,
    Framework.RAILS: 3000,
    Framework.SPRING: 8080,
}

PYTHON_FRAMEWORKS = [
    (Framework.FLASK, "flask"),
    (Framework.DJANGO, "django"),
    (Framework.FASTAPI, "fastapi"),
]


def clone_repository(url: str, dest: Optional[str | Path] = None, timeout: int = 300) -> Path:
    """Shallow-clone ``url`` into ``dest`` (a new temp dir by default)."""
    git = shutil.which("git")
    if git is None:
        raise AnalysisError("git is not installed or not on PATH")

    target = Path(dest) if dest else Path(tempfile.mkdtemp(prefix="autodeploy-"))
    logger.info(f"Cloning repository {url} to {target}")
    try:
        proc = subprocess.run(
            [git, "clone", "--depth", "1", url, str(target)],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise AnalysisError(f"Cloning {url} timed out after {timeout}s") from e
    if proc.returncode != 0:
        raise AnalysisError(f"Failed to clone repository {url}: {proc.stderr.strip()}")
    return target


def _python_imports_framework(repo_path: str, module: str) -> bool:
    pattern = re.compile(rf"^\s*(?:from|import)\s+{module}\b", re.MULTILINE)
    for path in iter_source_files(repo_path):
        if path.suffix != ".py":
            continue
        try:
            if pattern.search(path.read_text(errors="ignore")):
                return True
        except OSError:
            continue
    return False


def detect_framework(repo_path: str, dependencies: list[str]) -> Framework:
    repo = Path(repo_path)
    has_python = any(
        (repo / name).exists() for name in ("requirements.txt", "Pipfile", "pyproject.toml", "setup.py")
    ) or any(p.suffix == ".py" for p in iter_source_files(repo_path))

    if has_python:
        for framework, module in PYTHON_FRAMEWORKS:
            if module in dependencies:
                return framework
        for framework, module in PYTHON_FRAMEWORKS:
            if _python_imports_framework(repo_path, module):
                return framework

    package = read_package_json(repo_path)
    if package or (repo / "package.json").exists():
        declared = {**package.get("dependencies", {}), **package.get("devDependencies", {})}
        if "next" in declared:
            return Framework.NEXTJS
        if "react" in declared:
            return Framework.REACT
        if "express" in declared:
            return Framework.EXPRESS
        return Framework.NODEJS

    if (repo / "Gemfile").exists():
        return Framework.RAILS
    if (repo / "pom.xml").exists() or (repo / "build.gradle").exists():
        return Framework.SPRING
    return Framework.UNKNOWN


def detect_ports(repo_path: str) -> list[int]:
    """Ports mentioned in source files, sorted."""
    ports: set[int] = set()
    for path in iter_source_files(repo_path):
        if path.suffix not in (".py", ".js", ".ts"):
            continue
        try:
            content = path.read_text(errors="ignore")
        except OSError:
            continue
        for match in PORT_PATTERN.finditer(content):
            port = int(match.group(1))
            if 1000 < port < 65535:
                ports.add(port)
    return sorted(ports)


def generate_commands(
    framework: Framework,
    repo_path: str,
    has_migrations: bool,
) -> tuple[Optional[str], Optional[str]]:
    """Build and start commands for the detected framework."""
    repo = Path(repo_path)
    yarn = (repo / "yarn.lock").exists()
    install = "yarn install" if yarn else "npm install"

    if framework == Framework.FLASK:
        entry = "app.py" if (repo / "app.py").exists() else "main.py" if (repo / "main.py").exists() else "app.py"
        return "pip install -r requirements.txt", f"python {entry}"
    if framework == Framework.DJANGO:
        build = "pip install -r requirements.txt"
        if has_migrations:
            build += " && python manage.py migrate"
        return build, "python manage.py runserver 0.0.0.0:8000"
    if framework == Framework.FASTAPI:
        module = "main" if (repo / "main.py").exists() else "app"
        return "pip install -r requirements.txt", f"uvicorn {module}:app --host 0.0.0.0 --port 8000"
    if framework in (Framework.NODEJS, Framework.EXPRESS):
        return install, "yarn start" if yarn else "npm start"
    if framework in (Framework.REACT, Framework.NEXTJS):
        build = f"{install} && {'yarn build' if yarn else 'npm run build'}"
        return build, "yarn start" if yarn else "npm start"
    if framework == Framework.RAILS:
        return "bundle install", "bundle exec rails server -b 0.0.0.0"
    if framework == Framework.SPRING:
        if (repo / "pom.xml").exists():
            return "mvn package -DskipTests", "java -jar target/*.jar"
        return "gradle build -x test", "java -jar build/libs/*.jar"
    return None, None


def analyze_repository(repo_path: str | Path, repo_url: str = "") -> RepositorySummary:
    """Summarize a checkout into the signals the decision engine consumes."""
    path = str(repo_path)
    if not Path(path).is_dir():
        raise AnalysisError(f"Repository path does not exist: {path}")
    logger.info(f"Analyzing repository at {path}")

    dependencies = extract_dependencies(path)
    framework = detect_framework(path, dependencies)
    container = extract_container_info(path)
    has_migrations = detect_migrations(path)
    env_vars = extract_environment_variables(path)

    if container["ports"]:
        entry_port: Optional[int] = container["ports"][0]
    else:
        ports = detect_ports(path)
        entry_port = ports[0] if ports else DEFAULT_PORTS.get(framework)

    databases = database_engines_from_dependencies(dependencies) | container["databases"]
    needs_database = bool(databases) or "DATABASE_URL" in env_vars

    build_command, start_command = generate_commands(framework, path, has_migrations)

    summary = RepositorySummary(
        primary_language=detect_primary_language(path),
        framework=framework,
        entry_port=entry_port,
        dependencies=frozenset(dependencies),
        needs_database=needs_database,
        has_static_assets=detect_static_dir(path) is not None,
        has_migrations=has_migrations,
        build_command=build_command,
        start_command=start_command,
        repository_url=repo_url,
        has_dockerfile=container["has_dockerfile"],
        environment_variables=tuple(env_vars),
    )
    logger.info(
        f"Detected {summary.framework.value} ({summary.primary_language}), "
        f"port={summary.entry_port}, database={summary.needs_database}"
    )
    return summary
