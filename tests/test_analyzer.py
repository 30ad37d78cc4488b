"""Tests for the repository analyzer, run against small checkouts built in tmp_path."""

import subprocess

import pytest

from autodeploy.errors import AnalysisError
from autodeploy.schemas import Framework


def _write(root, files):
    for name, content in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


@pytest.fixture
def flask_repo(tmp_path):
    return _write(
        tmp_path / "hello_world",
        {
            "requirements.txt": "Flask==3.0.0\npsycopg2-binary>=2.9  # driver\n\n-e .\n",
            "app.py": (
                "from flask import Flask\n"
                "app = Flask(__name__)\n\n"
                "if __name__ == '__main__':\n"
                "    app.run(host='localhost', port=5000)\n"
            ),
            ".env.example": "# settings\nDATABASE_URL=postgres://localhost/app\nexport SECRET_KEY=changeme\n",
        },
    )


class TestFiles:
    def test_primary_language_ignores_markup(self, tmp_path):
        from autodeploy.analyzer.files import detect_primary_language

        _write(tmp_path, {"index.html": "<p>\n" * 50, "server.js": "listen()\n"})
        assert detect_primary_language(str(tmp_path)) == "javascript"

    def test_markup_only_site(self, tmp_path):
        from autodeploy.analyzer.files import detect_primary_language, detect_static_dir

        _write(tmp_path, {"index.html": "<h1>hi</h1>\n"})
        assert detect_primary_language(str(tmp_path)) == "html"
        assert detect_static_dir(str(tmp_path)) == "."

    def test_empty_repo(self, tmp_path):
        from autodeploy.analyzer.files import detect_primary_language, detect_static_dir

        assert detect_primary_language(str(tmp_path)) == "unknown"
        assert detect_static_dir(str(tmp_path)) is None

    def test_skips_vendored_dirs(self, tmp_path):
        from autodeploy.analyzer.files import count_loc_by_language

        _write(tmp_path, {"node_modules/lib/index.js": "x\n" * 100, "main.py": "print(1)\n"})
        assert count_loc_by_language(str(tmp_path)) == {"python": 1}

    def test_environment_variables(self, flask_repo):
        from autodeploy.analyzer.files import extract_environment_variables

        assert extract_environment_variables(str(flask_repo)) == ["DATABASE_URL", "SECRET_KEY"]


class TestDependencies:
    def test_requirements(self, flask_repo):
        from autodeploy.analyzer.dependencies import extract_dependencies

        assert extract_dependencies(str(flask_repo)) == ["flask", "psycopg2-binary"]

    def test_package_json_and_engines(self, tmp_path):
        from autodeploy.analyzer.dependencies import (
            database_engines_from_dependencies,
            extract_dependencies,
        )

        _write(tmp_path, {"package.json": '{"dependencies": {"express": "^4"}, "devDependencies": {"mysql2": "^3"}}'})
        deps = extract_dependencies(str(tmp_path))
        assert deps == ["express", "mysql2"]
        assert database_engines_from_dependencies(deps) == {"mysql"}

    def test_pyproject(self, tmp_path):
        from autodeploy.analyzer.dependencies import extract_dependencies

        _write(tmp_path, {"pyproject.toml": '[project]\nname = "x"\ndependencies = ["fastapi>=0.100", "uvicorn"]\n'})
        assert extract_dependencies(str(tmp_path)) == ["fastapi", "uvicorn"]

    def test_broken_package_json(self, tmp_path):
        from autodeploy.analyzer.dependencies import extract_dependencies

        _write(tmp_path, {"package.json": "{not json"})
        assert extract_dependencies(str(tmp_path)) == []


class TestInfra:
    def test_dockerfile_ports(self, tmp_path):
        from autodeploy.analyzer.infra import extract_container_info

        _write(tmp_path, {"Dockerfile": "FROM python:3.12-slim\nEXPOSE 8080/tcp 9090\n"})
        info = extract_container_info(str(tmp_path))
        assert info["has_dockerfile"]
        assert info["ports"] == [8080, 9090]

    def test_compose_databases(self, tmp_path):
        from autodeploy.analyzer.infra import extract_container_info

        _write(
            tmp_path,
            {"docker-compose.yml": "services:\n  web:\n    build: .\n  db:\n    image: postgres:16\n"},
        )
        assert extract_container_info(str(tmp_path))["databases"] == {"postgresql"}

    def test_invalid_compose(self, tmp_path):
        from autodeploy.analyzer.infra import extract_container_info

        _write(tmp_path, {"compose.yaml": "services: [unclosed\n"})
        assert extract_container_info(str(tmp_path))["databases"] == set()


class TestAnalyzeRepository:
    def test_flask_repo(self, flask_repo):
        from autodeploy.analyzer import analyze_repository

        summary = analyze_repository(flask_repo, repo_url="https://github.com/Arvo-AI/hello_world")
        assert summary.framework == Framework.FLASK
        assert summary.primary_language == "python"
        assert summary.entry_port == 5000
        assert summary.needs_database
        assert summary.start_command == "python app.py"
        assert summary.build_command == "pip install -r requirements.txt"
        assert summary.environment_variables == ("DATABASE_URL", "SECRET_KEY")
        assert summary.repository_url == "https://github.com/Arvo-AI/hello_world"

    def test_dockerfile_port_wins(self, flask_repo):
        from autodeploy.analyzer import analyze_repository

        _write(flask_repo, {"Dockerfile": "FROM python:3.12\nEXPOSE 8000\n"})
        summary = analyze_repository(flask_repo)
        assert summary.entry_port == 8000
        assert summary.has_dockerfile

    def test_framework_default_port(self, tmp_path):
        from autodeploy.analyzer import analyze_repository

        _write(tmp_path, {"package.json": '{"dependencies": {"express": "^4"}}', "index.js": "app.listen()\n"})
        summary = analyze_repository(tmp_path)
        assert summary.framework == Framework.EXPRESS
        assert summary.entry_port == 3000
        assert summary.start_command == "npm start"

    def test_static_site(self, tmp_path):
        from autodeploy.analyzer import analyze_repository

        _write(tmp_path, {"index.html": "<h1>hi</h1>\n", "assets/site.css": "body {}\n"})
        summary = analyze_repository(tmp_path)
        assert summary.has_static_assets
        assert summary.start_command is None
        assert not summary.needs_database

    def test_django_migrations(self, tmp_path):
        from autodeploy.analyzer import analyze_repository

        _write(tmp_path, {"requirements.txt": "Django\n", "manage.py": "", "migrations/__init__.py": ""})
        summary = analyze_repository(tmp_path)
        assert summary.framework == Framework.DJANGO
        assert summary.has_migrations
        assert summary.build_command.endswith("python manage.py migrate")

    def test_missing_path(self, tmp_path):
        from autodeploy.analyzer import analyze_repository

        with pytest.raises(AnalysisError):
            analyze_repository(tmp_path / "nope")


class TestClone:
    def test_clone_command(self, tmp_path, monkeypatch):
        from autodeploy.analyzer import repository as repo_mod

        calls = []

        def fake_run(cmd, **kwargs):
            calls.append(cmd)
            return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

        monkeypatch.setattr(repo_mod.shutil, "which", lambda name: "/usr/bin/git")
        monkeypatch.setattr(repo_mod.subprocess, "run", fake_run)
        target = repo_mod.clone_repository("https://github.com/a/b", tmp_path / "b")
        assert target == tmp_path / "b"
        assert calls == [["/usr/bin/git", "clone", "--depth", "1", "https://github.com/a/b", str(tmp_path / "b")]]

    def test_clone_failure(self, tmp_path, monkeypatch):
        from autodeploy.analyzer import repository as repo_mod

        monkeypatch.setattr(repo_mod.shutil, "which", lambda name: "/usr/bin/git")
        monkeypatch.setattr(
            repo_mod.subprocess,
            "run",
            lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 128, stdout="", stderr="repository not found"),
        )
        with pytest.raises(AnalysisError, match="repository not found"):
            repo_mod.clone_repository("https://github.com/a/missing", tmp_path / "m")

    def test_git_missing(self, monkeypatch):
        from autodeploy.analyzer import repository as repo_mod

        monkeypatch.setattr(repo_mod.shutil, "which", lambda name: None)
        with pytest.raises(AnalysisError, match="git is not installed"):
            repo_mod.clone_repository("https://github.com/a/b")
