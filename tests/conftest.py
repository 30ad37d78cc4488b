"""Shared fixtures: representative repository summaries and intents."""

import pytest

from autodeploy.schemas import (
    CloudProvider,
    DatabaseEngine,
    DeploymentIntent,
    Framework,
    RepositorySummary,
)


@pytest.fixture
def flask_summary():
    return RepositorySummary(
        primary_language="python",
        framework=Framework.FLASK,
        entry_port=5000,
        dependencies=frozenset({"flask", "psycopg2-binary"}),
        needs_database=True,
        build_command="pip install -r requirements.txt",
        start_command="python app.py",
        repository_url="https://github.com/Arvo-AI/hello_world",
    )


@pytest.fixture
def static_summary():
    return RepositorySummary(
        primary_language="html",
        has_static_assets=True,
        repository_url="https://github.com/example/landing-page",
    )


@pytest.fixture
def flask_postgres_intent():
    return DeploymentIntent(
        cloud_provider=CloudProvider.AWS,
        database_requested=True,
        database_engine=DatabaseEngine.POSTGRESQL,
        description="Deploy this Flask app on AWS with Postgres",
    )


@pytest.fixture
def cdn_intent():
    return DeploymentIntent(
        cloud_provider=CloudProvider.AWS,
        cdn_requested=True,
        description="Host my static site behind a CDN",
    )
