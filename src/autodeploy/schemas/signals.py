"""Input signals: what the repository looks like and what the user asked for."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Framework(str, Enum):
    """Web/app framework detected in a repository."""

    FLASK = "flask"
    DJANGO = "django"
    FASTAPI = "fastapi"
    EXPRESS = "express"
    NODEJS = "nodejs"
    REACT = "react"
    NEXTJS = "nextjs"
    RAILS = "rails"
    SPRING = "spring"
    UNKNOWN = "unknown"


class CloudProvider(str, Enum):
    AWS = "aws"
    GCP = "gcp"
    AZURE = "azure"
    UNSPECIFIED = "unspecified"


class ScalingMode(str, Enum):
    SINGLE = "single"
    AUTO_SCALING = "auto_scaling"
    KUBERNETES = "kubernetes"


class ExecutionModel(str, Enum):
    VM = "vm"
    CONTAINER = "container"
    SERVERLESS = "serverless"


class DatabaseEngine(str, Enum):
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"


class RepositorySummary(BaseModel):
    """Structured summary of an analyzed checkout.

    Produced once per checkout by the repository analyzer and read, never
    modified, by the decision engine.
    """

    model_config = ConfigDict(frozen=True)

    primary_language: str = "unknown"
    framework: Framework = Framework.UNKNOWN
    entry_port: Optional[int] = None
    dependencies: frozenset[str] = Field(default_factory=frozenset)
    needs_database: bool = False
    has_static_assets: bool = False
    has_migrations: bool = False
    build_command: Optional[str] = None
    start_command: Optional[str] = None
    repository_url: str = ""
    has_dockerfile: bool = False
    environment_variables: tuple[str, ...] = ()


class DeploymentIntent(BaseModel):
    """What the user asked for, extracted from the plain-language request."""

    model_config = ConfigDict(frozen=True)

    cloud_provider: CloudProvider = CloudProvider.UNSPECIFIED
    scaling: ScalingMode = ScalingMode.SINGLE
    execution_model: ExecutionModel = ExecutionModel.VM
    database_requested: bool = False
    cdn_requested: bool = False
    database_engine: Optional[DatabaseEngine] = None
    description: str = ""
