"""End-to-end deployment: request + repository -> provisioned infrastructure."""

from __future__ import annotations

import logging
import secrets
import shutil
from pathlib import Path
from typing import Callable, Optional

from .analyzer import analyze_repository, clone_repository
from .config import AutodeployConfig
from .credentials import CredentialStore
from .engine import DecisionStrategy
from .engine.catalog import CATALOGS
from .engine.decision import resolve_provider
from .errors import CredentialsError, ProvisioningError
from .intent import extract_intent
from .orchestrator import DeploymentResult, TerraformRunner, resolve_url
from .pipeline import PipelineResult, generate_configuration
from .schemas.plan import InfrastructurePlan
from .schemas.signals import CloudProvider, DeploymentIntent, RepositorySummary

logger = logging.getLogger(__name__)

RunnerFactory = Callable[..., TerraformRunner]


def load_repository(source: str, config: Optional[AutodeployConfig] = None) -> RepositorySummary:
    """Analyze a local checkout or clone-and-analyze a remote URL."""
    config = config or AutodeployConfig()
    local = Path(source).expanduser()
    if local.is_dir():
        return analyze_repository(local, repo_url="")

    checkout = clone_repository(source, timeout=config.clone_timeout)
    try:
        return analyze_repository(checkout, repo_url=source)
    finally:
        shutil.rmtree(checkout, ignore_errors=True)


def resolve_variables(
    plan: InfrastructurePlan,
    config: AutodeployConfig,
    store: CredentialStore,
    overrides: Optional[dict[str, str]] = None,
) -> dict[str, str]:
    """Values for terraform -var flags; every required variable must be covered."""
    overrides = dict(overrides or {})
    values: dict[str, str] = {}
    credentials = store.load()

    if plan.provider == CloudProvider.AWS and credentials.aws and credentials.aws.region:
        values["region"] = credentials.aws.region
    if plan.provider == CloudProvider.GCP and credentials.gcp:
        values["project_id"] = credentials.gcp.project_id
        if credentials.gcp.region:
            values["region"] = credentials.gcp.region
    if "key_pair_name" in plan.variables and config.key_pair_name:
        values["key_pair_name"] = config.key_pair_name
    if "db_password" in plan.variables and "db_password" not in overrides:
        values["db_password"] = secrets.token_urlsafe(24)
    values.update(overrides)

    missing = [
        name for name, spec in plan.variables.items()
        if spec.default is None and name not in values
    ]
    if missing:
        raise ProvisioningError(
            f"Missing values for required variables: {', '.join(missing)}. Pass them with --var name=value",
            step="variables",
        )
    return {name: value for name, value in values.items() if name in plan.variables}


def provision(
    generated: PipelineResult,
    summary: RepositorySummary,
    config: AutodeployConfig,
    store: CredentialStore,
    variables: Optional[dict[str, str]] = None,
    runner_factory: RunnerFactory = TerraformRunner,
) -> DeploymentResult:
    """Run terraform against an already-written bundle."""
    plan = generated.plan
    if not generated.supported or generated.output_dir is None:
        raise ProvisioningError(generated.message, step="plan")

    values = resolve_variables(plan, config, store, variables)
    runner = runner_factory(
        generated.output_dir,
        terraform_bin=config.terraform_bin,
        timeout=config.terraform_timeout,
        env=store.environment_for(plan.provider),
    )
    outputs = runner.provision(values)
    public_ip = outputs.get("public_ip") if isinstance(outputs.get("public_ip"), str) else None
    url = resolve_url(outputs, summary.entry_port)
    logger.info(f"Deployment complete: {url or 'no URL output'}")
    return DeploymentResult(
        url=url,
        topology=plan.topology.value,
        output_dir=generated.output_dir,
        public_ip=public_ip,
        outputs=outputs,
        logs=generated.plan.rationale + runner.logs,
    )


def deploy_application(
    description: str,
    repository: str,
    cloud_provider: Optional[str] = None,
    dry_run: bool = False,
    config: Optional[AutodeployConfig] = None,
    store: Optional[CredentialStore] = None,
    strategy: Optional[DecisionStrategy] = None,
    variables: Optional[dict[str, str]] = None,
    runner_factory: RunnerFactory = TerraformRunner,
    intent: Optional[DeploymentIntent] = None,
    summary: Optional[RepositorySummary] = None,
) -> DeploymentResult:
    """Parse the request, analyze the repo, generate Terraform and (unless dry-run) apply it.

    Unsupported providers are reported in the result without running terraform.
    """
    config = config or AutodeployConfig()
    store = store or CredentialStore(config.credentials_path)

    if intent is None:
        intent = extract_intent(description, cloud_provider, config.llm_provider, config)
    provider, _ = resolve_provider(intent)
    if not dry_run and provider in CATALOGS and not store.has_credentials_for(provider):
        raise CredentialsError(
            f"No credentials found for {provider.value}. "
            f"Set them up with: scripts/credentials.py setup --provider {provider.value}"
        )

    if summary is None:
        summary = load_repository(repository, config)
    generated = generate_configuration(summary, intent, config.output_root, strategy)

    if not generated.supported:
        logger.warning(generated.message)
        return DeploymentResult(
            url=None,
            topology=generated.plan.topology.value,
            logs=generated.plan.rationale + [generated.message],
            dry_run=dry_run,
        )

    if dry_run:
        logger.info(f"Dry run complete, configuration in {generated.output_dir}")
        return DeploymentResult(
            url=None,
            topology=generated.plan.topology.value,
            output_dir=generated.output_dir,
            logs=generated.plan.rationale,
            dry_run=True,
        )

    return provision(generated, summary, config, store, variables, runner_factory)
