"""Tests for the generation pipeline and the end-to-end deployment flow."""

import logging

import pytest

from autodeploy.config import AutodeployConfig
from autodeploy.credentials import AwsCredentials, CloudCredentials, CredentialStore
from autodeploy.deployment import deploy_application, resolve_variables
from autodeploy.engine import decide
from autodeploy.errors import CredentialsError, InconsistentPlan, ProvisioningError
from autodeploy.pipeline import generate_configuration
from autodeploy.schemas import CloudProvider, DeploymentIntent, Ref, ResourceKind, ResourceSpec


class BrokenStrategy:
    """Adds a resource pointing at something that was never declared."""

    def plan(self, summary, intent):
        plan = decide(summary, intent)
        orphan = ResourceSpec(
            kind=ResourceKind.OBJECT_STORAGE,
            logical_name="orphan",
            resource_type="aws_s3_bucket",
            attributes={"bucket": Ref(logical_name="app_subnet", attribute="id")},
        )
        return plan.model_copy(update={"resources": plan.resources + [orphan]})


class FakeRunner:
    instances = []

    def __init__(self, working_dir, terraform_bin="terraform", timeout=1800, env=None):
        self.working_dir = working_dir
        self.env = env
        self.variables = None
        self.logs = ["terraform apply: exit 0"]
        FakeRunner.instances.append(self)

    def provision(self, variables=None):
        self.variables = variables
        return {"public_ip": "1.2.3.4", "database_endpoint": "db.internal:5432"}


@pytest.fixture
def store(tmp_path):
    store = CredentialStore(tmp_path / "credentials.json")
    store.save(CloudCredentials(aws=AwsCredentials(access_key_id="AKIAEXAMPLE1234", secret_access_key="secret")))
    return store


@pytest.fixture
def config(tmp_path):
    return AutodeployConfig(output_root=str(tmp_path / "out"), key_pair_name="deploy-key")


@pytest.fixture(autouse=True)
def reset_runner():
    FakeRunner.instances = []


class TestGenerateConfiguration:
    def test_writes_bundle(self, tmp_path, flask_summary, flask_postgres_intent):
        result = generate_configuration(flask_summary, flask_postgres_intent, tmp_path)
        assert result.supported
        assert result.output_dir.parent == tmp_path
        assert (result.output_dir / "main.tf").read_text() == result.bundle.main
        assert (result.output_dir / "plan.json").exists()

    def test_in_memory(self, flask_summary, flask_postgres_intent):
        result = generate_configuration(flask_summary, flask_postgres_intent)
        assert result.output_dir is None
        assert "resource" in result.bundle.main

    def test_unsupported_writes_nothing(self, tmp_path, flask_summary):
        result = generate_configuration(flask_summary, DeploymentIntent(cloud_provider=CloudProvider.AZURE), tmp_path)
        assert not result.supported
        assert result.bundle is None
        assert list(tmp_path.iterdir()) == []
        assert result.message == "Cloud provider 'azure' is not supported yet. Supported providers: aws, gcp"

    def test_inconsistent_plan_is_logged_and_raised(self, tmp_path, caplog, flask_summary, flask_postgres_intent):
        with caplog.at_level(logging.ERROR, logger="autodeploy.pipeline"):
            with pytest.raises(InconsistentPlan) as excinfo:
                generate_configuration(flask_summary, flask_postgres_intent, tmp_path, strategy=BrokenStrategy())
        assert any("app_subnet" in issue for issue in excinfo.value.issues)
        assert "orphan" in caplog.text
        assert list(tmp_path.iterdir()) == []


class TestResolveVariables:
    def test_generates_password_and_uses_config(self, flask_summary, flask_postgres_intent, config, store):
        plan = decide(flask_summary, flask_postgres_intent)
        values = resolve_variables(plan, config, store)
        assert values["key_pair_name"] == "deploy-key"
        assert len(values["db_password"]) >= 24

    def test_missing_required(self, flask_summary, flask_postgres_intent, store):
        plan = decide(flask_summary, flask_postgres_intent)
        with pytest.raises(ProvisioningError, match="key_pair_name") as excinfo:
            resolve_variables(plan, AutodeployConfig(), store)
        assert excinfo.value.step == "variables"

    def test_overrides_win(self, flask_summary, flask_postgres_intent, config, store):
        plan = decide(flask_summary, flask_postgres_intent)
        values = resolve_variables(plan, config, store, {"db_password": "hunter2hunter2", "unknown": "x"})
        assert values["db_password"] == "hunter2hunter2"
        assert "unknown" not in values


class TestDeployApplication:
    def test_provisions_with_fake_runner(self, config, store, flask_summary, flask_postgres_intent):
        result = deploy_application(
            "Deploy this Flask app on AWS",
            flask_summary.repository_url,
            config=config,
            store=store,
            runner_factory=FakeRunner,
            intent=flask_postgres_intent,
            summary=flask_summary,
        )
        assert result.url == "http://1.2.3.4:5000"
        assert result.public_ip == "1.2.3.4"
        assert result.topology == "single_vm"
        runner = FakeRunner.instances[0]
        assert runner.working_dir == result.output_dir
        assert runner.env["AWS_ACCESS_KEY_ID"] == "AKIAEXAMPLE1234"
        assert runner.variables["key_pair_name"] == "deploy-key"

    def test_dry_run_skips_terraform(self, config, tmp_path, flask_summary, flask_postgres_intent):
        empty = CredentialStore(tmp_path / "none.json")
        result = deploy_application(
            "Deploy on AWS",
            flask_summary.repository_url,
            dry_run=True,
            config=config,
            store=empty,
            runner_factory=FakeRunner,
            intent=flask_postgres_intent,
            summary=flask_summary,
        )
        assert result.dry_run
        assert result.url is None
        assert (result.output_dir / "main.tf").exists()
        assert FakeRunner.instances == []

    def test_unsupported_provider_never_provisions(self, config, store, flask_summary):
        result = deploy_application(
            "Deploy on Azure",
            flask_summary.repository_url,
            config=config,
            store=store,
            runner_factory=FakeRunner,
            intent=DeploymentIntent(cloud_provider=CloudProvider.AZURE),
            summary=flask_summary,
        )
        assert result.topology == "unsupported"
        assert result.output_dir is None
        assert "not supported yet" in result.logs[-1]
        assert FakeRunner.instances == []

    def test_missing_credentials(self, config, tmp_path, flask_summary):
        with pytest.raises(CredentialsError, match="gcp"):
            deploy_application(
                "Deploy on GCP",
                flask_summary.repository_url,
                config=config,
                store=CredentialStore(tmp_path / "none.json"),
                runner_factory=FakeRunner,
                intent=DeploymentIntent(cloud_provider=CloudProvider.GCP),
                summary=flask_summary,
            )
