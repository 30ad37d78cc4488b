"""Tests for the interactive chat session with injected collaborators."""

import pytest

from autodeploy.errors import AnalysisError
from autodeploy.intent import parse_intent_keywords
from autodeploy.orchestrator import DeploymentResult
from autodeploy.session import ChatSession


class Scripted:
    """Feeds canned lines to the session and records everything it prints."""

    def __init__(self, lines):
        self.lines = list(lines)
        self.printed = []

    def input(self, prompt):
        if not self.lines:
            raise EOFError
        return self.lines.pop(0)

    def output(self, text):
        self.printed.append(text)

    @property
    def text(self):
        return "\n".join(self.printed)


@pytest.fixture
def make_session(flask_summary):
    deployed = []

    def deployer(description, repository, **kwargs):
        deployed.append((description, repository, kwargs))
        return DeploymentResult(url="http://1.2.3.4:5000", topology="single_vm")

    def factory(lines, loader=None, extractor=parse_intent_keywords):
        io = Scripted(lines)
        session = ChatSession(
            loader=loader or (lambda source, config: flask_summary),
            intent_extractor=extractor,
            deployer=deployer,
            input_fn=io.input,
            output_fn=io.output,
        )
        return session, io, deployed

    return factory


class TestChatSession:
    def test_help_and_quit(self, make_session):
        session, io, _ = make_session(["help", "quit", "status"])
        session.run()
        assert "load <repo_url>" in io.text
        assert io.printed[-1] == "Goodbye!"
        assert "No repository loaded" not in io.text

    def test_requires_repository(self, make_session):
        session, io, _ = make_session([])
        session.handle("plan Deploy on AWS")
        assert "No repository loaded" in io.text

    def test_unknown_command(self, make_session):
        session, io, _ = make_session([])
        session.handle("dance")
        assert "Unknown command" in io.text

    def test_load_and_status(self, make_session):
        session, io, _ = make_session([])
        session.handle("load https://github.com/Arvo-AI/hello_world")
        session.handle("status")
        assert session.context.repository == "https://github.com/Arvo-AI/hello_world"
        assert "Framework: flask" in io.text
        assert "Port: 5000" in io.text

    def test_plan(self, make_session):
        session, io, _ = make_session([])
        session.handle("load https://github.com/Arvo-AI/hello_world")
        session.handle("plan Deploy this Flask app on AWS with postgres")
        assert session.context.last_plan.topology.value == "single_vm"
        assert "Topology: single_vm" in io.text
        assert "app_db (aws_db_instance)" in io.text
        assert "key_pair_name" in io.text

    def test_free_text_suggests_deploy(self, make_session):
        session, io, _ = make_session([])
        session.handle("load https://github.com/Arvo-AI/hello_world")
        session.handle("put this on gcp")
        assert "Did you mean to deploy? Use 'deploy put this on gcp' to proceed." in io.text

    def test_deploy_confirmed(self, make_session):
        session, io, deployed = make_session(["y"])
        session.handle("load https://github.com/Arvo-AI/hello_world")
        session.handle("deploy Deploy this Flask app on AWS")
        assert "URL: http://1.2.3.4:5000" in io.text
        description, repository, kwargs = deployed[0]
        assert description == "Deploy this Flask app on AWS"
        assert repository == "https://github.com/Arvo-AI/hello_world"
        assert kwargs["summary"] is session.context.summary

    def test_deploy_cancelled(self, make_session):
        session, io, deployed = make_session(["n"])
        session.handle("load https://github.com/Arvo-AI/hello_world")
        session.handle("deploy Deploy on AWS")
        assert "Deployment cancelled." in io.text
        assert deployed == []

    def test_unsupported_provider_never_deploys(self, make_session):
        session, io, deployed = make_session(["y"])
        session.handle("load https://github.com/Arvo-AI/hello_world")
        session.handle("deploy Deploy on Azure")
        assert "Cloud provider 'azure' is not supported yet" in io.text
        assert deployed == []

    def test_errors_keep_session_alive(self, make_session):
        def failing_loader(source, config):
            raise AnalysisError(f"Failed to clone repository {source}")

        session, io, _ = make_session([], loader=failing_loader)
        assert session.handle("load https://github.com/a/missing") is True
        assert "Error: Failed to clone repository" in io.text
        assert session.context.summary is None

    def test_deploy_parses_request_once(self, make_session):
        calls = []

        def counting_extractor(description):
            calls.append(description)
            return parse_intent_keywords(description)

        session, _, deployed = make_session(["y"], extractor=counting_extractor)
        session.handle("load https://github.com/Arvo-AI/hello_world")
        session.handle("deploy Deploy on AWS")
        assert calls == ["Deploy on AWS"]
        _, _, kwargs = deployed[0]
        assert kwargs["intent"] is session.context.last_intent
