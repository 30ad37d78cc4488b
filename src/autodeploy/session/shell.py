"""Interactive chat session: load a repository, then plan or deploy it by description."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..config import AutodeployConfig
from ..errors import AutodeployError
from ..orchestrator import DeploymentResult
from ..pipeline import build_plan
from ..schemas.plan import InfrastructurePlan
from ..schemas.signals import DeploymentIntent, RepositorySummary

logger = logging.getLogger(__name__)

HELP_TEXT = """Available commands:
  help                    - Show this help message
  load <repo_url>         - Load and analyze a repository
  status                  - Show current repository status
  plan <description>      - Plan deployment without executing
  deploy <description>    - Deploy the application
  quit/exit               - Exit the chat

Examples:
  load https://github.com/Arvo-AI/hello_world
  plan Deploy this Flask app on AWS
  deploy Deploy with auto-scaling on GCP"""


@dataclass
class SessionContext:
    """State owned by one chat session. Never shared between sessions."""

    config: AutodeployConfig = field(default_factory=AutodeployConfig)
    repository: Optional[str] = None
    summary: Optional[RepositorySummary] = None
    last_plan: Optional[InfrastructurePlan] = None
    last_intent: Optional[DeploymentIntent] = None


def format_plan(plan: InfrastructurePlan) -> str:
    lines = [
        "Deployment plan:",
        f"  Provider: {plan.provider.value}",
        f"  Topology: {plan.topology.value}",
        f"  Estimated cost: ~${plan.estimated_monthly_cost.amount:.2f}/month (estimate)",
    ]
    if plan.rationale:
        lines.append("  Rationale:")
        lines.extend(f"    - {line}" for line in plan.rationale)
    if plan.resources:
        lines.append("  Resources to be created:")
        lines.extend(f"    - {r.logical_name} ({r.resource_type})" for r in plan.resources)
    required = [name for name, spec in plan.variables.items() if spec.default is None]
    if required:
        lines.append("  Required variables:")
        lines.extend(f"    - {name}: {plan.variables[name].description}" for name in required)
    return "\n".join(lines)


def format_summary(repository: str, summary: RepositorySummary) -> str:
    lines = [
        "Repository status:",
        f"  URL: {repository}",
        f"  Framework: {summary.framework.value}",
        f"  Language: {summary.primary_language}",
        f"  Dependencies: {len(summary.dependencies)}",
        f"  Port: {summary.entry_port or 'not detected'}",
        f"  Static assets: {'yes' if summary.has_static_assets else 'no'}",
        f"  Database: {'yes' if summary.needs_database else 'no'}",
        f"  Migrations: {'yes' if summary.has_migrations else 'no'}",
        f"  Build command: {summary.build_command or '-'}",
        f"  Start command: {summary.start_command or '-'}",
    ]
    if summary.environment_variables:
        lines.append(f"  Environment variables: {', '.join(summary.environment_variables)}")
    return "\n".join(lines)


class ChatSession:
    """Line-oriented command loop. I/O and collaborators are injectable."""

    def __init__(
        self,
        context: Optional[SessionContext] = None,
        loader: Optional[Callable[[str, AutodeployConfig], RepositorySummary]] = None,
        intent_extractor: Optional[Callable[[str], DeploymentIntent]] = None,
        deployer: Optional[Callable[..., DeploymentResult]] = None,
        input_fn: Callable[[str], str] = input,
        output_fn: Callable[[str], None] = print,
    ):
        self.context = context or SessionContext()
        self._loader = loader
        self._intent_extractor = intent_extractor
        self._deployer = deployer
        self.input = input_fn
        self.output = output_fn

    def load(self, source: str) -> RepositorySummary:
        if self._loader is None:
            from ..deployment import load_repository

            self._loader = load_repository
        summary = self._loader(source, self.context.config)
        self.context.repository = source
        self.context.summary = summary
        return summary

    def extract(self, description: str) -> DeploymentIntent:
        if self._intent_extractor is not None:
            return self._intent_extractor(description)
        from ..intent import extract_intent

        config = self.context.config
        return extract_intent(description, llm_provider=config.llm_provider, config=config)

    def handle(self, line: str) -> bool:
        """Process one line. Returns False when the session should end."""
        text = line.strip()
        if not text:
            return True
        command, _, argument = text.partition(" ")
        command = command.lower()
        argument = argument.strip()

        try:
            if command in ("quit", "exit"):
                self.output("Goodbye!")
                return False
            if command == "help":
                self.output(HELP_TEXT)
            elif command == "status":
                self._status()
            elif command == "load" and argument:
                self._load(argument)
            elif command == "plan" and argument:
                self._plan(argument)
            elif command == "deploy" and argument:
                self._deploy(argument)
            elif self.context.summary is not None:
                self.output(f"Did you mean to deploy? Use 'deploy {text}' to proceed.")
                self.output(f"Or use 'plan {text}' to see the deployment plan.")
            else:
                self.output("Unknown command. Type 'help' for available commands.")
        except AutodeployError as e:
            logger.error(f"{command} failed: {e}")
            self.output(f"Error: {e}")
        return True

    def run(self) -> None:
        self.output("Welcome to autodeploy chat! Type 'help' for commands, 'quit' to exit.")
        while True:
            try:
                line = self.input("\n> ")
            except (EOFError, KeyboardInterrupt):
                self.output("Goodbye!")
                return
            if not self.handle(line):
                return

    def _require_repository(self) -> bool:
        if self.context.summary is None:
            self.output("No repository loaded. Use 'load <repo_url>' first.")
            return False
        return True

    def _status(self) -> None:
        if self._require_repository():
            self.output(format_summary(self.context.repository or "", self.context.summary))

    def _load(self, source: str) -> None:
        self.output(f"Analyzing repository: {source}")
        summary = self.load(source)
        self.output("Repository loaded successfully!")
        self.output(format_summary(source, summary))

    def _plan(self, description: str) -> Optional[InfrastructurePlan]:
        if not self._require_repository():
            return None
        intent = self.extract(description)
        plan, _ = build_plan(self.context.summary, intent)
        self.context.last_intent = intent
        self.context.last_plan = plan
        self.output(format_plan(plan))
        if plan.is_unsupported:
            self.output(f"Cloud provider '{plan.provider.value}' is not supported yet. Supported providers: aws, gcp")
        return plan

    def _deploy(self, description: str) -> None:
        plan = self._plan(description)
        if plan is None or plan.is_unsupported:
            return
        answer = self.input("Proceed with deployment? (y/N): ")
        if answer.strip().lower() != "y":
            self.output("Deployment cancelled.")
            return
        if self._deployer is None:
            from ..deployment import deploy_application

            self._deployer = deploy_application
        result = self._deployer(
            description,
            self.context.repository or "",
            config=self.context.config,
            intent=self.context.last_intent,
            summary=self.context.summary,
        )
        self.output("Deployment successful!")
        self.output(f"URL: {result.url or 'not available'}")
        self.output(f"Infrastructure: {result.topology}")
