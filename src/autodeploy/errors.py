"""Exception types raised across the deployment pipeline."""

from __future__ import annotations


class AutodeployError(Exception):
    """Base class for all autodeploy errors."""


class UnsupportedProvider(AutodeployError):
    """The resolved cloud provider has no resource templates."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(
            f"Cloud provider '{provider}' is not supported yet. Supported providers: aws, gcp"
        )


class InconsistentPlan(AutodeployError):
    """The plan validator found a referential or policy violation.

    Always points at a decision-engine defect rather than bad user input.
    """

    def __init__(self, detail: str, issues: list[str] | None = None):
        self.detail = detail
        self.issues = issues or []
        super().__init__(f"Inconsistent infrastructure plan: {detail}")


class SynthesisInvariantViolation(AutodeployError):
    """Template synthesis hit a reference it cannot resolve (programmer error)."""


class AnalysisError(AutodeployError):
    """Cloning or analyzing a repository failed."""


class IntentExtractionError(AutodeployError):
    """A deployment intent could not be parsed from the model response."""


class CredentialsError(AutodeployError):
    """Cloud credentials are missing or unreadable."""


class ProvisioningError(AutodeployError):
    """A terraform step failed or terraform is not installed."""

    def __init__(self, message: str, step: str | None = None, stderr: str = ""):
        self.step = step
        self.stderr = stderr
        super().__init__(message)


class LLMError(AutodeployError):
    """An LLM provider is unavailable or returned an unusable response."""
