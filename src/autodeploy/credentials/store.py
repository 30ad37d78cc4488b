"""Cloud credential storage.

Credentials live in a single JSON file readable only by the owner (0600).
The GCP service account key is exported next to it, also 0600. Neither file
is encrypted.
"""

from __future__ import annotations

import json
import logging
import os
import stat
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ValidationError

from ..errors import CredentialsError
from ..schemas.signals import CloudProvider

logger = logging.getLogger(__name__)

DEFAULT_CREDENTIALS_PATH = Path.home() / ".autodeployment" / "credentials.json"
GCP_KEY_FILENAME = "gcp_service_account.json"


class AwsCredentials(BaseModel):
    access_key_id: str
    secret_access_key: str
    region: Optional[str] = None
    session_token: Optional[str] = None


class GcpCredentials(BaseModel):
    service_account_key: str  # JSON key content
    project_id: str
    region: Optional[str] = None


class AzureCredentials(BaseModel):
    client_id: str
    client_secret: str
    tenant_id: str
    subscription_id: str


class CloudCredentials(BaseModel):
    aws: Optional[AwsCredentials] = None
    gcp: Optional[GcpCredentials] = None
    azure: Optional[AzureCredentials] = None


def mask_secret(value: str) -> str:
    if len(value) <= 4:
        return "****"
    return "*" * (len(value) - 4) + value[-4:]


class CredentialStore:
    """Load, save and export credentials for one credentials file."""

    def __init__(self, path: Optional[str | Path] = None):
        self.path = Path(path) if path else DEFAULT_CREDENTIALS_PATH

    @property
    def key_path(self) -> Path:
        """Where the GCP service account key is exported for terraform."""
        return self.path.parent / GCP_KEY_FILENAME

    def load(self) -> CloudCredentials:
        if not self.path.exists():
            logger.debug(f"No credentials file at {self.path}")
            return CloudCredentials()
        try:
            return CloudCredentials.model_validate_json(self.path.read_text())
        except (OSError, ValidationError) as e:
            raise CredentialsError(f"Failed to parse credentials file {self.path}: {e}") from e

    def save(self, credentials: CloudCredentials) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Create with owner-only permissions before any secret is written
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            f.write(credentials.model_dump_json(indent=2, exclude_none=True))
        os.chmod(self.path, stat.S_IRUSR | stat.S_IWUSR)
        logger.info(f"Credentials saved to {self.path}")

    def update(self, provider: CloudProvider, creds: BaseModel) -> CloudCredentials:
        """Replace one provider's credentials and persist."""
        current = self.load()
        updated = current.model_copy(update={provider.value: creds})
        self.save(updated)
        return updated

    def clear(self) -> None:
        for path in (self.path, self.key_path):
            if path.exists():
                path.unlink()
                logger.info(f"Removed {path}")

    def has_credentials_for(self, provider: CloudProvider) -> bool:
        credentials = self.load()
        return getattr(credentials, provider.value, None) is not None

    def environment_for(self, provider: CloudProvider) -> dict[str, str]:
        """Environment variables that let terraform authenticate to ``provider``."""
        credentials = self.load()
        env: dict[str, str] = {}

        if provider == CloudProvider.AWS and credentials.aws:
            aws = credentials.aws
            env["AWS_ACCESS_KEY_ID"] = aws.access_key_id
            env["AWS_SECRET_ACCESS_KEY"] = aws.secret_access_key
            if aws.region:
                env["AWS_DEFAULT_REGION"] = aws.region
            if aws.session_token:
                env["AWS_SESSION_TOKEN"] = aws.session_token
        elif provider == CloudProvider.GCP and credentials.gcp:
            gcp = credentials.gcp
            env["GOOGLE_APPLICATION_CREDENTIALS"] = str(self._write_service_account_key(gcp.service_account_key))
            env["GOOGLE_PROJECT"] = gcp.project_id
            if gcp.region:
                env["GOOGLE_REGION"] = gcp.region
        elif provider == CloudProvider.AZURE and credentials.azure:
            azure = credentials.azure
            env["ARM_CLIENT_ID"] = azure.client_id
            env["ARM_CLIENT_SECRET"] = azure.client_secret
            env["ARM_TENANT_ID"] = azure.tenant_id
            env["ARM_SUBSCRIPTION_ID"] = azure.subscription_id
        else:
            raise CredentialsError(
                f"No credentials configured for {provider.value}. "
                f"Run scripts/credentials.py setup --provider {provider.value}"
            )
        return env

    def summary(self) -> dict[str, dict[str, str]]:
        """Configured providers with secrets masked, for display."""
        credentials = self.load()
        shown: dict[str, dict[str, str]] = {}
        if credentials.aws:
            shown["aws"] = {
                "access_key_id": mask_secret(credentials.aws.access_key_id),
                "region": credentials.aws.region or "us-east-1",
            }
        if credentials.gcp:
            shown["gcp"] = {
                "project_id": credentials.gcp.project_id,
                "region": credentials.gcp.region or "us-central1",
            }
        if credentials.azure:
            shown["azure"] = {
                "client_id": mask_secret(credentials.azure.client_id),
                "subscription_id": credentials.azure.subscription_id,
            }
        return shown

    def _write_service_account_key(self, key: str) -> Path:
        try:
            json.loads(key)
        except json.JSONDecodeError as e:
            raise CredentialsError(f"GCP service account key is not valid JSON: {e}") from e
        path = self.key_path
        path.parent.mkdir(parents=True, exist_ok=True)
        # Overwritten in place on every call so only one copy of the key exists
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            f.write(key)
        os.chmod(path, stat.S_IRUSR | stat.S_IWUSR)
        return path
