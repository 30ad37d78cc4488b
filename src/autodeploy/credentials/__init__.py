from .store import (
    AwsCredentials,
    AzureCredentials,
    CloudCredentials,
    CredentialStore,
    GcpCredentials,
)

__all__ = ["CredentialStore", "CloudCredentials", "AwsCredentials", "GcpCredentials", "AzureCredentials"]
