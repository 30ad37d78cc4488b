#!/usr/bin/env python3
"""CLI: Manage stored cloud credentials."""

import argparse
import getpass
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from autodeploy.config import load_config
from autodeploy.credentials import AwsCredentials, AzureCredentials, CredentialStore, GcpCredentials
from autodeploy.errors import AutodeployError
from autodeploy.schemas import CloudProvider


def prompt(label: str, default: str = "", secret: bool = False) -> str:
    suffix = f" (default: {default})" if default else ""
    reader = getpass.getpass if secret else input
    value = reader(f"{label}{suffix}: ").strip()
    return value or default


def setup(store: CredentialStore, provider: CloudProvider) -> None:
    if provider == CloudProvider.AWS:
        print("AWS credentials: AWS Console > IAM > Users > Security credentials")
        creds = AwsCredentials(
            access_key_id=prompt("AWS Access Key ID"),
            secret_access_key=prompt("AWS Secret Access Key", secret=True),
            region=prompt("AWS Region", "us-east-1"),
            session_token=prompt("AWS Session Token (optional)", secret=True) or None,
        )
    elif provider == CloudProvider.GCP:
        key_path = Path(prompt("Path to service account key JSON")).expanduser()
        creds = GcpCredentials(
            service_account_key=key_path.read_text(),
            project_id=prompt("GCP Project ID"),
            region=prompt("GCP Region", "us-central1"),
        )
    else:
        creds = AzureCredentials(
            client_id=prompt("Azure Client ID"),
            client_secret=prompt("Azure Client Secret", secret=True),
            tenant_id=prompt("Azure Tenant ID"),
            subscription_id=prompt("Azure Subscription ID"),
        )
    store.update(provider, creds)
    print(f"Credentials for {provider.value} saved to {store.path}")


def main():
    parser = argparse.ArgumentParser(description="Manage cloud credentials")
    parser.add_argument("action", choices=["setup", "list", "clear"])
    parser.add_argument("--provider", choices=["aws", "gcp", "azure"], default="aws")
    parser.add_argument("--config", help="Path to a config YAML file")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)
    store = CredentialStore(config.credentials_path)
    try:
        if args.action == "setup":
            setup(store, CloudProvider(args.provider))
        elif args.action == "list":
            shown = store.summary()
            if not shown:
                print("No credentials configured.")
            for provider, fields in shown.items():
                print(f"{provider}:")
                for key, value in fields.items():
                    print(f"  {key}: {value}")
        else:
            store.clear()
            print("All stored credentials removed.")
    except (AutodeployError, OSError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
