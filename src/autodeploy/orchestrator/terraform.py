"""Process orchestrator: run the terraform CLI against a generated bundle."""

from __future__ import annotations

import json
import logging
import os
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..errors import ProvisioningError

logger = logging.getLogger(__name__)

# First output present wins when picking the application URL
URL_OUTPUTS = ["service_url", "function_url", "public_ip", "public_dns", "cdn_endpoint", "cluster_endpoint"]


@dataclass
class DeploymentResult:
    """What a deployment attempt produced."""

    url: Optional[str]
    topology: str
    output_dir: Optional[Path] = None
    public_ip: Optional[str] = None
    outputs: dict = field(default_factory=dict)
    logs: list[str] = field(default_factory=list)
    dry_run: bool = False


def resolve_url(outputs: dict, port: Optional[int] = None) -> Optional[str]:
    """Pick the user-facing URL from terraform outputs."""
    for name in URL_OUTPUTS:
        value = outputs.get(name)
        if not value or not isinstance(value, str):
            continue
        if value.startswith("http://") or value.startswith("https://"):
            return value
        if name in ("public_ip", "public_dns"):
            suffix = f":{port}" if port and port != 80 else ""
            return f"http://{value}{suffix}"
        return f"https://{value}"
    return None


class TerraformRunner:
    """Runs terraform steps in one deployment directory."""

    def __init__(
        self,
        working_dir: str | Path,
        terraform_bin: str = "terraform",
        timeout: int = 1800,
        env: Optional[dict[str, str]] = None,
    ):
        self.working_dir = Path(working_dir)
        self.terraform_bin = terraform_bin
        self.timeout = timeout
        self.env = env or {}
        self.logs: list[str] = []

    def _executable(self) -> str:
        path = shutil.which(self.terraform_bin)
        if path is None:
            raise ProvisioningError(
                f"'{self.terraform_bin}' not found. Install Terraform: https://developer.hashicorp.com/terraform/install",
                step="locate",
            )
        return path

    def run(self, step: str, *args: str) -> subprocess.CompletedProcess:
        cmd = [self._executable(), step, *args]
        logger.info(f"Running terraform {step} in {self.working_dir}")
        try:
            proc = subprocess.run(
                cmd,
                cwd=self.working_dir,
                env={**os.environ, **self.env, "TF_IN_AUTOMATION": "1"},
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise ProvisioningError(f"terraform {step} timed out after {self.timeout}s", step=step) from e

        for line in proc.stdout.splitlines():
            logger.debug(f"[terraform {step}] {line}")
        self.logs.append(f"terraform {step}: exit {proc.returncode}")
        if proc.returncode != 0:
            raise ProvisioningError(
                f"terraform {step} failed: {proc.stderr.strip()[:500]}",
                step=step,
                stderr=proc.stderr,
            )
        return proc

    def init(self) -> None:
        self.run("init", "-input=false", "-no-color")

    def validate(self) -> None:
        self.run("validate", "-no-color")

    def plan(self, variables: Optional[dict[str, str]] = None) -> None:
        args = ["-input=false", "-no-color", "-out=tfplan"]
        for name, value in (variables or {}).items():
            args.extend(["-var", f"{name}={value}"])
        self.run("plan", *args)

    def apply(self) -> None:
        self.run("apply", "-auto-approve", "-input=false", "-no-color", "tfplan")

    def output(self) -> dict:
        proc = self.run("output", "-json")
        try:
            raw = json.loads(proc.stdout or "{}")
        except json.JSONDecodeError as e:
            raise ProvisioningError(f"Could not parse terraform output: {e}", step="output") from e
        return {name: entry.get("value") for name, entry in raw.items() if isinstance(entry, dict)}

    def provision(self, variables: Optional[dict[str, str]] = None) -> dict:
        """init -> validate -> plan -> apply, then return the outputs."""
        self.init()
        self.validate()
        self.plan(variables)
        self.apply()
        return self.output()
