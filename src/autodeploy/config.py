"""Runtime configuration: defaults, optional YAML file, AUTODEPLOY_* overrides."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

ENV_PREFIX = "AUTODEPLOY_"
DEFAULT_CONFIG_PATH = Path.home() / ".autodeployment" / "config.yaml"


@dataclass
class AutodeployConfig:
    """Settings shared by the scripts, the pipeline and the chat session."""

    output_root: str = "terraform-output"
    llm_provider: Optional[str] = None  # "anthropic", "openai", "gemini" or None for keywords only
    credentials_path: str = str(Path.home() / ".autodeployment" / "credentials.json")
    terraform_bin: str = "terraform"
    terraform_timeout: int = 1800  # seconds per terraform step
    clone_timeout: int = 300
    llm_timeout: int = 60
    key_pair_name: Optional[str] = None

    # Model names
    anthropic_model: str = "claude-sonnet-4-20250514"
    openai_model: str = "gpt-4o"
    gemini_model: str = "gemini-2.0-flash"


def _coerce(value: str, current):
    if isinstance(current, bool):
        return value.lower() in ("1", "true", "yes")
    if isinstance(current, int):
        return int(value)
    return value


def load_config(path: Optional[str] = None) -> AutodeployConfig:
    """Load configuration from YAML (if present), then apply environment overrides.

    An explicit ``path`` that does not exist is an error; the default path is optional.
    """
    config = AutodeployConfig()
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    if path and not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        known = {f.name for f in fields(AutodeployConfig)}
        for key, value in data.items():
            if key in known:
                setattr(config, key, value)
            else:
                logger.warning(f"Ignoring unknown config key '{key}' in {config_path}")

    for field in fields(AutodeployConfig):
        env_value = os.environ.get(ENV_PREFIX + field.name.upper())
        if env_value is not None:
            setattr(config, field.name, _coerce(env_value, getattr(config, field.name)))

    return config
