"""Tests for configuration loading."""

import pytest

from autodeploy.config import AutodeployConfig, load_config


class TestLoadConfig:
    def test_yaml_then_env(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("output_root: /tmp/tf\nllm_provider: openai\nterraform_timeout: 600\nbogus: 1\n")
        monkeypatch.setenv("AUTODEPLOY_TERRAFORM_TIMEOUT", "900")
        monkeypatch.setenv("AUTODEPLOY_KEY_PAIR_NAME", "deploy-key")

        config = load_config(str(path))

        assert config.output_root == "/tmp/tf"
        assert config.llm_provider == "openai"
        assert config.terraform_timeout == 900
        assert config.key_pair_name == "deploy-key"
        assert not hasattr(config, "bogus")

    def test_explicit_missing_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "missing.yaml"))

    def test_defaults(self, tmp_path, monkeypatch):
        monkeypatch.setattr("autodeploy.config.DEFAULT_CONFIG_PATH", tmp_path / "absent.yaml")
        for name in ("OUTPUT_ROOT", "LLM_PROVIDER", "TERRAFORM_TIMEOUT"):
            monkeypatch.delenv(f"AUTODEPLOY_{name}", raising=False)
        config = load_config()
        assert config.output_root == AutodeployConfig().output_root
        assert config.terraform_timeout == 1800
