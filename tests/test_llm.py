"""Tests for the LLM client helpers. No network: requests.post is faked."""

import pytest

from autodeploy import llm
from autodeploy.config import AutodeployConfig
from autodeploy.errors import LLMError


class FakeResponse:
    def __init__(self, status_code, payload):
        self.status_code = status_code
        self._payload = payload
        self.text = str(payload)

    def json(self):
        return self._payload


class TestExtractJson:
    def test_fenced(self):
        assert llm.extract_json_from_response('Sure:\n```json\n{"a": 1}\n```') == {"a": 1}

    def test_embedded(self):
        assert llm.extract_json_from_response('The answer is {"a": {"b": 2}} ok') == {"a": {"b": 2}}

    def test_not_an_object(self):
        with pytest.raises(LLMError):
            llm.extract_json_from_response("[1, 2]")


class TestComplete:
    def test_unknown_provider(self):
        with pytest.raises(LLMError, match="Unknown LLM provider"):
            llm.complete("system", "user", provider="llama")

    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        with pytest.raises(LLMError, match="ANTHROPIC_API_KEY"):
            llm.complete("system", "user", provider="anthropic")

    def test_gemini(self, monkeypatch):
        calls = []

        def fake_post(url, params=None, json=None, timeout=None):
            calls.append((url, params, json, timeout))
            return FakeResponse(200, {"candidates": [{"content": {"parts": [{"text": '{"ok": true}'}]}}]})

        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        monkeypatch.setattr(llm.requests, "post", fake_post)
        config = AutodeployConfig(llm_timeout=7)

        assert llm.complete("system", "user", provider="gemini", config=config) == '{"ok": true}'
        url, params, body, timeout = calls[0]
        assert url.endswith(f"{config.gemini_model}:generateContent")
        assert params == {"key": "test-key"}
        assert body["system_instruction"]["parts"][0]["text"] == "system"
        assert timeout == 7

    def test_gemini_error_status(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        monkeypatch.setattr(llm.requests, "post", lambda *a, **k: FakeResponse(429, {"error": "quota"}))
        with pytest.raises(LLMError, match="429"):
            llm.complete("system", "user", provider="gemini")
