"""Thin LLM client over Anthropic, OpenAI and Gemini.

Only the intent extractor and the AI-assisted decision strategy use this.
Every failure surfaces as ``LLMError`` so callers can fall back to their
deterministic path.
"""

from __future__ import annotations

import json
import logging
import os
import re
from typing import Optional

import requests

from .config import AutodeployConfig
from .errors import LLMError

logger = logging.getLogger(__name__)

PROVIDERS = ("anthropic", "openai", "gemini")

GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


def complete(
    system_prompt: str,
    user_prompt: str,
    provider: str = "anthropic",
    config: Optional[AutodeployConfig] = None,
) -> str:
    """Send one prompt and return the text of the reply."""
    config = config or AutodeployConfig()
    if provider == "anthropic":
        return _call_anthropic(system_prompt, user_prompt, config)
    elif provider == "openai":
        return _call_openai(system_prompt, user_prompt, config)
    elif provider == "gemini":
        return _call_gemini(system_prompt, user_prompt, config)
    raise LLMError(f"Unknown LLM provider '{provider}'. Choose one of: {', '.join(PROVIDERS)}")


def extract_json_from_response(text: str) -> dict:
    """Pull a JSON object out of a reply that may be wrapped in markdown."""
    json_match = re.search(r"```(?:json)?\s*(.*?)```", text, re.DOTALL)
    if json_match:
        text = json_match.group(1)
    else:
        start, end = text.find("{"), text.rfind("}")
        if start != -1 and end > start:
            text = text[start:end + 1]
    try:
        data = json.loads(text.strip())
    except json.JSONDecodeError as e:
        raise LLMError(f"Response is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise LLMError("Response JSON is not an object")
    return data


def _call_anthropic(system_prompt: str, user_prompt: str, config: AutodeployConfig) -> str:
    api_key = os.environ.get("ANTHROPIC_API_KEY")
    if not api_key:
        raise LLMError("ANTHROPIC_API_KEY not set")

    try:
        import anthropic

        client = anthropic.Anthropic(api_key=api_key, timeout=config.llm_timeout)
        response = client.messages.create(
            model=config.anthropic_model,
            max_tokens=1024,
            temperature=0.1,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
        )
        return response.content[0].text
    except Exception as e:
        logger.error(f"Anthropic API call failed: {e}")
        raise LLMError(f"Anthropic API call failed: {e}") from e


def _call_openai(system_prompt: str, user_prompt: str, config: AutodeployConfig) -> str:
    api_key = os.environ.get("OPENAI_API_KEY")
    if not api_key:
        raise LLMError("OPENAI_API_KEY not set")

    try:
        import openai

        client = openai.OpenAI(api_key=api_key, timeout=config.llm_timeout)
        response = client.chat.completions.create(
            model=config.openai_model,
            max_tokens=1024,
            temperature=0.1,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        )
        content = response.choices[0].message.content
    except Exception as e:
        logger.error(f"OpenAI API call failed: {e}")
        raise LLMError(f"OpenAI API call failed: {e}") from e
    if not content:
        raise LLMError("OpenAI returned an empty response")
    return content


def _call_gemini(system_prompt: str, user_prompt: str, config: AutodeployConfig) -> str:
    api_key = os.environ.get("GEMINI_API_KEY")
    if not api_key:
        raise LLMError("GEMINI_API_KEY not set")

    body = {
        "system_instruction": {"parts": [{"text": system_prompt}]},
        "contents": [{"parts": [{"text": user_prompt}]}],
        "generationConfig": {
            "temperature": 0.1,
            "topK": 32,
            "topP": 1.0,
            "maxOutputTokens": 2048,
        },
    }
    try:
        resp = requests.post(
            GEMINI_API_URL.format(model=config.gemini_model),
            params={"key": api_key},
            json=body,
            timeout=config.llm_timeout,
        )
    except requests.RequestException as e:
        raise LLMError(f"Failed to call Gemini API: {e}") from e

    if resp.status_code != 200:
        raise LLMError(f"Gemini API error {resp.status_code}: {resp.text[:200]}")

    candidates = resp.json().get("candidates") or []
    if not candidates:
        raise LLMError("No candidates in Gemini response")
    parts = candidates[0].get("content", {}).get("parts") or []
    if not parts:
        raise LLMError("No parts in Gemini response")
    return parts[0].get("text", "")
