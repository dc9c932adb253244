"""
Chat-completion client for the answer generation endpoint.

Talks to any OpenAI-compatible /chat/completions endpoint (DeepSeek by
default). Configuration comes from the environment:
  LLM_API_KEY (or DEEPSEEK_API_KEY) -> bearer credential, required
  LLM_BASE_URL                      -> endpoint base (default: https://api.deepseek.com)
  LLM_MODEL                         -> model name (default: deepseek-chat)

One call to chat() is one HTTP request. Rate-limit statuses surface as
RateLimited so the caller owns the backoff policy.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

import httpx

from quickapply.errors import FatalConfig, GenerationError, RateLimited, UpstreamInvalidResponse

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

_DEFAULT_BASE = "https://api.deepseek.com"
_DEFAULT_MODEL = "deepseek-chat"


@dataclass(frozen=True)
class LLMConfig:
    """Normalized endpoint configuration consumed by LLMClient."""
    base_url: str
    model: str
    api_key: str


def _env_get(env: Mapping[str, str], key: str) -> str:
    value = env.get(key, "")
    if value is None:
        return ""
    return str(value).strip()


def resolve_llm_config(env: Mapping[str, str] | None = None) -> LLMConfig:
    """Resolve endpoint configuration from the environment.

    Reads env at call time so that load_env() in the CLI bootstrap is
    always visible here. A missing credential is fatal: nothing else can
    run without it.
    """
    env_map = env if env is not None else os.environ

    api_key = _env_get(env_map, "LLM_API_KEY") or _env_get(env_map, "DEEPSEEK_API_KEY")
    if not api_key:
        raise FatalConfig("LLM_API_KEY", "Set LLM_API_KEY (or DEEPSEEK_API_KEY) in ~/.quickapply/.env.")

    base_url = _env_get(env_map, "LLM_BASE_URL") or _env_get(env_map, "DEEPSEEK_BASE_URL") or _DEFAULT_BASE
    return LLMConfig(
        base_url=base_url.rstrip("/"),
        model=_env_get(env_map, "LLM_MODEL") or _DEFAULT_MODEL,
        api_key=api_key,
    )


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

_TIMEOUT = 60  # seconds

# Statuses the endpoint uses to say "slow down".
_RATE_LIMIT_STATUSES = (429, 503, 529)


class LLMClient:
    """Thin client for an OpenAI-compatible chat/completions endpoint."""

    def __init__(self, config: LLMConfig, http_client: httpx.Client | None = None) -> None:
        self.base_url = config.base_url
        self.model = config.model
        self.api_key = config.api_key
        self._client = http_client or httpx.Client(timeout=_TIMEOUT)

    @staticmethod
    def _extract_content(resp: httpx.Response) -> str:
        try:
            data = resp.json()
        except ValueError as exc:
            raise UpstreamInvalidResponse(f"Generation endpoint returned non-JSON body: {resp.text[:200]}") from exc

        choices = data.get("choices") if isinstance(data, dict) else None
        if not isinstance(choices, list) or not choices:
            raise UpstreamInvalidResponse("Generation endpoint response has no choices.")
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise UpstreamInvalidResponse("Generation endpoint response has no message content.")
        return content

    def chat(
        self,
        messages: list[dict],
        temperature: float = 0.7,
        max_tokens: int = 150,
    ) -> str:
        """Send one chat completion request and return the assistant text.

        Raises:
            RateLimited: the endpoint answered 429/503/529.
            UpstreamInvalidResponse: the payload had no completion text.
            GenerationError: any other HTTP or transport failure.
        """
        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        try:
            resp = self._client.post(f"{self.base_url}/chat/completions", json=payload, headers=headers)
        except httpx.TimeoutException as exc:
            raise GenerationError(f"Generation request timed out: {exc}") from exc
        except httpx.RequestError as exc:
            raise GenerationError(f"Generation request failed: {exc}") from exc

        if resp.status_code in _RATE_LIMIT_STATUSES:
            raise RateLimited(resp.status_code, resp.headers.get("Retry-After"))

        try:
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise GenerationError(
                f"Generation endpoint returned HTTP {resp.status_code}: {resp.text[:200]}"
            ) from exc

        return self._extract_content(resp)

    def close(self) -> None:
        self._client.close()
