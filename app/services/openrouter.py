"""Integration helpers for the OpenRouter API."""

from __future__ import annotations

import logging

import httpx

from ..config import Settings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are StreamScout, an expert film and television assistant. You always follow "
    "the requested output format exactly and never add sections that were not asked for."
)


class OpenRouterError(RuntimeError):
    """Raised when OpenRouter cannot produce a completion."""


class OpenRouterClient:
    """Client responsible for talking to OpenRouter."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    async def generate_content(
        self,
        prompt: str,
        *,
        model: str | None = None,
        api_key: str | None = None,
        temperature: float = 0.8,
        max_tokens: int = 2_000,
    ) -> str:
        """Send a single prompt and return the text of the first choice."""

        resolved_key = api_key or self._settings.openrouter_api_key
        if not resolved_key:
            raise OpenRouterError("OpenRouter API key is required to generate content")

        payload = {
            "model": model or self._settings.openrouter_model,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }
        headers = {
            "Authorization": f"Bearer {resolved_key}",
            "Content-Type": "application/json",
            "X-Title": self._settings.app_name,
        }

        try:
            response = await self._client.post(
                "/chat/completions", json=payload, headers=headers
            )
        except httpx.HTTPError as exc:
            raise OpenRouterError(f"Transport error: {exc.__class__.__name__}") from exc
        if response.status_code >= 400:
            raise OpenRouterError(response.text)

        try:
            data = response.json()
        except ValueError as exc:
            raise OpenRouterError("Model returned invalid JSON") from exc
        choices = data.get("choices") if isinstance(data, dict) else None
        if not isinstance(choices, list) or not choices:
            raise OpenRouterError("Model returned no choices")
        first = choices[0]
        message = first.get("message") if isinstance(first, dict) else None
        if not isinstance(message, dict):
            raise OpenRouterError("Model response missing message")
        content = message.get("content")
        if not isinstance(content, str) or not content.strip():
            raise OpenRouterError("Model response missing content")
        return content.strip()
