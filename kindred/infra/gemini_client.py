"""
GeminiTextClient: TextGenerator backed by the Gemini generateContent REST API.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from kindred.core.errors import GenerationError

logger = logging.getLogger(__name__)

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"

DEFAULT_GENERATION_CONFIG: dict[str, Any] = {
    "temperature": 0.7,
    "topK": 40,
    "topP": 0.95,
    "maxOutputTokens": 2048,
}


class GeminiTextClient:
    """TextGenerator implementation calling Gemini over httpx."""

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.0-flash-exp",
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ):
        self._api_key = api_key
        self._model = model
        self._timeout = timeout
        self._http_client = http_client

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazily created HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    @property
    def endpoint(self) -> str:
        return f"{GEMINI_API_BASE}/{self._model}:generateContent"

    async def generate(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        # generateContent has no separate system slot in this request shape
        text = f"{system_prompt}\n\n{prompt}" if system_prompt else prompt
        body = {
            "contents": [{"parts": [{"text": text}]}],
            "generationConfig": DEFAULT_GENERATION_CONFIG,
        }

        try:
            response = await self.http_client.post(
                self.endpoint, params={"key": self._api_key}, json=body,
            )
        except httpx.RequestError as e:
            logger.error("Network error calling Gemini: %s", e)
            raise GenerationError(f"Gemini network error: {e}") from e

        if response.status_code != 200:
            logger.error("Gemini returned HTTP %d: %s", response.status_code, response.text[:200])
            raise GenerationError(f"Gemini API error: HTTP {response.status_code}")

        try:
            data = response.json()
            return data["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise GenerationError("Invalid response format from Gemini API") from e
