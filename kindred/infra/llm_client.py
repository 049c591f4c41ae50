"""
ClaudeTextClient: TextGenerator backed by the Anthropic Messages API.

Used for chat suggestions and, optionally, LLM moderation. Concurrency is
bounded by an asyncio.Semaphore; a rate-limited call is retried once.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Optional

import anthropic

from kindred.core.errors import GenerationError

logger = logging.getLogger(__name__)

RATE_LIMIT_BACKOFF_S = 2.0


class ClaudeTextClient:
    """TextGenerator implementation using anthropic.AsyncAnthropic."""

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-5-20250929",
        max_tokens: int = 1024,
        base_url: str | None = None,
        max_concurrent: int = 10,
    ):
        client_kwargs: dict[str, Any] = {}
        if base_url:
            client_kwargs["base_url"] = base_url
        self._client = anthropic.AsyncAnthropic(api_key=api_key, **client_kwargs)
        self._model = model
        self._max_tokens = max_tokens
        self._semaphore = asyncio.Semaphore(max_concurrent)

        logger.info(
            "ClaudeTextClient: model=%s, max_concurrent=%d, base_url=%s",
            model, max_concurrent, base_url or "default",
        )

    async def generate(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        async with self._semaphore:
            return await self._do_generate(prompt, system_prompt)

    async def _do_generate(self, prompt: str, system_prompt: Optional[str]) -> str:
        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            kwargs["system"] = system_prompt

        t0 = time.monotonic()
        try:
            try:
                response = await self._client.messages.create(**kwargs)
            except anthropic.RateLimitError as e:
                logger.warning("Claude call rate limited, retrying once: %s", e)
                await asyncio.sleep(RATE_LIMIT_BACKOFF_S)
                response = await self._client.messages.create(**kwargs)
        except anthropic.APIError as e:
            elapsed_ms = (time.monotonic() - t0) * 1000
            logger.error("Claude call FAIL | %.0fms | %s", elapsed_ms, e)
            raise GenerationError(f"Claude call failed: {e}") from e

        text = self._extract_text(response)
        logger.info(
            "Claude call OK | %.0fms | stop=%s | text_len=%d",
            (time.monotonic() - t0) * 1000, response.stop_reason, len(text),
        )
        return text

    @staticmethod
    def _extract_text(response: Any) -> str:
        parts = [block.text for block in response.content if block.type == "text"]
        if not parts:
            raise GenerationError("Claude returned no text content")
        return "".join(parts)
