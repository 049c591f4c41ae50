"""
ContentModerator implementations.

- KeywordContentModerator: local blocklist of solicitation / scam phrases
- LLMContentModerator: asks a TextGenerator for a JSON verdict

The Moderation Gate bounds either with a timeout and treats failures as
rejections, so these raise freely.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Iterable, Optional

from kindred.core.errors import ModerationError
from kindred.core.models import ModerationVerdict
from kindred.core.protocols import TextGenerator

logger = logging.getLogger(__name__)

DEFAULT_BLOCKED_TERMS = (
    "cashapp me",
    "venmo me",
    "send me money",
    "wire transfer",
    "gift card",
    "crypto investment",
    "investment opportunity",
    "onlyfans",
    "escort",
    "pay per meet",
)


class KeywordContentModerator:
    """Blocks text containing any configured term (case-insensitive)."""

    def __init__(self, blocked_terms: Iterable[str] = DEFAULT_BLOCKED_TERMS):
        self._terms = [t.lower() for t in blocked_terms if t.strip()]

    async def moderate(self, text: str) -> ModerationVerdict:
        lowered = text.lower()
        hits = [t for t in self._terms if t in lowered]
        if hits:
            logger.info("Keyword moderation blocked text: %s", ", ".join(hits))
            return ModerationVerdict(allowed=False, reason="solicitation")
        return ModerationVerdict(allowed=True)


SYSTEM_PROMPT = """\
You are a content moderator for a dating app chat. Decide whether a single \
message may be delivered. Block threats, harassment, hate speech, sexual \
content sent without consent, scams and requests for money. Allow ordinary \
flirting, small talk and disagreement.

Respond with JSON only:
{"allowed": true|false, "reason": "short snake_case reason when blocked"}"""


def _strip_code_fence(text: str) -> str:
    stripped = text.strip()
    match = re.match(r"^```(?:json)?\s*\n?(.*?)\n?\s*```$", stripped, re.DOTALL)
    if match:
        return match.group(1).strip()
    return stripped


class LLMContentModerator:
    """ContentModerator that delegates the judgement to a TextGenerator."""

    def __init__(self, generator: TextGenerator):
        self._generator = generator

    async def moderate(self, text: str) -> ModerationVerdict:
        raw = await self._generator.generate(
            f"Message:\n<<<\n{text}\n>>>", system_prompt=SYSTEM_PROMPT,
        )
        return self._parse(raw)

    @staticmethod
    def _parse(raw: str) -> ModerationVerdict:
        try:
            data = json.loads(_strip_code_fence(raw))
        except json.JSONDecodeError as e:
            raise ModerationError(f"Moderator returned invalid JSON: {raw[:100]}") from e

        allowed = data.get("allowed") if isinstance(data, dict) else None
        if not isinstance(allowed, bool):
            raise ModerationError("Moderator verdict is missing a boolean 'allowed'")

        reason: Optional[str] = data.get("reason") or None
        return ModerationVerdict(allowed=allowed, reason=None if allowed else reason)
