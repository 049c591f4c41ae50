"""
Skill base class: shared infrastructure for prompt-driven helpers.

Skills provide suggestions via a TextGenerator. They are advisory: a
skill failure degrades to canned output, it never blocks the chat core.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Any


class BaseSkill(ABC):
    """
    Abstract base class for generator-backed skills.

    Subclasses must implement name, execute(), and _build_prompt().
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Skill name identifier (e.g., 'chat_suggestions')."""
        ...

    @abstractmethod
    async def execute(self, context: dict[str, Any]) -> dict[str, Any]:
        """Execute the skill with the given context."""
        ...

    @abstractmethod
    def _build_prompt(self, context: dict[str, Any]) -> tuple[str, str]:
        """Build (system_prompt, prompt) for the generator call."""
        ...

    @staticmethod
    def _strip_code_fence(text: str) -> str:
        """Strip markdown code fences (```json ... ```) from generator output."""
        stripped = text.strip()
        match = re.match(r"^```(?:\w+)?\s*\n?(.*?)\n?\s*```$", stripped, re.DOTALL)
        if match:
            return match.group(1).strip()
        return stripped

    def _validate_output(self, raw_output: str, context: dict[str, Any]) -> dict[str, Any]:
        """Validate and parse generator output. Override for structured output."""
        return {"content": raw_output}
