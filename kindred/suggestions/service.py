"""
SuggestionService: advisory chat suggestions for a conversation.

Never on the delivery path: a missing generator, a timeout or unusable
output all degrade to canned suggestions for the category.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from ..core.conversations import ConversationStore
from ..core.protocols import ProfileStore, TextGenerator
from .chat import (
    DEFAULT_CATEGORY,
    ChatSuggestionSkill,
    fallback_suggestions,
    shared_interests,
)

logger = logging.getLogger(__name__)

DEFAULT_SUGGESTION_TIMEOUT_S = 15.0

BASE_CATEGORIES = ["icebreaker", "casual", "date-idea"]
MAX_CATEGORIES = 4


def categories_for(message_count: int, has_shared_interests: bool = False) -> list[str]:
    """
    Suggestion categories to offer for a conversation.

    Early conversations (1-4 messages) add "question", established ones
    (5+) add "activity".
    """
    categories = list(BASE_CATEGORIES)
    if 0 < message_count < 5:
        categories.append("question")
    elif message_count >= 5:
        categories.append("activity")
    return categories[:MAX_CATEGORIES]


@dataclass
class SuggestionResult:
    conversation_id: str
    category: str
    suggestions: list[str] = field(default_factory=list)
    fallback: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "conversation_id": self.conversation_id,
            "category": self.category,
            "suggestions": list(self.suggestions),
            "fallback": self.fallback,
        }


class SuggestionService:
    """Builds suggestion context from the stores and runs the skill."""

    def __init__(
        self,
        profile_store: ProfileStore,
        conversation_store: ConversationStore,
        generator: Optional[TextGenerator] = None,
        timeout_s: float = DEFAULT_SUGGESTION_TIMEOUT_S,
        skill: Optional[ChatSuggestionSkill] = None,
    ):
        self._profiles = profile_store
        self._conversations = conversation_store
        self._generator = generator
        self._timeout_s = timeout_s
        self._skill = skill or ChatSuggestionSkill()

    async def suggest(
        self, conversation_id: str, user_id: str, category: str = DEFAULT_CATEGORY,
    ) -> SuggestionResult:
        conv = self._conversations.get_participant_conversation(conversation_id, user_id)
        category = category or DEFAULT_CATEGORY

        if self._generator is None:
            return SuggestionResult(
                conversation_id, category, fallback_suggestions(category), fallback=True,
            )

        user = await self._profiles.get_profile(user_id)
        match = await self._profiles.get_profile(conv.other_participant(user_id))
        names = {user.user_id: user.name, match.user_id: match.name}
        recent = [
            (names.get(m.sender_id, m.sender_id), m.text)
            for m in self._conversations.recent_messages(conversation_id)
        ]

        context = {
            "generator": self._generator,
            "user": user,
            "match": match,
            "category": category,
            "recent_messages": recent,
        }
        try:
            output = await asyncio.wait_for(
                self._skill.execute(context), timeout=self._timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Suggestion generation timed out after %.1fs for %s, using fallback",
                self._timeout_s, conversation_id,
            )
            return SuggestionResult(
                conversation_id, category, fallback_suggestions(category), fallback=True,
            )
        except Exception as e:
            logger.warning(
                "Suggestion generation failed for %s, using fallback: %s", conversation_id, e,
            )
            return SuggestionResult(
                conversation_id, category, fallback_suggestions(category), fallback=True,
            )

        logger.info(
            "Generated %d %s suggestions for %s",
            len(output["suggestions"]), category, conversation_id,
        )
        return SuggestionResult(conversation_id, category, output["suggestions"])

    async def categories(self, conversation_id: str, user_id: str) -> list[str]:
        conv = self._conversations.get_participant_conversation(conversation_id, user_id)
        user = await self._profiles.get_profile(user_id)
        match = await self._profiles.get_profile(conv.other_participant(user_id))
        visible = sum(1 for m in conv.messages if not m.deleted)
        return categories_for(visible, bool(shared_interests(user, match)))
