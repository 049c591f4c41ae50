"""Tests for SuggestionService fallbacks and category selection."""

from __future__ import annotations

import asyncio

import pytest

from kindred.core.errors import GenerationError, NotFoundError
from kindred.suggestions.chat import FALLBACK_SUGGESTIONS
from kindred.suggestions.service import SuggestionService, categories_for


@pytest.fixture
def conv(conversation_store):
    return conversation_store.create_conversation("match_1", ("alice", "bob"))


def _service(profile_store, conversation_store, generator=None, timeout_s=1.0):
    return SuggestionService(
        profile_store, conversation_store, generator=generator, timeout_s=timeout_s,
    )


class TestCategories:
    @pytest.mark.parametrize("count,expected", [
        (0, ["icebreaker", "casual", "date-idea"]),
        (1, ["icebreaker", "casual", "date-idea", "question"]),
        (4, ["icebreaker", "casual", "date-idea", "question"]),
        (5, ["icebreaker", "casual", "date-idea", "activity"]),
        (40, ["icebreaker", "casual", "date-idea", "activity"]),
    ])
    def test_categories_for(self, count, expected):
        assert categories_for(count) == expected

    @pytest.mark.asyncio
    async def test_tombstones_do_not_count(self, profile_store, conversation_store, conv):
        msg = await conversation_store.append_message(conv.conversation_id, "alice", "hi")
        await conversation_store.delete_message(conv.conversation_id, msg.message_id, "alice")

        service = _service(profile_store, conversation_store)
        assert len(await service.categories(conv.conversation_id, "bob")) == 3


class TestSuggest:
    @pytest.mark.asyncio
    async def test_generated_suggestions(self, profile_store, conversation_store, conv, generator):
        await conversation_store.append_message(conv.conversation_id, "bob", "Hey Alice")
        service = _service(profile_store, conversation_store, generator)

        result = await service.suggest(conv.conversation_id, "alice", "response")

        assert not result.fallback
        assert result.suggestions == ["Hi!", "How are you?", "Coffee?"]
        prompt, _ = generator.calls[0]
        assert "Bob: Hey Alice" in prompt
        assert result.to_dict()["category"] == "response"

    @pytest.mark.asyncio
    async def test_no_generator_uses_fallback(self, profile_store, conversation_store, conv):
        service = _service(profile_store, conversation_store)

        result = await service.suggest(conv.conversation_id, "alice", "casual")

        assert result.fallback
        assert result.suggestions == FALLBACK_SUGGESTIONS["casual"]

    @pytest.mark.asyncio
    async def test_generator_failure_uses_fallback(
        self, profile_store, conversation_store, conv, generator,
    ):
        generator.error = GenerationError("quota exceeded")
        service = _service(profile_store, conversation_store, generator)

        result = await service.suggest(conv.conversation_id, "alice", "icebreaker")

        assert result.fallback
        assert result.suggestions == FALLBACK_SUGGESTIONS["icebreaker"]

    @pytest.mark.asyncio
    async def test_timeout_uses_fallback(self, profile_store, conversation_store, conv, generator):
        async def slow(prompt, system_prompt=None):
            await asyncio.sleep(1.0)
            return "1. too late"

        generator.generate = slow
        service = _service(profile_store, conversation_store, generator, timeout_s=0.05)

        result = await service.suggest(conv.conversation_id, "alice")

        assert result.fallback
        assert result.category == "general"

    @pytest.mark.asyncio
    async def test_outsider_rejected(self, profile_store, conversation_store, conv, generator):
        service = _service(profile_store, conversation_store, generator)

        with pytest.raises(NotFoundError):
            await service.suggest(conv.conversation_id, "carol")
