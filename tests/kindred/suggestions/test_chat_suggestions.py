"""Tests for ChatSuggestionSkill prompt building and output parsing."""

from __future__ import annotations

import pytest

from kindred.core.errors import GenerationError
from kindred.core.models import Location, UserProfile
from kindred.suggestions.chat import (
    FALLBACK_SUGGESTIONS,
    SYSTEM_PROMPT,
    ChatSuggestionSkill,
    fallback_suggestions,
    shared_interests,
)


def _profiles() -> tuple[UserProfile, UserProfile]:
    user = UserProfile(
        user_id="alice", name="Alice", age=28, bio="Trail runner",
        interests=["Hiking", "coffee"], location=Location("Seattle, Washington"),
    )
    match = UserProfile(
        user_id="bob", name="Bob", age=29, interests=["hiking", "jazz"],
        location=Location("Portland, Oregon"),
    )
    return user, match


class TestHelpers:
    def test_shared_interests_case_insensitive(self):
        user, match = _profiles()
        assert shared_interests(user, match) == ["Hiking"]

    def test_fallback_for_unknown_category(self):
        assert fallback_suggestions("nonsense") == FALLBACK_SUGGESTIONS["general"]
        assert len(fallback_suggestions("date-idea")) == 3


class TestParseSuggestions:
    def test_numbered_lines(self):
        text = "Here you go:\n1. First idea\n2.  Second idea\n3. Third idea\n4. Fourth idea"
        assert ChatSuggestionSkill.parse_suggestions(text) == [
            "First idea", "Second idea", "Third idea",
        ]

    def test_sentence_fallback_drops_short_fragments(self):
        text = "Ask about her hiking trips. Nice! Suggest a jazz night downtown."
        assert ChatSuggestionSkill.parse_suggestions(text) == [
            "Ask about her hiking trips", "Suggest a jazz night downtown",
        ]

    def test_nothing_usable(self):
        assert ChatSuggestionSkill.parse_suggestions("Ok. Sure!") == []


class TestExecute:
    @pytest.mark.asyncio
    async def test_prompt_carries_both_profiles(self, generator):
        user, match = _profiles()
        skill = ChatSuggestionSkill()

        result = await skill.execute({
            "generator": generator,
            "user": user,
            "match": match,
            "category": "date-idea",
            "recent_messages": [("Bob", "Any weekend plans?")],
        })

        assert result == {"suggestions": ["Hi!", "How are you?", "Coffee?"]}
        prompt, system_prompt = generator.calls[0]
        assert system_prompt == SYSTEM_PROMPT
        assert "Shared interests: Hiking" in prompt
        assert "Current user is in Seattle, Washington, match is in Portland, Oregon" in prompt
        assert "Bob: Any weekend plans?" in prompt
        assert "specific date ideas" in prompt

    @pytest.mark.asyncio
    async def test_code_fenced_output(self, generator):
        generator.response = "```\n1. One option here\n2. Another option\n```"
        user, match = _profiles()

        result = await ChatSuggestionSkill().execute(
            {"generator": generator, "user": user, "match": match},
        )

        assert result["suggestions"] == ["One option here", "Another option"]

    @pytest.mark.asyncio
    async def test_empty_output_raises(self, generator):
        generator.response = ""
        user, match = _profiles()

        with pytest.raises(GenerationError):
            await ChatSuggestionSkill().execute(
                {"generator": generator, "user": user, "match": match},
            )

    @pytest.mark.asyncio
    async def test_missing_context(self, generator):
        with pytest.raises(GenerationError):
            await ChatSuggestionSkill().execute({"generator": generator})
        with pytest.raises(GenerationError):
            await ChatSuggestionSkill().execute({"user": None})
