"""
ChatSuggestionSkill: drafts message suggestions for one side of a match.

The prompt carries both profiles, shared interests, where each person
lives and the last few messages. The output contract is a numbered list;
anything else is salvaged sentence by sentence.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from ..core.errors import GenerationError
from ..core.models import UserProfile
from .base import BaseSkill

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 3
CONTEXT_MESSAGES = 5

DEFAULT_CATEGORY = "general"

SYSTEM_PROMPT = """\
You are an assistant helping someone write engaging messages on a dating app.
Suggestions must be natural, specific to the people involved, respectful, \
and appropriate for a dating app. Never invent facts about either person."""

CATEGORY_INSTRUCTIONS: dict[str, str] = {
    "icebreaker": """\
generate 3 creative icebreaker messages that are:
- Personalized using their interests, bio, or residence
- Fun and attention-grabbing without being cheesy
- Under 80 characters for quick impact""",
    "casual": """\
generate 3 casual conversation starters that are:
- Based on their interests, bio, or shared interests
- Natural and conversational in tone
- Open-ended to encourage detailed responses""",
    "date-idea": """\
generate 3 specific date ideas that are:
- Based on shared interests or their individual interests
- Tailored to where they live and what is available there
- Realistic for a first or second date""",
    "opener": """\
generate 3 engaging conversation starters that are:
- Personalized based on their interests, bio, and residence
- Natural and not overly formal
- Respectful and appropriate for a dating app""",
    "question": """\
generate 3 thoughtful questions that are:
- Based on their interests, bio, residence, or shared interests
- Open-ended to encourage detailed responses
- Appropriate for getting to know someone better""",
    "response": """\
generate 3 potential responses that are:
- Engaging and show genuine interest
- Based on the conversation context
- Designed to keep the conversation flowing""",
    "activity": """\
generate 3 activity or date suggestions that are:
- Based on shared interests or their individual interests
- Realistic and achievable
- Designed to move the conversation toward meeting in person""",
    DEFAULT_CATEGORY: """\
generate 3 engaging message suggestions that are:
- Personalized based on their interests, bio, and residence
- Natural and conversational
- Appropriate for the current stage of conversation""",
}

FALLBACK_SUGGESTIONS: dict[str, list[str]] = {
    "icebreaker": [
        "Hey! I noticed you love [interest] - what's your favorite [related activity]?",
        "Hi there! Your bio about [bio detail] caught my attention - tell me more!",
        "Hey! Fellow [location] resident here - what's your go-to spot in the area?",
    ],
    "casual": [
        "What's something you're passionate about that most people don't know?",
        "If you could travel anywhere right now, where would you go?",
        "What's the best book or movie you've experienced recently?",
    ],
    "date-idea": [
        "We should grab coffee at [local coffee shop] and chat more about [shared interest]!",
        "I'd love to explore [local activity/venue] together - what do you think?",
        "We could check out that new [local restaurant/activity] - interested?",
    ],
    "opener": [
        "Hey! I loved your profile - what's your favorite way to spend a weekend?",
        "Hi there! I noticed we both love [interest] - what got you into that?",
        "Hey! Your bio caught my attention - what's the story behind that?",
    ],
    "question": [
        "What's something you're passionate about that most people don't know?",
        "If you could travel anywhere right now, where would you go?",
        "What's the best book or movie you've experienced recently?",
    ],
    "response": [
        "That sounds amazing! I'd love to hear more about that.",
        "Wow, that's really interesting! How did you get into that?",
        "That's awesome! I can totally relate to that.",
    ],
    "activity": [
        "We should grab coffee sometime and chat more about [shared interest]!",
        "I'd love to explore [activity] together - what do you think?",
        "We could check out that new [place/activity] - interested?",
    ],
    DEFAULT_CATEGORY: [
        "Hey! How's your day going?",
        "I'd love to get to know you better!",
        "What's something exciting you're looking forward to?",
    ],
}

_NUMBERED_LINE = re.compile(r"^\d+\.\s*(.+)$")
_SENTENCE_SPLIT = re.compile(r"[.!?]+")


def fallback_suggestions(category: str) -> list[str]:
    return list(FALLBACK_SUGGESTIONS.get(category, FALLBACK_SUGGESTIONS[DEFAULT_CATEGORY]))


def shared_interests(a: UserProfile, b: UserProfile) -> list[str]:
    """Interests of ``a`` that ``b`` also lists, in ``a``'s order."""
    theirs = {i.lower() for i in b.interests}
    return [i for i in a.interests if i.lower() in theirs]


def _residence(profile: UserProfile) -> str:
    if profile.location and profile.location.label:
        return profile.location.label
    return "Location not specified"


def _describe(profile: UserProfile) -> str:
    interests = ", ".join(profile.interests) or "No specific interests listed"
    return (
        f"- Name: {profile.name}\n"
        f"- Bio: {profile.bio or 'No bio provided'}\n"
        f"- Interests: {interests}\n"
        f"- Residence: {_residence(profile)}"
    )


class ChatSuggestionSkill(BaseSkill):
    """Asks a TextGenerator for up to three message suggestions."""

    @property
    def name(self) -> str:
        return "chat_suggestions"

    async def execute(self, context: dict[str, Any]) -> dict[str, Any]:
        generator = context.get("generator")
        if generator is None:
            raise GenerationError("generator is required")
        if context.get("user") is None or context.get("match") is None:
            raise GenerationError("user and match profiles are required")

        system_prompt, prompt = self._build_prompt(context)
        raw_output = await generator.generate(prompt, system_prompt=system_prompt)
        return self._validate_output(raw_output, context)

    def _build_prompt(self, context: dict[str, Any]) -> tuple[str, str]:
        user: UserProfile = context["user"]
        match: UserProfile = context["match"]
        category = context.get("category") or DEFAULT_CATEGORY
        recent: list[tuple[str, str]] = context.get("recent_messages") or []

        shared = shared_interests(user, match)
        shared_text = (
            f"Shared interests: {', '.join(shared)}" if shared
            else "No shared interests identified"
        )
        if _residence(user) == _residence(match):
            location_text = f"Both users are in {_residence(user)}"
        else:
            location_text = (
                f"Current user is in {_residence(user)}, match is in {_residence(match)}"
            )

        context_text = ""
        if recent:
            lines = "\n".join(f"{name}: {text}" for name, text in recent[-CONTEXT_MESSAGES:])
            context_text = (
                f"Recent conversation context:\n{lines}\n\n"
                "Based on this conversation context, "
            )

        instructions = CATEGORY_INSTRUCTIONS.get(category, CATEGORY_INSTRUCTIONS[DEFAULT_CATEGORY])
        prompt = (
            f"Current user profile:\n{_describe(user)}\n\n"
            f"Match's profile:\n{_describe(match)}\n"
            f"- {shared_text}\n"
            f"- {location_text}\n\n"
            f"{context_text}{instructions}\n\n"
            "Please provide exactly 3 suggestions in this format:\n"
            "1. [First suggestion]\n"
            "2. [Second suggestion]\n"
            "3. [Third suggestion]"
        )
        return SYSTEM_PROMPT, prompt

    def _validate_output(self, raw_output: str, context: dict[str, Any]) -> dict[str, Any]:
        suggestions = self.parse_suggestions(self._strip_code_fence(raw_output or ""))
        if not suggestions:
            raise GenerationError("Generator returned no usable suggestions")
        return {"suggestions": suggestions}

    @staticmethod
    def parse_suggestions(text: str) -> list[str]:
        """Numbered lines first; otherwise any sentence longer than 10 chars."""
        suggestions = []
        for line in text.splitlines():
            match = _NUMBERED_LINE.match(line.strip())
            if match and match.group(1).strip():
                suggestions.append(match.group(1).strip())

        if not suggestions:
            suggestions = [
                s.strip() for s in _SENTENCE_SPLIT.split(text) if len(s.strip()) > 10
            ]
        return suggestions[:MAX_SUGGESTIONS]
