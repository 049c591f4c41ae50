"""
ServiceBuilder: convenience factory for assembling a MatchChatService
with all its components.

Every collaborator has a default: an in-memory profile store, the keyword
moderator, a null event pusher, no text generator (canned suggestions)
and no geocoder.

Usage (headless)::

    from kindred import ServiceBuilder

    service = (
        ServiceBuilder()
        .with_moderator(my_moderator)
        .cooldown(30)
        .build()
    )
    result = await service.swipe("alice", "bob", "like")
"""

from __future__ import annotations

import logging
from typing import Optional

from kindred.core.admission import DEFAULT_COOLDOWN_SECONDS, SwipeAdmissionController
from kindred.core.conversations import DEFAULT_MAX_MESSAGE_LENGTH, ConversationStore
from kindred.core.matching import DEFAULT_MATCH_WINDOW_SECONDS, MatchFormationEngine
from kindred.core.models import utc_now
from kindred.core.moderation import DEFAULT_MODERATION_TIMEOUT_S, ModerationGate
from kindred.core.protocols import (
    Clock,
    ContentModerator,
    EventPusher,
    Geocoder,
    ProfileStore,
    TextGenerator,
)
from kindred.core.service import MatchChatService
from kindred.core.strikes import DEFAULT_BAN_THRESHOLD, StrikeLedger
from kindred.discovery import DiscoveryFeed
from kindred.infra.config import KindredConfig
from kindred.infra.event_pusher import NullEventPusher
from kindred.infra.moderators import KeywordContentModerator, LLMContentModerator
from kindred.infra.profile_store import InMemoryProfileStore
from kindred.suggestions.service import DEFAULT_SUGGESTION_TIMEOUT_S, SuggestionService

logger = logging.getLogger(__name__)


class ServiceBuilder:
    """Fluent builder for MatchChatService."""

    def __init__(self) -> None:
        self._profile_store: ProfileStore | None = None
        self._event_pusher: EventPusher | None = None
        self._moderator: ContentModerator | None = None
        self._generator: TextGenerator | None = None
        self._geocoder: Geocoder | None = None
        self._clock: Clock = utc_now
        self._cooldown_s: float = DEFAULT_COOLDOWN_SECONDS
        self._match_window_s: float = DEFAULT_MATCH_WINDOW_SECONDS
        self._moderation_timeout_s: float = DEFAULT_MODERATION_TIMEOUT_S
        self._suggestion_timeout_s: float = DEFAULT_SUGGESTION_TIMEOUT_S
        self._ban_threshold: int = DEFAULT_BAN_THRESHOLD
        self._max_message_length: int = DEFAULT_MAX_MESSAGE_LENGTH

    # --- Collaborators ---

    def with_profile_store(self, store: ProfileStore) -> ServiceBuilder:
        self._profile_store = store
        return self

    def with_event_pusher(self, pusher: EventPusher) -> ServiceBuilder:
        self._event_pusher = pusher
        return self

    def with_moderator(self, moderator: ContentModerator) -> ServiceBuilder:
        self._moderator = moderator
        return self

    def with_generator(self, generator: TextGenerator) -> ServiceBuilder:
        self._generator = generator
        return self

    def with_geocoder(self, geocoder: Geocoder) -> ServiceBuilder:
        self._geocoder = geocoder
        return self

    def with_clock(self, clock: Clock) -> ServiceBuilder:
        self._clock = clock
        return self

    # --- Limits ---

    def cooldown(self, seconds: float) -> ServiceBuilder:
        self._cooldown_s = seconds
        return self

    def match_window(self, seconds: float) -> ServiceBuilder:
        self._match_window_s = seconds
        return self

    def moderation_timeout(self, seconds: float) -> ServiceBuilder:
        self._moderation_timeout_s = seconds
        return self

    def suggestion_timeout(self, seconds: float) -> ServiceBuilder:
        self._suggestion_timeout_s = seconds
        return self

    def ban_threshold(self, strikes: int) -> ServiceBuilder:
        self._ban_threshold = strikes
        return self

    def max_message_length(self, length: int) -> ServiceBuilder:
        self._max_message_length = length
        return self

    # --- Config ---

    @classmethod
    def from_config(
        cls, config: KindredConfig, event_pusher: Optional[EventPusher] = None,
    ) -> ServiceBuilder:
        """Builder pre-filled from KindredConfig, creating external clients whose keys are set."""
        builder = (
            cls()
            .cooldown(config.cooldown_seconds)
            .match_window(config.match_window_seconds)
            .moderation_timeout(config.moderation_timeout_seconds)
            .suggestion_timeout(config.suggestion_timeout_seconds)
            .ban_threshold(config.strike_ban_threshold)
            .max_message_length(config.max_message_length)
        )
        if event_pusher is not None:
            builder.with_event_pusher(event_pusher)

        generator = _generator_from_config(config)
        if generator is not None:
            builder.with_generator(generator)
            if config.use_llm_moderation:
                builder.with_moderator(LLMContentModerator(generator))

        if config.google_maps_api_key:
            from kindred.infra.geocoding import GoogleGeocoder
            builder.with_geocoder(GoogleGeocoder(config.google_maps_api_key))

        return builder

    # --- Build ---

    def build(self) -> MatchChatService:
        profiles = self._profile_store or InMemoryProfileStore()
        pusher = self._event_pusher or NullEventPusher()
        moderator = self._moderator or KeywordContentModerator()

        conversations = ConversationStore(
            pusher, clock=self._clock, max_message_length=self._max_message_length,
        )
        strikes = StrikeLedger(
            profiles, pusher,
            ban_threshold=self._ban_threshold,
            conversation_store=conversations,
        )
        match_engine = MatchFormationEngine(
            conversations, strikes, pusher,
            clock=self._clock, match_window_seconds=self._match_window_s,
        )
        admission = SwipeAdmissionController(
            profiles, match_engine, strikes,
            clock=self._clock, cooldown_seconds=self._cooldown_s,
        )
        moderation = ModerationGate(
            conversations, strikes, moderator, pusher,
            clock=self._clock, timeout_s=self._moderation_timeout_s,
        )

        logger.info(
            "Service built: cooldown=%.0fs, ban_threshold=%d, moderator=%s, generator=%s",
            self._cooldown_s, self._ban_threshold,
            type(moderator).__name__, type(self._generator).__name__ if self._generator else "none",
        )
        return MatchChatService(
            profile_store=profiles,
            admission=admission,
            match_engine=match_engine,
            conversation_store=conversations,
            moderation_gate=moderation,
            strike_ledger=strikes,
            discovery=DiscoveryFeed(profiles, admission),
            suggestions=SuggestionService(
                profiles, conversations,
                generator=self._generator, timeout_s=self._suggestion_timeout_s,
            ),
            geocoder=self._geocoder,
        )


def _generator_from_config(config: KindredConfig) -> Optional[TextGenerator]:
    provider = config.suggestion_provider.lower()
    if provider == "claude" and config.anthropic_api_key:
        from kindred.infra.llm_client import ClaudeTextClient
        return ClaudeTextClient(
            api_key=config.anthropic_api_key,
            model=config.default_model,
            max_tokens=config.max_tokens,
            base_url=config.get_base_url(),
        )
    if provider == "gemini" and config.gemini_api_key:
        from kindred.infra.gemini_client import GeminiTextClient
        return GeminiTextClient(api_key=config.gemini_api_key, model=config.gemini_model)
    if provider:
        logger.warning("Suggestion provider %r has no API key; using canned suggestions", provider)
    return None
