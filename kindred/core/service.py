"""
MatchChatService: the single entry point used by the API and headless callers.

There is no ambient "current user": every operation takes explicit user
ids and threads them through the components. The service owns no state
of its own beyond wiring.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Iterator, Optional

from .admission import SwipeAdmissionController
from .conversations import ConversationStore
from .errors import ModerationRejectedError, NotFoundError, ValidationError
from .matching import MatchFormationEngine
from .models import (
    CooldownState,
    Location,
    Match,
    Message,
    Preferences,
    StrikeStatus,
    Submission,
    SwipeDecision,
    SwipeResult,
    UserProfile,
)
from .moderation import ModerationGate
from .protocols import Geocoder, ProfileStore
from .strikes import StrikeLedger

if TYPE_CHECKING:
    from ..discovery import Candidate, DiscoveryFeed
    from ..suggestions import SuggestionResult, SuggestionService

logger = logging.getLogger(__name__)

# Moderation state is owned by the strike ledger
PROTECTED_FIELDS = frozenset({"user_id", "strikes", "banned", "created_at"})


class MatchChatService:
    """Facade over admission, matching, conversations, moderation and strikes."""

    def __init__(
        self,
        profile_store: ProfileStore,
        admission: SwipeAdmissionController,
        match_engine: MatchFormationEngine,
        conversation_store: ConversationStore,
        moderation_gate: ModerationGate,
        strike_ledger: StrikeLedger,
        discovery: Optional[DiscoveryFeed] = None,
        suggestions: Optional[SuggestionService] = None,
        geocoder: Optional[Geocoder] = None,
    ):
        self.profiles = profile_store
        self.admission = admission
        self.match_engine = match_engine
        self.conversations = conversation_store
        self.moderation = moderation_gate
        self.strikes = strike_ledger
        self.discovery = discovery
        self.suggestions = suggestions
        self.geocoder = geocoder

    # ============ Profiles ============

    async def register_user(self, data: dict[str, Any]) -> UserProfile:
        data = dict(data)
        residence = data.pop("residence", None)
        for key in ("strikes", "banned"):
            data.pop(key, None)
        profile = UserProfile.from_dict(data)
        if residence:
            profile.location = await self._resolve_residence(residence)
        created = await self.profiles.create_profile(profile)
        logger.info("User %s registered", created.user_id)
        return created

    async def get_user(self, user_id: str) -> UserProfile:
        return await self.profiles.get_profile(user_id)

    async def update_user(self, user_id: str, fields: dict[str, Any]) -> UserProfile:
        """Partial profile edit. A free-text ``residence`` is geocoded into ``location``."""
        fields = dict(fields)
        protected = PROTECTED_FIELDS.intersection(fields)
        if protected:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(protected))}")

        residence = fields.pop("residence", None)
        if residence:
            fields["location"] = await self._resolve_residence(residence)
        elif isinstance(fields.get("location"), dict):
            fields["location"] = Location(**fields["location"])
        if isinstance(fields.get("preferences"), dict):
            fields["preferences"] = Preferences(**fields["preferences"])

        return await self.profiles.update_profile(user_id, fields)

    async def _resolve_residence(self, residence: str) -> Location:
        if self.geocoder is None:
            return Location(label=residence)
        location = await self.geocoder.geocode(residence)
        if location is None:
            logger.info("Residence %r could not be geocoded, keeping label only", residence)
            return Location(label=residence)
        return location

    # ============ Swipes ============

    async def swipe(
        self, actor_id: str, target_id: str, direction: str, now: Optional[datetime] = None,
    ) -> SwipeResult:
        return await self.admission.attempt_swipe(actor_id, target_id, direction, now)

    async def redecide(
        self, actor_id: str, target_id: str, direction: str, now: Optional[datetime] = None,
    ) -> SwipeResult:
        return await self.admission.redecide(actor_id, target_id, direction, now)

    def list_unsure(self, user_id: str) -> list[SwipeDecision]:
        return self.admission.list_unsure(user_id)

    async def received_likes(self, user_id: str) -> list[UserProfile]:
        """Pending likers of ``user_id``. Banned likers are hidden, as in discovery."""
        await self.profiles.get_profile(user_id)
        likers = [
            await self.profiles.get_profile(liker_id)
            for liker_id in self.admission.received_likes(user_id)
        ]
        return [p for p in likers if not p.banned]

    def get_cooldown(self, user_id: str) -> CooldownState:
        return self.admission.get_cooldown(user_id)

    def matches_for(self, user_id: str) -> list[Match]:
        return self.match_engine.matches_for(user_id)

    async def discover(self, viewer_id: str, limit: int = 10) -> list[Candidate]:
        if self.discovery is None:
            raise NotFoundError("Discovery is not configured")
        await self.strikes.ensure_not_banned(viewer_id)
        return await self.discovery.discover(viewer_id, limit)

    # ============ Messages ============

    async def send_message(
        self, conversation_id: str, sender_id: str, text: str, now: Optional[datetime] = None,
    ) -> Message:
        """Moderated send. Raises ModerationRejectedError when the gate rejects."""
        outcome = await self.moderation.submit(conversation_id, sender_id, text, now)
        if not outcome.approved:
            raise ModerationRejectedError(
                f"Message rejected by moderation: {outcome.reason}", reason=outcome.reason or "",
            )
        return outcome.message

    async def stage_message(
        self, conversation_id: str, sender_id: str, text: str, now: Optional[datetime] = None,
    ) -> Submission:
        return await self.moderation.stage(conversation_id, sender_id, text, now)

    def get_submission(self, submission_id: str, user_id: str) -> Submission:
        submission = self.moderation.get_submission(submission_id)
        if submission.sender_id != user_id:
            raise NotFoundError(f"Submission {submission_id} not found")
        return submission

    def list_messages(
        self, conversation_id: str, user_id: str, since: Optional[str] = None,
    ) -> Iterator[Message]:
        self.conversations.get_participant_conversation(conversation_id, user_id)
        return self.conversations.list_messages(conversation_id, since)

    async def mark_read(
        self, conversation_id: str, user_id: str, up_to_message_id: Optional[str] = None,
    ) -> int:
        return await self.conversations.mark_read(conversation_id, user_id, up_to_message_id)

    async def delete_message(
        self, conversation_id: str, message_id: str, user_id: str,
    ) -> Message:
        return await self.conversations.delete_message(conversation_id, message_id, user_id)

    def conversations_for(self, user_id: str) -> list[dict[str, Any]]:
        return [c.summary(user_id) for c in self.conversations.conversations_for(user_id)]

    # ============ Strikes ============

    async def strike_status(self, user_id: str) -> StrikeStatus:
        return await self.strikes.get_status(user_id)

    # ============ Suggestions ============

    async def suggest(
        self, conversation_id: str, user_id: str, category: str = "general",
    ) -> SuggestionResult:
        if self.suggestions is None:
            raise NotFoundError("Suggestions are not configured")
        return await self.suggestions.suggest(conversation_id, user_id, category)

    async def suggestion_categories(self, conversation_id: str, user_id: str) -> list[str]:
        if self.suggestions is None:
            raise NotFoundError("Suggestions are not configured")
        return await self.suggestions.categories(conversation_id, user_id)

    # ============ Lifecycle ============

    async def shutdown(self) -> None:
        """Let staged submissions finish."""
        await self.moderation.drain()
