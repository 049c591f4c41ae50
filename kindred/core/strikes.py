"""
Strike ledger: moderation violations per user and the sticky ban.

Strikes only ever go up. At ``ban_threshold`` the user is banned, and the
ban is written through to the profile store, which stays authoritative
for ban flags. There is no unban path here.
"""

from __future__ import annotations

import logging
from typing import Optional

from .conversations import ConversationStore
from .errors import BannedError
from .events import strike_recorded, user_banned
from .locks import KeyedLock
from .models import StrikeRecord, StrikeStatus
from .protocols import EventPusher, ProfileStore

logger = logging.getLogger(__name__)

DEFAULT_BAN_THRESHOLD = 3

# Audit excerpts are truncated; the full text is never kept for rejected messages.
EXCERPT_LIMIT = 200


class StrikeLedger:
    """Records strikes and enforces the ban threshold."""

    def __init__(
        self,
        profile_store: ProfileStore,
        event_pusher: EventPusher,
        ban_threshold: int = DEFAULT_BAN_THRESHOLD,
        conversation_store: Optional[ConversationStore] = None,
    ):
        self._profiles = profile_store
        self._event_pusher = event_pusher
        self._ban_threshold = ban_threshold
        self._conversations = conversation_store
        self._locks = KeyedLock()
        self._violations: dict[str, list[StrikeRecord]] = {}

    @property
    def ban_threshold(self) -> int:
        return self._ban_threshold

    async def record_strike(
        self, user_id: str, reason: str = "", excerpt: str = "",
    ) -> StrikeStatus:
        """
        Increment the user's strike count; ban at the threshold.

        A user who is already banned keeps their count. The violation is
        still added to the audit trail.
        """
        async with self._locks.hold(user_id):
            profile = await self._profiles.get_profile(user_id)
            was_banned = profile.banned
            if was_banned:
                # The count stops at the ban; later violations are audited only
                strikes = profile.strikes
                banned = True
            else:
                strikes = profile.strikes + 1
                banned = strikes >= self._ban_threshold
                await self._profiles.update_profile(
                    user_id, {"strikes": strikes, "banned": banned},
                )
            self._violations.setdefault(user_id, []).append(
                StrikeRecord(
                    user_id=user_id,
                    reason=reason,
                    excerpt=excerpt[:EXCERPT_LIMIT],
                    strike_count=strikes,
                    banned=banned,
                )
            )

        status = StrikeStatus(
            user_id=user_id, strikes=strikes, banned=banned, threshold=self._ban_threshold,
        )
        if was_banned:
            logger.info("Violation by banned user %s audited: %s", user_id, reason or "unspecified")
            return status

        logger.info(
            "Strike recorded for %s (%d/%d): %s",
            user_id, strikes, self._ban_threshold, reason or "unspecified",
        )
        await self._event_pusher.push(strike_recorded(status, reason))

        if banned:
            logger.warning("User %s banned after %d strikes", user_id, strikes)
            await self._notify_counterparts(user_id)

        return status

    async def get_status(self, user_id: str) -> StrikeStatus:
        profile = await self._profiles.get_profile(user_id)
        return StrikeStatus(
            user_id=user_id,
            strikes=profile.strikes,
            banned=profile.banned,
            threshold=self._ban_threshold,
        )

    async def is_banned(self, user_id: str) -> bool:
        profile = await self._profiles.get_profile(user_id)
        return profile.banned

    async def ensure_not_banned(self, user_id: str) -> None:
        """Raise BannedError if the user is banned."""
        if await self.is_banned(user_id):
            raise BannedError(f"User {user_id} is banned")

    def violations(self, user_id: str) -> list[StrikeRecord]:
        return list(self._violations.get(user_id, []))

    async def _notify_counterparts(self, user_id: str) -> None:
        """Tell everyone the banned user was chatting with. Their history stays visible."""
        if self._conversations is None:
            return
        counterparts = [
            conv.other_participant(user_id)
            for conv in self._conversations.conversations_for(user_id)
        ]
        if counterparts:
            await self._event_pusher.push(user_banned(user_id, counterparts))
