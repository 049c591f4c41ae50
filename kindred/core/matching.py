"""
Match formation engine: turns mutual likes into a Match + Conversation.

Pending likes are keyed by the canonical pair (min id, max id). The
check-and-create for a pair runs under that pair's lock, so two likes
arriving at the same moment from both sides produce exactly one Match.

The first like of a pair may wait a short window for the reverse like
(``wait_for_match``), so when both users like each other at the same
time both requests see the match.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Optional

from .conversations import ConversationStore
from .events import match_created
from .locks import KeyedLock
from .models import LikeOutcome, LikeStatus, Match, canonical_pair, generate_id, utc_now
from .protocols import Clock, EventPusher
from .strikes import StrikeLedger

logger = logging.getLogger(__name__)

DEFAULT_MATCH_WINDOW_SECONDS = 0.5


class MatchFormationEngine:
    """Detects mutual likes and creates matches atomically per pair."""

    def __init__(
        self,
        conversation_store: ConversationStore,
        strike_ledger: StrikeLedger,
        event_pusher: EventPusher,
        clock: Clock = utc_now,
        match_window_seconds: float = DEFAULT_MATCH_WINDOW_SECONDS,
    ):
        self._conversations = conversation_store
        self._strikes = strike_ledger
        self._event_pusher = event_pusher
        self._clock = clock
        self._locks = KeyedLock()
        # pair -> ids of users in the pair who have liked the other
        self._pending: dict[tuple[str, str], set[str]] = {}
        self._matches: dict[tuple[str, str], Match] = {}
        self._by_user: dict[str, list[tuple[str, str]]] = {}
        self._match_window = match_window_seconds
        # pair -> resolved with the Match (or None when suppressed) for a waiting liker
        self._waiters: dict[tuple[str, str], asyncio.Future] = {}

    @property
    def match_window_seconds(self) -> float:
        return self._match_window

    async def register_like(
        self, actor_id: str, target_id: str, now: Optional[datetime] = None,
    ) -> LikeOutcome:
        """
        Record actor's like of target; create the match if target already liked actor.

        Returns CREATED, PENDING, EXISTING (pair already matched) or
        SUPPRESSED (a participant is banned; nobody is told).
        """
        pair = canonical_pair(actor_id, target_id)

        async with self._locks.hold(pair):
            existing = self._matches.get(pair)
            if existing is not None:
                return LikeOutcome(status=LikeStatus.EXISTING, match=existing)

            likers = self._pending.setdefault(pair, set())
            likers.add(actor_id)
            if target_id not in likers:
                logger.debug("Like %s -> %s pending", actor_id, target_id)
                if pair not in self._waiters:
                    self._waiters[pair] = asyncio.get_running_loop().create_future()
                return LikeOutcome(status=LikeStatus.PENDING)

            if await self._strikes.is_banned(actor_id) or await self._strikes.is_banned(target_id):
                logger.info("Match %s/%s suppressed: participant banned", pair[0], pair[1])
                self._resolve_waiter(pair, None)
                return LikeOutcome(status=LikeStatus.SUPPRESSED)

            match = self._create_match(pair, now or self._clock())
            del self._pending[pair]
            self._resolve_waiter(pair, match)

        logger.info(
            "Match %s created: %s <-> %s (conversation %s)",
            match.match_id, match.user_a, match.user_b, match.conversation_id,
        )
        await self._event_pusher.push(match_created(match))
        return LikeOutcome(status=LikeStatus.CREATED, match=match)

    async def wait_for_match(self, actor_id: str, target_id: str) -> Optional[Match]:
        """
        Wait up to the match window for a pending like to turn into a Match.

        Call with no locks held. Returns the Match, or None when the window
        closes first or creation was suppressed.
        """
        pair = canonical_pair(actor_id, target_id)
        waiter = self._waiters.get(pair)
        if waiter is None or self._match_window <= 0:
            return self._matches.get(pair)
        try:
            return await asyncio.wait_for(asyncio.shield(waiter), self._match_window)
        except asyncio.TimeoutError:
            if self._waiters.get(pair) is waiter and not waiter.done():
                del self._waiters[pair]
                waiter.cancel()
            return self._matches.get(pair)

    def _resolve_waiter(self, pair: tuple[str, str], match: Optional[Match]) -> None:
        waiter = self._waiters.pop(pair, None)
        if waiter is not None and not waiter.done():
            waiter.set_result(match)

    def _create_match(self, pair: tuple[str, str], now: datetime) -> Match:
        """Create Match + Conversation. Caller holds the pair lock."""
        match_id = generate_id("match")
        conv = self._conversations.create_conversation(
            match_id=match_id, participants=pair, now=now,
        )
        match = Match(
            match_id=match_id,
            user_a=pair[0],
            user_b=pair[1],
            conversation_id=conv.conversation_id,
            created_at=now,
        )
        self._matches[pair] = match
        for user_id in pair:
            self._by_user.setdefault(user_id, []).append(pair)
        return match

    # ============ Queries ============

    def get_match(self, user_a: str, user_b: str) -> Optional[Match]:
        return self._matches.get(canonical_pair(user_a, user_b))

    def matches_for(self, user_id: str) -> list[Match]:
        """A user's matches, newest first."""
        matches = [self._matches[pair] for pair in self._by_user.get(user_id, [])]
        matches.sort(key=lambda m: m.created_at, reverse=True)
        return matches

    def has_liked(self, actor_id: str, target_id: str) -> bool:
        pair = canonical_pair(actor_id, target_id)
        if pair in self._matches:
            return True
        return actor_id in self._pending.get(pair, set())

    def pending_likers(self, user_id: str) -> list[str]:
        """Users whose like of ``user_id`` is still waiting for a like back."""
        likers = []
        for pair, actors in self._pending.items():
            if user_id not in pair:
                continue
            other = pair[1] if pair[0] == user_id else pair[0]
            if other in actors and user_id not in actors:
                likers.append(other)
        return sorted(likers)
