"""
Swipe admission controller: one decision per cooldown window per user.

The cooldown is wall-clock based and uses server timestamps only. The
check-and-set of a user's cooldown runs under that user's lock, so two
concurrent swipes by the same user can never both be admitted.

Order of checks for a swipe:
banned -> self-swipe -> unknown target -> cooldown -> duplicate.
A duplicate (same actor, same target) returns the prior result and is
never charged a cooldown. "unsure" consumes the cooldown, never forms a
match, and can later be re-decided to like/pass without penalty.
A like that is left pending waits out the match window with the actor lock
released.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from .errors import CooldownError, NotFoundError, ValidationError
from .locks import KeyedLock
from .matching import MatchFormationEngine
from .models import CooldownState, SwipeDecision, SwipeDirection, SwipeResult, utc_now
from .protocols import Clock, ProfileStore
from .strikes import StrikeLedger

logger = logging.getLogger(__name__)

DEFAULT_COOLDOWN_SECONDS = 30.0


def parse_direction(direction: SwipeDirection | str) -> SwipeDirection:
    try:
        return SwipeDirection(direction)
    except ValueError as e:
        raise ValidationError(
            f"Unknown swipe direction: {direction!r} (expected like, pass or unsure)"
        ) from e


class SwipeAdmissionController:
    """Admits swipes, records decisions and forwards likes to the match engine."""

    def __init__(
        self,
        profile_store: ProfileStore,
        match_engine: MatchFormationEngine,
        strike_ledger: StrikeLedger,
        clock: Clock = utc_now,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
    ):
        self._profiles = profile_store
        self._match_engine = match_engine
        self._strikes = strike_ledger
        self._clock = clock
        self._cooldown = timedelta(seconds=cooldown_seconds)
        self._locks = KeyedLock()
        # actor_id -> target_id -> decision
        self._decisions: dict[str, dict[str, SwipeDecision]] = {}
        self._cooldowns: dict[str, CooldownState] = {}

    @property
    def cooldown_seconds(self) -> float:
        return self._cooldown.total_seconds()

    @property
    def clock(self) -> Clock:
        return self._clock

    # ============ Swipe ============

    async def attempt_swipe(
        self,
        actor_id: str,
        target_id: str,
        direction: SwipeDirection | str,
        now: Optional[datetime] = None,
    ) -> SwipeResult:
        """
        Admit one swipe.

        Raises BannedError, ValidationError, NotFoundError or CooldownError.
        """
        direction = parse_direction(direction)
        await self._strikes.ensure_not_banned(actor_id)
        if actor_id == target_id:
            raise ValidationError("Users cannot swipe on themselves")
        await self._profiles.get_profile(target_id)

        async with self._locks.hold(actor_id):
            now = now or self._clock()
            cooldown = self._cooldowns.setdefault(actor_id, CooldownState(user_id=actor_id))
            if cooldown.is_cooling_down(now):
                retry_after = cooldown.remaining_seconds(now)
                raise CooldownError(
                    f"Next swipe allowed in {retry_after:.1f}s",
                    retry_after_seconds=retry_after,
                )

            prior = self._decisions.get(actor_id, {}).get(target_id)
            if prior is not None:
                if prior.direction == SwipeDirection.UNSURE and direction != SwipeDirection.UNSURE:
                    result = await self._apply_redecision(actor_id, target_id, direction, now)
                else:
                    return self._repeat_result(prior)
            else:
                decision = SwipeDecision(
                    actor_id=actor_id, target_id=target_id, direction=direction, decided_at=now,
                )
                self._decisions.setdefault(actor_id, {})[target_id] = decision
                cooldown.next_eligible_at = now + self._cooldown

                match = None
                if direction == SwipeDirection.LIKE:
                    outcome = await self._match_engine.register_like(actor_id, target_id, now)
                    match = outcome.match

                logger.info(
                    "Swipe %s -> %s (%s) accepted%s",
                    actor_id, target_id, direction.value, ", matched" if match else "",
                )
                result = SwipeResult(
                    accepted=True,
                    actor_id=actor_id,
                    target_id=target_id,
                    direction=direction,
                    match=match,
                    next_eligible_at=cooldown.next_eligible_at,
                )

        return await self._settle_like(result)

    # ============ Unsure Re-decision ============

    async def redecide(
        self,
        actor_id: str,
        target_id: str,
        direction: SwipeDirection | str,
        now: Optional[datetime] = None,
    ) -> SwipeResult:
        """
        Turn an earlier "unsure" into like or pass.

        Neither checks nor charges the cooldown. Repeating a completed
        re-decision returns the prior result.
        """
        direction = parse_direction(direction)
        if direction == SwipeDirection.UNSURE:
            raise ValidationError("Re-decision must be like or pass")

        async with self._locks.hold(actor_id):
            await self._strikes.ensure_not_banned(actor_id)
            prior = self._decisions.get(actor_id, {}).get(target_id)
            if prior is None:
                raise NotFoundError(f"No decision by {actor_id} on {target_id}")
            if prior.direction != SwipeDirection.UNSURE:
                return self._repeat_result(prior)
            result = await self._apply_redecision(actor_id, target_id, direction, now or self._clock())

        return await self._settle_like(result)

    async def _apply_redecision(
        self,
        actor_id: str,
        target_id: str,
        direction: SwipeDirection,
        now: datetime,
    ) -> SwipeResult:
        """Replace an unsure decision. Caller holds the actor lock."""
        self._decisions[actor_id][target_id] = SwipeDecision(
            actor_id=actor_id, target_id=target_id, direction=direction, decided_at=now,
        )
        match = None
        if direction == SwipeDirection.LIKE:
            outcome = await self._match_engine.register_like(actor_id, target_id, now)
            match = outcome.match

        logger.info("Unsure %s -> %s re-decided as %s", actor_id, target_id, direction.value)
        return SwipeResult(
            accepted=True,
            actor_id=actor_id,
            target_id=target_id,
            direction=direction,
            redecided=True,
            match=match,
            next_eligible_at=self._cooldowns[actor_id].next_eligible_at,
        )

    async def _settle_like(self, result: SwipeResult) -> SwipeResult:
        """Give an unmatched like the match window. Caller holds no lock."""
        if result.direction != SwipeDirection.LIKE or result.match is not None:
            return result
        match = await self._match_engine.wait_for_match(result.actor_id, result.target_id)
        if match is not None:
            logger.info("Swipe %s -> %s matched within the window", result.actor_id, result.target_id)
            result.match = match
        return result

    def _repeat_result(self, prior: SwipeDecision) -> SwipeResult:
        """Idempotent answer for an already-recorded decision."""
        match = None
        if prior.direction == SwipeDirection.LIKE:
            match = self._match_engine.get_match(prior.actor_id, prior.target_id)
        cooldown = self._cooldowns.get(prior.actor_id)
        return SwipeResult(
            accepted=True,
            actor_id=prior.actor_id,
            target_id=prior.target_id,
            direction=prior.direction,
            duplicate=True,
            match=match,
            next_eligible_at=cooldown.next_eligible_at if cooldown else None,
        )

    # ============ Queries ============

    def get_cooldown(self, actor_id: str) -> CooldownState:
        state = self._cooldowns.get(actor_id)
        return CooldownState(
            user_id=actor_id,
            next_eligible_at=state.next_eligible_at if state else None,
        )

    def get_decision(self, actor_id: str, target_id: str) -> Optional[SwipeDecision]:
        return self._decisions.get(actor_id, {}).get(target_id)

    def decided_targets(self, actor_id: str) -> set[str]:
        return set(self._decisions.get(actor_id, {}))

    def list_unsure(self, actor_id: str) -> list[SwipeDecision]:
        """Unsure decisions awaiting re-decision, oldest first. They never expire."""
        unsure = [
            d for d in self._decisions.get(actor_id, {}).values()
            if d.direction == SwipeDirection.UNSURE
        ]
        unsure.sort(key=lambda d: d.decided_at)
        return unsure

    def received_likes(self, user_id: str) -> list[str]:
        """Who liked ``user_id`` and is still waiting (unless already passed on)."""
        decided = self._decisions.get(user_id, {})
        return [
            liker for liker in self._match_engine.pending_likers(user_id)
            if liker not in decided or decided[liker].direction == SwipeDirection.UNSURE
        ]
