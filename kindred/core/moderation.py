"""
Moderation gate: screens outgoing messages before they become visible.

Every message is staged as a pending Submission, then:

    pending -> approved  (appended to the conversation, visible to the recipient)
    pending -> rejected  (discarded, sender receives a strike)

The synchronous pre-check (length, violent-threat patterns) runs first;
the external moderator is awaited afterwards with a bounded timeout and
no lock held. A timeout or moderator failure is a rejection (fail closed).
Rejections are final; the sender re-submits edited text as a new submission.
"""

from __future__ import annotations

import asyncio
import logging
import re
from datetime import datetime
from typing import Optional

from .conversations import ConversationStore, validate_message_text
from .errors import ModerationError, NotFoundError
from .events import message_approved, message_pending, message_rejected
from .models import ModerationOutcome, ModerationStatus, Submission, generate_id, utc_now
from .protocols import Clock, ContentModerator, EventPusher
from .strikes import StrikeLedger

logger = logging.getLogger(__name__)

DEFAULT_MODERATION_TIMEOUT_S = 5.0

VALID_TRANSITIONS: dict[ModerationStatus, set[ModerationStatus]] = {
    ModerationStatus.PENDING: {ModerationStatus.APPROVED, ModerationStatus.REJECTED},
    ModerationStatus.APPROVED: set(),  # Terminal
    ModerationStatus.REJECTED: set(),  # Terminal
}

# Rejection reasons
REASON_THREAT = "explicit_violent_language"
REASON_TIMEOUT = "moderation_timeout"
REASON_UNAVAILABLE = "moderation_unavailable"
REASON_POLICY = "content_policy"
REASON_SENDER_BANNED = "sender_banned"


# ============ Synchronous Pre-check ============

_TARGETS = r"(?:you|them|him|her)"
_THREAT_VERBS = (
    r"kill|murder|shoot|stab|strangle|choke|drown|poison|beat|burn|punch|hit|"
    r"break|cut|slit|blow|run over|put a bullet"
)

THREAT_PATTERNS: list[re.Pattern[str]] = [
    re.compile(rf"\b(?:kill|murder|shoot|stab|strangle|choke|drown|poison)\s+{_TARGETS}\b"),
    re.compile(rf"\bbeat\s+{_TARGETS}\s+to\s+death\b"),
    re.compile(rf"\bburn\s+{_TARGETS}\s+alive\b"),
    re.compile(rf"\brun\s+{_TARGETS}\s+over\b"),
    re.compile(rf"\bhit\s+{_TARGETS}\s+with\b"),
    re.compile(rf"\bpunch\s+{_TARGETS}\s+in\s+the\s+face\b"),
    re.compile(r"\bbreak\s+(?:your|their|his|her)\s+neck\b"),
    re.compile(r"\b(?:cut|slit)\s+(?:your|their|his|her)\s+throat\b"),
    re.compile(r"\bblow\s+(?:your|their|his|her)\s+head\s+off\b"),
    re.compile(rf"\bput\s+a\s+bullet\s+in\s+{_TARGETS}\b"),
    re.compile(rf"\b(?:i\s+will|i'll|going\s+to|gonna)\s+(?:{_THREAT_VERBS})\b"),
]


def prescreen(text: str) -> Optional[str]:
    """Return a rejection reason if the text matches a banned-content pattern."""
    lowered = text.lower()
    for pattern in THREAT_PATTERNS:
        if pattern.search(lowered):
            return REASON_THREAT
    return None


# ============ Gate ============

class ModerationGate:
    """Stages, moderates and finalizes outgoing messages."""

    def __init__(
        self,
        conversation_store: ConversationStore,
        strike_ledger: StrikeLedger,
        moderator: ContentModerator,
        event_pusher: EventPusher,
        clock: Clock = utc_now,
        timeout_s: float = DEFAULT_MODERATION_TIMEOUT_S,
    ):
        self._conversations = conversation_store
        self._strikes = strike_ledger
        self._moderator = moderator
        self._event_pusher = event_pusher
        self._clock = clock
        self._timeout_s = timeout_s
        self._submissions: dict[str, Submission] = {}
        self._tasks: dict[str, asyncio.Task] = {}

    # ============ Public API ============

    async def submit(
        self,
        conversation_id: str,
        sender_id: str,
        text: str,
        now: Optional[datetime] = None,
    ) -> ModerationOutcome:
        """
        Moderate and, if approved, persist one message. Waits for the verdict.

        Raises BannedError, NotFoundError or ValidationError before anything
        is staged; a content rejection is returned, not raised.
        """
        submission = await self._open(conversation_id, sender_id, text, now)
        return await self._finalize(submission, now)

    async def stage(
        self,
        conversation_id: str,
        sender_id: str,
        text: str,
        now: Optional[datetime] = None,
    ) -> Submission:
        """
        Stage a message and return the pending submission immediately.

        The verdict arrives later as a message.approved / message.rejected
        event and through get_submission().
        """
        submission = await self._open(conversation_id, sender_id, text, now)
        task = asyncio.create_task(self._finalize(submission, now))
        self._tasks[submission.submission_id] = task
        task.add_done_callback(
            lambda t, sid=submission.submission_id: self._on_task_done(sid, t)
        )
        return submission

    def get_submission(self, submission_id: str) -> Submission:
        submission = self._submissions.get(submission_id)
        if submission is None:
            raise NotFoundError(f"Submission {submission_id} not found")
        return submission

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every staged submission to reach a verdict."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    # ============ Steps ============

    async def _open(
        self,
        conversation_id: str,
        sender_id: str,
        text: str,
        now: Optional[datetime],
    ) -> Submission:
        await self._strikes.ensure_not_banned(sender_id)
        self._conversations.get_participant_conversation(conversation_id, sender_id)
        validate_message_text(text, self._conversations.max_message_length)

        submission = Submission(
            submission_id=generate_id("sub"),
            conversation_id=conversation_id,
            sender_id=sender_id,
            text=text,
            created_at=now or self._clock(),
        )
        self._submissions[submission.submission_id] = submission
        await self._event_pusher.push(message_pending(submission))
        return submission

    async def _finalize(
        self, submission: Submission, now: Optional[datetime],
    ) -> ModerationOutcome:
        reason = prescreen(submission.text)
        if reason is None:
            reason = await self._call_moderator(submission)
        if reason is not None:
            return await self._reject(submission, reason)

        # Banned while the moderator was thinking: discard without another strike
        if await self._strikes.is_banned(submission.sender_id):
            self._transition(submission, ModerationStatus.REJECTED)
            submission.reason = REASON_SENDER_BANNED
            submission.decided_at = self._clock()
            await self._event_pusher.push(message_rejected(submission))
            return ModerationOutcome(
                status=ModerationStatus.REJECTED,
                submission_id=submission.submission_id,
                reason=REASON_SENDER_BANNED,
            )

        message = await self._conversations.append_message(
            submission.conversation_id, submission.sender_id, submission.text, now,
        )
        self._transition(submission, ModerationStatus.APPROVED)
        submission.message = message
        submission.decided_at = self._clock()

        logger.info(
            "Submission %s approved as %s", submission.submission_id, message.message_id,
        )
        await self._event_pusher.push(message_approved(submission))
        return ModerationOutcome(
            status=ModerationStatus.APPROVED,
            submission_id=submission.submission_id,
            message=message,
        )

    async def _call_moderator(self, submission: Submission) -> Optional[str]:
        """Ask the external moderator. Returns a rejection reason or None."""
        try:
            verdict = await asyncio.wait_for(
                self._moderator.moderate(submission.text), timeout=self._timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Moderation timed out after %.1fs for submission %s, rejecting",
                self._timeout_s, submission.submission_id,
            )
            return REASON_TIMEOUT
        except Exception as e:
            logger.error(
                "Moderator failed for submission %s, rejecting: %s",
                submission.submission_id, e,
            )
            return REASON_UNAVAILABLE

        if verdict.allowed:
            return None
        return verdict.reason or REASON_POLICY

    async def _reject(self, submission: Submission, reason: str) -> ModerationOutcome:
        self._transition(submission, ModerationStatus.REJECTED)
        submission.reason = reason
        submission.decided_at = self._clock()

        logger.info(
            "Submission %s from %s rejected: %s",
            submission.submission_id, submission.sender_id, reason,
        )
        await self._strikes.record_strike(
            submission.sender_id, reason=reason, excerpt=submission.text,
        )
        await self._event_pusher.push(message_rejected(submission))
        return ModerationOutcome(
            status=ModerationStatus.REJECTED,
            submission_id=submission.submission_id,
            reason=reason,
        )

    # ============ State Machine ============

    @staticmethod
    def _transition(submission: Submission, new_status: ModerationStatus) -> None:
        allowed = VALID_TRANSITIONS.get(submission.status, set())
        if new_status not in allowed:
            raise ModerationError(
                f"Invalid submission transition: {submission.status.value} -> {new_status.value}"
            )
        submission.status = new_status

    def _on_task_done(self, submission_id: str, task: asyncio.Task) -> None:
        self._tasks.pop(submission_id, None)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Staged submission %s failed: %s", submission_id, exc, exc_info=exc)
