"""
Event definitions pushed to clients through the EventPusher.

Every event names its recipients explicitly (user ids). The transport
decides how to reach them; the core never tracks connections.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from .models import Match, Message, StrikeStatus, Submission, generate_id, utc_now


class EventType(str, Enum):
    MATCH_CREATED = "match.created"
    MESSAGE_PENDING = "message.pending"
    MESSAGE_APPROVED = "message.approved"
    MESSAGE_REJECTED = "message.rejected"
    MESSAGE_CREATED = "message.created"
    MESSAGE_DELETED = "message.deleted"
    MESSAGES_READ = "messages.read"
    STRIKE_RECORDED = "strike.recorded"
    USER_BANNED = "user.banned"


@dataclass
class KindredEvent:
    event_type: EventType
    recipients: list[str]
    data: dict[str, Any] = field(default_factory=dict)
    conversation_id: Optional[str] = None
    event_id: str = field(default_factory=lambda: generate_id("evt"))
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.value,
            "recipients": list(self.recipients),
            "conversation_id": self.conversation_id,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
        }


# ============ Factories ============

def match_created(match: Match) -> KindredEvent:
    return KindredEvent(
        event_type=EventType.MATCH_CREATED,
        recipients=list(match.pair),
        conversation_id=match.conversation_id,
        data=match.to_dict(),
    )


def message_pending(submission: Submission) -> KindredEvent:
    return KindredEvent(
        event_type=EventType.MESSAGE_PENDING,
        recipients=[submission.sender_id],
        conversation_id=submission.conversation_id,
        data=submission.to_dict(),
    )


def message_approved(submission: Submission) -> KindredEvent:
    return KindredEvent(
        event_type=EventType.MESSAGE_APPROVED,
        recipients=[submission.sender_id],
        conversation_id=submission.conversation_id,
        data=submission.to_dict(),
    )


def message_rejected(submission: Submission) -> KindredEvent:
    # Only the sender learns about a rejection
    return KindredEvent(
        event_type=EventType.MESSAGE_REJECTED,
        recipients=[submission.sender_id],
        conversation_id=submission.conversation_id,
        data=submission.to_dict(),
    )


def message_created(message: Message, recipients: list[str]) -> KindredEvent:
    return KindredEvent(
        event_type=EventType.MESSAGE_CREATED,
        recipients=recipients,
        conversation_id=message.conversation_id,
        data=message.to_dict(),
    )


def message_deleted(message: Message, recipients: list[str]) -> KindredEvent:
    return KindredEvent(
        event_type=EventType.MESSAGE_DELETED,
        recipients=recipients,
        conversation_id=message.conversation_id,
        data=message.to_dict(),
    )


def messages_read(
    conversation_id: str, reader_id: str, up_to_message_id: Optional[str], recipients: list[str],
) -> KindredEvent:
    return KindredEvent(
        event_type=EventType.MESSAGES_READ,
        recipients=recipients,
        conversation_id=conversation_id,
        data={"reader_id": reader_id, "up_to_message_id": up_to_message_id},
    )


def strike_recorded(status: StrikeStatus, reason: str) -> KindredEvent:
    data = status.to_dict()
    data["reason"] = reason
    return KindredEvent(
        event_type=EventType.STRIKE_RECORDED,
        recipients=[status.user_id],
        data=data,
    )


def user_banned(banned_user_id: str, counterpart_ids: list[str]) -> KindredEvent:
    return KindredEvent(
        event_type=EventType.USER_BANNED,
        recipients=counterpart_ids,
        data={
            "user_id": banned_user_id,
            "notice": "The user you were chatting with has been banned for violating our safety rules.",
        },
    )
