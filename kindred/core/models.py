"""
Core data models for the matching-and-chat system.

These are the fundamental data structures shared across all modules.
They define WHAT the system works with, not HOW it processes them.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from .errors import ValidationError


# ============ ID / Clock Helpers ============

def generate_id(prefix: str = "") -> str:
    """Generate a unique ID with optional prefix."""
    uid = uuid.uuid4().hex[:12]
    return f"{prefix}_{uid}" if prefix else uid


def utc_now() -> datetime:
    """Server clock. The only source of timestamps in the core."""
    return datetime.now(timezone.utc)


def canonical_pair(user_a: str, user_b: str) -> tuple[str, str]:
    """Order-independent key for a pair of users: (min id, max id)."""
    return (user_a, user_b) if user_a <= user_b else (user_b, user_a)


# ============ Users ============

MIN_AGE = 18


@dataclass
class Location:
    """A resolved place. Coordinates are optional until geocoded."""
    label: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }


@dataclass
class Preferences:
    """Who a user wants to see in discovery."""
    min_age: int = MIN_AGE
    max_age: int = 99
    max_distance_km: Optional[float] = None
    sex_preference: Optional[str] = None  # None = everyone

    def to_dict(self) -> dict[str, Any]:
        return {
            "min_age": self.min_age,
            "max_age": self.max_age,
            "max_distance_km": self.max_distance_km,
            "sex_preference": self.sex_preference,
        }


@dataclass
class UserProfile:
    """
    A registered user.

    Required: user_id, name, age. Everything else is optional.
    Never hard-deleted; a ban is a flag (soft ban).
    """
    user_id: str
    name: str
    age: int
    sex: Optional[str] = None
    bio: str = ""
    interests: list[str] = field(default_factory=list)
    photos: list[str] = field(default_factory=list)
    location: Optional[Location] = None
    preferences: Preferences = field(default_factory=Preferences)
    strikes: int = 0
    banned: bool = False
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        if not self.user_id:
            raise ValidationError("user_id is required")
        if not self.name or not self.name.strip():
            raise ValidationError("name is required")
        if not isinstance(self.age, int) or self.age < MIN_AGE:
            raise ValidationError(f"age must be an integer >= {MIN_AGE}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserProfile:
        """Build a profile from loosely-typed input, validating required fields."""
        for key in ("user_id", "name", "age"):
            if key not in data or data[key] in (None, ""):
                raise ValidationError(f"{key} is required")

        location = data.get("location")
        if isinstance(location, dict):
            location = Location(**location)

        preferences = data.get("preferences") or Preferences()
        if isinstance(preferences, dict):
            preferences = Preferences(**preferences)

        return cls(
            user_id=str(data["user_id"]),
            name=str(data["name"]),
            age=data["age"],
            sex=data.get("sex"),
            bio=data.get("bio") or "",
            interests=list(data.get("interests") or []),
            photos=list(data.get("photos") or []),
            location=location,
            preferences=preferences,
            strikes=int(data.get("strikes", 0)),
            banned=bool(data.get("banned", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "name": self.name,
            "age": self.age,
            "sex": self.sex,
            "bio": self.bio,
            "interests": list(self.interests),
            "photos": list(self.photos),
            "location": self.location.to_dict() if self.location else None,
            "preferences": self.preferences.to_dict(),
            "strikes": self.strikes,
            "banned": self.banned,
            "created_at": self.created_at.isoformat(),
        }


# ============ Swipes ============

class SwipeDirection(str, Enum):
    LIKE = "like"
    PASS = "pass"
    UNSURE = "unsure"


@dataclass(frozen=True)
class SwipeDecision:
    """A recorded decision. Immutable once recorded."""
    actor_id: str
    target_id: str
    direction: SwipeDirection
    decided_at: datetime


@dataclass
class CooldownState:
    """Per-user swipe cooldown. Mutated on every accepted swipe."""
    user_id: str
    next_eligible_at: Optional[datetime] = None

    def is_cooling_down(self, now: datetime) -> bool:
        return self.next_eligible_at is not None and now < self.next_eligible_at

    def remaining_seconds(self, now: datetime) -> float:
        if not self.is_cooling_down(now):
            return 0.0
        return (self.next_eligible_at - now).total_seconds()


# ============ Matches ============

@dataclass
class Match:
    """Mutual like between two users. user_a < user_b (canonical order)."""
    match_id: str
    user_a: str
    user_b: str
    conversation_id: str
    created_at: datetime = field(default_factory=utc_now)

    @property
    def pair(self) -> tuple[str, str]:
        return (self.user_a, self.user_b)

    def involves(self, user_id: str) -> bool:
        return user_id in self.pair

    def other(self, user_id: str) -> str:
        return self.user_b if user_id == self.user_a else self.user_a

    def to_dict(self) -> dict[str, Any]:
        return {
            "match_id": self.match_id,
            "user_a": self.user_a,
            "user_b": self.user_b,
            "conversation_id": self.conversation_id,
            "created_at": self.created_at.isoformat(),
        }


class LikeStatus(str, Enum):
    CREATED = "created"        # This like completed the pair
    PENDING = "pending"        # Waiting for the reverse like
    EXISTING = "existing"      # Pair already matched (lost race / repeat)
    SUPPRESSED = "suppressed"  # A participant is banned; silent no-op


@dataclass
class LikeOutcome:
    status: LikeStatus
    match: Optional[Match] = None

    @property
    def matched(self) -> bool:
        return self.match is not None


@dataclass
class SwipeResult:
    """Result of an admitted swipe (or of an idempotent repeat)."""
    accepted: bool
    actor_id: str
    target_id: str
    direction: SwipeDirection
    duplicate: bool = False
    redecided: bool = False
    match: Optional[Match] = None
    next_eligible_at: Optional[datetime] = None

    @property
    def matched(self) -> bool:
        return self.match is not None


# ============ Messages ============

class ModerationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


REDACTED_TEXT = None  # Tombstoned messages serialize with no text


@dataclass
class Message:
    """
    One message in a conversation. Append-only.

    Deletion is a tombstone: the record keeps its place in the order
    and in cursors, but serializes without text.
    """
    message_id: str
    conversation_id: str
    sender_id: str
    text: str
    created_at: datetime
    seq: int
    status: ModerationStatus = ModerationStatus.APPROVED
    deleted: bool = False

    @property
    def sort_key(self) -> tuple[datetime, str]:
        return (self.created_at, self.message_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "message_id": self.message_id,
            "conversation_id": self.conversation_id,
            "sender_id": self.sender_id,
            "text": REDACTED_TEXT if self.deleted else self.text,
            "created_at": self.created_at.isoformat(),
            "seq": self.seq,
            "status": self.status.value,
            "deleted": self.deleted,
        }


@dataclass
class Conversation:
    """1:1 with a Match. Holds the ordered message log and read state."""
    conversation_id: str
    match_id: str
    participants: tuple[str, str]
    created_at: datetime = field(default_factory=utc_now)
    messages: list[Message] = field(default_factory=list)
    last_message_at: Optional[datetime] = None
    unread: dict[str, int] = field(default_factory=dict)
    read_cursors: dict[str, Optional[str]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for user_id in self.participants:
            self.unread.setdefault(user_id, 0)
            self.read_cursors.setdefault(user_id, None)

    def has_participant(self, user_id: str) -> bool:
        return user_id in self.participants

    def other_participant(self, user_id: str) -> str:
        a, b = self.participants
        return b if user_id == a else a

    @property
    def last_message(self) -> Optional[Message]:
        return self.messages[-1] if self.messages else None

    def summary(self, user_id: str) -> dict[str, Any]:
        """Conversation list entry as seen by one participant."""
        last = self.last_message
        return {
            "conversation_id": self.conversation_id,
            "match_id": self.match_id,
            "other_user_id": self.other_participant(user_id),
            "last_message": last.to_dict() if last else None,
            "last_message_at": self.last_message_at.isoformat() if self.last_message_at else None,
            "unread_count": self.unread.get(user_id, 0),
        }


# ============ Moderation ============

@dataclass
class ModerationVerdict:
    """External moderator's answer for one text."""
    allowed: bool
    reason: Optional[str] = None


@dataclass
class Submission:
    """
    A staged outgoing message.

    pending -> approved (message persisted) or pending -> rejected (discarded).
    """
    submission_id: str
    conversation_id: str
    sender_id: str
    text: str
    status: ModerationStatus = ModerationStatus.PENDING
    reason: Optional[str] = None
    message: Optional[Message] = None
    created_at: datetime = field(default_factory=utc_now)
    decided_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "submission_id": self.submission_id,
            "conversation_id": self.conversation_id,
            "sender_id": self.sender_id,
            "status": self.status.value,
            "reason": self.reason,
            "message": self.message.to_dict() if self.message else None,
            "created_at": self.created_at.isoformat(),
            "decided_at": self.decided_at.isoformat() if self.decided_at else None,
        }


@dataclass
class ModerationOutcome:
    """Final verdict of one submission."""
    status: ModerationStatus
    submission_id: str
    message: Optional[Message] = None
    reason: Optional[str] = None

    @property
    def approved(self) -> bool:
        return self.status == ModerationStatus.APPROVED


# ============ Strikes ============

@dataclass
class StrikeStatus:
    user_id: str
    strikes: int
    banned: bool
    threshold: int = 3

    @property
    def strikes_remaining(self) -> int:
        return max(self.threshold - self.strikes, 0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "strikes": self.strikes,
            "banned": self.banned,
            "strikes_remaining": self.strikes_remaining,
        }


@dataclass
class StrikeRecord:
    """Audit entry for one moderation violation."""
    user_id: str
    reason: str
    excerpt: str
    strike_count: int
    banned: bool
    recorded_at: datetime = field(default_factory=utc_now)
