"""
Module-boundary Protocol definitions: the contracts with external collaborators.

These Protocols define WHAT each collaborator must do, not HOW.
Any implementation that satisfies the Protocol can be used interchangeably:
an in-memory store in tests, a managed database in production.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from .events import KindredEvent
from .models import Location, ModerationVerdict, UserProfile


# Server clock. Client-supplied timestamps are never trusted.
Clock = Callable[[], datetime]


# ============ Identity / Profile Store ============

@runtime_checkable
class ProfileStore(Protocol):
    """
    Authoritative store for profiles and ban flags.

    get_profile raises NotFoundError for unknown users.
    """

    async def get_profile(self, user_id: str) -> UserProfile:
        ...

    async def update_profile(self, user_id: str, fields: dict[str, Any]) -> UserProfile:
        """Apply a partial update. Unknown field names raise ValidationError."""
        ...

    async def create_profile(self, profile: UserProfile) -> UserProfile:
        """Register a new profile. Duplicate ids raise ConflictError."""
        ...

    async def list_profiles(self) -> list[UserProfile]:
        ...


# ============ Content Moderation ============

@runtime_checkable
class ContentModerator(Protocol):
    """External moderation service. Callers bound it with a timeout."""

    async def moderate(self, text: str) -> ModerationVerdict:
        ...


# ============ Text Generation ============

@runtime_checkable
class TextGenerator(Protocol):
    """
    AI text generation (Claude, Gemini, ...).

    Purely advisory, never on the critical path of message delivery.
    """

    async def generate(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        ...


# ============ Geocoding ============

@runtime_checkable
class Geocoder(Protocol):
    """Resolves free text to coordinates. Returns None when nothing matches."""

    async def geocode(self, query: str) -> Optional[Location]:
        ...


# ============ Event Pusher ============

@runtime_checkable
class EventPusher(Protocol):
    """
    Pushes events to subscribed clients.

    The core pushes ALL events; the product layer decides what to display.
    """

    async def push(self, event: KindredEvent) -> None:
        """Push a single event."""
        ...

    async def push_many(self, events: list[KindredEvent]) -> None:
        """Push multiple events."""
        ...
