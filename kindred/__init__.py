"""
Kindred: real-time matching and moderated chat.

Public API surface. Import everything you need from here::

    from kindred import ServiceBuilder, MatchChatService, SwipeDirection

Extension points (implement these Protocols to customize):

- ``ProfileStore``: identity and ban flags (default: in-memory)
- ``ContentModerator``: external moderation service
- ``TextGenerator``: Claude, Gemini or any other chat-suggestion backend
- ``Geocoder``: residence to coordinates
- ``EventPusher``: event transport to clients
"""

# -- Service facade --
from kindred.core.service import MatchChatService

# -- Components --
from kindred.core.admission import SwipeAdmissionController
from kindred.core.conversations import ConversationStore
from kindred.core.matching import MatchFormationEngine
from kindred.core.moderation import ModerationGate
from kindred.core.strikes import StrikeLedger

# -- Data models --
from kindred.core.models import (
    Conversation,
    Location,
    Match,
    Message,
    ModerationStatus,
    Preferences,
    Submission,
    SwipeDirection,
    SwipeResult,
    UserProfile,
)

# -- Events --
from kindred.core.events import EventType, KindredEvent

# -- Errors --
from kindred.core.errors import (
    BannedError,
    ConflictError,
    CooldownError,
    KindredError,
    ModerationRejectedError,
    NotFoundError,
    ValidationError,
)

# -- Protocols (contracts for extension) --
from kindred.core.protocols import (
    ContentModerator,
    EventPusher,
    Geocoder,
    ProfileStore,
    TextGenerator,
)

# -- Builder --
from kindred.builder import ServiceBuilder

# -- Default implementations --
from kindred.infra.event_pusher import (
    LoggingEventPusher,
    NullEventPusher,
    WebSocketEventPusher,
)
from kindred.infra.moderators import KeywordContentModerator
from kindred.infra.profile_store import InMemoryProfileStore

__all__ = [
    # Service
    "MatchChatService",
    "ServiceBuilder",
    # Components
    "SwipeAdmissionController",
    "ConversationStore",
    "MatchFormationEngine",
    "ModerationGate",
    "StrikeLedger",
    # Models
    "Conversation",
    "Location",
    "Match",
    "Message",
    "ModerationStatus",
    "Preferences",
    "Submission",
    "SwipeDirection",
    "SwipeResult",
    "UserProfile",
    # Events
    "EventType",
    "KindredEvent",
    # Errors
    "KindredError",
    "BannedError",
    "ConflictError",
    "CooldownError",
    "ModerationRejectedError",
    "NotFoundError",
    "ValidationError",
    # Protocols
    "ContentModerator",
    "EventPusher",
    "Geocoder",
    "ProfileStore",
    "TextGenerator",
    # Default implementations
    "NullEventPusher",
    "LoggingEventPusher",
    "WebSocketEventPusher",
    "KeywordContentModerator",
    "InMemoryProfileStore",
]
