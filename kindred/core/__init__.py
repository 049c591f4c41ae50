"""Core layer: admission, matching, conversations, moderation, strikes."""

from .errors import (
    KindredError,
    BannedError,
    ConfigError,
    ConflictError,
    CooldownError,
    GenerationError,
    GeocodingError,
    ModerationError,
    ModerationRejectedError,
    NotFoundError,
    ValidationError,
)
from .events import EventType, KindredEvent
from .models import (
    Conversation,
    CooldownState,
    LikeOutcome,
    LikeStatus,
    Location,
    Match,
    Message,
    ModerationOutcome,
    ModerationStatus,
    ModerationVerdict,
    Preferences,
    StrikeRecord,
    StrikeStatus,
    Submission,
    SwipeDecision,
    SwipeDirection,
    SwipeResult,
    UserProfile,
    canonical_pair,
    generate_id,
    utc_now,
)
from .protocols import (
    Clock,
    ContentModerator,
    EventPusher,
    Geocoder,
    ProfileStore,
    TextGenerator,
)
from .admission import SwipeAdmissionController
from .conversations import ConversationStore
from .matching import MatchFormationEngine
from .moderation import ModerationGate
from .service import MatchChatService
from .strikes import StrikeLedger

__all__ = [
    "KindredError", "BannedError", "ConfigError", "ConflictError", "CooldownError",
    "GenerationError", "GeocodingError", "ModerationError", "ModerationRejectedError",
    "NotFoundError", "ValidationError",
    "EventType", "KindredEvent",
    "Conversation", "CooldownState", "LikeOutcome", "LikeStatus", "Location", "Match",
    "Message", "ModerationOutcome", "ModerationStatus", "ModerationVerdict", "Preferences",
    "StrikeRecord", "StrikeStatus", "Submission", "SwipeDecision", "SwipeDirection",
    "SwipeResult", "UserProfile", "canonical_pair", "generate_id", "utc_now",
    "Clock", "ContentModerator", "EventPusher", "Geocoder", "ProfileStore", "TextGenerator",
    "SwipeAdmissionController", "ConversationStore", "MatchFormationEngine",
    "ModerationGate", "MatchChatService", "StrikeLedger",
]
