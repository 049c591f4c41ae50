from .config import KindredConfig
from .event_pusher import LoggingEventPusher, NullEventPusher, WebSocketEventPusher
from .gemini_client import GeminiTextClient
from .geocoding import GoogleGeocoder
from .llm_client import ClaudeTextClient
from .moderators import KeywordContentModerator, LLMContentModerator
from .profile_store import InMemoryProfileStore
from .ws_manager import WebSocketManager

__all__ = [
    "KindredConfig",
    "LoggingEventPusher",
    "NullEventPusher",
    "WebSocketEventPusher",
    "GeminiTextClient",
    "GoogleGeocoder",
    "ClaudeTextClient",
    "KeywordContentModerator",
    "LLMContentModerator",
    "InMemoryProfileStore",
    "WebSocketManager",
]
