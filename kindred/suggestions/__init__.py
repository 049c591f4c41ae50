from .base import BaseSkill
from .chat import ChatSuggestionSkill, fallback_suggestions, shared_interests
from .service import SuggestionResult, SuggestionService, categories_for

__all__ = [
    "BaseSkill",
    "ChatSuggestionSkill",
    "SuggestionResult",
    "SuggestionService",
    "categories_for",
    "fallback_suggestions",
    "shared_interests",
]
