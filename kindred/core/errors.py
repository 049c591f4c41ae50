"""
Unified exception hierarchy for the Kindred system.

All exceptions inherit from KindredError. Each carries a stable ``code``
and an HTTP status so the API layer can map any failure without
knowing where it came from. Every failure is scoped to one request.
"""

from __future__ import annotations


class KindredError(Exception):
    """Base exception for all Kindred errors."""
    code = "kindred_error"
    http_status = 500


class CooldownError(KindredError):
    """Swipe attempted before the user's cooldown window elapsed. Retry later."""
    code = "cooldown"
    http_status = 429

    def __init__(self, message: str, retry_after_seconds: float = 0.0):
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class BannedError(KindredError):
    """User is banned. Terminal for the session, no retry."""
    code = "banned"
    http_status = 403


class ValidationError(KindredError):
    """Client-correctable input error (empty/too long message, self-swipe, ...)."""
    code = "validation_error"
    http_status = 422


class ModerationRejectedError(KindredError):
    """Message blocked by moderation. Client must edit and resubmit."""
    code = "moderation_rejected"
    http_status = 422

    def __init__(self, message: str, reason: str = ""):
        super().__init__(message)
        self.reason = reason


class NotFoundError(KindredError):
    """Unknown user, conversation, message or cursor. Not retryable."""
    code = "not_found"
    http_status = 404


class ConflictError(KindredError):
    """Lost a duplicate race. Success-equivalent inside the core."""
    code = "conflict"
    http_status = 409


class ModerationError(KindredError):
    """Invalid submission state transition or moderator failure."""
    code = "moderation_error"
    http_status = 500


class GenerationError(KindredError):
    """Text generation (Claude / Gemini) call failure."""
    code = "generation_error"
    http_status = 502


class GeocodingError(KindredError):
    """Geocoding service call failure."""
    code = "geocoding_error"
    http_status = 502


class ConfigError(KindredError):
    """Configuration error (missing env vars, invalid config, etc.)."""
    code = "config_error"
    http_status = 500
