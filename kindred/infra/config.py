"""
Configuration management using pydantic-settings.

All Kindred settings are loaded from environment variables
with the KINDRED_ prefix.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings


class KindredConfig(BaseSettings):
    """
    Kindred service configuration.

    Environment variables are prefixed with KINDRED_, e.g.:
    - KINDRED_COOLDOWN_SECONDS=30
    - KINDRED_ANTHROPIC_API_KEY=sk-...
    """

    model_config = {"env_prefix": "KINDRED_"}

    # Swipes
    cooldown_seconds: float = 30.0
    # How long a pending like waits for a simultaneous like back
    match_window_seconds: float = 0.5

    # Messages / moderation
    max_message_length: int = 1000
    strike_ban_threshold: int = 3
    moderation_timeout_seconds: float = 5.0
    use_llm_moderation: bool = False

    # Suggestions
    suggestion_provider: str = ""  # "claude" | "gemini" | "" (canned only)
    suggestion_timeout_seconds: float = 15.0

    # Claude
    anthropic_api_key: str = ""
    anthropic_base_url: str = ""
    default_model: str = "claude-sonnet-4-5-20250929"
    max_tokens: int = 1024

    # Gemini
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash-exp"

    # Geocoding
    google_maps_api_key: str = ""

    # API
    cors_origins: str = "*"  # Comma-separated

    def get_base_url(self) -> str | None:
        """Return base URL or None for Anthropic default."""
        return self.anthropic_base_url or None

    def get_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
