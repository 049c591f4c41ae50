"""Tests for KindredConfig."""

from __future__ import annotations

from kindred.infra.config import KindredConfig


class TestKindredConfig:
    def test_default_values(self):
        config = KindredConfig()
        assert config.cooldown_seconds == 30.0
        assert config.match_window_seconds == 0.5
        assert config.max_message_length == 1000
        assert config.strike_ban_threshold == 3
        assert config.moderation_timeout_seconds == 5.0
        assert config.suggestion_provider == ""
        assert config.default_model == "claude-sonnet-4-5-20250929"
        assert config.gemini_model == "gemini-2.0-flash-exp"
        assert not config.use_llm_moderation

    def test_loads_from_env(self, monkeypatch):
        monkeypatch.setenv("KINDRED_COOLDOWN_SECONDS", "10")
        monkeypatch.setenv("KINDRED_MATCH_WINDOW_SECONDS", "2")
        monkeypatch.setenv("KINDRED_STRIKE_BAN_THRESHOLD", "5")
        monkeypatch.setenv("KINDRED_SUGGESTION_PROVIDER", "gemini")
        monkeypatch.setenv("KINDRED_GEMINI_API_KEY", "g-test")
        monkeypatch.setenv("KINDRED_USE_LLM_MODERATION", "true")

        config = KindredConfig()
        assert config.cooldown_seconds == 10.0
        assert config.match_window_seconds == 2.0
        assert config.strike_ban_threshold == 5
        assert config.suggestion_provider == "gemini"
        assert config.gemini_api_key == "g-test"
        assert config.use_llm_moderation

    def test_base_url_none_when_empty(self):
        assert KindredConfig().get_base_url() is None
        assert KindredConfig(anthropic_base_url="https://proxy.local").get_base_url() == "https://proxy.local"

    def test_cors_origins_split(self):
        config = KindredConfig(cors_origins="https://a.example, https://b.example,")
        assert config.get_cors_origins() == ["https://a.example", "https://b.example"]
