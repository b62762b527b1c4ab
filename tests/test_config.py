"""
Unit tests for AppConfig environment variable loading.
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from duologue.config import AppConfig

ENV_VARS = (
    "LLM_API_KEY", "LLM_BASE_URL", "LLM_MODEL", "LLM_MAX_TOKENS", "LLM_TEMPERATURE",
    "LLM_TIMEOUT", "MAX_TURNS", "CONTEXT_LIMIT", "OPENING_LINE", "FALLBACK_REPLY",
    "TURN_MIN_DELAY", "TURN_MAX_DELAY", "FOLLOW_UP_DELAY", "LIVE_MODE",
    "SERVER_HOST", "SERVER_PORT", "PORT", "HEARTBEAT_INTERVAL", "CHANNEL_QUEUE_SIZE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("duologue.config.load_dotenv", lambda: False)


class TestAppConfig:
    """Tests for AppConfig.from_env()."""

    def test_default_values(self):
        """Config should have sensible defaults without env vars."""
        config = AppConfig()
        assert config.conversation.max_turns == 100
        assert config.conversation.context_limit == 10
        assert config.conversation.opening_line == "Hello!"
        assert config.scheduler.min_delay == 5.0
        assert config.scheduler.max_delay == 10.0
        assert config.scheduler.follow_up_delay == 2.0
        assert config.llm.model == "deepseek-chat"
        assert config.server.port == 3000

    def test_from_env_llm(self, monkeypatch):
        """LLM config should load from environment variables."""
        monkeypatch.setenv("LLM_API_KEY", "test-key-123")
        monkeypatch.setenv("LLM_BASE_URL", "https://api.test.com/v1")
        monkeypatch.setenv("LLM_MODEL", "gpt-4o")
        monkeypatch.setenv("LLM_TEMPERATURE", "0.2")
        config = AppConfig.from_env()
        assert config.llm.api_key == "test-key-123"
        assert config.llm.base_url == "https://api.test.com/v1"
        assert config.llm.model == "gpt-4o"
        assert config.llm.temperature == 0.2

    def test_from_env_conversation(self, monkeypatch):
        monkeypatch.setenv("MAX_TURNS", "50")
        monkeypatch.setenv("OPENING_LINE", "Good evening.")
        config = AppConfig.from_env()
        assert config.conversation.max_turns == 50
        assert config.conversation.opening_line == "Good evening."

    def test_from_env_scheduler(self, monkeypatch):
        monkeypatch.setenv("TURN_MIN_DELAY", "1.5")
        monkeypatch.setenv("TURN_MAX_DELAY", "3")
        monkeypatch.setenv("LIVE_MODE", "off")
        config = AppConfig.from_env()
        assert config.scheduler.min_delay == 1.5
        assert config.scheduler.max_delay == 3.0
        assert config.scheduler.autostart is False

    def test_from_env_server(self, monkeypatch):
        """Server config should load from environment variables."""
        monkeypatch.setenv("SERVER_HOST", "127.0.0.1")
        monkeypatch.setenv("SERVER_PORT", "9999")
        config = AppConfig.from_env()
        assert config.server.host == "127.0.0.1"
        assert config.server.port == 9999

    def test_port_fallback(self, monkeypatch):
        monkeypatch.setenv("PORT", "8080")
        assert AppConfig.from_env().server.port == 8080

    def test_from_env_defaults_without_env(self):
        """Without env vars set, from_env should return defaults."""
        config = AppConfig.from_env()
        assert config.llm.api_key == ""
        assert config.server.host == "0.0.0.0"
        assert config.scheduler.autostart is True
        assert config.llm.base_url == "https://api.deepseek.com/v1"
