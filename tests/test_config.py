"""
Tests for configuration module.
"""

import os
from unittest.mock import patch

from huddle_agent.config import (
    DEFAULT_CHAT_PROMPT,
    LLMConfig,
    Settings,
    load_prompt,
)


def test_settings_default_values():
    """Test that settings have sensible defaults."""
    with patch.dict(os.environ, {}, clear=True):
        settings = Settings(_env_file=None)

        assert settings.app_name == "Huddle-Agent"
        assert settings.default_provider == "openai"
        assert settings.merge_window_seconds == 60
        assert settings.buffer_retention_days == 6
        assert settings.buffer_max_messages == 50
        assert settings.file_store_capacity == 100
        assert settings.max_summary_boundaries == 3
        assert settings.compress_message_threshold == 64
        assert settings.model_timeout_seconds == 45.0


def test_settings_from_env():
    """Test loading settings from environment variables."""
    env = {
        "TELEGRAM_BOT_TOKEN": "test_token",
        "ANTHROPIC_API_KEY": "test_anthropic_key",
        "DEFAULT_PROVIDER": "anthropic",
        "CHAT_MODEL": "claude-opus-4",
        "ENABLE_WEATHER": "false",
        "LOG_LEVEL": "debug",
    }

    with patch.dict(os.environ, env, clear=True):
        settings = Settings(_env_file=None)

        assert settings.telegram_bot_token == "test_token"
        assert settings.anthropic_api_key == "test_anthropic_key"
        assert settings.chat_model == "claude-opus-4"
        assert settings.enable_weather is False
        assert settings.log_level == "DEBUG"


def test_get_llm_config():
    """Test getting LLM configuration."""
    env = {
        "ANTHROPIC_API_KEY": "test_key",
        "DEFAULT_PROVIDER": "anthropic",
    }

    with patch.dict(os.environ, env, clear=True):
        settings = Settings(_env_file=None)
        config = settings.get_llm_config()

        assert isinstance(config, LLMConfig)
        assert config.provider == "anthropic"
        assert config.api_key == "test_key"
        assert "claude" in config.model.lower()


def test_get_llm_config_openrouter():
    """Test OpenRouter gets its OpenAI-compatible base URL."""
    with patch.dict(os.environ, {"OPENROUTER_API_KEY": "or_key"}, clear=True):
        settings = Settings(_env_file=None)
        config = settings.get_llm_config("openrouter")

        assert config.api_key == "or_key"
        assert config.base_url == "https://openrouter.ai/api/v1"


def test_summary_config_uses_summary_model():
    """Test the summary model overrides the chat model."""
    with patch.dict(os.environ, {}, clear=True):
        settings = Settings(_env_file=None, chat_model="gpt-4o", summary_model="gpt-4o-mini")

        assert settings.get_llm_config().model == "gpt-4o"
        assert settings.get_summary_llm_config().model == "gpt-4o-mini"


def test_check_reports_missing_keys():
    """Test configuration problems are listed."""
    with patch.dict(os.environ, {}, clear=True):
        settings = Settings(_env_file=None)
        problems = settings.check()

        assert any("TELEGRAM_BOT_TOKEN" in p for p in problems)
        assert any("openai" in p for p in problems)


def test_check_passes_with_keys(settings):
    """Test a complete configuration has no problems."""
    assert settings.check() == []


def test_load_prompt_from_file(tmp_path):
    """Test prompt files are read and stripped."""
    prompt_file = tmp_path / "chat.txt"
    prompt_file.write_text("  You are a test bot.\n\n", encoding="utf-8")

    assert load_prompt(str(prompt_file), DEFAULT_CHAT_PROMPT) == "You are a test bot."


def test_load_prompt_falls_back(tmp_path):
    """Test missing prompt files fall back to the default."""
    assert load_prompt(str(tmp_path / "missing.txt"), "fallback") == "fallback"
