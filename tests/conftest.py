"""
Shared fixtures.
"""

import os
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from huddle_agent.chat.message import ChatMessage
from huddle_agent.config import Settings
from huddle_agent.llm.base import BaseLLM, LLMResponse


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    with patch.dict(os.environ, {}, clear=True):
        return Settings(
            _env_file=None,
            telegram_bot_token="123:test-token",
            openai_api_key="sk-test-openai-key",
            model_timeout_seconds=5.0,
        )


@pytest.fixture
def make_llm():
    """Build a mock LLM whose ``generate`` yields the given replies in order.

    Strings become LLMResponses; responses and exceptions are used as-is.
    """
    def factory(*replies):
        side_effect = [
            LLMResponse(content=reply) if isinstance(reply, str) else reply
            for reply in replies
        ]
        llm = MagicMock(spec=BaseLLM)
        llm.generate = AsyncMock(side_effect=side_effect)
        return llm

    return factory


@pytest.fixture
def make_message():
    """Build a ChatMessage with sensible defaults."""
    def factory(content: str = "hello", author_id: str = "100", author: str = "Alice", **kwargs):
        kwargs.setdefault("date", datetime(2024, 5, 1, 15, 5, tzinfo=timezone.utc))
        return ChatMessage(author_id=author_id, author=author, content=content, **kwargs)

    return factory
