"""
Tests for the agent manager.
"""

from unittest.mock import MagicMock

import pytest

from huddle_agent.agent import AgentManager
from huddle_agent.tools import ToolRegistry


def make_manager(llm, settings, **kwargs) -> AgentManager:
    return AgentManager(
        llm=llm,
        tool_registry=ToolRegistry(),
        settings=settings,
        system_prompt="You are a test bot.",
        summarize_prompt="Summarize.",
        **kwargs,
    )


def test_one_agent_per_channel(make_llm, settings):
    manager = make_manager(make_llm(), settings)

    first = manager.get_or_create("a")
    again = manager.get_or_create("a")
    other = manager.get_or_create("b")

    assert first is again
    assert first is not other
    assert first.file_store is not other.file_store
    assert len(manager) == 2


def test_prompts_loaded_from_files(make_llm, settings, tmp_path):
    prompt_file = tmp_path / "chat.txt"
    prompt_file.write_text("Custom chat prompt", encoding="utf-8")
    settings.prompt_file = str(prompt_file)
    settings.summarize_prompt_file = str(tmp_path / "missing.txt")

    manager = AgentManager(llm=make_llm(), tool_registry=ToolRegistry(), settings=settings)

    assert manager.system_prompt == "Custom chat prompt"
    assert "summarize" in manager.summarize_prompt.lower()
    assert manager.get_or_create("a").context.messages[0].content == "Custom chat prompt"


def test_chat_db_only_with_storage(make_llm, settings):
    without = make_manager(make_llm(), settings)
    assert without.get_or_create("a").chat_db is None

    with_storage = make_manager(make_llm(), settings, session_maker=MagicMock(), embedder=MagicMock())
    agent = with_storage.get_or_create("a")
    assert agent.chat_db is not None
    assert agent.chat_db.channel_id == "a"
    assert agent.tool_context.chat_db is agent.chat_db


@pytest.mark.asyncio
async def test_chat_routes_to_channel(make_llm, make_message, settings):
    manager = make_manager(make_llm("hello a", "hello b"), settings)

    assert await manager.chat("a", [make_message("hi from a")]) == "hello a"
    assert await manager.chat("b", [make_message("hi from b")]) == "hello b"

    assert manager.is_chatting("a")
    assert not manager.is_thinking("a")
    assert "hi from b" not in manager.get("a").context.text_history


@pytest.mark.asyncio
async def test_compress_unknown_channel(make_llm, settings):
    manager = make_manager(make_llm(), settings)

    assert await manager.compress("nope") is None
    assert not manager.is_thinking("nope")
    assert not manager.is_chatting("nope")


@pytest.mark.asyncio
async def test_compress_uses_summary_llm(make_llm, make_message, settings):
    summary_llm = make_llm("Short summary.")
    manager = make_manager(make_llm("hi"), settings, summary_llm=summary_llm)
    await manager.chat("a", [make_message()])

    assert await manager.compress("a") == "Short summary."
    summary_llm.generate.assert_awaited_once()


def test_evict(make_llm, settings):
    manager = make_manager(make_llm(), settings)
    agent = manager.get_or_create("a")

    assert manager.evict("a") is True
    assert "a" not in manager
    assert manager.evict("a") is False
    assert manager.get_or_create("a") is not agent
