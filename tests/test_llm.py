"""
Tests for LLM providers and the factory.
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from huddle_agent.config import LLMConfig
from huddle_agent.llm import (
    AnthropicLLM,
    ImagePart,
    LLMMessage,
    OpenAILLM,
    TextPart,
    ToolCall,
    ToolDefinition,
    create_llm,
    message_images,
    message_text,
)

SEARCH_TOOL = ToolDefinition(
    name="search_internet",
    description="Search",
    parameters={"type": "object", "properties": {"query": {"type": "string"}}, "required": ["query"]},
)


def conversation() -> list[LLMMessage]:
    return [
        LLMMessage(role="system", content="You are a bot."),
        LLMMessage(
            role="user",
            content=[TextPart("Alice - 3:05 PM\nlook"), ImagePart("data:image/png;base64,AAAA")],
            name="alice_1",
        ),
        LLMMessage(
            role="assistant",
            content="",
            tool_calls=[ToolCall(id="call_1", name="search_internet", arguments='{"query": "cats"}')],
        ),
        LLMMessage(role="tool", content="results", tool_call_id="call_1", name="search_internet"),
    ]


def test_message_helpers():
    message = conversation()[1]

    assert message_text(message) == "Alice - 3:05 PM\nlook"
    assert message_images(message) == ["data:image/png;base64,AAAA"]
    assert message_images(LLMMessage(role="user", content="plain")) == []


def test_openai_message_conversion():
    llm = OpenAILLM(api_key="sk-test")
    converted = llm._convert_messages(conversation())

    assert converted[0] == {"role": "system", "content": "You are a bot."}
    assert converted[1]["name"] == "alice_1"
    assert converted[1]["content"][1] == {
        "type": "image_url",
        "image_url": {"url": "data:image/png;base64,AAAA"},
    }
    assert converted[2]["content"] is None
    assert converted[2]["tool_calls"][0]["function"]["arguments"] == '{"query": "cats"}'
    assert converted[3] == {"role": "tool", "tool_call_id": "call_1", "content": "results"}


def test_anthropic_message_conversion():
    llm = AnthropicLLM(api_key="sk-ant-test")
    converted = llm._convert_messages(conversation())

    assert [m["role"] for m in converted] == ["user", "assistant", "user"]
    assert converted[0]["content"][1] == {
        "type": "image",
        "source": {"type": "base64", "media_type": "image/png", "data": "AAAA"},
    }
    assert converted[1]["content"] == [
        {"type": "tool_use", "id": "call_1", "name": "search_internet", "input": {"query": "cats"}}
    ]
    assert converted[2]["content"][0]["tool_use_id"] == "call_1"
    assert llm._convert_image("https://x/cat.png") == {
        "type": "image",
        "source": {"type": "url", "url": "https://x/cat.png"},
    }


@pytest.mark.asyncio
async def test_openai_generate():
    llm = OpenAILLM(api_key="sk-test", model="gpt-4o")
    completion = SimpleNamespace(
        choices=[SimpleNamespace(
            message=SimpleNamespace(
                content=None,
                tool_calls=[SimpleNamespace(
                    id="call_9",
                    function=SimpleNamespace(name="search_internet", arguments='{"query": "dogs"}'),
                )],
            ),
            finish_reason="tool_calls",
        )],
        usage=SimpleNamespace(prompt_tokens=12, completion_tokens=3),
        model="gpt-4o",
    )
    llm.client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(
        create=AsyncMock(return_value=completion),
    )))

    response = await llm.generate(conversation(), tools=[SEARCH_TOOL], temperature=0.2, top_p=0.5, timeout=30)

    assert response.content == ""
    assert response.tool_calls == [ToolCall(id="call_9", name="search_internet", arguments='{"query": "dogs"}')]
    assert response.input_tokens == 12

    kwargs = llm.client.chat.completions.create.call_args.kwargs
    assert kwargs["tool_choice"] == "auto"
    assert kwargs["tools"][0]["function"]["name"] == "search_internet"
    assert kwargs["temperature"] == 0.2
    assert kwargs["top_p"] == 0.5
    assert kwargs["timeout"] == 30


@pytest.mark.asyncio
async def test_anthropic_generate():
    llm = AnthropicLLM(api_key="sk-ant-test")
    message = SimpleNamespace(
        content=[
            SimpleNamespace(type="text", text="Let me check."),
            SimpleNamespace(type="tool_use", id="toolu_1", name="search_internet", input={"query": "dogs"}),
        ],
        usage=SimpleNamespace(input_tokens=20, output_tokens=5),
        model="claude-sonnet-4-20250514",
        stop_reason="tool_use",
    )
    llm.client = SimpleNamespace(messages=SimpleNamespace(create=AsyncMock(return_value=message)))

    response = await llm.generate(conversation(), tools=[SEARCH_TOOL], top_p=0.5, timeout=30)

    assert response.content == "Let me check."
    assert json.loads(response.tool_calls[0].arguments) == {"query": "dogs"}

    kwargs = llm.client.messages.create.call_args.kwargs
    assert kwargs["system"] == "You are a bot."
    assert kwargs["tool_choice"] == {"type": "auto"}
    assert kwargs["tools"][0]["input_schema"] == SEARCH_TOOL.parameters
    assert "top_p" not in kwargs


@pytest.mark.asyncio
async def test_anthropic_follow_up_declares_tools():
    llm = AnthropicLLM(api_key="sk-ant-test")
    message = SimpleNamespace(
        content=[SimpleNamespace(type="text", text="Found it.")],
        usage=SimpleNamespace(input_tokens=30, output_tokens=4),
        model="claude-sonnet-4-20250514",
        stop_reason="end_turn",
    )
    llm.client = SimpleNamespace(messages=SimpleNamespace(create=AsyncMock(return_value=message)))

    response = await llm.generate(conversation(), tools=[SEARCH_TOOL], tool_choice="none")

    assert response.content == "Found it."
    kwargs = llm.client.messages.create.call_args.kwargs
    assert any(block["type"] == "tool_result" for block in kwargs["messages"][-1]["content"])
    assert kwargs["tools"][0]["name"] == "search_internet"
    assert kwargs["tool_choice"] == {"type": "none"}


@pytest.mark.asyncio
async def test_embedding_unsupported():
    with pytest.raises(NotImplementedError):
        await AnthropicLLM(api_key="sk-ant-test").embed("hello")


def test_create_llm_providers(settings):
    assert isinstance(create_llm(settings=settings), OpenAILLM)

    anthropic_llm = create_llm(LLMConfig(provider="anthropic", api_key="k"), settings=settings)
    assert isinstance(anthropic_llm, AnthropicLLM)

    openrouter_llm = create_llm(LLMConfig(provider="openrouter", api_key="k"), settings=settings)
    assert isinstance(openrouter_llm, OpenAILLM)
    assert openrouter_llm.base_url == "https://openrouter.ai/api/v1"


def test_create_llm_unknown_provider(settings):
    config = LLMConfig.model_construct(provider="google", model="gemini", api_key="k")

    with pytest.raises(ValueError):
        create_llm(config, settings=settings)
