"""
Tests for tools module.
"""

import base64
import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from huddle_agent.agent.file_store import FileReferenceStore
from huddle_agent.chat.formatting import parse_data_uri, to_data_uri
from huddle_agent.llm.base import LLMResponse
from huddle_agent.tools import (
    BaseTool,
    ChatSearchTool,
    CodeExecutorTool,
    CurrentWeatherTool,
    ImageEditTool,
    ImageGenerationTool,
    ReasoningTool,
    ToolContext,
    ToolParameter,
    ToolRegistry,
    WeatherForecastTool,
    WebSearchTool,
    build_tool_registry,
)

RealAsyncClient = httpx.AsyncClient


def mock_http(handler):
    """Patch httpx so every client created by a tool uses the handler."""
    def client_factory(*args, **kwargs):
        kwargs.pop("follow_redirects", None)
        return RealAsyncClient(transport=httpx.MockTransport(handler), follow_redirects=True)

    return patch.object(httpx, "AsyncClient", side_effect=client_factory)


@pytest.fixture
def context() -> ToolContext:
    return ToolContext(file_store=FileReferenceStore(), channel_id="chat-1")


class FailingTool(BaseTool):
    @property
    def name(self) -> str:
        return "fail"

    @property
    def description(self) -> str:
        return "Always fails"

    @property
    def parameters(self) -> list[ToolParameter]:
        return []

    async def execute(self, context: ToolContext, **kwargs: Any) -> str:
        raise RuntimeError("kaboom")


def test_parameter_schema():
    """Test parameters serialize to JSON Schema properties."""
    param = ToolParameter(
        name="query",
        param_type="string",
        description="Search text",
        min_length=1,
        max_length=100,
        pattern="^[a-z]+$",
    )
    assert param.to_schema() == {
        "type": "string",
        "description": "Search text",
        "minLength": 1,
        "maxLength": 100,
        "pattern": "^[a-z]+$",
    }

    array = ToolParameter(name="ids", param_type="array", items="string")
    assert array.to_schema() == {"type": "array", "items": {"type": "string"}}

    number = ToolParameter(name="n", param_type="integer", minimum=1, maximum=5)
    assert number.to_schema() == {"type": "integer", "minimum": 1, "maximum": 5}


def test_tool_to_definition():
    """Test converting tool to LLM definition."""
    definition = ImageGenerationTool().to_definition()

    assert definition.name == "generate_one_image"
    assert definition.parameters["type"] == "object"
    assert definition.parameters["required"] == ["prompt"]
    assert definition.parameters["properties"]["aspect_ratio"]["enum"][0] == "square"


@pytest.mark.asyncio
async def test_registry_unknown_tool(context):
    assert await ToolRegistry().execute("nope", "{}", context) == "Tool 'nope' not found"


@pytest.mark.asyncio
async def test_registry_malformed_arguments(context):
    registry = ToolRegistry()
    registry.register(ChatSearchTool())

    result = await registry.execute("search_chat_db", "{not json", context)
    assert result.startswith("Tool 'search_chat_db' failed: invalid arguments")

    result = await registry.execute("search_chat_db", "[1, 2]", context)
    assert result == "Tool 'search_chat_db' failed: arguments must be a JSON object"


@pytest.mark.asyncio
async def test_registry_tool_exception(context):
    registry = ToolRegistry()
    registry.register(FailingTool())

    assert await registry.execute("fail", "", context) == "Tool 'fail' failed: kaboom"


@pytest.mark.asyncio
async def test_registry_unexpected_argument(context):
    registry = ToolRegistry()
    registry.register(ChatSearchTool())

    result = await registry.execute("search_chat_db", '{"query": "x", "bogus": 1}', context)
    assert result.startswith("Tool 'search_chat_db' failed:")


def test_registry_register_and_unregister():
    registry = ToolRegistry()
    registry.register(ChatSearchTool())

    assert registry.list_tools() == ["search_chat_db"]
    assert [d.name for d in registry.get_definitions()] == ["search_chat_db"]

    registry.unregister("search_chat_db")
    assert registry.get("search_chat_db") is None


def test_build_tool_registry(settings):
    registry = build_tool_registry(settings)

    assert sorted(registry.list_tools()) == sorted([
        "search_internet",
        "get_current_weather",
        "get_weather_forecast",
        "generate_one_image",
        "edit_one_image",
        "run_python_code",
        "reason_deeply",
        "search_chat_db",
    ])


def test_build_tool_registry_respects_flags(settings):
    settings.enable_image_generation = False
    settings.enable_code_execution = False

    names = build_tool_registry(settings).list_tools()

    assert "generate_one_image" not in names
    assert "run_python_code" not in names
    assert "search_internet" in names


def test_build_tool_registry_skips_failing_factory(settings):
    with patch("huddle_agent.tools.registry._weather_tools", side_effect=RuntimeError("bad")):
        names = build_tool_registry(settings).list_tools()

    assert "get_current_weather" not in names
    assert "search_internet" in names


@pytest.mark.asyncio
async def test_web_search_not_configured(context):
    assert await WebSearchTool().execute(context, query="python") == "Web search is not configured."


@pytest.mark.asyncio
async def test_web_search_results(context):
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured.update(json.loads(request.content))
        return httpx.Response(200, json={
            "query": "python",
            "answer": "A language.",
            "results": [{"title": "Python", "url": "https://python.org", "content": "Welcome"}],
        })

    with mock_http(handler):
        result = await WebSearchTool(tavily_api_key="tvly-key").execute(context, query="python")

    data = json.loads(result)
    assert data["summary"] == "A language."
    assert data["results"][0]["url"] == "https://python.org"
    assert captured["max_results"] == 8


@pytest.mark.asyncio
async def test_web_search_details(context):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={
            "query": "python",
            "answer": "A language.",
            "results": [{"title": "Python", "url": "https://python.org", "raw_content": "Full page"}],
        })

    with mock_http(handler):
        result = await WebSearchTool(tavily_api_key="tvly-key").execute(
            context, query="python", include_details=True
        )

    assert "Title: Python" in result
    assert result.endswith("Full page")


@pytest.mark.asyncio
async def test_current_weather(context):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["city"] == "Seoul"
        return httpx.Response(200, json={"data": [{
            "city_name": "Seoul",
            "weather": {"description": "Clear sky"},
            "temp": 21.5,
            "app_temp": 21,
            "rh": 40,
            "wind_spd": 2.1,
            "vis": 10,
        }]})

    with mock_http(handler):
        result = await CurrentWeatherTool(api_key="wb-key").execute(context, city="Seoul")

    assert "City: Seoul" in result
    assert "Weather: Clear sky" in result


@pytest.mark.asyncio
async def test_forecast_unknown_city(context):
    with mock_http(lambda request: httpx.Response(204)):
        result = await WeatherForecastTool(api_key="wb-key").execute(context, city="Atlantis")

    assert result == "No weather data found"


@pytest.mark.asyncio
async def test_image_generation_returns_data_uri(context):
    with mock_http(lambda request: httpx.Response(200, content=b"png-bytes")):
        result = await ImageGenerationTool(api_key="sk-stab").execute(context, prompt="a cat")

    assert parse_data_uri(result) == ("image/png", b"png-bytes")


@pytest.mark.asyncio
async def test_image_generation_http_error(context):
    with mock_http(lambda request: httpx.Response(402)):
        result = await ImageGenerationTool(api_key="sk-stab").execute(context, prompt="a cat")

    assert result == "HTTP error! Status: 402"


@pytest.mark.asyncio
async def test_image_edit_unknown_image(context):
    result = await ImageEditTool(api_key="sk-stab").execute(
        context, image_id="i9", prompt="a dog", search_prompt="cat"
    )
    assert result == "Image not found!"


@pytest.mark.asyncio
async def test_image_edit_uses_stored_image(context):
    image_id = context.file_store.register_image(to_data_uri("image/png", b"original"))

    def handler(request: httpx.Request) -> httpx.Response:
        assert b"original" in request.content
        return httpx.Response(200, content=b"edited")

    with mock_http(handler):
        result = await ImageEditTool(api_key="sk-stab").execute(
            context, image_id=image_id, prompt="a dog", search_prompt="cat"
        )

    assert parse_data_uri(result) == ("image/webp", b"edited")


@pytest.mark.asyncio
async def test_code_executor_prints(context):
    result = await CodeExecutorTool().execute(context, code="print(6 * 7)")
    assert result == "42"


@pytest.mark.asyncio
async def test_code_executor_reports_stderr(context):
    result = await CodeExecutorTool().execute(context, code="import sys\nsys.stderr.write('oops')")
    assert result == "Stderr:\noops"


@pytest.mark.asyncio
async def test_code_executor_empty_result(context):
    assert await CodeExecutorTool().execute(context, code="x = 1") == "(Empty result)"


@pytest.mark.asyncio
async def test_code_executor_stages_files_and_returns_output(context):
    file_id = context.file_store.register_file(
        "data:text/csv;base64," + base64.b64encode(b"1\n2\n3\n").decode()
    )
    code = (
        f"total = sum(int(line) for line in open('{file_id}'))\n"
        "open('result.txt', 'w').write(str(total))\n"
    )

    result = await CodeExecutorTool().execute(
        context, code=code, file_ids=[file_id], output_file="result.txt"
    )

    assert parse_data_uri(result) == ("text/plain", b"6")


@pytest.mark.asyncio
async def test_code_executor_missing_file(context):
    result = await CodeExecutorTool().execute(context, code="pass", file_ids=["f404"])
    assert result == "File f404 not found!"


@pytest.mark.asyncio
async def test_code_executor_timeout(context):
    result = await CodeExecutorTool(timeout=0.5).execute(context, code="import time\ntime.sleep(5)")
    assert result == "Timeout!"


@pytest.mark.asyncio
async def test_reasoning_tool(context):
    assert await ReasoningTool().execute(context, question="why?") == "The reasoning model is not configured."

    llm = MagicMock()
    llm.generate = AsyncMock(return_value=LLMResponse(content="Because."))
    assert await ReasoningTool(llm=llm).execute(context, question="why?") == "Because."


@pytest.mark.asyncio
async def test_chat_search(context):
    tool = ChatSearchTool()
    assert await tool.execute(context, query="cats") == "Conversation history search is not available."

    context.chat_db = MagicMock()
    context.chat_db.search = AsyncMock(return_value=[])
    assert await tool.execute(context, query="cats") == "No results found"

    context.chat_db.search = AsyncMock(return_value=["[2024-05-01 10:00]\nWe talked about cats."])
    result = await tool.execute(context, query="cats")
    assert result == "[Previous Conversation]\n[2024-05-01 10:00]\nWe talked about cats.\n---"
