"""
Tool registry for managing available tools.
"""

import json
from typing import TYPE_CHECKING, Any, Callable

import structlog

from ..llm.base import ToolDefinition
from .base import BaseTool, ToolContext

if TYPE_CHECKING:
    from ..config import Settings

logger = structlog.get_logger()


class ToolRegistry:
    """Registry for managing tools.

    Built once at startup and only read afterwards, so it can be shared by
    every conversation.
    """

    def __init__(self):
        self._tools: dict[str, BaseTool] = {}

    def register(self, tool: BaseTool) -> None:
        """Register a tool."""
        self._tools[tool.name] = tool
        logger.info("Tool registered", tool_name=tool.name)

    def unregister(self, name: str) -> None:
        """Unregister a tool."""
        if name in self._tools:
            del self._tools[name]
            logger.info("Tool unregistered", tool_name=name)

    def get(self, name: str) -> BaseTool | None:
        """Get a tool by name."""
        return self._tools.get(name)

    def list_tools(self) -> list[str]:
        """List all registered tool names."""
        return list(self._tools.keys())

    def get_definitions(self) -> list[ToolDefinition]:
        """Get all tool definitions for LLM."""
        return [tool.to_definition() for tool in self._tools.values()]

    async def execute(self, name: str, arguments: str, context: ToolContext) -> str:
        """Execute a tool by name.

        Never raises: unknown tools, malformed arguments and tool errors all
        come back as text the model can react to.
        """
        tool = self.get(name)
        if tool is None:
            logger.warning("Tool not found", tool_name=name)
            return f"Tool '{name}' not found"

        try:
            parsed = json.loads(arguments) if arguments and arguments.strip() else {}
        except json.JSONDecodeError as e:
            return f"Tool '{name}' failed: invalid arguments ({e})"
        if not isinstance(parsed, dict):
            return f"Tool '{name}' failed: arguments must be a JSON object"

        try:
            logger.info("Executing tool", tool_name=name, arguments=_preview(parsed))
            result = await tool.execute(context, **parsed)
            logger.info("Tool executed", tool_name=name, result_length=len(result))
            return result
        except Exception as e:
            logger.error("Tool execution error", tool_name=name, error=str(e))
            return f"Tool '{name}' failed: {e}"


def _preview(arguments: dict[str, Any], limit: int = 200) -> dict[str, Any]:
    return {
        key: (value[:limit] + "...") if isinstance(value, str) and len(value) > limit else value
        for key, value in arguments.items()
    }


def build_tool_registry(settings: "Settings") -> ToolRegistry:
    """Create the registry with every tool enabled in settings."""
    registry = ToolRegistry()

    factories: list[tuple[bool, Callable[[], list[BaseTool]]]] = [
        (settings.enable_web_search, lambda: _web_search_tools(settings)),
        (settings.enable_weather, lambda: _weather_tools(settings)),
        (settings.enable_image_generation, lambda: _image_tools(settings)),
        (settings.enable_code_execution, _code_tools),
        (settings.enable_reasoning, lambda: _reasoning_tools(settings)),
        (settings.enable_chat_search, _chat_search_tools),
    ]

    for enabled, factory in factories:
        if not enabled:
            continue
        try:
            for tool in factory():
                registry.register(tool)
        except Exception as e:
            logger.warning("Failed to register tools", error=str(e))

    return registry


def _web_search_tools(settings: "Settings") -> list[BaseTool]:
    from .web_search import WebSearchTool
    return [WebSearchTool(tavily_api_key=settings.tavily_api_key)]


def _weather_tools(settings: "Settings") -> list[BaseTool]:
    from .weather import CurrentWeatherTool, WeatherForecastTool
    return [
        CurrentWeatherTool(api_key=settings.weatherbit_api_key),
        WeatherForecastTool(api_key=settings.weatherbit_api_key),
    ]


def _image_tools(settings: "Settings") -> list[BaseTool]:
    from .image import ImageEditTool, ImageGenerationTool
    return [
        ImageGenerationTool(api_key=settings.stability_api_key),
        ImageEditTool(api_key=settings.stability_api_key),
    ]


def _code_tools() -> list[BaseTool]:
    from .code_executor import CodeExecutorTool
    return [CodeExecutorTool()]


def _reasoning_tools(settings: "Settings") -> list[BaseTool]:
    from ..llm.factory import create_llm
    from .reasoning import ReasoningTool

    llm = None
    if settings.reasoning_model:
        llm = create_llm(config=settings.get_llm_config(model=settings.reasoning_model), settings=settings)
    return [ReasoningTool(llm=llm)]


def _chat_search_tools() -> list[BaseTool]:
    from .chat_search import ChatSearchTool
    return [ChatSearchTool()]
