"""
Tools module for agent capabilities.
"""

from .base import BaseTool, ToolContext, ToolParameter
from .registry import ToolRegistry, build_tool_registry
from .web_search import WebSearchTool
from .weather import CurrentWeatherTool, WeatherForecastTool
from .image import ImageEditTool, ImageGenerationTool
from .code_executor import CodeExecutorTool
from .reasoning import ReasoningTool
from .chat_search import ChatSearchTool

__all__ = [
    "BaseTool",
    "ToolContext",
    "ToolParameter",
    "ToolRegistry",
    "build_tool_registry",
    "WebSearchTool",
    "CurrentWeatherTool",
    "WeatherForecastTool",
    "ImageEditTool",
    "ImageGenerationTool",
    "CodeExecutorTool",
    "ReasoningTool",
    "ChatSearchTool",
]
