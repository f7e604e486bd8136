"""
LLM module for multi-provider AI model support.

Providers:
- OpenAI GPT (native SDK)
- Anthropic Claude (native SDK)
- OpenRouter (via OpenAI-compatible endpoint)
"""

from .base import (
    BaseLLM,
    ContentPart,
    ImagePart,
    LLMMessage,
    LLMResponse,
    MessageContent,
    TextPart,
    ToolCall,
    ToolDefinition,
    message_images,
    message_text,
)
from .anthropic import AnthropicLLM
from .openai import OpenAILLM
from .factory import create_llm

__all__ = [
    "BaseLLM",
    "ContentPart",
    "ImagePart",
    "LLMMessage",
    "LLMResponse",
    "MessageContent",
    "TextPart",
    "ToolCall",
    "ToolDefinition",
    "message_images",
    "message_text",
    "AnthropicLLM",
    "OpenAILLM",
    "create_llm",
]
