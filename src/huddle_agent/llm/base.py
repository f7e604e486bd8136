"""
Base classes for LLM providers.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Literal, Union


@dataclass
class ToolDefinition:
    """Definition of a tool that the LLM can use."""

    name: str
    description: str
    parameters: dict[str, Any]


@dataclass
class ToolCall:
    """A tool call made by the LLM.

    ``arguments`` is the JSON string exactly as the model produced it.
    """

    id: str
    name: str
    arguments: str = "{}"


@dataclass(frozen=True)
class TextPart:
    """Text segment of a multi-part message."""

    text: str
    type: Literal["text"] = "text"


@dataclass(frozen=True)
class ImagePart:
    """Image reference segment of a multi-part message."""

    url: str
    type: Literal["image_url"] = "image_url"


ContentPart = Union[TextPart, ImagePart]
MessageContent = Union[str, list[ContentPart]]


@dataclass
class LLMMessage:
    """A message in the conversation."""

    role: Literal["user", "assistant", "system", "tool"]
    content: MessageContent
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None
    name: str | None = None


@dataclass
class LLMResponse:
    """Response from an LLM."""

    content: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    input_tokens: int = 0
    output_tokens: int = 0
    model: str = ""
    stop_reason: str | None = None
    raw_response: Any = None


def message_text(message: LLMMessage) -> str:
    """Concatenate the text parts of a message."""
    if isinstance(message.content, str):
        return message.content
    return "\n".join(part.text for part in message.content if isinstance(part, TextPart))


def message_images(message: LLMMessage) -> list[str]:
    """Image URLs referenced by a message."""
    if isinstance(message.content, str):
        return []
    return [part.url for part in message.content if isinstance(part, ImagePart)]


class BaseLLM(ABC):
    """Base class for LLM providers."""

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.5,
        top_p: float | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.top_p = top_p

    @abstractmethod
    async def generate(
        self,
        messages: list[LLMMessage],
        tools: list[ToolDefinition] | None = None,
        tool_choice: str | None = None,
        temperature: float | None = None,
        top_p: float | None = None,
        frequency_penalty: float | None = None,
        presence_penalty: float | None = None,
        timeout: float | None = None,
    ) -> LLMResponse:
        """Generate a response from the LLM."""
        pass

    async def embed(self, text: str) -> list[float]:
        """Create an embedding vector. Override if the provider supports it."""
        raise NotImplementedError(f"{self.provider_name} does not support embeddings")

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Get the provider name."""
        pass
