"""
Base classes for tools.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from ..llm.base import ToolDefinition

if TYPE_CHECKING:
    from ..agent.file_store import FileReferenceStore
    from ..memory.chat_db import ChatDB


@dataclass
class ToolParameter:
    """Definition of a tool parameter."""

    name: str
    param_type: Literal["string", "number", "integer", "boolean", "array"]
    description: str = ""
    required: bool = True
    enum: list[str] | None = None
    minimum: float | None = None
    maximum: float | None = None
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None
    format: str | None = None
    items: Literal["string", "number", "integer", "boolean"] | None = None

    def to_schema(self) -> dict[str, Any]:
        """Convert to a JSON Schema property."""
        prop: dict[str, Any] = {"type": self.param_type}
        if self.description:
            prop["description"] = self.description
        if self.enum:
            prop["enum"] = list(self.enum)
        if self.minimum is not None:
            prop["minimum"] = self.minimum
        if self.maximum is not None:
            prop["maximum"] = self.maximum
        if self.min_length is not None:
            prop["minLength"] = self.min_length
        if self.max_length is not None:
            prop["maxLength"] = self.max_length
        if self.pattern:
            prop["pattern"] = self.pattern
        if self.format:
            prop["format"] = self.format
        if self.param_type == "array":
            prop["items"] = {"type": self.items or "string"}
        return prop


@dataclass
class ToolContext:
    """Per-conversation capabilities handed to tool executions."""

    file_store: "FileReferenceStore"
    channel_id: str = ""
    chat_db: "ChatDB | None" = None


class BaseTool(ABC):
    """Base class for all tools.

    ``execute`` returns text for the model. A result that starts with a
    base64 data URI is a binary payload the agent delivers to the chat.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the tool name."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Get the tool description."""
        pass

    @property
    @abstractmethod
    def parameters(self) -> list[ToolParameter]:
        """Get the tool parameters."""
        pass

    @abstractmethod
    async def execute(self, context: ToolContext, **kwargs: Any) -> str:
        """Execute the tool with given arguments."""
        pass

    def get_parameters_schema(self) -> dict[str, Any]:
        """Convert parameters to JSON Schema format."""
        properties = {}
        required = []

        for param in self.parameters:
            properties[param.name] = param.to_schema()
            if param.required:
                required.append(param.name)

        return {
            "type": "object",
            "properties": properties,
            "required": required,
        }

    def to_definition(self) -> ToolDefinition:
        """Convert to a tool definition for LLM."""
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=self.get_parameters_schema(),
        )
