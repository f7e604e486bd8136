"""
Deep reasoning tool that forwards a question to a reasoning model.
"""

import structlog

from ..llm.base import BaseLLM, LLMMessage
from .base import BaseTool, ToolContext, ToolParameter

logger = structlog.get_logger()


class ReasoningTool(BaseTool):
    """Ask a slower reasoning model for complex questions."""

    def __init__(self, llm: BaseLLM | None = None, timeout: float = 120.0):
        self.llm = llm
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "reason_deeply"

    @property
    def description(self) -> str:
        return "Provide answers only to complex or open-ended questions through logical reasoning."

    @property
    def parameters(self) -> list[ToolParameter]:
        return [
            ToolParameter(
                name="question",
                param_type="string",
                description="The question requiring reasoning and deep analysis.",
            ),
        ]

    async def execute(self, context: ToolContext, question: str) -> str:
        if self.llm is None:
            return "The reasoning model is not configured."

        response = await self.llm.generate(
            messages=[LLMMessage(role="user", content=question)],
            timeout=self.timeout,
        )
        logger.info(
            "Reasoning finished",
            model=response.model,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
        )
        return response.content or "(empty)"
