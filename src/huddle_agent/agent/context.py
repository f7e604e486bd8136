"""
Conversation context - the message log an agent sends to the model.

The context keeps two views of the conversation:

- ``messages``: the structured log in the model's protocol (roles, tool calls,
  image parts). Index 0 is always the system message.
- ``text_history``: a plain-text transcript used only as summarization input.

Compression summarizes the transcript, injects the summary into the log and
records where it was injected (a summary boundary). Old turns are dropped once
enough boundaries accumulate, and images in older messages are replaced with a
short "expired" marker because they cost far more than they are worth once the
conversation has moved on.
"""

import asyncio
from dataclasses import dataclass, replace

import structlog

from ..llm.base import BaseLLM, ImagePart, LLMMessage, TextPart, ToolCall

logger = structlog.get_logger()

SUMMARY_HEADER = "--- Below is a summary of previous conversation ---"
SUMMARY_FOOTER = "--- This is end of the summary ---"
SUMMARIZER_NAME = "summarizer"
SUMMARY_FAILURE_PREFIX = "Failed to summarize."


@dataclass
class CompressionPolicy:
    """Thresholds that decide how much of the log survives a compression."""

    max_summary_boundaries: int = 3
    message_threshold: int = 64
    image_expiry_ratio: float = 0.7
    temperature: float = 0.5
    top_p: float = 0.5


def wrap_summary(summary: str) -> str:
    """Surround a summary with the banner lines."""
    return f"{SUMMARY_HEADER}\n\n{summary}\n\n{SUMMARY_FOOTER}"


def expire_images(message: LLMMessage) -> LLMMessage:
    """Return the message with its image parts replaced by an expiry marker.

    The original message is left untouched.
    """
    if isinstance(message.content, str):
        return message

    kept = [part for part in message.content if not isinstance(part, ImagePart)]
    expired = len(message.content) - len(kept)
    if expired == 0:
        return message

    phrase = f"({expired} image{'s' if expired > 1 else ''} expired)"

    for index, part in enumerate(kept):
        if isinstance(part, TextPart):
            kept[index] = TextPart(f"{part.text}\n{phrase}" if part.text else phrase)
            break
    else:
        kept.append(TextPart(phrase))

    return replace(message, content=kept)


class ConversationContext:
    """Ordered message log plus the transcript used for summaries."""

    def __init__(
        self,
        llm: BaseLLM,
        system_prompt: str,
        summarize_prompt: str,
        policy: CompressionPolicy | None = None,
        timeout: float | None = None,
    ):
        self.llm = llm
        self.summarize_prompt = summarize_prompt
        self.policy = policy or CompressionPolicy()
        self.timeout = timeout

        self._messages: list[LLMMessage] = [LLMMessage(role="system", content=system_prompt)]
        self._text_history = ""
        self._summary_indices: list[int] = []
        self._pending_history = False

    @property
    def messages(self) -> tuple[LLMMessage, ...]:
        """Read-only view of the message log."""
        return tuple(self._messages)

    @property
    def size(self) -> int:
        """Get the number of messages."""
        return len(self._messages)

    @property
    def text_history(self) -> str:
        return self._text_history

    @property
    def summary_indices(self) -> tuple[int, ...]:
        """Offsets in the log where summaries were injected, oldest first."""
        return tuple(self._summary_indices)

    @property
    def has_pending_history(self) -> bool:
        """Whether history was appended since the last compression."""
        return self._pending_history

    def append_message(self, message: LLMMessage) -> None:
        """Append a message to the log."""
        self._messages.append(message)

    def add_assistant_message(
        self, content: str, tool_calls: list[ToolCall] | None = None
    ) -> None:
        """Add an assistant message."""
        self.append_message(LLMMessage(
            role="assistant",
            content=content,
            tool_calls=tool_calls,
        ))

    def add_tool_result(self, tool_call_id: str, result: str, tool_name: str = "") -> None:
        """Add a tool result."""
        self.append_message(LLMMessage(
            role="tool",
            content=result,
            tool_call_id=tool_call_id,
            name=tool_name or None,
        ))

    def append_history(self, text: str) -> None:
        """Append to the plain-text transcript, separated by a blank line."""
        if self._text_history:
            self._text_history += f"\n\n{text}"
        else:
            self._text_history = text
        self._pending_history = True

    def replace_system_prompt(self, system_prompt: str) -> None:
        """Swap the system message at the head of the log."""
        self._messages[0] = LLMMessage(role="system", content=system_prompt)

    def clone(self) -> "ConversationContext":
        """Copy used as a restore point before a model round-trip.

        Messages are shared between the copies; nothing mutates a message in
        place, so the copy stays valid whatever happens to the original.
        """
        ctx = ConversationContext(
            self.llm,
            "",
            self.summarize_prompt,
            policy=self.policy,
            timeout=self.timeout,
        )
        ctx._messages = list(self._messages)
        ctx._text_history = self._text_history
        ctx._summary_indices = list(self._summary_indices)
        ctx._pending_history = self._pending_history
        return ctx

    async def compress(self) -> str:
        """Summarize the transcript and prune the message log.

        Returns the raw summary text. Never raises; a failed summarization
        yields a stand-in text so the conversation cannot get stuck.
        """
        summary = await self._summarize(self._text_history)
        summary_content = wrap_summary(summary)

        self._text_history = summary_content
        self._pending_history = False

        original_size = len(self._messages)

        # Keep only the system message and everything from the oldest summary on
        if len(self._summary_indices) > self.policy.max_summary_boundaries or (
            self._summary_indices and len(self._messages) > self.policy.message_threshold
        ):
            oldest = self._summary_indices[0]
            self._messages = [self._messages[0], *self._messages[oldest:]]
            removed = oldest - 1
            self._summary_indices = [index - removed for index in self._summary_indices[1:]]

        if self._summary_indices or len(self._messages) > self.policy.message_threshold:
            if self._summary_indices:
                expired_end = self._summary_indices[0]
            else:
                expired_end = int(len(self._messages) * self.policy.image_expiry_ratio)

            for index in range(1, min(expired_end, len(self._messages))):
                self._messages[index] = expire_images(self._messages[index])

        self._summary_indices.append(len(self._messages))
        self._messages.append(LLMMessage(
            role="user",
            content=summary_content,
            name=SUMMARIZER_NAME,
        ))

        logger.info(
            "Context compressed",
            messages_before=original_size,
            messages_after=len(self._messages),
            summary_boundaries=len(self._summary_indices),
        )

        return summary

    async def _summarize(self, content: str) -> str:
        try:
            response = await asyncio.wait_for(
                self.llm.generate(
                    messages=[
                        LLMMessage(role="system", content=self.summarize_prompt),
                        LLMMessage(role="user", content=content),
                    ],
                    temperature=self.policy.temperature,
                    top_p=self.policy.top_p,
                    timeout=self.timeout,
                ),
                timeout=self.timeout,
            )
            return response.content.strip()
        except Exception as e:
            logger.warning("Summarization failed", error=describe_error(e))
            return f"{SUMMARY_FAILURE_PREFIX}\n{describe_error(e)}"


def describe_error(error: BaseException) -> str:
    """Human-readable error text, falling back to the exception type."""
    return str(error) or type(error).__name__
