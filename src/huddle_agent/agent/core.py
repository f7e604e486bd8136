"""
Core agent implementation - runs one conversation turn end to end.

A turn:
1. Flushes newly arrived chat messages into the context
2. Calls the model with the tool definitions, executing any requested tools
3. Calls the model again with the tool results for the final reply
4. Interprets trailing directives (IDLE, STOP, SWITCH) in the reply
5. Compresses the context when the conversation ends or grows too long

Any failure restores the context snapshot taken before the model call.
"""

import asyncio
import re
from typing import Awaitable, Callable

import structlog

from ..chat.formatting import extension_for_mime, is_data_uri, parse_data_uri
from ..chat.message import ChatMessage, classify_attachment
from ..config import Settings, get_settings
from ..llm import BaseLLM, ImagePart, LLMMessage, LLMResponse, TextPart, ToolDefinition
from ..memory.chat_db import ChatDB
from ..tools import ToolContext, ToolRegistry
from .context import (
    SUMMARY_FAILURE_PREFIX,
    CompressionPolicy,
    ConversationContext,
    describe_error,
)
from .file_store import FileReferenceStore

logger = structlog.get_logger()

# Reply is exactly this: say nothing
IDLE_DIRECTIVE = "IDLE"
# Reply ends with this: the conversation is over
STOP_DIRECTIVE = "STOP"
# Reply ends with this: topic changed, keep chatting with a fresh context
SWITCH_DIRECTIVE = "SWITCH"

FileCallback = Callable[[bytes, str], Awaitable[None]]

_NAME_PATTERN = re.compile(r"[^A-Za-z0-9_-]")


def parse_directive(text: str) -> tuple[str, str | None]:
    """Split a reply into its visible text and trailing directive."""
    text = text.strip()
    if text == IDLE_DIRECTIVE:
        return "", IDLE_DIRECTIVE

    for directive in (STOP_DIRECTIVE, SWITCH_DIRECTIVE):
        if text.endswith(directive):
            return text[: -len(directive)].rstrip(), directive

    return text, None


def sanitize_name(author_id: str) -> str:
    """Make an author ID usable as a message name."""
    return _NAME_PATTERN.sub("_", author_id)


def format_time(message: ChatMessage) -> str:
    return message.date.astimezone().strftime("%I:%M %p").lstrip("0")


class Agent:
    """One conversation with the model.

    Turns never overlap: while ``thinking`` is set, new messages are queued
    and picked up by the next turn.
    """

    def __init__(
        self,
        llm: BaseLLM,
        tool_registry: ToolRegistry,
        system_prompt: str,
        summarize_prompt: str,
        settings: Settings | None = None,
        file_store: FileReferenceStore | None = None,
        chat_db: ChatDB | None = None,
        channel_id: str = "",
        summary_llm: BaseLLM | None = None,
    ):
        self.settings = settings or get_settings()
        self.llm = llm
        self.tool_registry = tool_registry
        self.channel_id = channel_id
        self.chat_db = chat_db
        self.file_store = file_store or FileReferenceStore(self.settings.file_store_capacity)
        self.tool_context = ToolContext(
            file_store=self.file_store,
            channel_id=channel_id,
            chat_db=chat_db,
        )

        self.timeout = self.settings.model_timeout_seconds
        self.context = ConversationContext(
            summary_llm or llm,
            system_prompt,
            summarize_prompt,
            policy=CompressionPolicy(
                max_summary_boundaries=self.settings.max_summary_boundaries,
                message_threshold=self.settings.compress_message_threshold,
                image_expiry_ratio=self.settings.image_expiry_ratio,
            ),
            timeout=self.timeout,
        )

        self._incoming: list[ChatMessage] = []
        self._chatting = False
        self._thinking = False

    @property
    def chatting(self) -> bool:
        """Whether the conversation is ongoing from the agent's point of view."""
        return self._chatting

    @property
    def thinking(self) -> bool:
        """Whether a turn or a compression is in progress."""
        return self._thinking

    async def chat(
        self,
        new_messages: list[ChatMessage],
        on_file: FileCallback | None = None,
    ) -> str:
        """Run a turn over the new messages and return the reply text.

        Returns an empty string when a turn is already running (the messages
        wait for the next turn) or when the model chose to stay idle.
        """
        self._incoming.extend(new_messages)
        if self._thinking:
            logger.debug("Turn in progress, queued messages", channel_id=self.channel_id, queued=len(self._incoming))
            return ""

        self._thinking = True
        try:
            self._flush_incoming()
            return await self._run_turn(on_file)
        finally:
            self._thinking = False

    async def compress_context(self) -> str | None:
        """Compress the context unless a turn is running or nothing new arrived."""
        if self._thinking or not self.context.has_pending_history:
            return None

        self._thinking = True
        try:
            return await self._compress()
        finally:
            self._thinking = False

    def _flush_incoming(self) -> None:
        messages, self._incoming = self._incoming, []
        for message in messages:
            agent_message, text = self._to_agent_message(message)
            self.context.append_message(agent_message)
            self.context.append_history(text)

    def _to_agent_message(self, message: ChatMessage) -> tuple[LLMMessage, str]:
        """Linearize a chat message into a model message and its transcript text."""
        lines = [f"{message.author} - {format_time(message)}"]

        ref = message.ref_message
        if ref is not None:
            quoted = " ".join(ref.content.split())
            ref_ids = self._register_attachments(ref)
            suffix = f" [{', '.join(ref_ids)}]" if ref_ids else ""
            lines.append(f"(Reply to {ref.author}: {quoted}{suffix})")

        if message.content:
            lines.append(message.content)

        image_ids = [self.file_store.register_image(url) for url in message.image_urls]
        file_ids = [self.file_store.register_file(url) for url in message.file_urls]
        if image_ids:
            lines.append(f"(Images: {', '.join(image_ids)})")
        if file_ids:
            lines.append(f"(Files: {', '.join(file_ids)})")

        text = "\n".join(lines)
        parts: list[TextPart | ImagePart] = [TextPart(text)]
        parts.extend(ImagePart(url) for url in message.image_urls)

        return LLMMessage(role="user", content=parts, name=sanitize_name(message.author_id)), text

    def _register_attachments(self, message: ChatMessage) -> list[str]:
        ids = [self.file_store.register_image(url) for url in message.image_urls]
        ids.extend(self.file_store.register_file(url) for url in message.file_urls)
        return ids

    async def _run_turn(self, on_file: FileCallback | None) -> str:
        snapshot = self.context.clone()

        try:
            tools = self.tool_registry.get_definitions()
            response = await self._generate(tools=tools or None)

            if response.tool_calls:
                self.context.add_assistant_message(response.content, response.tool_calls)

                for tool_call in response.tool_calls:
                    result = await self.tool_registry.execute(
                        tool_call.name,
                        tool_call.arguments,
                        self.tool_context,
                    )
                    result = await self._deliver_binary(result, on_file)
                    self.context.add_tool_result(tool_call.id, result, tool_call.name)

                # Tool blocks in the log need the tool list; no second round
                response = await self._generate(tools=tools or None, tool_choice="none")

            reply, directive = parse_directive(response.content)

        except Exception as e:
            logger.error(
                "Turn failed, restoring context",
                channel_id=self.channel_id,
                error=describe_error(e),
            )
            self.context = snapshot
            notice = f"Sorry, I failed to respond: {describe_error(e)}"
            self.context.add_assistant_message(notice)
            return notice

        if directive == IDLE_DIRECTIVE:
            logger.debug("Model stayed idle", channel_id=self.channel_id)
            return ""

        if reply:
            self.context.add_assistant_message(reply)
            self.context.append_history(f"{self.settings.assistant_name}: {reply}")

        if directive == STOP_DIRECTIVE:
            logger.info("Conversation stopped", channel_id=self.channel_id)
            self._chatting = False
            await self._compress()
        elif directive == SWITCH_DIRECTIVE:
            logger.info("Conversation switched", channel_id=self.channel_id)
            self._chatting = True
            await self._compress()
        else:
            self._chatting = True
            if self.context.size > self.settings.auto_compress_messages:
                await self._compress()

        return reply

    async def _generate(
        self,
        tools: list[ToolDefinition] | None = None,
        tool_choice: str | None = None,
    ) -> LLMResponse:
        return await asyncio.wait_for(
            self.llm.generate(
                messages=list(self.context.messages),
                tools=tools,
                tool_choice=tool_choice,
                temperature=self.settings.temperature,
                top_p=self.settings.top_p,
                timeout=self.timeout,
            ),
            timeout=self.timeout,
        )

    async def _deliver_binary(self, result: str, on_file: FileCallback | None) -> str:
        """Send a data-URI tool result to the chat and keep only its ID in the log."""
        if not is_data_uri(result):
            return result

        decoded = parse_data_uri(result)
        if decoded is None:
            logger.warning("Tool returned an undecodable data URI", channel_id=self.channel_id)
            return result

        mime_type, data = decoded
        if classify_attachment("", mime_type) == "image":
            ref_id, kind = self.file_store.register_image(result), "Image"
        else:
            ref_id, kind = self.file_store.register_file(result), "File"

        if on_file is not None:
            await on_file(data, extension_for_mime(mime_type))

        logger.info("Delivered tool output", channel_id=self.channel_id, ref_id=ref_id, size=len(data))
        return f"{kind} delivered to the chat as {ref_id}."

    async def _compress(self) -> str:
        summary = await self.context.compress()

        if self.chat_db is not None and not summary.startswith(SUMMARY_FAILURE_PREFIX):
            try:
                await self.chat_db.store(summary)
            except Exception as e:
                logger.warning("Failed to persist summary", channel_id=self.channel_id, error=str(e))

        return summary
