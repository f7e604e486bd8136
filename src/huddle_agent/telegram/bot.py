"""
Telegram bot implementation.

The bot turns updates into ChatMessages, buffers them per chat and starts an
agent turn once the chat has been quiet for ``response_delay_seconds``.
"""

import asyncio
import mimetypes

import structlog
from telegram import Message
from telegram.constants import ChatAction, ParseMode
from telegram.error import TelegramError
from telegram.ext import Application

from ..agent import AgentManager
from ..chat import ChatMessage, MessageBuffer, classify_attachment, split_message
from ..chat.formatting import to_data_uri
from ..config import Settings, get_settings

logger = structlog.get_logger()

TYPING_INTERVAL_SECONDS = 4.0


class TelegramBot:
    """Main Telegram bot class."""

    def __init__(
        self,
        manager: AgentManager,
        buffer: MessageBuffer,
        settings: Settings | None = None,
    ):
        self.settings = settings or get_settings()
        self.manager = manager
        self.buffer = buffer
        self.application: Application | None = None

        self._debounce: dict[str, asyncio.Task] = {}
        self._idle: dict[str, asyncio.Task] = {}
        self._tasks: set[asyncio.Task] = set()

    async def initialize(self) -> None:
        """Initialize the bot application."""
        if not self.settings.telegram_bot_token:
            raise ValueError("TELEGRAM_BOT_TOKEN is required")

        self.application = (
            Application.builder()
            .token(self.settings.telegram_bot_token)
            .build()
        )

        from .handlers import setup_handlers
        setup_handlers(self.application, self)

        await self.application.initialize()
        logger.info("Telegram bot initialized")

    async def start_polling(self) -> None:
        """Start the bot in polling mode."""
        if self.application is None:
            await self.initialize()

        await self.application.start()  # type: ignore
        await self.application.updater.start_polling(drop_pending_updates=True)  # type: ignore
        logger.info("Telegram bot started polling")

    async def stop(self) -> None:
        """Stop the bot."""
        for task in list(self._tasks):
            task.cancel()

        if self.application:
            if self.application.updater and self.application.updater.running:
                await self.application.updater.stop()
            await self.application.stop()
            await self.application.shutdown()
            logger.info("Telegram bot stopped")

    async def to_chat_message(self, message: Message, with_reply: bool = True) -> ChatMessage:
        """Normalize a Telegram message."""
        user = message.from_user
        image_urls: list[str] = []
        file_urls: list[str] = []

        # Telegram file paths contain the bot token and must not leave the process
        if message.photo:
            # Sizes are ordered smallest first
            photo_file = await message.photo[-1].get_file()
            photo_bytes = await photo_file.download_as_bytearray()
            image_urls.append(to_data_uri("image/jpeg", bytes(photo_bytes)))

        document = message.document
        if document is not None:
            name = document.file_name or ""
            mime_type = document.mime_type or mimetypes.guess_type(name)[0] or "application/octet-stream"
            document_file = await document.get_file()
            document_bytes = await document_file.download_as_bytearray()
            uri = to_data_uri(mime_type, bytes(document_bytes))
            kind = classify_attachment(name, mime_type)
            (image_urls if kind == "image" else file_urls).append(uri)

        ref_message = None
        if with_reply and message.reply_to_message is not None:
            ref = await self.to_chat_message(message.reply_to_message, with_reply=False)
            ref_message = ref.snapshot()

        return ChatMessage(
            author_id=str(user.id) if user else str(message.chat_id),
            author=user.full_name if user else (message.chat.title or "Unknown"),
            content=message.text or message.caption or "",
            date=message.date,
            image_urls=image_urls,
            file_urls=file_urls,
            ref_message=ref_message,
        )

    async def receive(self, chat_id: int, message: ChatMessage) -> None:
        """Buffer a message and restart the chat's response and idle timers."""
        key = str(chat_id)
        self.buffer.append(key, message)
        self.schedule_turn(chat_id)
        self._schedule_idle_compression(chat_id)

    def schedule_turn(self, chat_id: int, delay: float | None = None) -> None:
        """Start a turn after the chat has been quiet for the response delay."""
        key = str(chat_id)
        pending = self._debounce.pop(key, None)
        if pending is not None:
            pending.cancel()

        if delay is None:
            delay = self.settings.response_delay_seconds
        self._debounce[key] = self._spawn(self._respond_later(chat_id, delay))

    def _schedule_idle_compression(self, chat_id: int) -> None:
        key = str(chat_id)
        pending = self._idle.pop(key, None)
        if pending is not None:
            pending.cancel()
        self._idle[key] = self._spawn(self._compress_when_idle(chat_id))

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _respond_later(self, chat_id: int, delay: float) -> None:
        await asyncio.sleep(delay)
        # From here on the turn must not be cancelled by newer messages
        self._debounce.pop(str(chat_id), None)
        await self.respond(chat_id)

    async def respond(self, chat_id: int) -> None:
        """Run one agent turn over the buffered messages of a chat."""
        key = str(chat_id)
        if self.manager.is_thinking(key):
            # Busy with a compression; try again once the chat settles
            if self.buffer.pending(key):
                self.schedule_turn(chat_id)
            return

        messages = self.buffer.flush(key)
        if not messages:
            return

        typing = self._spawn(self._keep_typing(chat_id))
        try:
            reply = await self.manager.chat(
                key,
                messages,
                on_file=lambda data, extension: self.send_file(chat_id, data, extension),
            )
        finally:
            typing.cancel()

        if reply:
            await self.send_text(chat_id, reply)

        # Messages that arrived during the turn
        if self.buffer.pending(key):
            self.schedule_turn(chat_id)

    async def _compress_when_idle(self, chat_id: int) -> None:
        await asyncio.sleep(self.settings.idle_compress_minutes * 60)
        self._idle.pop(str(chat_id), None)
        summary = await self.manager.compress(str(chat_id))
        if summary is not None:
            logger.info("Idle chat compressed", chat_id=chat_id)

    async def _keep_typing(self, chat_id: int) -> None:
        while True:
            try:
                await self.application.bot.send_chat_action(chat_id=chat_id, action=ChatAction.TYPING)  # type: ignore
            except TelegramError as e:
                logger.debug("Failed to send typing action", chat_id=chat_id, error=str(e))
            await asyncio.sleep(TYPING_INTERVAL_SECONDS)

    async def send_text(self, chat_id: int, text: str) -> None:
        """Send a reply, split into platform-sized chunks."""
        for chunk in split_message(text, max_len=self.settings.max_message_length):
            try:
                await self.application.bot.send_message(  # type: ignore
                    chat_id=chat_id,
                    text=chunk,
                    parse_mode=ParseMode.MARKDOWN,
                )
            except TelegramError:
                # Markdown parsing failed; send as plain text
                try:
                    await self.application.bot.send_message(chat_id=chat_id, text=chunk)  # type: ignore
                except TelegramError as e:
                    logger.error("Failed to send message", chat_id=chat_id, error=str(e))

    async def send_file(self, chat_id: int, data: bytes, extension: str) -> None:
        """Deliver a file produced by a tool."""
        try:
            await self.application.bot.send_document(  # type: ignore
                chat_id=chat_id,
                document=data,
                filename=f"file{extension}",
            )
        except TelegramError as e:
            logger.error("Failed to send file", chat_id=chat_id, error=str(e))
