"""
Telegram message handlers.

Includes:
- /start, /help: Introduction
- /reset: Forget the chat's conversation
- /compress: Summarize the conversation now
- Text, photo and document messages for the agent
"""

from typing import TYPE_CHECKING

import structlog
from telegram import Update
from telegram.error import TelegramError
from telegram.ext import (
    Application,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

if TYPE_CHECKING:
    from .bot import TelegramBot

logger = structlog.get_logger()


def setup_handlers(app: Application, bot: "TelegramBot") -> None:
    """Set up all message handlers."""

    # ------------------------------------------------------------------ #
    # /start
    # ------------------------------------------------------------------ #
    async def start_handler(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /start command."""
        if not update.effective_chat:
            return

        name = bot.settings.assistant_name
        await bot.send_text(
            update.effective_chat.id,
            f"Hello! I'm **{name}**.\n\n"
            "Add me to a group and just talk. I join in when I have something "
            "to say, and I can search the web, check the weather, draw and edit "
            "images, and run Python code.\n\n"
            "Send /help for the commands.",
        )

    # ------------------------------------------------------------------ #
    # /help
    # ------------------------------------------------------------------ #
    async def help_handler(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /help command."""
        if not update.effective_chat:
            return

        await bot.send_text(
            update.effective_chat.id,
            f"**{bot.settings.app_name} Help**\n\n"
            "`/start` - Introduction\n"
            "`/help` - Show this help\n"
            "`/reset` - Forget this chat's conversation\n"
            "`/compress` - Summarize the conversation now\n\n"
            "Images and files you send get short IDs like `i1` or `f1`, so you "
            "can refer to them later.",
        )

    # ------------------------------------------------------------------ #
    # /reset
    # ------------------------------------------------------------------ #
    async def reset_handler(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /reset command."""
        if not update.effective_chat:
            return

        chat_id = update.effective_chat.id
        bot.buffer.flush(str(chat_id))
        existed = bot.manager.evict(str(chat_id))
        await bot.send_text(
            chat_id,
            "Conversation cleared." if existed else "Nothing to clear.",
        )

    # ------------------------------------------------------------------ #
    # /compress
    # ------------------------------------------------------------------ #
    async def compress_handler(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /compress command."""
        if not update.effective_chat:
            return

        chat_id = update.effective_chat.id
        summary = await bot.manager.compress(str(chat_id))
        if summary is None:
            await bot.send_text(chat_id, "Nothing new to summarize.")
        else:
            await bot.send_text(chat_id, f"**Summary**\n\n{summary}")

    # ------------------------------------------------------------------ #
    # Regular messages
    # ------------------------------------------------------------------ #
    async def message_handler(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle text, photo and document messages."""
        message = update.effective_message
        if message is None or update.effective_chat is None:
            return

        try:
            chat_message = await bot.to_chat_message(message)
        except TelegramError as e:
            logger.error("Failed to read message", chat_id=update.effective_chat.id, error=str(e))
            return

        if not chat_message.content and not chat_message.has_attachments:
            return

        logger.info(
            "Received message",
            chat_id=update.effective_chat.id,
            author_id=chat_message.author_id,
            length=len(chat_message.content),
            images=len(chat_message.image_urls),
            files=len(chat_message.file_urls),
        )
        await bot.receive(update.effective_chat.id, chat_message)

    app.add_handler(CommandHandler("start", start_handler))
    app.add_handler(CommandHandler("help", help_handler))
    app.add_handler(CommandHandler("reset", reset_handler))
    app.add_handler(CommandHandler("compress", compress_handler))
    app.add_handler(MessageHandler(
        (filters.TEXT | filters.PHOTO | filters.Document.ALL) & ~filters.COMMAND,
        message_handler,
    ))

    logger.info("Telegram handlers configured")
