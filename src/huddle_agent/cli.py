"""
Command-line interface for Huddle-Agent.
"""

import argparse
import asyncio
import logging
import sys

import structlog

from .config import Settings, get_settings

structlog.configure(
    processors=[
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.dev.ConsoleRenderer(colors=True),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


def main() -> None:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="huddle",
        description="Huddle-Agent - A conversational agent for group chats",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("run", help="Start the Telegram bot (polling)")

    config_parser = subparsers.add_parser("config", help="Show configuration")
    config_parser.add_argument("--check", action="store_true", help="Check configuration validity")

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "run":
        settings = get_settings()
        logging.basicConfig(format="%(message)s", level=settings.log_level)
        try:
            asyncio.run(run_bot(settings))
        except KeyboardInterrupt:
            logger.info("Interrupted, shutting down")
    elif args.command == "config":
        sys.exit(show_config(args.check))
    else:
        parser.print_help()


async def run_bot(settings: Settings) -> None:
    """Wire the agent stack together and poll Telegram until cancelled."""
    from datetime import timedelta

    from .agent import AgentManager
    from .chat import MessageBuffer
    from .llm import create_llm
    from .llm.factory import create_embedder
    from .models import init_database
    from .telegram.bot import TelegramBot
    from .tools import build_tool_registry

    problems = settings.check()
    if problems:
        raise ValueError("; ".join(problems))

    session_maker = await init_database(settings.database_url)
    embedder = create_embedder(settings) if settings.openai_api_key else None

    summary_llm = None
    if settings.summary_model:
        summary_llm = create_llm(config=settings.get_summary_llm_config(), settings=settings)

    manager = AgentManager(
        llm=create_llm(settings=settings),
        tool_registry=build_tool_registry(settings),
        settings=settings,
        session_maker=session_maker,
        embedder=embedder,
        summary_llm=summary_llm,
    )
    buffer = MessageBuffer(
        merge_window=timedelta(seconds=settings.merge_window_seconds),
        retention=timedelta(days=settings.buffer_retention_days),
        max_messages=settings.buffer_max_messages,
    )
    bot = TelegramBot(manager, buffer, settings=settings)

    logger.info(
        "Starting Huddle-Agent",
        provider=settings.default_provider,
        model=settings.get_llm_config().model,
        tools=manager.tool_registry.list_tools(),
    )

    await bot.start_polling()
    try:
        await asyncio.Event().wait()
    finally:
        await bot.stop()


def mask(value: str) -> str:
    """Hide most of a secret."""
    if not value:
        return "(not set)"
    return value[:4] + "..." + value[-4:] if len(value) > 10 else "****"


def show_config(check: bool, settings: Settings | None = None) -> int:
    """Show current configuration. Returns the process exit code."""
    settings = settings or get_settings()

    print(f"\n=== {settings.app_name} Configuration ===\n")

    print("General:")
    print(f"  Assistant Name: {settings.assistant_name}")
    print(f"  Debug: {settings.debug}")
    print(f"  Log Level: {settings.log_level}")

    print("\nTelegram:")
    print(f"  Bot Token: {mask(settings.telegram_bot_token)}")
    print(f"  Response Delay: {settings.response_delay_seconds}s")
    print(f"  Idle Compression: {settings.idle_compress_minutes}min")

    print("\nLLM Providers:")
    print(f"  Default: {settings.default_provider}")
    print(f"  Chat Model: {settings.get_llm_config().model}")
    print(f"  Summary Model: {settings.get_summary_llm_config().model}")
    print(f"  Reasoning Model: {settings.reasoning_model or '(not set)'}")
    print(f"  Timeout: {settings.model_timeout_seconds}s")
    print(f"  Anthropic Key: {mask(settings.anthropic_api_key)}")
    print(f"  OpenAI Key: {mask(settings.openai_api_key)}")
    print(f"  OpenRouter Key: {mask(settings.openrouter_api_key)}")

    print("\nConversation:")
    print(f"  Merge Window: {settings.merge_window_seconds}s")
    print(f"  Buffer Cap: {settings.buffer_max_messages}")
    print(f"  File References: {settings.file_store_capacity}")
    print(f"  Auto-compress After: {settings.auto_compress_messages} messages")

    print("\nTools:")
    print(f"  Web Search: {settings.enable_web_search} (Tavily: {mask(settings.tavily_api_key)})")
    print(f"  Weather: {settings.enable_weather} (Weatherbit: {mask(settings.weatherbit_api_key)})")
    print(f"  Images: {settings.enable_image_generation} (Stability: {mask(settings.stability_api_key)})")
    print(f"  Code Execution: {settings.enable_code_execution}")
    print(f"  Reasoning: {settings.enable_reasoning}")
    print(f"  Chat Search: {settings.enable_chat_search}")

    print("\nDatabase:")
    print(f"  URL: {settings.database_url}")

    if not check:
        return 0

    print("\n=== Configuration Check ===\n")
    errors = settings.check()

    if errors:
        print("Errors:")
        for e in errors:
            print(f"   - {e}")
        print("\nConfiguration has errors - fix them before starting")
        return 1

    print("Configuration looks good!")
    return 0


if __name__ == "__main__":
    main()
