"""
Configuration management for Huddle-Agent

Uses pydantic-settings for environment variable parsing and validation.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

import structlog
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger()

DEFAULT_CHAT_PROMPT = """You are Huddle, a friendly member of a group chat.

Every user message starts with the author's name and the time it was sent.
Images and files shared in the chat have short IDs such as i1 or f2; use those
IDs when a tool needs an image or a file.

Control words (write them exactly, in capitals):
- Reply with only IDLE when nobody is talking to you and you have nothing to add.
- End your reply with STOP when the conversation is clearly over.
- End your reply with SWITCH when the topic changes and a fresh start would help.

Keep replies short and conversational unless someone asks for detail."""

DEFAULT_SUMMARIZE_PROMPT = """You summarize group chat transcripts.

Write a concise summary that keeps names, decisions, open questions, facts people
shared about themselves, and the IDs of any images or files that were discussed.
If the transcript already contains an earlier summary, merge it into the new one."""


class LLMConfig(BaseSettings):
    """Configuration for a single LLM provider."""

    model_config = SettingsConfigDict(extra="ignore")

    provider: Literal["anthropic", "openai", "openrouter"] = "openai"
    model: str = "gpt-4o"
    api_key: str = ""
    base_url: str | None = None
    max_tokens: int = 1024
    temperature: float = 0.5
    top_p: float = 0.5


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    # Application
    app_name: str = "Huddle-Agent"
    debug: bool = False
    log_level: str = "INFO"
    assistant_name: str = "Huddle"

    # Telegram
    telegram_bot_token: str = Field(default="", description="Telegram Bot API token")

    # LLM Providers (API Keys)
    openai_api_key: str = Field(default="", description="OpenAI API key")
    anthropic_api_key: str = Field(default="", description="Anthropic API key for Claude")
    openrouter_api_key: str = Field(default="", description="OpenRouter API key")

    # Models
    default_provider: Literal["anthropic", "openai", "openrouter"] = "openai"
    chat_model: str = ""
    summary_model: str = ""
    embedding_model: str = "text-embedding-3-small"
    reasoning_model: str = ""
    max_tokens: int = 1024
    temperature: float = 0.5
    top_p: float = 0.5
    model_timeout_seconds: float = Field(default=45.0, description="Timeout for every model call")

    # Prompts
    prompt_file: str = Field(default="prompt/chat.txt", description="System prompt for the chat agent")
    summarize_prompt_file: str = Field(default="prompt/summarize.txt", description="System prompt for summaries")

    # Tools
    tavily_api_key: str = Field(default="", description="Tavily API key for web search")
    weatherbit_api_key: str = Field(default="", description="Weatherbit API key")
    stability_api_key: str = Field(default="", description="Stability AI API key for images")

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/huddle.db",
        description="Database connection URL for long-term chat memory"
    )

    # Message buffer
    merge_window_seconds: float = Field(default=60.0, description="Merge messages from one author within this window")
    buffer_retention_days: float = Field(default=6.0, description="Drop buffered messages older than this")
    buffer_max_messages: int = Field(default=50, description="Hard cap of buffered messages per chat")

    # Context
    file_store_capacity: int = Field(default=100, description="Max file references per chat")
    max_summary_boundaries: int = 3
    compress_message_threshold: int = 64
    auto_compress_messages: int = Field(default=96, description="Compress after a turn past this log size")
    image_expiry_ratio: float = 0.7

    # Transport
    response_delay_seconds: float = Field(default=3.0, description="Debounce before starting a turn")
    idle_compress_minutes: float = Field(default=30.0, description="Compress a chat after this much silence")
    max_message_length: int = 4000

    # Features
    enable_web_search: bool = True
    enable_weather: bool = True
    enable_image_generation: bool = True
    enable_code_execution: bool = True
    enable_reasoning: bool = True
    enable_chat_search: bool = True

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.strip().upper() if v else "INFO"

    def get_llm_config(self, provider: str | None = None, model: str | None = None) -> LLMConfig:
        """Get LLM configuration for a provider."""
        provider = provider or self.default_provider

        api_key_map = {
            "anthropic": self.anthropic_api_key,
            "openai": self.openai_api_key,
            "openrouter": self.openrouter_api_key,
        }

        model_map = {
            "anthropic": "claude-sonnet-4-20250514",
            "openai": "gpt-4o",
            "openrouter": "openai/gpt-4o",
        }

        base_url_map = {
            "anthropic": None,
            "openai": None,
            "openrouter": "https://openrouter.ai/api/v1",
        }

        return LLMConfig(
            provider=provider,  # type: ignore
            model=model or self.chat_model or model_map.get(provider, "gpt-4o"),
            api_key=api_key_map.get(provider, ""),
            base_url=base_url_map.get(provider),
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            top_p=self.top_p,
        )

    def get_summary_llm_config(self) -> LLMConfig:
        """Get the LLM configuration used for summaries."""
        return self.get_llm_config(model=self.summary_model or None)

    def check(self) -> list[str]:
        """Return a list of configuration problems."""
        problems = []
        if not self.telegram_bot_token:
            problems.append("TELEGRAM_BOT_TOKEN is not set")
        if not self.get_llm_config().api_key:
            problems.append(f"No API key configured for provider '{self.default_provider}'")
        if self.enable_chat_search and not self.openai_api_key:
            problems.append("OPENAI_API_KEY is required for chat search embeddings")
        return problems


def load_prompt(path: str, default: str) -> str:
    """Read a prompt file, falling back to the built-in prompt."""
    prompt_path = Path(path).expanduser()
    try:
        return prompt_path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        logger.info("Prompt file not found, using built-in prompt", path=str(prompt_path))
        return default


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
