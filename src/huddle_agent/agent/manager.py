"""
Agent manager - one Agent per chat channel.
"""

import threading

import structlog
from sqlalchemy.ext.asyncio import async_sessionmaker

from ..chat.message import ChatMessage
from ..config import DEFAULT_CHAT_PROMPT, DEFAULT_SUMMARIZE_PROMPT, Settings, get_settings, load_prompt
from ..llm import BaseLLM
from ..memory.chat_db import ChatDB
from ..tools import ToolRegistry
from .core import Agent, FileCallback
from .file_store import FileReferenceStore

logger = structlog.get_logger()


class AgentManager:
    """Keyed registry of agents sharing one model, tool registry and prompts.

    Agents are created lazily on the first message for a channel and live
    until ``evict`` is called.
    """

    def __init__(
        self,
        llm: BaseLLM,
        tool_registry: ToolRegistry,
        settings: Settings | None = None,
        system_prompt: str | None = None,
        summarize_prompt: str | None = None,
        session_maker: async_sessionmaker | None = None,
        embedder: BaseLLM | None = None,
        summary_llm: BaseLLM | None = None,
    ):
        self.settings = settings or get_settings()
        self.llm = llm
        self.tool_registry = tool_registry
        self.system_prompt = system_prompt or load_prompt(self.settings.prompt_file, DEFAULT_CHAT_PROMPT)
        self.summarize_prompt = summarize_prompt or load_prompt(
            self.settings.summarize_prompt_file, DEFAULT_SUMMARIZE_PROMPT
        )
        self.session_maker = session_maker
        self.embedder = embedder
        self.summary_llm = summary_llm

        self._agents: dict[str, Agent] = {}
        self._lock = threading.Lock()

    def get(self, channel_id: str) -> Agent | None:
        """Get the agent of a channel without creating one."""
        return self._agents.get(channel_id)

    def get_or_create(self, channel_id: str) -> Agent:
        """Get the agent of a channel, creating it on first use."""
        with self._lock:
            agent = self._agents.get(channel_id)
            if agent is None:
                agent = self._create_agent(channel_id)
                self._agents[channel_id] = agent
                logger.info("Agent created", channel_id=channel_id, agents=len(self._agents))
            return agent

    def _create_agent(self, channel_id: str) -> Agent:
        chat_db = None
        if self.session_maker is not None and self.embedder is not None:
            chat_db = ChatDB(self.session_maker, self.embedder, channel_id)

        return Agent(
            llm=self.llm,
            tool_registry=self.tool_registry,
            system_prompt=self.system_prompt,
            summarize_prompt=self.summarize_prompt,
            settings=self.settings,
            file_store=FileReferenceStore(self.settings.file_store_capacity),
            chat_db=chat_db,
            channel_id=channel_id,
            summary_llm=self.summary_llm,
        )

    async def chat(
        self,
        channel_id: str,
        messages: list[ChatMessage],
        on_file: FileCallback | None = None,
    ) -> str:
        """Run a turn for a channel."""
        agent = self.get_or_create(channel_id)
        return await agent.chat(messages, on_file=on_file)

    async def compress(self, channel_id: str) -> str | None:
        """Compress a channel's context; None for unknown channels or no-ops."""
        agent = self.get(channel_id)
        if agent is None:
            return None
        return await agent.compress_context()

    def is_thinking(self, channel_id: str) -> bool:
        agent = self.get(channel_id)
        return agent is not None and agent.thinking

    def is_chatting(self, channel_id: str) -> bool:
        agent = self.get(channel_id)
        return agent is not None and agent.chatting

    def evict(self, channel_id: str) -> bool:
        """Forget a channel's agent. Returns whether one existed."""
        with self._lock:
            agent = self._agents.pop(channel_id, None)
        if agent is not None:
            logger.info("Agent evicted", channel_id=channel_id)
        return agent is not None

    def __len__(self) -> int:
        return len(self._agents)

    def __contains__(self, channel_id: object) -> bool:
        return channel_id in self._agents
