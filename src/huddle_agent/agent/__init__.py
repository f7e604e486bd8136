"""
Agent module - the brain of the system.

Includes:
- Agent: One conversation turn with LLM + tools + directives
- AgentManager: One agent per chat channel
- ConversationContext: Message log with summary-based compression
- FileReferenceStore: Short IDs for images and files
"""

from .context import CompressionPolicy, ConversationContext
from .file_store import FileReference, FileReferenceStore
from .core import Agent, parse_directive
from .manager import AgentManager

__all__ = [
    "Agent",
    "AgentManager",
    "CompressionPolicy",
    "ConversationContext",
    "FileReference",
    "FileReferenceStore",
    "parse_directive",
]
