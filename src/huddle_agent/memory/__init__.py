"""
Long-term memory for chats.
"""

from .chat_db import ChatDB, cosine_similarity

__all__ = ["ChatDB", "cosine_similarity"]
