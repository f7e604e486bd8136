"""
Chat module - inbound message normalization and batching.

Includes:
- ChatMessage: One normalized message from the chat platform
- MessageBuffer: Per-chat buffer that coalesces bursts of messages
- split_message: Outbound chunking that keeps code fences intact
"""

from .message import ChatMessage, classify_attachment
from .buffer import MessageBuffer
from .formatting import extension_for_mime, parse_data_uri, split_message

__all__ = [
    "ChatMessage",
    "classify_attachment",
    "MessageBuffer",
    "extension_for_mime",
    "parse_data_uri",
    "split_message",
]
