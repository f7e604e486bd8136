"""
Message buffer that turns a raw message stream into semantic units.
"""

import threading
from datetime import timedelta

import structlog

from .message import ChatMessage

logger = structlog.get_logger()

DEFAULT_MERGE_WINDOW = timedelta(seconds=60)
DEFAULT_RETENTION = timedelta(days=6)
DEFAULT_MAX_MESSAGES = 50


class MessageBuffer:
    """Per-chat buffer of messages waiting for the next agent turn.

    Rapid messages from the same author are merged into one entry, stale
    backlog is pruned, and the number of entries is capped. The cap only
    bounds memory; it is not how context size is controlled.
    """

    def __init__(
        self,
        merge_window: timedelta = DEFAULT_MERGE_WINDOW,
        retention: timedelta = DEFAULT_RETENTION,
        max_messages: int = DEFAULT_MAX_MESSAGES,
    ):
        self.merge_window = merge_window
        self.retention = retention
        self.max_messages = max_messages
        self._buffers: dict[str, list[ChatMessage]] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._table_lock = threading.Lock()

    def _lock_for(self, channel_id: str) -> threading.Lock:
        with self._table_lock:
            lock = self._locks.get(channel_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[channel_id] = lock
            return lock

    def append(self, channel_id: str, message: ChatMessage) -> None:
        """Add a message, merging it into the previous entry when possible."""
        with self._lock_for(channel_id):
            buffer = self._buffers.setdefault(channel_id, [])

            if buffer:
                latest = buffer[-1]
                elapsed = message.date - latest.date

                if latest.author_id == message.author_id and elapsed < self.merge_window:
                    self._merge(latest, message)
                    return

                # File URLs expire on most platforms, so old backlog is useless
                for i in range(len(buffer) - 1, -1, -1):
                    if message.date - buffer[i].date > self.retention:
                        del buffer[: i + 1]
                        logger.debug(
                            "Pruned stale buffered messages",
                            channel_id=channel_id,
                            dropped=i + 1,
                        )
                        break

            buffer.append(message)

            if len(buffer) > self.max_messages:
                del buffer[: len(buffer) - self.max_messages]

    @staticmethod
    def _merge(latest: ChatMessage, message: ChatMessage) -> None:
        if latest.content:
            latest.content = f"{latest.content}\n{message.content}"
        else:
            latest.content = message.content

        if message.image_urls:
            latest.image_urls = [*latest.image_urls, *message.image_urls]
        if message.file_urls:
            latest.file_urls = [*latest.file_urls, *message.file_urls]
        if message.ref_message is not None:
            latest.ref_message = message.ref_message

    def flush(self, channel_id: str) -> list[ChatMessage]:
        """Return everything buffered for a chat and reset it."""
        with self._lock_for(channel_id):
            buffer = self._buffers.get(channel_id)
            if not buffer:
                return []
            self._buffers[channel_id] = []
            return buffer

    def pending(self, channel_id: str) -> int:
        """Number of buffered entries for a chat."""
        with self._lock_for(channel_id):
            return len(self._buffers.get(channel_id, ()))
