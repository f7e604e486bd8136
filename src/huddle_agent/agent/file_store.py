"""
Short, model-friendly IDs for images and files seen in a conversation.
"""

import string
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

import structlog

logger = structlog.get_logger()

DEFAULT_CAPACITY = 100

IMAGE_PREFIX = "i"
FILE_PREFIX = "f"

_BASE36_DIGITS = string.digits + string.ascii_lowercase


def to_base36(value: int) -> str:
    """Format a non-negative integer in base 36."""
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"

    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


@dataclass
class FileReference:
    """A registered image or file."""

    id: str
    url: str
    kind: Literal["image", "file"]
    last_access: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class FileReferenceStore:
    """Capacity-bounded registry mapping short IDs to URLs or data URIs.

    Entries are deduplicated by exact URL and evicted least-recently-accessed
    first. Each conversation owns its own store.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._counter = 0
        # Ordered from least to most recently accessed
        self._entries: OrderedDict[str, FileReference] = OrderedDict()
        self._ids_by_url: dict[tuple[str, str], str] = {}

    def register_image(self, url: str) -> str:
        """Register an image URL and return its ID."""
        return self._register(url, "image")

    def register_file(self, url: str) -> str:
        """Register a file URL and return its ID."""
        return self._register(url, "file")

    def resolve(self, ref_id: str) -> str | None:
        """Look up the URL for an ID; None when unknown or evicted."""
        entry = self._entries.get(ref_id)
        if entry is None:
            return None
        self._touch(entry)
        return entry.url

    def get(self, ref_id: str) -> FileReference | None:
        """Look up an entry without refreshing its access time."""
        return self._entries.get(ref_id)

    def _register(self, url: str, kind: Literal["image", "file"]) -> str:
        existing = self._ids_by_url.get((kind, url))
        if existing is not None:
            self._touch(self._entries[existing])
            return existing

        if len(self._entries) >= self.capacity:
            self._evict_oldest()

        self._counter += 1
        prefix = IMAGE_PREFIX if kind == "image" else FILE_PREFIX
        ref_id = prefix + to_base36(self._counter)

        self._entries[ref_id] = FileReference(id=ref_id, url=url, kind=kind)
        self._ids_by_url[(kind, url)] = ref_id
        return ref_id

    def _touch(self, entry: FileReference) -> None:
        entry.last_access = datetime.now(timezone.utc)
        self._entries.move_to_end(entry.id)

    def _evict_oldest(self) -> None:
        ref_id, entry = self._entries.popitem(last=False)
        self._ids_by_url.pop((entry.kind, entry.url), None)
        logger.debug("Evicted file reference", ref_id=ref_id, kind=entry.kind)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, ref_id: object) -> bool:
        return ref_id in self._entries
