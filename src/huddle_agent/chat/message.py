"""
Platform-agnostic chat message.

Transport plugins convert their native updates to ChatMessage before the
message reaches the buffer or the agent.
"""

import mimetypes
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Literal
from urllib.parse import urlparse

IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".bmp"}


@dataclass
class ChatMessage:
    """One normalized inbound message."""

    author_id: str
    author: str
    content: str
    date: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    image_urls: list[str] = field(default_factory=list)
    file_urls: list[str] = field(default_factory=list)
    ref_message: "ChatMessage | None" = None

    @property
    def has_attachments(self) -> bool:
        """Check if message has any images or files."""
        return bool(self.image_urls) or bool(self.file_urls)

    def snapshot(self) -> "ChatMessage":
        """Copy of this message suitable for use as another message's reference."""
        return replace(
            self,
            image_urls=list(self.image_urls),
            file_urls=list(self.file_urls),
            ref_message=None,
        )


def classify_attachment(name: str, mime_type: str | None = None) -> Literal["image", "file"]:
    """Decide whether an attachment is an image or a generic file."""
    if mime_type:
        return "image" if mime_type.startswith("image/") else "file"

    path = urlparse(name).path or name
    suffix = PurePosixPath(path).suffix.lower()
    if suffix in IMAGE_EXTENSIONS:
        return "image"

    guessed, _ = mimetypes.guess_type(path)
    if guessed and guessed.startswith("image/"):
        return "image"
    return "file"
