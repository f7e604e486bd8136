"""
Outbound formatting helpers: message chunking and data-URI payloads.
"""

import base64
import binascii
import mimetypes
import re

DATA_URI_PATTERN = re.compile(r"^data:([\w.+-]+/[\w.+-]+)((?:;[\w.+-]+=[\w.+-]+)*);base64,")
FENCE_PATTERN = re.compile(r"^\s*(```|~~~)")

FENCE_CLOSE = "```"

_EXTENSION_OVERRIDES = {
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
    "text/plain": ".txt",
    "application/octet-stream": ".bin",
}


def split_message(text: str, max_len: int = 2000) -> list[str]:
    """Split a long message into chunks at line boundaries.

    A chunk that ends inside a fenced code block is closed, and the next chunk
    reopens the fence with the original opener line (language tag included).
    """
    if len(text) <= max_len:
        return [text]

    budget = max_len - len(FENCE_CLOSE) - 1
    piece_limit = max(1, max_len // 2)

    chunks: list[str] = []
    current: list[str] = []
    current_len = 0
    fence: str | None = None

    def flush() -> None:
        body = "\n".join(current)
        if fence:
            body += "\n" + FENCE_CLOSE
        chunks.append(body)

    for line in text.split("\n"):
        pieces = [line[i:i + piece_limit] for i in range(0, len(line), piece_limit)] or [""]

        for piece in pieces:
            extra = len(piece) + (1 if current else 0)
            if current and current_len + extra > budget:
                flush()
                current = [fence] if fence else []
                current_len = len(fence) if fence else 0
                extra = len(piece) + (1 if current else 0)

            current.append(piece)
            current_len += extra

            if FENCE_PATTERN.match(piece):
                fence = None if fence else piece.strip()

    if current:
        chunks.append("\n".join(current))

    return chunks


def parse_data_uri(text: str) -> tuple[str, bytes] | None:
    """Decode a base64 data URI into (mime type, bytes), or None if it is not one."""
    match = DATA_URI_PATTERN.match(text)
    if match is None:
        return None

    try:
        data = base64.b64decode(text[match.end():], validate=False)
    except (binascii.Error, ValueError):
        return None

    return match.group(1).lower(), data


def is_data_uri(text: str) -> bool:
    """Check whether text starts with a base64 data-URI prefix."""
    return DATA_URI_PATTERN.match(text) is not None


def extension_for_mime(mime_type: str) -> str:
    """File extension hint for a MIME type, including the leading dot."""
    mime_type = mime_type.lower()
    if mime_type in _EXTENSION_OVERRIDES:
        return _EXTENSION_OVERRIDES[mime_type]
    return mimetypes.guess_extension(mime_type) or ".bin"


def to_data_uri(mime_type: str, data: bytes) -> str:
    """Encode bytes as a base64 data URI."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
