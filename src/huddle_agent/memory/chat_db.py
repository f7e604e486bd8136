"""
Long-term chat memory: conversation summaries searchable by meaning.

Each chat stores the summaries produced by context compression together with
their embeddings. Search ranks a chat's documents by cosine similarity to the
query embedding.
"""

import hashlib
from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from ..llm.base import BaseLLM
from ..models import ChatDocument

logger = structlog.get_logger()

DEFAULT_SEARCH_LIMIT = 3


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity between two vectors (0.0 for mismatched or zero vectors)."""
    if len(a) != len(b) or not a:
        return 0.0

    dot_product = sum(x * y for x, y in zip(a, b))
    norm_a = sum(x * x for x in a) ** 0.5
    norm_b = sum(x * x for x in b) ** 0.5

    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot_product / (norm_a * norm_b)


class ChatDB:
    """Vector-searchable document store scoped to one chat."""

    def __init__(self, session_maker: async_sessionmaker, embedder: BaseLLM, channel_id: str):
        self.session_maker = session_maker
        self.embedder = embedder
        self.channel_id = channel_id

    def _document_id(self, document: str) -> str:
        return hashlib.sha256(f"{self.channel_id}\n{document}".encode("utf-8")).hexdigest()

    async def store(self, document: str) -> str:
        """Embed and store a document, returning its ID. Storing twice is a no-op update."""
        doc_id = self._document_id(document)
        embedding = await self.embedder.embed(document)
        stamped = f"[{datetime.now():%Y-%m-%d %H:%M}]\n{document}"

        async with self.session_maker() as db:
            await db.merge(ChatDocument(
                id=doc_id,
                channel_id=self.channel_id,
                document=stamped,
                embedding=embedding,
            ))
            await db.commit()

        logger.info("Stored chat document", channel_id=self.channel_id, document_id=doc_id[:12])
        return doc_id

    async def search(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[str]:
        """Return up to ``limit`` documents most similar to the query."""
        query_embedding = await self.embedder.embed(query)

        async with self.session_maker() as db:
            result = await db.execute(
                select(ChatDocument).where(ChatDocument.channel_id == self.channel_id)
            )
            documents = result.scalars().all()

        scored = [
            (cosine_similarity(query_embedding, doc.embedding or []), doc.document)
            for doc in documents
        ]
        scored.sort(key=lambda item: item[0], reverse=True)
        return [document for _, document in scored[:limit]]
