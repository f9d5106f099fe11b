"""Vector index of conversation-scoped document chunks (pgvector).

Similarity is ``1 - cosine_distance``.  The conversation filter, the
threshold and the top-k limit are all applied in SQL so that no chunk
of another conversation ever leaves the database.
"""

import logging
from collections.abc import Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chatrelay.core.errors import StorageError

from .models import DocumentChunk

logger = logging.getLogger(__name__)


class DocumentStore:
    """Store and search embedded chunks per conversation."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add_chunks(
        self,
        conversation_id: str,
        source: str,
        chunks: Sequence[str],
        embeddings: Sequence[list[float]],
        model_name: str,
    ) -> int:
        """Insert chunk/embedding pairs in one transaction."""
        if len(chunks) != len(embeddings):
            raise ValueError(
                f"{len(chunks)} chunks but {len(embeddings)} embeddings"
            )
        rows = [
            DocumentChunk(
                conversation_id=conversation_id,
                source=source,
                content=content,
                embedding=embedding,
                model_name=model_name,
            )
            for content, embedding in zip(chunks, embeddings)
        ]
        try:
            async with self._session_factory() as session:
                session.add_all(rows)
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(
                f"Failed to store {len(rows)} chunk(s) for {conversation_id}"
            ) from exc
        return len(rows)

    async def search(
        self,
        query_embedding: list[float],
        conversation_id: str,
        model_name: str,
        similarity_threshold: float,
        top_k: int,
    ) -> list[tuple[str, float]]:
        """Return ``(content, similarity)`` pairs, most similar first."""
        similarity = (
            1 - DocumentChunk.embedding.cosine_distance(query_embedding)
        ).label("similarity")
        stmt = (
            select(DocumentChunk.content, similarity)
            .where(
                DocumentChunk.conversation_id == conversation_id,
                DocumentChunk.model_name == model_name,
                similarity >= similarity_threshold,
            )
            .order_by(similarity.desc())
            .limit(top_k)
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).all()
        return [(content, float(score)) for content, score in rows]

    async def delete_by_conversation(self, conversation_id: str) -> int:
        """Remove every chunk uploaded to *conversation_id*; return the row count."""
        stmt = delete(DocumentChunk).where(
            DocumentChunk.conversation_id == conversation_id
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(
                f"Failed to delete chunks for {conversation_id}"
            ) from exc
        return result.rowcount or 0
