"""Append-only chat turn storage backed by PostgreSQL.

Writes go through ``insert_turns`` as a single transaction so a
user/assistant pair is committed together.  Every database failure is
re-raised as ``StorageError``; deciding whether that is fatal is the
caller's job.
"""

import logging
from collections.abc import Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chatrelay.core.errors import StorageError
from chatrelay.core.service.models import ChatTurn

from .converters import row_to_turn, turn_to_row
from .models import ChatMessage

logger = logging.getLogger(__name__)


class HistoryStore:
    """Insert / query / delete chat turns keyed by conversation id."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def insert_turns(self, turns: Sequence[ChatTurn]) -> int:
        """Insert *turns* in one transaction; return the row count."""
        if not turns:
            return 0
        try:
            async with self._session_factory() as session:
                session.add_all([turn_to_row(t) for t in turns])
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(
                f"Failed to insert {len(turns)} turn(s) for "
                f"{turns[0].conversation_id}"
            ) from exc
        logger.debug(
            "Inserted %d turn(s) for conversation %s",
            len(turns),
            turns[0].conversation_id,
        )
        return len(turns)

    async def query_by_conversation(self, conversation_id: str) -> list[ChatTurn]:
        """All turns of *conversation_id*, oldest first."""
        stmt = (
            select(ChatMessage)
            .where(ChatMessage.conversation_id == conversation_id)
            .order_by(ChatMessage.created_at, ChatMessage.id)
        )
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as exc:
            raise StorageError(
                f"Failed to load turns for {conversation_id}"
            ) from exc
        return [row_to_turn(r) for r in rows]

    async def recent_turns(self, conversation_id: str, limit: int) -> list[ChatTurn]:
        """The last *limit* turns of *conversation_id*, oldest first."""
        if limit <= 0:
            return []
        stmt = (
            select(ChatMessage)
            .where(ChatMessage.conversation_id == conversation_id)
            .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
            .limit(limit)
        )
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as exc:
            raise StorageError(
                f"Failed to load recent turns for {conversation_id}"
            ) from exc
        return [row_to_turn(r) for r in reversed(rows)]

    async def delete_by_conversation(self, conversation_id: str) -> int:
        """Remove every turn of *conversation_id*; return the row count."""
        stmt = delete(ChatMessage).where(
            ChatMessage.conversation_id == conversation_id
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(
                f"Failed to delete turns for {conversation_id}"
            ) from exc
        return result.rowcount or 0
