"""Conversation summary (title / tag) storage."""

import logging

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chatrelay.core.errors import ConversationConflict, StorageError
from chatrelay.core.service.models import ConversationSummary

from .converters import row_to_summary
from .models import Conversation

logger = logging.getLogger(__name__)


class ConversationStore:
    """CRUD over the ``conversations`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def list_all(self) -> list[ConversationSummary]:
        """All summaries, most recently updated first."""
        stmt = select(Conversation).order_by(Conversation.updated_at.desc())
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as exc:
            raise StorageError("Failed to list conversations") from exc
        return [row_to_summary(r) for r in rows]

    async def get(self, conversation_id: str) -> ConversationSummary | None:
        try:
            async with self._session_factory() as session:
                row = await session.get(Conversation, conversation_id)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to load conversation {conversation_id}") from exc
        return row_to_summary(row) if row is not None else None

    async def create(self, summary: ConversationSummary) -> ConversationSummary:
        """Insert a new summary; raise ``ConversationConflict`` if the id exists."""
        row = Conversation(
            conversation_id=summary.conversation_id,
            title=summary.title,
            tag=summary.tag,
        )
        try:
            async with self._session_factory() as session:
                session.add(row)
                await session.commit()
                await session.refresh(row)
        except IntegrityError as exc:
            raise ConversationConflict(
                f"Conversation {summary.conversation_id} already exists"
            ) from exc
        except SQLAlchemyError as exc:
            raise StorageError(
                f"Failed to create conversation {summary.conversation_id}"
            ) from exc
        return row_to_summary(row)

    async def update(self, summary: ConversationSummary) -> bool:
        """Update title/tag; return ``False`` when no row matched."""
        stmt = (
            update(Conversation)
            .where(Conversation.conversation_id == summary.conversation_id)
            .values(title=summary.title, tag=summary.tag)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(
                f"Failed to update conversation {summary.conversation_id}"
            ) from exc
        return bool(result.rowcount)

    async def delete(self, conversation_id: str) -> bool:
        """Delete the summary; return ``False`` when no row matched."""
        stmt = delete(Conversation).where(
            Conversation.conversation_id == conversation_id
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(
                f"Failed to delete conversation {conversation_id}"
            ) from exc
        return bool(result.rowcount)
