"""Per-request store factories for the db package.

The low-level engine + session plumbing lives in the sibling leaf
module ``chatrelay.infra.db_engine``.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chatrelay.infra.db_engine import get_session_factory

from .conversations import ConversationStore
from .documents import DocumentStore
from .history import HistoryStore


def get_history_store(
    sf: Annotated[
        async_sessionmaker[AsyncSession],
        Depends(get_session_factory),
    ],
) -> HistoryStore:
    return HistoryStore(sf)


def get_conversation_store(
    sf: Annotated[
        async_sessionmaker[AsyncSession],
        Depends(get_session_factory),
    ],
) -> ConversationStore:
    return ConversationStore(sf)


def get_document_store(
    sf: Annotated[
        async_sessionmaker[AsyncSession],
        Depends(get_session_factory),
    ],
) -> DocumentStore:
    return DocumentStore(sf)
