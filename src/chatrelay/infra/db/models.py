"""SQLAlchemy ORM models.

All tables are managed by Alembic migrations.  The ``Base.metadata``
naming convention keeps auto-generated constraint names deterministic
across environments.
"""

from datetime import datetime

from pgvector.sqlalchemy import Vector
from sqlalchemy import BigInteger, DateTime, Index, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Shared declarative base with explicit naming convention."""


Base.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


EMBEDDING_DIMENSIONS = 1536
"""Must match ``EmbeddingConfig.dimensions``.  Changing this value
requires an alembic migration to ALTER the ``Vector()`` column."""


# ---------------------------------------------------------------------------
# Chat turns
# ---------------------------------------------------------------------------


class ChatMessage(Base):
    """A single user or assistant turn of a conversation.

    Rows are append-only; insertion order (``created_at``, then ``id``)
    is the conversation order.
    """

    __tablename__ = "chat_messages"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    conversation_id: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index(
            "ix_chat_messages_conversation_id_created_at",
            "conversation_id",
            "created_at",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<ChatMessage(id={self.id}, conversation_id={self.conversation_id!r}, "
            f"role={self.role!r})>"
        )


# ---------------------------------------------------------------------------
# Conversation summaries
# ---------------------------------------------------------------------------


class Conversation(Base):
    """Catalog entry (title, tag) for a conversation."""

    __tablename__ = "conversations"

    conversation_id: Mapped[str] = mapped_column(String, primary_key=True)
    title: Mapped[str] = mapped_column(String, nullable=False)
    tag: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return (
            f"<Conversation(conversation_id={self.conversation_id!r}, "
            f"title={self.title!r})>"
        )


# ---------------------------------------------------------------------------
# Conversation-scoped reference material (RAG)
# ---------------------------------------------------------------------------


class DocumentChunk(Base):
    """One embedded chunk of a document attached to a conversation."""

    __tablename__ = "document_chunks"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    conversation_id: Mapped[str] = mapped_column(String, nullable=False)
    source: Mapped[str] = mapped_column(String, nullable=False, default="")
    content: Mapped[str] = mapped_column(Text, nullable=False)
    embedding: Mapped[list[float]] = mapped_column(
        Vector(EMBEDDING_DIMENSIONS),
        nullable=False,
    )
    model_name: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_document_chunks_conversation_id", "conversation_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<DocumentChunk(id={self.id}, "
            f"conversation_id={self.conversation_id!r}, source={self.source!r})>"
        )
