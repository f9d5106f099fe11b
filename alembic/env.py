"""Alembic migration environment for the chatrelay schema.

Migrations target ``chat_messages``, ``conversations`` and
``document_chunks`` (pgvector).  The connection URI is the application's
own ``third_party.postgres_uri``, so ``CHATRELAY_THIRD_PARTY__POSTGRES_URI``
overrides it exactly as it does for the running service.
"""

import asyncio

from alembic import context
from sqlalchemy.ext.asyncio import create_async_engine

from chatrelay.configs.config import get_app_config
from chatrelay.infra.db.models import Base

target_metadata = Base.metadata


def _postgres_uri() -> str:
    return get_app_config().third_party.postgres_uri


def run_migrations_offline() -> None:
    """Render the migration SQL without connecting."""
    context.configure(
        url=_postgres_uri(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _apply(connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    """Apply migrations over an asyncpg connection."""
    engine = create_async_engine(_postgres_uri())
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_apply)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
