"""Embedder: thin async wrapper over the OpenAI embeddings API.

Two methods: ``embed(text)`` for queries and ``embed_many(texts)`` for
document ingestion.  Storage and search are the caller's job via
``DocumentStore``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncGenerator, Sequence
from typing import Annotated

import openai
from fastapi import Depends, FastAPI, Request

from chatrelay.configs.config import AppConfig, get_app_config
from chatrelay.configs.system import EmbeddingConfig
from chatrelay.core.service.metrics import EMBEDDING_LATENCY_SECONDS
from chatrelay.infra.db.models import EMBEDDING_DIMENSIONS
from chatrelay.infra.lifespan import get_app

logger = logging.getLogger(__name__)

OP_QUERY = "query"
OP_INGEST = "ingest"


def check_dimensions(config: EmbeddingConfig) -> None:
    """Raise ``ValueError`` unless vectors fit the ``document_chunks`` column."""
    if config.dimensions != EMBEDDING_DIMENSIONS:
        raise ValueError(
            f"Embedding dimensions {config.dimensions} do not match the "
            f"vector column size {EMBEDDING_DIMENSIONS}; add a migration "
            "and update EMBEDDING_DIMENSIONS first"
        )


class Embedder:
    """Embeds text with a single configured model."""

    def __init__(self, config: EmbeddingConfig) -> None:
        self._config = config
        self._openai = openai.AsyncOpenAI(
            base_url=config.endpoint,
            api_key=config.api_key or "unused",
        )

    @property
    def model_name(self) -> str:
        return self._config.model_name

    async def embed(self, text: str) -> list[float]:
        """Return the embedding for *text*."""
        start = time.monotonic()
        response = await self._openai.embeddings.create(
            input=text,
            model=self._config.model_name,
            dimensions=self._config.dimensions,
        )
        EMBEDDING_LATENCY_SECONDS.labels(operation=OP_QUERY).observe(
            time.monotonic() - start
        )
        return response.data[0].embedding

    async def embed_many(self, texts: Sequence[str]) -> list[list[float]]:
        """Return one embedding per input, in input order."""
        if not texts:
            return []
        start = time.monotonic()
        response = await self._openai.embeddings.create(
            input=list(texts),
            model=self._config.model_name,
            dimensions=self._config.dimensions,
        )
        EMBEDDING_LATENCY_SECONDS.labels(operation=OP_INGEST).observe(
            time.monotonic() - start
        )
        ordered = sorted(response.data, key=lambda d: d.index)
        return [d.embedding for d in ordered]

    async def aclose(self) -> None:
        await self._openai.close()


# ---------------------------------------------------------------------------
# Lifespan dependency
# ---------------------------------------------------------------------------


async def build_embedder(
    app: Annotated[FastAPI, Depends(get_app)],
    config: Annotated[AppConfig, Depends(get_app_config)],
) -> AsyncGenerator[None, None]:
    """Create the embedder, attach to ``app.state``, close on shutdown."""
    check_dimensions(config.embedding)
    embedder = Embedder(config.embedding)
    app.state.embedder = embedder
    logger.info(
        "Embedder ready: model=%s dimensions=%d endpoint=%s",
        config.embedding.model_name,
        config.embedding.dimensions,
        config.embedding.endpoint,
    )
    yield
    await embedder.aclose()


def get_embedder(request: Request) -> Embedder:
    """FastAPI dependency: reads from ``app.state``."""
    return request.app.state.embedder
