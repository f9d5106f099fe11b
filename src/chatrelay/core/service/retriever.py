"""Conversation-scoped context retrieval (RAG).

``retrieve`` never raises for ordinary failures: an embedding error, a
database error or a timeout all come back as ``Degraded([])`` and the
turn continues as plain chat.  Cancellation is not a failure and is
propagated.
"""

import asyncio
import logging
import time

from chatrelay.configs.system import RagConfig
from chatrelay.core.embedding import Embedder
from chatrelay.infra.db.documents import DocumentStore
from chatrelay.infra.telemetry import (
    ATTR_CONVERSATION_ID,
    ATTR_RAG_RESULT_COUNT,
    ATTR_RAG_THRESHOLD,
    ATTR_RAG_TOP_K,
    SPAN_RAG_RETRIEVE,
    tracer,
)

from .metrics import RAG_PASSAGES_RETURNED, RAG_RETRIEVAL_LATENCY_SECONDS
from .models import Degraded, Outcome, Resolved, RetrievedPassage

logger = logging.getLogger(__name__)

_LOG_PREVIEW_CHARS = 50


class ContextRetriever:
    """Embed the query and search the conversation's document chunks."""

    def __init__(
        self,
        embedder: Embedder,
        documents: DocumentStore,
        config: RagConfig,
    ) -> None:
        self._embedder = embedder
        self._documents = documents
        self._config = config

    async def retrieve(
        self, query: str, conversation_id: str
    ) -> Outcome[list[RetrievedPassage]]:
        """Return passages most similar to *query*, best first."""
        if not query.strip():
            return Resolved([])

        with tracer.start_as_current_span(SPAN_RAG_RETRIEVE) as span:
            span.set_attribute(ATTR_CONVERSATION_ID, conversation_id)
            span.set_attribute(ATTR_RAG_TOP_K, self._config.top_k)
            span.set_attribute(ATTR_RAG_THRESHOLD, self._config.similarity_threshold)

            start = time.monotonic()
            try:
                async with asyncio.timeout(self._config.timeout.total_seconds()):
                    vector = await self._embedder.embed(query)
                    rows = await self._documents.search(
                        vector,
                        conversation_id,
                        self._embedder.model_name,
                        self._config.similarity_threshold,
                        self._config.top_k,
                    )
            except Exception as exc:
                span.record_exception(exc)
                return Degraded([], f"retrieval failed: {exc!r}", exc)
            finally:
                RAG_RETRIEVAL_LATENCY_SECONDS.observe(time.monotonic() - start)

            passages = [RetrievedPassage(text=text, score=score) for text, score in rows]
            RAG_PASSAGES_RETURNED.observe(len(passages))
            span.set_attribute(ATTR_RAG_RESULT_COUNT, len(passages))
            logger.info(
                "RAG: retrieved %d passage(s) for %s (threshold=%.2f)",
                len(passages),
                conversation_id,
                self._config.similarity_threshold,
            )
            for p in passages:
                logger.debug(
                    "RAG passage score=%.3f: %s",
                    p.score,
                    p.text[:_LOG_PREVIEW_CHARS],
                )
            return Resolved(passages)
