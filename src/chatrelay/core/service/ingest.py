"""Document ingestion: split, embed and index text for one conversation."""

import logging

from langchain_text_splitters import RecursiveCharacterTextSplitter

from chatrelay.configs.system import RagConfig
from chatrelay.core.embedding import Embedder
from chatrelay.core.errors import ConversationValidationError
from chatrelay.infra.db.documents import DocumentStore
from chatrelay.infra.telemetry import (
    ATTR_CONVERSATION_ID,
    ATTR_RAG_CHUNK_COUNT,
    SPAN_RAG_INGEST,
    tracer,
)

from .metrics import RAG_CHUNKS_INGESTED_TOTAL

logger = logging.getLogger(__name__)


class DocumentIngestor:
    """Makes a document retrievable by ``ContextRetriever``."""

    def __init__(
        self,
        embedder: Embedder,
        documents: DocumentStore,
        config: RagConfig,
    ) -> None:
        self._embedder = embedder
        self._documents = documents
        self._splitter = RecursiveCharacterTextSplitter(
            chunk_size=config.chunk_size,
            chunk_overlap=config.chunk_overlap,
        )

    def split(self, text: str) -> list[str]:
        return [c for c in self._splitter.split_text(text) if c.strip()]

    async def ingest(self, conversation_id: str, source: str, text: str) -> int:
        """Index *text* under *conversation_id*; return the chunk count."""
        if not conversation_id.strip():
            raise ConversationValidationError("chat_id must not be blank")
        chunks = self.split(text)
        if not chunks:
            raise ConversationValidationError(f"Document {source!r} has no text")

        with tracer.start_as_current_span(SPAN_RAG_INGEST) as span:
            span.set_attribute(ATTR_CONVERSATION_ID, conversation_id)
            span.set_attribute(ATTR_RAG_CHUNK_COUNT, len(chunks))
            embeddings = await self._embedder.embed_many(chunks)
            count = await self._documents.add_chunks(
                conversation_id,
                source,
                chunks,
                embeddings,
                self._embedder.model_name,
            )
        RAG_CHUNKS_INGESTED_TOTAL.inc(count)
        logger.info(
            "Ingested %r into %s: %d chunk(s)", source, conversation_id, count
        )
        return count
