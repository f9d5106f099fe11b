"""Unit tests for DocumentIngestor."""

import pytest

from chatrelay.configs.system import RagConfig
from chatrelay.core.errors import ConversationValidationError
from chatrelay.core.service.ingest import DocumentIngestor

from fakes import FakeDocumentStore, FakeEmbedder


class TestDocumentIngestor:
    @pytest.mark.asyncio
    async def test_chunks_are_stored_under_the_conversation(self):
        store = FakeDocumentStore()
        ingestor = DocumentIngestor(
            FakeEmbedder(), store, RagConfig(chunk_size=40, chunk_overlap=0)
        )
        text = "\n\n".join(f"Paragraph {i} talks about release {i}." for i in range(5))

        count = await ingestor.ingest("c1", "notes.md", text)

        assert count == len(store.added[0][2])
        assert count > 1
        conversation_id, source, chunks = store.added[0]
        assert (conversation_id, source) == ("c1", "notes.md")
        assert all(len(c) <= 40 for c in chunks)

    def test_split_drops_whitespace_only_chunks(self):
        ingestor = DocumentIngestor(FakeEmbedder(), FakeDocumentStore(), RagConfig())
        assert ingestor.split("   \n\n  ") == []

    @pytest.mark.asyncio
    async def test_empty_document_is_rejected(self):
        ingestor = DocumentIngestor(FakeEmbedder(), FakeDocumentStore(), RagConfig())
        with pytest.raises(ConversationValidationError):
            await ingestor.ingest("c1", "empty.txt", "")

    @pytest.mark.asyncio
    async def test_blank_conversation_is_rejected(self):
        ingestor = DocumentIngestor(FakeEmbedder(), FakeDocumentStore(), RagConfig())
        with pytest.raises(ConversationValidationError):
            await ingestor.ingest(" ", "a.txt", "text")
