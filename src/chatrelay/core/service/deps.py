"""FastAPI dependency factories for chat services.

Registries and the embedder are built once in the lifespan and read
from ``app.state``; services are assembled per request with an
explicit parameter chain, so tests can override any link via
``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends

from chatrelay.configs.config import get_chat_config, get_prompt_config, get_rag_config
from chatrelay.configs.prompts import PromptConfig
from chatrelay.configs.system import ChatConfig, RagConfig
from chatrelay.core.embedding import Embedder, get_embedder
from chatrelay.core.llm import BackendRegistry, get_backend_registry
from chatrelay.infra.db.conversations import ConversationStore
from chatrelay.infra.db.deps import (
    get_conversation_store,
    get_document_store,
    get_history_store,
)
from chatrelay.infra.db.documents import DocumentStore
from chatrelay.infra.db.history import HistoryStore

from .conversations import ConversationService
from .ingest import DocumentIngestor
from .orchestrator import ConversationOrchestrator
from .prompt import PromptAssembler
from .prompt_catalog import PromptCatalog
from .retriever import ContextRetriever
from .tools import ToolRegistry, get_tool_registry


def get_prompt_catalog(
    config: Annotated[PromptConfig, Depends(get_prompt_config)],
) -> PromptCatalog:
    return PromptCatalog(config)


def get_context_retriever(
    embedder: Annotated[Embedder, Depends(get_embedder)],
    documents: Annotated[DocumentStore, Depends(get_document_store)],
    config: Annotated[RagConfig, Depends(get_rag_config)],
) -> ContextRetriever:
    return ContextRetriever(embedder, documents, config)


def get_prompt_assembler(
    config: Annotated[RagConfig, Depends(get_rag_config)],
) -> PromptAssembler:
    return PromptAssembler(max_passage_chars=config.max_passage_chars)


def get_orchestrator(
    backends: Annotated[BackendRegistry, Depends(get_backend_registry)],
    prompts: Annotated[PromptCatalog, Depends(get_prompt_catalog)],
    retriever: Annotated[ContextRetriever, Depends(get_context_retriever)],
    tools: Annotated[ToolRegistry, Depends(get_tool_registry)],
    history: Annotated[HistoryStore, Depends(get_history_store)],
    assembler: Annotated[PromptAssembler, Depends(get_prompt_assembler)],
    config: Annotated[ChatConfig, Depends(get_chat_config)],
) -> ConversationOrchestrator:
    """Create the orchestrator for one request."""
    return ConversationOrchestrator(
        backends, prompts, retriever, tools, history, assembler, config
    )


def get_conversation_service(
    summaries: Annotated[ConversationStore, Depends(get_conversation_store)],
    history: Annotated[HistoryStore, Depends(get_history_store)],
    documents: Annotated[DocumentStore, Depends(get_document_store)],
) -> ConversationService:
    return ConversationService(summaries, history, documents)


def get_document_ingestor(
    embedder: Annotated[Embedder, Depends(get_embedder)],
    documents: Annotated[DocumentStore, Depends(get_document_store)],
    config: Annotated[RagConfig, Depends(get_rag_config)],
) -> DocumentIngestor:
    return DocumentIngestor(embedder, documents, config)
