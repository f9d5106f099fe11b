"""Centralized FastAPI dependency type aliases.

Import these ``*Dep`` aliases in route modules instead of manually
writing ``Annotated[T, Depends(get_xxx)]`` everywhere.  Each alias
corresponds to a single ``get_*`` factory and can be overridden in
tests via ``app.dependency_overrides[get_xxx] = ...``.
"""

from typing import Annotated

from fastapi import Depends

from chatrelay.core.llm import BackendRegistry, get_backend_registry
from chatrelay.core.service.conversations import ConversationService
from chatrelay.core.service.deps import (
    get_conversation_service,
    get_document_ingestor,
    get_orchestrator,
)
from chatrelay.core.service.ingest import DocumentIngestor
from chatrelay.core.service.orchestrator import ConversationOrchestrator
from chatrelay.core.service.tools import ToolRegistry, get_tool_registry

OrchestratorDep = Annotated[ConversationOrchestrator, Depends(get_orchestrator)]
ConversationServiceDep = Annotated[
    ConversationService, Depends(get_conversation_service)
]
DocumentIngestorDep = Annotated[DocumentIngestor, Depends(get_document_ingestor)]
BackendRegistryDep = Annotated[BackendRegistry, Depends(get_backend_registry)]
ToolRegistryDep = Annotated[ToolRegistry, Depends(get_tool_registry)]
