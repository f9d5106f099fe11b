"""Reference document upload (RAG ingestion)."""

from typing import Annotated

from fastapi import APIRouter, File, UploadFile

from chatrelay.core.errors import MediaError
from chatrelay.core.service.models import parse_mime_type

from .deps import DocumentIngestorDep
from .models import DocumentOut

router = APIRouter(prefix="/api/v1/conversations", tags=["documents"])

TEXT_MIME_TYPES = frozenset(
    {"text/plain", "text/markdown", "text/x-markdown", "text/csv", "application/json"}
)


@router.post("/{chat_id}/documents", status_code=201)
async def upload_document(
    chat_id: str,
    file: Annotated[UploadFile, File()],
    ingestor: DocumentIngestorDep,
) -> DocumentOut:
    """Chunk, embed and index a text document for this conversation."""
    mime_type = parse_mime_type(file.content_type)
    if mime_type not in TEXT_MIME_TYPES:
        raise MediaError(f"Unsupported document type: {mime_type}")
    try:
        text = (await file.read()).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MediaError("Document is not valid UTF-8 text") from exc

    source = file.filename or "document"
    chunks = await ingestor.ingest(chat_id, source, text)
    return DocumentOut(chat_id=chat_id, source=source, chunks=chunks)
