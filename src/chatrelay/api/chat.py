"""Chat API endpoints."""

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Annotated, AsyncGenerator

from fastapi import APIRouter, File, Form, UploadFile
from fastapi.responses import StreamingResponse

from chatrelay.core.errors import ChatRelayError
from chatrelay.core.service.models import ChatRequest, MediaAttachment

from .deps import BackendRegistryDep, OrchestratorDep, ToolRegistryDep
from .models import (
    CHAT_PROMPT_MAX_LENGTH,
    ChatResponse,
    ContentEvent,
    EndOfStreamEvent,
    ErrorEvent,
    ModelInfo,
    ToolSetInfo,
    format_sse,
)

logger = logging.getLogger(__name__)

STREAMING_RESPONSE_MEDIA_TYPE = "text/event-stream"
STREAMING_RESPONSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "Access-Control-Allow-Headers": "Cache-Control",
}

router = APIRouter(prefix="/api/v1", tags=["chat"])


async def stream_chat_response(
    chunks: AsyncIterator[str],
) -> AsyncGenerator[str, None]:
    """Wrap answer chunks as SSE; a failure becomes one terminal error event."""
    try:
        async for text in chunks:
            yield format_sse(ContentEvent(content=text))
    except asyncio.CancelledError:
        # The orchestrator's generator sees the cancellation too and
        # skips the history write.
        raise
    except ChatRelayError as e:
        yield format_sse(ErrorEvent(message=str(e), code=e.code))
        return
    except Exception as e:
        logger.warning("Unexpected error in chat stream", exc_info=True)
        yield format_sse(
            ErrorEvent(
                message=f"An error occurred during processing: {e}",
                code=ChatRelayError.code,
            )
        )
        return
    yield format_sse(EndOfStreamEvent())


async def read_attachments(files: list[UploadFile] | None) -> tuple[MediaAttachment, ...]:
    """Read uploaded files; raises ``MediaError`` on an unparseable mime type."""
    attachments = []
    for upload in files or []:
        attachments.append(
            MediaAttachment(
                data=await upload.read(),
                mime_type=upload.content_type or "",
                filename=upload.filename or "",
            )
        )
    return tuple(attachments)


@router.post("/chat", response_model=None)
async def chat(
    orchestrator: OrchestratorDep,
    prompt: Annotated[str, Form(min_length=1, max_length=CHAT_PROMPT_MAX_LENGTH)],
    chat_id: Annotated[str, Form(min_length=1)],
    provider: Annotated[str, Form(min_length=1)],
    model: Annotated[str, Form(min_length=1)],
    stream: Annotated[bool, Form()] = True,
    system_prompt_id: Annotated[str | None, Form()] = None,
    files: Annotated[list[UploadFile] | None, File()] = None,
) -> StreamingResponse | ChatResponse:
    """
    Run one chat turn.

    With ``stream=true`` the response is a stream of Server-Sent Events,
    each a JSON object:
    - content: a chunk of answer text
    - end_of_stream: the answer completed
    - error: the backend failed; nothing is recorded for this turn

    With ``stream=false`` the complete answer is returned as JSON.

    An unknown provider/model fails with 400 before anything is streamed.
    """
    request = ChatRequest(
        text=prompt,
        conversation_id=chat_id,
        stream=stream,
        provider=provider,
        model_name=model,
        system_prompt_id=system_prompt_id or None,
        media=await read_attachments(files),
    )
    result = await orchestrator.execute(request)
    if isinstance(result, str):
        return ChatResponse(chat_id=chat_id, content=result)
    return StreamingResponse(
        stream_chat_response(result),
        media_type=STREAMING_RESPONSE_MEDIA_TYPE,
        headers=STREAMING_RESPONSE_HEADERS,
    )


@router.get("/models")
async def list_models(backends: BackendRegistryDep) -> list[ModelInfo]:
    """Registered (provider, model) pairs."""
    return [
        ModelInfo(provider=provider.value, model=name)
        for provider, name in backends.models()
    ]


@router.get("/tools")
async def list_tools(tools: ToolRegistryDep) -> list[ToolSetInfo]:
    """Registered tool sets and the tools in each."""
    return [
        ToolSetInfo(tool_id=tool_set.tool_id, tools=tool_set.tool_names)
        for tool_set in tools.tool_sets()
    ]
