"""Conversation management endpoints."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from .deps import ConversationServiceDep
from .models import (
    ConversationCreate,
    ConversationOut,
    ConversationUpdate,
    DeletionOut,
    MessageOut,
)

router = APIRouter(prefix="/api/v1/conversations", tags=["conversations"])


@router.get("")
async def list_conversations(service: ConversationServiceDep) -> list[ConversationOut]:
    return [ConversationOut.from_summary(s) for s in await service.list_conversations()]


@router.post("", status_code=201)
async def create_conversation(
    body: ConversationCreate, service: ConversationServiceDep
) -> ConversationOut:
    summary = await service.create(body.chat_id, body.title, body.tag)
    return ConversationOut.from_summary(summary)


@router.put("/{chat_id}")
async def update_conversation(
    chat_id: str, body: ConversationUpdate, service: ConversationServiceDep
) -> ConversationOut:
    summary = await service.update(chat_id, body.title, body.tag)
    return ConversationOut.from_summary(summary)


@router.delete("/{chat_id}", response_model=DeletionOut)
async def delete_conversation(
    chat_id: str, service: ConversationServiceDep
) -> JSONResponse:
    """Delete the summary and all turns; 500 if either part failed."""
    report = await service.delete(chat_id)
    return JSONResponse(
        status_code=200 if report.ok else 500,
        content=DeletionOut.from_report(report).model_dump(),
    )


@router.get("/{chat_id}/messages")
async def list_messages(
    chat_id: str, service: ConversationServiceDep
) -> list[MessageOut]:
    return [MessageOut.from_turn(t) for t in await service.messages(chat_id)]
