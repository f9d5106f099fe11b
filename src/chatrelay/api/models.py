"""Pydantic models for the HTTP API."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from chatrelay.core.service.models import (
    ChatTurn,
    ConversationSummary,
    DeletionReport,
)

# Maximum length for the chat prompt form field
CHAT_PROMPT_MAX_LENGTH = 16384


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


class ChatResponse(BaseModel):
    """Buffered (non-streaming) chat answer."""

    chat_id: str = Field(description="Conversation id")
    content: str = Field(description="Complete response text")


class ContentEvent(BaseModel):
    """A chunk of answer text."""

    type: Literal["content"] = "content"
    content: str = Field(description="Text chunk")


class EndOfStreamEvent(BaseModel):
    """The answer completed normally."""

    type: Literal["end_of_stream"] = "end_of_stream"


class ErrorEvent(BaseModel):
    """Terminal error; no further events follow."""

    type: Literal["error"] = "error"
    message: str = Field(description="Error message")
    code: str | None = Field(default=None, description="Error code")


StreamEvent = ContentEvent | EndOfStreamEvent | ErrorEvent


def format_sse(event: StreamEvent) -> str:
    return f"data: {event.model_dump_json()}\n\n"


class ModelInfo(BaseModel):
    provider: str
    model: str


class ToolSetInfo(BaseModel):
    tool_id: str
    tools: list[str]


# ---------------------------------------------------------------------------
# Conversations
# ---------------------------------------------------------------------------


class ConversationCreate(BaseModel):
    chat_id: str = Field(description="Conversation id")
    title: str = Field(description="Conversation title")
    tag: str | None = Field(default=None, description="Optional tag")


class ConversationUpdate(BaseModel):
    title: str = Field(description="Conversation title")
    tag: str | None = Field(default=None, description="Optional tag")


class ConversationOut(BaseModel):
    chat_id: str
    title: str
    tag: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_summary(cls, summary: ConversationSummary) -> "ConversationOut":
        return cls(
            chat_id=summary.conversation_id,
            title=summary.title,
            tag=summary.tag,
            created_at=summary.created_at,
            updated_at=summary.updated_at,
        )


class MessageOut(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    created_at: datetime | None = None

    @classmethod
    def from_turn(cls, turn: ChatTurn) -> "MessageOut":
        return cls(role=turn.role, content=turn.content, created_at=turn.created_at)


class DeletionOut(BaseModel):
    chat_id: str
    summary_deleted: bool
    turns_deleted: int
    chunks_deleted: int = 0
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def from_report(cls, report: DeletionReport) -> "DeletionOut":
        return cls(
            chat_id=report.conversation_id,
            summary_deleted=report.summary_deleted,
            turns_deleted=report.turns_deleted,
            chunks_deleted=report.chunks_deleted,
            errors=list(report.errors),
        )


class DocumentOut(BaseModel):
    chat_id: str
    source: str
    chunks: int
