"""Per-request data passed through the orchestrator."""

import base64
import re
from dataclasses import dataclass, field
from datetime import datetime

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_core.tools import BaseTool

from chatrelay.core.errors import MediaError

from .constants import Role

# type "/" subtype, optional parameters ignored
_MIME_PATTERN = re.compile(r"^[A-Za-z0-9][\w!#$&^.+-]*/[A-Za-z0-9][\w!#$&^.+-]*$")
_IMAGE_PREFIX = "image/"


def parse_mime_type(value: str | None) -> str:
    """Return the normalised ``type/subtype`` or raise ``MediaError``."""
    essence = (value or "").split(";", 1)[0].strip().lower()
    if not _MIME_PATTERN.match(essence):
        raise MediaError(f"Unparseable mime type: {value!r}")
    return essence


@dataclass(frozen=True)
class MediaAttachment:
    """User-supplied binary attachment (e.g. an image)."""

    data: bytes
    mime_type: str
    filename: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "mime_type", parse_mime_type(self.mime_type))

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith(_IMAGE_PREFIX)

    def to_content_block(self) -> dict:
        """Render as a LangChain multimodal content block."""
        encoded = base64.b64encode(self.data).decode("ascii")
        if self.is_image:
            return {
                "type": "image_url",
                "image_url": {"url": f"data:{self.mime_type};base64,{encoded}"},
            }
        block = {
            "type": "file",
            "source_type": "base64",
            "mime_type": self.mime_type,
            "data": encoded,
        }
        if self.filename:
            block["filename"] = self.filename
        return block


@dataclass(frozen=True)
class ChatRequest:
    """One inbound chat turn.  Immutable once constructed."""

    text: str
    conversation_id: str
    stream: bool
    provider: str
    model_name: str
    system_prompt_id: str | None = None
    media: tuple[MediaAttachment, ...] = ()


@dataclass(frozen=True)
class SystemPromptBinding:
    """Resolved system prompt text and optional tool-set id."""

    content: str
    tool_id: str | None = None
    name: str = ""


@dataclass(frozen=True)
class RetrievedPassage:
    """A reference passage found for the current query."""

    text: str
    score: float


@dataclass(frozen=True)
class ToolSet:
    """Named group of tools bound to the model together."""

    tool_id: str
    tools: tuple[BaseTool, ...]

    @property
    def tool_names(self) -> list[str]:
        return [t.name for t in self.tools]

    def get(self, name: str) -> BaseTool | None:
        for t in self.tools:
            if t.name == name:
                return t
        return None


@dataclass(frozen=True)
class AssembledPrompt:
    """Final message set for one backend invocation."""

    system_text: str
    user_text: str
    media: tuple[MediaAttachment, ...] = ()
    tool: ToolSet | None = None

    def user_message(self) -> HumanMessage:
        """Exactly one user message carrying the text and all media."""
        if not self.media:
            return HumanMessage(content=self.user_text)
        return HumanMessage(
            content=[
                {"type": "text", "text": self.user_text},
                *(m.to_content_block() for m in self.media),
            ]
        )

    def to_messages(self, history: list[BaseMessage] | None = None) -> list[BaseMessage]:
        """System message, prior turns (oldest first), then the user message."""
        return [
            SystemMessage(content=self.system_text),
            *(history or []),
            self.user_message(),
        ]


@dataclass(frozen=True)
class ChatTurn:
    """One persisted role-tagged message of a conversation."""

    conversation_id: str
    role: Role
    content: str
    created_at: datetime | None = None


@dataclass
class ConversationSummary:
    """Catalog entry for a conversation."""

    conversation_id: str
    title: str
    tag: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class DeletionReport:
    """Outcome of deleting a conversation's summary, turns and documents."""

    conversation_id: str
    summary_deleted: bool = False
    turns_deleted: int = 0
    chunks_deleted: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


__all__ = [
    "parse_mime_type",
    "MediaAttachment",
    "ChatRequest",
    "SystemPromptBinding",
    "RetrievedPassage",
    "ToolSet",
    "AssembledPrompt",
    "ChatTurn",
    "ConversationSummary",
    "DeletionReport",
]
