"""Row <-> domain conversions for the chat tables.

Covers:
- ChatTurn      -> ChatMessage row   (history write)
- ChatMessage   -> ChatTurn          (history read)
- ChatTurn      -> BaseMessage       (memory handed to the backend)
- Conversation  -> ConversationSummary
"""

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage

from chatrelay.core.service.models import (
    ROLE_ASSISTANT,
    ROLE_USER,
    ChatTurn,
    ConversationSummary,
)

from .models import ChatMessage, Conversation


def turn_to_row(turn: ChatTurn) -> ChatMessage:
    return ChatMessage(
        conversation_id=turn.conversation_id,
        role=turn.role,
        content=turn.content,
    )


def row_to_turn(row: ChatMessage) -> ChatTurn:
    return ChatTurn(
        conversation_id=row.conversation_id,
        role=row.role,  # type: ignore[arg-type]
        content=row.content or "",
        created_at=row.created_at,
    )


def turn_to_message(turn: ChatTurn) -> BaseMessage | None:
    """Convert a stored turn to a LangChain message (``None`` if unknown role)."""
    if turn.role == ROLE_USER:
        return HumanMessage(content=turn.content)
    if turn.role == ROLE_ASSISTANT:
        return AIMessage(content=turn.content)
    return None


def row_to_summary(row: Conversation) -> ConversationSummary:
    return ConversationSummary(
        conversation_id=row.conversation_id,
        title=row.title,
        tag=row.tag,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
