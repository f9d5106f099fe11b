"""Conversation management: summary CRUD and history access."""

import logging

from chatrelay.core.errors import ConversationNotFound, ConversationValidationError
from chatrelay.infra.db.conversations import ConversationStore
from chatrelay.infra.db.documents import DocumentStore
from chatrelay.infra.db.history import HistoryStore

from .models import ChatTurn, ConversationSummary, DeletionReport

logger = logging.getLogger(__name__)


def _require(value: str | None, field: str) -> str:
    if value is None or not value.strip():
        raise ConversationValidationError(f"{field} must not be blank")
    return value


class ConversationService:
    def __init__(
        self,
        summaries: ConversationStore,
        history: HistoryStore,
        documents: DocumentStore,
    ) -> None:
        self._summaries = summaries
        self._history = history
        self._documents = documents

    async def list_conversations(self) -> list[ConversationSummary]:
        return await self._summaries.list_all()

    async def create(
        self, conversation_id: str, title: str, tag: str | None = None
    ) -> ConversationSummary:
        summary = ConversationSummary(
            conversation_id=_require(conversation_id, "chat_id"),
            title=_require(title, "title"),
            tag=tag,
        )
        return await self._summaries.create(summary)

    async def update(
        self, conversation_id: str, title: str, tag: str | None = None
    ) -> ConversationSummary:
        summary = ConversationSummary(
            conversation_id=_require(conversation_id, "chat_id"),
            title=_require(title, "title"),
            tag=tag,
        )
        if not await self._summaries.update(summary):
            raise ConversationNotFound(f"No conversation {conversation_id!r}")
        return await self._summaries.get(conversation_id) or summary

    async def delete(self, conversation_id: str) -> DeletionReport:
        """Delete the summary, all turns and all uploaded document chunks.

        Every deletion is attempted even if an earlier one fails; the
        report lists whatever went wrong.  They are not one transaction.
        """
        _require(conversation_id, "chat_id")
        report = DeletionReport(conversation_id=conversation_id)
        try:
            report.summary_deleted = await self._summaries.delete(conversation_id)
        except Exception as exc:
            logger.warning(
                "Failed to delete summary of %s", conversation_id, exc_info=True
            )
            report.errors.append(f"summary: {exc}")
        try:
            report.turns_deleted = await self._history.delete_by_conversation(
                conversation_id
            )
        except Exception as exc:
            logger.warning(
                "Failed to delete turns of %s", conversation_id, exc_info=True
            )
            report.errors.append(f"turns: {exc}")
        try:
            report.chunks_deleted = await self._documents.delete_by_conversation(
                conversation_id
            )
        except Exception as exc:
            logger.warning(
                "Failed to delete documents of %s", conversation_id, exc_info=True
            )
            report.errors.append(f"documents: {exc}")
        return report

    async def messages(self, conversation_id: str) -> list[ChatTurn]:
        """All turns of the conversation, oldest first."""
        return await self._history.query_by_conversation(
            _require(conversation_id, "chat_id")
        )
