"""PostgreSQL persistence: ORM models and stores."""

from .conversations import ConversationStore  # noqa: F401
from .deps import (  # noqa: F401
    get_conversation_store,
    get_document_store,
    get_history_store,
)
from .documents import DocumentStore  # noqa: F401
from .history import HistoryStore  # noqa: F401
