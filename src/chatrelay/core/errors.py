"""Exception taxonomy for chat orchestration.

Only ``ConfigurationError`` and ``BackendInvocationError`` ever leave
the orchestrator.  Retrieval, prompt and tool resolution failures are
degraded locally; ``StorageError`` on history writes is logged and
absorbed.  The API layer maps each class to an HTTP status and code.
"""


class ChatRelayError(Exception):
    """Base class for all application errors."""

    code = "PROCESSING_ERROR"


class ConfigurationError(ChatRelayError):
    """Request names a backend that is not configured."""

    code = "UNKNOWN_BACKEND"


class UnknownBackend(ConfigurationError):
    """Provider or model name did not resolve to a registered backend."""

    def __init__(self, provider: str, model_name: str, reason: str) -> None:
        super().__init__(
            f"No backend for provider={provider!r} model={model_name!r}: {reason}"
        )
        self.provider = provider
        self.model_name = model_name
        self.reason = reason


class BackendInvocationError(ChatRelayError):
    """The model backend failed while producing the answer."""

    code = "BACKEND_ERROR"


class StorageError(ChatRelayError):
    """A persistence operation failed."""

    code = "STORAGE_ERROR"


class ConversationValidationError(ChatRelayError):
    """Conversation management input is invalid (e.g. blank id/title)."""

    code = "VALIDATION_ERROR"


class ConversationNotFound(ChatRelayError):
    """No conversation summary exists for the given id."""

    code = "NOT_FOUND"


class ConversationConflict(ChatRelayError):
    """A conversation summary with this id already exists."""

    code = "CONFLICT"


class MediaError(ChatRelayError):
    """An attachment declares a mime type that cannot be parsed."""

    code = "INVALID_MEDIA"
