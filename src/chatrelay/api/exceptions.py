"""Global exception handlers.

Registered on the app at construction time (``get_app``), so they are
part of the middleware stack Starlette builds on the first ASGI call.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from chatrelay.core.errors import (
    BackendInvocationError,
    ChatRelayError,
    ConfigurationError,
    ConversationConflict,
    ConversationNotFound,
    ConversationValidationError,
    MediaError,
    StorageError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[ChatRelayError], int] = {
    ConfigurationError: 400,
    ConversationValidationError: 422,
    MediaError: 422,
    ConversationNotFound: 404,
    ConversationConflict: 409,
    BackendInvocationError: 502,
    StorageError: 500,
    ChatRelayError: 500,
}


def register_exception_handlers(app: FastAPI) -> None:
    """Map every ``ChatRelayError`` subclass to a JSON error response."""

    async def handle_chatrelay_error(
        request: Request, exc: ChatRelayError
    ) -> JSONResponse:
        status = next(
            code for cls, code in STATUS_BY_ERROR.items() if isinstance(exc, cls)
        )
        if status >= 500:
            logger.warning("%s on %s: %s", exc.code, request.url.path, exc)
        return JSONResponse(
            status_code=status,
            content={"detail": str(exc), "code": exc.code},
        )

    app.add_exception_handler(ChatRelayError, handle_chatrelay_error)
