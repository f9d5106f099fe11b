"""FastAPI application entry point."""

import logging
from typing import Annotated, AsyncGenerator

from fastapi import Depends, FastAPI
from prometheus_client import make_asgi_app

from chatrelay import __version__
from chatrelay.api.chat import router as chat_router
from chatrelay.api.conversations import router as conversations_router
from chatrelay.api.documents import router as documents_router
from chatrelay.api.exceptions import register_exception_handlers
from chatrelay.configs.config import get_app_config
from chatrelay.core.embedding import build_embedder
from chatrelay.core.llm import build_backends
from chatrelay.core.service.tools import build_tools
from chatrelay.infra.db_engine import build_db
from chatrelay.infra.lifespan import inject
from chatrelay.infra.logging import setup_logging

logger = logging.getLogger(__name__)


@inject
async def lifespan(
    app: FastAPI,
    _db: Annotated[None, Depends(build_db)],
    _backends: Annotated[None, Depends(build_backends)],
    _tools: Annotated[None, Depends(build_tools)],
    _embedder: Annotated[None, Depends(build_embedder)],
) -> AsyncGenerator[None, None]:
    """Start-up resources are built by the injected dependencies."""
    logger.info("chatrelay %s started", __version__)
    yield
    logger.info("chatrelay shutting down")


def get_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    setup_logging(get_app_config().logging)

    app = FastAPI(
        title="chatrelay",
        description="Chat relay to OpenAI-compatible model backends with RAG",
        version=__version__,
        lifespan=lifespan,
    )
    register_exception_handlers(app)

    app.include_router(chat_router)
    app.include_router(conversations_router)
    app.include_router(documents_router)
    app.mount("/metrics", make_asgi_app())

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = get_app()
