"""OpenAI-compatible embedding client."""

from .embedder import (  # noqa: F401
    Embedder,
    build_embedder,
    check_dimensions,
    get_embedder,
)
