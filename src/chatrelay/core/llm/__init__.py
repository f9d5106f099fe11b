"""Model backends: construction and the (provider, model) registry."""

from .content import message_text  # noqa: F401
from .deps import build_chat_model  # noqa: F401
from .registry import (  # noqa: F401
    BackendHandle,
    BackendNotFound,
    BackendRegistry,
    Provider,
    build_backend_registry,
    build_backends,
    get_backend_registry,
)
