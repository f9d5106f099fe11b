"""Tool sets bound to the model by system prompt."""

from .registry import (  # noqa: F401
    ToolRegistry,
    build_tool_registry,
    build_tools,
    get_tool_registry,
)
from .url_tool import FixedURLTool, URLToolArgs  # noqa: F401
