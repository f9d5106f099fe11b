"""Tool configuration models.

Tools are grouped into tool sets addressed by a ``tool_id``.  A system
prompt names at most one tool set; every tool in it is bound to the
model for that turn.  The model only sees ``name`` and ``description``;
``args`` are baked into the tool at construction time.
"""

from typing import Any

from pydantic import BaseModel, Field


class ToolConfig(BaseModel):
    """Configuration for a single tool inside a tool set.

    Attributes:
        name: Shown to the model as the tool name.
        description: Shown to the model; should explain when to use it.
        tool_type: Registered builder type, e.g. ``'url'``.
        args: Hidden kwargs baked into the tool instance
            (e.g. ``url``, ``timeout``).  Not exposed to the model.
    """

    name: str = Field(..., description="Tool name shown to the model")
    description: str = Field(..., description="Tool description shown to the model")
    tool_type: str = Field(..., description="Registered tool type, e.g. 'url'")
    args: dict[str, Any] = Field(
        default_factory=dict,
        description="Hidden args baked into the tool "
        "(e.g. url, timeout). Not exposed to the model.",
    )
