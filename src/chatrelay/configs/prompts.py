"""System prompt catalog configuration.

Each entry is addressed by a prompt id supplied with a chat request.
An entry may name a tool set (``tool_id``) that is bound to the model
whenever that prompt is selected.
"""

from pydantic import BaseModel, Field

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful, precise assistant. Answer in the language the user "
    "writes in. When reference material is provided, prefer it over prior "
    "knowledge and say so when it does not cover the question."
)


class SystemPromptConfig(BaseModel):
    """A single catalog entry."""

    name: str = Field(default="", description="Human-readable prompt name")
    content: str = Field(description="System prompt text sent to the model")
    tool_id: str | None = Field(
        default=None,
        description="Tool set bound to the model when this prompt is used",
    )


class PromptConfig(BaseModel):
    """Default system prompt plus the catalog of selectable prompts."""

    default_system_prompt: str = Field(
        default=DEFAULT_SYSTEM_PROMPT,
        description="Used when no prompt id is given or it cannot be resolved",
    )
    system_prompts: dict[str, SystemPromptConfig] = Field(
        default_factory=dict,
        description="Selectable system prompts keyed by prompt id",
    )
