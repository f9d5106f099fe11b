"""Role and step-name constants shared by the service and db layers."""

from typing import Literal

ROLE_USER: Literal["user"] = "user"
ROLE_ASSISTANT: Literal["assistant"] = "assistant"

Role = Literal["user", "assistant"]

VALID_ROLES = frozenset({ROLE_USER, ROLE_ASSISTANT})

# Degradable orchestration steps (used in logs and metrics labels)
STEP_SYSTEM_PROMPT = "system_prompt"
STEP_RETRIEVAL = "retrieval"
STEP_TOOL = "tool"
STEP_HISTORY = "history"

__all__ = [
    "ROLE_USER",
    "ROLE_ASSISTANT",
    "Role",
    "VALID_ROLES",
    "STEP_SYSTEM_PROMPT",
    "STEP_RETRIEVAL",
    "STEP_TOOL",
    "STEP_HISTORY",
]
