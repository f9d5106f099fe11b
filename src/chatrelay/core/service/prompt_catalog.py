"""System prompt resolution from the config-backed prompt catalog."""

import logging

from chatrelay.configs.prompts import PromptConfig

from .models import Degraded, Outcome, Resolved, SystemPromptBinding

logger = logging.getLogger(__name__)


class PromptCatalog:
    """Resolve a prompt id to its text and optional tool set id.

    The catalog is read from config per request, so edits to
    ``prompt.system_prompts`` apply without a restart.
    """

    def __init__(self, config: PromptConfig) -> None:
        self._config = config

    @property
    def default(self) -> SystemPromptBinding:
        """Default prompt text, no tool."""
        return SystemPromptBinding(content=self._config.default_system_prompt)

    def resolve(self, prompt_id: str | None) -> Outcome[SystemPromptBinding]:
        if not prompt_id:
            return Resolved(self.default)
        try:
            entry = self._config.system_prompts.get(prompt_id)
        except Exception as exc:
            return Degraded(self.default, f"prompt lookup failed for {prompt_id!r}", exc)
        if entry is None:
            return Degraded(self.default, f"unknown system prompt id {prompt_id!r}")
        return Resolved(
            SystemPromptBinding(
                content=entry.content,
                tool_id=entry.tool_id,
                name=entry.name or prompt_id,
            )
        )
