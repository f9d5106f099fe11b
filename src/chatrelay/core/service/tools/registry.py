"""Tool registry: tool id -> tool set.

Built once at start-up from ``AppConfig.tools``.  An unknown
``tool_type`` in config is a start-up error; an unknown tool id at
request time is not, it degrades to "no tool".
"""

import logging
from collections.abc import AsyncGenerator, Mapping
from types import MappingProxyType
from typing import Annotated, Protocol, Self

from fastapi import Depends, FastAPI, Request
from langchain_core.tools import BaseTool

from chatrelay.configs.config import AppConfig, get_app_config
from chatrelay.configs.tools import ToolConfig
from chatrelay.core.service.models import Degraded, Outcome, Resolved, ToolSet
from chatrelay.infra.lifespan import get_app

from .url_tool import FixedURLTool

logger = logging.getLogger(__name__)


class ToolBuilder(Protocol):
    """A ``BaseTool`` class that can build itself from config."""

    tool_type: str

    @classmethod
    def from_config(cls, config: ToolConfig) -> Self: ...


class ToolRegistry:
    """Registry of tool sets, keyed by tool id."""

    _known_tools: dict[str, type[ToolBuilder]] = {
        cls.tool_type: cls for cls in [FixedURLTool]
    }

    def __init__(self, configs: Mapping[str, list[ToolConfig]]) -> None:
        """Build every tool set from configuration."""
        tool_sets: dict[str, ToolSet] = {}
        for tool_id, tool_configs in configs.items():
            tools: list[BaseTool] = []
            for config in tool_configs:
                tool_builder = self._known_tools.get(config.tool_type)
                if not tool_builder:
                    raise NotImplementedError(
                        f"Tool type '{config.tool_type}' is not supported."
                    )
                tools.append(tool_builder.from_config(config))
            tool_sets[tool_id] = ToolSet(tool_id=tool_id, tools=tuple(tools))
        self._tool_sets: Mapping[str, ToolSet] = MappingProxyType(tool_sets)

    def get(self, tool_id: str) -> ToolSet | None:
        return self._tool_sets.get(tool_id)

    def resolve(self, tool_id: str | None) -> Outcome[ToolSet | None]:
        """Resolve *tool_id*; an absent id is simply "no tool"."""
        if not tool_id:
            return Resolved(None)
        tool_set = self._tool_sets.get(tool_id)
        if tool_set is None:
            return Degraded(None, f"unknown tool id {tool_id!r}")
        return Resolved(tool_set)

    def tool_sets(self) -> list[ToolSet]:
        return [self._tool_sets[k] for k in sorted(self._tool_sets)]

    def __len__(self) -> int:
        return len(self._tool_sets)


def build_tool_registry(configs: Mapping[str, list[ToolConfig]]) -> ToolRegistry:
    registry = ToolRegistry(configs)
    for tool_set in registry.tool_sets():
        logger.info(
            "Loaded tool set %r: %s",
            tool_set.tool_id,
            ", ".join(tool_set.tool_names) or "(empty)",
        )
    return registry


# ---------------------------------------------------------------------------
# Lifespan dependency
# ---------------------------------------------------------------------------


async def build_tools(
    app: Annotated[FastAPI, Depends(get_app)],
    config: Annotated[AppConfig, Depends(get_app_config)],
) -> AsyncGenerator[None, None]:
    """Build the tool registry and attach it to ``app.state``."""
    app.state.tool_registry = build_tool_registry(config.tools)
    yield


def get_tool_registry(request: Request) -> ToolRegistry:
    """FastAPI dependency: reads from ``app.state``."""
    return request.app.state.tool_registry
