"""Backend registry: (provider, model name) -> ready chat model.

Built once at start-up from ``AppConfig.providers`` and read-only
afterwards, so concurrent requests share it without locking.

Two lookup styles are offered:

* ``lookup`` returns a ``BackendHandle`` or a ``BackendNotFound``
  value and never raises.
* ``resolve`` raises ``UnknownBackend`` (a ``ConfigurationError``) on
  a miss; this is what the orchestrator uses, since an unknown
  backend is a caller error and is never retried or substituted.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Callable, Iterator, Mapping
from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType
from typing import Annotated

from fastapi import Depends, FastAPI, Request
from langchain_core.language_models import BaseChatModel

from chatrelay.configs.config import AppConfig, get_app_config
from chatrelay.configs.system import ProviderConfig, ProvidersConfig
from chatrelay.core.errors import UnknownBackend
from chatrelay.infra.lifespan import get_app

from .deps import build_chat_model

logger = logging.getLogger(__name__)


class Provider(StrEnum):
    """The closed set of supported providers."""

    OPENAI = "openai"
    OLLAMA = "ollama"

    @classmethod
    def parse(cls, value: str | None) -> Provider | None:
        """Case-insensitive match; ``None`` when *value* is not a provider."""
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class BackendHandle:
    """A ready-to-invoke model for one (provider, model) pair."""

    provider: Provider
    model_name: str
    model: BaseChatModel


@dataclass(frozen=True)
class BackendNotFound:
    """Typed miss returned by ``BackendRegistry.lookup``."""

    provider: str
    model_name: str
    reason: str

    def to_error(self) -> UnknownBackend:
        return UnknownBackend(self.provider, self.model_name, self.reason)


class BackendRegistry:
    """Immutable mapping of provider -> model name -> chat model."""

    def __init__(
        self, backends: Mapping[Provider, Mapping[str, BaseChatModel]]
    ) -> None:
        self._backends: Mapping[Provider, Mapping[str, BaseChatModel]] = (
            MappingProxyType(
                {p: MappingProxyType(dict(models)) for p, models in backends.items()}
            )
        )

    def lookup(
        self, provider: str, model_name: str
    ) -> BackendHandle | BackendNotFound:
        parsed = Provider.parse(provider)
        if parsed is None:
            return BackendNotFound(provider, model_name, "unknown provider")
        model = self._backends.get(parsed, {}).get(model_name)
        if model is None:
            return BackendNotFound(
                provider, model_name, f"model not registered for {parsed.value}"
            )
        return BackendHandle(parsed, model_name, model)

    def resolve(self, provider: str, model_name: str) -> BackendHandle:
        """Like ``lookup`` but raises ``UnknownBackend`` on a miss."""
        found = self.lookup(provider, model_name)
        if isinstance(found, BackendNotFound):
            raise found.to_error()
        return found

    def models(self) -> Iterator[tuple[Provider, str]]:
        """Registered (provider, model name) pairs in a stable order."""
        for provider in Provider:
            for name in sorted(self._backends.get(provider, {})):
                yield provider, name

    def __len__(self) -> int:
        return sum(len(m) for m in self._backends.values())


ModelFactory = Callable[[ProviderConfig, str], BaseChatModel]


def build_backend_registry(
    config: ProvidersConfig,
    factory: ModelFactory = build_chat_model,
) -> BackendRegistry:
    """Build one chat model per configured (provider, model) pair."""
    backends: dict[Provider, dict[str, BaseChatModel]] = {}
    for provider in Provider:
        provider_config: ProviderConfig = getattr(config, provider.value)
        backends[provider] = {
            name: factory(provider_config, name) for name in provider_config.models
        }

    registry = BackendRegistry(backends)
    rows = "\n".join(
        f"  {provider.value:<8} {name}" for provider, name in registry.models()
    )
    logger.info("Loaded %d chat backend(s):\n%s", len(registry), rows or "  (none)")
    return registry


# ---------------------------------------------------------------------------
# Lifespan dependency
# ---------------------------------------------------------------------------


async def build_backends(
    app: Annotated[FastAPI, Depends(get_app)],
    config: Annotated[AppConfig, Depends(get_app_config)],
) -> AsyncGenerator[None, None]:
    """Build the backend registry and attach it to ``app.state``."""
    app.state.backend_registry = build_backend_registry(config.providers)
    yield


def get_backend_registry(request: Request) -> BackendRegistry:
    """FastAPI dependency: reads from ``app.state``."""
    return request.app.state.backend_registry
