"""Application configuration models."""

from .config import AppConfig, get_app_config  # noqa: F401
from .prompts import PromptConfig, SystemPromptConfig  # noqa: F401
from .system import (  # noqa: F401
    ChatConfig,
    EmbeddingConfig,
    LoggingConfig,
    ProviderConfig,
    ProvidersConfig,
    RagConfig,
    ThirdPartyConfig,
)
from .tools import ToolConfig  # noqa: F401
