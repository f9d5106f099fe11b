"""Configuration management using pydantic-settings.

**Not a singleton**: each call to ``get_app_config()`` re-reads config
from disk so that edits to the prompt catalog are picked up without
restarting.  Backends and tools are built once at start-up from the
config seen at that moment.

Priority order (highest first):

1. Init kwargs (explicit construction, tests)
2. Environment variables (``CHATRELAY_`` prefix, ``__`` for nesting)
3. ``.env`` dotenv file
4. Static YAML (``configs/config.yaml``)
5. File secrets
6. Field defaults
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from .prompts import PromptConfig
from .system import (
    ChatConfig,
    EmbeddingConfig,
    LoggingConfig,
    ProvidersConfig,
    RagConfig,
    ThirdPartyConfig,
)
from .tools import ToolConfig

# ---------------------------------------------------------------------------
# Path constants
# ---------------------------------------------------------------------------

CONFIG_PY_PATH = Path(__file__).resolve()
PROJECT_ROOT = CONFIG_PY_PATH.parent.parent.parent.parent
CONFIG_DIR = PROJECT_ROOT / "configs"

STATIC_CONFIG_FILE = CONFIG_DIR / "config.yaml"
DOTENV_FILE_PATH = PROJECT_ROOT / ".env"
ENV_DELIMITER = "__"  # Nested environment variable delimiter
ENV_PREFIX = "CHATRELAY_"

DEFAULT_ENCODING = "utf-8"


class AppConfig(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(
        env_file=DOTENV_FILE_PATH,
        env_file_encoding=DEFAULT_ENCODING,
        env_nested_delimiter=ENV_DELIMITER,
        env_prefix=ENV_PREFIX,
        case_sensitive=False,
        extra="ignore",
        yaml_file=STATIC_CONFIG_FILE,
        yaml_file_encoding=DEFAULT_ENCODING,
    )

    third_party: ThirdPartyConfig = Field(
        default_factory=ThirdPartyConfig,
        description="Third-party service configurations",
    )

    providers: ProvidersConfig = Field(
        default_factory=ProvidersConfig,
        description="Model providers and the models each one serves",
    )

    embedding: EmbeddingConfig = Field(
        default_factory=EmbeddingConfig,
        description="OpenAI-compatible embedding endpoint settings",
    )

    rag: RagConfig = Field(
        default_factory=RagConfig,
        description="RAG retrieval settings",
    )

    chat: ChatConfig = Field(
        default_factory=ChatConfig,
        description="Chat turn settings",
    )

    prompt: PromptConfig = Field(
        default_factory=PromptConfig,
        description="Default system prompt and prompt catalog",
    )

    tools: dict[str, list[ToolConfig]] = Field(
        default_factory=dict,
        description="Tool sets keyed by tool id",
    )

    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging settings",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


def get_app_config() -> AppConfig:
    """Get the application configuration (re-read on every call)."""
    return AppConfig()


def get_chat_config() -> ChatConfig:
    return get_app_config().chat


def get_rag_config() -> RagConfig:
    return get_app_config().rag


def get_prompt_config() -> PromptConfig:
    return get_app_config().prompt
