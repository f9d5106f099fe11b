"""Chat model factory functions."""

import logging

from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI

from chatrelay.configs.system import ProviderConfig

logger = logging.getLogger(__name__)


def build_chat_model(config: ProviderConfig, model_name: str) -> BaseChatModel:
    """Create a ``ChatOpenAI`` client for one model of an OpenAI-compatible provider.

    Ollama exposes the same ``/v1/chat/completions`` surface, so both
    providers are served by the same client class and differ only in
    ``endpoint`` and ``api_key``.
    """
    return ChatOpenAI(
        base_url=config.endpoint,
        api_key=config.api_key or "unused",
        model=model_name,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
        timeout=config.timeout.total_seconds(),
        max_retries=config.max_retries,
        streaming=True,
    )
