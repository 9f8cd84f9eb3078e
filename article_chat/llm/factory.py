"""
Generative provider factory.
"""

import logging
from typing import Callable, Dict, List

from .base import LLMClient
from .ollama_client import OllamaChatClient
from .openai_client import OpenAIChatClient
from .stub_client import StubLLMClient
from ..config import Config

logger = logging.getLogger(__name__)


def _build_ollama(config: Config) -> LLMClient:
    return OllamaChatClient(
        model=config.llm_model,
        base_url=config.ollama_base_url,
        temperature=config.llm_temperature,
        timeout=config.llm_timeout,
    )


def _build_openai(config: Config) -> LLMClient:
    return OpenAIChatClient(
        api_key=config.openai_api_key,
        model=config.openai_model,
        temperature=config.llm_temperature,
        timeout=config.llm_timeout,
    )


def _build_mock(config: Config) -> LLMClient:
    return StubLLMClient()


_PROVIDER_REGISTRY: Dict[str, Callable[[Config], LLMClient]] = {
    "ollama": _build_ollama,
    "openai": _build_openai,
    "mock": _build_mock,
}


def available_providers() -> List[str]:
    """Return the registered provider names."""
    return sorted(_PROVIDER_REGISTRY.keys())


def create_llm_client(config: Config) -> LLMClient:
    """
    Build the generative provider selected by config.llm_provider.

    Args:
        config: System configuration

    Returns:
        Ready-to-use LLMClient

    Raises:
        ValueError: If the provider name is not registered
    """
    name = config.llm_provider.lower().strip()
    builder = _PROVIDER_REGISTRY.get(name)
    if builder is None:
        supported = ", ".join(available_providers())
        raise ValueError(f"Unsupported provider: {config.llm_provider}. Supported: {supported}")
    logger.info(f"Using generative provider '{name}'")
    return builder(config)
