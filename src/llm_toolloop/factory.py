from __future__ import annotations

import logging
from typing import Type

from llm_toolloop._exceptions import ConfigError
from llm_toolloop.config import ModelSettings
from llm_toolloop.providers import Provider, get_api_key
from llm_toolloop.providers.anthropic import AnthropicProvider
from llm_toolloop.providers.base import BaseProvider
from llm_toolloop.providers.openai import DeepSeekProvider, GeminiProvider, OpenAIProvider

# map Provider enum to its implementation
_PROVIDER_REGISTRY: dict[Provider, Type[BaseProvider]] = {
    Provider.OPENAI: OpenAIProvider,
    Provider.ANTHROPIC: AnthropicProvider,
    Provider.GEMINI: GeminiProvider,
    Provider.DEEPSEEK: DeepSeekProvider,
}


def create_provider(
    settings: ModelSettings,
    *,
    logger: logging.Logger | None = None,
) -> BaseProvider:
    """
    Factory for creating the provider behind one model entry.

    Args:
        settings: The model entry. ``settings.api_key`` overrides the automatic
            lookup; if omitted, the key is pulled from the environment.
        logger: Optional custom logger.

    Raises:
        ConfigError: unsupported provider or missing API key.
    """
    try:
        provider_cls = _PROVIDER_REGISTRY[settings.provider]
    except KeyError as exc:
        raise ConfigError(f"Unsupported provider: {settings.provider}") from exc

    key = settings.api_key or get_api_key(settings.provider)
    return provider_cls(
        settings.model,
        api_key=key,
        timeout=settings.timeout,
        max_retries=settings.max_retries,
        logger=logger,
        name=settings.name,
        base_url=settings.base_url,
        reasoning=settings.reasoning,
        max_tokens=settings.max_tokens,
        temperature=settings.temperature,
    )
