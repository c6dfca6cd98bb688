from __future__ import annotations

import logging
from typing import Any, Optional, Self, Sequence

from openai import AsyncOpenAI
from openai.types.chat import ChatCompletion

from llm_toolloop.adapters.openai import OpenAIRequestAdapter
from llm_toolloop.providers.base import BaseProvider
from llm_toolloop.stream_utils import aggregate_openai_stream
from llm_toolloop.types import ChatMessage, CompletionResult, ProviderOptions

__all__ = ["OpenAIProvider", "DeepSeekProvider", "GeminiProvider"]


class OpenAIProvider(BaseProvider):
    """
    OpenAI chat-completions provider (async-only).

    Use ``OpenAIProvider.from_client`` when you already have an ``AsyncOpenAI`` instance.
    """

    default_base_url: Optional[str] = None

    def __init__(
        self,
        model: str,
        *,
        api_key: str,
        timeout: float = 60.0,
        max_retries: int = 2,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        base_url: Optional[str] = None,
        reasoning: bool = False,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> None:
        super().__init__(
            model,
            logger=logger,
            name=name,
            reasoning=reasoning,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        self._client = AsyncOpenAI(
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
            base_url=base_url or self.default_base_url,
        )
        self._adapter = OpenAIRequestAdapter(include_reasoning=reasoning)

    # Alternate constructor
    @classmethod
    def from_client(
        cls,
        model: str,
        client: AsyncOpenAI,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        reasoning: bool = False,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> Self:
        """
        Build a provider around an already-configured ``AsyncOpenAI`` client.
        """
        if not isinstance(client, AsyncOpenAI):
            raise TypeError(
                f"{cls.__name__}.from_client expects AsyncOpenAI; got {type(client).__name__}"
            )

        self = cls.__new__(cls)  # bypass __init__
        BaseProvider.__init__(
            self,
            model,
            logger=logger,
            name=name,
            reasoning=reasoning,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        self._client = client
        self._adapter = OpenAIRequestAdapter(include_reasoning=reasoning)
        return self

    @property
    def adapter(self) -> OpenAIRequestAdapter:
        return self._adapter

    async def _complete_impl(
        self,
        messages: Sequence[ChatMessage],
        options: ProviderOptions,
    ) -> CompletionResult:
        """Core implementation for OpenAI chat requests."""
        args: dict[str, Any] = {
            "model": self.model,
            "messages": self._adapter.build_messages(messages),
            **self._adapter.build_params(
                tools=options.tools,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                model=self.model,
            ),
        }

        self._log(
            f"Sending request to model {self.model} (Stream: {options.stream})",
            logging.DEBUG,
        )

        if options.stream:
            stream = await self._client.chat.completions.create(stream=True, **args)
            return await aggregate_openai_stream(
                stream, on_token=options.on_token, on_reasoning=options.on_reasoning
            )

        response: ChatCompletion = await self._client.chat.completions.create(**args)
        return self._adapter.from_provider(response)


class DeepSeekProvider(OpenAIProvider):
    """DeepSeek via its OpenAI-compatible endpoint (``reasoning_content`` aware)."""

    default_base_url = "https://api.deepseek.com"


class GeminiProvider(OpenAIProvider):
    """Gemini via the OpenAI-compatible endpoint."""

    default_base_url = "https://generativelanguage.googleapis.com/v1beta/openai/"
