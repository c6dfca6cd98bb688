from __future__ import annotations

import logging
from typing import Any, Optional, Self, Sequence

from anthropic import AsyncAnthropic
from anthropic.types import Message

from llm_toolloop._observers import notify
from llm_toolloop.adapters.anthropic import AnthropicRequestAdapter
from llm_toolloop.providers.base import BaseProvider
from llm_toolloop.types import ChatMessage, CompletionResult, ProviderOptions

__all__ = ["AnthropicProvider"]


class AnthropicProvider(BaseProvider):
    """
    Anthropic Messages API provider (async-only).

    Use ``AnthropicProvider.from_client`` when you already have an ``AsyncAnthropic`` instance.
    """

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
        self._client = AsyncAnthropic(
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
            base_url=base_url,
        )
        self._adapter = AnthropicRequestAdapter()

    @classmethod
    def from_client(
        cls,
        model: str,
        client: AsyncAnthropic,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        reasoning: bool = False,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> Self:
        """
        Wrap an existing ``AsyncAnthropic`` client.
        """
        if not isinstance(client, AsyncAnthropic):
            raise TypeError(
                f"AnthropicProvider.from_client expects AsyncAnthropic; got {type(client).__name__}"
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
        self._adapter = AnthropicRequestAdapter()
        return self

    @property
    def adapter(self) -> AnthropicRequestAdapter:
        return self._adapter

    async def _complete_impl(
        self,
        messages: Sequence[ChatMessage],
        options: ProviderOptions,
    ) -> CompletionResult:
        """Core implementation for Anthropic chat requests."""
        args: dict[str, Any] = {
            "model": self.model,
            **self._adapter.build_request(
                messages,
                tools=options.tools,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            ),
        }

        self._log(
            f"Sending request to Anthropic model {self.model} (Stream: {options.stream})",
            logging.DEBUG,
        )

        if options.stream:
            return await self._anthropic_stream(args, options)

        response: Message = await self._client.messages.create(**args)
        return self._adapter.from_provider(response)

    async def _anthropic_stream(
        self, args: dict[str, Any], options: ProviderOptions
    ) -> CompletionResult:
        """Forward text/thinking deltas, then convert the final message."""
        async with self._client.messages.stream(**args) as stream:
            async for event in stream:
                if event.type != "content_block_delta":
                    continue
                delta = event.delta
                if delta.type == "text_delta":
                    notify(options.on_token, delta.text)
                elif delta.type == "thinking_delta":
                    notify(options.on_reasoning, delta.thinking)
            final = await stream.get_final_message()
        return self._adapter.from_provider(final)
