"""Provider contract and the shared base class for SDK-backed providers."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional, Protocol, Sequence, runtime_checkable

from llm_toolloop._exceptions import ToolLoopError, classify_error
from llm_toolloop.types import ChatMessage, CompletionResult, ProviderOptions


__all__ = ["ProviderProtocol", "BaseProvider"]


@runtime_checkable
class ProviderProtocol(Protocol):
    """What the orchestration loop requires from a provider.

    ``supports_reasoning_content`` is optional; providers without it are
    treated as not having a reasoning channel.
    """

    async def complete(
        self, messages: Sequence[ChatMessage], options: ProviderOptions
    ) -> CompletionResult: ...


class BaseProvider(ABC):
    """
    Base class for all SDK-backed providers. All implementations are async-first.
    """

    def __init__(
        self,
        model: str,
        *,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        reasoning: bool = False,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> None:
        """
        Initializes the base provider.

        Args:
            model: The upstream model identifier.
            logger: Optional logger instance. If None, a logger named after
                    this module will be used.
            name: Optional name for this component, used in logging.
                  If None, defaults to the concrete class's name.
            reasoning: Whether the backend returns a separate reasoning channel.
            max_tokens: Optional output token cap forwarded on every request.
            temperature: Optional sampling temperature forwarded on every request.
        """
        self.model = model
        self.logger = logger or logging.getLogger(__name__)
        self.name = name if name is not None else self.__class__.__name__
        self.reasoning = reasoning
        self.max_tokens = max_tokens
        self.temperature = temperature

    def supports_reasoning_content(self) -> bool:
        return self.reasoning

    @abstractmethod
    async def _complete_impl(
        self,
        messages: Sequence[ChatMessage],
        options: ProviderOptions,
    ) -> CompletionResult:
        """
        Core asynchronous implementation for one request.
        This method must be implemented by subclasses.

        Args:
            messages: The conversation history as OpenAI-shaped dicts.
            options: Streaming flag, tool definitions and token callbacks.

        Returns:
            The aggregated CompletionResult.
        """
        ...

    async def complete(
        self,
        messages: Sequence[ChatMessage],
        options: ProviderOptions,
    ) -> CompletionResult:
        """
        Send one request and return the aggregated result.

        SDK failures are wrapped in ProviderError; cancellation propagates
        unchanged.
        """
        try:
            return await self._complete_impl(messages, options)
        except ToolLoopError:
            raise
        except Exception as exc:
            raise classify_error(exc, self.logger) from exc

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")

    # --- lifecycle ---------------------------------------------------------
    async def aclose(self) -> None:
        """
        Close underlying async HTTP clients to avoid cleanup after the loop closes.
        Safe to call multiple times.
        """
        client = getattr(self, "_client", None)
        close = getattr(client, "close", None)
        if close:
            await close()

    async def __aenter__(self) -> "BaseProvider":
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.aclose()
