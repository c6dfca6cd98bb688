"""
Exception hierarchy for llm-toolloop.

Provider SDK failures are translated into a unified `ProviderError` while
preserving the original exception for full tracebacks.
"""

from __future__ import annotations

import importlib
import logging
from typing import Final, Type, Optional

__all__: tuple[str, ...] = (
    "ToolLoopError",
    "AbortError",
    "TooManyToolPassesError",
    "ToolArgumentsError",
    "ConfigError",
    "ProviderError",
    "classify_error",
)


class ToolLoopError(RuntimeError):
    """Base class for every error raised by llm-toolloop."""


class AbortError(ToolLoopError):
    """Raised when the caller's abort signal fires during a run."""

    def __init__(self, message: str = "aborted", reason: object = None) -> None:
        super().__init__(message)
        self.reason = reason


class TooManyToolPassesError(ToolLoopError):
    """The model kept requesting tools past ``max_tool_passes`` iterations."""

    def __init__(self, passes: int) -> None:
        super().__init__("Too many consecutive tool calls. Aborting.")
        self.passes = passes


class ToolArgumentsError(ToolLoopError):
    """Tool-call arguments could not be parsed, even after repair.

    Attributes:
        tool: Name of the tool whose arguments failed.
        raw: The argument string as emitted by the model.
        repaired: The repaired text, or None when repair changed nothing.
    """

    def __init__(
        self, tool: str, message: str, *, raw: str, repaired: str | None = None
    ) -> None:
        super().__init__(f"Failed to parse arguments for tool {tool}: {message}")
        self.tool = tool
        self.raw = raw
        self.repaired = repaired


class ConfigError(ToolLoopError):
    """Invalid or missing model / provider configuration."""


class ProviderError(ToolLoopError):
    """Provider-level failure.

    Attributes:
        original_exc: The underlying provider exception.
    """

    original_exc: Exception

    def __init__(self, message: str, original_exc: Exception) -> None:
        super().__init__(message)
        self.original_exc = original_exc
        self.__cause__ = original_exc


def _import_exception(path: str) -> Type[Exception]:
    """Dynamically import an exception type, falling back to Exception."""
    module_name, _, attr = path.rpartition(".")
    try:
        module = importlib.import_module(module_name)
        return getattr(module, attr)
    except (ImportError, AttributeError):
        return Exception


OpenAI_APIError: Final = _import_exception("openai.APIError")
OpenAI_APIConnectionError: Final = _import_exception("openai.APIConnectionError")
OpenAI_RateLimitError: Final = _import_exception("openai.RateLimitError")

Anthropic_APIError: Final = _import_exception("anthropic.APIError")
Anthropic_APIConnectionError: Final = _import_exception("anthropic.APIConnectionError")
Anthropic_RateLimitError: Final = _import_exception("anthropic.RateLimitError")

API_ERRORS: Final[tuple[Type[Exception], ...]] = (
    OpenAI_APIError,
    Anthropic_APIError,
)

CONN_ERRORS: Final[tuple[Type[Exception], ...]] = (
    OpenAI_APIConnectionError,
    Anthropic_APIConnectionError,
    TimeoutError,
    ConnectionError,
)

RATE_LIMIT_ERRORS: Final[tuple[Type[Exception], ...]] = (
    OpenAI_RateLimitError,
    Anthropic_RateLimitError,
)


def classify_error(
    exc: Exception,
    logger: Optional[logging.Logger] = None,
) -> ProviderError:
    """Wrap an SDK exception in ProviderError with a friendly, concise message."""
    log = logger or logging.getLogger("llm_toolloop.exceptions")

    if isinstance(exc, RATE_LIMIT_ERRORS):
        msg = "Rate-limit exceeded - please retry later"
    elif isinstance(exc, CONN_ERRORS):
        msg = "Connection problem - unable to reach the LLM provider"
    elif isinstance(exc, API_ERRORS):
        status = getattr(exc, "status_code", None)
        msg = f"Provider reported an error ({status})" if status else "Provider reported an internal error"
    else:
        msg = exc.__class__.__name__

    log.warning("Wrapping provider exception", extra={"exc": exc})
    return ProviderError(f"{msg}: {exc}", exc)
