"""Provider-facing request/response types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Optional

if TYPE_CHECKING:
    from llm_toolloop.abort import AbortSignal

# Type alias for chat messages (OpenAI-shaped dicts)
ChatMessage = dict[str, Any]

TokenCallback = Callable[[str], None]


@dataclass
class ProviderOptions:
    """Options handed to ``Provider.complete`` for one request."""

    stream: bool = True
    tools: list[dict[str, Any]] = field(default_factory=list)
    on_token: Optional[TokenCallback] = None
    on_reasoning: Optional[TokenCallback] = None
    signal: Optional["AbortSignal"] = None


@dataclass
class CompletionResult:
    """What a provider returns for one request.

    ``tool_calls`` holds raw OpenAI-shaped records; their ``arguments`` are
    strings and are not guaranteed to be valid JSON.
    """

    content: str | None = ""
    tool_calls: list[dict[str, Any]] | None = None
    reasoning: str | None = None
    raw: Any = None

    def __repr__(self) -> str:
        content = self.content or ""
        preview = content[:75] + "..." if len(content) > 75 else content
        calls = len(self.tool_calls or [])
        return f"{self.__class__.__name__}(content={preview!r}, tool_calls={calls})"
