"""
Tool-call records and the observer events emitted around them.

Events are intentionally minimal: they carry what a display layer needs to
render a step, nothing about how the loop works.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

__all__ = ["ToolCall", "AssistantStep", "BeforeRequest", "ToolCallEvent", "ToolResultEvent"]

# Normalized OpenAI-shaped tool call:
# {"id": str, "type": "function", "function": {"name": str, "arguments": str}}
ToolCall = dict[str, Any]


@dataclass(slots=True)
class AssistantStep:
    """An assistant turn that requested tools, emitted before they run."""
    text: str
    reasoning: Optional[str]
    tool_calls: list[ToolCall]
    iteration: int
    model: str


@dataclass(slots=True)
class BeforeRequest:
    """Passed to ``on_before_request`` ahead of every provider call."""
    iteration: int
    model: str
    session: Any


@dataclass(slots=True)
class ToolCallEvent:
    """A tool is about to be invoked with its final arguments."""
    tool: str
    call_id: str
    args: Any


@dataclass(slots=True)
class ToolResultEvent:
    """A tool finished (or failed); ``result`` is the unsanitized text."""
    tool: str
    call_id: str
    result: str
