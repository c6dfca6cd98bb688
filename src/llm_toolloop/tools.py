"""Tool contracts and a simple name-based registry."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Optional

from llm_toolloop.abort import AbortSignal

__all__ = ["ToolContext", "ToolHandler", "Tool", "ToolRegistry"]

_logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ToolContext:
    """Second argument passed to every tool handler."""

    model: str
    session: Any
    signal: Optional[AbortSignal]
    tool_call_id: str
    caller: Optional[str] = None


ToolHandler = Callable[[Any, ToolContext], Awaitable[Any]]


@dataclass(slots=True)
class Tool:
    """A named tool: OpenAI function definition plus an async handler."""

    name: str
    definition: dict[str, Any]
    handler: ToolHandler


def function_definition(
    name: str, description: str = "", parameters: Optional[dict[str, Any]] = None
) -> dict[str, Any]:
    return {
        "type": "function",
        "function": {
            "name": name,
            "description": description,
            "parameters": parameters or {"type": "object", "properties": {}},
        },
    }


@dataclass
class ToolRegistry:
    """Holds tools by name and resolves named subsets for a model."""

    _tools: dict[str, Tool] = field(default_factory=dict)

    def register(
        self,
        name: str,
        handler: ToolHandler,
        *,
        description: str = "",
        parameters: Optional[dict[str, Any]] = None,
    ) -> Tool:
        if not name:
            raise ValueError("tool name must not be empty")
        tool = Tool(name, function_definition(name, description, parameters), handler)
        self._tools[name] = tool
        return tool

    def tool(
        self,
        name: Optional[str] = None,
        *,
        description: str = "",
        parameters: Optional[dict[str, Any]] = None,
    ) -> Callable[[ToolHandler], ToolHandler]:
        """Decorator form of `register`; defaults to the function's name and docstring."""

        def decorator(handler: ToolHandler) -> ToolHandler:
            self.register(
                name or handler.__name__,
                handler,
                description=description or (handler.__doc__ or "").strip(),
                parameters=parameters,
            )
            return handler

        return decorator

    def names(self) -> list[str]:
        return list(self._tools)

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def resolve_toolset(self, names: Optional[Iterable[str]]) -> list[Tool]:
        """Return tools for *names* in the given order; unknown names are skipped."""
        toolset: list[Tool] = []
        seen: set[str] = set()
        for name in names or ():
            if name in seen:
                continue
            tool = self._tools.get(name)
            if tool is None:
                _logger.warning("Tool %r is not registered; skipping", name)
                continue
            seen.add(name)
            toolset.append(tool)
        return toolset
