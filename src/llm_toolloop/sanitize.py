"""
Make tool output safe to persist in the conversation history.

Tool results are replayed to the model as text on every later request, so
terminal escape sequences and stray control bytes are stripped and very large
outputs are cut down to a head and a tail around an omission marker.
"""

from __future__ import annotations

import json
import re
from typing import Any, Optional

from llm_toolloop.config import DEFAULT_TOOL_RESULT_CHAR_LIMIT, ENV_MAX_TOOL_RESULT_CHARS

__all__ = [
    "format_tool_result",
    "sanitize_tool_result",
    "strip_ansi",
    "strip_control_chars",
]

# CSI (Control Sequence Introducer) and OSC (Operating System Command)
_CSI_RE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]")
_OSC_RE = re.compile(r"\x1b\][^\x07]*(?:\x07|\x1b\\)")
# Keep \t, \n, \r; drop other ASCII control chars (incl. NUL) and DEL.
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

_HEAD_RATIO = 0.7


def format_tool_result(result: Any) -> str:
    """Render a handler's return value as text."""
    if result is None:
        return ""
    if isinstance(result, str):
        return result
    if isinstance(result, bool):
        return "true" if result else "false"
    if isinstance(result, (int, float)):
        return str(result)
    try:
        return json.dumps(result, indent=2, ensure_ascii=False)
    except (TypeError, ValueError, RecursionError):
        pass
    try:
        return str(result)
    except RecursionError:
        # repr of a structure nested past the recursion limit
        return f"<{type(result).__name__} nested too deeply to render>"


def strip_ansi(text: str) -> str:
    return _OSC_RE.sub("", _CSI_RE.sub("", text))


def strip_control_chars(text: str) -> str:
    return _CONTROL_RE.sub("", text)


def _truncation_marker(omitted: int, tool: str) -> str:
    return (
        f"... (truncated {omitted} chars from {tool} output; "
        f"set {ENV_MAX_TOOL_RESULT_CHARS} to increase) ..."
    )


def sanitize_tool_result(
    text: Any,
    *,
    tool: Optional[str] = None,
    limit: int = DEFAULT_TOOL_RESULT_CHAR_LIMIT,
) -> str:
    """
    Strip escape sequences / control characters and bound the size of *text*.

    With ``limit <= 0`` nothing is truncated. Otherwise the result is at most
    ``limit`` characters: roughly the first 70% of the budget, a marker line
    naming *tool* and the number of omitted characters, then the tail.
    """
    if text is None:
        raw = ""
    elif isinstance(text, str):
        raw = text
    else:
        raw = str(text)

    cleaned = strip_control_chars(strip_ansi(raw))
    if limit <= 0 or len(cleaned) <= limit:
        return cleaned

    label = tool.strip() if isinstance(tool, str) and tool.strip() else "tool"
    # The omitted count can only shrink as the budget grows, so size the
    # marker with the worst case: everything omitted.
    marker_len = len(_truncation_marker(len(cleaned), label))
    budget = limit - marker_len - 4  # two blank-line separators
    if budget <= 0:
        return cleaned[:limit]

    head_size = int(budget * _HEAD_RATIO)
    tail_size = budget - head_size
    omitted = len(cleaned) - head_size - tail_size
    head = cleaned[:head_size]
    tail = cleaned[len(cleaned) - tail_size :] if tail_size > 0 else ""
    return "\n".join([head, "", _truncation_marker(omitted, label), "", tail])
