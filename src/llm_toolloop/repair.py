"""
Best-effort repair of tool-call argument strings.

Models generate tool arguments token by token, so the text is often *almost*
JSON: quotes inside string values left unescaped, raw newlines or control
bytes inside strings, stray backslashes, or a string cut off at the end.
`repair_json` rewrites such text in a single left-to-right scan so that a
second `json.loads` attempt has a chance of succeeding.

The hard decision is what a `"` inside a string means. Keys always end at
their first quote. For values, `_looks_like_value_terminator` peeks ahead:
the quote only closes the string when what follows is something that could
legally come after a value in the current container (and, for closing
brackets, in the parent). Otherwise the quote is kept as literal text, so an
ambiguous case keeps the string open rather than truncating content.

The output is not guaranteed to be valid JSON; callers must still parse it.
"""

from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Literal, Optional

from llm_toolloop._exceptions import ToolArgumentsError

__all__ = ["repair_json", "parse_tool_arguments"]

_logger = logging.getLogger(__name__)

ContainerType = Literal["object", "array"]

_VALID_ESCAPES = frozenset('"\\/bfnrtu')
_WHITESPACE = frozenset(" \t\n\r")
# First characters of a JSON value that may follow "," inside an array.
_ELEMENT_STARTS = frozenset('"{[]-tfn0123456789')

_SNIPPET_LIMIT = 400
_BASE64_LIMIT = 20_000


@dataclass(slots=True)
class _Frame:
    type: ContainerType
    expecting_key: bool = False


@dataclass(slots=True)
class _ParserState:
    in_string: bool = False
    escaping: bool = False
    string_is_key: bool = False
    stack: list[_Frame] = field(default_factory=list)

    @property
    def container(self) -> Optional[ContainerType]:
        return self.stack[-1].type if self.stack else None

    @property
    def parent(self) -> Optional[ContainerType]:
        return self.stack[-2].type if len(self.stack) > 1 else None

    def expecting_key(self) -> bool:
        return bool(self.stack) and self.stack[-1].type == "object" and self.stack[-1].expecting_key

    def set_expecting_key(self, expecting: bool) -> None:
        if self.stack and self.stack[-1].type == "object":
            self.stack[-1].expecting_key = expecting


def repair_json(text: str) -> str:
    """
    Rewrite near-JSON *text* into something `json.loads` is likely to accept.

    Never raises. Valid JSON comes back unchanged.
    """
    if not text:
        return text

    state = _ParserState()
    out: list[str] = []

    for index, char in enumerate(text):
        if state.in_string:
            _scan_string_char(text, index, char, state, out)
            continue

        if char == '"':
            state.in_string = True
            state.escaping = False
            state.string_is_key = state.expecting_key()
        elif char == "{":
            state.stack.append(_Frame("object", expecting_key=True))
        elif char == "[":
            state.stack.append(_Frame("array"))
        elif char in "}]":
            if state.stack:
                state.stack.pop()
        elif char == ":":
            state.set_expecting_key(False)
        elif char == ",":
            state.set_expecting_key(True)
        out.append(char)

    if state.escaping:
        out.append("\\\\")
    if state.in_string:
        out.append('"')
    return "".join(out)


def _scan_string_char(
    text: str, index: int, char: str, state: _ParserState, out: list[str]
) -> None:
    if state.escaping:
        state.escaping = False
        if char in _VALID_ESCAPES:
            out.append("\\" + char)
        elif char == "\n":
            out.append("\\\\n")
        elif char == "\r":
            out.append("\\\\r")
        else:
            # Stray backslash: keep it as a literal backslash.
            out.append("\\\\" + char)
        return

    if char == "\\":
        state.escaping = True
        return

    if char == '"':
        if state.string_is_key or _looks_like_value_terminator(
            text, index, state.container, state.parent
        ):
            state.in_string = False
            state.string_is_key = False
            state.set_expecting_key(False)
            out.append(char)
        else:
            out.append('\\"')
        return

    if char == "\n":
        out.append("\\n")
    elif char == "\r":
        out.append("\\r")
    elif ord(char) <= 0x1F:
        out.append(f"\\u{ord(char):04x}")
    else:
        out.append(char)


def _next_non_whitespace(text: str, start: int) -> Optional[int]:
    cursor = start
    while cursor < len(text) and text[cursor] in _WHITESPACE:
        cursor += 1
    return cursor if cursor < len(text) else None


def _looks_like_object_key(text: str, start: int) -> bool:
    """True when a quoted string starting at *start* is followed by ``:``."""
    if text[start] != '"':
        return False
    cursor = start + 1
    escaping = False
    while cursor < len(text):
        char = text[cursor]
        if escaping:
            escaping = False
        elif char == "\\":
            escaping = True
        elif char in "\n\r":
            return False
        elif char == '"':
            colon = _next_non_whitespace(text, cursor + 1)
            return colon is not None and text[colon] == ":"
        cursor += 1
    return False


def _plausible_next_token(text: str, comma: int, container: Optional[ContainerType]) -> bool:
    """Decide whether what follows the ``,`` at *comma* continues *container*."""
    token_index = _next_non_whitespace(text, comma + 1)
    if token_index is None:
        return True
    token = text[token_index]
    if container == "object":
        if token == "}":
            return True
        return token == '"' and _looks_like_object_key(text, token_index)
    return token in _ELEMENT_STARTS


def _looks_like_value_terminator(
    text: str,
    index: int,
    container: Optional[ContainerType],
    parent: Optional[ContainerType],
) -> bool:
    """Would the quote at *index* plausibly end the current string value?"""
    cursor = _next_non_whitespace(text, index + 1)
    if cursor is None:
        return True
    nxt = text[cursor]

    if nxt in "}]":
        if container == "object" and nxt != "}":
            return False
        if container == "array" and nxt != "]":
            return False
        following = _next_non_whitespace(text, cursor + 1)
        if following is None:
            return True
        if parent is None:
            return False
        if text[following] == ",":
            return _plausible_next_token(text, following, parent)
        return text[following] == ("}" if parent == "object" else "]")

    if nxt != ",":
        return False
    return _plausible_next_token(text, cursor, container)


def _log_parse_failure(stage: str, tool_name: str, text: str, error: Exception) -> None:
    snippet = text if len(text) <= _SNIPPET_LIMIT else text[: _SNIPPET_LIMIT - 3] + "..."
    single_line = snippet.replace("\r\n", "\\n").replace("\n", "\\n")
    encoded = base64.b64encode(text.encode("utf-8", "replace")).decode("ascii")
    if len(encoded) > _BASE64_LIMIT:
        encoded = encoded[:_BASE64_LIMIT] + "..."
    _logger.warning(
        "[tool-args:%s] Failed to parse arguments for %s: %s. Snippet=%r Base64Preview=%s",
        stage,
        tool_name,
        error,
        single_line,
        encoded,
    )


def parse_tool_arguments(tool_name: str, raw: str | None, *, debug: bool = False) -> Any:
    """
    Parse a tool-call argument string, repairing it once if needed.

    Empty or whitespace-only input yields ``{}``. A failed direct parse is
    logged (only when *debug* is set) and retried on the repaired text, but
    only if repair actually changed something.

    Raises:
        ToolArgumentsError: neither the raw nor the repaired text parses.
    """
    if raw is None or not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, RecursionError) as exc:
        if debug:
            _log_parse_failure("raw", tool_name, raw, exc)
        first_error = exc

    repaired = repair_json(raw)
    if repaired and repaired != raw:
        try:
            return json.loads(repaired)
        except (json.JSONDecodeError, RecursionError) as exc:
            if debug:
                _log_parse_failure("repaired", tool_name, repaired, exc)
            raise ToolArgumentsError(tool_name, str(exc), raw=raw, repaired=repaired) from exc
    raise ToolArgumentsError(tool_name, str(first_error), raw=raw) from first_error
