"""Canonicalize tool-call records emitted by a provider."""

from __future__ import annotations

import json
import uuid
from typing import Any, Iterable, Mapping

from llm_toolloop.types import ToolCall

__all__ = ["normalize_tool_calls", "generate_tool_call_id"]


def generate_tool_call_id() -> str:
    return f"call_{uuid.uuid4().hex}"


def _normalize_id(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _as_mapping(call: Any) -> Mapping[str, Any] | None:
    if isinstance(call, Mapping):
        return call
    # openai / anthropic SDK models
    dump = getattr(call, "model_dump", None)
    if callable(dump):
        dumped = dump()
        if isinstance(dumped, Mapping):
            return dumped
    return None


def _encode_arguments(arguments: Any) -> str:
    if arguments is None:
        return ""
    if isinstance(arguments, str):
        return arguments
    try:
        return json.dumps(arguments, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(arguments)


def normalize_tool_calls(tool_calls: Iterable[Any] | None) -> list[ToolCall]:
    """
    Return a copy of *tool_calls* in canonical OpenAI shape.

    Guarantees, per call:
      - ``id`` is non-empty and unique within the batch (blank or duplicate ids
        are replaced with fresh ``call_<hex>`` ids)
      - ``type`` defaults to ``"function"``
      - ``function.name`` is a string, ``""`` when missing
      - ``function.arguments`` is a string; non-string values are JSON-encoded,
        missing arguments become ``""``

    Entries that are not mappings (or SDK models) are dropped.
    """
    if not tool_calls:
        return []

    seen: set[str] = set()
    normalized: list[ToolCall] = []
    for raw in tool_calls:
        call = _as_mapping(raw)
        if call is None:
            continue
        entry: ToolCall = dict(call)

        call_id = _normalize_id(entry.get("id")) or generate_tool_call_id()
        while call_id in seen:
            call_id = generate_tool_call_id()
        seen.add(call_id)
        entry["id"] = call_id

        if not entry.get("type"):
            entry["type"] = "function"

        fn = entry.get("function")
        fn = dict(fn) if isinstance(fn, Mapping) else {}
        name = fn.get("name")
        fn["name"] = "" if name is None else str(name)
        fn["arguments"] = _encode_arguments(fn.get("arguments"))
        entry["function"] = fn

        normalized.append(entry)
    return normalized
