"""Shared streaming utilities for LLM providers."""
from __future__ import annotations

from typing import Any, AsyncIterator, Dict, List, Optional

from openai.types.chat import ChatCompletionChunk

from llm_toolloop._observers import notify
from llm_toolloop.types import CompletionResult, TokenCallback

__all__ = ["aggregate_openai_stream"]


async def aggregate_openai_stream(
    chunks: AsyncIterator[ChatCompletionChunk],
    *,
    on_token: Optional[TokenCallback] = None,
    on_reasoning: Optional[TokenCallback] = None,
) -> CompletionResult:
    """
    Aggregate a stream of ChatCompletionChunks into a single CompletionResult.

    Content and reasoning deltas are forwarded to *on_token* / *on_reasoning*
    as they arrive. Tool-call fragments are stitched together by their
    ``index``; arguments are concatenated verbatim (and may therefore be
    malformed JSON).

    Args:
        chunks: Async iterator of ChatCompletionChunk objects
        on_token: Called with every content delta
        on_reasoning: Called with every ``reasoning_content`` delta

    Returns:
        A CompletionResult with the aggregated content, reasoning and tool calls
    """
    content_parts: List[str] = []
    reasoning_parts: List[str] = []
    saw_reasoning = False
    tool_calls_agg: List[Dict[str, Any]] = []

    async for chunk in chunks:
        if not chunk.choices:
            continue

        delta = chunk.choices[0].delta
        if delta is None:
            continue
        if delta.content:
            content_parts.append(delta.content)
            notify(on_token, delta.content)

        reasoning = getattr(delta, "reasoning_content", None)
        if isinstance(reasoning, str):
            saw_reasoning = True
            if reasoning:
                reasoning_parts.append(reasoning)
                notify(on_reasoning, reasoning)

        if delta.tool_calls:
            for tc_chunk in delta.tool_calls:
                while len(tool_calls_agg) <= tc_chunk.index:
                    tool_calls_agg.append({
                        "id": "", "type": "function",
                        "function": {"name": "", "arguments": ""}
                    })

                agg_tc = tool_calls_agg[tc_chunk.index]
                if tc_chunk.id:
                    agg_tc["id"] = tc_chunk.id
                if tc_chunk.type:
                    agg_tc["type"] = tc_chunk.type
                if tc_chunk.function:
                    if tc_chunk.function.name:
                        agg_tc["function"]["name"] += tc_chunk.function.name
                    if tc_chunk.function.arguments:
                        agg_tc["function"]["arguments"] += tc_chunk.function.arguments

    # Ids may be missing from some backends; the normalizer fills them in.
    final_tool_calls = [tc for tc in tool_calls_agg if tc["function"]["name"]]

    return CompletionResult(
        content="".join(content_parts),
        tool_calls=final_tool_calls or None,
        reasoning="".join(reasoning_parts) if saw_reasoning else None,
    )
