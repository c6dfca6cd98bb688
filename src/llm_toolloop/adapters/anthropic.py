"""Anthropic adapter for pure request/response transformations."""

from __future__ import annotations

import json
from typing import Any, Optional, Sequence

from anthropic.types import Message

from llm_toolloop.types import ChatMessage, CompletionResult

DEFAULT_MAX_TOKENS = 4096


def _tool_input(arguments: Any) -> dict[str, Any]:
    """Decode an OpenAI-style arguments string into an Anthropic ``input`` dict."""
    if isinstance(arguments, dict):
        return arguments
    if isinstance(arguments, str) and arguments.strip():
        try:
            decoded = json.loads(arguments)
        except json.JSONDecodeError:
            return {}
        return decoded if isinstance(decoded, dict) else {}
    return {}


class AnthropicRequestAdapter:
    """Adapter for converting between the session's message format and Anthropic format."""

    def build_request(
        self,
        messages: Sequence[ChatMessage],
        *,
        tools: Sequence[dict[str, Any]] | None = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> dict[str, Any]:
        """Convert OpenAI-shaped history and tool definitions to a Messages API request."""
        anthropic_messages: list[dict[str, Any]] = []
        system_parts: list[str] = []

        for msg in messages:
            role = msg.get("role")
            content = msg.get("content")

            # Extract system prompt from messages
            if role == "system":
                if content:
                    system_parts.append(content if isinstance(content, str) else str(content))
                continue

            if role == "tool":
                block = {
                    "type": "tool_result",
                    "tool_use_id": msg.get("tool_call_id", ""),
                    "content": content if content is not None else "",
                }
                # Consecutive tool results belong in a single user turn
                previous = anthropic_messages[-1] if anthropic_messages else None
                if (
                    previous is not None
                    and previous["role"] == "user"
                    and isinstance(previous["content"], list)
                    and all(b.get("type") == "tool_result" for b in previous["content"])
                ):
                    previous["content"].append(block)
                else:
                    anthropic_messages.append({"role": "user", "content": [block]})
                continue

            if role == "assistant" and msg.get("tool_calls"):
                blocks: list[dict[str, Any]] = []
                if content:
                    blocks.append({"type": "text", "text": content})
                for call in msg["tool_calls"]:
                    fn = call.get("function") or {}
                    blocks.append(
                        {
                            "type": "tool_use",
                            "id": call.get("id", ""),
                            "name": fn.get("name", ""),
                            "input": _tool_input(fn.get("arguments")),
                        }
                    )
                anthropic_messages.append({"role": "assistant", "content": blocks})
                continue

            anthropic_messages.append(
                {"role": role, "content": content if content is not None else ""}
            )

        request: dict[str, Any] = {
            "messages": anthropic_messages,
            # Anthropic requires max_tokens
            "max_tokens": max_tokens or DEFAULT_MAX_TOKENS,
        }
        if system_parts:
            request["system"] = "\n\n".join(system_parts)
        if temperature is not None:
            request["temperature"] = temperature

        # Handle tools
        if tools:
            anthropic_tools = []
            for tool in tools:
                if tool.get("type") == "function":
                    func = tool["function"]
                    anthropic_tools.append(
                        {
                            "name": func["name"],
                            "description": func.get("description", ""),
                            "input_schema": func.get("parameters", {"type": "object"}),
                        }
                    )
                else:
                    anthropic_tools.append(tool)
            request["tools"] = anthropic_tools

        return request

    def from_provider(self, raw: Message) -> CompletionResult:
        """Convert an Anthropic message to a CompletionResult."""
        text_parts: list[str] = []
        thinking_parts: list[str] = []
        tool_calls: list[dict[str, Any]] = []

        for block in raw.content or []:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "thinking":
                thinking_parts.append(block.thinking)
            elif block.type == "tool_use":
                tool_calls.append(
                    {
                        "id": block.id,
                        "type": "function",
                        "function": {
                            "name": block.name,
                            "arguments": json.dumps(block.input, ensure_ascii=False),
                        },
                    }
                )

        return CompletionResult(
            content="".join(text_parts),
            tool_calls=tool_calls or None,
            reasoning="".join(thinking_parts) if thinking_parts else None,
            raw=raw,
        )
