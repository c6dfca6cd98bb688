"""OpenAI adapter for pure request/response transformations."""

from __future__ import annotations

from typing import Any, Optional, Sequence

from openai.types.chat import ChatCompletion

from llm_toolloop.types import ChatMessage, CompletionResult


class OpenAIRequestAdapter:
    """Adapter for converting between the session's message format and OpenAI format.

    Args:
        include_reasoning: forward ``reasoning_content`` on assistant messages.
            Only OpenAI-compatible backends with a reasoning channel
            (e.g. DeepSeek) accept it.
    """

    def __init__(self, *, include_reasoning: bool = False) -> None:
        self.include_reasoning = include_reasoning

    def build_messages(self, messages: Sequence[ChatMessage]) -> list[dict[str, Any]]:
        """Convert session messages to OpenAI's expected format."""
        openai_messages: list[dict[str, Any]] = []

        for msg in messages:
            openai_msg: dict[str, Any] = {"role": msg["role"]}

            # Handle content (required for most message types)
            if msg.get("content") is not None:
                openai_msg["content"] = msg["content"]

            # Handle tool calls (for assistant messages with function calls)
            if msg.get("tool_calls"):
                openai_msg["tool_calls"] = msg["tool_calls"]
                # OpenAI API: content should be null when tool_calls is present
                if not openai_msg.get("content"):
                    openai_msg["content"] = None

            # Handle tool call ID (for tool response messages)
            if msg.get("tool_call_id"):
                openai_msg["tool_call_id"] = msg["tool_call_id"]

            # Handle name (for function/tool responses or to identify speakers)
            if msg.get("name"):
                openai_msg["name"] = msg["name"]

            if self.include_reasoning and msg["role"] == "assistant" and "reasoning_content" in msg:
                openai_msg["reasoning_content"] = msg["reasoning_content"]

            # Ensure content is set for messages that require it
            if "content" not in openai_msg and not openai_msg.get("tool_calls"):
                openai_msg["content"] = ""

            openai_messages.append(openai_msg)

        return openai_messages

    def build_params(
        self,
        *,
        tools: Sequence[dict[str, Any]] | None = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        model: str = "",
    ) -> dict[str, Any]:
        """Build the non-message request parameters."""
        params: dict[str, Any] = {}
        if tools:
            params["tools"] = list(tools)
        if temperature is not None:
            params["temperature"] = temperature
        if max_tokens is not None:
            # Models that require max_completion_tokens instead of max_tokens
            if self._requires_max_completion_tokens(model):
                params["max_completion_tokens"] = max_tokens
            else:
                params["max_tokens"] = max_tokens
        return params

    def _requires_max_completion_tokens(self, model: str) -> bool:
        """Check if model requires max_completion_tokens instead of max_tokens."""
        newer_models = ("gpt-5", "o1", "o3", "o4")
        return model.startswith(newer_models)

    def from_provider(self, raw: ChatCompletion) -> CompletionResult:
        """Convert an OpenAI completion to a CompletionResult."""
        if not raw.choices or not raw.choices[0].message:
            return CompletionResult(content="", raw=raw)

        message = raw.choices[0].message
        tool_calls = None
        if message.tool_calls:
            tool_calls = [
                {
                    "id": tc.id,
                    "type": tc.type,
                    "function": {
                        "name": tc.function.name,
                        "arguments": tc.function.arguments,
                    },
                }
                for tc in message.tool_calls
                if getattr(tc, "function", None) is not None
            ]

        reasoning = getattr(message, "reasoning_content", None)
        return CompletionResult(
            content=message.content or "",
            tool_calls=tool_calls or None,
            reasoning=reasoning if isinstance(reasoning, str) else None,
            raw=raw,
        )
