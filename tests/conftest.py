"""Shared fixtures: a scripted provider and a client wired to it."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Sequence

import pytest

from llm_toolloop import (
    ChatSession,
    ClientConfig,
    CompletionResult,
    LoopConfig,
    ModelClient,
    ModelSettings,
    Provider,
    ProviderOptions,
    ToolRegistry,
)


def tool_call(name: str, arguments: Any = "{}", call_id: str | None = "call_1") -> dict[str, Any]:
    call: dict[str, Any] = {"type": "function", "function": {"name": name, "arguments": arguments}}
    if call_id is not None:
        call["id"] = call_id
    return call


class ScriptedProvider:
    """Returns queued results in order; a callable entry is invoked with the messages."""

    def __init__(
        self,
        results: Sequence[CompletionResult | Callable[[list[dict[str, Any]]], Any]] = (),
        *,
        reasoning: bool = False,
        repeat_last: bool = False,
    ) -> None:
        self._results = list(results)
        self.reasoning = reasoning
        self.repeat_last = repeat_last
        self.requests: list[list[dict[str, Any]]] = []
        self.options: list[ProviderOptions] = []

    def supports_reasoning_content(self) -> bool:
        return self.reasoning

    async def complete(self, messages, options: ProviderOptions) -> CompletionResult:
        self.requests.append(messages)
        self.options.append(options)
        await asyncio.sleep(0)
        if self.repeat_last and len(self._results) == 1:
            entry = self._results[0]
        else:
            entry = self._results.pop(0)
        if callable(entry):
            entry = entry(messages)
            if asyncio.iscoroutine(entry):
                entry = await entry
        return entry


@pytest.fixture
def registry() -> ToolRegistry:
    return ToolRegistry()


@pytest.fixture
def session() -> ChatSession:
    chat = ChatSession(session_id=None)
    chat.add_system("You are a helpful assistant.")
    chat.add_user("fix the bug")
    return chat


@pytest.fixture
def make_client(registry: ToolRegistry) -> Callable[..., ModelClient]:
    def factory(
        provider: ScriptedProvider,
        *,
        tools: Sequence[str] = (),
        loop_config: LoopConfig | None = None,
    ) -> ModelClient:
        config = ClientConfig(
            models={
                "test-model": ModelSettings(
                    name="test-model",
                    provider=Provider.OPENAI,
                    model="gpt-test",
                    api_key="sk-test",
                    tools=list(tools),
                )
            }
        )
        return ModelClient(
            config,
            registry,
            provider_factory=lambda settings, **_: provider,
            loop_config=loop_config or LoopConfig(),
        )

    return factory
