"""
The tool-calling orchestration loop.

`ModelClient.run` drives one chat turn: it calls the provider, executes the
tool calls the model asks for, feeds the results back, and repeats until the
model answers without tools.

Each assistant turn that requests tools is a transaction: the session is
checkpointed before the turn is recorded, and if the run is aborted while its
tools execute, the session is restored so the history never holds a partially
recorded round.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Protocol, Sequence

from llm_toolloop._exceptions import AbortError, TooManyToolPassesError, ToolArgumentsError
from llm_toolloop._observers import notify
from llm_toolloop.abort import AbortSignal, is_abort_error, race_with_abort, throw_if_aborted
from llm_toolloop.config import DEFAULT_MAX_TOOL_PASSES, ClientConfig, LoopConfig, ModelSettings
from llm_toolloop.enrichment import attach_task_session_ids, ensure_task_add_payload
from llm_toolloop.factory import create_provider
from llm_toolloop.normalize import normalize_tool_calls
from llm_toolloop.providers.base import ProviderProtocol
from llm_toolloop.repair import parse_tool_arguments
from llm_toolloop.sanitize import format_tool_result, sanitize_tool_result
from llm_toolloop.session import Session
from llm_toolloop.tools import Tool, ToolContext
from llm_toolloop.types import (
    AssistantStep,
    BeforeRequest,
    CompletionResult,
    ProviderOptions,
    TokenCallback,
    ToolCall,
    ToolCallEvent,
    ToolResultEvent,
)

__all__ = ["RunOptions", "ModelClient"]


class ToolsetResolver(Protocol):
    def resolve_toolset(self, names: Optional[Sequence[str]]) -> list[Tool]: ...


ProviderFactory = Callable[..., ProviderProtocol]


@dataclass
class RunOptions:
    """Per-run options for `ModelClient.run`.

    Observer callbacks (``on_token``, ``on_reasoning``, ``on_assistant_step``,
    ``on_tool_call``, ``on_tool_result``) are synchronous and best-effort:
    anything they raise is logged and ignored. ``on_before_request`` may be
    async; it is awaited before every provider call and its errors propagate.
    """

    stream: bool = True
    on_token: Optional[TokenCallback] = None
    on_reasoning: Optional[TokenCallback] = None
    on_before_request: Optional[Callable[[BeforeRequest], Awaitable[None] | None]] = None
    on_assistant_step: Optional[Callable[[AssistantStep], None]] = None
    on_tool_call: Optional[Callable[[ToolCallEvent], None]] = None
    on_tool_result: Optional[Callable[[ToolResultEvent], None]] = None
    signal: Optional[AbortSignal] = None
    max_tool_passes: int = DEFAULT_MAX_TOOL_PASSES
    disable_tools: bool = False
    tools_override: Optional[Sequence[str]] = None
    caller: Optional[str] = None


def _guarded(callback: Optional[TokenCallback]) -> Optional[TokenCallback]:
    if callback is None:
        return None
    return functools.partial(notify, callback)


def _reasoning_metadata(
    provider: Any, result: CompletionResult
) -> tuple[Optional[str], Optional[dict[str, Any]]]:
    probe = getattr(provider, "supports_reasoning_content", None)
    supports = bool(probe()) if callable(probe) else False
    if isinstance(result.reasoning, str):
        reasoning: Optional[str] = result.reasoning
    else:
        reasoning = "" if supports else None
    metadata = {"reasoning_content": reasoning} if reasoning is not None else None
    return reasoning, metadata


class ModelClient:
    """
    Runs chat turns against configured models, executing tool calls in between.

    Args:
        config: Named model settings.
        registry: Resolves tool names to `Tool` objects. Without one, runs
            have no tools.
        provider_factory: Builds a provider from `ModelSettings`; providers
            are cached per model name.
        loop_config: Fixed loop settings. When omitted, they are read from
            the environment at the start of every run.
        logger: Optional custom logger.
    """

    def __init__(
        self,
        config: ClientConfig,
        registry: Optional[ToolsetResolver] = None,
        *,
        provider_factory: ProviderFactory = create_provider,
        loop_config: Optional[LoopConfig] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        self.config = config
        self.registry = registry
        self.logger = logger or logging.getLogger(__name__)
        self.name = name or self.__class__.__name__
        self._provider_factory = provider_factory
        self._loop_config = loop_config
        self._provider_cache: dict[str, ProviderProtocol] = {}

    def get_model_names(self) -> list[str]:
        return list(self.config.models)

    def get_default_model(self) -> str:
        return self.config.get_model(None).name

    def _get_or_create_provider(self, settings: ModelSettings) -> ProviderProtocol:
        provider = self._provider_cache.get(settings.name)
        if provider is None:
            provider = self._provider_factory(settings, logger=self.logger)
            self._provider_cache[settings.name] = provider
        return provider

    def _resolve_toolset(self, settings: ModelSettings, options: RunOptions) -> list[Tool]:
        if options.disable_tools or self.registry is None:
            return []
        names = list(options.tools_override or []) or settings.tools
        return self.registry.resolve_toolset(names)

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")

    def _log_request(
        self,
        settings: ModelSettings,
        iteration: int,
        options: ProviderOptions,
        messages: list[dict[str, Any]],
    ) -> None:
        preview = {
            "model": settings.name,
            "iteration": iteration,
            "stream": options.stream,
            "tools": [
                (t.get("function") or {}).get("name") or t.get("name") or "unknown"
                for t in options.tools
            ],
            "messages": messages,
        }
        self._log(
            "request payload: " + json.dumps(preview, indent=2, ensure_ascii=False, default=str)
        )

    async def run(
        self,
        model_name: Optional[str],
        session: Session,
        options: Optional[RunOptions] = None,
    ) -> str:
        """
        Run one chat turn and return the model's final text.

        Raises:
            AbortError: the signal fired; the session is rolled back to the
                start of the interrupted tool round.
            TooManyToolPassesError: the model kept calling tools for
                ``max_tool_passes`` rounds.
            ProviderError: the provider failed (not retried here).
        """
        options = options or RunOptions()
        settings = self.config.get_model(model_name)
        provider = self._get_or_create_provider(settings)
        loop_config = self._loop_config or LoopConfig.from_env()
        signal = options.signal
        toolset = self._resolve_toolset(settings, options)
        tools_by_name = {tool.name: tool for tool in toolset}
        caller = (options.caller or "").strip() or None

        provider_options = ProviderOptions(
            stream=options.stream,
            tools=[tool.definition for tool in toolset],
            on_token=_guarded(options.on_token),
            on_reasoning=_guarded(options.on_reasoning),
            signal=signal,
        )

        iteration = 0
        while iteration < options.max_tool_passes:
            throw_if_aborted(signal)
            if options.on_before_request is not None:
                # Safe boundary for caller maintenance (e.g. history compaction)
                pending = options.on_before_request(
                    BeforeRequest(iteration=iteration, model=settings.name, session=session)
                )
                if inspect.isawaitable(pending):
                    await race_with_abort(pending, signal)
            throw_if_aborted(signal)

            messages = session.as_dicts()
            if loop_config.log_request:
                self._log_request(settings, iteration, provider_options, messages)

            result = await race_with_abort(provider.complete(messages, provider_options), signal)
            throw_if_aborted(signal)

            final_text = (result.content or "").strip()
            tool_calls = normalize_tool_calls(result.tool_calls)
            reasoning, metadata = _reasoning_metadata(provider, result)

            if not tool_calls or options.disable_tools:
                session.add_assistant(final_text, None, metadata)
                return final_text

            notify(
                options.on_assistant_step,
                AssistantStep(
                    text=final_text,
                    reasoning=reasoning,
                    tool_calls=tool_calls,
                    iteration=iteration,
                    model=settings.name,
                ),
            )

            checkpoint = session.checkpoint()
            session.add_assistant(final_text, tool_calls, metadata)
            try:
                for call in tool_calls:
                    await self._dispatch_call(
                        call,
                        tools_by_name=tools_by_name,
                        session=session,
                        settings=settings,
                        options=options,
                        loop_config=loop_config,
                        caller=caller,
                    )
            except (Exception, asyncio.CancelledError) as exc:
                if is_abort_error(exc, signal):
                    self._log(
                        f"Run aborted during tool round {iteration}; restoring session",
                        logging.DEBUG,
                    )
                    session.restore(checkpoint)
                raise
            iteration += 1

        raise TooManyToolPassesError(options.max_tool_passes)

    def _record_tool_result(
        self,
        session: Session,
        options: RunOptions,
        tool: str,
        call_id: str,
        text: str,
    ) -> None:
        session.add_tool_result(call_id, text)
        notify(options.on_tool_result, ToolResultEvent(tool=tool, call_id=call_id, result=text))

    async def _dispatch_call(
        self,
        call: ToolCall,
        *,
        tools_by_name: dict[str, Tool],
        session: Session,
        settings: ModelSettings,
        options: RunOptions,
        loop_config: LoopConfig,
        caller: Optional[str],
    ) -> None:
        signal = options.signal
        throw_if_aborted(signal)
        call_id = call["id"]
        requested = call["function"]["name"]

        tool = tools_by_name.get(requested)
        if tool is None:
            self._record_tool_result(
                session,
                options,
                requested or "unknown",
                call_id,
                f'[error] Tool "{requested}" is not registered but was requested by the model',
            )
            return

        try:
            args = parse_tool_arguments(
                tool.name, call["function"]["arguments"], debug=loop_config.debug_tool_args
            )
        except ToolArgumentsError as exc:
            self._record_tool_result(
                session, options, tool.name, call_id, f"[error] Failed to parse tool arguments: {exc}"
            )
            return

        args = ensure_task_add_payload(tool.name, args, session)
        args = attach_task_session_ids(
            tool.name,
            args,
            session_id=getattr(session, "session_id", None),
            run_id=loop_config.run_id,
        )
        notify(options.on_tool_call, ToolCallEvent(tool=tool.name, call_id=call_id, args=args))

        context = ToolContext(
            model=settings.name,
            session=session,
            signal=signal,
            tool_call_id=call_id,
            caller=caller,
        )
        try:
            outcome = tool.handler(args, context)
            if inspect.isawaitable(outcome):
                outcome = await race_with_abort(outcome, signal)
        except Exception as exc:
            if is_abort_error(exc, signal):
                if isinstance(exc, AbortError):
                    raise
                raise AbortError(reason=signal.reason if signal else None) from exc
            self._log(f'Tool "{tool.name}" failed: {exc!r}', logging.WARNING)
            message = str(exc) or exc.__class__.__name__
            self._record_tool_result(
                session, options, tool.name, call_id, f'[error] Tool "{tool.name}" failed: {message}'
            )
            return

        text = format_tool_result(outcome)
        session.add_tool_result(
            call_id,
            sanitize_tool_result(text, tool=tool.name, limit=loop_config.max_tool_result_chars),
        )
        notify(options.on_tool_result, ToolResultEvent(tool=tool.name, call_id=call_id, result=text))

    # --- lifecycle ---------------------------------------------------------
    async def aclose(self) -> None:
        """Close every cached provider. Safe to call multiple times."""
        providers, self._provider_cache = list(self._provider_cache.values()), {}
        for provider in providers:
            close = getattr(provider, "aclose", None)
            if close:
                await close()

    async def __aenter__(self) -> "ModelClient":
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        await self.aclose()
