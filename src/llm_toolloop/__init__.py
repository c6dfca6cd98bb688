"""
llm-toolloop - tool-calling orchestration loop for LLM chat agents.
"""

import logging

from ._exceptions import (
    AbortError,
    ConfigError,
    ProviderError,
    ToolArgumentsError,
    ToolLoopError,
    TooManyToolPassesError,
)
from .abort import AbortController, AbortSignal, race_with_abort, throw_if_aborted
from .client import ModelClient, RunOptions
from .config import ClientConfig, LoopConfig, ModelSettings
from .enrichment import attach_task_session_ids, ensure_task_add_payload
from .factory import create_provider
from .normalize import normalize_tool_calls
from .providers import Provider, get_api_key
from .repair import parse_tool_arguments, repair_json
from .sanitize import format_tool_result, sanitize_tool_result
from .session import ChatSession, Session, SessionCheckpoint
from .subagents import resolve_subagent_model
from .tools import Tool, ToolContext, ToolRegistry
from .types import (
    AssistantStep,
    BeforeRequest,
    CompletionResult,
    ProviderOptions,
    ToolCallEvent,
    ToolResultEvent,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "ModelClient",
    "RunOptions",
    "ClientConfig",
    "LoopConfig",
    "ModelSettings",
    "Provider",
    "get_api_key",
    "create_provider",
    "ChatSession",
    "Session",
    "SessionCheckpoint",
    "Tool",
    "ToolContext",
    "ToolRegistry",
    "AbortController",
    "AbortSignal",
    "race_with_abort",
    "throw_if_aborted",
    "repair_json",
    "parse_tool_arguments",
    "normalize_tool_calls",
    "format_tool_result",
    "sanitize_tool_result",
    "ensure_task_add_payload",
    "attach_task_session_ids",
    "resolve_subagent_model",
    "CompletionResult",
    "ProviderOptions",
    "AssistantStep",
    "BeforeRequest",
    "ToolCallEvent",
    "ToolResultEvent",
    "ToolLoopError",
    "AbortError",
    "TooManyToolPassesError",
    "ToolArgumentsError",
    "ConfigError",
    "ProviderError",
]
