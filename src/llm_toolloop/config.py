"""
Configuration for llm-toolloop.

Two layers:

- `ClientConfig` / `ModelSettings`: named model entries, each mapping a model
  name used by callers to a provider, an upstream model id and the tool names
  enabled by default.
- `LoopConfig`: per-run knobs derived from the environment. It is rebuilt at
  the start of every `ModelClient.run` call so changes to the environment take
  effect on the next run.

Environment variables
  TOOLLOOP_DEBUG_TOOL_ARGS        "1" logs tool argument parse failures
  TOOLLOOP_LOG_REQUEST            "1" logs every request payload
  TOOLLOOP_RUN_ID                 run identifier attached to task-manager payloads
  TOOLLOOP_MAX_TOOL_RESULT_CHARS  tool result size limit (0/off disables)
"""

from __future__ import annotations

import math
import os
from dataclasses import dataclass, field
from typing import Any, Mapping

from dotenv import load_dotenv

from llm_toolloop._exceptions import ConfigError
from llm_toolloop.providers import Provider

__all__ = [
    "DEFAULT_TOOL_RESULT_CHAR_LIMIT",
    "DEFAULT_MAX_TOOL_PASSES",
    "LoopConfig",
    "ModelSettings",
    "ClientConfig",
    "parse_char_limit",
]

DEFAULT_TOOL_RESULT_CHAR_LIMIT = 120_000
DEFAULT_MAX_TOOL_PASSES = 240

ENV_DEBUG_TOOL_ARGS = "TOOLLOOP_DEBUG_TOOL_ARGS"
ENV_LOG_REQUEST = "TOOLLOOP_LOG_REQUEST"
ENV_RUN_ID = "TOOLLOOP_RUN_ID"
ENV_MAX_TOOL_RESULT_CHARS = "TOOLLOOP_MAX_TOOL_RESULT_CHARS"

_DISABLED_WORDS = {"0", "off", "false", "no"}


def parse_char_limit(raw: str | None) -> int:
    """
    Parse a tool-result character limit override.

    Unset or blank -> the default limit. ``0``, ``off``, ``false``, ``no``,
    negative and unparsable values disable truncation (return 0).
    """
    if raw is None:
        return DEFAULT_TOOL_RESULT_CHAR_LIMIT
    normalized = str(raw).strip().lower()
    if not normalized:
        return DEFAULT_TOOL_RESULT_CHAR_LIMIT
    if normalized in _DISABLED_WORDS:
        return 0
    try:
        value = float(normalized)
    except ValueError:
        return 0
    if not math.isfinite(value) or value <= 0:
        return 0
    return math.floor(value)


@dataclass(frozen=True, slots=True)
class LoopConfig:
    """Environment-derived settings for a single run."""

    debug_tool_args: bool = False
    log_request: bool = False
    run_id: str = ""
    max_tool_result_chars: int = DEFAULT_TOOL_RESULT_CHAR_LIMIT

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "LoopConfig":
        if environ is None:
            load_dotenv()
            environ = os.environ
        return cls(
            debug_tool_args=environ.get(ENV_DEBUG_TOOL_ARGS, "").strip() == "1",
            log_request=environ.get(ENV_LOG_REQUEST, "").strip() == "1",
            run_id=environ.get(ENV_RUN_ID, "").strip(),
            max_tool_result_chars=parse_char_limit(environ.get(ENV_MAX_TOOL_RESULT_CHARS)),
        )


@dataclass
class ModelSettings:
    """Settings for one named model."""

    name: str
    provider: Provider
    model: str
    api_key: str | None = None
    base_url: str | None = None
    tools: list[str] = field(default_factory=list)
    # Provider returns a separate reasoning channel (e.g. deepseek-reasoner)
    reasoning: bool = False
    max_tokens: int | None = None
    temperature: float | None = None
    timeout: float = 60.0
    max_retries: int = 2

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any]) -> "ModelSettings":
        """Build settings from a plain mapping (e.g. a parsed YAML/JSON file)."""
        try:
            provider = Provider(str(data.get("provider", "")).strip().lower())
        except ValueError as exc:
            raise ConfigError(
                f'Model "{name}" has unsupported provider {data.get("provider")!r}'
            ) from exc
        tools = data.get("tools") or []
        if isinstance(tools, str):
            tools = [tools]
        return cls(
            name=name,
            provider=provider,
            model=str(data.get("model") or name),
            api_key=data.get("api_key"),
            base_url=data.get("base_url"),
            tools=[str(t) for t in tools],
            reasoning=bool(data.get("reasoning", False)),
            max_tokens=data.get("max_tokens"),
            temperature=data.get("temperature"),
            timeout=float(data.get("timeout", 60.0)),
            max_retries=int(data.get("max_retries", 2)),
        )


@dataclass
class ClientConfig:
    """A set of named models plus the default one."""

    models: dict[str, ModelSettings]
    default_model: str | None = None

    def __post_init__(self) -> None:
        if not self.models:
            raise ConfigError("At least one model must be configured")
        if self.default_model is None:
            self.default_model = next(iter(self.models))
        elif self.default_model not in self.models:
            raise ConfigError(f'Default model "{self.default_model}" is not configured')

    def get_model(self, name: str | None) -> ModelSettings:
        """Return settings for *name*, or the default model when name is empty."""
        key = (name or "").strip() or self.default_model
        try:
            return self.models[key]
        except KeyError:
            raise ConfigError(f'Unknown model "{key}"') from None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClientConfig":
        """
        Build a config from ``{"default_model": ..., "models": {name: {...}}}``.
        """
        raw_models = data.get("models") or {}
        if not isinstance(raw_models, Mapping):
            raise ConfigError("'models' must be a mapping of name -> settings")
        models = {
            name: ModelSettings.from_dict(name, entry)
            for name, entry in raw_models.items()
        }
        return cls(models=models, default_model=data.get("default_model"))
