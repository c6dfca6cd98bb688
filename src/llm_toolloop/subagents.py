"""Model selection for sub-agent invocations."""

from __future__ import annotations

import os
from typing import Any, Optional

from llm_toolloop._exceptions import ConfigError

__all__ = ["DEFAULT_SUBAGENT_MODEL_NAME", "resolve_subagent_default_model", "resolve_subagent_model"]

DEFAULT_SUBAGENT_MODEL_NAME = "deepseek_reasoner"
ENV_SUBAGENT_DEFAULT_MODEL = "TOOLLOOP_SUBAGENT_DEFAULT_MODEL"


def _clean(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def resolve_subagent_default_model(client: Any, default: Optional[str] = None) -> Optional[str]:
    """
    Return the preferred sub-agent model if the client actually has it.

    Candidates, first non-empty wins: *default*, the
    ``TOOLLOOP_SUBAGENT_DEFAULT_MODEL`` variable, ``deepseek_reasoner``.
    """
    candidate = (
        _clean(default)
        or _clean(os.environ.get(ENV_SUBAGENT_DEFAULT_MODEL))
        or DEFAULT_SUBAGENT_MODEL_NAME
    )
    get_names = getattr(client, "get_model_names", None)
    if callable(get_names) and candidate in get_names():
        return candidate
    return None


def resolve_subagent_model(
    client: Any,
    *,
    configured: Optional[str] = None,
    current: Optional[str] = None,
    default: Optional[str] = None,
) -> Optional[str]:
    """
    Pick the model a sub-agent should run with.

    Order: the explicitly *configured* model, the preferred default (when
    configured on the client), the *current* model, then the client default.
    """
    explicit = _clean(configured)
    if explicit:
        return explicit

    preferred = resolve_subagent_default_model(client, default)
    if preferred:
        return preferred

    current_model = _clean(current)
    if current_model:
        return current_model

    get_default = getattr(client, "get_default_model", None)
    if callable(get_default):
        try:
            return get_default()
        except ConfigError:
            return None
    return None
