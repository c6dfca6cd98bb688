"""Best-effort delivery of observer callbacks."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Optional

_logger = logging.getLogger("llm_toolloop.observers")


def notify(callback: Optional[Callable[..., Any]], *args: Any) -> None:
    """
    Invoke an observer callback, isolating the caller from its failures.

    Observers are fire-and-forget: exceptions are logged at debug level and
    dropped, and a coroutine returned by an async callback is closed unawaited.
    """
    if callback is None:
        return
    try:
        result = callback(*args)
    except Exception:
        _logger.debug("Observer %r raised; ignoring", callback, exc_info=True)
        return
    if inspect.iscoroutine(result):
        _logger.debug("Observer %r is async; observers must be synchronous", callback)
        result.close()
