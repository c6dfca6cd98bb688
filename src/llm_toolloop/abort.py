"""
Cancellation primitives.

An `AbortController` owns an `AbortSignal`; the signal is handed to
`ModelClient.run` and to tool handlers. Every suspension point in the loop is
wrapped in `race_with_abort` so that firing the signal rejects the pending
await immediately, whether or not the underlying operation would later finish.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from llm_toolloop._exceptions import AbortError

__all__ = [
    "AbortSignal",
    "AbortController",
    "throw_if_aborted",
    "race_with_abort",
    "is_abort_error",
]

T = TypeVar("T")

_logger = logging.getLogger(__name__)

AbortListener = Callable[[Any], None]


class AbortSignal:
    """One-shot cancellation flag with listener support."""

    def __init__(self) -> None:
        self._aborted = False
        self._reason: Any = None
        self._listeners: list[AbortListener] = []

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def reason(self) -> Any:
        return self._reason

    def add_listener(self, listener: AbortListener) -> None:
        """Register *listener*; it is called at most once with the abort reason."""
        if self._aborted:
            listener(self._reason)
            return
        self._listeners.append(listener)

    def remove_listener(self, listener: AbortListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def _fire(self, reason: Any) -> None:
        if self._aborted:
            return
        self._aborted = True
        self._reason = reason
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            try:
                listener(reason)
            except Exception:
                _logger.debug("abort listener failed", exc_info=True)

    def __repr__(self) -> str:
        return f"AbortSignal(aborted={self._aborted})"


class AbortController:
    """Owner side of an `AbortSignal`."""

    def __init__(self) -> None:
        self.signal = AbortSignal()

    def abort(self, reason: Any = None) -> None:
        self.signal._fire(reason)


def throw_if_aborted(signal: Optional[AbortSignal]) -> None:
    if signal is not None and signal.aborted:
        raise AbortError(reason=signal.reason)


def is_abort_error(exc: BaseException, signal: Optional[AbortSignal] = None) -> bool:
    """True when *exc* means the run was cancelled."""
    if isinstance(exc, (AbortError, asyncio.CancelledError)):
        return True
    return signal is not None and signal.aborted


async def race_with_abort(awaitable: Awaitable[T], signal: Optional[AbortSignal]) -> T:
    """
    Await *awaitable* unless *signal* fires first.

    When the signal wins, the pending operation is cancelled and `AbortError`
    is raised. Without a signal this is a plain await.
    """
    if signal is None:
        return await awaitable
    if signal.aborted:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise AbortError(reason=signal.reason)

    task = asyncio.ensure_future(awaitable)
    aborted = asyncio.get_running_loop().create_future()

    def on_abort(_reason: Any) -> None:
        if not aborted.done():
            aborted.set_result(None)

    signal.add_listener(on_abort)
    try:
        await asyncio.wait({task, aborted}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        signal.remove_listener(on_abort)
        if not aborted.done():
            aborted.cancel()

    if task.done():
        return task.result()
    task.cancel()
    raise AbortError(reason=signal.reason)
