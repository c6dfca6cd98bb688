"""
Conversation session contract and an in-memory implementation.

The loop only needs the `Session` protocol. `ChatSession` implements it with
copy-on-checkpoint snapshots: a checkpoint is an immutable copy of the message
log, so restoring never depends on who else holds references to the messages.
"""

from __future__ import annotations

import copy
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence, runtime_checkable

from llm_toolloop.types import ChatMessage, ToolCall

__all__ = ["Session", "SessionCheckpoint", "ChatSession"]

_logger = logging.getLogger(__name__)


@runtime_checkable
class Session(Protocol):
    """What the orchestration loop requires from a conversation store."""

    session_id: Optional[str]

    def as_dicts(self) -> list[ChatMessage]: ...

    def add_assistant(
        self,
        text: str,
        tool_calls: Optional[Sequence[ToolCall]] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> None: ...

    def add_tool_result(self, call_id: str, text: str) -> None: ...

    def checkpoint(self) -> Any: ...

    def restore(self, checkpoint: Any) -> None: ...


@dataclass(frozen=True, slots=True)
class SessionCheckpoint:
    """Opaque snapshot token returned by `ChatSession.checkpoint`."""

    owner: str
    version: int
    messages: tuple[ChatMessage, ...]


class ChatSession:
    """
    In-memory conversation history in OpenAI message shape.

    Every mutation bumps ``version``; checkpoints record it so restores can be
    traced in logs.
    """

    def __init__(
        self,
        session_id: Optional[str] = None,
        messages: Optional[Sequence[ChatMessage]] = None,
    ) -> None:
        self.session_id = session_id
        self._token = uuid.uuid4().hex
        self._messages: list[ChatMessage] = [copy.deepcopy(m) for m in messages or ()]
        self.version = 0

    def __len__(self) -> int:
        return len(self._messages)

    def __repr__(self) -> str:
        return f"ChatSession(session_id={self.session_id!r}, messages={len(self._messages)})"

    def _append(self, message: ChatMessage) -> None:
        self._messages.append(message)
        self.version += 1

    # --- writers -----------------------------------------------------------
    def add_system(self, text: str) -> None:
        self._append({"role": "system", "content": text})

    def add_user(self, text: str) -> None:
        self._append({"role": "user", "content": text})

    def add_assistant(
        self,
        text: str,
        tool_calls: Optional[Sequence[ToolCall]] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        message: ChatMessage = {"role": "assistant", "content": text}
        if tool_calls:
            message["tool_calls"] = copy.deepcopy(list(tool_calls))
        if metadata:
            message.update(copy.deepcopy(metadata))
        self._append(message)

    def add_tool_result(self, call_id: str, text: str) -> None:
        self._append({"role": "tool", "tool_call_id": call_id, "content": text})

    # --- readers -----------------------------------------------------------
    def as_dicts(self) -> list[ChatMessage]:
        """Return a deep copy of the history, safe for the caller to mutate."""
        return copy.deepcopy(self._messages)

    def get_last_user_message(self) -> str:
        for message in reversed(self._messages):
            if message.get("role") != "user":
                continue
            content = message.get("content")
            if isinstance(content, str):
                return content
            if isinstance(content, list):
                # content blocks: join the text parts
                return "".join(
                    block.get("text", "")
                    for block in content
                    if isinstance(block, dict) and block.get("type") == "text"
                )
            return "" if content is None else str(content)
        return ""

    # --- snapshots ---------------------------------------------------------
    def checkpoint(self) -> SessionCheckpoint:
        return SessionCheckpoint(
            owner=self._token,
            version=self.version,
            messages=tuple(copy.deepcopy(self._messages)),
        )

    def restore(self, checkpoint: SessionCheckpoint) -> None:
        if not isinstance(checkpoint, SessionCheckpoint) or checkpoint.owner != self._token:
            raise ValueError("checkpoint does not belong to this session")
        _logger.debug(
            "Restoring session %s from version %d to %d",
            self.session_id,
            self.version,
            checkpoint.version,
        )
        self._messages = copy.deepcopy(list(checkpoint.messages))
        self.version += 1
