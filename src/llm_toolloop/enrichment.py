"""
Payload enrichment for task-manager tools.

Both helpers are pure: they return a new payload and never mutate the
arguments the model produced. Applying either one twice gives the same
result as applying it once.
"""

from __future__ import annotations

import re
from typing import Any, Optional

__all__ = [
    "TASK_MANAGER_MARKER",
    "ADD_TASK_TOOL_MARKER",
    "FALLBACK_TASK_TITLE",
    "build_fallback_task_title",
    "ensure_task_add_payload",
    "attach_task_session_ids",
]

TASK_MANAGER_MARKER = "task_manager"
ADD_TASK_TOOL_MARKER = "task_manager_add_task"
FALLBACK_TASK_TITLE = "New task"
MAX_TITLE_LENGTH = 120

_ACTION_RE = re.compile(r"task_manager_(.+)$")
_WHITESPACE_RE = re.compile(r"\s+")


def _is_falsy_entry(task: Any) -> bool:
    # Empty dicts and lists are kept; only None, False, 0 and "" are dropped.
    return not isinstance(task, (dict, list)) and not task


def build_fallback_task_title(session: Any) -> str:
    """Derive a task title from the session's last user message."""
    getter = getattr(session, "get_last_user_message", None)
    raw = getter() if callable(getter) else ""
    normalized = _WHITESPACE_RE.sub(" ", str(raw or "").strip())
    if not normalized:
        return FALLBACK_TASK_TITLE
    if len(normalized) > MAX_TITLE_LENGTH:
        return normalized[: MAX_TITLE_LENGTH - 3] + "..."
    return normalized


def _normalize_task_entry(task: Any, fallback_title: str) -> dict[str, Any]:
    if not isinstance(task, dict):
        return {"title": fallback_title}
    title = task.get("title")
    if title and str(title).strip():
        return task
    return {**task, "title": fallback_title}


def ensure_task_add_payload(tool_name: str, args: Any, session: Any) -> Any:
    """
    Fill in missing titles for the add-task tool.

    - falsy ``tasks`` entries are dropped; an emptied list is removed
    - tasks without a non-blank ``title`` get the fallback title
    - a payload without ``tasks`` and without ``title`` gets the fallback
    """
    if not tool_name or ADD_TASK_TOOL_MARKER not in tool_name:
        return args
    payload: dict[str, Any] = dict(args) if isinstance(args, dict) else {}

    tasks = payload.get("tasks")
    if isinstance(tasks, list):
        kept = [task for task in tasks if not _is_falsy_entry(task)]
        if not kept:
            del payload["tasks"]
        else:
            fallback = build_fallback_task_title(session)
            payload["tasks"] = [_normalize_task_entry(task, fallback) for task in kept]
            return payload

    if not payload.get("title"):
        payload["title"] = build_fallback_task_title(session)
    return payload


def _tag_tasks(tasks: list[Any], **tags: str) -> list[Any]:
    tagged = []
    for task in tasks:
        if not isinstance(task, dict):
            tagged.append(task)
            continue
        entry = dict(task)
        for key, value in tags.items():
            if value and not entry.get(key):
                entry[key] = value
        tagged.append(entry)
    return tagged


def attach_task_session_ids(
    tool_name: str,
    args: Any,
    *,
    session_id: Optional[str] = None,
    run_id: Optional[str] = None,
) -> Any:
    """
    Tag task-manager payloads with the current run and session identifiers.

    Existing values are never overwritten. For actions other than
    ``add_task`` the session id is skipped when the payload is explicitly
    global (``allSessions``) or already scoped (``sessionId``).
    """
    if not tool_name or TASK_MANAGER_MARKER not in tool_name:
        return args
    payload: dict[str, Any] = dict(args) if isinstance(args, dict) else {}
    match = _ACTION_RE.search(tool_name)
    action = match.group(1) if match else ""
    run_id = (run_id or "").strip()

    if run_id:
        tasks = payload.get("tasks")
        if isinstance(tasks, list) and tasks:
            payload["tasks"] = _tag_tasks(tasks, runId=run_id)
        elif not payload.get("runId"):
            payload["runId"] = run_id

    if not session_id:
        return payload

    if action == "add_task":
        tasks = payload.get("tasks")
        if isinstance(tasks, list) and tasks:
            payload["tasks"] = _tag_tasks(tasks, runId=run_id, sessionId=session_id)
        elif not payload.get("sessionId"):
            payload["sessionId"] = session_id
    elif not payload.get("allSessions") and not payload.get("sessionId"):
        payload["sessionId"] = session_id

    return payload
