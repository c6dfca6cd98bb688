"""Tests for task-manager payload enrichment."""

from llm_toolloop import ChatSession, attach_task_session_ids, ensure_task_add_payload
from llm_toolloop.enrichment import FALLBACK_TASK_TITLE, build_fallback_task_title

ADD = "task_manager_add_task"


class TestEnsureTaskAddPayload:
    def test_other_tools_pass_through(self, session):
        args = {"tasks": [{}]}
        assert ensure_task_add_payload("read_file", args, session) is args

    def test_empty_task_gets_last_user_message(self, session):
        result = ensure_task_add_payload(ADD, {"tasks": [{}]}, session)
        assert result == {"tasks": [{"title": "fix the bug"}]}

    def test_falsy_entries_are_dropped(self, session):
        result = ensure_task_add_payload(
            ADD, {"tasks": [None, "", {"title": "keep"}, 0]}, session
        )
        assert result == {"tasks": [{"title": "keep"}]}

    def test_blank_titles_are_replaced(self, session):
        result = ensure_task_add_payload(
            ADD, {"tasks": [{"title": "   ", "priority": 1}, "text"]}, session
        )
        assert result == {
            "tasks": [
                {"title": "fix the bug", "priority": 1},
                {"title": "fix the bug"},
            ]
        }

    def test_empty_list_entries_are_kept(self, session):
        result = ensure_task_add_payload(ADD, {"tasks": [[], None, False, 0]}, session)
        assert result == {"tasks": [{"title": "fix the bug"}]}

    def test_emptied_task_list_falls_back_to_top_level_title(self, session):
        result = ensure_task_add_payload(ADD, {"tasks": [None, ""]}, session)
        assert result == {"title": "fix the bug"}

    def test_existing_title_is_kept(self, session):
        assert ensure_task_add_payload(ADD, {"title": "mine"}, session) == {"title": "mine"}

    def test_non_dict_args_become_payload(self, session):
        assert ensure_task_add_payload(ADD, None, session) == {"title": "fix the bug"}

    def test_arguments_are_not_mutated(self, session):
        args = {"tasks": [{}]}
        ensure_task_add_payload(ADD, args, session)
        assert args == {"tasks": [{}]}

    def test_idempotent(self, session):
        once = ensure_task_add_payload(ADD, {"tasks": [{}, None]}, session)
        assert ensure_task_add_payload(ADD, once, session) == once


class TestFallbackTitle:
    def test_whitespace_is_collapsed(self):
        chat = ChatSession()
        chat.add_user("  fix\n\tthe   bug  ")
        assert build_fallback_task_title(chat) == "fix the bug"

    def test_long_messages_are_shortened(self):
        chat = ChatSession()
        chat.add_user("x" * 300)
        title = build_fallback_task_title(chat)
        assert len(title) == 120
        assert title.endswith("...")

    def test_no_user_message(self):
        assert build_fallback_task_title(ChatSession()) == FALLBACK_TASK_TITLE
        assert build_fallback_task_title(object()) == FALLBACK_TASK_TITLE


class TestAttachTaskSessionIds:
    def test_other_tools_pass_through(self):
        args = {"a": 1}
        assert attach_task_session_ids("bash", args, session_id="s1", run_id="r1") is args

    def test_add_task_tags_every_task(self):
        result = attach_task_session_ids(
            ADD,
            {"tasks": [{"title": "a"}, {"title": "b", "sessionId": "other"}]},
            session_id="s1",
            run_id="r1",
        )
        assert result == {
            "tasks": [
                {"title": "a", "runId": "r1", "sessionId": "s1"},
                {"title": "b", "runId": "r1", "sessionId": "other"},
            ]
        }

    def test_non_dict_tasks_are_left_untouched(self):
        result = attach_task_session_ids(
            ADD, {"tasks": ["write docs", {"title": "a"}]}, session_id="s1", run_id="r1"
        )
        assert result == {
            "tasks": ["write docs", {"title": "a", "runId": "r1", "sessionId": "s1"}]
        }

    def test_add_task_without_tasks_tags_payload(self):
        result = attach_task_session_ids(ADD, {"title": "a"}, session_id="s1", run_id="r1")
        assert result == {"title": "a", "runId": "r1", "sessionId": "s1"}

    def test_list_tasks_is_scoped_to_session(self):
        result = attach_task_session_ids("task_manager_list_tasks", {}, session_id="s1")
        assert result == {"sessionId": "s1"}

    def test_all_sessions_is_left_global(self):
        result = attach_task_session_ids(
            "task_manager_list_tasks", {"allSessions": True}, session_id="s1"
        )
        assert result == {"allSessions": True}

    def test_existing_ids_are_not_overwritten(self):
        result = attach_task_session_ids(
            "task_manager_update_task",
            {"sessionId": "mine", "runId": "old"},
            session_id="s1",
            run_id="r1",
        )
        assert result == {"sessionId": "mine", "runId": "old"}

    def test_no_ids_leaves_payload_alone(self):
        assert attach_task_session_ids("task_manager_list_tasks", {"q": 1}) == {"q": 1}

    def test_idempotent(self):
        once = attach_task_session_ids(ADD, {"tasks": [{}]}, session_id="s1", run_id="r1")
        assert attach_task_session_ids(ADD, once, session_id="s1", run_id="r1") == once
