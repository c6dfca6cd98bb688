"""Tests for tool-call normalization."""

from openai.types.chat.chat_completion_message_tool_call import (
    ChatCompletionMessageToolCall,
    Function as ToolCallFunction,
)

from llm_toolloop import normalize_tool_calls


def test_empty_and_missing_input():
    assert normalize_tool_calls(None) == []
    assert normalize_tool_calls([]) == []


def test_defaults_are_filled_in():
    [call] = normalize_tool_calls([{"function": {"name": "ls"}}])

    assert call["id"].startswith("call_")
    assert call["type"] == "function"
    assert call["function"] == {"name": "ls", "arguments": ""}


def test_duplicate_ids_are_made_unique():
    calls = normalize_tool_calls(
        [
            {"id": "dup", "function": {"name": "a", "arguments": "{}"}},
            {"id": "dup", "function": {"name": "b", "arguments": "{}"}},
        ]
    )

    assert calls[0]["id"] == "dup"
    assert calls[1]["id"] != "dup"
    assert len({c["id"] for c in calls}) == 2


def test_ids_are_trimmed_and_stringified():
    calls = normalize_tool_calls(
        [
            {"id": "  abc  ", "function": {"name": "a"}},
            {"id": 42, "function": {"name": "b"}},
            {"id": "   ", "function": {"name": "c"}},
        ]
    )

    assert calls[0]["id"] == "abc"
    assert calls[1]["id"] == "42"
    assert calls[2]["id"].startswith("call_")


def test_object_arguments_are_json_encoded():
    [call] = normalize_tool_calls(
        [{"id": "1", "function": {"name": "calc", "arguments": {"a": 2, "b": [1]}}}]
    )
    assert call["function"]["arguments"] == '{"a": 2, "b": [1]}'


def test_missing_function_and_non_string_name():
    calls = normalize_tool_calls([{"id": "1"}, {"id": "2", "function": {"name": 7}}])

    assert calls[0]["function"] == {"name": "", "arguments": ""}
    assert calls[1]["function"]["name"] == "7"


def test_non_mapping_entries_are_dropped():
    calls = normalize_tool_calls([None, "junk", 3, {"id": "x", "function": {"name": "a"}}])
    assert [c["id"] for c in calls] == ["x"]


def test_input_is_not_mutated():
    raw = {"function": {"name": "a", "arguments": {"k": 1}}}
    normalize_tool_calls([raw])
    assert raw == {"function": {"name": "a", "arguments": {"k": 1}}}


def test_sdk_objects_are_accepted():
    sdk_call = ChatCompletionMessageToolCall(
        id="id1",
        type="function",
        function=ToolCallFunction(name="test", arguments='{"x": 1}'),
    )

    [call] = normalize_tool_calls([sdk_call])

    assert call["id"] == "id1"
    assert call["function"] == {"name": "test", "arguments": '{"x": 1}'}
