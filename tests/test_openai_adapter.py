"""Tests for the OpenAI request adapter."""

import pytest
from openai.types.chat.chat_completion import ChatCompletion, Choice
from openai.types.chat.chat_completion_message import ChatCompletionMessage
from openai.types.chat.chat_completion_message_tool_call import (
    ChatCompletionMessageToolCall,
    Function as ToolCallFunction,
)

from llm_toolloop.adapters.openai import OpenAIRequestAdapter


def _completion(message: ChatCompletionMessage) -> ChatCompletion:
    return ChatCompletion(
        id="cmpl-1",
        choices=[Choice(finish_reason="stop", index=0, message=message)],
        created=0,
        model="gpt-4",
        object="chat.completion",
    )


class TestBuildMessages:
    @pytest.fixture
    def adapter(self):
        return OpenAIRequestAdapter()

    def test_message_conversion(self, adapter):
        messages = [
            {"role": "system", "content": "You are helpful"},
            {"role": "user", "content": "Hello"},
        ]

        result = adapter.build_messages(messages)

        assert result == messages

    def test_tool_calls(self, adapter):
        """Assistant tool calls keep their ids; empty content becomes null."""
        messages = [
            {
                "role": "assistant",
                "content": "",
                "tool_calls": [
                    {
                        "id": "call_123",
                        "type": "function",
                        "function": {"name": "get_weather", "arguments": '{"location": "NYC"}'},
                    }
                ],
            },
            {"role": "tool", "content": "Sunny", "tool_call_id": "call_123"},
        ]

        result = adapter.build_messages(messages)

        assert result[0]["content"] is None
        assert result[0]["tool_calls"][0]["id"] == "call_123"
        assert result[1] == {"role": "tool", "content": "Sunny", "tool_call_id": "call_123"}

    def test_missing_content_is_filled(self, adapter):
        assert adapter.build_messages([{"role": "user"}]) == [{"role": "user", "content": ""}]

    def test_reasoning_content_only_when_enabled(self):
        messages = [{"role": "assistant", "content": "hi", "reasoning_content": "because"}]

        assert "reasoning_content" not in OpenAIRequestAdapter().build_messages(messages)[0]
        with_reasoning = OpenAIRequestAdapter(include_reasoning=True).build_messages(messages)
        assert with_reasoning[0]["reasoning_content"] == "because"


class TestBuildParams:
    def test_basic(self):
        params = OpenAIRequestAdapter().build_params(
            tools=[{"type": "function", "function": {"name": "x"}}],
            max_tokens=100,
            temperature=0.7,
            model="gpt-4o",
        )
        assert params == {
            "tools": [{"type": "function", "function": {"name": "x"}}],
            "temperature": 0.7,
            "max_tokens": 100,
        }

    @pytest.mark.parametrize("model", ["gpt-5", "o1-mini", "o3", "o4-mini"])
    def test_newer_models_use_max_completion_tokens(self, model):
        params = OpenAIRequestAdapter().build_params(max_tokens=50, model=model)
        assert params == {"max_completion_tokens": 50}

    def test_empty(self):
        assert OpenAIRequestAdapter().build_params() == {}


class TestFromProvider:
    def test_text_only(self):
        message = ChatCompletionMessage(role="assistant", content="Hello")
        result = OpenAIRequestAdapter().from_provider(_completion(message))

        assert result.content == "Hello"
        assert result.tool_calls is None
        assert result.reasoning is None

    def test_invalid_tool_call_arguments_are_passed_through(self):
        bad_json = "{not valid json"
        call = ChatCompletionMessageToolCall(
            id="id1", type="function", function=ToolCallFunction(name="test", arguments=bad_json)
        )
        message = ChatCompletionMessage(role="assistant", tool_calls=[call])

        result = OpenAIRequestAdapter().from_provider(_completion(message))

        assert result.content == ""
        assert result.tool_calls == [
            {"id": "id1", "type": "function", "function": {"name": "test", "arguments": bad_json}}
        ]

    def test_no_choices(self):
        completion = ChatCompletion(
            id="cmpl-1", choices=[], created=0, model="gpt-4", object="chat.completion"
        )
        result = OpenAIRequestAdapter().from_provider(completion)
        assert result.content == ""
        assert result.raw is completion
