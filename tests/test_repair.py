"""Tests for the tool-argument repair parser."""

import json
import logging

import pytest

from llm_toolloop import ToolArgumentsError, parse_tool_arguments, repair_json


VALID_DOCUMENTS = [
    '{"a": 1}',
    '{"path": "C:\\\\temp\\\\x.txt", "n": -2.5e3}',
    '{"nested": {"list": ["x", {"y": "z"}], "flag": true}, "none": null}',
    '[["x"], ["y", "z"], "w", 1, false]',
    '{"quote": "he said \\"hi\\"", "unicode": "\\u00e9\\n"}',
    '{"a": {"b": {"c": "d"}}, "e": [{"f": "g"}]}',
    '"just a string"',
    '{"": "empty key", "k": ""}',
]


class TestRepairJson:
    """Character-level repair of near-JSON argument strings."""

    @pytest.mark.parametrize("document", VALID_DOCUMENTS)
    def test_valid_json_is_unchanged(self, document):
        assert repair_json(document) == document

    @pytest.mark.parametrize("document", VALID_DOCUMENTS)
    def test_repair_is_idempotent_on_valid_json(self, document):
        twice = repair_json(repair_json(document))
        assert json.loads(twice) == json.loads(document)

    def test_unescaped_quotes_inside_value(self):
        raw = '{"note":"he said "hi" to me","ok":true}'
        repaired = repair_json(raw)

        assert repaired == '{"note":"he said \\"hi\\" to me","ok":true}'
        assert json.loads(repaired) == {"note": 'he said "hi" to me', "ok": True}

    def test_literal_newline_in_value(self):
        raw = '{"content": "line one\nline two\r\nend"}'
        parsed = json.loads(repair_json(raw))
        assert parsed == {"content": "line one\nline two\r\nend"}

    def test_control_characters_are_escaped(self):
        raw = '{"text": "tab\there\x01bell"}'
        repaired = repair_json(raw)
        assert "\\u0001" in repaired
        assert json.loads(repaired) == {"text": "tab\there\x01bell"}

    def test_stray_backslash_becomes_literal(self):
        raw = '{"path": "C:\\Users\\me"}'
        assert json.loads(repair_json(raw)) == {"path": "C:\\Users\\me"}

    def test_backslash_before_newline_keeps_both_characters(self):
        raw = '{"cmd": "echo a \\\nb"}'
        assert json.loads(repair_json(raw)) == {"cmd": "echo a \\nb"}

    def test_truncated_string_is_closed(self):
        repaired = repair_json('{"a": "unterminated')
        assert repaired == '{"a": "unterminated"'

    def test_truncated_escape_is_completed(self):
        repaired = repair_json('{"a": "ends with \\')
        assert repaired.endswith('\\\\"')

    def test_quote_before_closing_brace(self):
        raw = '{"code": "print("x")"}'
        assert json.loads(repair_json(raw)) == {"code": 'print("x")'}

    def test_quote_followed_by_comma_then_array_element(self):
        raw = '["say "yes"", "no", 3]'
        assert json.loads(repair_json(raw)) == ['say "yes"', "no", 3]

    def test_comma_inside_value_not_followed_by_key(self):
        raw = '{"text": "a "quoted", phrase", "n": 1}'
        assert json.loads(repair_json(raw)) == {"text": 'a "quoted", phrase', "n": 1}

    def test_nested_close_then_parent_key(self):
        raw = '{"items": ["one "two""], "done": false}'
        assert json.loads(repair_json(raw)) == {"items": ['one "two"'], "done": False}

    def test_nested_close_then_parent_close(self):
        raw = '{"outer": {"inner": "x "y""}}'
        assert json.loads(repair_json(raw)) == {"outer": {"inner": 'x "y"'}}

    def test_mismatched_closer_keeps_string_open(self):
        # "]" cannot close an object, so the quote before it is literal text
        raw = '{"a": "b"]"}'
        assert json.loads(repair_json(raw)) == {"a": 'b"]'}

    def test_keys_always_close_on_first_quote(self):
        raw = '{"key": "v", "other": "w"}'
        assert repair_json(raw) == raw

    def test_empty_input(self):
        assert repair_json("") == ""


class TestParseToolArguments:
    """The parse -> repair -> parse protocol."""

    @pytest.mark.parametrize("raw", [None, "", "   ", "\n\t"])
    def test_blank_input_is_empty_object(self, raw):
        assert parse_tool_arguments("tool", raw) == {}

    def test_valid_json_parses_directly(self, monkeypatch):
        def fail(_):
            raise AssertionError("repair should not run for valid JSON")

        monkeypatch.setattr("llm_toolloop.repair.repair_json", fail)
        assert parse_tool_arguments("tool", '{"a": [1, 2]}') == {"a": [1, 2]}

    def test_repaired_arguments_parse(self):
        raw = '{"note":"he said "hi" to me","ok":true}'
        assert parse_tool_arguments("tool", raw) == {"note": 'he said "hi" to me', "ok": True}

    def test_nesting_past_recursion_limit_raises_arguments_error(self):
        raw = "[" * 100_000
        with pytest.raises(ToolArgumentsError) as info:
            parse_tool_arguments("deep", raw)

        assert info.value.tool == "deep"
        assert info.value.raw == raw

    def test_unrepairable_arguments_raise(self):
        with pytest.raises(ToolArgumentsError) as info:
            parse_tool_arguments("write_file", '{"a": }')

        err = info.value
        assert err.tool == "write_file"
        assert err.raw == '{"a": }'
        assert err.repaired is None
        assert "write_file" in str(err)

    def test_failed_repair_keeps_both_texts(self):
        raw = '{"a": "x\n" oops}'
        with pytest.raises(ToolArgumentsError) as info:
            parse_tool_arguments("tool", raw)

        assert info.value.raw == raw
        assert info.value.repaired is not None
        assert info.value.repaired != raw

    def test_failures_are_logged_only_in_debug(self, caplog):
        caplog.set_level(logging.WARNING, logger="llm_toolloop.repair")
        with pytest.raises(ToolArgumentsError):
            parse_tool_arguments("tool", "{nope", debug=False)
        assert not caplog.records

        with pytest.raises(ToolArgumentsError):
            parse_tool_arguments("tool", "{nope", debug=True)
        assert any("tool-args:raw" in r.getMessage() for r in caplog.records)
