"""Tests for the line classifier."""

from __future__ import annotations

import json

from manastream.events import (
    AssistantText,
    BlockStart,
    BlockStop,
    ErrorEvent,
    FinalResult,
    LifecycleMarker,
    MessageBoundary,
    PartialInputDelta,
    SessionInit,
    SystemNotice,
    TextDelta,
    ToolInvocation,
    ToolResult,
    Unknown,
    UserMessage,
    classify_line,
    classify_record,
)


def _line(obj: object) -> str:
    return json.dumps(obj) + "\n"


class TestUndecodable:
    def test_plain_text(self) -> None:
        ev = classify_line("hello world\n")
        assert isinstance(ev, Unknown)
        assert ev.decoded is False
        assert ev.raw_line == "hello world"

    def test_empty_line(self) -> None:
        ev = classify_line("\n")
        assert isinstance(ev, Unknown)
        assert ev.decoded is False

    def test_truncated_json(self) -> None:
        ev = classify_line('{"type": "assistant", "message": ')
        assert isinstance(ev, Unknown)
        assert ev.decoded is False


class TestUnknownRecords:
    def test_non_object_json(self) -> None:
        ev = classify_line("[1, 2, 3]\n")
        assert isinstance(ev, Unknown)
        assert ev.decoded is True
        assert ev.payload == [1, 2, 3]

    def test_missing_type(self) -> None:
        ev = classify_line(_line({"foo": "bar"}))
        assert isinstance(ev, Unknown)
        assert ev.decoded is True
        assert ev.tag == ""

    def test_unrecognized_type(self) -> None:
        ev = classify_line(_line({"type": "telemetry", "x": 1}))
        assert isinstance(ev, Unknown)
        assert ev.tag == "telemetry"
        assert ev.payload == {"type": "telemetry", "x": 1}

    def test_non_string_type(self) -> None:
        ev = classify_line(_line({"type": 7}))
        assert isinstance(ev, Unknown)

    def test_length_excludes_newline(self) -> None:
        raw = json.dumps({"type": "zzz"})
        ev = classify_line(raw + "\n")
        assert isinstance(ev, Unknown)
        assert ev.length == len(raw)


class TestSystem:
    def test_init(self) -> None:
        ev = classify_line(
            _line(
                {
                    "type": "system",
                    "subtype": "init",
                    "session_id": "abc",
                    "model": "claude-x",
                    "claude_code_version": "1.2.3",
                    "tools": ["Bash", "Read", "Edit"],
                    "mcp_servers": [{"name": "one"}],
                }
            )
        )
        assert ev == SessionInit(
            session_id="abc",
            model="claude-x",
            version="1.2.3",
            tool_count=3,
            integration_count=1,
        )

    def test_init_missing_fields(self) -> None:
        ev = classify_line(_line({"type": "system", "subtype": "init", "tools": "oops"}))
        assert ev == SessionInit()

    def test_notice(self) -> None:
        ev = classify_line(_line({"type": "system", "subtype": "compact", "message": "hi"}))
        assert ev == SystemNotice(subtype="compact", message="hi")


class TestAssistant:
    def test_string_content(self) -> None:
        ev = classify_line(_line({"type": "assistant", "message": {"content": "hello"}}))
        assert ev == AssistantText(text="hello")

    def test_block_content(self) -> None:
        ev = classify_line(
            _line(
                {
                    "type": "assistant",
                    "message": {
                        "content": [
                            {"type": "thinking", "thinking": "hmm"},
                            {"type": "text", "text": "first"},
                            {"type": "tool_use", "id": "t1", "name": "Bash", "input": {"command": "ls"}},
                            {"type": "text", "text": "second"},
                            "junk",
                        ]
                    },
                }
            )
        )
        assert isinstance(ev, AssistantText)
        assert ev.text == "first\nsecond"
        assert ev.thinking == "hmm"
        assert ev.tool_uses == (
            ToolInvocation(tool_name="Bash", input={"command": "ls"}, tool_use_id="t1"),
        )

    def test_missing_message(self) -> None:
        assert classify_line(_line({"type": "assistant"})) == AssistantText()

    def test_tool_input_wrong_type(self) -> None:
        ev = classify_line(
            _line(
                {
                    "type": "assistant",
                    "message": {"content": [{"type": "tool_use", "name": "X", "input": "nope"}]},
                }
            )
        )
        assert isinstance(ev, AssistantText)
        assert ev.tool_uses[0].input == {}


class TestUser:
    def test_tool_result_with_stdout(self) -> None:
        ev = classify_line(
            _line(
                {
                    "type": "user",
                    "message": {
                        "content": [
                            {"type": "tool_result", "tool_use_id": "t1", "content": "generic"}
                        ]
                    },
                    "tool_use_result": {"stdout": "out", "stderr": "err"},
                }
            )
        )
        assert isinstance(ev, UserMessage)
        assert ev.results == (
            ToolResult(ok=True, content="generic", stdout="out", stderr="err", tool_use_id="t1"),
        )

    def test_error_result_with_block_list_content(self) -> None:
        ev = classify_line(
            _line(
                {
                    "type": "user",
                    "message": {
                        "content": [
                            {
                                "type": "tool_result",
                                "is_error": True,
                                "content": [{"type": "text", "text": "boom"}],
                            }
                        ]
                    },
                    "tool_use_result": "Error: boom",
                }
            )
        )
        assert isinstance(ev, UserMessage)
        assert ev.results[0].ok is False
        assert ev.results[0].content == "boom"
        assert ev.results[0].stdout == ""

    def test_string_content(self) -> None:
        ev = classify_line(_line({"type": "user", "message": {"content": "do it"}}))
        assert ev == UserMessage(text="do it")


class TestTopLevelTools:
    def test_tool_use(self) -> None:
        ev = classify_line(_line({"type": "tool_use", "name": "Read", "input": {"file_path": "/a"}}))
        assert ev == ToolInvocation(tool_name="Read", input={"file_path": "/a"})

    def test_tool_result_error(self) -> None:
        ev = classify_line(
            _line({"type": "tool_result", "is_error": True, "content": "permission denied"})
        )
        assert ev == ToolResult(ok=False, content="permission denied")

    def test_is_error_must_be_true(self) -> None:
        ev = classify_line(_line({"type": "tool_result", "is_error": "yes", "content": "x"}))
        assert isinstance(ev, ToolResult)
        assert ev.ok is True


class TestStreamingEvents:
    def test_block_start_kinds(self) -> None:
        assert classify_line(
            _line({"type": "content_block_start", "content_block": {"type": "thinking"}})
        ) == BlockStart(block="thinking")
        assert classify_line(
            _line({"type": "content_block_start", "content_block": {"type": "tool_use", "name": "Bash"}})
        ) == BlockStart(block="tool_use", tool_name="Bash")
        assert classify_line(
            _line({"type": "content_block_start", "content_block": {"type": "text"}})
        ) == BlockStart(block="text")
        assert classify_line(_line({"type": "content_block_start"})) == BlockStart(block="text")

    def test_deltas(self) -> None:
        assert classify_line(
            _line({"type": "content_block_delta", "delta": {"type": "text_delta", "text": "hi"}})
        ) == TextDelta(text="hi")
        assert classify_line(
            _line({"type": "content_block_delta", "delta": {"type": "thinking_delta", "thinking": "hm"}})
        ) == TextDelta(text="hm")
        assert classify_line(
            _line({"type": "content_block_delta", "delta": {"type": "input_json_delta", "partial_json": '{"a'}})
        ) == PartialInputDelta(json_fragment='{"a')
        assert classify_line(
            _line({"type": "content_block_delta", "delta": {"type": "signature_delta"}})
        ) == TextDelta()

    def test_stop_and_boundaries(self) -> None:
        assert classify_line(_line({"type": "content_block_stop", "index": 0})) == BlockStop()
        assert classify_line(_line({"type": "message_stop"})) == MessageBoundary(name="message_stop")

    def test_stream_event_envelope(self) -> None:
        ev = classify_line(
            _line(
                {
                    "type": "stream_event",
                    "event": {"type": "content_block_delta", "delta": {"type": "text_delta", "text": "x"}},
                }
            )
        )
        assert ev == TextDelta(text="x")

    def test_stream_event_without_inner(self) -> None:
        ev = classify_line(_line({"type": "stream_event", "event": "nope"}))
        assert isinstance(ev, Unknown)
        assert ev.tag == "stream_event"


class TestResultAndError:
    def test_result_full(self) -> None:
        ev = classify_line(
            _line(
                {
                    "type": "result",
                    "result": "done",
                    "total_cost_usd": 0.25,
                    "usage": {"input_tokens": 100, "output_tokens": 20},
                    "duration_ms": 1500,
                }
            )
        )
        assert ev == FinalResult(
            text="done", cost=0.25, input_tokens=100, output_tokens=20, duration_ms=1500.0
        )

    def test_result_legacy_cost(self) -> None:
        ev = classify_line(_line({"type": "result", "cost_usd": 1}))
        assert isinstance(ev, FinalResult)
        assert ev.cost == 1.0
        assert ev.input_tokens is None
        assert ev.duration_ms is None

    def test_result_error_flag(self) -> None:
        ev = classify_line(_line({"type": "result", "is_error": True}))
        assert isinstance(ev, FinalResult)
        assert ev.ok is False

    def test_error_nested_message(self) -> None:
        ev = classify_line(_line({"type": "error", "error": {"message": "overloaded"}}))
        assert ev == ErrorEvent(message="overloaded")

    def test_error_top_level_message(self) -> None:
        ev = classify_line(_line({"type": "error", "message": "bad"}))
        assert ev == ErrorEvent(message="bad")


class TestLifecycle:
    def test_iteration_start(self) -> None:
        ev = classify_line(
            _line({"event": "iteration_start", "iteration": 3, "timestamp": "T"})
        )
        assert ev == LifecycleMarker(
            name="iteration_start", fields={"iteration": 3, "timestamp": "T"}
        )

    def test_type_takes_precedence(self) -> None:
        ev = classify_record({"type": "error", "event": "iteration_end", "message": "m"})
        assert ev == ErrorEvent(message="m")
