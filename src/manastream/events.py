"""Typed stream events and the line classifier.

Every line read from the agent's output is turned into exactly one event.
Structured records are JSON objects; the ``type`` field selects the variant.
Records written by the iteration supervisor carry an ``event`` field instead
and become :class:`LifecycleMarker`. Anything else is :class:`Unknown`.

Classification never raises. Absent fields and fields of the wrong type fall
back to neutral values (empty string, ``None``, empty tuple/dict).
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Literal, Union

BlockKind = Literal["text", "thinking", "tool_use"]


@dataclass(frozen=True)
class SessionInit:
    kind: ClassVar[str] = "session_init"

    session_id: str = ""
    model: str = ""
    version: str = ""
    tool_count: int = 0
    integration_count: int = 0


@dataclass(frozen=True)
class SystemNotice:
    kind: ClassVar[str] = "system"

    subtype: str = ""
    message: str = ""


@dataclass(frozen=True)
class ToolInvocation:
    kind: ClassVar[str] = "tool_use"

    tool_name: str = ""
    input: dict[str, Any] = field(default_factory=dict)
    tool_use_id: str = ""


@dataclass(frozen=True)
class AssistantText:
    """A complete assistant turn: text, optional thinking, and tool calls."""

    kind: ClassVar[str] = "assistant"

    text: str = ""
    thinking: str = ""
    tool_uses: tuple[ToolInvocation, ...] = ()


@dataclass(frozen=True)
class ToolResult:
    kind: ClassVar[str] = "tool_result"

    ok: bool = True
    content: str = ""
    stdout: str = ""
    stderr: str = ""
    tool_use_id: str = ""


@dataclass(frozen=True)
class UserMessage:
    kind: ClassVar[str] = "user"

    text: str = ""
    results: tuple[ToolResult, ...] = ()


@dataclass(frozen=True)
class BlockStart:
    kind: ClassVar[str] = "block_start"

    block: BlockKind = "text"
    tool_name: str = ""


@dataclass(frozen=True)
class TextDelta:
    kind: ClassVar[str] = "text_delta"

    text: str = ""


@dataclass(frozen=True)
class PartialInputDelta:
    kind: ClassVar[str] = "input_json_delta"

    json_fragment: str = ""


@dataclass(frozen=True)
class BlockStop:
    kind: ClassVar[str] = "block_stop"


@dataclass(frozen=True)
class MessageBoundary:
    kind: ClassVar[str] = "message_boundary"

    name: str = ""


@dataclass(frozen=True)
class FinalResult:
    kind: ClassVar[str] = "result"

    text: str = ""
    ok: bool = True
    cost: float | None = None
    input_tokens: int | None = None
    output_tokens: int | None = None
    duration_ms: float | None = None


@dataclass(frozen=True)
class ErrorEvent:
    kind: ClassVar[str] = "error"

    message: str = ""


@dataclass(frozen=True)
class LifecycleMarker:
    kind: ClassVar[str] = "lifecycle"

    name: str = ""
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Unknown:
    """A line with no recognised shape.

    ``decoded`` is False when the line is not JSON at all; such lines are
    echoed verbatim. Decoded records keep their payload and declared tag.
    """

    kind: ClassVar[str] = "unknown"

    raw_line: str = ""
    tag: str = ""
    payload: Any = None
    decoded: bool = False

    @property
    def length(self) -> int:
        return len(self.raw_line)


StreamEvent = Union[
    SessionInit,
    SystemNotice,
    AssistantText,
    ToolInvocation,
    ToolResult,
    UserMessage,
    BlockStart,
    TextDelta,
    PartialInputDelta,
    BlockStop,
    MessageBoundary,
    FinalResult,
    ErrorEvent,
    LifecycleMarker,
    Unknown,
]


# ---------------------------------------------------------------------------
# Coercion
# ---------------------------------------------------------------------------


def _as_str(value: object) -> str:
    return value if isinstance(value, str) else ""


def _as_dict(value: object) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: object) -> list[Any]:
    return value if isinstance(value, list) else []


def _as_int(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _as_float(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


def _content_text(value: object) -> str:
    """Flatten a string or a list of content blocks into plain text."""
    if isinstance(value, str):
        return value
    parts: list[str] = []
    for block in _as_list(value):
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict):
            text = block.get("text")
            if isinstance(text, str):
                parts.append(text)
    return "\n".join(parts)


# ---------------------------------------------------------------------------
# Per-type parsers
# ---------------------------------------------------------------------------


def _parse_system(record: dict[str, Any]) -> StreamEvent:
    subtype = _as_str(record.get("subtype"))
    if subtype == "init":
        return SessionInit(
            session_id=_as_str(record.get("session_id")),
            model=_as_str(record.get("model")),
            version=_as_str(record.get("claude_code_version"))
            or _as_str(record.get("version")),
            tool_count=len(_as_list(record.get("tools"))),
            integration_count=len(_as_list(record.get("mcp_servers"))),
        )
    return SystemNotice(subtype=subtype, message=_as_str(record.get("message")))


def _parse_tool_use(block: dict[str, Any]) -> ToolInvocation:
    return ToolInvocation(
        tool_name=_as_str(block.get("name")),
        input=_as_dict(block.get("input")),
        tool_use_id=_as_str(block.get("id")),
    )


def _parse_assistant(record: dict[str, Any]) -> StreamEvent:
    message = _as_dict(record.get("message"))
    content = message.get("content")
    if isinstance(content, str):
        return AssistantText(text=content)

    texts: list[str] = []
    thinking: list[str] = []
    tool_uses: list[ToolInvocation] = []
    for block in _as_list(content):
        if not isinstance(block, dict):
            continue
        btype = block.get("type")
        if btype == "text":
            texts.append(_as_str(block.get("text")))
        elif btype == "thinking":
            thinking.append(_as_str(block.get("thinking")))
        elif btype == "tool_use":
            tool_uses.append(_parse_tool_use(block))
    return AssistantText(
        text="\n".join(t for t in texts if t),
        thinking="\n".join(t for t in thinking if t),
        tool_uses=tuple(tool_uses),
    )


def _tool_output(value: object) -> tuple[str, str]:
    data = _as_dict(value)
    return _as_str(data.get("stdout")), _as_str(data.get("stderr"))


def _parse_tool_result_block(
    block: dict[str, Any], *, stdout: str = "", stderr: str = ""
) -> ToolResult:
    return ToolResult(
        ok=block.get("is_error") is not True,
        content=_content_text(block.get("content")),
        stdout=_as_str(block.get("stdout")) or stdout,
        stderr=_as_str(block.get("stderr")) or stderr,
        tool_use_id=_as_str(block.get("tool_use_id")),
    )


def _parse_user(record: dict[str, Any]) -> StreamEvent:
    message = _as_dict(record.get("message"))
    content = message.get("content")
    if isinstance(content, str):
        return UserMessage(text=content)

    stdout, stderr = _tool_output(record.get("tool_use_result"))
    texts: list[str] = []
    results: list[ToolResult] = []
    for block in _as_list(content):
        if not isinstance(block, dict):
            continue
        btype = block.get("type")
        if btype == "tool_result":
            # tool_use_result describes the first result only
            if results:
                results.append(_parse_tool_result_block(block))
            else:
                results.append(
                    _parse_tool_result_block(block, stdout=stdout, stderr=stderr)
                )
        elif btype == "text":
            texts.append(_as_str(block.get("text")))
    return UserMessage(
        text="\n".join(t for t in texts if t), results=tuple(results)
    )


def _parse_top_level_tool_result(record: dict[str, Any]) -> StreamEvent:
    stdout, stderr = _tool_output(record.get("tool_use_result"))
    return _parse_tool_result_block(record, stdout=stdout, stderr=stderr)


def _parse_block_start(record: dict[str, Any]) -> StreamEvent:
    block = _as_dict(record.get("content_block"))
    btype = _as_str(block.get("type"))
    if btype in ("thinking", "redacted_thinking"):
        return BlockStart(block="thinking")
    if btype in ("tool_use", "server_tool_use"):
        return BlockStart(block="tool_use", tool_name=_as_str(block.get("name")))
    return BlockStart(block="text")


def _parse_block_delta(record: dict[str, Any]) -> StreamEvent:
    delta = _as_dict(record.get("delta"))
    dtype = delta.get("type")
    if dtype == "text_delta":
        return TextDelta(text=_as_str(delta.get("text")))
    if dtype == "thinking_delta":
        return TextDelta(text=_as_str(delta.get("thinking")))
    if dtype == "input_json_delta":
        return PartialInputDelta(json_fragment=_as_str(delta.get("partial_json")))
    return TextDelta()


def _parse_result(record: dict[str, Any]) -> StreamEvent:
    usage = _as_dict(record.get("usage"))
    cost = _as_float(record.get("total_cost_usd"))
    if cost is None:
        cost = _as_float(record.get("cost_usd"))
    return FinalResult(
        text=_as_str(record.get("result")),
        ok=record.get("is_error") is not True,
        cost=cost,
        input_tokens=_as_int(usage.get("input_tokens")),
        output_tokens=_as_int(usage.get("output_tokens")),
        duration_ms=_as_float(record.get("duration_ms")),
    )


def _parse_error(record: dict[str, Any]) -> StreamEvent:
    error = record.get("error")
    message = ""
    if isinstance(error, dict):
        message = _as_str(error.get("message"))
    elif isinstance(error, str):
        message = error
    return ErrorEvent(message=message or _as_str(record.get("message")))


def _parse_message_boundary(record: dict[str, Any]) -> StreamEvent:
    return MessageBoundary(name=_as_str(record.get("type")))


_PARSERS: dict[str, Callable[[dict[str, Any]], StreamEvent]] = {
    "system": _parse_system,
    "assistant": _parse_assistant,
    "user": _parse_user,
    "tool_use": _parse_tool_use,
    "tool_result": _parse_top_level_tool_result,
    "content_block_start": _parse_block_start,
    "content_block_delta": _parse_block_delta,
    "content_block_stop": lambda _record: BlockStop(),
    "message_start": _parse_message_boundary,
    "message_delta": _parse_message_boundary,
    "message_stop": _parse_message_boundary,
    "result": _parse_result,
    "error": _parse_error,
}


# ---------------------------------------------------------------------------
# Classifier
# ---------------------------------------------------------------------------


def classify_record(record: dict[str, Any], *, raw_line: str = "") -> StreamEvent:
    rtype = record.get("type")

    while rtype == "stream_event":
        inner = record.get("event")
        if not isinstance(inner, dict):
            return Unknown(raw_line=raw_line, tag="stream_event", payload=record, decoded=True)
        record = inner
        rtype = record.get("type")

    if not isinstance(rtype, str) or not rtype:
        name = record.get("event")
        if isinstance(name, str) and name:
            fields = {k: v for k, v in record.items() if k != "event"}
            return LifecycleMarker(name=name, fields=fields)
        return Unknown(raw_line=raw_line, payload=record, decoded=True)

    parser = _PARSERS.get(rtype)
    if parser is None:
        return Unknown(raw_line=raw_line, tag=rtype, payload=record, decoded=True)
    return parser(record)


def classify_line(line: str) -> StreamEvent:
    raw = line.rstrip("\r\n")
    try:
        record = json.loads(raw)
    except (ValueError, RecursionError):
        return Unknown(raw_line=raw)
    if not isinstance(record, dict):
        return Unknown(raw_line=raw, payload=record, decoded=True)
    return classify_record(record, raw_line=raw)


StreamEventSink = Callable[[str, dict[str, Any]], None]
