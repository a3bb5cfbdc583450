"""Render an agent's stream-json trace as a live, human-readable transcript."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any, Callable

from rich.console import COLOR_SYSTEMS, Console, Group, RenderableType
from rich.panel import Panel
from rich.rule import Rule
from rich.style import Style
from rich.table import Table
from rich.text import Text

from .config import RenderLimits
from .events import (
    AssistantText,
    BlockStart,
    BlockStop,
    ErrorEvent,
    FinalResult,
    LifecycleMarker,
    MessageBoundary,
    PartialInputDelta,
    SessionInit,
    StreamEvent,
    StreamEventSink,
    SystemNotice,
    TextDelta,
    ToolInvocation,
    ToolResult,
    Unknown,
    UserMessage,
    classify_line,
)
from .state import RendererState
from .textfmt import count_lines, format_cost, indent_block, inline_text, trim_lines
from .tools import ToolContext, render_tool_invocation, tool_start_header
from .ui import OutputMode, make_console
from .util import format_duration, json_dumps_compact

THINKING_STYLE = "dim magenta"
ASSISTANT_PREFIX = "│ "
THINKING_PREFIX = "┆ "


def _display(value: object) -> str:
    if value is None or value == "":
        return "?"
    return str(value)


@dataclass
class StreamRenderer:
    stdout: IO[str]
    stderr: IO[str]
    repo_root: Path | None = None
    limits: RenderLimits = field(default_factory=RenderLimits)
    output_mode: OutputMode = "plain"
    event_sink: StreamEventSink | None = None
    state: RendererState = field(default_factory=RendererState)
    processed_events: int = 0

    console: Console = field(init=False)
    err_console: Console = field(init=False)
    _at_line_start: bool = field(init=False, default=True)
    _tools: ToolContext = field(init=False)
    _handlers: dict[type, Callable[[Any], None]] = field(init=False)

    def __post_init__(self) -> None:
        self.console = make_console(self.output_mode, file=self.stdout)
        self.err_console = make_console(self.output_mode, file=self.stderr, stderr=True)
        self._tools = ToolContext(limits=self.limits, repo_root=self.repo_root)
        self._handlers = {
            SessionInit: self._render_session_init,
            SystemNotice: self._render_system_notice,
            AssistantText: self._render_assistant,
            ToolInvocation: self._render_tool_invocation,
            ToolResult: self._render_tool_result,
            UserMessage: self._render_user,
            BlockStart: self._render_block_start,
            TextDelta: self._render_text_delta,
            PartialInputDelta: self._render_input_delta,
            BlockStop: self._render_block_stop,
            MessageBoundary: self._render_message_boundary,
            FinalResult: self._render_final_result,
            ErrorEvent: self._render_error,
            LifecycleMarker: self._render_lifecycle,
            Unknown: self._render_unknown,
        }

    # -- sink ---------------------------------------------------------------

    def _emit(self, event_type: str, payload: dict[str, Any]) -> None:
        if self.event_sink:
            self.event_sink(event_type, payload)

    def _end_line(self) -> None:
        if self._at_line_start:
            return
        self.stdout.write("\n")
        self.stdout.flush()
        self._at_line_start = True

    def _print(self, *renderables: RenderableType, soft_wrap: bool = False) -> None:
        self._end_line()
        for renderable in renderables:
            self.console.print(renderable, soft_wrap=soft_wrap)

    def _write_inline(self, text: str, style: str | None = None) -> None:
        if not text:
            return
        # Written raw: deltas must concatenate byte for byte, tabs and control
        # characters included.
        self.stdout.write(self._styled(text, style))
        self.stdout.flush()
        self._at_line_start = text.endswith("\n")

    def _styled(self, text: str, style: str | None) -> str:
        system = self.console.color_system
        if not style or system is None:
            return text
        parsed = Style.parse(style)
        if self.console.no_color:
            parsed = parsed.without_color
        return parsed.render(text, color_system=COLOR_SYSTEMS[system])

    # -- entry points -------------------------------------------------------

    def process_line(self, line: str) -> None:
        event = classify_line(line)
        if isinstance(event, Unknown) and not event.decoded:
            self._passthrough(line)
            return
        self.processed_events += 1
        self.render(event)

    def render(self, event: StreamEvent) -> None:
        self._handlers[type(event)](event)

    def finish(self) -> int:
        self._end_line()
        if self.processed_events == 0:
            self.err_console.print("[yellow]⚠ No stream events received[/yellow]")
        return 0

    def _passthrough(self, line: str) -> None:
        self._end_line()
        self.stdout.write(line if line.endswith("\n") else line + "\n")
        self.stdout.flush()

    # -- blocks and deltas --------------------------------------------------

    def _render_block_start(self, ev: BlockStart) -> None:
        self.state.enter_block(ev.block, ev.tool_name or None)
        self._emit("stream.block.start", {"block": ev.block, "tool": self.state.current_tool})
        if ev.block == "thinking":
            self._print(Text("💭 Thinking…", style=THINKING_STYLE))
        elif ev.block == "tool_use":
            self._print(tool_start_header(self.state.current_tool or ""))

    def _render_block_stop(self, ev: BlockStop) -> None:
        was_thinking = self.state.exit_block()
        self._end_line()
        if was_thinking:
            self._print(Text("💭 Done thinking", style=THINKING_STYLE))

    def _render_text_delta(self, ev: TextDelta) -> None:
        if not ev.text:
            return
        thinking = self.state.in_thinking
        self._emit("stream.text", {"text": ev.text, "delta": True, "thinking": thinking})
        self._write_inline(ev.text, THINKING_STYLE if thinking else None)

    def _render_input_delta(self, ev: PartialInputDelta) -> None:
        self._write_inline(ev.json_fragment, "dim")

    def _render_message_boundary(self, ev: MessageBoundary) -> None:
        if ev.name == "message_stop":
            self._end_line()

    # -- messages -----------------------------------------------------------

    def _render_session_init(self, ev: SessionInit) -> None:
        self._emit(
            "stream.session",
            {
                "session_id": ev.session_id,
                "model": ev.model,
                "version": ev.version,
                "tools": ev.tool_count,
                "mcp_servers": ev.integration_count,
            },
        )
        table = Table.grid(padding=(0, 2))
        table.add_column(style="bold")
        table.add_column()
        table.add_row("Session", _display(ev.session_id))
        table.add_row("Model", _display(ev.model))
        table.add_row("Version", _display(ev.version))
        table.add_row("Tools", str(ev.tool_count))
        table.add_row("MCP servers", str(ev.integration_count))
        self._print(Panel(table, title="Session", title_align="left", border_style="blue"))

    def _render_system_notice(self, ev: SystemNotice) -> None:
        message = ev.message or ev.subtype
        if not message:
            return
        self._print(Text(f"[system] {message}", style="dim"))

    def _render_assistant(self, ev: AssistantText) -> None:
        if ev.thinking:
            self._print(Text(indent_block(ev.thinking, THINKING_PREFIX), style=THINKING_STYLE))
        if ev.text:
            self._emit("stream.text", {"text": ev.text})
            self._print(Text(indent_block(ev.text, ASSISTANT_PREFIX)))
        for inv in ev.tool_uses:
            self._render_tool_invocation(inv)

    def _render_user(self, ev: UserMessage) -> None:
        if ev.text:
            self._print(
                Text(f"[user] {inline_text(ev.text, self.limits.value_max_chars)}", style="dim")
            )
        for result in ev.results:
            self._render_tool_result(result)

    # -- tools --------------------------------------------------------------

    def _render_tool_invocation(self, ev: ToolInvocation) -> None:
        self._emit("stream.tool", {"name": ev.tool_name, "input": ev.input})
        self._print(*render_tool_invocation(ev, self._tools))

    def _render_tool_result(self, ev: ToolResult) -> None:
        if not ev.ok:
            body = ev.content or ev.stderr or ev.stdout
            self._emit("stream.tool.result", {"ok": False, "text": body})
            self._print(
                Panel(Text(body), title="✗ Error", title_align="left", border_style="red")
            )
            return

        primary = ev.stdout or ev.content
        total = count_lines(primary)
        shown, trimmed = trim_lines(primary, max_lines=self.limits.result_max_lines)
        self._emit("stream.tool.result", {"ok": True, "text": primary, "lines": total})

        noun = "line" if total == 1 else "lines"
        title = Text("✓ Result", style="green")
        title.append(f" ({total} {noun})", style="dim")
        out: list[RenderableType] = [title]
        if shown.strip():
            out.append(Text(indent_block(shown), style="dim"))
        if trimmed:
            out.append(Text(f"  … ({total} total lines)", style="dim"))
        if ev.stderr.strip():
            out.append(
                Panel(
                    Text(ev.stderr.rstrip("\n")),
                    title="stderr",
                    title_align="left",
                    border_style="yellow",
                )
            )
        self._print(*out)

    # -- outcome ------------------------------------------------------------

    def _render_final_result(self, ev: FinalResult) -> None:
        self._emit(
            "stream.result",
            {
                "ok": ev.ok,
                "cost": ev.cost,
                "input_tokens": ev.input_tokens,
                "output_tokens": ev.output_tokens,
                "duration_ms": ev.duration_ms,
            },
        )
        rows: list[RenderableType] = []
        if ev.text:
            rows.append(Text(ev.text))
        stats: list[str] = []
        if ev.cost is not None:
            stats.append(f"Cost: {format_cost(ev.cost)}")
        if ev.input_tokens is not None:
            stats.append(f"Input tokens: {ev.input_tokens}")
        if ev.output_tokens is not None:
            stats.append(f"Output tokens: {ev.output_tokens}")
        if ev.duration_ms is not None:
            stats.append(f"Duration: {format_duration(ev.duration_ms / 1000)}")
        if stats:
            if rows:
                rows.append(Text(""))
            rows.extend(Text(stat, style="dim") for stat in stats)
        self._print(
            Panel(
                Group(*rows),
                title="Result",
                title_align="left",
                border_style="green" if ev.ok else "red",
            )
        )

    def _render_error(self, ev: ErrorEvent) -> None:
        self._emit("stream.error", {"message": ev.message})
        self._print(
            Panel(
                Text(ev.message or "(no message)"),
                title="✗ Error",
                title_align="left",
                border_style="red",
            )
        )

    # -- supervisor markers and fallback ------------------------------------

    def _render_lifecycle(self, ev: LifecycleMarker) -> None:
        self._emit("stream.lifecycle", {"name": ev.name, **ev.fields})
        iteration = _display(ev.fields.get("iteration"))
        if ev.name == "iteration_start":
            title = f"Iteration {iteration} · {_display(ev.fields.get('timestamp'))}"
            self._print(Text(title, style="bold green"), soft_wrap=True)
            self._print(Rule(style="green"))
            return
        if ev.name == "iteration_end":
            elapsed = _display(ev.fields.get("duration_secs"))
            title = f"Iteration {iteration} completed in {elapsed}s"
            self._print(Text(title, style="yellow"), soft_wrap=True)
            self._print(Rule(style="yellow"))
            return
        compact = json_dumps_compact({"event": ev.name, **ev.fields})
        self._print(Text(f"[event:{ev.name}] {compact}", style="dim"), soft_wrap=True)

    def _render_unknown(self, ev: Unknown) -> None:
        if ev.length >= self.limits.unknown_max_chars:
            self._emit("stream.event", {"tag": ev.tag, "suppressed": True, "length": ev.length})
            return
        try:
            compact = json_dumps_compact(ev.payload)
        except (TypeError, ValueError):
            compact = ev.raw_line
        self._emit("stream.event", {"tag": ev.tag, "suppressed": False, "length": ev.length})
        self._print(Text(f"[{ev.tag or 'unknown'}] {compact}", style="dim"), soft_wrap=True)
