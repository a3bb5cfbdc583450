"""Tool invocation views.

Each view turns a :class:`ToolInvocation` into a short list of renderables.
Views are looked up by tool name in :data:`TOOL_VIEWS`; names without a
dedicated view get the framed JSON dump from :func:`generic_view`.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from rich.console import RenderableType
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from .config import RenderLimits
from .events import ToolInvocation
from .textfmt import inline_text, shorten_path, shorten_shell_command

TODO_GLYPHS = {
    "pending": ("○", "dim"),
    "in_progress": ("◐", "yellow"),
    "completed": ("●", "green"),
}
_TODO_FALLBACK_GLYPH = ("·", "dim")


@dataclass(frozen=True)
class ToolContext:
    limits: RenderLimits
    repo_root: Path | None = None

    def path(self, raw: object) -> str:
        text = raw if isinstance(raw, str) else ""
        if not text:
            return ""
        return inline_text(shorten_path(text, self.repo_root), self.limits.value_max_chars)

    def inline(self, raw: object) -> str:
        text = raw if isinstance(raw, str) else ""
        return inline_text(text, self.limits.value_max_chars)


ToolView = Callable[[ToolInvocation, ToolContext], list[RenderableType]]


def tool_title(name: str) -> str:
    return f"▶ {name or 'unknown'}"


def header(name: str, *details: tuple[str, str]) -> Text:
    line = Text(tool_title(name), style="bold cyan")
    for text, style in details:
        if text:
            line.append(" ")
            line.append(text, style=style)
    return line


def _str_field(data: dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = data.get(key)
        if isinstance(value, str) and value:
            return value
    return ""


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


def shell_view(inv: ToolInvocation, ctx: ToolContext) -> list[RenderableType]:
    cmd = shorten_shell_command(_str_field(inv.input, "command"))
    desc = ctx.inline(_str_field(inv.input, "description"))
    out: list[RenderableType] = [
        header(inv.tool_name, (f"$ {ctx.inline(cmd)}" if cmd else "", "white"))
    ]
    if desc:
        out.append(Text(f"  {desc}", style="dim"))
    return out


def file_view(inv: ToolInvocation, ctx: ToolContext) -> list[RenderableType]:
    data = inv.input
    path = ctx.path(_str_field(data, "file_path", "notebook_path", "path"))
    out: list[RenderableType] = []

    if inv.tool_name == "MultiEdit":
        edits = data.get("edits")
        count = len(edits) if isinstance(edits, list) else 0
        out.append(header(inv.tool_name, (path, "dim"), (f"({count} edits)", "yellow")))
        return out

    note = ""
    if inv.tool_name == "Edit" and data.get("replace_all") is True:
        note = "(all occurrences)"
    out.append(header(inv.tool_name, (path, "dim"), (note, "yellow")))

    if inv.tool_name == "Edit":
        limit = ctx.limits.edit_preview_chars
        old = inline_text(_str_field(data, "old_string"), limit)
        new = inline_text(_str_field(data, "new_string"), limit)
        if old:
            out.append(Text(f"  - {old}", style="red"))
        if new:
            out.append(Text(f"  + {new}", style="green"))
    return out


def search_view(inv: ToolInvocation, ctx: ToolContext) -> list[RenderableType]:
    pattern = ctx.inline(_str_field(inv.input, "pattern"))
    scope = ctx.path(_str_field(inv.input, "path"))
    shown = f"/{pattern}/" if inv.tool_name == "Grep" else pattern
    suffix = f"in {scope}" if scope else ""
    return [header(inv.tool_name, (shown, "white"), (suffix, "dim"))]


def todo_view(inv: ToolInvocation, ctx: ToolContext) -> list[RenderableType]:
    raw = inv.input.get("todos")
    todos = raw if isinstance(raw, list) else []
    noun = "item" if len(todos) == 1 else "items"
    out: list[RenderableType] = [header(inv.tool_name, (f"{len(todos)} {noun}", "dim"))]

    limit = ctx.limits.todo_max_items
    for todo in todos[:limit]:
        item = todo if isinstance(todo, dict) else {}
        glyph, style = TODO_GLYPHS.get(str(item.get("status") or ""), _TODO_FALLBACK_GLYPH)
        content = ctx.inline(_str_field(item, "content", "activeForm"))
        out.append(Text(f"  {glyph} {content}", style=style))
    hidden = len(todos) - limit
    if hidden > 0:
        out.append(Text(f"  … {hidden} more", style="dim"))
    return out


def task_view(inv: ToolInvocation, ctx: ToolContext) -> list[RenderableType]:
    subagent = ctx.inline(_str_field(inv.input, "subagent_type")) or "agent"
    desc = ctx.inline(_str_field(inv.input, "description"))
    return [header(inv.tool_name, (subagent, "yellow"), (desc, "dim"))]


def web_view(inv: ToolInvocation, ctx: ToolContext) -> list[RenderableType]:
    target = ctx.inline(_str_field(inv.input, "url", "query"))
    return [header(inv.tool_name, (target, "dim"))]


def generic_view(inv: ToolInvocation, ctx: ToolContext) -> list[RenderableType]:
    body = json.dumps(inv.input, indent=2, ensure_ascii=False, default=str)
    return [
        Panel(
            Text(body),
            title=escape(tool_title(inv.tool_name)),
            title_align="left",
            border_style="cyan",
        )
    ]


TOOL_VIEWS: dict[str, ToolView] = {
    "Bash": shell_view,
    "Read": file_view,
    "Write": file_view,
    "Edit": file_view,
    "MultiEdit": file_view,
    "NotebookEdit": file_view,
    "Glob": search_view,
    "Grep": search_view,
    "TodoWrite": todo_view,
    "Task": task_view,
    "WebFetch": web_view,
    "WebSearch": web_view,
}


def render_tool_invocation(inv: ToolInvocation, ctx: ToolContext) -> list[RenderableType]:
    view = TOOL_VIEWS.get(inv.tool_name, generic_view)
    return view(inv, ctx)


def tool_start_header(name: str) -> Text:
    return Text(f"{tool_title(name)} …", style="bold cyan")

