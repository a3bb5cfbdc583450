from __future__ import annotations

from dataclasses import dataclass

from .events import BlockKind


@dataclass
class RendererState:
    """Context carried between lines: the open tool block and thinking flag.

    At most one block is open at a time. Opening a block replaces whatever was
    open before; closing when nothing is open does nothing.
    """

    current_tool: str | None = None
    in_thinking: bool = False

    @property
    def idle(self) -> bool:
        return self.current_tool is None and not self.in_thinking

    def enter_block(self, kind: BlockKind, tool_name: str | None = None) -> None:
        self.current_tool = None
        self.in_thinking = False
        if kind == "thinking":
            self.in_thinking = True
        elif kind == "tool_use":
            self.current_tool = tool_name or "unknown"

    def exit_block(self) -> bool:
        """Close the open block. Returns True if a thinking segment ended."""
        was_thinking = self.in_thinking
        self.current_tool = None
        self.in_thinking = False
        return was_thinking
