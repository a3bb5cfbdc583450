"""Text shaping helpers shared by the stream renderer and tool views."""

from __future__ import annotations

import re
from pathlib import Path

_ZSH_LC_RE = re.compile(r'^(?:.*/)?zsh\s+-lc\s+"(?P<body>.*)"$')
_BASH_LC_RE = re.compile(r'^(?:.*/)?bash\s+-lc\s+"(?P<body>.*)"$')


def shorten_path(path: str, repo_root: Path | None) -> str:
    if not path:
        return path
    p = Path(path)
    if repo_root is None or not p.is_absolute():
        return path
    try:
        return str(p.relative_to(repo_root))
    except ValueError:
        pass
    try:
        return str(p.resolve().relative_to(repo_root.resolve()))
    except (OSError, ValueError):
        return path


def truncate_text(text: str, max_len: int) -> str:
    if max_len <= 0:
        return ""
    if len(text) <= max_len:
        return text
    if max_len == 1:
        return "…"
    return text[: max_len - 1] + "…"


def inline_text(text: str, max_len: int) -> str:
    cleaned = text.replace("\r", "").replace("\n", "\\n").strip()
    return truncate_text(cleaned, max_len)


def shorten_shell_command(cmd: str) -> str:
    cmd = cmd.strip()
    if not cmd:
        return cmd

    m = _ZSH_LC_RE.match(cmd) or _BASH_LC_RE.match(cmd)
    if m:
        cmd = m.group("body")

    cmd = cmd.replace("\r", "")

    # cd <dir> && <rest>
    if "&&" in cmd:
        head, rest = (part.strip() for part in cmd.split("&&", 1))
        if head.startswith("cd ") and rest:
            cmd = rest

    return cmd.strip()


def count_lines(text: str) -> int:
    if not text:
        return 0
    return len(text.splitlines())


def trim_lines(text: str, *, max_lines: int) -> tuple[str, bool]:
    """Keep the first ``max_lines`` lines; ``max_lines <= 0`` disables the cap."""
    if max_lines <= 0:
        return text, False
    lines = text.splitlines()
    if len(lines) <= max_lines:
        return text, False
    return "\n".join(lines[:max_lines]), True


def indent_block(text: str, prefix: str = "  ") -> str:
    return "\n".join(prefix + line for line in text.splitlines())


def format_cost(cost: float) -> str:
    return f"${cost:.4f}"
