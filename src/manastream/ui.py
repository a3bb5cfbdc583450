from __future__ import annotations

import argparse
import os
import sys
from typing import IO, Literal, Mapping

from rich.console import Console

OUTPUT_CHOICES = ("auto", "plain", "rich")
OUTPUT_ENV_VAR = "MANA_STREAM_OUTPUT"
OutputMode = Literal["plain", "rich"]


def add_output_mode_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--output",
        choices=OUTPUT_CHOICES,
        help=(
            "Output mode: auto (default), plain, or rich. "
            f"Falls back to {OUTPUT_ENV_VAR} when omitted."
        ),
    )


def _normalize_choice(raw: str | None, *, source: str) -> str | None:
    if raw is None:
        return None
    value = raw.strip().lower()
    if not value:
        return None
    if value not in OUTPUT_CHOICES:
        expected = ", ".join(OUTPUT_CHOICES)
        raise ValueError(f"invalid {source} value {raw!r}; expected one of: {expected}")
    return value


def _stream_is_tty(stream: object) -> bool:
    probe = getattr(stream, "isatty", None)
    if not callable(probe):
        return False
    try:
        return bool(probe())
    except (OSError, ValueError):
        return False


def resolve_output_mode(
    requested: str | None = None,
    *,
    env: Mapping[str, str] | None = None,
    is_tty: bool | None = None,
) -> OutputMode:
    source = os.environ if env is None else env
    selected = _normalize_choice(requested, source="--output")
    if selected is None:
        selected = _normalize_choice(source.get(OUTPUT_ENV_VAR), source=OUTPUT_ENV_VAR)
    if selected is None:
        selected = "auto"

    if selected == "auto":
        tty = _stream_is_tty(sys.stdout) if is_tty is None else bool(is_tty)
        return "rich" if tty else "plain"
    return "rich" if selected == "rich" else "plain"


def make_console(mode: OutputMode, *, file: IO[str] | None = None, stderr: bool = False) -> Console:
    return Console(
        file=file if file is not None else (sys.stderr if stderr else sys.stdout),
        force_terminal=mode == "rich",
        no_color=mode != "rich",
        highlight=False,
        stderr=stderr,
    )
