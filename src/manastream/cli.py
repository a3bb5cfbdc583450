from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import IO

from rich.markup import escape

from .config import CONFIG_ENV_VAR, ENV_PREFIX, LIMIT_FIELDS, load_limits
from .format_stream import StreamRenderer
from .ui import add_output_mode_argument, make_console, resolve_output_mode


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="mana-stream",
        description="Render agent stream-json output from stdin as a readable transcript.",
    )
    p.add_argument("--repo-root", help="Repo root for shortening absolute paths")
    p.add_argument(
        "--config",
        help=f"TOML file with a [render] table (default: ${CONFIG_ENV_VAR})",
    )
    add_output_mode_argument(p)
    limits = p.add_argument_group("limits")
    for name in LIMIT_FIELDS:
        limits.add_argument(
            f"--{name.replace('_', '-')}",
            dest=name,
            type=int,
            metavar="N",
            help=f"Override {name} (env: {ENV_PREFIX}{name.upper()})",
        )
    return p


def main(
    argv: list[str] | None = None,
    stdin: IO[str] | None = None,
    stdout: IO[str] | None = None,
    stderr: IO[str] | None = None,
) -> None:
    args = build_parser().parse_args(argv)
    out = sys.stdout if stdout is None else stdout
    err = sys.stderr if stderr is None else stderr

    try:
        output_mode = resolve_output_mode(args.output)
        limits = load_limits(
            config_path=Path(args.config).expanduser() if args.config else None,
            overrides={name: getattr(args, name) for name in LIMIT_FIELDS},
        )
    except ValueError as exc:
        make_console("plain", file=err, stderr=True).print(
            f"[red]error:[/red] {escape(str(exc))}"
        )
        raise SystemExit(2) from None

    repo_root = Path(args.repo_root) if args.repo_root else Path.cwd()
    renderer = StreamRenderer(
        stdout=out,
        stderr=err,
        repo_root=repo_root,
        limits=limits,
        output_mode=output_mode,
    )

    inp = sys.stdin if stdin is None else stdin
    try:
        for line in inp:
            renderer.process_line(line)
    except KeyboardInterrupt:
        raise SystemExit(130) from None
    raise SystemExit(renderer.finish())


if __name__ == "__main__":
    main()
