from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

CONFIG_ENV_VAR = "MANA_STREAM_CONFIG"
ENV_PREFIX = "MANA_STREAM_"


@dataclass(frozen=True)
class RenderLimits:
    """Truncation limits applied while rendering.

    ``result_max_lines`` of 0 shows tool results in full.
    """

    unknown_max_chars: int = 500
    edit_preview_chars: int = 100
    todo_max_items: int = 10
    result_max_lines: int = 0
    value_max_chars: int = 160


LIMIT_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(RenderLimits))


class ConfigValidationError(ValueError):
    pass


def _as_limit(value: object, *, source: str) -> int:
    if isinstance(value, bool):
        raise ConfigValidationError(f"{source} must be a non-negative integer")
    if isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise ConfigValidationError(
                f"{source} must be a non-negative integer, got {value!r}"
            ) from None
    if not isinstance(value, int):
        raise ConfigValidationError(f"{source} must be a non-negative integer")
    if value < 0:
        raise ConfigValidationError(f"{source} must be a non-negative integer, got {value}")
    return value


def _parse_render_table(raw: object, *, path: Path) -> dict[str, int]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigValidationError(f"{path}: [render] must be a table")

    out: dict[str, int] = {}
    for key, value in raw.items():
        if key not in LIMIT_FIELDS:
            expected = ", ".join(LIMIT_FIELDS)
            raise ConfigValidationError(
                f"{path}: unknown key [render].{key} (expected one of: {expected})"
            )
        out[key] = _as_limit(value, source=f"{path}: [render].{key}")
    return out


def read_config_file(path: Path) -> dict[str, int]:
    try:
        raw = tomllib.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigValidationError(f"cannot read {path}: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigValidationError(f"invalid TOML in {path}: {exc}") from exc
    return _parse_render_table(raw.get("render"), path=path)


def _env_overrides(env: Mapping[str, str]) -> dict[str, int]:
    out: dict[str, int] = {}
    for name in LIMIT_FIELDS:
        var = ENV_PREFIX + name.upper()
        raw = env.get(var, "").strip()
        if raw:
            out[name] = _as_limit(raw, source=var)
    return out


def load_limits(
    *,
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> RenderLimits:
    """Resolve limits from defaults, TOML file, environment, then overrides.

    ``overrides`` entries set to ``None`` are ignored so argparse namespaces
    can be passed through directly.
    """
    source = os.environ if env is None else env
    limits = RenderLimits()

    if config_path is None:
        raw_path = source.get(CONFIG_ENV_VAR, "").strip()
        if raw_path:
            config_path = Path(raw_path).expanduser()
    if config_path is not None:
        limits = replace(limits, **read_config_file(config_path))

    limits = replace(limits, **_env_overrides(source))

    explicit: dict[str, int] = {}
    for name, value in (overrides or {}).items():
        if value is None:
            continue
        if name not in LIMIT_FIELDS:
            raise ConfigValidationError(f"unknown limit {name!r}")
        explicit[name] = _as_limit(value, source=f"--{name.replace('_', '-')}")
    return replace(limits, **explicit)
