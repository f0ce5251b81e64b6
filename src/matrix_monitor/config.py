"""Monitor configuration record plus tolerant merge/load helpers.

Configuration values arrive from callers, JSON files and CLI flags. Merging is
intentionally forgiving: unknown keys and malformed values are logged and
ignored so a bad option degrades to the previous value instead of aborting.
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_ALPHABET = (
    "ﾊﾐﾋｰｳｼﾅﾓﾆｻﾜﾂｵﾘｱﾎﾃﾏｹﾒｴｶｷﾑﾕﾗｾﾈｽﾀﾇﾍｦｲｸｺｿﾁﾄﾉﾌﾔﾖﾙﾚﾛﾝﾘｸコソヤ日"
    '012345789Z:・."=*+-<>¦╌'
)


@dataclass(frozen=True)
class MonitorConfig:
    """Tunable parameters. Delays and durations are milliseconds."""

    alphabet: str = DEFAULT_ALPHABET
    initial_delay: int = 1000
    main_loop_interval: int = 10000
    main_loop_duration: int | None = None
    min_char_start_delay: int = 500
    max_char_start_delay: int = 10000
    min_char_progression: int = 200
    max_char_progression: int = 800
    # Geometry, in terminal character cells.
    padding_top: int = 0
    padding_left: int = 0
    cell_width: int = 1
    cell_height: int = 1
    horizontal_spacing: int = 1
    vertical_spacing: int = 0
    # Renderer-facing visuals.
    background_color: str = "#000000"
    font_color: str = "#91F490"
    faded_font_color: str = "#01A400"
    faded_opacity: float = 0.5
    deleted_opacity: float = 0.0
    bold: bool = True
    appear_duration: int = 100
    fade_delay: int = 100
    fading_duration: int = 2000
    delete_duration: int = 100
    delete_fading_duration: int = 500


_OPTIONAL_INT_FIELDS = {"main_loop_duration"}


def int_or_default(value: Any, default: int) -> int:
    """Return `value` as an int when it is a finite number, else `default`."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    return default


def float_or_default(value: Any, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        normalized = float(value)
        if math.isfinite(normalized):
            return normalized
    return default


def bool_or_default(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    return default


def str_or_default(value: Any, default: str) -> str:
    if isinstance(value, str):
        return value
    return default


_INVALID = object()


def _coerce_field(name: str, value: Any, current: Any) -> Any:
    """Coerce one override against the type of its current value.

    Returns `_INVALID` when the override is malformed.
    """
    if name in _OPTIONAL_INT_FIELDS:
        if value is None:
            return None
        return int_or_default(value, _INVALID)  # type: ignore[arg-type]
    if name == "alphabet":
        # An empty alphabet leaves nothing to sample.
        if isinstance(value, str) and value:
            return value
        return _INVALID
    if isinstance(current, bool):
        return bool_or_default(value, _INVALID)  # type: ignore[arg-type]
    if isinstance(current, int):
        return int_or_default(value, _INVALID)  # type: ignore[arg-type]
    if isinstance(current, float):
        return float_or_default(value, _INVALID)  # type: ignore[arg-type]
    if isinstance(current, str):
        return str_or_default(value, _INVALID)  # type: ignore[arg-type]
    return _INVALID


def merge_config(base: MonitorConfig, overrides: Mapping[str, Any]) -> MonitorConfig:
    """Return `base` with every valid override applied."""
    known = {field.name for field in fields(MonitorConfig)}
    changes: dict[str, Any] = {}
    for name, value in overrides.items():
        if name not in known:
            logger.warning("Ignoring unknown configuration option %r", name)
            continue
        coerced = _coerce_field(name, value, getattr(base, name))
        if coerced is _INVALID:
            logger.warning(
                "Ignoring malformed value for configuration option %r: %r",
                name,
                value,
            )
            continue
        changes[name] = coerced
    if not changes:
        return base
    return replace(base, **changes)


def config_from(value: MonitorConfig | Mapping[str, Any] | None) -> MonitorConfig:
    """Build a config from a record, a mapping of overrides, or nothing."""
    if isinstance(value, MonitorConfig):
        return value
    if value is None:
        return MonitorConfig()
    return merge_config(MonitorConfig(), value)


def load_config_with_notice(path: Path) -> tuple[MonitorConfig, str | None]:
    """Load config overrides from a JSON file and return an optional notice."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.info("Config file missing at %s; using defaults.", path)
        return MonitorConfig(), None
    except OSError as exc:
        logger.warning("Failed to read config file %s: %s; using defaults.", path, exc)
        return (
            MonitorConfig(),
            "Configuration was reset to defaults.\n"
            "Likely cause: config file is unreadable due to permissions or IO issues.\n"
            f"Next step: verify access to '{path}' and restart.",
        )

    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Config file at %s is invalid JSON; using defaults.", path)
        return (
            MonitorConfig(),
            "Configuration was reset to defaults.\n"
            "Likely cause: config file is not valid JSON.\n"
            f"Next step: repair '{path}' and restart.",
        )

    if not isinstance(data, dict):
        logger.warning("Config file at %s is not a JSON object; using defaults.", path)
        return (
            MonitorConfig(),
            "Configuration was reset to defaults.\n"
            "Likely cause: config file must hold a JSON object of options.\n"
            f"Next step: fix '{path}' and restart.",
        )

    return merge_config(MonitorConfig(), data), None


def load_config(path: Path) -> MonitorConfig:
    """Load configuration from disk, falling back to defaults."""
    config, _notice = load_config_with_notice(path)
    return config
