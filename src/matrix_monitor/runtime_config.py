"""Runtime configuration normalization helpers.

These helpers keep CLI flag interpretation deterministic.
"""

from __future__ import annotations

from typing import Any

THEMES = ("green", "blue", "red")
_THEME_COLORS = {
    "green": {"font_color": "#91F490", "faded_font_color": "#01A400"},
    "blue": {"font_color": "#D2F0FF", "faded_font_color": "#00B4FF"},
    "red": {"font_color": "#FFDCDC", "faded_font_color": "#FF4B4B"},
}


def resolve_log_level(*, verbose: bool, quiet: bool) -> str:
    """Resolve effective log level from CLI flags.

    Precedence is deterministic: --quiet overrides --verbose.
    """
    if quiet:
        return "WARNING"
    if verbose:
        return "DEBUG"
    return "INFO"


def normalize_theme(value: str) -> str:
    """Normalize a theme name, falling back to green."""
    normalized = value.strip().lower()
    if normalized in THEMES:
        return normalized
    return "green"


def theme_overrides(theme: str) -> dict[str, Any]:
    """Return configuration overrides for a color theme."""
    return dict(_THEME_COLORS[normalize_theme(theme)])
