"""Stuck characters: a few cells keep re-showing the same glyph."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from matrix_monitor.config import int_or_default
from matrix_monitor.grid import Cell
from matrix_monitor.scheduling import TaskHandle

from .base import GlitchContext, option_ms


def stuck(context: GlitchContext, options: Mapping[str, Any]) -> None:
    """Pin `count` random cells to one glyph each while droplets stop spawning.

    Options: `delay` (0), `duration` (3000), `interval` (250), `count` (6) and
    `glyph` (a fixed glyph for every stuck cell; random per cell if absent).
    """
    scheduler = context.scheduler
    rng = context.rng
    delay = option_ms(options, "delay", 0)
    duration = option_ms(options, "duration", 3000)
    interval = max(1, option_ms(options, "interval", 250))
    count = max(0, int_or_default(options.get("count"), 6))
    fixed_glyph = options.get("glyph")
    alphabet = context.config.alphabet
    pinned: list[tuple[Cell, str]] = []

    def repaint() -> None:
        for cell, glyph in pinned:
            context.update_cell(cell, glyph)

    def finish(cycle: TaskHandle) -> None:
        scheduler.cancel(cycle)
        context.monitor.resume(only_top_cells=True)

    def begin() -> None:
        context.monitor.pause(only_top_cells=True, all_at_once=True)
        for cell in rng.sample(list(context.cells), min(count, len(context.cells))):
            glyph = (
                fixed_glyph
                if isinstance(fixed_glyph, str) and fixed_glyph
                else rng.choice(alphabet)
            )
            pinned.append((cell, glyph))
        repaint()
        cycle = scheduler.schedule_repeating(interval, repaint)
        scheduler.schedule(duration, finish, cycle)

    scheduler.schedule(delay, begin)
