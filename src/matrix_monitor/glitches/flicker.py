"""Global flicker: random cells blink glyphs on and off for a short window."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from matrix_monitor.config import float_or_default
from matrix_monitor.scheduling import TaskHandle

from .base import GlitchContext, option_ms


def flicker(context: GlitchContext, options: Mapping[str, Any]) -> None:
    """Freeze the rain and flash a random share of cells every interval.

    Options: `delay` (0), `duration` (1500), `interval` (80) and `density`
    (0.15, share of cells touched per flash).
    """
    scheduler = context.scheduler
    rng = context.rng
    delay = option_ms(options, "delay", 0)
    duration = option_ms(options, "duration", 1500)
    interval = max(1, option_ms(options, "interval", 80))
    density = min(1.0, max(0.0, float_or_default(options.get("density"), 0.15)))
    alphabet = context.config.alphabet

    def flash() -> None:
        for cell in context.cells:
            if rng.random() >= density:
                continue
            glyph = rng.choice(alphabet) if rng.random() < 0.5 else ""
            context.update_cell(cell, glyph)

    def finish(cycle: TaskHandle) -> None:
        scheduler.cancel(cycle)
        context.monitor.resume()

    def begin() -> None:
        context.monitor.pause(all_at_once=True)
        flash()
        cycle = scheduler.schedule_repeating(interval, flash)
        scheduler.schedule(duration, finish, cycle)

    scheduler.schedule(delay, begin)
