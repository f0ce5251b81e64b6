"""Droplet cascade generation and the per-cell paint entry point.

A droplet is one top-to-bottom chain of scheduled cell updates sharing a
single random progression (the delay step between consecutive rows).
"""

from __future__ import annotations

import random
from collections.abc import Callable, Sequence

from .charsource import CharacterSource, random_between
from .config import MonitorConfig
from .grid import Cell
from .renderers.base import CellTransition, Renderer
from .scheduling import Scheduler

FADE_GRACE_MS = 200
_BLANK_GLYPHS = ("", " ")


class CellPainter:
    """Hands glyph changes to the renderer and queues the follow-up fade."""

    def __init__(
        self,
        renderer: Renderer,
        scheduler: Scheduler,
        config_provider: Callable[[], MonitorConfig],
    ) -> None:
        self._renderer = renderer
        self._scheduler = scheduler
        self._config_provider = config_provider

    def paint(self, cell: Cell, glyph: str) -> None:
        """Show `glyph` on `cell`, fading it out after a short grace interval.

        Blank glyphs use the delete transition and a faster fade.
        """
        config = self._config_provider()
        if glyph in _BLANK_GLYPHS:
            first = CellTransition(
                phase="delete",
                color=config.font_color,
                opacity=config.deleted_opacity,
                delay_ms=0,
                duration_ms=config.delete_duration,
            )
            fade = CellTransition(
                phase="fade",
                color=config.faded_font_color,
                opacity=config.deleted_opacity,
                delay_ms=0,
                duration_ms=config.delete_fading_duration,
            )
        else:
            first = CellTransition(
                phase="appear",
                color=config.font_color,
                opacity=1.0,
                delay_ms=0,
                duration_ms=config.appear_duration,
            )
            fade = CellTransition(
                phase="fade",
                color=config.faded_font_color,
                opacity=config.faded_opacity,
                delay_ms=config.fade_delay,
                duration_ms=config.fading_duration,
            )
        self._renderer.apply_transition(cell, glyph, first)
        self._scheduler.schedule(
            FADE_GRACE_MS, self._renderer.apply_transition, cell, None, fade
        )


class DropletCascade:
    """Schedules droplets down a column and fires their cell updates."""

    def __init__(
        self,
        scheduler: Scheduler,
        char_source: CharacterSource,
        painter: CellPainter,
        config_provider: Callable[[], MonitorConfig],
        rng: random.Random | None = None,
    ) -> None:
        self._scheduler = scheduler
        self._char_source = char_source
        self._painter = painter
        self._config_provider = config_provider
        self._random = rng or random.Random()

    def create_droplet(
        self,
        top_cell: Cell,
        *,
        clear_screen: bool = False,
        char_list: Sequence[str | None] | None = None,
    ) -> int:
        """Schedule one update per cell from `top_cell` down.

        Entries of `char_list` override random sampling by row position;
        `None` or a missing entry means "sample", while `""` is an explicit
        blank. Returns the chosen progression.
        """
        config = self._config_provider()
        progression = random_between(
            self._random, config.min_char_progression, config.max_char_progression
        )
        overrides = char_list or ()
        delay = 0
        previous: str | None = None
        for position, cell in enumerate(top_cell.iter_from()):
            if clear_screen:
                glyph = ""
            else:
                supplied = overrides[position] if position < len(overrides) else None
                glyph = (
                    supplied
                    if supplied is not None
                    else self._char_source.sample(exclude=previous)
                )
            previous = glyph
            self.schedule_update(cell, glyph, delay=delay, progression=progression)
            delay += progression
        return progression

    def schedule_update(
        self, cell: Cell, glyph: str, *, delay: int, progression: int
    ) -> None:
        """Replace the cell's pending update with a new one after `delay`."""
        update = cell.update
        self._scheduler.cancel(update.timer)
        update.timer = self._scheduler.schedule(delay, self._fire_update, cell)
        update.delay = delay
        update.progression = progression
        update.next_glyph = glyph
        update.is_displayed = False

    def reschedule(self, cell: Cell, delay: int) -> None:
        """Re-arm a cell's recorded update without touching its bookkeeping."""
        update = cell.update
        self._scheduler.cancel(update.timer)
        update.timer = self._scheduler.schedule(delay, self._fire_update, cell)
        update.delay = delay

    def _fire_update(self, cell: Cell) -> None:
        update = cell.update
        update.timer = None
        glyph = update.next_glyph if update.next_glyph is not None else ""
        self._painter.paint(cell, glyph)
        update.is_displayed = True
