"""One cascade cycle: spawn a droplet per column at a random start delay."""

from __future__ import annotations

import random
from collections.abc import Callable, Collection, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from .cascade import DropletCascade
from .charsource import random_between
from .config import MonitorConfig
from .grid import Grid
from .scheduling import Scheduler, TaskHandle

CharTable = Sequence[Any]


def transpose_char_table(char_table: CharTable | None) -> dict[int, list[str | None]]:
    """Turn row-major glyph rows into per-column glyph lists.

    Rows that are not lists/tuples are skipped; their row index stays a gap
    (`None`) in every column list.
    """
    by_column: dict[int, list[str | None]] = {}
    if not char_table:
        return by_column
    row_count = len(char_table)
    for row_index, row in enumerate(char_table):
        if not isinstance(row, (list, tuple)):
            continue
        for column_index, glyph in enumerate(row):
            column = by_column.get(column_index)
            if column is None:
                column = by_column[column_index] = [None] * row_count
            column[row_index] = glyph
    return by_column


@dataclass(eq=False)
class _DropletStart:
    column_index: int
    clear_screen: bool
    char_list: Sequence[str | None] | None
    handle: TaskHandle | None = None


class MainLoop:
    """Spawns droplets per column and tracks every start still pending.

    Invocations are independent: a run never cancels the starts left by an
    earlier run, so several starts may be pending for one column.
    """

    def __init__(
        self,
        grid_provider: Callable[[], Grid],
        scheduler: Scheduler,
        cascade: DropletCascade,
        config_provider: Callable[[], MonitorConfig],
        rng: random.Random | None = None,
    ) -> None:
        self._grid_provider = grid_provider
        self._scheduler = scheduler
        self._cascade = cascade
        self._config_provider = config_provider
        self._random = rng or random.Random()
        self._starts: dict[int, list[_DropletStart]] = {}

    def run(
        self,
        *,
        clear_screen: bool = False,
        char_table: CharTable | None = None,
        ignore_columns: Collection[int] = (),
    ) -> int:
        """Schedule one droplet start per non-ignored column.

        Returns the number of droplets scheduled.
        """
        config = self._config_provider()
        by_column = {} if clear_screen else transpose_char_table(char_table)
        ignored = set(ignore_columns)
        scheduled = 0
        for top_cell in self._grid_provider().top_cells:
            column_index = top_cell.column_index
            if column_index in ignored:
                continue
            delay = random_between(
                self._random, config.min_char_start_delay, config.max_char_start_delay
            )
            self.schedule_droplet(
                column_index,
                delay,
                clear_screen=clear_screen,
                char_list=by_column.get(column_index),
            )
            scheduled += 1
        return scheduled

    def schedule_droplet(
        self,
        column_index: int,
        delay: int,
        *,
        clear_screen: bool = False,
        char_list: Sequence[str | None] | None = None,
    ) -> TaskHandle:
        start = _DropletStart(column_index, clear_screen, char_list)
        start.handle = self._scheduler.schedule(delay, self._start_droplet, start)
        self._starts.setdefault(column_index, []).append(start)
        return start.handle

    def pending_starts(self, column_index: int | None = None) -> list[TaskHandle]:
        """Handles of droplet starts that have neither fired nor been cancelled."""
        if column_index is None:
            starts = [start for column in self._starts.values() for start in column]
        else:
            starts = self._starts.get(column_index, [])
        return [start.handle for start in starts if start.handle is not None]

    def cancel_start(self, handle: TaskHandle) -> None:
        self._scheduler.cancel(handle)
        for column_index, starts in list(self._starts.items()):
            remaining = [start for start in starts if start.handle is not handle]
            if len(remaining) != len(starts):
                self._set_column(column_index, remaining)
                return

    def cancel_starts(self, column_indexes: Iterable[int] | None = None) -> None:
        """Cancel pending starts for the given columns, or for every column."""
        targets = list(self._starts) if column_indexes is None else column_indexes
        for column_index in targets:
            for start in self._starts.pop(column_index, []):
                self._scheduler.cancel(start.handle)

    def _set_column(self, column_index: int, starts: list[_DropletStart]) -> None:
        if starts:
            self._starts[column_index] = starts
        else:
            self._starts.pop(column_index, None)

    def _start_droplet(self, start: _DropletStart) -> None:
        column_index = start.column_index
        remaining = [
            other for other in self._starts.get(column_index, []) if other is not start
        ]
        self._set_column(column_index, remaining)
        top_cell = self._grid_provider().top_cells[column_index]
        self._cascade.create_droplet(
            top_cell, clear_screen=start.clear_screen, char_list=start.char_list
        )
