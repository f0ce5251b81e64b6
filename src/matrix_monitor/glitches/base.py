"""Glitch effect plugin contract and the context handed to effects.

The monitor only defers the call and passes this context; the effect owns its
own scheduling and must pause/resume the monitor around its window.
"""

from __future__ import annotations

import random
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from matrix_monitor.config import MonitorConfig, int_or_default
from matrix_monitor.grid import Cell, Column
from matrix_monitor.scheduling import Scheduler

if TYPE_CHECKING:
    from matrix_monitor.monitor import MatrixMonitor


@dataclass(frozen=True)
class GlitchContext:
    """Live internals of one monitor instance."""

    monitor: MatrixMonitor
    columns: Sequence[Column]
    cells: Sequence[Cell]
    top_cells: Sequence[Cell]
    config: MonitorConfig
    update_cell: Callable[[Cell, str], None]
    scheduler: Scheduler
    rng: random.Random


class GlitchEffect(Protocol):
    def __call__(self, context: GlitchContext, options: Mapping[str, Any]) -> None: ...


def option_ms(options: Mapping[str, Any], name: str, default: int) -> int:
    """Read a non-negative millisecond option, falling back to `default`."""
    return max(0, int_or_default(options.get(name), default))
