"""Renderer collaborator contract consumed by the monitor core.

The core never performs layout. It asks a renderer to size and populate a
surface, then hands it per-cell transitions to apply.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, Protocol

if TYPE_CHECKING:
    from matrix_monitor.grid import Cell, Column

TransitionPhase = Literal["appear", "fade", "delete"]


@dataclass(frozen=True)
class CellTransition:
    """Visual state a cell should transition to, and how fast."""

    phase: TransitionPhase
    color: str
    opacity: float
    delay_ms: int
    duration_ms: int


class Renderer(Protocol):
    """Protocol every render surface implementation must satisfy."""

    def prepare_surface(self, target_id: str) -> tuple[int, int] | None:
        """Clear the target and return its usable (width, height), or None."""
        ...

    def add_column(self, column: Column, x: int) -> None: ...
    def add_cell(self, cell: Cell, x: int, y: int) -> None: ...

    def apply_transition(
        self, cell: Cell, glyph: str | None, transition: CellTransition
    ) -> None:
        """Apply `transition`; `glyph` is None when the text is unchanged."""
        ...
