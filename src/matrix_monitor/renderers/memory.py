"""In-memory renderer for headless runs and deterministic testing."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .base import CellTransition, TransitionPhase

if TYPE_CHECKING:
    from matrix_monitor.grid import Cell, Column


@dataclass
class _CellSurface:
    x: int
    y: int
    glyph: str = ""
    phase: TransitionPhase | None = None
    color: str | None = None
    opacity: float = 0.0


@dataclass
class TransitionRecord:
    column_index: int
    row_index: int
    glyph: str | None
    transition: CellTransition


@dataclass
class MemoryRenderer:
    """Keeps named surfaces and the visual state of every built cell.

    `surfaces` maps target ids to their (width, height). Unknown ids resolve
    to None, mirroring a missing render target.
    """

    surfaces: dict[str, tuple[int, int]] = field(default_factory=dict)
    column_offsets: list[int] = field(default_factory=list)
    transitions: list[TransitionRecord] = field(default_factory=list)
    _cells: dict[tuple[int, int], _CellSurface] = field(default_factory=dict)
    _active_target: str | None = None

    def prepare_surface(self, target_id: str) -> tuple[int, int] | None:
        size = self.surfaces.get(target_id)
        if size is None:
            return None
        self._active_target = target_id
        self.column_offsets.clear()
        self.transitions.clear()
        self._cells.clear()
        return size

    def add_column(self, column: Column, x: int) -> None:
        self.column_offsets.append(x)

    def add_cell(self, cell: Cell, x: int, y: int) -> None:
        self._cells[(cell.column_index, cell.row_index)] = _CellSurface(x=x, y=y)

    def apply_transition(
        self, cell: Cell, glyph: str | None, transition: CellTransition
    ) -> None:
        surface = self._cells.get((cell.column_index, cell.row_index))
        if surface is None:
            # Late fade for a cell from a grid that has since been rebuilt.
            return
        if glyph is not None:
            surface.glyph = glyph
        surface.phase = transition.phase
        surface.color = transition.color
        surface.opacity = transition.opacity
        self.transitions.append(
            TransitionRecord(cell.column_index, cell.row_index, glyph, transition)
        )

    @property
    def cell_count(self) -> int:
        return len(self._cells)

    def glyph_at(self, column_index: int, row_index: int) -> str:
        return self._cells[(column_index, row_index)].glyph

    def phase_at(self, column_index: int, row_index: int) -> TransitionPhase | None:
        return self._cells[(column_index, row_index)].phase

    def snapshot(self, blank: str = " ") -> str:
        """Render current glyphs as text, one line per grid row."""
        if not self._cells:
            return ""
        columns = 1 + max(col for col, _row in self._cells)
        rows = 1 + max(row for _col, row in self._cells)
        lines: list[str] = []
        for row in range(rows):
            chars: list[str] = []
            for col in range(columns):
                surface = self._cells.get((col, row))
                glyph = surface.glyph if surface is not None else ""
                chars.append(glyph[:1] if glyph.strip() else blank)
            lines.append("".join(chars))
        return "\n".join(lines)
