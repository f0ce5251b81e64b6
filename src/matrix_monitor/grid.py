"""Static grid topology: columns of cells plus per-cell update bookkeeping."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .scheduling import TaskHandle

if TYPE_CHECKING:
    from .config import MonitorConfig
    from .renderers.base import Renderer

logger = logging.getLogger(__name__)


class SurfaceNotFoundError(LookupError):
    """Raised when the renderer cannot resolve the configured render target."""


@dataclass
class UpdateState:
    """Pending-update bookkeeping for a single cell."""

    timer: TaskHandle | None = None
    delay: int | None = None
    progression: int | None = None
    next_glyph: str | None = None
    is_displayed: bool = False

    @property
    def has_pending_update(self) -> bool:
        return self.timer is not None


@dataclass(eq=False)
class Cell:
    row_index: int
    column_index: int
    column: Column = field(repr=False)
    update: UpdateState = field(default_factory=UpdateState, repr=False)

    @property
    def next_cell(self) -> Cell | None:
        cells = self.column.cells
        next_row = self.row_index + 1
        return cells[next_row] if next_row < len(cells) else None

    def iter_from(self) -> Iterator[Cell]:
        """Yield this cell and every cell below it in the same column."""
        cell: Cell | None = self
        while cell is not None:
            yield cell
            cell = cell.next_cell


@dataclass(eq=False)
class Column:
    index: int
    cells: list[Cell] = field(default_factory=list, repr=False)

    @property
    def top_cell(self) -> Cell | None:
        return self.cells[0] if self.cells else None

    def add_cell(self) -> Cell:
        cell = Cell(row_index=len(self.cells), column_index=self.index, column=self)
        self.cells.append(cell)
        return cell


@dataclass
class Grid:
    """Ordered columns plus flattened cell and top-cell views."""

    columns: list[Column] = field(default_factory=list)
    cells: list[Cell] = field(default_factory=list)
    top_cells: list[Cell] = field(default_factory=list)

    def add_column(self) -> Column:
        column = Column(index=len(self.columns))
        self.columns.append(column)
        return column

    def add_cell(self, column: Column) -> Cell:
        cell = column.add_cell()
        self.cells.append(cell)
        if cell.row_index == 0:
            self.top_cells.append(cell)
        return cell

    @property
    def column_count(self) -> int:
        return len(self.columns)

    @property
    def row_count(self) -> int:
        return len(self.columns[0].cells) if self.columns else 0


def build_grid(renderer: Renderer, target_id: str, config: MonitorConfig) -> Grid:
    """Ask the renderer for the target surface and fill it with cells.

    Raises `SurfaceNotFoundError` when the target cannot be resolved.
    """
    size = renderer.prepare_surface(target_id)
    if size is None:
        raise SurfaceNotFoundError(f"Cannot find render surface (id: {target_id})")
    width, height = size
    padding_left = max(0, config.padding_left)
    padding_top = max(0, config.padding_top)
    column_step = max(1, config.cell_width + config.horizontal_spacing)
    row_step = max(1, config.cell_height + config.vertical_spacing)

    rows = range(padding_top, max(padding_top, height), row_step)
    # A column needs at least one cell to have a top cell.
    xs = range(padding_left, max(padding_left, width), column_step) if rows else ()
    grid = Grid()
    for x in xs:
        column = grid.add_column()
        renderer.add_column(column, x)
        for y in rows:
            cell = grid.add_cell(column)
            renderer.add_cell(cell, x, y)

    logger.info(
        "Grid built",
        extra={
            "event": "grid_built",
            "target_id": target_id,
            "columns": grid.column_count,
            "rows": grid.row_count,
        },
    )
    return grid
