"""Textual widget that renders monitor cells and animates their transitions."""

from __future__ import annotations

import time
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING

from rich.cells import cell_len
from rich.color import Color, ColorParseError, ColorTriplet, blend_rgb
from rich.style import Style
from rich.text import Text
from textual import events
from textual.app import App
from textual.css.query import NoMatches, WrongType
from textual.message import Message
from textual.widget import Widget

from matrix_monitor.renderers.base import CellTransition

if TYPE_CHECKING:
    from matrix_monitor.grid import Cell, Column

REFRESH_FPS = 20


@lru_cache(maxsize=64)
def parse_rgb(value: str) -> ColorTriplet:
    """Parse a color string to RGB, treating unknown colors as white."""
    try:
        return Color.parse(value).get_truecolor()
    except ColorParseError:
        return ColorTriplet(255, 255, 255)


@dataclass
class _PaintedCell:
    x: int
    y: int
    glyph: str = ""
    from_rgb: ColorTriplet = ColorTriplet(0, 0, 0)
    to_rgb: ColorTriplet = ColorTriplet(0, 0, 0)
    from_opacity: float = 0.0
    to_opacity: float = 0.0
    starts_at: float = 0.0
    duration_s: float = 0.0

    def progress(self, now: float) -> float:
        if now <= self.starts_at:
            return 0.0
        if self.duration_s <= 0:
            return 1.0
        return min(1.0, (now - self.starts_at) / self.duration_s)

    def color_at(self, now: float) -> tuple[ColorTriplet, float]:
        ratio = self.progress(now)
        rgb = blend_rgb(self.from_rgb, self.to_rgb, ratio)
        opacity = self.from_opacity + (self.to_opacity - self.from_opacity) * ratio
        return rgb, opacity


class MatrixView(Widget):
    """Cell surface for one monitor; colors ease over transition durations."""

    DEFAULT_CSS = """
    MatrixView {
        width: 1fr;
        height: 1fr;
    }
    """

    def __init__(
        self,
        *,
        background_color: str = "#000000",
        bold: bool = True,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.surface_color = background_color
        self.bold_glyphs = bold
        self._cells: dict[tuple[int, int], _PaintedCell] = {}
        self._ready = False

    class Ready(Message):
        """Posted once, when the view first gets a usable size."""

        def __init__(self, view: MatrixView) -> None:
            super().__init__()
            self.view = view

    def on_mount(self) -> None:
        self.set_interval(1 / REFRESH_FPS, self.refresh)

    def on_resize(self, event: events.Resize) -> None:
        if self._ready or not (event.size.width and event.size.height):
            return
        self._ready = True
        self.post_message(self.Ready(self))

    def clear_cells(self) -> tuple[int, int]:
        """Drop every cell and return the usable (width, height)."""
        self._cells.clear()
        self.refresh()
        return self.size.width, self.size.height

    def add_cell(self, column_index: int, row_index: int, x: int, y: int) -> None:
        self._cells[(column_index, row_index)] = _PaintedCell(x=x, y=y)

    def transition_cell(
        self,
        column_index: int,
        row_index: int,
        glyph: str | None,
        transition: CellTransition,
    ) -> None:
        painted = self._cells.get((column_index, row_index))
        if painted is None:
            return
        now = time.monotonic()
        painted.from_rgb, painted.from_opacity = painted.color_at(now)
        if glyph is not None:
            painted.glyph = glyph
        painted.to_rgb = parse_rgb(transition.color)
        painted.to_opacity = transition.opacity
        painted.starts_at = now + transition.delay_ms / 1000.0
        painted.duration_s = transition.duration_ms / 1000.0

    def glyph_at(self, column_index: int, row_index: int) -> str:
        painted = self._cells.get((column_index, row_index))
        return painted.glyph if painted is not None else ""

    def render(self) -> Text:
        width, height = self.size.width, self.size.height
        background = parse_rgb(self.surface_color)
        now = time.monotonic()
        by_position: dict[tuple[int, int], _PaintedCell] = {
            (painted.x, painted.y): painted
            for painted in self._cells.values()
            if painted.glyph.strip()
        }
        text = Text(no_wrap=True, overflow="crop")
        for y in range(height):
            if y:
                text.append("\n")
            x = 0
            while x < width:
                painted = by_position.get((x, y))
                if painted is None:
                    text.append(" ")
                    x += 1
                    continue
                rgb, opacity = painted.color_at(now)
                shown = blend_rgb(background, rgb, max(0.0, min(1.0, opacity)))
                style = Style(color=Color.from_triplet(shown), bold=self.bold_glyphs)
                text.append(painted.glyph, style=style)
                x += max(1, cell_len(painted.glyph))
        return text


class TextualRenderer:
    """Renderer resolving targets as `MatrixView` widget ids inside an app."""

    def __init__(self, app: App) -> None:
        self._app = app
        self._view: MatrixView | None = None

    def prepare_surface(self, target_id: str) -> tuple[int, int] | None:
        try:
            view = self._app.query_one(f"#{target_id}", MatrixView)
        except (NoMatches, WrongType):
            return None
        self._view = view
        return view.clear_cells()

    def add_column(self, column: Column, x: int) -> None:
        return None

    def add_cell(self, cell: Cell, x: int, y: int) -> None:
        if self._view is not None:
            self._view.add_cell(cell.column_index, cell.row_index, x, y)

    def apply_transition(
        self, cell: Cell, glyph: str | None, transition: CellTransition
    ) -> None:
        if self._view is not None:
            self._view.transition_cell(
                cell.column_index, cell.row_index, glyph, transition
            )
