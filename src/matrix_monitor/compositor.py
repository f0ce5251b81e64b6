"""Compose ascii images into margin-aligned override tables.

Table entries are glyph strings or `None`. `None` is the absent marker: that
position stays under normal random control. Padding entries hold the padding
glyph and actively override whatever the rain would have shown.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Union

from textual.geometry import Spacing

logger = logging.getLogger(__name__)

EdgesValue = Union[int, tuple[int, ...], Spacing]
_FORMAT_MESSAGE = (
    "ASCII image must be a string or a multidimensional array of rows by columns"
)


class ImageFormatError(TypeError):
    """Raised when an image is neither text nor a matrix of glyph rows."""


@dataclass(frozen=True)
class ComposedImage:
    """Override table plus where the image itself sits inside it."""

    table: list[list[str | None]]
    image_left: int
    image_top: int
    image_width: int
    image_height: int

    @property
    def width(self) -> int:
        return len(self.table[0]) if self.table else 0

    @property
    def height(self) -> int:
        return len(self.table)

    @property
    def image_columns(self) -> range:
        return range(self.image_left, self.image_left + self.image_width)


def normalize_image(image: Any) -> list[list[str]]:
    """Return the image as a list of glyph rows.

    Strings are split on newlines into single-character rows; matrices must be
    a non-empty list/tuple of list/tuple rows. Matrix entries become strings,
    with `None` read as an empty glyph.
    """
    if isinstance(image, str):
        return [list(row) for row in image.split("\n")]
    if not isinstance(image, (list, tuple)) or not image:
        raise ImageFormatError(_FORMAT_MESSAGE)
    rows: list[list[str]] = []
    for row in image:
        if not isinstance(row, (list, tuple)):
            raise ImageFormatError(_FORMAT_MESSAGE)
        rows.append([_glyph(entry) for entry in row])
    return rows


def _glyph(entry: Any) -> str:
    if entry is None:
        return ""
    return entry if isinstance(entry, str) else str(entry)


def resolve_edges(value: Any, default: int) -> Spacing:
    """Parse an int or 1/2/4-tuple into edges, falling back to `default`."""
    if isinstance(value, Spacing):
        return value
    if isinstance(value, bool) or not isinstance(value, (int, tuple, list)):
        return Spacing.all(default)
    try:
        edges = Spacing.unpack(value if isinstance(value, int) else tuple(value))
    except (ValueError, TypeError):
        logger.debug("Invalid edge specification %r; using %s", value, default)
        return Spacing.all(default)
    if min(edges) < 0:
        return Spacing.all(default)
    return edges


def compose_image(
    rows: Sequence[Sequence[str]],
    *,
    margins: EdgesValue = 2,
    paddings: EdgesValue = 1,
    padding_char: str = "",
) -> ComposedImage:
    """Surround the image with padding glyphs and absent-marker margins.

    Missing or empty glyphs inside the image's bounding box become
    `padding_char`.
    """
    margin = resolve_edges(margins, 2)
    padding = resolve_edges(paddings, 1)
    image_width = max((len(row) for row in rows), default=0)
    image_height = len(rows)
    inner_width = padding.left + image_width + padding.right
    total_width = margin.left + inner_width + margin.right

    left_margin: list[str | None] = [None] * margin.left
    right_margin: list[str | None] = [None] * margin.right
    table: list[list[str | None]] = []
    for _ in range(margin.top):
        table.append([None] * total_width)
    for _ in range(padding.top):
        table.append([*left_margin, *[padding_char] * inner_width, *right_margin])
    for row in rows:
        glyphs = [
            (row[index] or padding_char) if index < len(row) else padding_char
            for index in range(image_width)
        ]
        table.append(
            [
                *left_margin,
                *[padding_char] * padding.left,
                *glyphs,
                *[padding_char] * padding.right,
                *right_margin,
            ]
        )
    for _ in range(padding.bottom):
        table.append([*left_margin, *[padding_char] * inner_width, *right_margin])
    for _ in range(margin.bottom):
        table.append([None] * total_width)

    return ComposedImage(
        table=table,
        image_left=margin.left + padding.left,
        image_top=margin.top + padding.top,
        image_width=image_width,
        image_height=image_height,
    )
