"""Renderer base with the shared cell qualification and intensity for both draw paths."""

from __future__ import annotations

import logging
from typing import Iterator

from mentalmap.engine.context import Grid
from mentalmap.render.surface import MapSurface

logger = logging.getLogger(__name__)


class HeatmapRenderer:
    """Draws one computed grid onto a map surface.

    Subclasses implement ``attach``/``detach``/``redraw``. Both paths use
    ``iter_active_cells`` so a cell qualifies identically on each.
    """

    kind = "base"

    def __init__(
        self,
        surface: MapSurface,
        grid: Grid,
        *,
        min_overlap: float = 0,
        max_value: float | None = None,
    ) -> None:
        self.surface = surface
        self.grid = grid
        self.min_overlap = min_overlap
        # Intensity denominator; the pipeline summary when given
        self.max_value = grid.max_value if max_value is None else max_value
        self.attached = False
        # (lat_key, lng_key) of every cell drawn by the last redraw
        self.drawn_keys: set[tuple[int, int]] = set()

    def intensity(self, value: float) -> float:
        if self.max_value <= 0:
            return 0.0
        return value / self.max_value

    def iter_active_cells(
        self,
        row_range: tuple[int, int] | None = None,
        col_range: tuple[int, int] | None = None,
    ) -> Iterator[tuple[int, int, float]]:
        """(row, col, value) of every active cell, optionally restricted to half-open ranges."""
        grid = self.grid
        if grid.is_empty:
            return
        r0, r1 = row_range or (0, grid.height)
        c0, c1 = col_range or (0, grid.width)
        r0, c0 = max(0, r0), max(0, c0)
        r1, c1 = min(grid.height, r1), min(grid.width, c1)
        if r0 >= r1 or c0 >= c1:
            return

        window = grid.values[r0:r1, c0:c1]
        mask = grid.active_mask(self.min_overlap)[r0:r1, c0:c1]
        for dr, dc in zip(*mask.nonzero()):
            yield r0 + int(dr), c0 + int(dc), float(window[dr, dc])

    def attach(self) -> None:
        raise NotImplementedError

    def detach(self) -> None:
        raise NotImplementedError

    def redraw(self) -> None:
        raise NotImplementedError
