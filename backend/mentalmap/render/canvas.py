"""Bitmap path — one viewport-sized RGBA image redrawn on every pan/zoom/resize.

Used for fine grids where one shape per cell would be too many objects.
Only cells whose corner lies within the visible bounds plus one cell margin
are projected and filled.
"""

from __future__ import annotations

import io
import logging
from typing import Any

import numpy as np
from PIL import Image, ImageDraw, ImageFilter

from mentalmap.engine.context import Grid
from mentalmap.render.base import HeatmapRenderer
from mentalmap.render.colors import cell_opacity, heat_color
from mentalmap.render.surface import MapSurface

logger = logging.getLogger(__name__)

REDRAW_EVENTS = ("move", "zoom", "resize")


def _visible_range(min_key: int, length: int, size: float, low: float, high: float) -> tuple[int, int]:
    """Half-open index range of keys whose coordinate lies in [low - size, high + size]."""
    coords = (min_key + np.arange(length)) * size
    hits = np.nonzero((coords >= low - size) & (coords <= high + size))[0]
    if hits.size == 0:
        return 0, 0
    return int(hits[0]), int(hits[-1]) + 1


class CanvasHeatmapRenderer(HeatmapRenderer):
    kind = "canvas"

    def __init__(
        self,
        surface: MapSurface,
        grid: Grid,
        *,
        min_overlap: float = 0,
        max_value: float | None = None,
        visual_blur: bool = True,
        blur_radius: float = 4.0,
    ) -> None:
        super().__init__(surface, grid, min_overlap=min_overlap, max_value=max_value)
        self.visual_blur = visual_blur
        self.blur_radius = blur_radius
        self.image: Image.Image | None = None
        self.redraw_count = 0

    def attach(self) -> None:
        if self.attached:
            return
        for event in REDRAW_EVENTS:
            self.surface.on(event, self._on_view_change)
        self.surface.add_layer(self)
        self.attached = True
        self.redraw()

    def detach(self) -> None:
        if not self.attached:
            return
        for event in REDRAW_EVENTS:
            self.surface.off(event, self._on_view_change)
        self.surface.remove_layer(self)
        self.attached = False
        self.image = None
        self.drawn_keys = set()

    def _on_view_change(self, _event: dict[str, Any]) -> None:
        self.redraw()

    def redraw(self) -> None:
        surface = self.surface
        grid = self.grid
        width, height = surface.size
        image = Image.new("RGBA", (max(1, width), max(1, height)), (0, 0, 0, 0))
        draw = ImageDraw.Draw(image, "RGBA")
        drawn: set[tuple[int, int]] = set()

        if not grid.is_empty:
            bounds = surface.get_bounds()
            size = grid.cell_size
            rows = _visible_range(grid.min_lat_key, grid.height, size, bounds.south, bounds.north)
            cols = _visible_range(grid.min_lng_key, grid.width, size, bounds.west, bounds.east)

            for r, c, value in self.iter_active_cells(rows, cols):
                south, west, north, east = grid.cell_bounds(r, c)
                x1, y1 = surface.lat_lng_to_container_point(south, west)
                x2, y2 = surface.lat_lng_to_container_point(north, east)
                w = abs(x2 - x1) + 1
                h = abs(y2 - y1) + 1
                x = min(x1, x2)
                y = min(y1, y2)

                i = self.intensity(value)
                cr, cg, cb, ca = heat_color(i)
                alpha = round(255 * ca * cell_opacity(i))
                draw.rectangle([x, y, x + w - 1, y + h - 1], fill=(cr, cg, cb, alpha))
                drawn.add(grid.cell_key(r, c))

        if self.visual_blur and self.blur_radius > 0 and drawn:
            image = image.filter(ImageFilter.GaussianBlur(self.blur_radius))

        self.image = image
        self.drawn_keys = drawn
        self.redraw_count += 1
        logger.debug("Canvas redraw #%d: %d cell(s) at zoom %.1f", self.redraw_count, len(drawn), surface.zoom)

    def to_png_bytes(self) -> bytes:
        if self.image is None:
            self.redraw()
        buf = io.BytesIO()
        self.image.save(buf, format="PNG")
        return buf.getvalue()
