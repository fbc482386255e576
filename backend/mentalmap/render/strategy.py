"""Renderer selection and swapping.

Fine grids go to the bitmap path, coarser grids to per-cell rectangles.
Any structural change (new grid, min overlap, blur switch) tears the old
renderer down completely before the new one is attached.
"""

from __future__ import annotations

import logging

from mentalmap.engine.config import HeatmapConfig
from mentalmap.engine.context import Grid
from mentalmap.render.base import HeatmapRenderer
from mentalmap.render.canvas import CanvasHeatmapRenderer
from mentalmap.render.surface import MapSurface
from mentalmap.render.vector import VectorHeatmapRenderer

logger = logging.getLogger(__name__)


def create_renderer(
    surface: MapSurface,
    grid: Grid,
    config: HeatmapConfig,
    max_value: float | None = None,
) -> HeatmapRenderer:
    if config.uses_canvas:
        return CanvasHeatmapRenderer(
            surface,
            grid,
            min_overlap=config.min_overlap,
            max_value=max_value,
            visual_blur=config.visual_blur,
            blur_radius=config.blur_radius_px,
        )
    return VectorHeatmapRenderer(surface, grid, min_overlap=config.min_overlap, max_value=max_value)


class RenderController:
    """Owns the one renderer currently attached to a surface."""

    def __init__(self, surface: MapSurface) -> None:
        self.surface = surface
        self.renderer: HeatmapRenderer | None = None

    def show(self, grid: Grid, config: HeatmapConfig, max_value: float | None = None) -> HeatmapRenderer:
        self.clear()
        renderer = create_renderer(self.surface, grid, config, max_value)
        renderer.attach()
        self.renderer = renderer
        logger.info(
            "Heatmap drawn via %s path: %d cell(s), grid %.2f°",
            renderer.kind,
            len(renderer.drawn_keys),
            grid.cell_size,
        )
        return renderer

    def clear(self) -> None:
        if self.renderer is not None:
            self.renderer.detach()
            self.renderer = None

    @property
    def kind(self) -> str | None:
        return self.renderer.kind if self.renderer is not None else None
