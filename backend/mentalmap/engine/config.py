"""Heatmap configuration: grid resolution, smoothing and rendering switches."""

from __future__ import annotations

from dataclasses import dataclass

# Selectable cell sizes in degrees: fine, medium, coarse, very coarse.
GRID_SIZES: tuple[float, ...] = (0.05, 0.1, 0.25, 0.5)
DEFAULT_GRID_SIZE = 0.05

# Upper bound of the minimum-overlap input field.
MAX_MIN_OVERLAP = 50


@dataclass
class HeatmapConfig:
    """Controls one heatmap computation and how its result is drawn."""

    cell_size: float = DEFAULT_GRID_SIZE
    smoothing: bool = True
    visual_blur: bool = True
    min_overlap: int = 0

    # Cells finer than this are drawn as one bitmap instead of vector shapes.
    # 0.051 puts the finest setting (0.05) on the bitmap path.
    canvas_threshold: float = 0.051

    # Cooperative yield after this many polygons
    yield_batch_size: int = 50

    # Bounding boxes wider or taller than this (degrees) are logged as too large
    area_warning_degrees: float = 15.0

    # Blur radius (pixels) for the bitmap path when visual_blur is on
    blur_radius_px: float = 4.0

    @property
    def uses_canvas(self) -> bool:
        return self.cell_size < self.canvas_threshold

    @classmethod
    def from_settings(cls, settings, **overrides) -> HeatmapConfig:
        base = {
            "canvas_threshold": settings.canvas_threshold,
            "yield_batch_size": settings.yield_batch_size,
            "area_warning_degrees": settings.area_warning_degrees,
        }
        base.update(overrides)
        return cls(**base)
