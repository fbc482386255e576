"""Heatmap stages: normalize → rasterize → smooth → summary.

Importing this module registers the stages with the global registry.
"""

from __future__ import annotations

import logging

from mentalmap.engine.context import Grid, HeatmapContext
from mentalmap.engine.normalize import normalize_features
from mentalmap.engine.rasterize import geometry_bbox, rasterize
from mentalmap.engine.registry import Phase, stage
from mentalmap.engine.smoothing import smooth

logger = logging.getLogger(__name__)

# Progress band covered by the polygon loop
_RASTER_PROGRESS_START = 30.0
_RASTER_PROGRESS_SPAN = 40.0


@stage(
    id="H0.normalize",
    phase=Phase.NORMALIZATION,
    progress=10,
    message="Analysiere Geometrien...",
    description="Extract outer rings and points from feature geometry",
)
def normalize(ctx: HeatmapContext) -> None:
    ctx.rings, ctx.points, ctx.dropped_features = normalize_features(ctx.features)
    ctx.bbox = geometry_bbox(ctx.rings, ctx.points)


@stage(
    id="H1.rasterize",
    phase=Phase.RASTERIZATION,
    dependencies=["H0.normalize"],
    progress=_RASTER_PROGRESS_START,
    message="Berechne Raster...",
    description="Count polygon and point overlaps per grid cell",
)
async def rasterize_grid(ctx: HeatmapContext) -> None:
    cfg = ctx.config
    if not ctx.has_geometry:
        ctx.grid = Grid.empty(cfg.cell_size)
        return

    def _on_progress(fraction: float) -> None:
        ctx.report(_RASTER_PROGRESS_START + round(fraction * _RASTER_PROGRESS_SPAN), "Berechne Raster...")

    ctx.grid = await rasterize(
        ctx.rings,
        ctx.points,
        cfg.cell_size,
        batch_size=cfg.yield_batch_size,
        area_warning_deg=cfg.area_warning_degrees,
        is_cancelled=ctx.is_cancelled,
        on_progress=_on_progress,
    )


@stage(
    id="H2.smooth",
    phase=Phase.SMOOTHING,
    dependencies=["H1.rasterize"],
    progress=70,
    message="Glätte Daten...",
    description="3x3 moving average over raw counts",
)
def smooth_grid(ctx: HeatmapContext) -> None:
    if ctx.grid is None or ctx.grid.is_empty:
        return
    ctx.grid.smoothed = smooth(ctx.grid.counts)


@stage(
    id="H3.summary",
    phase=Phase.SUMMARY,
    dependencies=["H1.rasterize"],
    progress=90,
    message="Rendere Karte...",
    description="Maximum value for intensity normalization",
)
def summarize(ctx: HeatmapContext) -> None:
    ctx.max_count = ctx.grid.max_value if ctx.grid is not None else 0.0
