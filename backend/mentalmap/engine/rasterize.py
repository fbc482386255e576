"""Grid rasterizer — overlap counts and cell ownership from rings and points.

Every polygon only scans the cells inside its own bounding box. A cell is hit
when its lower-left corner is inside the ring (even-odd rule). Points go
straight to the nearest key. The polygon loop yields to the event loop every
``batch_size`` rings and checks for cancellation at each yield.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Callable

import numpy as np

from mentalmap.engine.context import OWNER_EMPTY, OWNER_MULTIPLE, Grid, PointData, RingData
from mentalmap.errors import HeatmapCancelled
from mentalmap.utils.geometry import points_in_ring, union_bbox

logger = logging.getLogger(__name__)

# Default number of polygons between two cooperative yields
DEFAULT_BATCH_SIZE = 50

# Boxes larger than this in either axis get an "area too large" warning
DEFAULT_AREA_WARNING_DEG = 15.0


def geometry_bbox(
    rings: list[RingData], points: list[PointData]
) -> tuple[float, float, float, float] | None:
    """Union (min_lng, min_lat, max_lng, max_lat) over ring vertices and points."""
    boxes = [r.bbox for r in rings]
    boxes.extend((p.lng, p.lat, p.lng, p.lat) for p in points)
    return union_bbox(boxes)


def allocate_grid(
    bbox: tuple[float, float, float, float] | None,
    cell_size: float,
    area_warning_deg: float = DEFAULT_AREA_WARNING_DEG,
) -> Grid:
    """Zero-filled grid covering ``bbox``; a zero-size grid when bbox is None."""
    if bbox is None:
        return Grid.empty(cell_size)

    min_lng, min_lat, max_lng, max_lat = bbox
    too_large = (max_lat - min_lat) > area_warning_deg or (max_lng - min_lng) > area_warning_deg
    if too_large:
        logger.warning(
            "Area too large for heatmap: %.2f° x %.2f° (limit %.1f°)",
            max_lat - min_lat,
            max_lng - min_lng,
            area_warning_deg,
        )

    min_lat_key = math.floor(min_lat / cell_size)
    max_lat_key = math.ceil(max_lat / cell_size)
    min_lng_key = math.floor(min_lng / cell_size)
    max_lng_key = math.ceil(max_lng / cell_size)

    height = max_lat_key - min_lat_key + 1
    width = max_lng_key - min_lng_key + 1

    return Grid(
        width=width,
        height=height,
        min_lat_key=min_lat_key,
        min_lng_key=min_lng_key,
        cell_size=cell_size,
        counts=np.zeros((height, width), dtype=np.float64),
        owner=np.full((height, width), OWNER_EMPTY, dtype=np.int64),
        area_too_large=too_large,
    )


def _mark(grid: Grid, rows: np.ndarray, cols: np.ndarray, feature_index: int) -> None:
    """Increment counts and update ownership for the hit cells."""
    owners = grid.owner[rows, cols]
    grid.owner[rows, cols] = np.where(
        owners == OWNER_EMPTY,
        feature_index,
        np.where(owners == feature_index, feature_index, OWNER_MULTIPLE),
    )
    np.add.at(grid.counts, (rows, cols), 1.0)


def rasterize_ring(grid: Grid, ring: RingData) -> int:
    """Burn one ring into the grid. Returns the number of cells hit."""
    size = grid.cell_size
    min_lng, min_lat, max_lng, max_lat = ring.bbox

    max_lat_key = grid.min_lat_key + grid.height - 1
    max_lng_key = grid.min_lng_key + grid.width - 1
    start_lat = max(grid.min_lat_key, math.floor(min_lat / size))
    end_lat = min(max_lat_key, math.ceil(max_lat / size))
    start_lng = max(grid.min_lng_key, math.floor(min_lng / size))
    end_lng = min(max_lng_key, math.ceil(max_lng / size))
    if start_lat > end_lat or start_lng > end_lng:
        return 0

    lat_keys = np.arange(start_lat, end_lat + 1)
    lng_keys = np.arange(start_lng, end_lng + 1)
    lng_grid, lat_grid = np.meshgrid(lng_keys, lat_keys)

    # Lower-left corner of each candidate cell
    inside = points_in_ring(lng_grid * size, lat_grid * size, ring.coords)
    if not np.any(inside):
        return 0

    rows = lat_grid[inside] - grid.min_lat_key
    cols = lng_grid[inside] - grid.min_lng_key
    _mark(grid, rows, cols, ring.feature_index)
    return int(rows.size)


def rasterize_point(grid: Grid, point: PointData) -> bool:
    """Nearest-key hit for a point; False when it falls outside the grid."""
    size = grid.cell_size
    # Half-up rounding, not banker's rounding
    row = math.floor(point.lat / size + 0.5) - grid.min_lat_key
    col = math.floor(point.lng / size + 0.5) - grid.min_lng_key
    if not grid.in_bounds(row, col):
        return False
    _mark(grid, np.array([row]), np.array([col]), point.feature_index)
    return True


async def rasterize(
    rings: list[RingData],
    points: list[PointData],
    cell_size: float,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    area_warning_deg: float = DEFAULT_AREA_WARNING_DEG,
    is_cancelled: Callable[[], bool] | None = None,
    on_progress: Callable[[float], None] | None = None,
) -> Grid:
    """Build the overlap grid, yielding to the event loop between batches.

    Raises HeatmapCancelled if ``is_cancelled`` turns true at a yield point.
    """
    cancelled = is_cancelled or (lambda: False)

    grid = allocate_grid(geometry_bbox(rings, points), cell_size, area_warning_deg)
    if grid.is_empty:
        return grid

    total = len(rings)
    for processed, ring in enumerate(rings, start=1):
        rasterize_ring(grid, ring)
        if processed % batch_size == 0:
            if on_progress is not None:
                on_progress(processed / total)
            await asyncio.sleep(0)
            if cancelled():
                raise HeatmapCancelled(f"rasterization cancelled after {processed}/{total} polygons")

    for point in points:
        rasterize_point(grid, point)

    logger.debug(
        "Rasterized %d ring(s), %d point(s) onto %dx%d grid (%.2f°)",
        len(rings),
        len(points),
        grid.height,
        grid.width,
        cell_size,
    )
    return grid


def rasterize_sync(
    rings: list[RingData],
    points: list[PointData],
    cell_size: float,
    area_warning_deg: float = DEFAULT_AREA_WARNING_DEG,
) -> Grid:
    """Blocking variant for callers without an event loop (scripts, tests)."""
    return asyncio.run(rasterize(rings, points, cell_size, area_warning_deg=area_warning_deg))
