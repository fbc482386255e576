"""Leaf-node geometry helpers. No engine imports."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray


def bbox(points: NDArray[np.float64]) -> tuple[float, float, float, float]:
    """Compute (xmin, ymin, xmax, ymax) bounding box."""
    if len(points) == 0:
        return (0.0, 0.0, 0.0, 0.0)
    return (
        float(np.min(points[:, 0])),
        float(np.min(points[:, 1])),
        float(np.max(points[:, 0])),
        float(np.max(points[:, 1])),
    )


def union_bbox(
    boxes: list[tuple[float, float, float, float]],
) -> tuple[float, float, float, float] | None:
    """Union of (xmin, ymin, xmax, ymax) boxes, None for an empty list."""
    if not boxes:
        return None
    arr = np.asarray(boxes, dtype=np.float64)
    return (
        float(np.min(arr[:, 0])),
        float(np.min(arr[:, 1])),
        float(np.max(arr[:, 2])),
        float(np.max(arr[:, 3])),
    )


def point_in_ring(point: tuple[float, float], ring: NDArray[np.float64]) -> bool:
    """Even-odd ray casting for a single (x, y) point."""
    x, y = point
    inside = False
    n = len(ring)
    j = n - 1
    for i in range(n):
        xi, yi = ring[i]
        xj, yj = ring[j]
        if (yi > y) != (yj > y) and x < (xj - xi) * (y - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def points_in_ring(
    xs: NDArray[np.float64],
    ys: NDArray[np.float64],
    ring: NDArray[np.float64],
) -> NDArray[np.bool_]:
    """Vectorized even-odd ray casting.

    Same rule as ``point_in_ring``, evaluated for every (xs[k], ys[k]) at once:
    a horizontal ray to +x toggles the state on each edge it crosses. Edges
    are walked (i, i-1) with wrap-around, so closed and open rings give the
    same answer.
    """
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    inside = np.zeros(xs.shape, dtype=bool)
    n = len(ring)
    if n < 3:
        return inside

    j = n - 1
    with np.errstate(divide="ignore", invalid="ignore"):
        for i in range(n):
            xi, yi = ring[i]
            xj, yj = ring[j]
            straddles = (yi > ys) != (yj > ys)
            if np.any(straddles):
                x_cross = (xj - xi) * (ys - yi) / (yj - yi) + xi
                inside ^= straddles & (xs < x_cross)
            j = i
    return inside
