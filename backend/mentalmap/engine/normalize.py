"""Geometry normalizer — polygons and points out of collector GeoJSON.

The collector stores each drawn polygon as ``{type: "Feature", geometry: <Feature>}``
so geometries can arrive wrapped in one or two extra Feature layers. Only
outer rings are read; holes are ignored.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable

import numpy as np

from mentalmap.engine.context import MapFeature, PointData, RingData

logger = logging.getLogger(__name__)

# Extra Feature layers unwrapped before reading geometry.type
_MAX_FEATURE_NESTING = 2


def unwrap_geometry(geometry: Any) -> dict[str, Any] | None:
    """Strip up to two ``Feature`` wrappers and return the bare geometry dict."""
    for _ in range(_MAX_FEATURE_NESTING):
        if isinstance(geometry, dict) and geometry.get("type") == "Feature" and geometry.get("geometry"):
            geometry = geometry["geometry"]
    if not isinstance(geometry, dict):
        return None
    return geometry


def parse_ring(raw: Any) -> np.ndarray | None:
    """Parse a list of [lng, lat] pairs into an Nx2 float array.

    Returns None if any coordinate is missing or not finite; a ring is kept
    whole or dropped whole.
    """
    if not isinstance(raw, (list, tuple)) or len(raw) == 0:
        return None
    try:
        coords = np.array([[float(pt[0]), float(pt[1])] for pt in raw], dtype=np.float64)
    except (TypeError, ValueError, IndexError):
        return None
    if not np.all(np.isfinite(coords)):
        return None
    return coords


def parse_point(raw: Any) -> tuple[float, float] | None:
    if not isinstance(raw, (list, tuple)) or len(raw) < 2:
        return None
    try:
        lng, lat = float(raw[0]), float(raw[1])
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(lng) and math.isfinite(lat)):
        return None
    return lng, lat


def normalize_geometry(
    geometry: Any, feature_index: int
) -> tuple[list[RingData], list[PointData]]:
    """Rings and points of one feature. Never raises."""
    rings: list[RingData] = []
    points: list[PointData] = []

    geom = unwrap_geometry(geometry)
    if geom is None:
        return rings, points

    gtype = geom.get("type")
    coordinates = geom.get("coordinates")
    if not isinstance(coordinates, list):
        return rings, points

    if gtype == "Polygon":
        outer = parse_ring(coordinates[0]) if coordinates else None
        if outer is not None:
            rings.append(RingData(coords=outer, feature_index=feature_index))
    elif gtype == "MultiPolygon":
        for polygon in coordinates:
            if not isinstance(polygon, list) or not polygon:
                continue
            outer = parse_ring(polygon[0])
            if outer is not None:
                rings.append(RingData(coords=outer, feature_index=feature_index))
    elif gtype == "Point":
        pt = parse_point(coordinates)
        if pt is not None:
            points.append(PointData(lng=pt[0], lat=pt[1], feature_index=feature_index))

    return rings, points


def normalize_features(
    features: Iterable[MapFeature],
) -> tuple[list[RingData], list[PointData], int]:
    """Normalize every feature; returns (rings, points, dropped_feature_count)."""
    all_rings: list[RingData] = []
    all_points: list[PointData] = []
    dropped = 0

    for idx, feature in enumerate(features):
        try:
            rings, points = normalize_geometry(feature.geometry, idx)
        except Exception as e:
            logger.debug("Feature %s dropped: %s", feature.id, e)
            rings, points = [], []
        if not rings and not points:
            dropped += 1
            continue
        all_rings.extend(rings)
        all_points.extend(points)

    if dropped:
        logger.debug("Normalizer dropped %d feature(s) without usable geometry", dropped)
    return all_rings, all_points, dropped


def filter_by_questions(
    features: list[MapFeature], question_ids: Iterable[str] | None
) -> list[MapFeature]:
    """Features whose question is selected. An empty selection keeps all."""
    selected = set(question_ids or ())
    if not selected:
        return list(features)
    return [f for f in features if f.question_id in selected]


def unique_question_ids(features: Iterable[MapFeature]) -> list[str]:
    return sorted({f.question_id for f in features})


def features_from_geojson(raw_features: Iterable[dict[str, Any]]) -> list[MapFeature]:
    """Export FeatureCollection entries → MapFeature, ids defaulting to 1-based position."""
    return [MapFeature.from_geojson(f, fallback_id=str(i + 1)) for i, f in enumerate(raw_features)]
