"""Flatten stored survey responses into one export FeatureCollection.

Each response row stores the participant's answer as a FeatureCollection
whose features carry the drawn shape either directly as ``geometry`` or
wrapped once more in a Feature. Only Polygon and Point shapes are exported.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable

logger = logging.getLogger(__name__)

EXPORTED_TYPES = ("Polygon", "Point")

# Row columns copied into every exported feature's properties
ROW_PROPERTIES = ("question_id", "participant_code", "audio_file", "answer_data", "created_at")


def _load_geometry(raw: Any) -> dict[str, Any] | None:
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, (str, bytes)):
        try:
            parsed = json.loads(raw)
        except ValueError as e:
            logger.warning("Unparseable stored geometry: %s", e)
            return None
        return parsed if isinstance(parsed, dict) else None
    return None


def _shape_of(feature: Any) -> dict[str, Any] | None:
    """The Polygon/Point inside a stored feature, single- or double-wrapped."""
    if not isinstance(feature, dict):
        return None
    geometry = feature.get("geometry")
    if not isinstance(geometry, dict):
        return None
    inner = geometry.get("geometry")
    if isinstance(inner, dict) and inner.get("type") in EXPORTED_TYPES:
        return inner
    if geometry.get("type") in EXPORTED_TYPES:
        return geometry
    return None


def flatten_responses(rows: Iterable[dict[str, Any]]) -> dict[str, Any]:
    """Response rows → FeatureCollection with ids ``"{row}_{feature}"`` (both 1-based).

    Row numbering counts every row, including rows skipped for missing or
    unparseable geometry.
    """
    features: list[dict[str, Any]] = []
    for row_index, row in enumerate(rows):
        stored = _load_geometry(row.get("geometry"))
        if stored is None or stored.get("type") != "FeatureCollection":
            continue
        for feature_index, feature in enumerate(stored.get("features") or []):
            shape = _shape_of(feature)
            if shape is None:
                continue
            props = {"id": f"{row_index + 1}_{feature_index + 1}"}
            props.update({key: row.get(key) for key in ROW_PROPERTIES})
            features.append({"type": "Feature", "properties": props, "geometry": shape})

    return {"type": "FeatureCollection", "features": features}
