"""Freehand polygon drawing for the survey collector.

The participant presses, drags and releases; the dragged path becomes a
polygon if it has at least three points, otherwise the stroke is dropped.
Drawn polygons are stored the way the responses endpoint expects them: a
FeatureCollection whose features wrap a GeoJSON Feature as their geometry.
``POST /api/collector/answers`` replays recorded strokes through it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from shapely.geometry import Polygon, mapping

logger = logging.getLogger(__name__)

MIN_POLYGON_POINTS = 3

DrawingListener = Callable[[bool], None]
PolygonsListener = Callable[[list[Polygon]], None]


def _to_lists(coords: Any) -> Any:
    """Nested tuples from shapely's mapping() → nested lists."""
    if isinstance(coords, (list, tuple)):
        return [_to_lists(c) for c in coords]
    return coords


def polygon_to_feature(polygon: Polygon) -> dict[str, Any]:
    """GeoJSON Feature of a drawn polygon (closed outer ring, [lng, lat])."""
    geom = mapping(polygon)
    return {
        "type": "Feature",
        "properties": {},
        "geometry": {"type": geom["type"], "coordinates": _to_lists(geom["coordinates"])},
    }


@dataclass
class DrawingController:
    """Pointer-driven drawing state for one question."""

    on_drawing_change: DrawingListener | None = None
    on_polygons_change: PolygonsListener | None = None

    is_drawing: bool = False
    is_pointer_down: bool = False
    # Current stroke as (lat, lng)
    points: list[tuple[float, float]] = field(default_factory=list)
    polygons: list[Polygon] = field(default_factory=list)

    @property
    def navigation_enabled(self) -> bool:
        """Map panning/zooming is locked while in drawing mode."""
        return not self.is_drawing

    @property
    def cursor(self) -> str:
        return "crosshair" if self.is_drawing else ""

    # --- Mode ---

    def start(self) -> None:
        self.is_drawing = True
        self.is_pointer_down = False
        self.points = []
        self._notify_drawing()

    def stop(self) -> None:
        self.is_drawing = False
        self.is_pointer_down = False
        self.points = []
        self._notify_drawing()

    def clear(self) -> None:
        self.polygons = []
        self._notify_polygons()

    def reset(self) -> None:
        """Fresh state for the next question."""
        self.polygons = []
        self.points = []
        self.is_drawing = False
        self.is_pointer_down = False
        self._notify_polygons()
        self._notify_drawing()

    # --- Pointer ---

    def pointer_down(self, lat: float, lng: float) -> None:
        if not self.is_drawing:
            return
        self.is_pointer_down = True
        self.points = [(lat, lng)]

    def pointer_move(self, lat: float, lng: float) -> None:
        if self.is_drawing and self.is_pointer_down:
            self.points.append((lat, lng))

    def pointer_up(self) -> Polygon | None:
        """Finish the stroke. Returns the new polygon, or None if it was too short."""
        if not (self.is_drawing and self.is_pointer_down):
            return None
        self.is_pointer_down = False
        points, self.points = self.points, []
        self.is_drawing = False

        polygon = None
        if len(points) >= MIN_POLYGON_POINTS:
            polygon = Polygon([(lng, lat) for lat, lng in points])
            self.polygons.append(polygon)
            self._notify_polygons()
        else:
            logger.debug("Stroke with %d point(s) discarded", len(points))
        self._notify_drawing()
        return polygon

    def delete(self, index: int) -> None:
        del self.polygons[index]
        self._notify_polygons()

    # --- Output ---

    def to_feature_collection(self) -> dict[str, Any]:
        return {
            "type": "FeatureCollection",
            "features": [
                {"type": "Feature", "properties": {"id": i + 1}, "geometry": polygon_to_feature(p)}
                for i, p in enumerate(self.polygons)
            ],
        }

    def response_payload(self, participant_code: str, question_id: str) -> dict[str, Any]:
        """Body for saving this question's answer."""
        return {
            "participantId": participant_code,
            "questionId": question_id,
            "geometry": self.to_feature_collection(),
        }

    def _notify_drawing(self) -> None:
        if self.on_drawing_change is not None:
            self.on_drawing_change(self.is_drawing)

    def _notify_polygons(self) -> None:
        if self.on_polygons_change is not None:
            self.on_polygons_change(list(self.polygons))
