"""Single-participant viewer. Every answer drawn in its question's colour.

Polygons are outlined and lightly filled, points become circle markers.
The view is fitted to everything drawn and can be exported like the
heatmap view.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from shapely.geometry import GeometryCollection, MultiPoint, Point, Polygon

from mentalmap.engine.context import UNKNOWN_PARTICIPANT, MapFeature
from mentalmap.engine.normalize import parse_point, parse_ring, unwrap_geometry
from mentalmap.export.snapshot import ExportResult, export_view, viewer_filename
from mentalmap.render.surface import LatLngBounds, MapSurface

logger = logging.getLogger(__name__)

QUESTION_COLORS = (
    "#3b82f6",
    "#ef4444",
    "#10b981",
    "#f59e0b",
    "#8b5cf6",
    "#ec4899",
    "#06b6d4",
    "#f97316",
    "#84cc16",
)

ALL_QUESTIONS = "all"
FIT_PADDING_PX = 50

POLYGON_STYLE = {"fill_opacity": 0.3, "weight": 2}
MARKER_STYLE = {"radius": 8, "stroke": "#000000", "weight": 1, "opacity": 1.0, "fill_opacity": 0.8}


def format_created(created_at: str | None) -> str:
    """German short date-time, e.g. ``3.2.2024, 14:05:09``."""
    if not created_at:
        return UNKNOWN_PARTICIPANT
    try:
        dt = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
    except ValueError:
        return created_at
    return f"{dt.day}.{dt.month}.{dt.year}, {dt:%H:%M:%S}"


@dataclass
class ViewerShape:
    kind: str  # "polygon" | "marker"
    feature_id: str
    question_id: str
    color: str
    # (lat, lng) vertices; one entry for markers
    latlngs: list[tuple[float, float]]
    popup: list[str]
    style: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "feature_id": self.feature_id,
            "question_id": self.question_id,
            "color": self.color,
            "latlngs": [list(p) for p in self.latlngs],
            "popup": self.popup,
            "style": self.style,
        }


class MentalMapViewer:
    def __init__(
        self,
        features: list[MapFeature],
        *,
        participant_code: str = "",
        question_labels: dict[str, str] | None = None,
        surface: MapSurface | None = None,
    ) -> None:
        self.features = features
        self.participant_code = participant_code
        self.question_labels = dict(question_labels or {})
        self.surface = surface or MapSurface()

        # Colours follow first appearance order
        self.question_ids: list[str] = list(dict.fromkeys(f.question_id for f in features))
        self._colors = {
            qid: QUESTION_COLORS[i % len(QUESTION_COLORS)] for i, qid in enumerate(self.question_ids)
        }

        self.selected = ALL_QUESTIONS
        self.shapes: list[ViewerShape] = []
        self.bounds: LatLngBounds | None = None

    def color_for(self, question_id: str) -> str:
        return self._colors.get(question_id, QUESTION_COLORS[0])

    def question_label(self, question_id: str) -> str:
        return self.question_labels.get(question_id) or question_id

    def _popup(self, feature: MapFeature) -> list[str]:
        return [
            self.question_label(feature.question_id),
            f"Mental Map ID: {feature.id}",
            f"Teilnehmer: {feature.participant_code or UNKNOWN_PARTICIPANT}",
            f"Erstellt: {format_created(feature.created_at)}",
        ]

    def _shapes_for(self, feature: MapFeature) -> list[ViewerShape]:
        geom = unwrap_geometry(feature.geometry)
        if geom is None or not isinstance(geom.get("coordinates"), list):
            return []
        color = self.color_for(feature.question_id)
        popup = self._popup(feature)
        coordinates = geom["coordinates"]

        rings = []
        if geom.get("type") == "Polygon" and coordinates:
            rings.append(coordinates[0])
        elif geom.get("type") == "MultiPolygon":
            rings.extend(poly[0] for poly in coordinates if isinstance(poly, list) and poly)
        elif geom.get("type") == "Point":
            pt = parse_point(coordinates)
            if pt is None:
                return []
            return [
                ViewerShape(
                    kind="marker",
                    feature_id=feature.id,
                    question_id=feature.question_id,
                    color=color,
                    latlngs=[(pt[1], pt[0])],
                    popup=popup,
                    style=dict(MARKER_STYLE),
                )
            ]

        shapes = []
        for raw in rings:
            coords = parse_ring(raw)
            if coords is None:
                continue
            shapes.append(
                ViewerShape(
                    kind="polygon",
                    feature_id=feature.id,
                    question_id=feature.question_id,
                    color=color,
                    latlngs=[(float(lat), float(lng)) for lng, lat in coords],
                    popup=popup,
                    style=dict(POLYGON_STYLE),
                )
            )
        return shapes

    def select(self, question_id: str = ALL_QUESTIONS) -> list[ViewerShape]:
        """Redraw for ``all`` or a single question and fit the view."""
        self.selected = question_id
        visible = (
            self.features
            if question_id == ALL_QUESTIONS
            else [f for f in self.features if f.question_id == question_id]
        )
        self.shapes = [shape for f in visible for shape in self._shapes_for(f)]
        self.bounds = self._compute_bounds()
        if self.bounds is not None:
            self.surface.fit_bounds(self.bounds, padding=FIT_PADDING_PX)
        logger.debug("Viewer: %d shape(s) for question %s", len(self.shapes), question_id)
        return self.shapes

    def _compute_bounds(self) -> LatLngBounds | None:
        geoms = []
        for shape in self.shapes:
            xy = [(lng, lat) for lat, lng in shape.latlngs]
            if shape.kind == "marker":
                geoms.append(Point(xy[0]))
            elif len(set(xy)) >= 3:
                geoms.append(Polygon(xy))
            else:
                geoms.append(MultiPoint(xy))
        if not geoms:
            return None
        min_lng, min_lat, max_lng, max_lat = GeometryCollection(geoms).bounds
        return LatLngBounds(south=min_lat, west=min_lng, north=max_lat, east=max_lng)

    # --- Export ---

    @property
    def selection_name(self) -> str:
        if self.selected == ALL_QUESTIONS:
            return "Alle"
        return self.question_label(self.selected)

    def svg_overlays(self) -> list[str]:
        out = []
        for shape in self.shapes:
            pts = [self.surface.lat_lng_to_container_point(lat, lng) for lat, lng in shape.latlngs]
            if shape.kind == "marker":
                x, y = pts[0]
                out.append(
                    f'<circle cx="{x:.2f}" cy="{y:.2f}" r="{MARKER_STYLE["radius"]}" fill="{shape.color}" '
                    f'fill-opacity="{MARKER_STYLE["fill_opacity"]}" stroke="{MARKER_STYLE["stroke"]}" '
                    f'stroke-width="{MARKER_STYLE["weight"]}"/>'
                )
            else:
                path = " ".join(f"{x:.2f},{y:.2f}" for x, y in pts)
                out.append(
                    f'<polygon points="{path}" fill="{shape.color}" fill-opacity="{POLYGON_STYLE["fill_opacity"]}" '
                    f'stroke="{shape.color}" stroke-width="{POLYGON_STYLE["weight"]}"/>'
                )
        return out

    def export(self, fmt: str) -> ExportResult:
        filename = viewer_filename(self.participant_code, self.selection_name, fmt)
        title = f"{self.participant_code} · {self.selection_name}" if self.participant_code else None
        return export_view(
            self.surface,
            None,
            fmt,
            filename,
            overlays=self.svg_overlays(),
            legend=False,
            title=title,
        )
