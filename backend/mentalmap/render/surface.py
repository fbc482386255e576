"""MapSurface — server-side model of the interactive map viewport.

Holds center, zoom and container size, projects lat/lng to container pixels
with spherical Web Mercator (256 px tiles, like Leaflet), and fires
``move``/``zoom``/``resize``/``mousemove``/``mouseout`` events to listeners.
Layers added to the surface are tracked so renderers can remove exactly
their own.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)

TILE_SIZE = 256
MIN_ZOOM = 0
MAX_ZOOM = 18

# Initial view over western Europe
DEFAULT_CENTER = (47.5, 2.5)
DEFAULT_ZOOM = 5

# Web Mercator latitude limit
MAX_LATITUDE = 85.0511287798

EVENT_TYPES = ("move", "zoom", "resize", "mousemove", "mouseout")

Listener = Callable[[dict[str, Any]], None]


@dataclass
class LatLngBounds:
    south: float
    west: float
    north: float
    east: float

    @classmethod
    def from_points(cls, points: list[tuple[float, float]]) -> LatLngBounds | None:
        """Bounds over (lat, lng) pairs; None for no points."""
        if not points:
            return None
        lats = [p[0] for p in points]
        lngs = [p[1] for p in points]
        return cls(min(lats), min(lngs), max(lats), max(lngs))

    @property
    def center(self) -> tuple[float, float]:
        return (self.south + self.north) / 2, (self.west + self.east) / 2

    def contains(self, lat: float, lng: float) -> bool:
        return self.south <= lat <= self.north and self.west <= lng <= self.east


class MapSurface:
    """Viewport, projection and event bus of one map."""

    def __init__(
        self,
        center: tuple[float, float] = DEFAULT_CENTER,
        zoom: float = DEFAULT_ZOOM,
        size: tuple[int, int] = (800, 600),
    ) -> None:
        self.center = (float(center[0]), float(center[1]))
        self.zoom = float(zoom)
        self.width, self.height = int(size[0]), int(size[1])
        self.layers: list[Any] = []
        self._listeners: dict[str, list[Listener]] = {name: [] for name in EVENT_TYPES}

    # --- Events ---

    def on(self, event: str, fn: Listener) -> None:
        self._listeners.setdefault(event, []).append(fn)

    def off(self, event: str, fn: Listener) -> None:
        listeners = self._listeners.get(event, [])
        if fn in listeners:
            listeners.remove(fn)

    def fire(self, event: str, **data: Any) -> None:
        payload = {"type": event, **data}
        # Copy so a listener may unsubscribe while being called
        for fn in list(self._listeners.get(event, [])):
            fn(payload)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    # --- Layers ---

    def add_layer(self, layer: Any) -> None:
        if layer not in self.layers:
            self.layers.append(layer)

    def remove_layer(self, layer: Any) -> None:
        if layer in self.layers:
            self.layers.remove(layer)

    def has_layer(self, layer: Any) -> bool:
        return layer in self.layers

    # --- Projection ---

    @staticmethod
    def scale(zoom: float) -> float:
        return TILE_SIZE * math.pow(2.0, zoom)

    @classmethod
    def project(cls, lat: float, lng: float, zoom: float) -> tuple[float, float]:
        """Absolute world pixel coordinates at ``zoom``."""
        lat = max(-MAX_LATITUDE, min(MAX_LATITUDE, lat))
        s = cls.scale(zoom)
        x = (lng + 180.0) / 360.0 * s
        sin_lat = math.sin(math.radians(lat))
        y = (0.5 - math.log((1 + sin_lat) / (1 - sin_lat)) / (4 * math.pi)) * s
        return x, y

    @classmethod
    def unproject(cls, x: float, y: float, zoom: float) -> tuple[float, float]:
        s = cls.scale(zoom)
        lng = x / s * 360.0 - 180.0
        n = math.pi - 2 * math.pi * y / s
        lat = math.degrees(math.atan(math.sinh(n)))
        return lat, lng

    def _pixel_origin(self) -> tuple[float, float]:
        cx, cy = self.project(self.center[0], self.center[1], self.zoom)
        return cx - self.width / 2, cy - self.height / 2

    def lat_lng_to_container_point(self, lat: float, lng: float) -> tuple[float, float]:
        ox, oy = self._pixel_origin()
        x, y = self.project(lat, lng, self.zoom)
        return x - ox, y - oy

    def container_point_to_lat_lng(self, x: float, y: float) -> tuple[float, float]:
        ox, oy = self._pixel_origin()
        return self.unproject(x + ox, y + oy, self.zoom)

    def get_bounds(self) -> LatLngBounds:
        north, west = self.container_point_to_lat_lng(0, 0)
        south, east = self.container_point_to_lat_lng(self.width, self.height)
        return LatLngBounds(south=south, west=west, north=north, east=east)

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    # --- Viewport changes ---

    def set_view(self, center: tuple[float, float], zoom: float | None = None) -> None:
        zoom_changed = zoom is not None and float(zoom) != self.zoom
        self.center = (float(center[0]), float(center[1]))
        if zoom is not None:
            self.zoom = float(max(MIN_ZOOM, min(MAX_ZOOM, zoom)))
        if zoom_changed:
            self.fire("zoom", zoom=self.zoom)
        self.fire("move", center=self.center)

    def pan_by(self, dx: float, dy: float) -> None:
        lat, lng = self.container_point_to_lat_lng(self.width / 2 + dx, self.height / 2 + dy)
        self.set_view((lat, lng))

    def set_zoom(self, zoom: float) -> None:
        self.set_view(self.center, zoom)

    def set_size(self, width: int, height: int) -> None:
        if (int(width), int(height)) == (self.width, self.height):
            return
        self.width, self.height = int(width), int(height)
        self.fire("resize", size=self.size)

    def bounds_zoom(self, bounds: LatLngBounds, padding: int = 0) -> int:
        """Highest integer zoom at which ``bounds`` fits inside the padded container."""
        avail_w = max(1, self.width - 2 * padding)
        avail_h = max(1, self.height - 2 * padding)
        for zoom in range(MAX_ZOOM, MIN_ZOOM - 1, -1):
            x1, y1 = self.project(bounds.north, bounds.west, zoom)
            x2, y2 = self.project(bounds.south, bounds.east, zoom)
            if abs(x2 - x1) <= avail_w and abs(y2 - y1) <= avail_h:
                return zoom
        return MIN_ZOOM

    def fit_bounds(self, bounds: LatLngBounds, padding: int = 0) -> None:
        zoom = self.bounds_zoom(bounds, padding)
        # Center on the projected midpoint so the padding is symmetric
        x1, y1 = self.project(bounds.north, bounds.west, zoom)
        x2, y2 = self.project(bounds.south, bounds.east, zoom)
        center = self.unproject((x1 + x2) / 2, (y1 + y2) / 2, zoom)
        logger.debug("fit_bounds → center=(%.4f, %.4f) zoom=%d", center[0], center[1], zoom)
        self.set_view(center, zoom)

    # --- Pointer ---

    def mouse_move(self, lat: float, lng: float) -> None:
        self.fire("mousemove", lat=lat, lng=lng)

    def mouse_out(self) -> None:
        self.fire("mouseout")

    def to_dict(self) -> dict[str, Any]:
        b = self.get_bounds()
        return {
            "center": list(self.center),
            "zoom": self.zoom,
            "size": [self.width, self.height],
            "bounds": {"south": b.south, "west": b.west, "north": b.north, "east": b.east},
        }
