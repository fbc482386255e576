"""HeatmapContext — the single mutable state object flowing through all stages.

Per-feature inputs → MapFeature
Normalized geometry → RingData / PointData
Raster result → Grid
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable

import numpy as np
from numpy.typing import NDArray

from mentalmap.engine.config import HeatmapConfig

# Owner sentinels
OWNER_EMPTY = -1
OWNER_MULTIPLE = -2

UNKNOWN_PARTICIPANT = "Unbekannt"


@dataclass
class MapFeature:
    """One participant's geometric answer to one question."""

    id: str
    question_id: str
    participant_code: str | None = None
    participant_id: str | None = None
    created_at: str | None = None
    # Raw GeoJSON geometry, possibly wrapped in one or two Feature layers
    geometry: Any = None
    properties: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_geojson(cls, feature: dict[str, Any], fallback_id: str = "") -> MapFeature:
        if not isinstance(feature, dict):
            feature = {}
        props = feature.get("properties") or {}
        if not isinstance(props, dict):
            props = {}
        geometry = feature.get("geometry")
        pid = props.get("participant_id")
        return cls(
            id=str(props.get("id") or fallback_id),
            question_id=str(props.get("question_id", "")),
            participant_code=props.get("participant_code") or None,
            participant_id=str(pid) if pid is not None else None,
            created_at=str(props["created_at"]) if props.get("created_at") else None,
            geometry=geometry,
            properties=props,
        )

    def participant_label(self, participant_codes: dict[str, str] | None = None) -> str:
        if self.participant_code:
            return str(self.participant_code)
        if participant_codes and self.participant_id in participant_codes:
            return participant_codes[self.participant_id]
        if self.participant_id:
            return self.participant_id
        return UNKNOWN_PARTICIPANT


@dataclass
class RingData:
    """Outer ring of one polygon: Nx2 array of (lng, lat)."""

    coords: NDArray[np.float64]
    feature_index: int

    @property
    def bbox(self) -> tuple[float, float, float, float]:
        """(min_lng, min_lat, max_lng, max_lat)."""
        return (
            float(np.min(self.coords[:, 0])),
            float(np.min(self.coords[:, 1])),
            float(np.max(self.coords[:, 0])),
            float(np.max(self.coords[:, 1])),
        )


@dataclass
class PointData:
    lng: float
    lat: float
    feature_index: int


@dataclass
class Grid:
    """Dense lat/lng raster over integer keys floor(coordinate / cell_size).

    Row r covers lat key ``min_lat_key + r``, column c covers lng key
    ``min_lng_key + c``. Arrays are shaped (height, width).
    """

    width: int
    height: int
    min_lat_key: int
    min_lng_key: int
    cell_size: float
    counts: NDArray[np.float64]
    owner: NDArray[np.int64]
    smoothed: NDArray[np.float64] | None = None
    area_too_large: bool = False

    @classmethod
    def empty(cls, cell_size: float) -> Grid:
        return cls(
            width=0,
            height=0,
            min_lat_key=0,
            min_lng_key=0,
            cell_size=cell_size,
            counts=np.zeros((0, 0), dtype=np.float64),
            owner=np.zeros((0, 0), dtype=np.int64),
        )

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    @property
    def values(self) -> NDArray[np.float64]:
        """Smoothed values when available, raw counts otherwise."""
        return self.smoothed if self.smoothed is not None else self.counts

    @property
    def max_value(self) -> float:
        if self.is_empty:
            return 0.0
        return float(np.max(self.values))

    def index(self, row: int, col: int) -> int:
        return row * self.width + col

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.height and 0 <= col < self.width

    def cell_at(self, lat: float, lng: float) -> tuple[int, int] | None:
        """Row/column of the cell containing (lat, lng), or None outside the grid."""
        if self.is_empty:
            return None
        row = math.floor(lat / self.cell_size) - self.min_lat_key
        col = math.floor(lng / self.cell_size) - self.min_lng_key
        if not self.in_bounds(row, col):
            return None
        return row, col

    def cell_key(self, row: int, col: int) -> tuple[int, int]:
        """(lat_key, lng_key) of a cell."""
        return self.min_lat_key + row, self.min_lng_key + col

    def cell_bounds(self, row: int, col: int) -> tuple[float, float, float, float]:
        """(south, west, north, east) in degrees."""
        south = (self.min_lat_key + row) * self.cell_size
        west = (self.min_lng_key + col) * self.cell_size
        return south, west, south + self.cell_size, west + self.cell_size

    def active_mask(self, min_overlap: float = 0) -> NDArray[np.bool_]:
        values = self.values
        return (values > 0) & (values >= min_overlap)

    def is_active(self, row: int, col: int, min_overlap: float = 0) -> bool:
        value = float(self.values[row, col])
        return value > 0 and value >= min_overlap

    def active_keys(self, min_overlap: float = 0) -> set[tuple[int, int]]:
        rows, cols = np.nonzero(self.active_mask(min_overlap))
        return {self.cell_key(int(r), int(c)) for r, c in zip(rows, cols)}


@dataclass
class HeatmapContext:
    """Shared state flowing through the heatmap pipeline."""

    features: list[MapFeature] = field(default_factory=list)
    config: HeatmapConfig = field(default_factory=HeatmapConfig)

    # --- Normalized geometry (populated by the normalizer stage) ---
    rings: list[RingData] = field(default_factory=list)
    points: list[PointData] = field(default_factory=list)
    dropped_features: int = 0

    # Union bounding box (min_lng, min_lat, max_lng, max_lat)
    bbox: tuple[float, float, float, float] | None = None

    # --- Raster result ---
    grid: Grid | None = None
    max_count: float = 0.0

    # --- Progress / cancellation ---
    progress_callback: Callable[[float, str], None] | None = None
    is_cancelled: Callable[[], bool] = lambda: False

    # --- Pipeline metadata ---
    completed_stages: set[str] = field(default_factory=set)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def num_features(self) -> int:
        return len(self.features)

    @property
    def has_geometry(self) -> bool:
        return bool(self.rings or self.points)

    def report(self, pct: float, message: str = "") -> None:
        if self.progress_callback is not None:
            self.progress_callback(pct, message)
