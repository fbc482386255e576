"""Hover tooltip showing the overlap value, the owning participant and a reverse-geocoded place.

Every hover event runs synchronously: cell lookup, show-or-hide, and the
placeholder content. The address is filled in later. A cached address is
applied immediately; otherwise a single debounce timer (reset by every hover
and by mouse-out) schedules the lookup. Results for a hover that has since
been superseded are dropped.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from mentalmap.engine.context import Grid, MapFeature
from mentalmap.engine.smoothing import HALO_MAX_VALUE
from mentalmap.geocode.admin_labels import ADMIN_LABELS
from mentalmap.geocode.client import ReverseGeocoder
from mentalmap.geocode.format import PlaceRecord, admin_line
from mentalmap.render.surface import MapSurface
from mentalmap.utils.math_helpers import format_overlap

logger = logging.getLogger(__name__)

PLACE_LOADING = "Lade Ort..."
DEFAULT_DEBOUNCE_S = 0.25

# Owner index meaning "no single participant"
NO_OWNER = -1


@dataclass
class TooltipState:
    visible: bool = False
    lat: float = 0.0
    lng: float = 0.0
    value: float = 0.0
    title: str = ""
    participant: str | None = None
    coords: str = ""
    place_line: str = PLACE_LOADING
    place: PlaceRecord | None = None

    @property
    def lines(self) -> list[str]:
        if not self.visible:
            return []
        out = [self.title]
        if self.participant is not None:
            out.append(f"Proband: {self.participant}")
        out.append(self.coords)
        out.append(self.place_line)
        return out

    def to_dict(self) -> dict[str, Any]:
        return {
            "visible": self.visible,
            "lat": self.lat,
            "lng": self.lng,
            "value": self.value,
            "title": self.title,
            "participant": self.participant,
            "coords": self.coords,
            "place_line": self.place_line,
            "place": self.place.to_dict() if self.place is not None else None,
            "lines": self.lines,
        }


def resolve_owner(grid: Grid, row: int, col: int) -> int:
    """Feature index owning a cell, or NO_OWNER.

    Cells without a single owner but with a value no higher than one
    participant can produce (smoothed edges) take the owner of their 3×3
    neighbourhood when exactly one distinct owner appears there.
    """
    owner = int(grid.owner[row, col])
    if owner >= 0:
        return owner
    if float(grid.values[row, col]) > HALO_MAX_VALUE:
        return NO_OWNER

    r0, r1 = max(0, row - 1), min(grid.height, row + 2)
    c0, c1 = max(0, col - 1), min(grid.width, col + 2)
    window = grid.owner[r0:r1, c0:c1]
    candidates = {int(v) for v in window[window >= 0]}
    if len(candidates) == 1:
        return candidates.pop()
    return NO_OWNER


class TooltipController:
    """Hover state machine for one analysis session."""

    def __init__(
        self,
        geocoder: ReverseGeocoder,
        *,
        debounce_s: float = DEFAULT_DEBOUNCE_S,
        labels: dict[str, tuple[str, str]] | None = None,
    ) -> None:
        self.geocoder = geocoder
        self.debounce_s = debounce_s
        self.labels = ADMIN_LABELS if labels is None else labels
        self.state = TooltipState()

        self._grid: Grid | None = None
        self._features: list[MapFeature] = []
        self._participant_codes: dict[str, str] = {}
        self._smoothed = False
        self._min_overlap: float = 0

        self._timer: asyncio.TimerHandle | None = None
        self._task: asyncio.Task | None = None
        self._hover_seq = 0
        self._surface: MapSurface | None = None

    # --- Wiring ---

    def bind(
        self,
        grid: Grid,
        features: list[MapFeature],
        *,
        smoothed: bool,
        min_overlap: float = 0,
        participant_codes: dict[str, str] | None = None,
    ) -> None:
        """Point the tooltip at a freshly computed grid and its feature list."""
        self.reset()
        self._grid = grid
        self._features = features
        self._smoothed = smoothed
        self._min_overlap = min_overlap
        self._participant_codes = dict(participant_codes or {})

    def reset(self) -> None:
        self._cancel_timer()
        self._hover_seq += 1
        self._grid = None
        self.state = TooltipState()

    def attach(self, surface: MapSurface) -> None:
        self.detach()
        surface.on("mousemove", self._on_mousemove)
        surface.on("mouseout", self._on_mouseout)
        self._surface = surface

    def detach(self) -> None:
        if self._surface is not None:
            self._surface.off("mousemove", self._on_mousemove)
            self._surface.off("mouseout", self._on_mouseout)
            self._surface = None
        self._cancel_timer()

    def _on_mousemove(self, event: dict[str, Any]) -> None:
        self.on_hover(event["lat"], event["lng"])

    def _on_mouseout(self, _event: dict[str, Any]) -> None:
        self.on_leave()

    # --- Hover handling ---

    def on_hover(self, lat: float, lng: float) -> TooltipState:
        self._cancel_timer()
        self._hover_seq += 1

        grid = self._grid
        cell = grid.cell_at(lat, lng) if grid is not None else None
        if cell is None or not grid.is_active(*cell, self._min_overlap):
            self._hide()
            return self.state

        row, col = cell
        value = float(grid.values[row, col])
        owner = resolve_owner(grid, row, col)
        participant = None
        if 0 <= owner < len(self._features):
            participant = self._features[owner].participant_label(self._participant_codes)

        self.state = TooltipState(
            visible=True,
            lat=lat,
            lng=lng,
            value=value,
            title=f"Überlappungen: {format_overlap(value, self._smoothed)}",
            participant=participant,
            coords=f"Lat: {lat:.5f} · Lng: {lng:.5f}",
        )

        cached = self.geocoder.cached(lat, lng)
        if cached is not None:
            self._apply_place(cached)
            return self.state

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; address lookup not scheduled")
            return self.state
        self._timer = loop.call_later(self.debounce_s, self._fire, self._hover_seq, lat, lng)
        return self.state

    def on_leave(self) -> None:
        self._cancel_timer()
        self._hover_seq += 1
        self._hide()

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None

    async def wait_idle(self) -> None:
        """Wait for a running lookup to finish."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    # --- Internals ---

    def _hide(self) -> None:
        if self.state.visible:
            self.state = TooltipState()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self, seq: int, lat: float, lng: float) -> None:
        self._timer = None
        self._task = asyncio.ensure_future(self._fetch(seq, lat, lng))

    async def _fetch(self, seq: int, lat: float, lng: float) -> None:
        place = await self.geocoder.lookup(lat, lng)
        if place is None:
            return
        if seq != self._hover_seq or not self.state.visible:
            logger.debug("Dropping address for superseded hover (%.5f, %.5f)", lat, lng)
            return
        self._apply_place(place)

    def _apply_place(self, place: PlaceRecord) -> None:
        self.state.place = place
        self.state.place_line = admin_line(place, self.labels)
