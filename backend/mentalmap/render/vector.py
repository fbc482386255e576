"""Vector path — one geographic rectangle per active cell, each with a popup.

Rectangles live in geographic coordinates, so panning and zooming need no
redraw. The renderer keeps the handles it created and removes exactly those
on detach.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from mentalmap.engine.context import Grid
from mentalmap.render.base import HeatmapRenderer
from mentalmap.render.colors import cell_opacity, heat_color, rgba_css
from mentalmap.render.surface import MapSurface
from mentalmap.utils.math_helpers import format_percent

logger = logging.getLogger(__name__)


@dataclass
class RectangleHandle:
    """One drawn cell."""

    key: tuple[int, int]
    # (south, west, north, east)
    bounds: tuple[float, float, float, float]
    value: float
    intensity: float
    color: str
    fill_opacity: float
    weight: int = 0
    interactive: bool = True

    @property
    def popup(self) -> str:
        return f"Wert: {self.value:.2f}\nIntensität: {format_percent(self.intensity)}"

    def to_dict(self) -> dict:
        south, west, north, east = self.bounds
        return {
            "key": list(self.key),
            "bounds": [[south, west], [north, east]],
            "value": self.value,
            "color": self.color,
            "fill_opacity": self.fill_opacity,
            "popup": self.popup,
        }


@dataclass(eq=False)
class LayerGroup:
    """Container layer holding the rectangles of one renderer. Compared by identity."""

    handles: list[RectangleHandle] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.handles)


class VectorHeatmapRenderer(HeatmapRenderer):
    kind = "vector"

    def __init__(
        self,
        surface: MapSurface,
        grid: Grid,
        *,
        min_overlap: float = 0,
        max_value: float | None = None,
    ) -> None:
        super().__init__(surface, grid, min_overlap=min_overlap, max_value=max_value)
        self.group: LayerGroup | None = None

    @property
    def handles(self) -> list[RectangleHandle]:
        return self.group.handles if self.group is not None else []

    def attach(self) -> None:
        if self.attached:
            return
        self.attached = True
        self.redraw()

    def detach(self) -> None:
        if self.group is not None:
            self.surface.remove_layer(self.group)
            self.group.handles.clear()
            self.group = None
        self.drawn_keys = set()
        self.attached = False

    def redraw(self) -> None:
        if self.group is not None:
            self.surface.remove_layer(self.group)

        group = LayerGroup()
        for r, c, value in self.iter_active_cells():
            i = self.intensity(value)
            group.handles.append(
                RectangleHandle(
                    key=self.grid.cell_key(r, c),
                    bounds=self.grid.cell_bounds(r, c),
                    value=value,
                    intensity=i,
                    color=rgba_css(heat_color(i)),
                    fill_opacity=cell_opacity(i),
                )
            )

        self.group = group
        self.surface.add_layer(group)
        self.drawn_keys = {h.key for h in group.handles}
        logger.debug("Vector layer: %d rectangle(s)", len(group))
