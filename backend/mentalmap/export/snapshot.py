"""Snapshot export of the current heatmap view as SVG, PNG or JPEG.

The view is first composed as an SVG the size of the map container:
background, the heatmap (embedded bitmap or projected rectangles), optional
extra overlays and the legend. PNG is rasterized from that SVG with cairosvg
at twice the pixel density; JPEG is the PNG flattened onto white.
"""

from __future__ import annotations

import base64
import io
import logging
from dataclasses import dataclass
from xml.sax.saxutils import escape

from PIL import Image

from mentalmap.errors import ExportError
from mentalmap.render.base import HeatmapRenderer
from mentalmap.render.canvas import CanvasHeatmapRenderer
from mentalmap.render.colors import HEAT_STOPS, cell_opacity, heat_color, rgb_hex
from mentalmap.render.surface import MapSurface
from mentalmap.render.vector import VectorHeatmapRenderer
from mentalmap.utils.math_helpers import safe_filename_part

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("png", "jpg", "svg")
MEDIA_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "svg": "image/svg+xml",
}

PIXEL_RATIO = 2
JPEG_QUALITY = 90
BACKGROUND = "#f1f5f9"

# Legend box, bottom right
_LEGEND_W = 150
_LEGEND_H = 54
_LEGEND_MARGIN = 10


@dataclass
class ExportResult:
    filename: str
    media_type: str
    data: bytes


def heatmap_filename(selection_label: str, grid_size: float, fmt: str) -> str:
    """``Heatmap_Alle_grid0.05.png`` / ``Heatmap_2_Fragen_grid0.25.svg``."""
    return f"Heatmap_{selection_label}_grid{grid_size}.{fmt}"


def viewer_filename(participant_code: str, question_label: str, fmt: str) -> str:
    """``MentalMap_P01_Wo_wohnen_Sie__mit_Karte.png``-style names."""
    return f"MentalMap_{participant_code}_{safe_filename_part(question_label)}_mit_Karte.{fmt}"


def _heatmap_svg(surface: MapSurface, renderer: HeatmapRenderer | None) -> list[str]:
    parts: list[str] = []
    if isinstance(renderer, CanvasHeatmapRenderer):
        png = base64.b64encode(renderer.to_png_bytes()).decode("ascii")
        parts.append(
            f'<image x="0" y="0" width="{surface.width}" height="{surface.height}" '
            f'href="data:image/png;base64,{png}"/>'
        )
    elif isinstance(renderer, VectorHeatmapRenderer):
        for h in renderer.handles:
            south, west, north, east = h.bounds
            x1, y1 = surface.lat_lng_to_container_point(south, west)
            x2, y2 = surface.lat_lng_to_container_point(north, east)
            r, g, b, a = heat_color(h.intensity)
            parts.append(
                f'<rect x="{min(x1, x2):.2f}" y="{min(y1, y2):.2f}" '
                f'width="{abs(x2 - x1):.2f}" height="{abs(y2 - y1):.2f}" '
                f'fill="{rgb_hex((r, g, b))}" fill-opacity="{a * cell_opacity(h.intensity):.3f}"/>'
            )
    return parts


def _legend_svg(width: int, height: int) -> list[str]:
    x = width - _LEGEND_W - _LEGEND_MARGIN
    y = height - _LEGEND_H - _LEGEND_MARGIN
    segments = len(HEAT_STOPS) - 1
    stops = "".join(
        f'<stop offset="{i / segments:.2f}" stop-color="{rgb_hex(rgb)}"/>' for i, rgb in enumerate(HEAT_STOPS)
    )
    return [
        f'<defs><linearGradient id="heat-ramp">{stops}</linearGradient></defs>',
        f'<g transform="translate({x},{y})" font-family="sans-serif" font-size="11">',
        f'<rect width="{_LEGEND_W}" height="{_LEGEND_H}" rx="4" fill="#ffffff" fill-opacity="0.9"/>',
        '<text x="8" y="16" font-weight="bold">Überlappung</text>',
        '<text x="8" y="40">Wenig</text>',
        f'<rect x="44" y="30" width="{_LEGEND_W - 84}" height="12" fill="url(#heat-ramp)"/>',
        f'<text x="{_LEGEND_W - 34}" y="40">Viel</text>',
        "</g>",
    ]


def render_view_svg(
    surface: MapSurface,
    renderer: HeatmapRenderer | None = None,
    *,
    overlays: list[str] | None = None,
    legend: bool = True,
    title: str | None = None,
) -> str:
    """SVG document of the current view."""
    w, h = surface.width, surface.height
    parts = [
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{w}" height="{h}" viewBox="0 0 {w} {h}">',
        f'<rect width="{w}" height="{h}" fill="{BACKGROUND}"/>',
    ]
    parts.extend(_heatmap_svg(surface, renderer))
    parts.extend(overlays or [])
    if title:
        parts.append(
            f'<text x="10" y="20" font-family="sans-serif" font-size="14" font-weight="bold">{escape(title)}</text>'
        )
    if legend and renderer is not None:
        parts.extend(_legend_svg(w, h))
    parts.append("</svg>")
    return "\n".join(parts)


def svg_to_png(svg: str, scale: float = PIXEL_RATIO) -> bytes:
    """Rasterize an SVG document with cairosvg."""
    import cairosvg

    try:
        return cairosvg.svg2png(bytestring=svg.encode("utf-8"), scale=scale)
    except Exception as e:
        logger.warning("Failed to render SVG to PNG: %s", e)
        raise


def png_to_jpeg(png: bytes, quality: int = JPEG_QUALITY) -> bytes:
    """Flatten onto white and encode as JPEG."""
    with Image.open(io.BytesIO(png)) as img:
        rgba = img.convert("RGBA")
    flat = Image.new("RGB", rgba.size, (255, 255, 255))
    flat.paste(rgba, mask=rgba.getchannel("A"))
    buf = io.BytesIO()
    flat.save(buf, format="JPEG", quality=quality)
    return buf.getvalue()


def encode_svg(svg: str, fmt: str) -> bytes:
    """Bytes of the view in the requested format; raises ExportError on failure."""
    if fmt not in EXPORT_FORMATS:
        raise ExportError(f"Unsupported export format: {fmt}")
    try:
        if fmt == "svg":
            return svg.encode("utf-8")
        png = svg_to_png(svg)
        if fmt == "png":
            return png
        return png_to_jpeg(png)
    except Exception as e:
        logger.exception("Export to %s failed", fmt)
        raise ExportError(f"Export failed: {e}") from e


def export_view(
    surface: MapSurface,
    renderer: HeatmapRenderer | None,
    fmt: str,
    filename: str,
    *,
    overlays: list[str] | None = None,
    legend: bool = True,
    title: str | None = None,
) -> ExportResult:
    svg = render_view_svg(surface, renderer, overlays=overlays, legend=legend, title=title)
    data = encode_svg(svg, fmt)
    logger.info("Exported %s (%d bytes)", filename, len(data))
    return ExportResult(filename=filename, media_type=MEDIA_TYPES[fmt], data=data)
