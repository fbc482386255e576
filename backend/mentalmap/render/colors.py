"""Heat colour ramp from blue over green and yellow to red."""

from __future__ import annotations

from mentalmap.utils.math_helpers import round_half_up

# Ramp stops at intensity 0, 0.25, 0.5, 0.75, 1
HEAT_STOPS: tuple[tuple[int, int, int], ...] = (
    (0, 0, 255),    # blue
    (0, 255, 255),  # cyan
    (0, 255, 0),    # green
    (255, 255, 0),  # yellow
    (255, 0, 0),    # red
)

# Colour alpha: 0.4 at zero intensity, capped at 0.85
_COLOR_ALPHA_FLOOR = 0.4
_COLOR_ALPHA_SLOPE = 0.6
_COLOR_ALPHA_CEIL = 0.85

# Shape opacity applied on top (canvas globalAlpha / rectangle fillOpacity)
_OPACITY_FLOOR = 0.3
_OPACITY_SLOPE = 0.7
_OPACITY_CEIL = 0.8


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def heat_rgb(intensity: float) -> tuple[int, int, int]:
    """Interpolated ramp colour for an intensity in [0, 1] (clamped)."""
    val = _clamp01(intensity)
    segments = len(HEAT_STOPS) - 1
    seg = min(int(val * segments), segments - 1)
    t = val * segments - seg
    lo, hi = HEAT_STOPS[seg], HEAT_STOPS[seg + 1]
    return tuple(round_half_up(a + (b - a) * t) for a, b in zip(lo, hi))  # type: ignore[return-value]


def heat_alpha(intensity: float) -> float:
    return min(_COLOR_ALPHA_CEIL, _COLOR_ALPHA_FLOOR + _clamp01(intensity) * _COLOR_ALPHA_SLOPE)


def cell_opacity(intensity: float) -> float:
    return min(_OPACITY_CEIL, _OPACITY_FLOOR + _clamp01(intensity) * _OPACITY_SLOPE)


def heat_color(intensity: float) -> tuple[int, int, int, float]:
    """(r, g, b, alpha). More overlap is redder and more opaque."""
    r, g, b = heat_rgb(intensity)
    return r, g, b, heat_alpha(intensity)


def rgba_css(color: tuple[int, int, int, float]) -> str:
    r, g, b, a = color
    return f"rgba({r}, {g}, {b}, {a:.2f})"


def rgb_hex(rgb: tuple[int, int, int]) -> str:
    return "#{:02x}{:02x}{:02x}".format(*rgb)
