"""Tests for the heat colour ramp."""

from mentalmap.render import colors
from mentalmap.render.colors import cell_opacity, heat_alpha, heat_color, heat_rgb, rgb_hex, rgba_css


def test_ramp_stops():
    assert heat_rgb(0.0) == (0, 0, 255)
    assert heat_rgb(0.25) == (0, 255, 255)
    assert heat_rgb(0.5) == (0, 255, 0)
    assert heat_rgb(0.75) == (255, 255, 0)
    assert heat_rgb(1.0) == (255, 0, 0)


def test_ramp_interpolates_and_clamps():
    r, g, b = heat_rgb(0.125)
    assert (r, b) == (0, 255)
    assert 120 < g < 135
    assert heat_rgb(-1.0) == heat_rgb(0.0)
    assert heat_rgb(3.0) == heat_rgb(1.0)


def test_ramp_channels_round_half_up(monkeypatch):
    monkeypatch.setattr(colors, "HEAT_STOPS", ((0, 0, 0), (5, 1, 3)))
    # 2.5, 0.5 and 1.5 all round up
    assert heat_rgb(0.5) == (3, 1, 2)


def test_alpha_grows_with_intensity_within_limits():
    assert heat_alpha(0.0) == 0.4
    assert heat_alpha(1.0) == 0.85
    assert heat_alpha(0.5) > heat_alpha(0.2)
    assert cell_opacity(0.0) == 0.3
    assert cell_opacity(1.0) == 0.8
    assert heat_color(1.0) == (255, 0, 0, 0.85)


def test_css_formatting():
    assert rgba_css((1, 2, 3, 0.4)) == "rgba(1, 2, 3, 0.40)"
    assert rgb_hex((255, 0, 16)) == "#ff0010"
