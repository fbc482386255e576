"""Tests for the map surface model."""

import pytest

from mentalmap.render.surface import DEFAULT_CENTER, DEFAULT_ZOOM, LatLngBounds, MapSurface


def test_defaults():
    surface = MapSurface()
    assert surface.center == DEFAULT_CENTER
    assert surface.zoom == DEFAULT_ZOOM
    assert surface.size == (800, 600)


def test_center_projects_to_middle_of_container():
    surface = MapSurface(center=(48.1, 11.6), zoom=9, size=(640, 480))
    x, y = surface.lat_lng_to_container_point(48.1, 11.6)
    assert x == pytest.approx(320)
    assert y == pytest.approx(240)


def test_projection_round_trip():
    surface = MapSurface(center=(48.1, 11.6), zoom=7)
    x, y = surface.lat_lng_to_container_point(47.3, 10.2)
    lat, lng = surface.container_point_to_lat_lng(x, y)
    assert lat == pytest.approx(47.3)
    assert lng == pytest.approx(10.2)


def test_north_is_up():
    surface = MapSurface(center=(48.0, 11.0), zoom=8)
    _, y_north = surface.lat_lng_to_container_point(48.5, 11.0)
    _, y_south = surface.lat_lng_to_container_point(47.5, 11.0)
    assert y_north < y_south
    bounds = surface.get_bounds()
    assert bounds.south < 48.0 < bounds.north
    assert bounds.west < 11.0 < bounds.east


def test_view_change_events():
    surface = MapSurface()
    seen = []
    for event in ("move", "zoom", "resize"):
        surface.on(event, lambda e: seen.append(e["type"]))

    surface.set_view((48.0, 11.0), 8)
    surface.pan_by(10, 0)
    surface.set_size(800, 600)
    surface.set_size(1024, 768)

    assert seen == ["zoom", "move", "move", "resize"]


def test_off_removes_listener():
    surface = MapSurface()
    seen = []
    listener = seen.append
    surface.on("mousemove", listener)
    surface.mouse_move(48.0, 11.0)
    surface.off("mousemove", listener)
    surface.mouse_move(48.0, 11.0)
    assert len(seen) == 1
    assert seen[0] == {"type": "mousemove", "lat": 48.0, "lng": 11.0}
    assert surface.listener_count("mousemove") == 0


def test_zoom_is_clamped():
    surface = MapSurface()
    surface.set_zoom(25)
    assert surface.zoom == 18


def test_fit_bounds_shows_whole_box():
    surface = MapSurface(size=(800, 600))
    box = LatLngBounds(south=47.9, west=11.3, north=48.4, east=11.9)
    surface.fit_bounds(box, padding=50)
    view = surface.get_bounds()
    assert view.contains(box.south, box.west)
    assert view.contains(box.north, box.east)
    # One more zoom level would not fit
    assert surface.bounds_zoom(box, 50) == int(surface.zoom)


def test_bounds_from_points():
    box = LatLngBounds.from_points([(48.0, 11.0), (47.0, 12.0)])
    assert (box.south, box.west, box.north, box.east) == (47.0, 11.0, 48.0, 12.0)
    assert box.center == (47.5, 11.5)
    assert LatLngBounds.from_points([]) is None


def test_layers_tracked_once():
    surface = MapSurface()
    layer = object()
    surface.add_layer(layer)
    surface.add_layer(layer)
    assert surface.layers == [layer]
    surface.remove_layer(layer)
    assert not surface.has_layer(layer)
