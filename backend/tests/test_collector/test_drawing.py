"""Tests for the freehand drawing controller."""

from mentalmap.collector.drawing import DrawingController, polygon_to_feature
from mentalmap.engine.normalize import features_from_geojson, normalize_features


def _draw(ctrl, points):
    ctrl.start()
    ctrl.pointer_down(*points[0])
    for p in points[1:]:
        ctrl.pointer_move(*p)
    return ctrl.pointer_up()


def test_start_stop_toggles_navigation():
    modes = []
    ctrl = DrawingController(on_drawing_change=modes.append)
    ctrl.start()
    assert not ctrl.navigation_enabled
    assert ctrl.cursor == "crosshair"
    ctrl.stop()
    assert ctrl.navigation_enabled
    assert modes == [True, False]


def test_stroke_becomes_polygon():
    changes = []
    ctrl = DrawingController(on_polygons_change=changes.append)
    polygon = _draw(ctrl, [(48.0, 11.0), (48.0, 11.5), (48.5, 11.5), (48.5, 11.0)])
    assert polygon is not None
    assert polygon.bounds == (11.0, 48.0, 11.5, 48.5)
    assert len(ctrl.polygons) == 1
    assert len(changes[-1]) == 1
    # Drawing mode ends after each stroke
    assert not ctrl.is_drawing


def test_short_stroke_discarded():
    ctrl = DrawingController()
    assert _draw(ctrl, [(48.0, 11.0), (48.1, 11.1)]) is None
    assert ctrl.polygons == []
    assert not ctrl.is_drawing


def test_pointer_ignored_outside_drawing_mode():
    ctrl = DrawingController()
    ctrl.pointer_down(48.0, 11.0)
    ctrl.pointer_move(48.1, 11.1)
    assert ctrl.pointer_up() is None
    assert ctrl.points == []


def test_delete_clear_and_reset():
    ctrl = DrawingController()
    _draw(ctrl, [(0, 0), (0, 1), (1, 1)])
    _draw(ctrl, [(2, 2), (2, 3), (3, 3)])
    ctrl.delete(0)
    assert ctrl.polygons[0].bounds[0] == 2
    ctrl.clear()
    assert ctrl.polygons == []
    ctrl.start()
    ctrl.reset()
    assert not ctrl.is_drawing


def test_polygon_feature_is_closed_lng_lat():
    ctrl = DrawingController()
    feature = polygon_to_feature(_draw(ctrl, [(48.0, 11.0), (48.0, 11.5), (48.5, 11.5)]))
    ring = feature["geometry"]["coordinates"][0]
    assert feature["geometry"]["type"] == "Polygon"
    assert ring[0] == [11.0, 48.0]
    assert ring[0] == ring[-1]


def test_response_payload_round_trips_through_normalizer():
    ctrl = DrawingController()
    _draw(ctrl, [(48.0, 11.0), (48.0, 11.5), (48.5, 11.5), (48.5, 11.0)])
    payload = ctrl.response_payload("P01", "q1")
    assert payload["participantId"] == "P01"
    assert payload["questionId"] == "q1"

    stored = payload["geometry"]["features"][0]
    assert stored["properties"] == {"id": 1}
    assert stored["geometry"]["type"] == "Feature"

    # The stored answer is one Feature layer deep, as the export delivers it
    rings, _, dropped = normalize_features(features_from_geojson(payload["geometry"]["features"]))
    assert dropped == 0
    assert rings[0].bbox == (11.0, 48.0, 11.5, 48.5)
