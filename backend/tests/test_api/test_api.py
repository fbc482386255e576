"""Tests for API endpoints (geocoder and study service are mocked)."""

from __future__ import annotations

import httpx
from fastapi.testclient import TestClient

from mentalmap import dependencies
from mentalmap.dependencies import get_geocoder, get_session_store, get_study_client
from mentalmap.export import snapshot
from mentalmap.main import app
from mentalmap.session import SessionStore
from mentalmap.study.client import StudyClient
from tests.conftest import QUESTION_LABELS, SAMPLE_COLLECTION, FakeClock, RecordingNominatim, make_geocoder


def _study_service(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/api/export/s1/geojson":
        return httpx.Response(200, json=SAMPLE_COLLECTION)
    if path == "/api/export/s1/participant/P01/geojson":
        return httpx.Response(200, json={"type": "FeatureCollection", "features": SAMPLE_COLLECTION["features"][:1]})
    if path == "/api/studies/s1":
        return httpx.Response(200, json={"config": {"questions": [{"id": "q1", "text": "Wo ist das Zentrum?"}]}})
    return httpx.Response(500, text="upstream down")


store = SessionStore()
app.dependency_overrides[get_session_store] = lambda: store
app.dependency_overrides[get_geocoder] = lambda: make_geocoder(RecordingNominatim(), FakeClock())
app.dependency_overrides[get_study_client] = lambda: StudyClient(
    "http://study.test",
    client=httpx.AsyncClient(transport=httpx.MockTransport(_study_service)),
)

client = TestClient(app)


def _create_session() -> str:
    response = client.post("/api/sessions", json={"geojson": SAMPLE_COLLECTION, "question_labels": QUESTION_LABELS})
    assert response.status_code == 201
    return response.json()["session_id"]


def test_health():
    response = client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["stages_registered"] == 4


def test_create_session():
    response = client.post("/api/sessions", json={"geojson": SAMPLE_COLLECTION, "question_labels": QUESTION_LABELS})
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "idle"
    assert data["num_features"] == 3
    assert data["questions"][0] == {"id": "q1", "label": "Wo ist das Zentrum?"}
    assert data["selection"]["grid_size"] == 0.05


def test_create_session_from_response_rows():
    rows = [{
        "question_id": "q1",
        "participant_code": "P09",
        "geometry": {
            "type": "FeatureCollection",
            "features": [{"type": "Feature", "properties": {}, "geometry": SAMPLE_COLLECTION["features"][0]["geometry"]}],
        },
    }]
    response = client.post("/api/sessions", json={"responses": rows})
    assert response.status_code == 201
    assert response.json()["num_features"] == 1


def test_create_session_requires_input():
    assert client.post("/api/sessions", json={}).status_code == 422


def test_study_session():
    response = client.post("/api/studies/s1/sessions")
    assert response.status_code == 201
    data = response.json()
    assert data["study_id"] == "s1"
    assert data["questions"][0]["label"] == "Wo ist das Zentrum?"


def test_study_failed_to_load():
    response = client.post("/api/studies/unknown/sessions")
    assert response.status_code == 502
    assert response.json()["detail"] == "failed to load"


def test_unknown_session():
    assert client.get("/api/sessions/nope").status_code == 404
    assert client.post("/api/sessions/nope/hover", json={"lat": 0, "lng": 0}).status_code == 404


def test_heatmap_and_hover():
    sid = _create_session()
    response = client.post(f"/api/sessions/{sid}/heatmap", json={"grid_size": 0.1, "smoothing": False})
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["renderer"] == "vector"
    assert data["grid"]["max_value"] >= 2
    assert data["drawn_cells"] > 0

    tooltip = client.post(f"/api/sessions/{sid}/hover", json={"lat": 48.25, "lng": 11.65}).json()
    assert tooltip["visible"]
    assert tooltip["title"] == "Überlappungen: 2"
    assert tooltip["place_line"] == "Lade Ort..."
    assert client.get(f"/api/sessions/{sid}/tooltip").json()["visible"]

    assert not client.post(f"/api/sessions/{sid}/leave").json()["visible"]


def test_heatmap_validation():
    sid = _create_session()
    assert client.post(f"/api/sessions/{sid}/heatmap", json={"grid_size": 0.3}).status_code == 422
    assert client.post(f"/api/sessions/{sid}/heatmap", json={"min_overlap": 51}).status_code == 422


def test_heatmap_no_data():
    sid = _create_session()
    data = client.post(f"/api/sessions/{sid}/heatmap", json={"question_ids": ["missing"]}).json()
    assert data["status"] == "ready"
    assert data["has_data"] is False


def test_heatmap_stream():
    sid = _create_session()
    response = client.post(f"/api/sessions/{sid}/heatmap/stream", json={"grid_size": 0.05})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    text = response.text
    assert "event: progress" in text
    assert "event: result" in text
    assert text.rstrip().endswith('data: {"type": "done"}')


def test_viewport():
    sid = _create_session()
    data = client.post(
        f"/api/sessions/{sid}/viewport",
        json={"center": [48.2, 11.6], "zoom": 9, "width": 1024, "height": 768},
    ).json()
    assert data["viewport"]["zoom"] == 9
    assert data["viewport"]["size"] == [1024, 768]


def test_export_svg():
    sid = _create_session()
    client.post(f"/api/sessions/{sid}/heatmap", json={"grid_size": 0.25})
    response = client.get(f"/api/sessions/{sid}/export", params={"format": "svg"})
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("image/svg+xml")
    assert 'filename="Heatmap_Alle_grid0.25.svg"' in response.headers["content-disposition"]


def test_export_failure_is_500(monkeypatch):
    def _broken(svg, scale=2):
        raise RuntimeError("no cairo")

    monkeypatch.setattr(snapshot, "svg_to_png", _broken)
    sid = _create_session()
    response = client.get(f"/api/sessions/{sid}/export", params={"format": "png"})
    assert response.status_code == 500
    assert "no cairo" in response.json()["detail"]
    # The session is still usable
    assert client.get(f"/api/sessions/{sid}").status_code == 200


def test_delete_session():
    sid = _create_session()
    assert client.delete(f"/api/sessions/{sid}").status_code == 204
    assert client.get(f"/api/sessions/{sid}").status_code == 404


def test_viewer_export_from_geojson():
    response = client.post("/api/viewer/export", json={
        "geojson": SAMPLE_COLLECTION,
        "participant_code": "P01",
        "question_labels": QUESTION_LABELS,
        "question_id": "q2",
        "format": "svg",
    })
    assert response.status_code == 200
    assert 'filename="MentalMap_P01_Wo_wohnen_Sie__mit_Karte.svg"' in response.headers["content-disposition"]
    assert b"<circle" in response.content


def test_viewer_export_from_study():
    response = client.post("/api/viewer/export", json={
        "study_id": "s1",
        "participant_code": "P01",
        "format": "svg",
    })
    assert response.status_code == 200
    assert b"<polygon" in response.content


def test_viewer_export_requires_source():
    assert client.post("/api/viewer/export", json={"format": "svg"}).status_code == 422


def test_viewer_export_study_failure():
    response = client.post("/api/viewer/export", json={"study_id": "s2", "participant_code": "P01"})
    assert response.status_code == 502


def test_collector_answer_feeds_a_session():
    response = client.post("/api/collector/answers", json={
        "participant_code": "P07",
        "question_id": "q1",
        "strokes": [
            [[48.1, 11.5], [48.3, 11.5], [48.3, 11.8], [48.1, 11.8]],
            [[48.0, 11.0], [48.0, 11.1]],
            [],
        ],
    })
    assert response.status_code == 200
    answer = response.json()
    assert answer["participantId"] == "P07"
    assert answer["questionId"] == "q1"
    assert answer["discarded_strokes"] == 2
    features = answer["geometry"]["features"]
    assert len(features) == 1
    assert features[0]["geometry"]["type"] == "Feature"
    assert features[0]["geometry"]["geometry"]["coordinates"][0][0] == [11.5, 48.1]

    row = {"question_id": "q1", "participant_code": "P07", "geometry": answer["geometry"]}
    created = client.post("/api/sessions", json={"responses": [row]})
    assert created.status_code == 201
    assert created.json()["num_features"] == 1


def test_shutdown_closes_shared_http_clients():
    geocoder = dependencies.get_geocoder()
    study_client = dependencies.get_study_client()

    with TestClient(app) as running:
        assert running.get("/api/health").status_code == 200

    assert geocoder._client.is_closed
    assert study_client._client.is_closed
    assert dependencies.get_geocoder() is not geocoder
