"""Shared test fixtures."""

from __future__ import annotations

import copy

import httpx
import pytest

from mentalmap.engine.context import MapFeature
from mentalmap.engine.normalize import features_from_geojson
from mentalmap.geocode.client import ReverseGeocoder


# Rings are [lng, lat] pairs, as in GeoJSON

TRIANGLE_RING = [[0, 0], [0, 1], [1, 0]]


def square_ring(lng: float, lat: float, side: float) -> list[list[float]]:
    return [
        [lng, lat],
        [lng + side, lat],
        [lng + side, lat + side],
        [lng, lat + side],
        [lng, lat],
    ]


def polygon_feature(
    ring: list[list[float]],
    *,
    question_id: str = "q1",
    participant_code: str | None = "P01",
    fid: str = "1_1",
    wrap: int = 0,
) -> dict:
    """Export-style feature; ``wrap`` adds that many Feature layers around the geometry."""
    geometry: dict = {"type": "Polygon", "coordinates": [ring]}
    for _ in range(wrap):
        geometry = {"type": "Feature", "properties": {}, "geometry": geometry}
    props = {"id": fid, "question_id": question_id, "created_at": "2024-03-05T14:07:09Z"}
    if participant_code is not None:
        props["participant_code"] = participant_code
    return {"type": "Feature", "properties": props, "geometry": geometry}


def point_feature(lng: float, lat: float, *, question_id: str = "q2", participant_code: str = "P03", fid: str = "9_1") -> dict:
    return {
        "type": "Feature",
        "properties": {"id": fid, "question_id": question_id, "participant_code": participant_code},
        "geometry": {"type": "Point", "coordinates": [lng, lat]},
    }


# Two participants answering q1 around Munich, one double-wrapped; one point for q2.
SAMPLE_COLLECTION = {
    "type": "FeatureCollection",
    "features": [
        polygon_feature(square_ring(11.40, 48.05, 0.40), participant_code="P01", fid="1_1"),
        polygon_feature(square_ring(11.55, 48.10, 0.40), participant_code="P02", fid="2_1", wrap=2),
        point_feature(11.57, 48.14, fid="3_1"),
    ],
}

QUESTION_LABELS = {"q1": "Wo ist das Zentrum?", "q2": "Wo wohnen Sie?"}

NOMINATIM_MUNICH = {
    "place_id": 1,
    "address": {
        "village": "Unterföhring",
        "county": "Landkreis München",
        "state": "Bayern",
        "country": "Deutschland",
        "country_code": "de",
    },
}


class FakeClock:
    """Monotonic clock under test control."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingNominatim:
    """httpx handler answering reverse-geocoding requests and recording them."""

    def __init__(self, payload: dict | None = None, status_code: int = 200) -> None:
        self.payload = NOMINATIM_MUNICH if payload is None else payload
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.payload)

    @property
    def count(self) -> int:
        return len(self.requests)


def make_geocoder(
    handler: RecordingNominatim, clock: FakeClock | None = None, min_interval: float = 1.0
) -> ReverseGeocoder:
    return ReverseGeocoder(
        url="https://nominatim.test/reverse",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        clock=clock or FakeClock(),
        min_interval=min_interval,
    )


@pytest.fixture
def sample_collection() -> dict:
    return copy.deepcopy(SAMPLE_COLLECTION)


@pytest.fixture
def sample_features(sample_collection) -> list[MapFeature]:
    return features_from_geojson(sample_collection["features"])


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def nominatim() -> RecordingNominatim:
    return RecordingNominatim()


@pytest.fixture
def geocoder(nominatim, fake_clock) -> ReverseGeocoder:
    return make_geocoder(nominatim, fake_clock)
