"""FastAPI dependency injection."""

from __future__ import annotations

from mentalmap.config import settings
from mentalmap.geocode.client import ReverseGeocoder
from mentalmap.session import SessionStore
from mentalmap.study.client import StudyClient

# Process-wide: the address cache and rate limit are shared by all sessions
_session_store = SessionStore()
_geocoder: ReverseGeocoder | None = None
_study_client: StudyClient | None = None


def get_settings():
    return settings


def get_session_store() -> SessionStore:
    return _session_store


def get_geocoder() -> ReverseGeocoder:
    global _geocoder
    if _geocoder is None:
        _geocoder = ReverseGeocoder.from_settings(settings)
    return _geocoder


def get_study_client() -> StudyClient:
    global _study_client
    if _study_client is None:
        _study_client = StudyClient.from_settings(settings)
    return _study_client


async def close_clients() -> None:
    """Close the shared HTTP clients; the next request builds fresh ones."""
    global _geocoder, _study_client
    if _geocoder is not None:
        await _geocoder.aclose()
        _geocoder = None
    if _study_client is not None:
        await _study_client.aclose()
        _study_client = None
