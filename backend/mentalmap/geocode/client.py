"""Reverse geocoder — Nominatim-compatible lookups behind a cache and a rate limit.

One instance serves the whole process: the address cache and the last-fetch
timestamp are shared by every analysis session. Lookups that would exceed
one request per ``min_interval`` seconds are skipped, not queued.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

import httpx

from mentalmap.geocode.format import PlaceRecord

logger = logging.getLogger(__name__)

NOMINATIM_REVERSE_URL = "https://nominatim.openstreetmap.org/reverse"
DEFAULT_ZOOM = 12


def cache_key(lat: float, lng: float) -> str:
    """~11 m bucket: coordinates rounded to 4 decimals."""
    return f"{lat:.4f},{lng:.4f}"


class AddressCache:
    """Add-only map from cache key to place record, kept for the process lifetime."""

    def __init__(self) -> None:
        self._entries: dict[str, PlaceRecord] = {}

    def get(self, key: str) -> PlaceRecord | None:
        return self._entries.get(key)

    def put(self, key: str, place: PlaceRecord) -> None:
        self._entries.setdefault(key, place)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class RateLimiter:
    """At most one acquisition per ``min_interval`` seconds; excess attempts are refused."""

    def __init__(self, min_interval: float = 1.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.min_interval = min_interval
        self._clock = clock
        self._last: float | None = None

    def try_acquire(self) -> bool:
        now = self._clock()
        if self._last is not None and now - self._last < self.min_interval:
            return False
        self._last = now
        return True


class ReverseGeocoder:
    """Async reverse geocoding with cache, rate limit and in-flight de-duplication."""

    def __init__(
        self,
        *,
        url: str = NOMINATIM_REVERSE_URL,
        user_agent: str = "mentalmap-heatmap",
        language: str = "de",
        zoom: int = DEFAULT_ZOOM,
        timeout: float = 10.0,
        min_interval: float = 1.0,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
        cache: AddressCache | None = None,
    ) -> None:
        self.url = url
        self.zoom = zoom
        self.cache = cache if cache is not None else AddressCache()
        self.rate_limiter = RateLimiter(min_interval, clock)
        self._headers = {"Accept-Language": language, "User-Agent": user_agent}
        self._client = client if client is not None else httpx.AsyncClient(timeout=timeout)
        self._in_flight: set[str] = set()
        self.fetch_count = 0

    @classmethod
    def from_settings(cls, settings, **overrides) -> ReverseGeocoder:
        kwargs = {
            "url": settings.geocoder_url,
            "user_agent": settings.geocoder_user_agent,
            "language": settings.geocoder_language,
            "zoom": settings.geocoder_zoom,
            "timeout": settings.geocoder_timeout_s,
            "min_interval": settings.geocode_min_interval_s,
        }
        kwargs.update(overrides)
        return cls(**kwargs)

    def cached(self, lat: float, lng: float) -> PlaceRecord | None:
        return self.cache.get(cache_key(lat, lng))

    async def lookup(self, lat: float, lng: float) -> PlaceRecord | None:
        """Place for (lat, lng), or None when skipped or failed.

        Cache hits never touch the network. A key already being fetched is
        not fetched again.
        """
        key = cache_key(lat, lng)
        hit = self.cache.get(key)
        if hit is not None:
            return hit
        if key in self._in_flight:
            logger.debug("Geocode %s already in flight", key)
            return None
        if not self.rate_limiter.try_acquire():
            logger.debug("Geocode %s skipped: rate limit", key)
            return None

        self._in_flight.add(key)
        self.fetch_count += 1
        try:
            resp = await self._client.get(
                self.url,
                params={
                    "format": "json",
                    "lat": lat,
                    "lon": lng,
                    "zoom": self.zoom,
                    "addressdetails": 1,
                },
                headers=self._headers,
            )
            resp.raise_for_status()
            place = PlaceRecord.from_nominatim(resp.json())
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Reverse geocoding failed for %s: %s", key, e)
            return None
        finally:
            self._in_flight.discard(key)

        self.cache.put(key, place)
        return place

    async def aclose(self) -> None:
        await self._client.aclose()
