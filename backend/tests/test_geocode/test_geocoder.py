"""Tests for the reverse geocoder, its cache and the rate limit."""

import asyncio

import httpx

from mentalmap.geocode.client import AddressCache, RateLimiter, ReverseGeocoder, cache_key
from mentalmap.geocode.format import PlaceRecord
from tests.conftest import FakeClock, RecordingNominatim, make_geocoder


def test_cache_key_rounds_to_four_decimals():
    assert cache_key(48.123449, 11.56781) == "48.1234,11.5678"
    assert cache_key(48.12341, 11.56782) == cache_key(48.12344, 11.56776)


def test_address_cache_is_add_only():
    cache = AddressCache()
    first = PlaceRecord(commune="A")
    cache.put("k", first)
    cache.put("k", PlaceRecord(commune="B"))
    assert cache.get("k") is first
    assert "k" in cache
    assert len(cache) == 1


def test_rate_limiter_window():
    clock = FakeClock()
    limiter = RateLimiter(1.0, clock)
    assert limiter.try_acquire()
    clock.advance(0.5)
    assert not limiter.try_acquire()
    clock.advance(0.49)
    assert not limiter.try_acquire()
    clock.advance(0.01)
    assert limiter.try_acquire()


def test_lookup_parses_and_caches(geocoder, nominatim):
    place = asyncio.run(geocoder.lookup(48.1, 11.6))
    assert place == PlaceRecord(region="Bayern", departement="Landkreis München", commune="Unterföhring", country_code="de")
    assert geocoder.cached(48.1, 11.6) is place
    assert nominatim.count == 1


def test_request_shape(geocoder, nominatim):
    asyncio.run(geocoder.lookup(48.1, 11.6))
    request = nominatim.requests[0]
    params = request.url.params
    assert params["format"] == "json"
    assert params["lat"] == "48.1"
    assert params["lon"] == "11.6"
    assert params["addressdetails"] == "1"
    assert request.headers["accept-language"] == "de"
    assert request.headers["user-agent"] == "mentalmap-heatmap"


def test_same_bucket_fetches_once(geocoder, nominatim, fake_clock):
    asyncio.run(geocoder.lookup(48.12341, 11.56782))
    fake_clock.advance(5)
    place = asyncio.run(geocoder.lookup(48.12344, 11.56776))
    assert place is not None
    assert nominatim.count == 1


def test_rate_limit_skips_without_retry(geocoder, nominatim, fake_clock):
    async def _burst():
        results = []
        for i in range(10):
            results.append(await geocoder.lookup(48.0 + i * 0.01, 11.0))
            fake_clock.advance(0.05)
        return results

    results = asyncio.run(_burst())
    assert nominatim.count == 1
    assert results[0] is not None
    assert results[1:] == [None] * 9
    assert len(geocoder.cache) == 1

    fake_clock.advance(1.0)
    asyncio.run(geocoder.lookup(48.5, 11.0))
    assert nominatim.count == 2


def test_concurrent_lookups_share_one_fetch(nominatim):
    geocoder = make_geocoder(nominatim, min_interval=0.0)

    async def _both():
        return await asyncio.gather(geocoder.lookup(48.1, 11.6), geocoder.lookup(48.1, 11.6))

    asyncio.run(_both())
    assert nominatim.count == 1
    assert geocoder.fetch_count == 1


def test_http_error_returns_none_and_does_not_cache(fake_clock):
    handler = RecordingNominatim(status_code=503)
    geocoder = make_geocoder(handler, fake_clock)
    assert asyncio.run(geocoder.lookup(48.1, 11.6)) is None
    assert len(geocoder.cache) == 0


def test_malformed_body_returns_none(fake_clock):
    def handler(request):
        return httpx.Response(200, content=b"<html>busy</html>")

    geocoder = ReverseGeocoder(
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        clock=fake_clock,
    )
    assert asyncio.run(geocoder.lookup(48.1, 11.6)) is None


def test_network_error_returns_none(fake_clock):
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    geocoder = ReverseGeocoder(
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        clock=fake_clock,
    )
    assert asyncio.run(geocoder.lookup(48.1, 11.6)) is None
    assert geocoder.fetch_count == 1


def test_missing_address_fields_tolerated(fake_clock):
    geocoder = make_geocoder(RecordingNominatim(payload={"error": "Unable to geocode"}), fake_clock)
    place = asyncio.run(geocoder.lookup(0.0, -30.0))
    assert place == PlaceRecord()
