"""Tests for the hover tooltip state machine."""

import asyncio

import httpx
import numpy as np
import pytest

from mentalmap.engine.context import OWNER_EMPTY, OWNER_MULTIPLE, Grid, MapFeature, RingData
from mentalmap.engine.rasterize import rasterize_sync
from mentalmap.engine.smoothing import smooth
from mentalmap.geocode.client import ReverseGeocoder, cache_key
from mentalmap.geocode.format import PlaceRecord
from mentalmap.interaction.tooltip import NO_OWNER, PLACE_LOADING, TooltipController, resolve_owner
from mentalmap.render.surface import MapSurface
from tests.conftest import NOMINATIM_MUNICH, FakeClock, RecordingNominatim, make_geocoder, square_ring

DEBOUNCE = 0.01


def _features():
    return [
        MapFeature(id="1_1", question_id="q1", participant_code="P01"),
        MapFeature(id="2_1", question_id="q1", participant_id="17"),
    ]


def _grid(smoothed=False):
    rings = [
        RingData(coords=np.asarray(square_ring(0, 0, 1), dtype=np.float64), feature_index=0),
        RingData(coords=np.asarray(square_ring(3, 3, 1), dtype=np.float64), feature_index=1),
    ]
    grid = rasterize_sync(rings, [], 0.5)
    if smoothed:
        grid.smoothed = smooth(grid.counts)
    return grid


def _controller(geocoder, **bind_kwargs):
    ctrl = TooltipController(geocoder, debounce_s=DEBOUNCE)
    bind_kwargs.setdefault("smoothed", False)
    ctrl.bind(_grid(bind_kwargs["smoothed"]), _features(), **bind_kwargs)
    return ctrl


def _small_grid(owner, values):
    owner = np.asarray(owner, dtype=np.int64)
    values = np.asarray(values, dtype=np.float64)
    h, w = owner.shape
    return Grid(width=w, height=h, min_lat_key=0, min_lng_key=0, cell_size=1.0,
                counts=values, owner=owner, smoothed=values)


# --- Owner resolution ---


def test_single_owner_used_directly():
    grid = _small_grid([[0, -1], [-1, -1]], [[1.0, 0.0], [0.0, 0.0]])
    assert resolve_owner(grid, 0, 0) == 0


def test_halo_picks_unique_neighbour():
    grid = _small_grid(
        [[OWNER_EMPTY, 4, OWNER_EMPTY], [OWNER_EMPTY, OWNER_MULTIPLE, OWNER_EMPTY], [OWNER_EMPTY] * 3],
        [[0.3, 1.0, 0.3], [0.5, 1.02, 0.5], [0.2, 0.2, 0.2]],
    )
    assert resolve_owner(grid, 1, 1) == 4
    # Empty low cells next to a single owner resolve the same way
    assert resolve_owner(grid, 0, 0) == 4
    assert resolve_owner(grid, 2, 0) == NO_OWNER


def test_halo_not_used_above_single_contributor_ceiling():
    grid = _small_grid([[4, OWNER_MULTIPLE]], [[1.0, 1.2]])
    assert resolve_owner(grid, 0, 1) == NO_OWNER


def test_halo_ambiguous_neighbourhood():
    grid = _small_grid([[4, OWNER_MULTIPLE, 5]], [[1.0, 1.0, 1.0]])
    assert resolve_owner(grid, 0, 1) == NO_OWNER


# --- Display ---


def test_hover_shows_count_participant_and_placeholder(geocoder):
    ctrl = _controller(geocoder)
    state = ctrl.on_hover(0.1, 0.2)
    assert state.visible
    assert state.title == "Überlappungen: 1"
    assert state.participant == "P01"
    assert state.coords == "Lat: 0.10000 · Lng: 0.20000"
    assert state.place_line == PLACE_LOADING
    assert state.lines == ["Überlappungen: 1", "Proband: P01", state.coords, PLACE_LOADING]


def test_participant_code_lookup(geocoder):
    ctrl = _controller(geocoder, participant_codes={"17": "P17"})
    assert ctrl.on_hover(3.1, 3.1).participant == "P17"


def test_smoothed_value_two_decimals(geocoder):
    ctrl = _controller(geocoder, smoothed=True)
    state = ctrl.on_hover(0.1, 0.1)
    assert state.title == f"Überlappungen: {state.value:.2f}"
    assert "." in state.title


def test_inactive_cell_hides(geocoder):
    ctrl = _controller(geocoder)
    ctrl.on_hover(0.1, 0.1)
    assert not ctrl.on_hover(2.0, 2.0).visible
    assert not ctrl.on_hover(50.0, 50.0).visible
    assert ctrl.state.lines == []


def test_min_overlap_hides_low_cells(geocoder):
    ctrl = _controller(geocoder, min_overlap=2)
    assert not ctrl.on_hover(0.1, 0.1).visible


def test_unbound_controller_stays_hidden(geocoder):
    ctrl = TooltipController(geocoder)
    assert not ctrl.on_hover(0.1, 0.1).visible


def test_cache_hit_applied_synchronously(geocoder, nominatim):
    geocoder.cache.put(cache_key(0.1, 0.1), PlaceRecord.from_nominatim(NOMINATIM_MUNICH))
    ctrl = _controller(geocoder)
    state = ctrl.on_hover(0.1, 0.1)
    assert state.place_line.startswith("Bundesland: Bayern")
    assert not ctrl.has_pending_timer
    assert nominatim.count == 0


def test_no_event_loop_schedules_nothing(geocoder):
    ctrl = _controller(geocoder)
    ctrl.on_hover(0.1, 0.1)
    assert not ctrl.has_pending_timer


# --- Debounce and fetch ---


def test_debounced_fetch_fills_place(geocoder, nominatim):
    ctrl = _controller(geocoder)

    async def _scenario():
        ctrl.on_hover(0.1, 0.1)
        assert ctrl.has_pending_timer
        await asyncio.sleep(DEBOUNCE * 5)
        await ctrl.wait_idle()

    asyncio.run(_scenario())
    assert nominatim.count == 1
    assert ctrl.state.place_line == "Bundesland: Bayern · Landkreis: Landkreis München · Gemeinde: Unterföhring"
    assert not ctrl.has_pending_timer


def test_rapid_hovers_keep_one_timer(geocoder, nominatim):
    ctrl = _controller(geocoder)

    async def _scenario():
        for i in range(5):
            ctrl.on_hover(0.1 + i * 0.05, 0.1)
        await asyncio.sleep(DEBOUNCE * 5)
        await ctrl.wait_idle()

    asyncio.run(_scenario())
    assert nominatim.count == 1
    assert float(nominatim.requests[0].url.params["lat"]) == pytest.approx(0.3)


def test_leave_cancels_pending_fetch(geocoder, nominatim):
    ctrl = _controller(geocoder)

    async def _scenario():
        ctrl.on_hover(0.1, 0.1)
        ctrl.on_leave()
        await asyncio.sleep(DEBOUNCE * 5)

    asyncio.run(_scenario())
    assert nominatim.count == 0
    assert not ctrl.state.visible


def test_stale_result_not_applied():
    async def slow_handler(request):
        await asyncio.sleep(DEBOUNCE * 4)
        return httpx.Response(200, json=NOMINATIM_MUNICH)

    geocoder = ReverseGeocoder(
        client=httpx.AsyncClient(transport=httpx.MockTransport(slow_handler)),
        clock=FakeClock(),
    )
    ctrl = _controller(geocoder)

    async def _scenario():
        ctrl.on_hover(0.1, 0.1)
        await asyncio.sleep(DEBOUNCE * 2)
        # The first lookup is in flight; move to another participant's cell
        ctrl.on_hover(3.1, 3.1)
        await asyncio.sleep(DEBOUNCE * 8)
        await ctrl.wait_idle()

    asyncio.run(_scenario())
    assert ctrl.state.participant == "17"
    assert ctrl.state.place_line == PLACE_LOADING
    # The stale answer still lands in the shared cache
    assert geocoder.cached(0.1, 0.1) is not None


def test_failed_fetch_keeps_placeholder(fake_clock):
    geocoder = make_geocoder(RecordingNominatim(status_code=500), fake_clock)
    ctrl = _controller(geocoder)

    async def _scenario():
        ctrl.on_hover(0.1, 0.1)
        await asyncio.sleep(DEBOUNCE * 5)
        await ctrl.wait_idle()

    asyncio.run(_scenario())
    assert ctrl.state.visible
    assert ctrl.state.place_line == PLACE_LOADING


def test_surface_events_drive_tooltip(geocoder):
    surface = MapSurface()
    ctrl = _controller(geocoder)
    ctrl.attach(surface)

    surface.mouse_move(0.1, 0.1)
    assert ctrl.state.visible
    surface.mouse_out()
    assert not ctrl.state.visible

    ctrl.detach()
    surface.mouse_move(0.1, 0.1)
    assert not ctrl.state.visible
    assert surface.listener_count("mousemove") == 0
