"""/api/sessions — heatmap analysis sessions."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response, StreamingResponse

from mentalmap.dependencies import get_geocoder, get_session_store, get_settings, get_study_client
from mentalmap.engine.normalize import features_from_geojson
from mentalmap.errors import ExportError, SessionNotFound, StudyLoadError
from mentalmap.geocode.client import ReverseGeocoder
from mentalmap.models.requests import (
    ExportFormat,
    HeatmapRequest,
    HoverRequest,
    SessionCreateRequest,
    ViewportRequest,
)
from mentalmap.models.responses import SessionResponse, TooltipResponse
from mentalmap.session import AnalysisSession, SelectionState, SessionStore
from mentalmap.study.client import StudyClient
from mentalmap.study.export import flatten_responses

logger = logging.getLogger(__name__)

router = APIRouter()


def _session_or_404(session_id: str, store: SessionStore) -> AnalysisSession:
    try:
        return store.get(session_id)
    except SessionNotFound:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}") from None


def _selection(req: HeatmapRequest) -> SelectionState:
    return SelectionState(
        question_ids=list(req.question_ids),
        grid_size=req.grid_size,
        min_overlap=req.min_overlap,
        smoothing=req.smoothing,
        visual_blur=req.visual_blur,
    )


@router.post("/sessions", response_model=SessionResponse, status_code=201)
async def create_session(
    req: SessionCreateRequest,
    store: SessionStore = Depends(get_session_store),
    geocoder: ReverseGeocoder = Depends(get_geocoder),
    settings=Depends(get_settings),
) -> SessionResponse:
    if req.geojson is not None:
        raw_features = req.geojson.features
    elif req.responses is not None:
        raw_features = flatten_responses(req.responses)["features"]
    else:
        raise HTTPException(status_code=422, detail="Either geojson or responses is required")

    session = store.create(
        features_from_geojson(raw_features),
        geocoder=geocoder,
        question_labels=req.question_labels,
        participant_codes=req.participant_codes,
        settings=settings,
    )
    return SessionResponse(**session.summary())


@router.post("/studies/{study_id}/sessions", response_model=SessionResponse, status_code=201)
async def create_study_session(
    study_id: str,
    store: SessionStore = Depends(get_session_store),
    geocoder: ReverseGeocoder = Depends(get_geocoder),
    study_client: StudyClient = Depends(get_study_client),
    settings=Depends(get_settings),
) -> SessionResponse:
    try:
        geojson, labels = await study_client.load_study(study_id)
    except StudyLoadError as e:
        logger.error("Study %s failed to load: %s", study_id, e)
        raise HTTPException(status_code=502, detail="failed to load") from e

    session = store.create(
        features_from_geojson(geojson["features"]),
        geocoder=geocoder,
        question_labels=labels,
        settings=settings,
        study_id=study_id,
    )
    return SessionResponse(**session.summary())


@router.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str, store: SessionStore = Depends(get_session_store)) -> SessionResponse:
    return SessionResponse(**_session_or_404(session_id, store).summary())


@router.delete("/sessions/{session_id}", status_code=204)
async def delete_session(session_id: str, store: SessionStore = Depends(get_session_store)) -> Response:
    _session_or_404(session_id, store)
    store.delete(session_id)
    return Response(status_code=204)


@router.post("/sessions/{session_id}/heatmap", response_model=SessionResponse)
async def apply_heatmap(
    session_id: str,
    req: HeatmapRequest,
    store: SessionStore = Depends(get_session_store),
) -> SessionResponse:
    session = _session_or_404(session_id, store)
    summary = await session.apply(_selection(req))
    if summary is None:
        # A newer request took over; report the session as it is now
        summary = session.summary()
    return SessionResponse(**summary)


async def _stream_heatmap(session: AnalysisSession, selection: SelectionState) -> AsyncGenerator[str, None]:
    async for event in session.compute_streaming(selection):
        status = event.get("status")
        if status == "done":
            yield f"event: result\ndata: {json.dumps(event['summary'])}\n\n"
        elif status == "superseded":
            yield f"event: superseded\ndata: {json.dumps(event)}\n\n"
            return
        else:
            yield f"event: progress\ndata: {json.dumps(event)}\n\n"

    yield f"event: done\ndata: {json.dumps({'type': 'done'})}\n\n"


@router.post("/sessions/{session_id}/heatmap/stream")
async def stream_heatmap(
    session_id: str,
    req: HeatmapRequest,
    store: SessionStore = Depends(get_session_store),
) -> StreamingResponse:
    session = _session_or_404(session_id, store)
    return StreamingResponse(
        _stream_heatmap(session, _selection(req)),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.post("/sessions/{session_id}/viewport", response_model=SessionResponse)
async def set_viewport(
    session_id: str,
    req: ViewportRequest,
    store: SessionStore = Depends(get_session_store),
) -> SessionResponse:
    session = _session_or_404(session_id, store)
    size = None
    if req.width is not None or req.height is not None:
        size = (req.width or session.surface.width, req.height or session.surface.height)
    session.set_viewport(center=req.center, zoom=req.zoom, size=size)
    return SessionResponse(**session.summary())


@router.post("/sessions/{session_id}/hover", response_model=TooltipResponse)
async def hover(
    session_id: str,
    req: HoverRequest,
    store: SessionStore = Depends(get_session_store),
) -> TooltipResponse:
    session = _session_or_404(session_id, store)
    return TooltipResponse(**session.hover(req.lat, req.lng))


@router.post("/sessions/{session_id}/leave", response_model=TooltipResponse)
async def leave(session_id: str, store: SessionStore = Depends(get_session_store)) -> TooltipResponse:
    session = _session_or_404(session_id, store)
    return TooltipResponse(**session.leave())


@router.get("/sessions/{session_id}/tooltip", response_model=TooltipResponse)
async def tooltip(session_id: str, store: SessionStore = Depends(get_session_store)) -> TooltipResponse:
    session = _session_or_404(session_id, store)
    return TooltipResponse(**session.tooltip.state.to_dict())


@router.get("/sessions/{session_id}/export")
async def export_session(
    session_id: str,
    format: ExportFormat = Query(default="png"),
    store: SessionStore = Depends(get_session_store),
) -> Response:
    session = _session_or_404(session_id, store)
    try:
        result = session.export(format)
    except ExportError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
    return Response(
        content=result.data,
        media_type=result.media_type,
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )
