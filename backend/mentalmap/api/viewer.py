"""POST /api/viewer/export — one participant's answers as an image."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from mentalmap.dependencies import get_study_client
from mentalmap.engine.normalize import features_from_geojson
from mentalmap.errors import ExportError, StudyLoadError
from mentalmap.export.viewer import MentalMapViewer
from mentalmap.models.requests import ViewerExportRequest
from mentalmap.render.surface import MapSurface
from mentalmap.study.client import StudyClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/viewer")


@router.post("/export")
async def export_viewer(
    req: ViewerExportRequest,
    study_client: StudyClient = Depends(get_study_client),
) -> Response:
    labels = dict(req.question_labels)
    if req.geojson is not None:
        raw_features = req.geojson.features
    elif req.study_id and req.participant_code:
        try:
            collection = await study_client.fetch_participant_geojson(req.study_id, req.participant_code)
            if not labels:
                labels = await study_client.fetch_question_labels(req.study_id)
        except StudyLoadError as e:
            raise HTTPException(status_code=502, detail="failed to load") from e
        raw_features = collection["features"]
    else:
        raise HTTPException(status_code=422, detail="Either geojson or study_id with participant_code is required")

    viewer = MentalMapViewer(
        features_from_geojson(raw_features),
        participant_code=req.participant_code,
        question_labels=labels,
        surface=MapSurface(size=(req.width, req.height)),
    )
    viewer.select(req.question_id)

    try:
        result = viewer.export(req.format)
    except ExportError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
    return Response(
        content=result.data,
        media_type=result.media_type,
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )
