"""POST /api/collector/answers: replay drawn strokes into a stored answer."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter

from mentalmap.collector.drawing import DrawingController
from mentalmap.models.requests import CollectorAnswerRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/collector/answers")
async def collect_answer(req: CollectorAnswerRequest) -> dict[str, Any]:
    controller = DrawingController()
    discarded = 0
    for stroke in req.strokes:
        controller.start()
        if not stroke:
            controller.stop()
            discarded += 1
            continue
        controller.pointer_down(*stroke[0])
        for lat, lng in stroke[1:]:
            controller.pointer_move(lat, lng)
        if controller.pointer_up() is None:
            discarded += 1

    logger.info(
        "Answer for %s/%s: %d polygon(s), %d stroke(s) discarded",
        req.participant_code,
        req.question_id,
        len(controller.polygons),
        discarded,
    )
    payload = controller.response_payload(req.participant_code, req.question_id)
    payload["discarded_strokes"] = discarded
    return payload
