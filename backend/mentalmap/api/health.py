"""Health check."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from mentalmap.dependencies import get_session_store
from mentalmap.engine.registry import get_registry
from mentalmap.models.responses import HealthResponse
from mentalmap.session import SessionStore

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(store: SessionStore = Depends(get_session_store)) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version="0.1.0",
        stages_registered=get_registry().count,
        sessions_open=len(store),
    )
