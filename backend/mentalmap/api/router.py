"""Master API router — mounts all endpoint routers."""

from __future__ import annotations

from fastapi import APIRouter

from mentalmap.api import collector, health, sessions, viewer

api_router = APIRouter(prefix="/api")

api_router.include_router(health.router)
api_router.include_router(sessions.router)
api_router.include_router(viewer.router)
api_router.include_router(collector.router)
