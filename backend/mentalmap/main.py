"""FastAPI app factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mentalmap.config import settings
from mentalmap.dependencies import close_clients

load_dotenv()

logging.basicConfig(
    level=getattr(logging, settings.mentalmap_log_level.upper(), logging.DEBUG),
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_clients()


def create_app() -> FastAPI:
    app = FastAPI(
        title="MentalMap Heatmap",
        description="Overlap heatmaps, hover tooltips and exports for mental-map survey answers",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Import the stage module so @stage decorators fire
    import mentalmap.engine.stages  # noqa: F401

    from mentalmap.api.router import api_router

    app.include_router(api_router)

    return app


app = create_app()
