"""Analysis sessions — one loaded study (or uploaded collection) being explored.

A session owns its features, its current heatmap grid, the map surface the
heatmap is drawn on and the hover tooltip. Every structural change (question
selection, grid size, smoothing) recomputes from scratch; a newer request
supersedes a running one and stale results are never applied. Changing only
the minimum overlap or the blur switch redraws the existing grid.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import Any

from mentalmap.engine.config import DEFAULT_GRID_SIZE, HeatmapConfig
from mentalmap.engine.context import Grid, HeatmapContext, MapFeature
from mentalmap.engine.normalize import filter_by_questions, unique_question_ids
from mentalmap.engine.pipeline import Pipeline, create_pipeline
from mentalmap.errors import HeatmapCancelled, SessionNotFound
from mentalmap.export.snapshot import ExportResult, export_view, heatmap_filename
from mentalmap.geocode.client import ReverseGeocoder
from mentalmap.interaction.tooltip import TooltipController
from mentalmap.render.strategy import RenderController
from mentalmap.render.surface import MapSurface

logger = logging.getLogger(__name__)

STATUS_IDLE = "idle"
STATUS_COMPUTING = "computing"
STATUS_READY = "ready"
STATUS_SUPERSEDED = "superseded"


@dataclass
class SelectionState:
    """What the analyst asked for. Empty ``question_ids`` means all questions."""

    question_ids: list[str] = field(default_factory=list)
    grid_size: float = DEFAULT_GRID_SIZE
    min_overlap: int = 0
    smoothing: bool = True
    visual_blur: bool = True

    def structural_key(self) -> tuple[Any, ...]:
        """Fields whose change requires a new grid."""
        return (tuple(sorted(self.question_ids)), self.grid_size, self.smoothing)


class AnalysisSession:
    def __init__(
        self,
        session_id: str,
        features: list[MapFeature],
        *,
        geocoder: ReverseGeocoder,
        question_labels: dict[str, str] | None = None,
        participant_codes: dict[str, str] | None = None,
        settings=None,
        surface: MapSurface | None = None,
        pipeline: Pipeline | None = None,
        study_id: str | None = None,
    ) -> None:
        if settings is None:
            from mentalmap.config import settings as app_settings

            settings = app_settings

        self.id = session_id
        self.study_id = study_id
        self.settings = settings
        self.features = features
        self.question_labels = dict(question_labels or {})
        self.participant_codes = dict(participant_codes or {})
        self.question_ids = unique_question_ids(features)

        self.surface = surface or MapSurface()
        self.pipeline = pipeline or create_pipeline()
        self.render = RenderController(self.surface)
        self.tooltip = TooltipController(geocoder, debounce_s=settings.geocode_debounce_s)
        self.tooltip.attach(self.surface)

        self.selection = SelectionState()
        self.status = STATUS_IDLE
        self.progress = 0.0
        self.status_message = ""
        self.generation = 0
        self.ctx: HeatmapContext | None = None
        self.grid: Grid | None = None
        self._applied_key: tuple[Any, ...] | None = None
        self._task: asyncio.Future | None = None

    # --- Selection ---

    @property
    def all_selected(self) -> bool:
        chosen = set(self.selection.question_ids)
        return not chosen or chosen >= set(self.question_ids)

    @property
    def selection_label(self) -> str:
        """``Alle`` when every question is selected, ``<n>_Fragen`` otherwise."""
        if self.all_selected:
            return "Alle"
        return f"{len(self.selection.question_ids)}_Fragen"

    def filtered_features(self, selection: SelectionState | None = None) -> list[MapFeature]:
        selection = selection or self.selection
        return filter_by_questions(self.features, selection.question_ids)

    def heatmap_config(self, selection: SelectionState | None = None) -> HeatmapConfig:
        selection = selection or self.selection
        return HeatmapConfig.from_settings(
            self.settings,
            cell_size=selection.grid_size,
            smoothing=selection.smoothing,
            visual_blur=selection.visual_blur,
            min_overlap=selection.min_overlap,
        )

    def needs_recompute(self, selection: SelectionState) -> bool:
        return self.grid is None or selection.structural_key() != self._applied_key

    # --- Computation ---

    def _begin(self, selection: SelectionState) -> tuple[HeatmapContext, int]:
        """Supersede whatever is running and set up a fresh context."""
        self.generation += 1
        gen = self.generation
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

        self.selection = selection
        self.status = STATUS_COMPUTING
        self.progress = 0.0
        self.status_message = ""
        self.render.clear()
        self.tooltip.reset()

        ctx = HeatmapContext(
            features=self.filtered_features(selection),
            config=self.heatmap_config(selection),
            is_cancelled=lambda: self.generation != gen,
        )
        return ctx, gen

    def _apply(self, ctx: HeatmapContext, gen: int) -> bool:
        """Install a finished result unless a newer request has started."""
        if gen != self.generation:
            logger.debug("Discarding stale heatmap result (generation %d, current %d)", gen, self.generation)
            return False
        self.ctx = ctx
        self.grid = ctx.grid if ctx.grid is not None else Grid.empty(ctx.config.cell_size)
        self._applied_key = self.selection.structural_key()
        self._draw()
        self.status = STATUS_READY
        self.progress = 100.0
        self.status_message = ""
        return True

    def _draw(self) -> None:
        config = self.heatmap_config()
        max_value = self.ctx.max_count if self.ctx is not None else None
        self.render.show(self.grid, config, max_value)
        self.tooltip.bind(
            self.grid,
            self.ctx.features if self.ctx is not None else [],
            smoothed=config.smoothing,
            min_overlap=config.min_overlap,
            participant_codes=self.participant_codes,
        )

    async def compute(self, selection: SelectionState | None = None) -> dict[str, Any] | None:
        """Compute and draw; returns the summary, or None when superseded."""
        selection = selection or self.selection
        ctx, gen = self._begin(selection)
        task = asyncio.ensure_future(self.pipeline.run(ctx))
        self._task = task
        await asyncio.wait({task})

        if task.cancelled():
            return None
        exc = task.exception()
        if isinstance(exc, HeatmapCancelled):
            logger.debug("Heatmap generation %d superseded", gen)
            return None
        if exc is not None:
            self.status = STATUS_IDLE
            raise exc
        if not self._apply(ctx, gen):
            return None
        return self.summary()

    async def compute_streaming(
        self, selection: SelectionState | None = None
    ) -> AsyncGenerator[dict[str, Any], None]:
        """Compute and draw, yielding pipeline progress events on the way."""
        selection = selection or self.selection
        ctx, gen = self._begin(selection)
        try:
            async for event in self.pipeline.run_streaming(ctx):
                self.progress = event["progress"]
                self.status_message = event["message"]
                yield event
        except HeatmapCancelled:
            yield {"status": STATUS_SUPERSEDED, "generation": gen}
            return
        if self._apply(ctx, gen):
            yield {"status": "done", "progress": 100.0, "summary": self.summary()}
        else:
            yield {"status": STATUS_SUPERSEDED, "generation": gen}

    async def apply(self, selection: SelectionState) -> dict[str, Any] | None:
        """Recompute when structure changed, otherwise only redraw."""
        if self.needs_recompute(selection):
            return await self.compute(selection)
        # Back on the applied grid: drop any compute still running for another key
        self.generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self.selection = selection
        self._draw()
        self.status = STATUS_READY
        self.progress = 100.0
        self.status_message = ""
        return self.summary()

    # --- Viewport / hover ---

    def set_viewport(
        self,
        *,
        center: tuple[float, float] | None = None,
        zoom: float | None = None,
        size: tuple[int, int] | None = None,
    ) -> None:
        if size is not None:
            self.surface.set_size(*size)
        if center is not None or zoom is not None:
            self.surface.set_view(center or self.surface.center, zoom)

    def hover(self, lat: float, lng: float) -> dict[str, Any]:
        self.surface.mouse_move(lat, lng)
        return self.tooltip.state.to_dict()

    def leave(self) -> dict[str, Any]:
        self.surface.mouse_out()
        return self.tooltip.state.to_dict()

    def export(self, fmt: str) -> ExportResult:
        """Snapshot of the current view; raises ExportError on failure."""
        filename = heatmap_filename(self.selection_label, self.selection.grid_size, fmt)
        return export_view(self.surface, self.render.renderer, fmt, filename)

    # --- Reporting ---

    def summary(self) -> dict[str, Any]:
        grid = self.grid
        renderer = self.render.renderer
        return {
            "session_id": self.id,
            "study_id": self.study_id,
            "status": self.status,
            "progress": self.progress,
            "num_features": len(self.features),
            "questions": [
                {"id": qid, "label": self.question_labels.get(qid, qid)} for qid in self.question_ids
            ],
            "selection": {
                "question_ids": list(self.selection.question_ids),
                "grid_size": self.selection.grid_size,
                "min_overlap": self.selection.min_overlap,
                "smoothing": self.selection.smoothing,
                "visual_blur": self.selection.visual_blur,
            },
            "has_data": bool(grid is not None and not grid.is_empty),
            "grid": None
            if grid is None
            else {
                "width": grid.width,
                "height": grid.height,
                "cell_size": grid.cell_size,
                "max_value": self.ctx.max_count if self.ctx is not None else grid.max_value,
                "area_too_large": grid.area_too_large,
            },
            "renderer": renderer.kind if renderer is not None else None,
            "drawn_cells": len(renderer.drawn_keys) if renderer is not None else 0,
            "dropped_features": self.ctx.dropped_features if self.ctx is not None else 0,
            "errors": dict(self.ctx.errors) if self.ctx is not None else {},
            "viewport": self.surface.to_dict(),
        }

    def close(self) -> None:
        self.generation += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self.tooltip.detach()
        self.tooltip.reset()
        self.render.clear()


class SessionStore:
    """In-memory registry of open analysis sessions."""

    def __init__(self) -> None:
        self._sessions: dict[str, AnalysisSession] = {}

    def create(self, features: list[MapFeature], **kwargs) -> AnalysisSession:
        session_id = uuid.uuid4().hex[:12]
        session = AnalysisSession(session_id, features, **kwargs)
        self._sessions[session_id] = session
        logger.info("Session %s opened with %d feature(s)", session_id, len(features))
        return session

    def get(self, session_id: str) -> AnalysisSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFound(session_id) from None

    def delete(self, session_id: str) -> None:
        session = self.get(session_id)
        session.close()
        del self._sessions[session_id]
        logger.info("Session %s closed", session_id)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions
