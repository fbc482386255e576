"""API request models."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from mentalmap.engine.config import DEFAULT_GRID_SIZE, GRID_SIZES, MAX_MIN_OVERLAP
from mentalmap.models.geojson import FeatureCollectionIn
from mentalmap.render.surface import MAX_ZOOM, MIN_ZOOM

ExportFormat = Literal["png", "jpg", "svg"]


class SessionCreateRequest(BaseModel):
    geojson: FeatureCollectionIn | None = Field(default=None, description="Export FeatureCollection of the study")
    responses: list[dict[str, Any]] | None = Field(
        default=None,
        description="Stored response rows, flattened into an export FeatureCollection",
    )
    question_labels: dict[str, str] = Field(default_factory=dict, description="question_id → display text")
    participant_codes: dict[str, str] = Field(
        default_factory=dict,
        description="participant_id → participant code, for features without a code",
    )


class HeatmapRequest(BaseModel):
    question_ids: list[str] = Field(default_factory=list, description="Selected questions; empty means all")
    grid_size: float = Field(default=DEFAULT_GRID_SIZE, description="Cell size in degrees")
    min_overlap: int = Field(default=0, ge=0, le=MAX_MIN_OVERLAP)
    smoothing: bool = True
    visual_blur: bool = True

    @field_validator("grid_size")
    @classmethod
    def _known_grid_size(cls, v: float) -> float:
        if v not in GRID_SIZES:
            raise ValueError(f"grid_size must be one of {list(GRID_SIZES)}")
        return v


class ViewportRequest(BaseModel):
    center: tuple[float, float] | None = Field(default=None, description="(lat, lng)")
    zoom: float | None = Field(default=None, ge=MIN_ZOOM, le=MAX_ZOOM)
    width: int | None = Field(default=None, gt=0)
    height: int | None = Field(default=None, gt=0)


class HoverRequest(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class ViewerExportRequest(BaseModel):
    geojson: FeatureCollectionIn | None = Field(default=None, description="Answers of one participant")
    study_id: str | None = Field(default=None, description="Load the answers from the study service instead")
    participant_code: str = ""
    question_labels: dict[str, str] = Field(default_factory=dict)
    question_id: str = Field(default="all", description="'all' or one question id")
    format: ExportFormat = "png"
    width: int = Field(default=800, gt=0)
    height: int = Field(default=600, gt=0)


class CollectorAnswerRequest(BaseModel):
    participant_code: str
    question_id: str
    strokes: list[list[tuple[float, float]]] = Field(
        default_factory=list,
        description="Pointer paths as (lat, lng), one per press-drag-release",
    )
