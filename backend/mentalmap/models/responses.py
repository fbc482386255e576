"""API response models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    stages_registered: int = 0
    sessions_open: int = 0


class QuestionInfo(BaseModel):
    id: str
    label: str


class GridInfo(BaseModel):
    width: int
    height: int
    cell_size: float
    max_value: float
    area_too_large: bool = False


class SelectionInfo(BaseModel):
    question_ids: list[str] = Field(default_factory=list)
    grid_size: float
    min_overlap: int
    smoothing: bool
    visual_blur: bool


class SessionResponse(BaseModel):
    session_id: str
    study_id: str | None = None
    status: str
    progress: float = 0.0
    num_features: int = 0
    questions: list[QuestionInfo] = Field(default_factory=list)
    selection: SelectionInfo
    has_data: bool = False
    grid: GridInfo | None = None
    renderer: str | None = None
    drawn_cells: int = 0
    dropped_features: int = 0
    errors: dict[str, str] = Field(default_factory=dict)
    viewport: dict[str, Any] = Field(default_factory=dict)


class TooltipResponse(BaseModel):
    visible: bool = False
    lat: float = 0.0
    lng: float = 0.0
    value: float = 0.0
    title: str = ""
    participant: str | None = None
    coords: str = ""
    place_line: str = ""
    place: dict[str, str | None] | None = None
    lines: list[str] = Field(default_factory=list)
