"""GeoJSON input models.

Features are kept as plain dicts: geometry may be wrapped in extra Feature
layers or be malformed, and the normalizer drops such input per feature
instead of rejecting the whole request.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class FeatureCollectionIn(BaseModel):
    type: Literal["FeatureCollection"] = "FeatureCollection"
    features: list[dict[str, Any]] = Field(default_factory=list)
