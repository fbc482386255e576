"""Mental-map heatmap engine."""

from mentalmap.engine.config import HeatmapConfig
from mentalmap.engine.context import Grid, HeatmapContext, MapFeature
from mentalmap.engine.pipeline import Pipeline, create_pipeline
from mentalmap.engine.registry import Phase, get_registry, stage

__all__ = [
    "stage",
    "Phase",
    "get_registry",
    "HeatmapConfig",
    "HeatmapContext",
    "MapFeature",
    "Grid",
    "Pipeline",
    "create_pipeline",
]
