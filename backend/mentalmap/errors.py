"""Domain exceptions."""

from __future__ import annotations


class MentalMapError(Exception):
    """Base class for all mental-map analysis errors."""


class HeatmapCancelled(MentalMapError):
    """A newer configuration superseded the running heatmap computation."""


class StudyLoadError(MentalMapError):
    """The study export or study configuration could not be fetched."""


class ExportError(MentalMapError):
    """Converting the rendered view to an image failed."""


class SessionNotFound(MentalMapError):
    pass
