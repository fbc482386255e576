"""Number formatting helpers. No engine imports."""

from __future__ import annotations

import math
import re


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives (2.5 → 3), unlike ``round``."""
    return math.floor(value + 0.5)


def format_overlap(value: float, smoothed: bool) -> str:
    """Overlap value as shown to the analyst: 2 decimals when smoothed, integer otherwise."""
    if smoothed:
        return f"{value:.2f}"
    return str(round_half_up(value))


def format_percent(fraction: float) -> str:
    return f"{round_half_up(fraction * 100)}%"


def safe_filename_part(text: str) -> str:
    """Replace runs of anything outside [a-zA-Z0-9_-] with a single underscore."""
    return re.sub(r"[^a-zA-Z0-9_-]+", "_", text)
