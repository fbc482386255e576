"""Stage registry — every heatmap stage is a standalone function registered via decorator.

Usage:
    @stage(id="H2.smooth", phase=Phase.SMOOTHING, dependencies=["H1.rasterize"],
           progress=70, message="Glätte Daten...")
    def smooth_grid(ctx: HeatmapContext) -> None:
        ctx.grid.smoothed = smooth(ctx.grid.counts)

Stage functions may be plain functions or coroutines; the pipeline awaits
coroutines so long stages can yield to the event loop.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Union

if TYPE_CHECKING:
    from mentalmap.engine.context import HeatmapContext

logger = logging.getLogger(__name__)

StageFn = Callable[["HeatmapContext"], Union[None, Awaitable[None]]]


class Phase(enum.IntEnum):
    NORMALIZATION = 0
    RASTERIZATION = 1
    SMOOTHING = 2
    SUMMARY = 3


@dataclass
class StageSpec:
    id: str
    phase: Phase
    fn: StageFn
    dependencies: list[str] = field(default_factory=list)
    # Progress percentage reported when the stage starts
    progress: float = 0.0
    message: str = ""
    description: str = ""


class StageRegistry:
    """Registry of heatmap stages."""

    def __init__(self) -> None:
        self._stages: dict[str, StageSpec] = {}

    def register(self, spec: StageSpec) -> None:
        if spec.id in self._stages:
            raise ValueError(f"Duplicate stage ID: {spec.id}")
        self._stages[spec.id] = spec
        logger.debug("Registered stage %s (%s)", spec.id, spec.phase.name)

    def get(self, stage_id: str) -> StageSpec:
        return self._stages[stage_id]

    def all(self) -> list[StageSpec]:
        return sorted(self._stages.values(), key=lambda s: (s.phase, s.id))

    def resolve_order(self, requested_ids: set[str] | None = None) -> list[StageSpec]:
        """Topological sort respecting dependencies. If requested_ids is None, run all."""
        pool = self._stages
        if requested_ids is not None:
            expanded: set[str] = set()
            stack = list(requested_ids)
            while stack:
                sid = stack.pop()
                if sid in expanded:
                    continue
                expanded.add(sid)
                spec = pool.get(sid)
                if spec:
                    stack.extend(spec.dependencies)
            pool = {k: v for k, v in pool.items() if k in expanded}

        # Kahn's algorithm, ties broken by (phase, id)
        in_degree: dict[str, int] = {sid: 0 for sid in pool}
        for sid, spec in pool.items():
            for dep in spec.dependencies:
                if dep in pool:
                    in_degree[sid] += 1

        def _key(sid: str) -> tuple[Any, str]:
            return (pool[sid].phase, sid)

        queue = sorted([sid for sid, d in in_degree.items() if d == 0], key=_key)
        ordered: list[StageSpec] = []

        while queue:
            sid = queue.pop(0)
            ordered.append(pool[sid])
            for other_id, other_spec in pool.items():
                if sid in other_spec.dependencies:
                    in_degree[other_id] -= 1
                    if in_degree[other_id] == 0:
                        queue.append(other_id)
                        queue.sort(key=_key)

        if len(ordered) != len(pool):
            missing = set(pool.keys()) - {s.id for s in ordered}
            raise ValueError(f"Circular dependency detected among: {missing}")

        return ordered

    @property
    def count(self) -> int:
        return len(self._stages)


# Module-level singleton
_registry = StageRegistry()


def get_registry() -> StageRegistry:
    return _registry


def stage(
    *,
    id: str,
    phase: Phase,
    dependencies: list[str] | None = None,
    progress: float = 0.0,
    message: str = "",
    description: str = "",
):
    """Decorator to register a stage function."""

    def decorator(fn: StageFn):
        spec = StageSpec(
            id=id,
            phase=phase,
            fn=fn,
            dependencies=dependencies or [],
            progress=progress,
            message=message,
            description=description,
        )
        _registry.register(spec)
        return fn

    return decorator
