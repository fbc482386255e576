"""Pipeline orchestrator — runs heatmap stages in dependency order with gating.

Runs on the caller's event loop. Between stages it yields once and checks the
context's cancellation flag, so a superseded computation stops at the next
stage boundary (or at the next batch boundary inside the rasterizer).
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import AsyncGenerator
from typing import Any

from mentalmap.engine.context import HeatmapContext
from mentalmap.engine.registry import StageRegistry, StageSpec, get_registry
from mentalmap.errors import HeatmapCancelled

logger = logging.getLogger(__name__)


class Pipeline:
    """Orchestrates the heatmap stages."""

    def __init__(self, registry: StageRegistry | None = None) -> None:
        if registry is None:
            # Importing the stage module fires the @stage decorators
            import mentalmap.engine.stages  # noqa: F401

            registry = get_registry()
        self.registry = registry

    def plan(self, ctx: HeatmapContext) -> list[StageSpec]:
        skip_ids = self._adaptive_gate(ctx)
        requested = {s.id for s in self.registry.all()} - skip_ids
        return self.registry.resolve_order(requested)

    async def run(self, ctx: HeatmapContext) -> HeatmapContext:
        """Run all stages on the given context."""
        async for _ in self.run_streaming(ctx):
            pass
        return ctx

    async def run_streaming(self, ctx: HeatmapContext) -> AsyncGenerator[dict[str, Any], None]:
        """Run the pipeline, yielding a progress dict before and after each stage.

        Progress reported from inside a stage (the rasterizer's batches) is
        collected through ``ctx.progress_callback`` and yielded after it.
        """
        start = time.perf_counter()
        ordered = self.plan(ctx)
        total = len(ordered)

        logger.info("Heatmap pipeline: %d stages queued for %d feature(s)", total, ctx.num_features)

        sub_events: list[dict[str, Any]] = []

        for i, spec in enumerate(ordered):
            await self._checkpoint(ctx, spec.id)

            yield {
                "stage_id": spec.id,
                "phase": spec.phase.name,
                "index": i,
                "total": total,
                "progress": spec.progress,
                "message": spec.message,
                "status": "running",
                "elapsed_ms": 0.0,
                "error": "",
            }

            def _on_sub_progress(pct: float, message: str = "", _spec=spec, _i=i) -> None:
                sub_events.append({
                    "stage_id": _spec.id,
                    "phase": _spec.phase.name,
                    "index": _i,
                    "total": total,
                    "progress": float(pct),
                    "message": message or _spec.message,
                    "status": "running",
                    "elapsed_ms": 0.0,
                    "error": "",
                })

            ctx.progress_callback = _on_sub_progress

            t0 = time.perf_counter()
            status = "ok"
            error = ""
            try:
                result = spec.fn(ctx)
                if inspect.isawaitable(result):
                    await result
                ctx.completed_stages.add(spec.id)
            except (HeatmapCancelled, asyncio.CancelledError):
                ctx.progress_callback = None
                raise
            except Exception as e:
                ctx.errors[spec.id] = str(e)
                status = "error"
                error = str(e)
                logger.warning("  %s FAILED: %s", spec.id, e)

            ctx.progress_callback = None

            # A stage finishes no lower than its last batch report
            reached = spec.progress
            for evt in sub_events:
                reached = max(reached, evt["progress"])
                yield evt
            sub_events.clear()

            elapsed_ms = round((time.perf_counter() - t0) * 1000, 1)
            logger.debug("  %s completed in %.1fms", spec.id, elapsed_ms)

            yield {
                "stage_id": spec.id,
                "phase": spec.phase.name,
                "index": i,
                "total": total,
                "progress": reached,
                "message": spec.message,
                "status": status,
                "elapsed_ms": elapsed_ms,
                "error": error,
            }

        await self._checkpoint(ctx, "done")

        logger.info(
            "Heatmap pipeline complete: %d/%d stages in %.0fms",
            len(ctx.completed_stages),
            total,
            (time.perf_counter() - start) * 1000,
        )

    async def _checkpoint(self, ctx: HeatmapContext, where: str) -> None:
        await asyncio.sleep(0)
        if ctx.is_cancelled():
            raise HeatmapCancelled(f"heatmap computation superseded before {where}")

    def _adaptive_gate(self, ctx: HeatmapContext) -> set[str]:
        """Stages to skip for this configuration."""
        skip: set[str] = set()
        if not ctx.config.smoothing:
            skip.add("H2.smooth")
        return skip


def create_pipeline() -> Pipeline:
    """Factory function for creating a pipeline instance."""
    return Pipeline()
