"""Tests for the stage registry."""

import pytest

from mentalmap.engine.context import HeatmapContext
from mentalmap.engine.registry import Phase, StageRegistry, StageSpec, get_registry


def _noop(ctx: HeatmapContext) -> None:
    pass


def test_register_and_get():
    reg = StageRegistry()
    spec = StageSpec(id="H0.normalize", phase=Phase.NORMALIZATION, fn=_noop)
    reg.register(spec)
    assert reg.get("H0.normalize") is spec
    assert reg.count == 1


def test_duplicate_id_rejected():
    reg = StageRegistry()
    reg.register(StageSpec(id="H0.a", phase=Phase.NORMALIZATION, fn=_noop))
    with pytest.raises(ValueError):
        reg.register(StageSpec(id="H0.a", phase=Phase.NORMALIZATION, fn=_noop))


def test_resolve_order_with_deps():
    reg = StageRegistry()
    reg.register(StageSpec(id="H2.smooth", phase=Phase.SMOOTHING, fn=_noop, dependencies=["H1.rasterize"]))
    reg.register(StageSpec(id="H1.rasterize", phase=Phase.RASTERIZATION, fn=_noop, dependencies=["H0.normalize"]))
    reg.register(StageSpec(id="H0.normalize", phase=Phase.NORMALIZATION, fn=_noop))
    order = reg.resolve_order({"H2.smooth"})
    assert [s.id for s in order] == ["H0.normalize", "H1.rasterize", "H2.smooth"]


def test_resolve_order_all():
    reg = StageRegistry()
    for i in range(5):
        reg.register(StageSpec(id=f"H0.0{i + 1}", phase=Phase.NORMALIZATION, fn=_noop))
    assert len(reg.resolve_order(None)) == 5


def test_circular_dependency():
    reg = StageRegistry()
    reg.register(StageSpec(id="A", phase=Phase.NORMALIZATION, fn=_noop, dependencies=["B"]))
    reg.register(StageSpec(id="B", phase=Phase.NORMALIZATION, fn=_noop, dependencies=["A"]))
    with pytest.raises(ValueError, match="Circular"):
        reg.resolve_order()


def test_heatmap_stages_registered():
    import mentalmap.engine.stages  # noqa: F401

    ids = [s.id for s in get_registry().resolve_order()]
    assert ids == ["H0.normalize", "H1.rasterize", "H2.smooth", "H3.summary"]
