"""
manifold-solver — unit tests for the graph cache

File: tests/unit/planning/test_cache.py

Purpose
- Validate fingerprint-based reuse and eviction of cached graphs and plans.

What this test file should cover
- Count-based fingerprint semantics, including content-only edits being served stale.
- Lazy eviction on fingerprint mismatch.
- Per-strategy plan slots and plan invalidation that keeps the graph.
- Process-wide default cache lifecycle.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from manifold_solver.domain.models import PlanStrategy, RequirementsDocument
from manifold_solver.planning.cache import (
    GraphCache,
    clear_graph_cache,
    default_graph_cache,
    fingerprint,
)
from manifold_solver.planning.execution_planner import generate_execution_plan
from manifold_solver.planning.graph_builder import build_graph

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture(autouse=True)
def _clear_default_cache() -> Iterator[None]:
    yield
    clear_graph_cache()


def _document(statement: str = "Users log in", *, extra: int = 0) -> RequirementsDocument:
    constraints = [{"id": "B1", "type": "goal", "statement": statement}]
    constraints.extend(
        {"id": f"X{index}", "type": "goal", "statement": "x"} for index in range(extra)
    )
    return RequirementsDocument.from_dict(
        {"feature": "auth", "phase": "CONSTRAINED", "constraints": {"business": constraints}}
    )


def test_fingerprint_is_feature_phase_and_counts() -> None:
    document = RequirementsDocument.from_dict(
        {
            "feature": "auth",
            "phase": "anchored",
            "constraints": {
                "business": [{"id": "B1", "type": "goal", "statement": "a"}],
                "ux": [{"id": "U1", "type": "goal", "statement": "b"}],
            },
            "tensions": [{"id": "TN1", "type": "t", "between": ["B1", "U1"], "description": "d"}],
        }
    )

    assert fingerprint(document) == "auth:ANCHORED:2:1:0:0"


def test_content_only_edit_keeps_serving_cached_graph() -> None:
    cache = GraphCache()
    original = _document("Users log in")
    graph = build_graph(original)
    cache.store(original, graph)

    entry = cache.get(_document("Users log in with passkeys"))

    assert entry is not None
    assert entry.graph is graph
    assert entry.graph.nodes["B1"].label == "Users log in"


def test_count_change_evicts_lazily() -> None:
    cache = GraphCache()
    original = _document()
    cache.store(original, build_graph(original))

    assert "auth" in cache
    assert cache.get(_document(extra=1)) is None
    assert "auth" not in cache
    assert len(cache) == 0


def test_plans_are_cached_per_strategy_and_invalidated_together() -> None:
    cache = GraphCache()
    document = _document()
    graph = build_graph(document)
    hybrid = generate_execution_plan(graph, PlanStrategy.HYBRID)
    forward = generate_execution_plan(graph, PlanStrategy.FORWARD)

    entry = cache.store(document, graph, hybrid)
    cache.store_plan("auth", forward)

    assert entry.plan_for("hybrid") is hybrid
    assert entry.plan_for(PlanStrategy.FORWARD) is forward
    assert entry.plan_for(PlanStrategy.BACKWARD) is None

    cache.invalidate_plan("auth")

    refreshed = cache.get(document)
    assert refreshed is not None
    assert refreshed.graph is graph
    assert refreshed.plans == {}


def test_store_plan_for_unknown_feature_is_ignored() -> None:
    cache = GraphCache()
    graph = build_graph(_document())

    cache.store_plan("missing", generate_execution_plan(graph))
    cache.invalidate_plan("missing")

    assert len(cache) == 0


def test_stats_evict_and_clear() -> None:
    cache = GraphCache()
    first = _document()
    second = RequirementsDocument.from_dict({"feature": "billing"})
    cache.store(first, build_graph(first))
    cache.store(second, build_graph(second))

    assert cache.stats().to_dict() == {"size": 2, "features": ["auth", "billing"]}

    cache.evict("auth")
    assert cache.stats().features == ("billing",)

    cache.clear()
    assert cache.stats().size == 0


def test_default_cache_is_process_wide_until_cleared() -> None:
    document = _document()
    default_graph_cache().store(document, build_graph(document))

    assert default_graph_cache() is default_graph_cache()
    assert "auth" in default_graph_cache()

    clear_graph_cache()

    assert "auth" not in default_graph_cache()
