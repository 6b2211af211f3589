"""Unit tests for the ConstraintSolver facade."""

from __future__ import annotations

from manifold_solver.domain.models import NodeStatus, PlanStrategy, RequirementsDocument
from manifold_solver.planning.cache import GraphCache
from manifold_solver.planning.hints import RegexChainHintExtractor
from manifold_solver.planning.solver import ConstraintSolver


def _document() -> RequirementsDocument:
    return RequirementsDocument.from_dict(
        {
            "feature": "checkout",
            "phase": "ANCHORED",
            "constraints": {
                "business": [{"id": "B1", "type": "invariant", "statement": "Orders are paid"}],
                "technical": [
                    {
                        "id": "T1",
                        "type": "boundary",
                        "statement": "Payment call under 2 seconds",
                        "depends_on": ["B1"],
                    }
                ],
            },
            "anchors": {
                "required_truths": [
                    {
                        "id": "RT-1",
                        "statement": "Payment provider reachable",
                        "status": "REQUIRED",
                        "maps_to_constraints": ["T1"],
                    }
                ]
            },
        }
    )


def test_construction_reuses_cached_graph_for_same_fingerprint() -> None:
    cache = GraphCache()

    first = ConstraintSolver(_document(), cache=cache)
    second = ConstraintSolver(_document(), cache=cache)

    assert first.graph is second.graph
    assert "checkout" in cache


def test_plan_is_cached_until_state_changes() -> None:
    cache = GraphCache()
    solver = ConstraintSolver(_document(), cache=cache)

    plan = solver.generate_execution_plan()
    assert solver.generate_execution_plan(PlanStrategy.HYBRID) is plan

    result = solver.mark_satisfied("B1")

    assert result.success is True
    assert result.unblocked == ("T1",)
    refreshed = solver.generate_execution_plan()
    assert refreshed is not plan
    assert ConstraintSolver(_document(), cache=cache).graph is solver.graph


def test_each_strategy_gets_its_own_plan_slot() -> None:
    solver = ConstraintSolver(_document(), cache=GraphCache())

    hybrid = solver.generate_execution_plan("hybrid")
    forward = solver.generate_execution_plan("forward")

    assert forward is not hybrid
    assert forward.strategy is PlanStrategy.FORWARD
    assert solver.generate_execution_plan("forward") is forward
    assert solver.generate_execution_plan("hybrid") is hybrid


def test_unknown_node_does_not_invalidate_plan() -> None:
    solver = ConstraintSolver(_document(), cache=GraphCache())
    plan = solver.generate_execution_plan()

    result = solver.mark_satisfied("NOPE")

    assert result.success is False
    assert solver.generate_execution_plan() is plan


def test_remaining_work_reports_ready_blocked_and_waves() -> None:
    solver = ConstraintSolver(_document(), cache=GraphCache())

    before = solver.remaining_work()
    assert before.ready == ("B1",)
    assert before.blocked == ("T1", "RT-1")
    assert before.by_type == {
        "constraint": 2,
        "tension": 0,
        "required_truth": 1,
        "artifact": 0,
    }
    assert before.estimated_waves == 3

    solver.mark_many_satisfied(["B1", "T1"])

    after = solver.remaining_work()
    assert after.ready == ("RT-1",)
    assert after.blocked == ()
    assert after.estimated_waves == 1
    assert solver.progress().percentage == 67


def test_queries_delegate_to_graph() -> None:
    solver = ConstraintSolver(_document(), cache=GraphCache())

    assert solver.what_must_be_true("RT-1") == ["T1", "B1"]
    assert solver.what_does_this_block("B1") == ["T1", "RT-1"]
    assert solver.get_conflicts("B1") == []
    assert solver.dependency_chain("T1") == {"T1": ["B1"], "B1": []}
    assert solver.ready_nodes() == ("B1",)
    assert solver.blocked_nodes() == ("T1", "RT-1")


def test_without_cache_rebuilds_graph() -> None:
    cache = GraphCache()
    cached = ConstraintSolver(_document(), cache=cache)
    cached.mark_satisfied("B1")

    fresh = ConstraintSolver.without_cache(_document(), cache=cache)

    assert fresh.graph is not cached.graph
    assert fresh.graph.nodes["B1"].status is NodeStatus.REQUIRED
    assert cache.get(_document()) is not None


def test_hint_extractor_is_used_only_when_building() -> None:
    document = RequirementsDocument.from_dict(
        {
            "feature": "hinted",
            "anchors": {
                "required_truths": [
                    {"id": "RT-1", "statement": "a", "status": "REQUIRED"},
                    {"id": "RT-2", "statement": "b", "status": "REQUIRED"},
                ]
            },
            "dependency_chain": {"sequential": ["RT-1 before RT-2"]},
        }
    )

    solver = ConstraintSolver(
        document, cache=GraphCache(), hint_extractor=RegexChainHintExtractor()
    )

    assert solver.graph.nodes["RT-2"].depends_on == ["RT-1"]
    assert [wave.node_ids for wave in solver.generate_execution_plan().waves] == [
        ("RT-1",),
        ("RT-2",),
    ]
