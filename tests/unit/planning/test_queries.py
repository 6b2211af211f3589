"""Unit tests for forward/backward reachability queries."""

from __future__ import annotations

from manifold_solver.domain.models import ConstraintGraph, RequirementsDocument
from manifold_solver.planning.graph_builder import build_graph
from manifold_solver.planning.queries import (
    dependency_chain,
    get_conflicts,
    what_does_this_block,
    what_must_be_true,
)


def _graph() -> ConstraintGraph:
    return build_graph(
        RequirementsDocument.from_dict(
            {
                "feature": "queries",
                "constraints": {
                    "business": [
                        {"id": "B1", "type": "goal", "statement": "root"},
                        {"id": "B2", "type": "goal", "statement": "mid", "depends_on": ["B1"]},
                        {"id": "B3", "type": "goal", "statement": "other"},
                    ]
                },
                "tensions": [
                    {"id": "TN1", "type": "trade_off", "between": ["B1", "B3"], "description": "t"}
                ],
                "anchors": {
                    "required_truths": [
                        {
                            "id": "RT-1",
                            "statement": "leaf",
                            "status": "REQUIRED",
                            "maps_to_constraints": ["B2", "GHOST"],
                        }
                    ]
                },
            }
        )
    )


def test_what_must_be_true_walks_dependencies_transitively() -> None:
    assert what_must_be_true(_graph(), "RT-1") == ["B2", "GHOST", "B1"]


def test_what_does_this_block_walks_blocks_transitively() -> None:
    assert what_does_this_block(_graph(), "B1") == ["B2", "TN1", "RT-1"]


def test_unknown_ids_yield_empty_results() -> None:
    graph = _graph()

    assert what_must_be_true(graph, "NOPE") == []
    assert what_does_this_block(graph, "NOPE") == []
    assert get_conflicts(graph, "NOPE") == []
    assert dependency_chain(graph, "NOPE") == {}


def test_get_conflicts_is_direct_only() -> None:
    graph = _graph()

    assert get_conflicts(graph, "B1") == ["B3"]
    assert get_conflicts(graph, "B2") == []


def test_queries_terminate_on_cycles_and_exclude_start() -> None:
    graph = build_graph(
        RequirementsDocument.from_dict(
            {
                "feature": "cycle",
                "constraints": {
                    "business": [
                        {"id": "A", "type": "goal", "statement": "a", "depends_on": ["B"]},
                        {"id": "B", "type": "goal", "statement": "b", "depends_on": ["A"]},
                    ]
                },
            }
        )
    )

    assert what_must_be_true(graph, "A") == ["B"]
    assert what_does_this_block(graph, "A") == ["B"]


def test_dependency_chain_maps_reachable_nodes_to_direct_dependencies() -> None:
    chain = dependency_chain(_graph(), "RT-1")

    assert chain == {"RT-1": ["B2", "GHOST"], "B2": ["B1"], "B1": []}
