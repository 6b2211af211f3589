"""Unit tests for planning.execution_planner."""

from __future__ import annotations

from typing import Any

import pytest

from manifold_solver.domain.models import DocumentPhase, PlanStrategy, RequirementsDocument
from manifold_solver.planning.execution_planner import (
    determine_wave_phase,
    find_critical_path,
    generate_execution_plan,
    topological_order,
)
from manifold_solver.planning.graph_builder import build_graph

try:
    from hypothesis import given, seed, settings
    from hypothesis import strategies as st

    HYPOTHESIS_AVAILABLE = True
except ModuleNotFoundError:  # pragma: no cover - fallback path
    HYPOTHESIS_AVAILABLE = False


class _RecordingLogger:
    def __init__(self) -> None:
        self.events: list[tuple[str, str, dict[str, Any]]] = []

    def debug(self, event: str, **fields: Any) -> None:
        self.events.append(("debug", event, fields))

    def info(self, event: str, **fields: Any) -> None:
        self.events.append(("info", event, fields))

    def warning(self, event: str, **fields: Any) -> None:
        self.events.append(("warning", event, fields))

    def named(self, event: str) -> list[dict[str, Any]]:
        return [fields for _, name, fields in self.events if name == event]


def _document(constraints: list[dict[str, object]], **extra: object) -> RequirementsDocument:
    payload: dict[str, object] = {"feature": "planner", "constraints": {"business": constraints}}
    payload.update(extra)
    return RequirementsDocument.from_dict(payload)


def _constraint(node_id: str, *depends_on: str) -> dict[str, object]:
    return {
        "id": node_id,
        "type": "goal",
        "statement": f"statement for {node_id}",
        "depends_on": list(depends_on),
    }


def test_independent_constraints_share_one_wave() -> None:
    graph = build_graph(_document([_constraint("B1"), _constraint("B2")]))

    plan = generate_execution_plan(graph)

    assert len(plan.waves) == 1
    assert plan.waves[0].node_ids == ("B1", "B2")
    assert plan.waves[0].blocking_dependencies == ()
    assert plan.critical_path == ()
    assert plan.parallelization_factor == 2.0


def test_chain_produces_one_wave_per_link_and_critical_path() -> None:
    graph = build_graph(_document([_constraint("B1"), _constraint("B2", "B1")]))

    plan = generate_execution_plan(graph)

    assert [wave.node_ids for wave in plan.waves] == [("B1",), ("B2",)]
    assert plan.waves[1].blocking_dependencies == ("B1",)
    assert plan.critical_path == ("B1", "B2")
    assert plan.parallelization_factor == 1.0
    assert graph.nodes["B1"].wave_number == 1
    assert graph.nodes["B2"].wave_number == 2


def test_cycle_is_broken_deterministically_with_warning() -> None:
    graph = build_graph(_document([_constraint("B", "A"), _constraint("A", "B")]))
    logger = _RecordingLogger()

    plan = generate_execution_plan(graph, logger=logger)

    assert [wave.node_ids for wave in plan.waves] == [("A",), ("B",)]
    warnings = logger.named("planner.cycle_broken")
    assert len(warnings) == 1
    assert warnings[0]["forced"] == "A"
    assert warnings[0]["remaining"] == ["A", "B"]


def test_dangling_dependency_does_not_block_scheduling() -> None:
    graph = build_graph(_document([_constraint("B1", "GHOST"), _constraint("B2", "B1")]))

    plan = generate_execution_plan(graph)

    assert [wave.node_ids for wave in plan.waves] == [("B1",), ("B2",)]


def test_empty_graph_yields_empty_plan() -> None:
    graph = build_graph(RequirementsDocument.from_dict({"feature": "empty"}))

    plan = generate_execution_plan(graph)

    assert plan.waves == ()
    assert plan.critical_path == ()
    assert plan.parallelization_factor == 0.0
    assert plan.to_dict()["waves"] == []


@pytest.mark.parametrize("strategy", ["forward", "backward", "hybrid"])
def test_strategy_is_recorded_without_changing_schedule(strategy: str) -> None:
    graph = build_graph(_document([_constraint("B1"), _constraint("B2", "B1")]))
    baseline = generate_execution_plan(graph, PlanStrategy.HYBRID)

    plan = generate_execution_plan(graph, strategy)

    assert plan.strategy is PlanStrategy(strategy)
    assert [wave.node_ids for wave in plan.waves] == [wave.node_ids for wave in baseline.waves]


def test_unknown_strategy_is_rejected() -> None:
    graph = build_graph(_document([_constraint("B1")]))

    with pytest.raises(ValueError):
        generate_execution_plan(graph, "sideways")


def test_tasks_carry_actions_descriptions_and_artifact_paths() -> None:
    document = _document(
        [_constraint("B1")],
        anchors={
            "required_truths": [
                {"id": "RT-1", "statement": "Store exists", "status": "REQUIRED",
                 "maps_to_constraints": ["B1"]},
            ]
        },
        generation={"artifacts": [{"path": "src/store.py", "type": "code", "satisfies": ["RT-1"]}]},
    )
    graph = build_graph(document)

    plan = generate_execution_plan(graph)

    tasks = [task for wave in plan.waves for task in wave.parallel_tasks]
    assert [task.id for task in tasks] == ["TASK-B1", "TASK-RT-1", "TASK-ART-src-store-py"]
    assert [task.action for task in tasks] == [
        "Discover and document",
        "Derive and validate",
        "Generate",
    ]
    assert tasks[0].description == "statement for B1"
    assert tasks[2].artifact_paths == ("src/store.py",)
    assert [wave.phase for wave in plan.waves] == ["CONSTRAINED", "ANCHORED", "GENERATED"]


def test_wave_phase_requires_strict_majority() -> None:
    document = _document(
        [_constraint("B1")],
        anchors={"required_truths": [{"id": "RT-1", "statement": "x", "status": "REQUIRED"}]},
    )
    graph = build_graph(document)

    mixed = determine_wave_phase(graph.nodes.values())
    truths_only = determine_wave_phase([graph.nodes["RT-1"]])

    assert mixed is DocumentPhase.CONSTRAINED
    assert truths_only is DocumentPhase.ANCHORED
    assert determine_wave_phase([]) is DocumentPhase.CONSTRAINED


def test_tension_waves_are_tensioned_phase() -> None:
    document = _document(
        [_constraint("B1"), _constraint("B2")],
        tensions=[{"id": "TN1", "type": "trade_off", "between": ["B1", "B2"], "description": "t"}],
    )
    plan = generate_execution_plan(build_graph(document))

    assert plan.waves[1].node_ids == ("TN1",)
    assert plan.waves[1].phase == "TENSIONED"
    assert plan.waves[1].parallel_tasks[0].action == "Analyze and resolve"


def test_parallelization_factor_is_rounded_to_one_decimal() -> None:
    graph = build_graph(
        _document(
            [_constraint("B1"), _constraint("B2"), _constraint("B3", "B1"), _constraint("B4")]
        )
    )
    graph.nodes["B4"].depends_on.append("B3")
    graph.nodes["B3"].blocks.append("B4")

    plan = generate_execution_plan(graph)

    assert len(plan.waves) == 3
    assert plan.parallelization_factor == 1.3


def test_critical_path_follows_longest_chain() -> None:
    graph = build_graph(
        _document(
            [
                _constraint("A"),
                _constraint("B", "A"),
                _constraint("C", "B"),
                _constraint("D", "A"),
            ]
        )
    )

    assert find_critical_path(graph) == ["A", "B", "C"]


def test_critical_path_terminates_on_cycles() -> None:
    graph = build_graph(
        _document([_constraint("A", "C"), _constraint("B", "A"), _constraint("C", "B")])
    )

    path = find_critical_path(graph)

    assert len(path) == len(set(path))
    assert set(path) <= {"A", "B", "C"}
    for earlier, later in zip(path, path[1:]):
        assert later in graph.nodes[earlier].blocks


def test_topological_order_places_dependencies_first() -> None:
    graph = build_graph(_document([_constraint("C", "B"), _constraint("B", "A"), _constraint("A")]))

    assert topological_order(graph) == ["A", "B", "C"]


if HYPOTHESIS_AVAILABLE:

    _EDGES = st.lists(
        st.tuples(st.integers(min_value=0, max_value=11), st.integers(min_value=0, max_value=13)),
        max_size=40,
    )

    def _random_graph(node_count: int, edges: list[tuple[int, int]], *, acyclic: bool) -> Any:
        constraints = []
        for index in range(node_count):
            deps = [
                f"N{target}"
                for source, target in edges
                if source == index and (not acyclic or target < index or target >= node_count)
            ]
            constraints.append(_constraint(f"N{index}", *deps))
        return build_graph(_document(constraints))

    @settings(max_examples=30, derandomize=True, deadline=None)
    @seed(20260201)
    @given(node_count=st.integers(min_value=0, max_value=12), edges=_EDGES)
    def test_every_node_is_scheduled_exactly_once(
        node_count: int, edges: list[tuple[int, int]]
    ) -> None:
        graph = _random_graph(node_count, edges, acyclic=False)

        plan = generate_execution_plan(graph, logger=_RecordingLogger())

        scheduled = [node_id for wave in plan.waves for node_id in wave.node_ids]
        assert sorted(scheduled) == sorted(graph.nodes)
        assert len(plan.waves) <= len(graph.nodes)
        for node_id, node in graph.nodes.items():
            for dependency in node.depends_on:
                if dependency in graph.nodes:
                    assert node_id in graph.nodes[dependency].blocks

        for earlier, later in zip(plan.critical_path, plan.critical_path[1:]):
            assert later in graph.nodes[earlier].blocks
        if plan.waves:
            expected = round(len(graph.nodes) / len(plan.waves), 1)
        else:
            expected = 0.0
        assert plan.parallelization_factor == expected

    @settings(max_examples=30, derandomize=True, deadline=None)
    @seed(20260202)
    @given(node_count=st.integers(min_value=1, max_value=12), edges=_EDGES)
    def test_acyclic_dependencies_land_in_earlier_waves(
        node_count: int, edges: list[tuple[int, int]]
    ) -> None:
        graph = _random_graph(node_count, edges, acyclic=True)
        logger = _RecordingLogger()

        generate_execution_plan(graph, logger=logger)

        assert logger.named("planner.cycle_broken") == []
        for node in graph.nodes.values():
            assert node.wave_number is not None
            for dependency in node.depends_on:
                target = graph.nodes.get(dependency)
                if target is not None:
                    assert target.wave_number is not None
                    assert target.wave_number < node.wave_number
