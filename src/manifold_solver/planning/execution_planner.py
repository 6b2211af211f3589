"""Wave-based execution planning and critical-path analysis over a constraint graph."""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import Any, Final

import structlog

from manifold_solver.domain.models import (
    ConstraintGraph,
    ConstraintNode,
    DocumentPhase,
    ExecutionPlan,
    NodeType,
    ParallelTask,
    PlanStrategy,
    Wave,
)

TASK_ID_PREFIX: Final[str] = "TASK-"
DEFAULT_ACTION: Final[str] = "Process"
DEFAULT_WAVE_PHASE: Final[DocumentPhase] = DocumentPhase.CONSTRAINED

NODE_ACTIONS: Final[dict[NodeType, str]] = {
    NodeType.CONSTRAINT: "Discover and document",
    NodeType.TENSION: "Analyze and resolve",
    NodeType.REQUIRED_TRUTH: "Derive and validate",
    NodeType.ARTIFACT: "Generate",
}

_PHASE_BY_TYPE: Final[dict[NodeType, DocumentPhase]] = {
    NodeType.CONSTRAINT: DocumentPhase.CONSTRAINED,
    NodeType.TENSION: DocumentPhase.TENSIONED,
    NodeType.REQUIRED_TRUTH: DocumentPhase.ANCHORED,
    NodeType.ARTIFACT: DocumentPhase.GENERATED,
}


def generate_execution_plan(
    graph: ConstraintGraph,
    strategy: PlanStrategy | str = PlanStrategy.HYBRID,
    *,
    logger: Any | None = None,
    clock: Callable[[], datetime] | None = None,
) -> ExecutionPlan:
    """
    Schedule every node of ``graph`` into ordered waves.

    A node joins the current wave once each of its dependencies was scheduled in
    an earlier wave or does not exist in the graph at all. When nothing is ready
    but nodes remain, the dependency structure contains a cycle; the smallest
    remaining id is forced into the wave and a warning is logged. Termination is
    therefore guaranteed within ``len(graph.nodes)`` waves.

    The strategy is recorded on the plan; all strategies share one schedule.
    """
    log = logger if logger is not None else structlog.get_logger(__name__)
    resolved_strategy = PlanStrategy(strategy)

    waves = tuple(_schedule_waves(graph, log))
    total_nodes = len(graph.nodes)
    factor = round(total_nodes / len(waves), 1) if waves else 0.0

    plan = ExecutionPlan(
        strategy=resolved_strategy,
        waves=waves,
        critical_path=tuple(find_critical_path(graph)),
        parallelization_factor=factor,
        generated_at=(clock or _utc_now)().isoformat().replace("+00:00", "Z"),
    )
    log.debug(
        "planner.plan_generated",
        feature=graph.feature,
        strategy=resolved_strategy.value,
        waves=len(waves),
        nodes=total_nodes,
        parallelization_factor=factor,
    )
    return plan


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _schedule_waves(graph: ConstraintGraph, log: Any) -> list[Wave]:
    remaining: dict[str, ConstraintNode] = dict(graph.nodes)
    scheduled: list[str] = []
    waves: list[Wave] = []

    while remaining:
        ready = [
            node_id
            for node_id, node in remaining.items()
            if all(dependency not in remaining for dependency in node.depends_on)
        ]

        if not ready:
            forced = min(remaining)
            log.warning(
                "planner.cycle_broken",
                feature=graph.feature,
                remaining=sorted(remaining),
                forced=forced,
            )
            ready = [forced]

        number = len(waves) + 1
        waves.append(
            Wave(
                number=number,
                phase=determine_wave_phase(graph.nodes[node_id] for node_id in ready).value,
                parallel_tasks=tuple(_create_task(graph.nodes[node_id]) for node_id in ready),
                blocking_dependencies=tuple(scheduled),
            )
        )

        for node_id in ready:
            graph.nodes[node_id].wave_number = number
            scheduled.append(node_id)
            del remaining[node_id]

    return waves


def determine_wave_phase(nodes: Iterable[ConstraintNode]) -> DocumentPhase:
    """Phase of the node type holding a strict majority of the wave, else the default."""
    types = [node.type for node in nodes]
    if not types:
        return DEFAULT_WAVE_PHASE
    counts = Counter(types)
    for node_type, phase in _PHASE_BY_TYPE.items():
        if counts[node_type] > len(types) / 2:
            return phase
    return DEFAULT_WAVE_PHASE


def _create_task(node: ConstraintNode) -> ParallelTask:
    return ParallelTask(
        id=f"{TASK_ID_PREFIX}{node.id}",
        node_ids=(node.id,),
        action=NODE_ACTIONS.get(node.type, DEFAULT_ACTION),
        description=node.label,
        artifact_paths=(node.label,) if node.type is NodeType.ARTIFACT else (),
    )


def topological_order(graph: ConstraintGraph) -> list[str]:
    """DFS post-order over ``depends_on``; revisits are skipped, so cycles are tolerated."""
    visited: set[str] = set()
    order: list[str] = []

    for root in graph.nodes:
        if root in visited:
            continue
        visited.add(root)
        frames = [(root, iter(graph.nodes[root].depends_on))]
        while frames:
            node_id, dependencies = frames[-1]
            advanced = False
            for dependency in dependencies:
                if dependency in graph.nodes and dependency not in visited:
                    visited.add(dependency)
                    frames.append((dependency, iter(graph.nodes[dependency].depends_on)))
                    advanced = True
                    break
            if not advanced:
                frames.pop()
                order.append(node_id)

    return order


def find_critical_path(graph: ConstraintGraph) -> list[str]:
    """
    Longest chain of ``blocks`` edges, as node ids from first to last.

    Distances start at zero for every node and relax along ``blocks`` in
    topological order; the path ends at the first node reaching the maximum
    distance. A graph without any dependency edge has an empty critical path.
    """
    distances: dict[str, int] = {node_id: 0 for node_id in graph.nodes}
    predecessors: dict[str, str | None] = {node_id: None for node_id in graph.nodes}

    for node_id in topological_order(graph):
        current = distances[node_id]
        for blocked in graph.nodes[node_id].blocks:
            if blocked not in distances:
                continue
            if current + 1 > distances[blocked]:
                distances[blocked] = current + 1
                predecessors[blocked] = node_id

    end_node: str | None = None
    best = 0
    for node_id, distance in distances.items():
        if distance > best:
            best = distance
            end_node = node_id

    path: list[str] = []
    seen: set[str] = set()
    cursor = end_node
    # Predecessor links can loop when the graph has cycles.
    while cursor is not None and cursor not in seen:
        seen.add(cursor)
        path.append(cursor)
        cursor = predecessors[cursor]
    path.reverse()
    return path


__all__ = [
    "DEFAULT_WAVE_PHASE",
    "NODE_ACTIONS",
    "TASK_ID_PREFIX",
    "determine_wave_phase",
    "find_critical_path",
    "generate_execution_plan",
    "topological_order",
]
