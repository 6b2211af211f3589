"""Incremental truth-state updates on an existing constraint graph."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

import structlog

from manifold_solver.domain.models import (
    ConstraintGraph,
    ConstraintNode,
    NodeStatus,
    Progress,
    SatisfactionResult,
)

ChangeCallback = Callable[[ConstraintGraph], None]


class StateTracker:
    """
    Apply "mark satisfied" mutations in place and report what they unblock.

    Topology never changes here, only node ``status``. The optional
    ``on_change`` callback fires after every effective mutation so owners can
    drop derived views such as cached execution plans.
    """

    def __init__(
        self,
        graph: ConstraintGraph,
        *,
        on_change: ChangeCallback | None = None,
        logger: Any | None = None,
    ) -> None:
        self._graph = graph
        self._on_change = on_change
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def graph(self) -> ConstraintGraph:
        return self._graph

    def mark_satisfied(self, node_id: str) -> SatisfactionResult:
        node = self._graph.nodes.get(node_id)
        if node is None:
            self._logger.warning(
                "tracker.unknown_node", feature=self._graph.feature, node_id=node_id
            )
            return SatisfactionResult(
                success=False, unblocked=(), newly_ready=(), progress=self.progress()
            )

        if node.status is NodeStatus.SATISFIED:
            return SatisfactionResult(
                success=True, unblocked=(), newly_ready=(), progress=self.progress()
            )

        node.status = NodeStatus.SATISFIED

        unblocked = tuple(
            blocked_id
            for blocked_id in node.blocks
            if self._is_unblocked(self._graph.nodes.get(blocked_id))
        )
        for blocked_id in unblocked:
            blocked = self._graph.nodes[blocked_id]
            if blocked.status is NodeStatus.BLOCKED:
                blocked.status = NodeStatus.REQUIRED

        if self._on_change is not None:
            self._on_change(self._graph)

        progress = self.progress()
        self._logger.info(
            "tracker.node_satisfied",
            feature=self._graph.feature,
            node_id=node_id,
            unblocked=list(unblocked),
            percentage=progress.percentage,
        )
        return SatisfactionResult(
            success=True,
            unblocked=unblocked,
            newly_ready=self.ready_nodes(),
            progress=progress,
        )

    def mark_many_satisfied(self, node_ids: Iterable[str]) -> SatisfactionResult:
        """Fold ``mark_satisfied`` over ``node_ids``; unblocked ids are deduplicated."""
        unblocked: dict[str, None] = {}
        success = True
        for node_id in node_ids:
            result = self.mark_satisfied(node_id)
            success = success and result.success
            for blocked_id in result.unblocked:
                unblocked[blocked_id] = None

        return SatisfactionResult(
            success=success,
            unblocked=tuple(unblocked),
            newly_ready=self.ready_nodes(),
            progress=self.progress(),
        )

    def progress(self) -> Progress:
        total = len(self._graph.nodes)
        satisfied = sum(
            1 for node in self._graph.nodes.values() if node.status is NodeStatus.SATISFIED
        )
        percentage = round(satisfied / total * 100) if total else 0
        return Progress(satisfied=satisfied, total=total, percentage=percentage)

    def ready_nodes(self) -> tuple[str, ...]:
        """Unsatisfied nodes whose every dependency is satisfied."""
        return tuple(
            node_id
            for node_id, node in self._graph.nodes.items()
            if self._is_unblocked(node)
        )

    def blocked_nodes(self) -> tuple[str, ...]:
        """Unsatisfied nodes waiting on at least one unsatisfied or missing dependency."""
        return tuple(
            node_id
            for node_id, node in self._graph.nodes.items()
            if node.status is not NodeStatus.SATISFIED
            and not self._dependencies_satisfied(node)
        )

    def _is_unblocked(self, node: ConstraintNode | None) -> bool:
        if node is None or node.status is NodeStatus.SATISFIED:
            return False
        return self._dependencies_satisfied(node)

    def _dependencies_satisfied(self, node: ConstraintNode) -> bool:
        # Dangling ids never become satisfied through this tracker.
        for dependency in node.depends_on:
            target = self._graph.nodes.get(dependency)
            if target is None or target.status is not NodeStatus.SATISFIED:
                return False
        return True


def mark_satisfied(graph: ConstraintGraph, node_id: str) -> SatisfactionResult:
    """Functional form of :meth:`StateTracker.mark_satisfied` without cache wiring."""
    return StateTracker(graph).mark_satisfied(node_id)


__all__ = ["ChangeCallback", "StateTracker", "mark_satisfied"]
