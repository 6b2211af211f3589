"""Facade wiring graph building, caching, planning, state tracking and queries."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import structlog

from manifold_solver.domain.models import (
    ConstraintGraph,
    ExecutionPlan,
    NodeStatus,
    NodeType,
    PlanStrategy,
    Progress,
    RemainingWork,
    RequirementsDocument,
    SatisfactionResult,
)
from manifold_solver.planning import queries
from manifold_solver.planning.cache import GraphCache, default_graph_cache
from manifold_solver.planning.execution_planner import generate_execution_plan
from manifold_solver.planning.graph_builder import build_graph
from manifold_solver.planning.hints import HintExtractor
from manifold_solver.planning.state_tracker import StateTracker


class ConstraintSolver:
    """
    Per-feature entrypoint over a cached constraint graph.

    Construction reuses the cached graph when the document fingerprint still
    matches, otherwise builds and caches a fresh one. Plans are cached per
    strategy; marking nodes satisfied drops cached plans but keeps the graph.
    """

    def __init__(
        self,
        document: RequirementsDocument,
        *,
        cache: GraphCache | None = None,
        hint_extractor: HintExtractor | None = None,
        logger: Any | None = None,
    ) -> None:
        self._document = document
        self._cache = cache if cache is not None else default_graph_cache()
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

        entry = self._cache.get(document)
        if entry is not None:
            self._graph = entry.graph
            self._logger.debug("solver.cache_hit", feature=document.feature)
        else:
            self._graph = build_graph(
                document, hint_extractor=hint_extractor, logger=self._logger
            )
            self._cache.store(document, self._graph)

        self._tracker = StateTracker(
            self._graph, on_change=self._invalidate_plans, logger=self._logger
        )

    @classmethod
    def without_cache(
        cls,
        document: RequirementsDocument,
        *,
        cache: GraphCache | None = None,
        hint_extractor: HintExtractor | None = None,
        logger: Any | None = None,
    ) -> ConstraintSolver:
        """Evict any cached graph for the feature, then build a fresh solver."""
        resolved = cache if cache is not None else default_graph_cache()
        resolved.evict(document.feature)
        return cls(document, cache=resolved, hint_extractor=hint_extractor, logger=logger)

    @property
    def feature(self) -> str:
        return self._document.feature

    @property
    def graph(self) -> ConstraintGraph:
        return self._graph

    def generate_execution_plan(
        self, strategy: PlanStrategy | str = PlanStrategy.HYBRID
    ) -> ExecutionPlan:
        resolved = PlanStrategy(strategy)
        entry = self._cache.get(self._document)
        if entry is not None and entry.graph is self._graph:
            cached = entry.plan_for(resolved)
            if cached is not None:
                return cached

        plan = generate_execution_plan(self._graph, resolved, logger=self._logger)
        if entry is not None and entry.graph is self._graph:
            self._cache.store_plan(self.feature, plan)
        else:
            self._cache.store(self._document, self._graph, plan)
        return plan

    def mark_satisfied(self, node_id: str) -> SatisfactionResult:
        return self._tracker.mark_satisfied(node_id)

    def mark_many_satisfied(self, node_ids: Iterable[str]) -> SatisfactionResult:
        return self._tracker.mark_many_satisfied(node_ids)

    def progress(self) -> Progress:
        return self._tracker.progress()

    def ready_nodes(self) -> tuple[str, ...]:
        return self._tracker.ready_nodes()

    def blocked_nodes(self) -> tuple[str, ...]:
        return self._tracker.blocked_nodes()

    def what_must_be_true(self, target_id: str) -> list[str]:
        return queries.what_must_be_true(self._graph, target_id)

    def what_does_this_block(self, source_id: str) -> list[str]:
        return queries.what_does_this_block(self._graph, source_id)

    def get_conflicts(self, target_id: str) -> list[str]:
        return queries.get_conflicts(self._graph, target_id)

    def dependency_chain(self, target_id: str) -> dict[str, list[str]]:
        return queries.dependency_chain(self._graph, target_id)

    def remaining_work(self) -> RemainingWork:
        """Ready/blocked ids, their counts per node type and waves still holding open work."""
        ready = self.ready_nodes()
        blocked = self.blocked_nodes()

        by_type = {node_type.value: 0 for node_type in NodeType}
        for node_id in (*ready, *blocked):
            by_type[self._graph.nodes[node_id].type.value] += 1

        plan = self.generate_execution_plan()
        estimated_waves = sum(
            1
            for wave in plan.waves
            if any(
                self._graph.nodes[node_id].status is not NodeStatus.SATISFIED
                for node_id in wave.node_ids
                if node_id in self._graph.nodes
            )
        )
        return RemainingWork(
            ready=ready, blocked=blocked, by_type=by_type, estimated_waves=estimated_waves
        )

    def _invalidate_plans(self, graph: ConstraintGraph) -> None:
        self._cache.invalidate_plan(self.feature)
        self._logger.debug("solver.plan_invalidated", feature=self.feature)


__all__ = ["ConstraintSolver"]
