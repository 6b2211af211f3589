"""Build a ``ConstraintGraph`` from a pre-validated requirements document.

Construction runs in a fixed order because later steps mutate nodes created by
earlier ones:

1. one node per constraint
2. one node per tension, plus pairwise conflict edges between its members
3. one node per required truth
4. optional hint edges from legacy dependency-chain prose
5. one node per generated artifact, plus ``satisfies`` edges
6. ``blocks`` populated as the exact transpose of ``depends_on``
7. ``edges.dependencies`` flattened from every node's ``depends_on``

``satisfies`` edges record fulfillment and are never merged into
``edges.dependencies`` even though the artifact node also lists the same ids in
``depends_on`` for scheduling.

The builder never assigns ``BLOCKED``; every node starts ``REQUIRED``,
``SATISFIED``, ``CONFLICTED`` or ``UNKNOWN``. ``BLOCKED`` only appears when a caller sets it, and ``StateTracker`` promotes
such nodes back to ``REQUIRED`` once their last dependency is satisfied.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Final

import structlog

from manifold_solver.domain.models import (
    ConstraintGraph,
    ConstraintNode,
    GraphEdges,
    NodeStatus,
    NodeType,
    RequirementsDocument,
    VerificationResult,
)
from manifold_solver.planning.hints import HintExtractor, NullHintExtractor

if TYPE_CHECKING:
    from manifold_solver.domain.models import Artifact, Constraint, RequiredTruth, Tension

Clock = Callable[[], datetime]

ARTIFACT_ID_PREFIX: Final[str] = "ART-"
_NON_ALPHANUMERIC: Final[re.Pattern[str]] = re.compile(r"[^a-zA-Z0-9]")

_EVIDENCE_STATUS: Final[dict[str, NodeStatus]] = {
    "SATISFIED": NodeStatus.SATISFIED,
    "PARTIAL": NodeStatus.REQUIRED,
    "NOT_SATISFIED": NodeStatus.REQUIRED,
    "SPECIFICATION_READY": NodeStatus.REQUIRED,
}


def artifact_node_id(path: str) -> str:
    """Deterministic node id for an artifact path."""
    return ARTIFACT_ID_PREFIX + _NON_ALPHANUMERIC.sub("-", path)


def map_evidence_status(status: str | None) -> NodeStatus:
    if status is None:
        return NodeStatus.UNKNOWN
    return _EVIDENCE_STATUS.get(status.strip().upper(), NodeStatus.UNKNOWN)


def _utc_now() -> datetime:
    return datetime.now(UTC)


def build_graph(
    document: RequirementsDocument,
    *,
    hint_extractor: HintExtractor | None = None,
    clock: Clock | None = None,
    logger: Any | None = None,
) -> ConstraintGraph:
    """Convert ``document`` into a constraint graph; never raises on dangling ids."""
    return GraphBuilder(document, hint_extractor=hint_extractor, logger=logger).build(
        clock=clock
    )


class GraphBuilder:
    """Single-use builder holding the node map while the graph is assembled."""

    def __init__(
        self,
        document: RequirementsDocument,
        *,
        hint_extractor: HintExtractor | None = None,
        logger: Any | None = None,
    ) -> None:
        self._document = document
        self._hints = hint_extractor if hint_extractor is not None else NullHintExtractor()
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        self._nodes: dict[str, ConstraintNode] = {}
        self._edges = GraphEdges()

    def build(self, *, clock: Clock | None = None) -> ConstraintGraph:
        for constraint in self._document.all_constraints():
            self._add_constraint(constraint)
        for tension in self._document.tensions:
            self._add_tension(tension)
        for truth in self._document.required_truths:
            self._add_required_truth(truth)
        self._apply_hints()
        for artifact in self._document.artifacts:
            self._add_artifact(artifact)

        self._link_late_conflicts()
        self._build_reverse_edges()
        for node_id, node in self._nodes.items():
            for dependency in node.depends_on:
                self._edges.dependencies.append((node_id, dependency))

        generated_at = (clock or _utc_now)()
        graph = ConstraintGraph(
            feature=self._document.feature,
            generated_at=generated_at.isoformat().replace("+00:00", "Z"),
            nodes=self._nodes,
            edges=self._edges,
        )
        self._logger.debug(
            "graph.built",
            feature=graph.feature,
            nodes=len(graph.nodes),
            dependencies=len(self._edges.dependencies),
            conflicts=len(self._edges.conflicts),
            satisfies=len(self._edges.satisfies),
        )
        return graph

    def _put(self, node: ConstraintNode) -> None:
        if node.id in self._nodes:
            self._logger.warning(
                "graph.duplicate_node",
                node_id=node.id,
                replaced_type=self._nodes[node.id].type.value,
                new_type=node.type.value,
            )
        self._nodes[node.id] = node

    def _add_constraint(self, constraint: Constraint) -> None:
        self._put(
            ConstraintNode(
                id=constraint.id,
                type=NodeType.CONSTRAINT,
                label=constraint.statement,
                depends_on=list(constraint.depends_on),
                status=self._constraint_status(constraint.id),
                critical_path=constraint.type == "invariant",
            )
        )

    def _constraint_status(self, constraint_id: str) -> NodeStatus:
        verification = self._document.verification
        if verification is None:
            return NodeStatus.REQUIRED

        evidence = verification.constraint_status(constraint_id)
        if evidence is not None:
            mapped = map_evidence_status(evidence)
            if mapped is not NodeStatus.UNKNOWN:
                return mapped

        # Coarse fallback applies only when the item has no evidence of its own.
        if verification.result is VerificationResult.PASS:
            return NodeStatus.SATISFIED
        return NodeStatus.REQUIRED

    def _add_tension(self, tension: Tension) -> None:
        self._put(
            ConstraintNode(
                id=tension.id,
                type=NodeType.TENSION,
                label=tension.description,
                depends_on=list(tension.between),
                conflicts_with=list(tension.between),
                status=NodeStatus.SATISFIED if tension.is_resolved else NodeStatus.CONFLICTED,
            )
        )

        members = tension.between
        for left_index, left in enumerate(members):
            for right in members[left_index + 1 :]:
                if left == right:
                    continue
                if (left, right) not in self._edges.conflicts and (
                    right,
                    left,
                ) not in self._edges.conflicts:
                    self._edges.conflicts.append((left, right))
                self._link_conflict(left, right)

    def _link_conflict(self, left: str, right: str) -> None:
        left_node = self._nodes.get(left)
        right_node = self._nodes.get(right)
        if left_node is not None and right not in left_node.conflicts_with:
            left_node.conflicts_with.append(right)
        if right_node is not None and left not in right_node.conflicts_with:
            right_node.conflicts_with.append(left)

    def _link_late_conflicts(self) -> None:
        # Tensions may name nodes that only exist after step 2.
        for left, right in self._edges.conflicts:
            self._link_conflict(left, right)

    def _add_required_truth(self, truth: RequiredTruth) -> None:
        status_source = truth.status
        verification = self._document.verification
        if verification is not None:
            evidence = verification.required_truth_status(truth.id)
            if evidence is not None:
                status_source = evidence

        self._put(
            ConstraintNode(
                id=truth.id,
                type=NodeType.REQUIRED_TRUTH,
                label=truth.statement,
                depends_on=list(truth.maps_to_constraints),
                status=map_evidence_status(status_source),
                critical_path=truth.priority == 1,
            )
        )

    def _apply_hints(self) -> None:
        chain = self._document.dependency_chain
        if chain is None:
            return

        result = self._hints.extract(chain, self._nodes.keys())
        for dependent, dependency in result.dependencies:
            node = self._nodes.get(dependent)
            if node is not None and dependency not in node.depends_on:
                node.depends_on.append(dependency)
        for node_id in result.critical:
            node = self._nodes.get(node_id)
            if node is not None:
                node.critical_path = True

        if result.dependencies or result.critical:
            self._logger.info(
                "graph.hints_applied",
                feature=self._document.feature,
                dependencies=len(result.dependencies),
                critical=len(result.critical),
            )

    def _add_artifact(self, artifact: Artifact) -> None:
        node_id = artifact_node_id(artifact.path)
        self._put(
            ConstraintNode(
                id=node_id,
                type=NodeType.ARTIFACT,
                label=artifact.path,
                depends_on=list(artifact.satisfies),
                status=(
                    NodeStatus.SATISFIED
                    if artifact.status.strip().lower() == "generated"
                    else NodeStatus.UNKNOWN
                ),
            )
        )
        for requirement_id in artifact.satisfies:
            self._edges.satisfies.append((node_id, requirement_id))

    def _build_reverse_edges(self) -> None:
        for node_id, node in self._nodes.items():
            for dependency in node.depends_on:
                target = self._nodes.get(dependency)
                if target is not None and node_id not in target.blocks:
                    target.blocks.append(node_id)


__all__ = [
    "ARTIFACT_ID_PREFIX",
    "GraphBuilder",
    "artifact_node_id",
    "build_graph",
    "map_evidence_status",
]
