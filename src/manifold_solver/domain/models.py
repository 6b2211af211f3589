"""Dataclass domain models for requirement documents, constraint graphs and plans."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Final, NoReturn

from manifold_solver.errors import DocumentError

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

GRAPH_SCHEMA_VERSION: Final[int] = 1

CONSTRAINT_CATEGORIES: Final[tuple[str, ...]] = (
    "business",
    "technical",
    "user_experience",
    "security",
    "operational",
)
_CATEGORY_ALIASES: Final[dict[str, str]] = {"ux": "user_experience"}


class DocumentPhase(StrEnum):
    INITIALIZED = "INITIALIZED"
    CONSTRAINED = "CONSTRAINED"
    TENSIONED = "TENSIONED"
    ANCHORED = "ANCHORED"
    GENERATED = "GENERATED"
    VERIFIED = "VERIFIED"


class NodeType(StrEnum):
    CONSTRAINT = "constraint"
    TENSION = "tension"
    REQUIRED_TRUTH = "required_truth"
    ARTIFACT = "artifact"


class NodeStatus(StrEnum):
    UNKNOWN = "UNKNOWN"
    REQUIRED = "REQUIRED"
    SATISFIED = "SATISFIED"
    BLOCKED = "BLOCKED"
    CONFLICTED = "CONFLICTED"


class PlanStrategy(StrEnum):
    FORWARD = "forward"
    BACKWARD = "backward"
    HYBRID = "hybrid"


class VerificationResult(StrEnum):
    PASS = "PASS"
    FAIL = "FAIL"
    PARTIAL = "PARTIAL"


def _fail(path: str, message: str) -> NoReturn:
    raise DocumentError(f"{path}: {message}")


def _as_mapping(value: object, path: str) -> Mapping[str, object]:
    if not isinstance(value, Mapping):
        _fail(path, f"expected object, got {type(value).__name__}")
    return value


def _as_id(value: object, path: str) -> str:
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if not isinstance(value, str) or not value.strip():
        _fail(path, "expected non-empty string")
    return value.strip()


def _as_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def _as_optional_text(value: object) -> str | None:
    if value is None:
        return None
    return _as_text(value)


def _as_id_tuple(value: object, path: str) -> tuple[str, ...]:
    """Coerce an optional list of ids, dropping duplicates but keeping order."""
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,) if value.strip() else ()
    if not isinstance(value, Sequence):
        _fail(path, f"expected list of ids, got {type(value).__name__}")
    ordered: list[str] = []
    for index, item in enumerate(value):
        normalized = _as_id(item, f"{path}[{index}]")
        if normalized not in ordered:
            ordered.append(normalized)
    return tuple(ordered)


def _as_text_tuple(value: object) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, Sequence):
        return ()
    return tuple(_as_text(item) for item in value if item is not None)


def _as_optional_int(value: object, path: str) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        _fail(path, "expected integer, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    _fail(path, f"expected integer, got {type(value).__name__}")


def _records(value: object, path: str) -> list[Mapping[str, object]]:
    if value is None:
        return []
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        _fail(path, "expected a list")
    return [_as_mapping(item, f"{path}[{index}]") for index, item in enumerate(value)]


# ---------------------------------------------------------------------------
# Input documents
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Constraint:
    id: str
    type: str
    statement: str
    category: str = "business"
    depends_on: tuple[str, ...] = ()
    rationale: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, object], *, category: str, path: str) -> Constraint:
        return cls(
            id=_as_id(data.get("id"), f"{path}.id"),
            type=_as_text(data.get("type")).strip().lower(),
            statement=_as_text(data.get("statement")),
            category=category,
            depends_on=_as_id_tuple(data.get("depends_on"), f"{path}.depends_on"),
            rationale=_as_optional_text(data.get("rationale")),
        )

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {
            "id": self.id,
            "type": self.type,
            "statement": self.statement,
            "category": self.category,
            "depends_on": list(self.depends_on),
        }
        if self.rationale is not None:
            payload["rationale"] = self.rationale
        return payload


@dataclass(frozen=True, slots=True)
class Tension:
    id: str
    type: str
    between: tuple[str, ...]
    description: str
    status: str = "unresolved"
    resolution: str | None = None

    @property
    def is_resolved(self) -> bool:
        return self.status.strip().lower() == "resolved"

    @classmethod
    def from_dict(cls, data: Mapping[str, object], *, path: str) -> Tension:
        return cls(
            id=_as_id(data.get("id"), f"{path}.id"),
            type=_as_text(data.get("type")),
            between=_as_id_tuple(data.get("between"), f"{path}.between"),
            description=_as_text(data.get("description")),
            status=_as_text(data.get("status")) or "unresolved",
            resolution=_as_optional_text(data.get("resolution")),
        )


@dataclass(frozen=True, slots=True)
class RequiredTruth:
    id: str
    statement: str
    status: str
    priority: int | None = None
    maps_to_constraints: tuple[str, ...] = ()
    evidence: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, object], *, path: str) -> RequiredTruth:
        return cls(
            id=_as_id(data.get("id"), f"{path}.id"),
            statement=_as_text(data.get("statement")),
            status=_as_text(data.get("status")).strip().upper(),
            priority=_as_optional_int(data.get("priority"), f"{path}.priority"),
            maps_to_constraints=_as_id_tuple(
                data.get("maps_to_constraints"), f"{path}.maps_to_constraints"
            ),
            evidence=_as_optional_text(data.get("evidence")),
        )


@dataclass(frozen=True, slots=True)
class Artifact:
    path: str
    type: str
    satisfies: tuple[str, ...] = ()
    status: str = ""
    description: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, object], *, path: str) -> Artifact:
        return cls(
            path=_as_id(data.get("path"), f"{path}.path"),
            type=_as_text(data.get("type")),
            satisfies=_as_id_tuple(data.get("satisfies"), f"{path}.satisfies"),
            status=_as_text(data.get("status")),
            description=_as_optional_text(data.get("description")),
        )


@dataclass(frozen=True, slots=True)
class DependencyChain:
    """Legacy free-text ordering annotations from anchor documents."""

    sequential: tuple[str, ...] = ()
    blocking: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> DependencyChain:
        return cls(
            sequential=_as_text_tuple(data.get("sequential")),
            blocking=_as_text_tuple(data.get("blocking")),
        )


@dataclass(frozen=True, slots=True)
class Verification:
    """Verification outcome: a coarse result plus optional per-item evidence."""

    result: VerificationResult | None = None
    required_truths: Mapping[str, str] = field(default_factory=dict)
    constraints: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, object], *, path: str = "verification") -> Verification:
        raw_result = _as_text(data.get("result")).strip().upper()
        result = (
            VerificationResult(raw_result)
            if raw_result in VerificationResult.__members__
            else None
        )
        return cls(
            result=result,
            required_truths=_status_map(data.get("required_truths"), f"{path}.required_truths"),
            constraints=_status_map(data.get("constraints"), f"{path}.constraints"),
        )

    def constraint_status(self, constraint_id: str) -> str | None:
        return self.constraints.get(constraint_id)

    def required_truth_status(self, truth_id: str) -> str | None:
        return self.required_truths.get(truth_id)


def _status_map(value: object, path: str) -> dict[str, str]:
    """Accept ``{id: STATUS}`` or ``{id: {status: STATUS, ...}}`` evidence maps."""
    if value is None:
        return {}
    mapping = _as_mapping(value, path)
    statuses: dict[str, str] = {}
    for key, item in mapping.items():
        raw = item.get("status") if isinstance(item, Mapping) else item
        text = _as_text(raw).strip().upper()
        if text:
            statuses[str(key)] = text
    return statuses


@dataclass(frozen=True, slots=True)
class RequirementsDocument:
    """One feature's pre-validated requirement artifacts."""

    feature: str
    phase: str = DocumentPhase.INITIALIZED.value
    constraints: Mapping[str, tuple[Constraint, ...]] = field(default_factory=dict)
    tensions: tuple[Tension, ...] = ()
    required_truths: tuple[RequiredTruth, ...] = ()
    artifacts: tuple[Artifact, ...] = ()
    verification: Verification | None = None
    dependency_chain: DependencyChain | None = None

    def all_constraints(self) -> tuple[Constraint, ...]:
        """Constraints flattened in fixed category order."""
        flattened: list[Constraint] = []
        for category in CONSTRAINT_CATEGORIES:
            flattened.extend(self.constraints.get(category, ()))
        return tuple(flattened)

    def constraint_count(self) -> int:
        return sum(len(self.constraints.get(category, ())) for category in CONSTRAINT_CATEGORIES)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> RequirementsDocument:
        payload = _as_mapping(data, "document")
        feature = _as_id(payload.get("feature"), "document.feature")

        grouped: dict[str, list[Constraint]] = {category: [] for category in CONSTRAINT_CATEGORIES}
        raw_constraints = payload.get("constraints")
        if raw_constraints is not None:
            for raw_category, records in _as_mapping(raw_constraints, "constraints").items():
                category = _CATEGORY_ALIASES.get(str(raw_category), str(raw_category))
                if category not in grouped:
                    continue
                for index, record in enumerate(_records(records, f"constraints.{raw_category}")):
                    grouped[category].append(
                        Constraint.from_dict(
                            record,
                            category=category,
                            path=f"constraints.{raw_category}[{index}]",
                        )
                    )

        tensions = tuple(
            Tension.from_dict(record, path=f"tensions[{index}]")
            for index, record in enumerate(_records(payload.get("tensions"), "tensions"))
        )

        anchors = payload.get("anchors")
        truth_records: list[Mapping[str, object]] = []
        if anchors is not None:
            truth_records = _records(
                _as_mapping(anchors, "anchors").get("required_truths"),
                "anchors.required_truths",
            )
        required_truths = tuple(
            RequiredTruth.from_dict(record, path=f"anchors.required_truths[{index}]")
            for index, record in enumerate(truth_records)
        )

        generation = payload.get("generation")
        artifact_records: list[Mapping[str, object]] = []
        if generation is not None:
            artifact_records = _records(
                _as_mapping(generation, "generation").get("artifacts"),
                "generation.artifacts",
            )
        artifacts = tuple(
            Artifact.from_dict(record, path=f"generation.artifacts[{index}]")
            for index, record in enumerate(artifact_records)
        )

        verification_raw = payload.get("verification")
        verification = (
            Verification.from_dict(_as_mapping(verification_raw, "verification"))
            if verification_raw is not None
            else None
        )
        chain_raw = payload.get("dependency_chain")
        dependency_chain = (
            DependencyChain.from_dict(_as_mapping(chain_raw, "dependency_chain"))
            if chain_raw is not None
            else None
        )

        return cls(
            feature=feature,
            phase=_as_text(payload.get("phase")).strip().upper()
            or DocumentPhase.INITIALIZED.value,
            constraints={category: tuple(items) for category, items in grouped.items()},
            tensions=tensions,
            required_truths=required_truths,
            artifacts=artifacts,
            verification=verification,
            dependency_chain=dependency_chain,
        )


# ---------------------------------------------------------------------------
# Graph
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class ConstraintNode:
    id: str
    type: NodeType
    label: str
    depends_on: list[str] = field(default_factory=list)
    blocks: list[str] = field(default_factory=list)
    conflicts_with: list[str] = field(default_factory=list)
    status: NodeStatus = NodeStatus.UNKNOWN
    critical_path: bool = False
    wave_number: int | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {
            "id": self.id,
            "type": self.type.value,
            "label": self.label,
            "depends_on": list(self.depends_on),
            "blocks": list(self.blocks),
            "conflicts_with": list(self.conflicts_with),
            "status": self.status.value,
            "critical_path": self.critical_path,
        }
        if self.wave_number is not None:
            payload["wave_number"] = self.wave_number
        return payload


@dataclass(slots=True)
class GraphEdges:
    dependencies: list[tuple[str, str]] = field(default_factory=list)
    conflicts: list[tuple[str, str]] = field(default_factory=list)
    satisfies: list[tuple[str, str]] = field(default_factory=list)

    def total(self) -> int:
        return len(self.dependencies) + len(self.conflicts) + len(self.satisfies)

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "dependencies": [list(edge) for edge in self.dependencies],
            "conflicts": [list(edge) for edge in self.conflicts],
            "satisfies": [list(edge) for edge in self.satisfies],
        }


@dataclass(slots=True)
class ConstraintGraph:
    feature: str
    generated_at: str
    nodes: dict[str, ConstraintNode] = field(default_factory=dict)
    edges: GraphEdges = field(default_factory=GraphEdges)
    version: int = GRAPH_SCHEMA_VERSION

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def get(self, node_id: str) -> ConstraintNode | None:
        return self.nodes.get(node_id)

    def nodes_of_type(self, node_type: NodeType) -> list[ConstraintNode]:
        return [node for node in self.nodes.values() if node.type is node_type]

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "version": self.version,
            "generated_at": self.generated_at,
            "feature": self.feature,
            "nodes": {node_id: node.to_dict() for node_id, node in self.nodes.items()},
            "edges": self.edges.to_dict(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))


# ---------------------------------------------------------------------------
# Plans and progress
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ParallelTask:
    id: str
    node_ids: tuple[str, ...]
    action: str
    description: str
    artifact_paths: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {
            "id": self.id,
            "node_ids": list(self.node_ids),
            "action": self.action,
            "description": self.description,
        }
        if self.artifact_paths:
            payload["artifact_paths"] = list(self.artifact_paths)
        return payload


@dataclass(frozen=True, slots=True)
class Wave:
    number: int
    phase: str
    parallel_tasks: tuple[ParallelTask, ...]
    blocking_dependencies: tuple[str, ...]

    @property
    def node_ids(self) -> tuple[str, ...]:
        return tuple(node_id for task in self.parallel_tasks for node_id in task.node_ids)

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "number": self.number,
            "phase": self.phase,
            "parallel_tasks": [task.to_dict() for task in self.parallel_tasks],
            "blocking_dependencies": list(self.blocking_dependencies),
        }


@dataclass(frozen=True, slots=True)
class ExecutionPlan:
    strategy: PlanStrategy
    waves: tuple[Wave, ...]
    critical_path: tuple[str, ...]
    parallelization_factor: float
    generated_at: str = ""

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "generated_at": self.generated_at,
            "strategy": self.strategy.value,
            "waves": [wave.to_dict() for wave in self.waves],
            "critical_path": list(self.critical_path),
            "parallelization_factor": self.parallelization_factor,
        }


@dataclass(frozen=True, slots=True)
class Progress:
    satisfied: int
    total: int
    percentage: int

    def to_dict(self) -> dict[str, JSONValue]:
        return {"satisfied": self.satisfied, "total": self.total, "percentage": self.percentage}


@dataclass(frozen=True, slots=True)
class SatisfactionResult:
    success: bool
    unblocked: tuple[str, ...]
    newly_ready: tuple[str, ...]
    progress: Progress

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "success": self.success,
            "unblocked": list(self.unblocked),
            "newly_ready": list(self.newly_ready),
            "progress": self.progress.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class RemainingWork:
    ready: tuple[str, ...]
    blocked: tuple[str, ...]
    by_type: Mapping[str, int]
    estimated_waves: int

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "ready": list(self.ready),
            "blocked": list(self.blocked),
            "by_type": dict(self.by_type),
            "estimated_waves": self.estimated_waves,
        }


__all__ = [
    "CONSTRAINT_CATEGORIES",
    "GRAPH_SCHEMA_VERSION",
    "Artifact",
    "Constraint",
    "ConstraintGraph",
    "ConstraintNode",
    "DependencyChain",
    "DocumentPhase",
    "ExecutionPlan",
    "GraphEdges",
    "JSONScalar",
    "JSONValue",
    "NodeStatus",
    "NodeType",
    "ParallelTask",
    "PlanStrategy",
    "Progress",
    "RemainingWork",
    "RequiredTruth",
    "RequirementsDocument",
    "SatisfactionResult",
    "Tension",
    "Verification",
    "VerificationResult",
    "Wave",
]
