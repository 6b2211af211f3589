"""
Heuristic semantic conflict scan within a single requirements document.

The scan compares constraint statements pairwise with keyword tables and
reports four categories of *possible* conflicts. It is advisory only: it may
both miss real conflicts and flag harmless pairs, and nothing in the graph or
planner depends on its output.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Final

import structlog

from manifold_solver.analysis._text import contains_any, shared_words, truncate

if TYPE_CHECKING:
    from manifold_solver.domain.models import Constraint, RequirementsDocument


class ConflictType(StrEnum):
    CONTRADICTORY_INVARIANTS = "contradictory_invariants"
    RESOURCE_CONFLICT = "resource_conflict"
    TEMPORAL_CONFLICT = "temporal_conflict"
    SCOPE_CONFLICT = "scope_conflict"


class ConflictSeverity(StrEnum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


CONTRADICTION_PAIRS: Final[tuple[tuple[str, str], ...]] = (
    ("must", "must not"),
    ("always", "never"),
    ("all", "none"),
    ("enable", "disable"),
    ("allow", "block"),
    ("require", "prohibit"),
    ("maximum", "minimum"),
    ("synchronous", "asynchronous"),
)

RESOURCE_KEYWORDS: Final[tuple[str, ...]] = (
    "memory", "cpu", "disk", "bandwidth", "storage",
    "time", "latency", "timeout", "duration",
    "budget", "cost", "price",
    "connections", "threads", "workers", "instances",
    "tokens", "limit", "quota", "capacity",
)  # fmt: skip

SIMULTANEOUS_KEYWORDS: Final[tuple[str, ...]] = (
    "simultaneous",
    "concurrent",
    "parallel",
    "same time",
)
SEQUENTIAL_KEYWORDS: Final[tuple[str, ...]] = ("sequential", "serial", "one at a time", "in order")
GLOBAL_SCOPE_KEYWORDS: Final[tuple[str, ...]] = (
    "all",
    "every",
    "any",
    "global",
    "system-wide",
    "always",
)
LOCAL_SCOPE_KEYWORDS: Final[tuple[str, ...]] = (
    "specific",
    "only",
    "certain",
    "some",
    "limited",
    "conditional",
)

_NUMERIC_THRESHOLD: Final[re.Pattern[str]] = re.compile(
    r"(\d+)\s*(ms|seconds?|minutes?|mb|gb|%)", re.I
)


@dataclass(frozen=True, slots=True)
class SemanticConflict:
    id: str
    type: ConflictType
    constraints: tuple[str, ...]
    severity: ConflictSeverity
    explanation: str
    suggestion: str | None = None

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "id": self.id,
            "type": self.type.value,
            "constraints": list(self.constraints),
            "severity": self.severity.value,
            "explanation": self.explanation,
        }
        if self.suggestion is not None:
            payload["suggestion"] = self.suggestion
        return payload


@dataclass(frozen=True, slots=True)
class ConflictSummary:
    total: int
    by_severity: dict[str, int]
    by_type: dict[str, int]

    def to_dict(self) -> dict[str, object]:
        return {
            "total": self.total,
            "by_severity": dict(self.by_severity),
            "by_type": dict(self.by_type),
        }


@dataclass(frozen=True, slots=True)
class ConflictReport:
    conflicts: tuple[SemanticConflict, ...] = ()
    summary: ConflictSummary = field(default_factory=lambda: _summarize(()))

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    def to_dict(self) -> dict[str, object]:
        return {
            "has_conflicts": self.has_conflicts,
            "conflicts": [conflict.to_dict() for conflict in self.conflicts],
            "summary": self.summary.to_dict(),
        }


def detect_conflicts(
    document: RequirementsDocument, *, logger: Any | None = None
) -> ConflictReport:
    """Scan ``document`` for possible semantic conflicts; never raises."""
    log = logger if logger is not None else structlog.get_logger(__name__)
    try:
        conflicts = _scan(document.all_constraints())
    except Exception as exc:  # noqa: BLE001 - advisory scan must not fail callers.
        log.warning("conflicts.scan_failed", feature=document.feature, error=str(exc))
        conflicts = []

    report = ConflictReport(conflicts=tuple(conflicts), summary=_summarize(conflicts))
    log.debug("conflicts.scanned", feature=document.feature, total=report.summary.total)
    return report


def _scan(constraints: Sequence[Constraint]) -> list[SemanticConflict]:
    conflicts: list[SemanticConflict] = []
    counter = 0

    def next_id() -> str:
        nonlocal counter
        counter += 1
        return f"SC-{counter}"

    _contradictory_invariants(constraints, conflicts, next_id)
    _resource_conflicts(constraints, conflicts, next_id)
    _temporal_conflicts(constraints, conflicts, next_id)
    _scope_conflicts(constraints, conflicts, next_id)
    return conflicts


def _summarize(conflicts: Sequence[SemanticConflict]) -> ConflictSummary:
    return ConflictSummary(
        total=len(conflicts),
        by_severity={
            severity.value: sum(1 for item in conflicts if item.severity is severity)
            for severity in ConflictSeverity
        },
        by_type={
            kind.value: sum(1 for item in conflicts if item.type is kind) for kind in ConflictType
        },
    )


def _contradictory_invariants(
    constraints: Sequence[Constraint],
    conflicts: list[SemanticConflict],
    next_id: Callable[[], str],
) -> None:
    invariants = [item for item in constraints if item.type == "invariant"]
    for index, first in enumerate(invariants):
        for second in invariants[index + 1 :]:
            left = first.statement.lower()
            right = second.statement.lower()
            if not _has_opposing_keywords(left, right):
                continue
            overlap = shared_words(left, right, min_length=4)
            if len(overlap) < 2:
                continue
            conflicts.append(
                SemanticConflict(
                    id=next_id(),
                    type=ConflictType.CONTRADICTORY_INVARIANTS,
                    constraints=(first.id, second.id),
                    severity=ConflictSeverity.CRITICAL,
                    explanation=(
                        f'Invariant {first.id} "{truncate(first.statement, 40)}" may contradict '
                        f'{second.id} "{truncate(second.statement, 40)}" - both are invariants '
                        f"with opposing requirements about: {', '.join(overlap[:3])}"
                    ),
                    suggestion=(
                        "Review these invariants and either merge them, add explicit "
                        "precedence, or convert one to a trade_off tension."
                    ),
                )
            )


def _has_opposing_keywords(left: str, right: str) -> bool:
    for positive, negative in CONTRADICTION_PAIRS:
        if (positive in left and negative in right) or (negative in left and positive in right):
            return True
    return False


def _resource_conflicts(
    constraints: Sequence[Constraint],
    conflicts: list[SemanticConflict],
    next_id: Callable[[], str],
) -> None:
    by_resource: dict[str, list[Constraint]] = {}
    for item in constraints:
        statement = item.statement.lower()
        for resource in RESOURCE_KEYWORDS:
            if resource in statement:
                by_resource.setdefault(resource, []).append(item)

    for resource, group in by_resource.items():
        if len(group) < 2:
            continue
        numeric = [item for item in group if _NUMERIC_THRESHOLD.search(item.statement)]
        if len(numeric) < 2:
            continue
        ids = tuple(item.id for item in numeric)
        conflicts.append(
            SemanticConflict(
                id=next_id(),
                type=ConflictType.RESOURCE_CONFLICT,
                constraints=ids,
                severity=ConflictSeverity.HIGH,
                explanation=(
                    f'Multiple constraints define limits for "{resource}": {", ".join(ids)}. '
                    "These may compete for the same resource and require trade-off analysis."
                ),
                suggestion=(
                    "Document as a resource_tension in the tensions section and specify "
                    "priority order."
                ),
            )
        )


def _temporal_conflicts(
    constraints: Sequence[Constraint],
    conflicts: list[SemanticConflict],
    next_id: Callable[[], str],
) -> None:
    for index, first in enumerate(constraints):
        for second in constraints[index + 1 :]:
            left = first.statement.lower()
            right = second.statement.lower()
            left_simultaneous = contains_any(left, SIMULTANEOUS_KEYWORDS)
            right_simultaneous = contains_any(right, SIMULTANEOUS_KEYWORDS)
            left_sequential = contains_any(left, SEQUENTIAL_KEYWORDS)
            right_sequential = contains_any(right, SEQUENTIAL_KEYWORDS)
            if not (
                (left_simultaneous and right_sequential)
                or (left_sequential and right_simultaneous)
            ):
                continue
            overlap = shared_words(left, right, min_length=5)
            if not overlap:
                continue
            left_mode = "concurrent" if left_simultaneous else "sequential"
            right_mode = "concurrent" if right_simultaneous else "sequential"
            conflicts.append(
                SemanticConflict(
                    id=next_id(),
                    type=ConflictType.TEMPORAL_CONFLICT,
                    constraints=(first.id, second.id),
                    severity=ConflictSeverity.MEDIUM,
                    explanation=(
                        f"{first.id} requires {left_mode} execution while {second.id} requires "
                        f"{right_mode} execution for operations involving: "
                        f"{', '.join(overlap[:3])}"
                    ),
                    suggestion=(
                        "Clarify execution order requirements or document as a "
                        "hidden_dependency tension."
                    ),
                )
            )


def _scope_conflicts(
    constraints: Sequence[Constraint],
    conflicts: list[SemanticConflict],
    next_id: Callable[[], str],
) -> None:
    for index, first in enumerate(constraints):
        for second in constraints[index + 1 :]:
            # Same-category pairs are usually deliberate refinements.
            if first.category == second.category:
                continue
            left = first.statement.lower()
            right = second.statement.lower()
            left_global = contains_any(left, GLOBAL_SCOPE_KEYWORDS)
            right_global = contains_any(right, GLOBAL_SCOPE_KEYWORDS)
            left_local = contains_any(left, LOCAL_SCOPE_KEYWORDS)
            right_local = contains_any(right, LOCAL_SCOPE_KEYWORDS)
            if not ((left_global and right_local) or (left_local and right_global)):
                continue
            overlap = shared_words(left, right, min_length=5)
            if not overlap:
                continue
            left_scope = "global" if left_global else "local"
            right_scope = "global" if right_global else "local"
            conflicts.append(
                SemanticConflict(
                    id=next_id(),
                    type=ConflictType.SCOPE_CONFLICT,
                    constraints=(first.id, second.id),
                    severity=ConflictSeverity.LOW,
                    explanation=(
                        f"{first.id} ({first.category}) has {left_scope} scope while "
                        f"{second.id} ({second.category}) has {right_scope} scope for: "
                        f"{', '.join(overlap[:3])}"
                    ),
                    suggestion=(
                        "Consider whether the local constraint is an exception to the global "
                        "one, or if they need explicit scoping rules."
                    ),
                )
            )


__all__ = [
    "CONTRADICTION_PAIRS",
    "RESOURCE_KEYWORDS",
    "ConflictReport",
    "ConflictSeverity",
    "ConflictSummary",
    "ConflictType",
    "SemanticConflict",
    "detect_conflicts",
]
