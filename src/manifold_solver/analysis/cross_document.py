"""
Heuristic semantic conflict scan across several feature documents.

Only pairs drawn from *different* features are compared. Constraint ids are
namespaced per feature, so ``B1`` in one feature and ``B1`` in another are
unrelated and never reported merely for sharing an id. Findings are graded:

- ``blocking``: two invariants that look logically incompatible
- ``requires_acceptance``: a boundary that may squeeze another feature's goal
- ``review_needed``: overlapping topics with mismatched global/local scope
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Final

import structlog

from manifold_solver.analysis._text import contains_any, shared_domain

if TYPE_CHECKING:
    from manifold_solver.domain.models import RequirementsDocument


class CrossConflictType(StrEnum):
    LOGICAL_CONTRADICTION = "logical_contradiction"
    RESOURCE_TENSION = "resource_tension"
    SCOPE_CONFLICT = "scope_conflict"


class CrossConflictSeverity(StrEnum):
    BLOCKING = "blocking"
    REQUIRES_ACCEPTANCE = "requires_acceptance"
    REVIEW_NEEDED = "review_needed"


_MUST: Final[re.Pattern[str]] = re.compile(r"must\s+(\w+)")
_MUST_NOT: Final[re.Pattern[str]] = re.compile(r"must\s+(?:not|never)\s+(\w+)")
_ALWAYS: Final[re.Pattern[str]] = re.compile(r"\balways\s+(\w+)")
_NEVER: Final[re.Pattern[str]] = re.compile(r"\bnever\s+(\w+)")

_FORMAT_PATTERNS: Final[tuple[re.Pattern[str], ...]] = (
    re.compile(
        r"(?:must|should|shall)\s+(?:use|be|return|output)\s+"
        r"(json|xml|csv|yaml|html|text|binary)\s*(?:format)?"
    ),
    re.compile(
        r"(?:format|type)\s+(?:must|should|shall)\s+be\s+(json|xml|csv|yaml|html|text|binary)"
    ),
    re.compile(
        r"(?:response|output|data)\s+(?:must|should|shall)\s+be\s+(?:in\s+)?"
        r"(json|xml|csv|yaml|html|text|binary)"
    ),
)

_BOOLEAN_OPPOSITES: Final[tuple[tuple[re.Pattern[str], re.Pattern[str], str], ...]] = (
    (re.compile(r"\bsynchronous\b"), re.compile(r"\basynchronous\b"), "sync vs async"),
    (re.compile(r"\benabled?\b"), re.compile(r"\bdisabled?\b"), "enabled vs disabled"),
    (
        re.compile(r"\ballowed?\b"),
        re.compile(r"\b(?:disallowed?|forbidden|prohibited)\b"),
        "allowed vs forbidden",
    ),
    (
        re.compile(r"\brequired\b"),
        re.compile(r"\b(?:prohibited|forbidden)\b"),
        "required vs prohibited",
    ),
    (re.compile(r"\bpublic\b"), re.compile(r"\bprivate\b"), "public vs private"),
    (re.compile(r"\bencrypted\b"), re.compile(r"\bunencrypted\b"), "encrypted vs unencrypted"),
    (re.compile(r"\bmutable\b"), re.compile(r"\bimmutable\b"), "mutable vs immutable"),
    (re.compile(r"\bstateful\b"), re.compile(r"\bstateless\b"), "stateful vs stateless"),
)

_RESOURCE_KEYWORDS: Final[tuple[str, ...]] = (
    "memory", "cpu", "disk", "bandwidth", "storage",
    "time", "latency", "timeout", "duration", "performance",
    "budget", "cost", "price", "token", "tokens",
    "connections", "threads", "workers", "instances",
    "limit", "quota", "capacity", "throughput", "rate",
    "size", "length", "count", "complexity",
)  # fmt: skip
_BOUNDARY_INDICATORS: Final[tuple[str, ...]] = (
    "must", "limit", "maximum", "minimum", "within", "under", "below", "above",
    "<", ">", "≤", "≥",
)  # fmt: skip
_GOAL_INDICATORS: Final[tuple[str, ...]] = (
    "unlimited",
    "flexible",
    "support",
    "enable",
    "allow",
    "maximize",
    "optimize",
)
_GLOBAL_SCOPE: Final[tuple[str, ...]] = (
    "all",
    "every",
    "any",
    "global",
    "system-wide",
    "always",
    "everywhere",
)
_LOCAL_SCOPE: Final[tuple[str, ...]] = (
    "specific",
    "only",
    "certain",
    "some",
    "limited",
    "conditional",
    "except",
    "unless",
)


@dataclass(frozen=True, slots=True)
class FeatureConstraint:
    feature: str
    id: str
    category: str
    type: str
    statement: str

    @property
    def qualified_id(self) -> str:
        return f"{self.feature}/{self.id}"

    def to_dict(self) -> dict[str, object]:
        return {
            "feature": self.feature,
            "id": self.id,
            "category": self.category,
            "type": self.type,
            "statement": self.statement,
        }


@dataclass(frozen=True, slots=True)
class Resolution:
    options: tuple[str, ...]
    requires_user_acceptance: bool

    def to_dict(self) -> dict[str, object]:
        return {
            "options": list(self.options),
            "requires_user_acceptance": self.requires_user_acceptance,
        }


@dataclass(frozen=True, slots=True)
class CrossDocumentConflict:
    id: str
    type: CrossConflictType
    severity: CrossConflictSeverity
    constraint_a: FeatureConstraint
    constraint_b: FeatureConstraint
    conflict_reason: str
    shared_domain: tuple[str, ...]
    resolution: Resolution

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "type": self.type.value,
            "severity": self.severity.value,
            "constraint_a": self.constraint_a.to_dict(),
            "constraint_b": self.constraint_b.to_dict(),
            "conflict_reason": self.conflict_reason,
            "shared_domain": list(self.shared_domain),
            "resolution": self.resolution.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class CrossDocumentSummary:
    total: int
    features_analyzed: int
    constraints_analyzed: int
    by_severity: dict[str, int]
    by_type: dict[str, int]

    def to_dict(self) -> dict[str, object]:
        return {
            "total": self.total,
            "features_analyzed": self.features_analyzed,
            "constraints_analyzed": self.constraints_analyzed,
            "by_severity": dict(self.by_severity),
            "by_type": dict(self.by_type),
        }


@dataclass(frozen=True, slots=True)
class CrossDocumentReport:
    conflicts: tuple[CrossDocumentConflict, ...]
    summary: CrossDocumentSummary

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    def to_dict(self) -> dict[str, object]:
        return {
            "has_conflicts": self.has_conflicts,
            "conflicts": [conflict.to_dict() for conflict in self.conflicts],
            "summary": self.summary.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class _Finding:
    shared_domain: tuple[str, ...]
    reason: str


def detect_cross_document_conflicts(
    documents: Sequence[RequirementsDocument], *, logger: Any | None = None
) -> CrossDocumentReport:
    """Compare constraints across features; never raises."""
    log = logger if logger is not None else structlog.get_logger(__name__)
    constraints = _collect(documents)
    try:
        conflicts = _scan(constraints)
    except Exception as exc:  # noqa: BLE001 - advisory scan must not fail callers.
        log.warning("conflicts.cross_scan_failed", error=str(exc))
        conflicts = []

    summary = CrossDocumentSummary(
        total=len(conflicts),
        features_analyzed=len(documents),
        constraints_analyzed=len(constraints),
        by_severity={
            severity.value: sum(1 for item in conflicts if item.severity is severity)
            for severity in CrossConflictSeverity
        },
        by_type={
            kind.value: sum(1 for item in conflicts if item.type is kind)
            for kind in CrossConflictType
        },
    )
    log.debug(
        "conflicts.cross_scanned",
        features=summary.features_analyzed,
        constraints=summary.constraints_analyzed,
        total=summary.total,
    )
    return CrossDocumentReport(conflicts=tuple(conflicts), summary=summary)


def _collect(documents: Sequence[RequirementsDocument]) -> list[FeatureConstraint]:
    return [
        FeatureConstraint(
            feature=document.feature,
            id=constraint.id,
            category=constraint.category,
            type=constraint.type,
            statement=constraint.statement,
        )
        for document in documents
        for constraint in document.all_constraints()
    ]


def _scan(constraints: Sequence[FeatureConstraint]) -> list[CrossDocumentConflict]:
    conflicts: list[CrossDocumentConflict] = []
    counter = 0

    for index, first in enumerate(constraints):
        for second in constraints[index + 1 :]:
            if first.feature == second.feature:
                continue

            if first.type == "invariant" and second.type == "invariant":
                finding = _contradiction(first, second)
                if finding is not None:
                    counter += 1
                    conflicts.append(
                        CrossDocumentConflict(
                            id=f"CONFLICT-{counter}",
                            type=CrossConflictType.LOGICAL_CONTRADICTION,
                            severity=CrossConflictSeverity.BLOCKING,
                            constraint_a=first,
                            constraint_b=second,
                            conflict_reason=finding.reason,
                            shared_domain=finding.shared_domain,
                            resolution=Resolution(
                                options=(
                                    f"Scope {first.qualified_id} to exclude "
                                    f"{second.feature}'s domain",
                                    f"Scope {second.qualified_id} to exclude "
                                    f"{first.feature}'s domain",
                                    "Relax one constraint from invariant to goal",
                                    "Remove one constraint entirely",
                                ),
                                requires_user_acceptance=True,
                            ),
                        )
                    )

            if {first.type, second.type} == {"boundary", "goal"}:
                boundary, goal = (first, second) if first.type == "boundary" else (second, first)
                finding = _resource_tension(boundary, goal)
                if finding is not None:
                    counter += 1
                    conflicts.append(
                        CrossDocumentConflict(
                            id=f"TENSION-{counter}",
                            type=CrossConflictType.RESOURCE_TENSION,
                            severity=CrossConflictSeverity.REQUIRES_ACCEPTANCE,
                            constraint_a=boundary,
                            constraint_b=goal,
                            conflict_reason=finding.reason,
                            shared_domain=finding.shared_domain,
                            resolution=Resolution(
                                options=(
                                    "Accept this tension and document in both features' "
                                    "tensions section",
                                    f"Relax the boundary constraint {boundary.id}",
                                    f"Constrain the goal {goal.id} to work within the boundary",
                                ),
                                requires_user_acceptance=True,
                            ),
                        )
                    )

            finding = _scope_conflict(first, second)
            if finding is not None:
                counter += 1
                conflicts.append(
                    CrossDocumentConflict(
                        id=f"REVIEW-{counter}",
                        type=CrossConflictType.SCOPE_CONFLICT,
                        severity=CrossConflictSeverity.REVIEW_NEEDED,
                        constraint_a=first,
                        constraint_b=second,
                        conflict_reason=finding.reason,
                        shared_domain=finding.shared_domain,
                        resolution=Resolution(
                            options=(
                                "Clarify if the local constraint is an exception to the "
                                "global one",
                                "Add explicit scoping rules to both constraints",
                                "Document as an accepted tension if intentional",
                            ),
                            requires_user_acceptance=False,
                        ),
                    )
                )

    return conflicts


def _contradiction(first: FeatureConstraint, second: FeatureConstraint) -> _Finding | None:
    """Two invariants about the same topic with incompatible demands."""
    left = first.statement.lower()
    right = second.statement.lower()
    domain = shared_domain(left, right)
    if len(domain) < 2:
        return None

    left_must = _MUST.findall(left)
    right_must = _MUST.findall(right)
    left_must_not = _MUST_NOT.findall(left)
    right_must_not = _MUST_NOT.findall(right)
    for verb in left_must:
        if verb in right_must_not:
            return _Finding(tuple(domain), f'One requires "{verb}" while the other prohibits it')
    for verb in right_must:
        if verb in left_must_not:
            return _Finding(tuple(domain), f'One requires "{verb}" while the other prohibits it')

    for pattern in _FORMAT_PATTERNS:
        left_format = pattern.search(left)
        right_format = pattern.search(right)
        if left_format and right_format and left_format.group(1) != right_format.group(1):
            return _Finding(
                (*domain, "format"),
                f'Incompatible format requirements: "{left_format.group(1)}" '
                f'vs "{right_format.group(1)}"',
            )

    for positive, negative, description in _BOOLEAN_OPPOSITES:
        left_positive = bool(positive.search(left))
        left_negative = bool(negative.search(left))
        right_positive = bool(positive.search(right))
        right_negative = bool(negative.search(right))
        if (left_positive and right_negative) or (left_negative and right_positive):
            return _Finding(tuple(domain), f"Mutually exclusive requirements: {description}")

    always = _ALWAYS.search(left) or _ALWAYS.search(right)
    never = _NEVER.search(left) or _NEVER.search(right)
    if always and never and always.group(1) == never.group(1):
        verb = always.group(1)
        return _Finding(
            tuple(domain),
            f'One says "always {verb}" while the other says "never {verb}"',
        )

    return None


def _resource_tension(boundary: FeatureConstraint, goal: FeatureConstraint) -> _Finding | None:
    """A boundary limiting a resource that another feature's goal wants more of."""
    limit_text = boundary.statement.lower()
    goal_text = goal.statement.lower()
    domain = shared_domain(limit_text, goal_text)
    if not domain:
        return None

    if not (
        contains_any(limit_text, _RESOURCE_KEYWORDS)
        and contains_any(goal_text, _RESOURCE_KEYWORDS)
        and contains_any(limit_text, _BOUNDARY_INDICATORS)
        and contains_any(goal_text, _GOAL_INDICATORS)
    ):
        return None

    resource = next(
        (
            keyword
            for keyword in _RESOURCE_KEYWORDS
            if keyword in limit_text or keyword in goal_text
        ),
        "resources",
    )
    ordered = (resource, *(word for word in domain if word != resource))
    return _Finding(
        ordered[:4],
        f'Boundary "{boundary.id}" limits {resource} which may constrain goal "{goal.id}"',
    )


def _scope_conflict(first: FeatureConstraint, second: FeatureConstraint) -> _Finding | None:
    left = first.statement.lower()
    right = second.statement.lower()
    domain = shared_domain(left, right)
    if len(domain) < 2:
        return None

    left_global = contains_any(left, _GLOBAL_SCOPE)
    right_global = contains_any(right, _GLOBAL_SCOPE)
    left_local = contains_any(left, _LOCAL_SCOPE)
    right_local = contains_any(right, _LOCAL_SCOPE)
    if not ((left_global and right_local) or (left_local and right_global)):
        return None

    global_side = first if left_global else second
    local_side = first if left_local else second
    return _Finding(
        tuple(domain),
        f'"{global_side.id}" has global scope while "{local_side.id}" has local scope '
        f"for overlapping domain: {', '.join(domain[:3])}",
    )


__all__ = [
    "CrossConflictSeverity",
    "CrossConflictType",
    "CrossDocumentConflict",
    "CrossDocumentReport",
    "CrossDocumentSummary",
    "FeatureConstraint",
    "Resolution",
    "detect_cross_document_conflicts",
]
