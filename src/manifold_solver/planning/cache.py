"""Process-local memoization of constraint graphs and execution plans.

Entries are keyed by feature name and validated against a coarse fingerprint
built from the feature, its phase and the *counts* of each artifact kind. The
fingerprint is deliberately not a structural hash: editing a constraint's text
or dependencies without changing any count keeps serving the cached graph until
the entry is evicted or the cache is cleared.

Lifecycle: a ``GraphCache`` lives for the whole process (``default_graph_cache``)
or for as long as the caller that injected it. Stale entries are dropped lazily
on lookup; nothing expires on its own. The map is guarded by a lock so
concurrent lookups do not corrupt it, but callers sharing one feature across
threads must still serialize mutation of the cached graph themselves.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from manifold_solver.domain.models import PlanStrategy

if TYPE_CHECKING:
    from manifold_solver.domain.models import (
        ConstraintGraph,
        ExecutionPlan,
        RequirementsDocument,
    )


def fingerprint(document: RequirementsDocument) -> str:
    """Count-based change detector: ``feature:phase:C:T:R:A``."""
    return ":".join(
        (
            document.feature,
            document.phase,
            str(document.constraint_count()),
            str(len(document.tensions)),
            str(len(document.required_truths)),
            str(len(document.artifacts)),
        )
    )


@dataclass(slots=True)
class CacheEntry:
    graph: ConstraintGraph
    fingerprint: str
    created_at: float
    plans: dict[PlanStrategy, ExecutionPlan] = field(default_factory=dict)

    def plan_for(self, strategy: PlanStrategy | str) -> ExecutionPlan | None:
        return self.plans.get(PlanStrategy(strategy))


@dataclass(frozen=True, slots=True)
class CacheStats:
    size: int
    features: tuple[str, ...]

    def to_dict(self) -> dict[str, object]:
        return {"size": self.size, "features": list(self.features)}


class GraphCache:
    """Feature-keyed cache of graphs with one plan slot per strategy."""

    def __init__(self, *, logger: Any | None = None) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    def get(self, document: RequirementsDocument) -> CacheEntry | None:
        """Return the live entry for ``document.feature`` or evict a stale one."""
        current = fingerprint(document)
        with self._lock:
            entry = self._entries.get(document.feature)
            if entry is None:
                return None
            if entry.fingerprint != current:
                del self._entries[document.feature]
                self._logger.debug(
                    "cache.evicted",
                    feature=document.feature,
                    cached=entry.fingerprint,
                    current=current,
                )
                return None
            return entry

    def store(
        self,
        document: RequirementsDocument,
        graph: ConstraintGraph,
        plan: ExecutionPlan | None = None,
    ) -> CacheEntry:
        entry = CacheEntry(graph=graph, fingerprint=fingerprint(document), created_at=time.time())
        if plan is not None:
            entry.plans[plan.strategy] = plan
        with self._lock:
            self._entries[document.feature] = entry
        return entry

    def store_plan(self, feature: str, plan: ExecutionPlan) -> None:
        with self._lock:
            entry = self._entries.get(feature)
            if entry is not None:
                entry.plans[plan.strategy] = plan

    def invalidate_plan(self, feature: str) -> None:
        """Drop every cached plan for ``feature`` while keeping its graph."""
        with self._lock:
            entry = self._entries.get(feature)
            if entry is not None:
                entry.plans.clear()

    def evict(self, feature: str) -> None:
        with self._lock:
            self._entries.pop(feature, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(size=len(self._entries), features=tuple(self._entries))

    def __contains__(self, feature: object) -> bool:
        with self._lock:
            return feature in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


_DEFAULT_CACHE = GraphCache()


def default_graph_cache() -> GraphCache:
    """Process-wide cache used when no cache is injected."""
    return _DEFAULT_CACHE


def clear_graph_cache() -> None:
    _DEFAULT_CACHE.clear()


__all__ = [
    "CacheEntry",
    "CacheStats",
    "GraphCache",
    "clear_graph_cache",
    "default_graph_cache",
    "fingerprint",
]
