"""
Planning layer: constraint-graph construction, caching, wave scheduling,
incremental state tracking and reachability queries.

Every operation is synchronous and bounded by graph size. Waves describe
logical parallelism for downstream execution, not concurrency inside the
planner.
"""

from __future__ import annotations

from manifold_solver.planning.cache import (
    CacheEntry,
    CacheStats,
    GraphCache,
    clear_graph_cache,
    default_graph_cache,
    fingerprint,
)
from manifold_solver.planning.execution_planner import (
    find_critical_path,
    generate_execution_plan,
    topological_order,
)
from manifold_solver.planning.graph_builder import GraphBuilder, artifact_node_id, build_graph
from manifold_solver.planning.hints import (
    HintExtractor,
    HintResult,
    NullHintExtractor,
    RegexChainHintExtractor,
    hint_extractor_for,
)
from manifold_solver.planning.queries import (
    dependency_chain,
    get_conflicts,
    what_does_this_block,
    what_must_be_true,
)
from manifold_solver.planning.solver import ConstraintSolver
from manifold_solver.planning.state_tracker import StateTracker, mark_satisfied

__all__ = [
    "CacheEntry",
    "CacheStats",
    "ConstraintSolver",
    "GraphBuilder",
    "GraphCache",
    "HintExtractor",
    "HintResult",
    "NullHintExtractor",
    "RegexChainHintExtractor",
    "StateTracker",
    "artifact_node_id",
    "build_graph",
    "clear_graph_cache",
    "default_graph_cache",
    "dependency_chain",
    "find_critical_path",
    "fingerprint",
    "generate_execution_plan",
    "get_conflicts",
    "hint_extractor_for",
    "mark_satisfied",
    "topological_order",
    "what_does_this_block",
    "what_must_be_true",
]
