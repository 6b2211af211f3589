"""
manifold-solver — constraint-graph builder and wave-based execution planner.

Turns one feature's requirement artifacts (constraints, tensions, required
truths and generated artifacts) into a dependency graph, schedules it into
waves of parallelizable tasks, tracks satisfaction incrementally and answers
reachability queries. Heuristic semantic conflict scans are advisory.

Importing the package has no side effects: no config loading, no logging setup.
"""

from manifold_solver.analysis import detect_conflicts, detect_cross_document_conflicts
from manifold_solver.domain.models import (
    ConstraintGraph,
    ExecutionPlan,
    PlanStrategy,
    RequirementsDocument,
    SatisfactionResult,
)
from manifold_solver.errors import DocumentError, FeatureNotFoundError, SolverError
from manifold_solver.planning import (
    ConstraintSolver,
    GraphCache,
    build_graph,
    generate_execution_plan,
    get_conflicts,
    mark_satisfied,
    what_does_this_block,
    what_must_be_true,
)

__version__ = "0.1.0"

__all__ = [
    "ConstraintGraph",
    "ConstraintSolver",
    "DocumentError",
    "ExecutionPlan",
    "FeatureNotFoundError",
    "GraphCache",
    "PlanStrategy",
    "RequirementsDocument",
    "SatisfactionResult",
    "SolverError",
    "__version__",
    "build_graph",
    "detect_conflicts",
    "detect_cross_document_conflicts",
    "generate_execution_plan",
    "get_conflicts",
    "mark_satisfied",
    "what_does_this_block",
    "what_must_be_true",
]
