"""Domain models for requirement documents, constraint graphs and execution plans."""

from manifold_solver.domain.models import (
    CONSTRAINT_CATEGORIES,
    Artifact,
    Constraint,
    ConstraintGraph,
    ConstraintNode,
    DependencyChain,
    DocumentPhase,
    ExecutionPlan,
    GraphEdges,
    NodeStatus,
    NodeType,
    ParallelTask,
    PlanStrategy,
    Progress,
    RemainingWork,
    RequiredTruth,
    RequirementsDocument,
    SatisfactionResult,
    Tension,
    Verification,
    VerificationResult,
    Wave,
)

__all__ = [
    "CONSTRAINT_CATEGORIES",
    "Artifact",
    "Constraint",
    "ConstraintGraph",
    "ConstraintNode",
    "DependencyChain",
    "DocumentPhase",
    "ExecutionPlan",
    "GraphEdges",
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
