"""Advisory semantic conflict scanners over requirement documents."""

from manifold_solver.analysis.conflicts import (
    ConflictReport,
    ConflictSeverity,
    ConflictSummary,
    ConflictType,
    SemanticConflict,
    detect_conflicts,
)
from manifold_solver.analysis.cross_document import (
    CrossConflictSeverity,
    CrossConflictType,
    CrossDocumentConflict,
    CrossDocumentReport,
    CrossDocumentSummary,
    FeatureConstraint,
    Resolution,
    detect_cross_document_conflicts,
)

__all__ = [
    "ConflictReport",
    "ConflictSeverity",
    "ConflictSummary",
    "ConflictType",
    "CrossConflictSeverity",
    "CrossConflictType",
    "CrossDocumentConflict",
    "CrossDocumentReport",
    "CrossDocumentSummary",
    "FeatureConstraint",
    "Resolution",
    "SemanticConflict",
    "detect_conflicts",
    "detect_cross_document_conflicts",
]
