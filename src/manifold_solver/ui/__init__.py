"""CLI router and plain-text rendering helpers."""

from manifold_solver.ui.render import (
    CLIRenderer,
    create_renderer,
    export_graph_dot,
    format_backward_analysis,
    format_conflict_report,
    format_cross_document_report,
    format_execution_plan,
    format_graph_ascii,
)

__all__ = [
    "CLIRenderer",
    "create_renderer",
    "export_graph_dot",
    "format_backward_analysis",
    "format_conflict_report",
    "format_cross_document_report",
    "format_execution_plan",
    "format_graph_ascii",
]
