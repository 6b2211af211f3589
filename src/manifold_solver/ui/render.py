"""Output rendering for the manifold-solver CLI.

File: src/manifold_solver/ui/render.py

Purpose
- Provide a thin plain-text renderer for line-oriented CLI output.
- Format execution plans, constraint graphs (ASCII and GraphViz DOT) and
  conflict reports as strings.

Functional requirements
- Formatting functions are pure: they read graphs, plans and reports and never
  mutate them.
- Output is plain text with no color codes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from manifold_solver.analysis._text import truncate
from manifold_solver.analysis.conflicts import ConflictSeverity
from manifold_solver.analysis.cross_document import CrossConflictSeverity
from manifold_solver.domain.models import NodeStatus, NodeType

if TYPE_CHECKING:
    from collections.abc import Sequence

    from manifold_solver.analysis.conflicts import ConflictReport
    from manifold_solver.analysis.cross_document import (
        CrossDocumentConflict,
        CrossDocumentReport,
    )
    from manifold_solver.domain.models import ConstraintGraph, ConstraintNode, ExecutionPlan

_BOX_WIDTH: Final[int] = 50
_RULE_WIDTH: Final[int] = 60

_DOT_STYLES: Final[dict[NodeType, str]] = {
    NodeType.CONSTRAINT: "shape=box, fillcolor=lightblue, style=filled",
    NodeType.TENSION: "shape=diamond, fillcolor=lightyellow, style=filled",
    NodeType.REQUIRED_TRUTH: "shape=ellipse, fillcolor=lightgreen, style=filled",
    NodeType.ARTIFACT: "shape=note, fillcolor=lightgray, style=filled",
}

_TYPE_MARKERS: Final[dict[NodeType, str]] = {
    NodeType.CONSTRAINT: "[C]",
    NodeType.TENSION: "[T]",
    NodeType.REQUIRED_TRUTH: "[R]",
    NodeType.ARTIFACT: "[A]",
}


class CLIRenderer:
    """Thin CLI output renderer producing deterministic plain-text lines."""

    def __init__(self, *, verbose: bool = False) -> None:
        self.verbose = verbose

    def heading(self, text: str) -> None:
        print(text)
        print("=" * len(text))

    def kv(self, key: str, value: object) -> None:
        print(f"{key}: {value}")

    def text(self, line: str) -> None:
        print(line)

    def blank(self) -> None:
        print()

    def section(self, title: str) -> None:
        """Print a section header with a preceding blank line."""

        print(f"\n{title}")

    def items(self, entries: Sequence[str], *, prefix: str = "- ") -> None:
        for entry in entries:
            print(f"  {prefix}{entry}")


def create_renderer(*, verbose: bool = False) -> CLIRenderer:
    return CLIRenderer(verbose=verbose)


def format_execution_plan(plan: ExecutionPlan) -> str:
    lines = [
        "EXECUTION PLAN",
        "==============",
        "",
        f"Strategy: {plan.strategy.value}",
        f"Parallelization Factor: {plan.parallelization_factor}x",
        f"Critical Path: {' -> '.join(plan.critical_path)}",
        "",
    ]
    for wave in plan.waves:
        count = len(wave.parallel_tasks)
        plural = "s" if count > 1 else ""
        lines.append(f"Wave {wave.number} ({wave.phase}) - {count} parallel task{plural}:")
        for task in wave.parallel_tasks:
            node_id = task.node_ids[0] if task.node_ids else ""
            lines.append(f"  |-- [{node_id}] {task.action}: {truncate(task.description, 35)}")
        lines.append("")
    return "\n".join(lines)


def format_graph_ascii(graph: ConstraintGraph) -> str:
    """Boxed listing of nodes grouped by type, in construction order."""
    lines = [f"CONSTRAINT NETWORK: {graph.feature}", "=" * _BOX_WIDTH, ""]

    sections = (
        (NodeType.CONSTRAINT, "CONSTRAINTS", _constraint_line),
        (NodeType.TENSION, "TENSIONS", _tension_line),
        (NodeType.REQUIRED_TRUTH, "REQUIRED TRUTHS", _truth_line),
        (NodeType.ARTIFACT, "ARTIFACTS", _artifact_line),
    )
    first = True
    for node_type, title, render_line in sections:
        nodes = graph.nodes_of_type(node_type)
        if not nodes:
            continue
        if not first:
            lines.extend(("        |", "        v"))
        first = False
        lines.append(f"+- {title} " + "-" * (_BOX_WIDTH - len(title) - 4) + "+")
        lines.extend(render_line(node) for node in nodes)
        lines.append("+" + "-" * _BOX_WIDTH + "+")

    lines.extend(
        (
            "",
            "* = critical path",
            f"Nodes: {len(graph.nodes)}",
            f"Edges: {graph.edges.total()}",
        )
    )
    return "\n".join(lines)


def _mark(node: ConstraintNode) -> str:
    return "x" if node.status is NodeStatus.SATISFIED else "o"


def _critical(node: ConstraintNode) -> str:
    return " *" if node.critical_path else ""


def _constraint_line(node: ConstraintNode) -> str:
    return f"| {_mark(node)} {node.id}: {truncate(node.label, 40)}{_critical(node)}"


def _tension_line(node: ConstraintNode) -> str:
    link = "==" if node.status is NodeStatus.SATISFIED else "~~"
    return f"| {', '.join(node.depends_on)} {link}!{link} {truncate(node.label, 30)}"


def _truth_line(node: ConstraintNode) -> str:
    deps = f" <- [{', '.join(node.depends_on)}]" if node.depends_on else ""
    return f"| {_mark(node)} {node.id}: {truncate(node.label, 25)}{_critical(node)}{deps}"


def _artifact_line(node: ConstraintNode) -> str:
    return f"| {_mark(node)} {truncate(node.label, 45)}"


def export_graph_dot(graph: ConstraintGraph) -> str:
    """GraphViz DOT: solid dependency, dashed red conflict and dotted green satisfies edges."""
    lines = [
        "digraph ConstraintNetwork {",
        "  rankdir=TB;",
        "  node [shape=box, fontsize=10];",
        "",
    ]
    for node_id, node in graph.nodes.items():
        label = truncate(node.label, 30).replace('"', '\\"')
        critical = ", penwidth=3" if node.critical_path else ""
        lines.append(
            f'  "{node_id}" [label="{node_id}\\n{label}", {_DOT_STYLES[node.type]}{critical}];'
        )
    lines.append("")

    for source, target in graph.edges.dependencies:
        lines.append(f'  "{source}" -> "{target}" [style=solid];')
    for left, right in graph.edges.conflicts:
        lines.append(
            f'  "{left}" -> "{right}" [style=dashed, color=red, dir=both, constraint=false];'
        )
    for artifact, requirement in graph.edges.satisfies:
        lines.append(f'  "{artifact}" -> "{requirement}" [style=dotted, color=green];')

    lines.append("}")
    return "\n".join(lines)


def format_backward_analysis(
    graph: ConstraintGraph,
    target_id: str,
    requirements: Sequence[str],
    critical_path: Sequence[str],
) -> str:
    """What must hold for ``target_id``: each prerequisite with its own deps and conflicts."""
    lines = [
        f"BACKWARD ANALYSIS: {graph.feature}",
        "",
        f"Target: {target_id}",
        "Question: What must be TRUE for this outcome?",
        "",
        "REQUIRED CONDITIONS:",
        "=" * _BOX_WIDTH,
    ]
    for requirement_id in requirements:
        node = graph.nodes.get(requirement_id)
        if node is None:
            continue
        lines.append(f"{_mark(node)} {_TYPE_MARKERS[node.type]} {node.id}: {node.label}")
        if node.depends_on:
            lines.append(f"    `-- REQUIRES: {', '.join(node.depends_on)}")
        if node.conflicts_with:
            lines.append(f"    `-- CONFLICTS: {', '.join(node.conflicts_with)}")

    lines.extend(("", "CRITICAL PATH:", " -> ".join(critical_path), "", "BLOCKING DEPENDENCIES:"))
    target = graph.nodes.get(target_id)
    if target is not None:
        for dependency_id in target.depends_on:
            dependency = graph.nodes.get(dependency_id)
            if dependency is not None and dependency.status is not NodeStatus.SATISFIED:
                lines.append(f"  * {dependency_id} blocks {target_id}")
    return "\n".join(lines)


def format_conflict_report(report: ConflictReport) -> str:
    lines = ["SEMANTIC CONFLICT ANALYSIS", "==========================", ""]
    if not report.has_conflicts:
        lines.append("No semantic conflicts detected")
        return "\n".join(lines)

    total = report.summary.total
    lines.extend((f"Found {total} potential conflict{'s' if total > 1 else ''}:", ""))

    for severity in ConflictSeverity:
        matching = [item for item in report.conflicts if item.severity is severity]
        if not matching:
            continue
        lines.extend((f"{severity.value.upper()} ({len(matching)}):", ""))
        for conflict in matching:
            lines.append(f"  [{conflict.id}] {conflict.type.value}")
            lines.append(f"    Constraints: {', '.join(conflict.constraints)}")
            lines.append(f"    {conflict.explanation}")
            if conflict.suggestion:
                lines.append(f"    Suggestion: {conflict.suggestion}")
            lines.append("")
    return "\n".join(lines)


def format_cross_document_report(report: CrossDocumentReport) -> str:
    summary = report.summary
    lines = [
        "SEMANTIC CONFLICT ANALYSIS",
        "==========================",
        "",
        f"Analyzed: {summary.features_analyzed} features, "
        f"{summary.constraints_analyzed} constraints",
        "",
    ]
    if not report.has_conflicts:
        lines.append("No semantic conflicts detected between features")
        return "\n".join(lines)

    headers = {
        CrossConflictSeverity.BLOCKING: "BLOCKING CONFLICTS ({count}) - Cannot proceed without "
        "resolution",
        CrossConflictSeverity.REQUIRES_ACCEPTANCE: "RESOURCE TENSIONS ({count}) - Require "
        "explicit acceptance",
        CrossConflictSeverity.REVIEW_NEEDED: "REVIEW NEEDED ({count}) - Potential conflicts "
        "requiring human judgment",
    }
    for severity in CrossConflictSeverity:
        matching = [item for item in report.conflicts if item.severity is severity]
        if not matching:
            continue
        lines.extend((headers[severity].format(count=len(matching)), "-" * _RULE_WIDTH, ""))
        for conflict in matching:
            lines.extend(_cross_conflict_lines(conflict))
    return "\n".join(lines)


def _cross_conflict_lines(conflict: CrossDocumentConflict) -> list[str]:
    first = conflict.constraint_a
    second = conflict.constraint_b
    lines = [f"[{conflict.id}] {conflict.type.value.replace('_', ' ')}"]

    if conflict.severity is CrossConflictSeverity.REVIEW_NEEDED:
        lines.extend(
            (
                f"  {first.qualified_id} vs {second.qualified_id}",
                f"  Shared Domain: [{', '.join(conflict.shared_domain)}]",
                f"  Issue: {conflict.conflict_reason}",
                "",
            )
        )
        return lines

    lines.extend(
        (
            f"  Feature: {first.feature} ({first.id}) vs Feature: {second.feature} ({second.id})",
            "",
            f"  {first.qualified_id} ({first.type}):",
            f'    "{first.statement}"',
            "",
            f"  {second.qualified_id} ({second.type}):",
            f'    "{second.statement}"',
            "",
            f"  Shared Domain: [{', '.join(conflict.shared_domain)}]",
        )
    )
    if conflict.severity is CrossConflictSeverity.BLOCKING:
        lines.extend((f"  Conflict: {conflict.conflict_reason}", "", "  Resolution Options:"))
        lines.extend(
            f"    {index}. {option}"
            for index, option in enumerate(conflict.resolution.options, start=1)
        )
        lines.extend(("", "  REQUIRES USER DECISION before features can coexist", ""))
    else:
        lines.extend(
            (
                f"  Tension: {conflict.conflict_reason}",
                "",
                "  Accept this tension? If yes, document in tensions section of both features.",
                "",
            )
        )
    return lines


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
