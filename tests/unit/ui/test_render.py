"""Unit tests for CLI text, ASCII and DOT rendering."""

from __future__ import annotations

import pytest

from manifold_solver.analysis.conflicts import detect_conflicts
from manifold_solver.analysis.cross_document import detect_cross_document_conflicts
from manifold_solver.domain.models import ConstraintGraph, RequirementsDocument
from manifold_solver.planning.execution_planner import find_critical_path, generate_execution_plan
from manifold_solver.planning.graph_builder import build_graph
from manifold_solver.planning.queries import what_must_be_true
from manifold_solver.ui.render import (
    create_renderer,
    export_graph_dot,
    format_backward_analysis,
    format_conflict_report,
    format_cross_document_report,
    format_execution_plan,
    format_graph_ascii,
)


def _graph() -> ConstraintGraph:
    return build_graph(
        RequirementsDocument.from_dict(
            {
                "feature": "auth",
                "constraints": {
                    "business": [{"id": "B1", "type": "invariant", "statement": "Users log in"}],
                    "technical": [
                        {
                            "id": "T1",
                            "type": "boundary",
                            "statement": 'Tokens are "short" lived',
                            "depends_on": ["B1"],
                        }
                    ],
                },
                "tensions": [
                    {"id": "TN1", "type": "trade_off", "between": ["B1", "T1"], "description": "UX"}
                ],
                "anchors": {
                    "required_truths": [
                        {
                            "id": "RT-1",
                            "statement": "Session store exists",
                            "status": "SATISFIED",
                            "maps_to_constraints": ["T1"],
                        }
                    ]
                },
                "generation": {
                    "artifacts": [{"path": "src/auth.py", "type": "code", "satisfies": ["RT-1"]}]
                },
            }
        )
    )


def test_execution_plan_lists_waves_and_tasks() -> None:
    plan = generate_execution_plan(_graph())

    text = format_execution_plan(plan)

    assert text.startswith("EXECUTION PLAN\n")
    assert "Strategy: hybrid" in text
    assert f"Parallelization Factor: {plan.parallelization_factor}x" in text
    assert "Critical Path: B1 -> T1 -> RT-1 -> ART-src-auth-py" in text
    assert "Wave 1 (CONSTRAINED) - 1 parallel task:" in text
    assert "  |-- [B1] Discover and document: Users log in" in text
    assert "  |-- [ART-src-auth-py] Generate: src/auth.py" in text


def test_ascii_graph_groups_nodes_by_type() -> None:
    text = format_graph_ascii(_graph())

    assert text.splitlines()[0] == "CONSTRAINT NETWORK: auth"
    for title in ("CONSTRAINTS", "TENSIONS", "REQUIRED TRUTHS", "ARTIFACTS"):
        assert f"+- {title} " in text
    assert "| o B1: Users log in *" in text
    assert "| B1, T1 ~~!~~ UX" in text
    assert "| x RT-1: Session store exists <- [T1]" in text
    assert "Nodes: 5" in text
    assert "Edges: 7" in text


def test_ascii_graph_skips_empty_sections() -> None:
    graph = build_graph(RequirementsDocument.from_dict({"feature": "empty"}))

    text = format_graph_ascii(graph)

    assert "CONSTRAINTS" not in text
    assert "Nodes: 0" in text


def test_dot_export_styles_every_edge_kind() -> None:
    dot = export_graph_dot(_graph())

    assert dot.startswith("digraph ConstraintNetwork {")
    assert dot.rstrip().endswith("}")
    assert '"B1" [label="B1\\nUsers log in", shape=box' in dot
    assert "penwidth=3" in dot
    assert '\\"short\\"' in dot
    assert '"T1" -> "B1" [style=solid];' in dot
    assert '"B1" -> "T1" [style=dashed, color=red, dir=both, constraint=false];' in dot
    assert '"ART-src-auth-py" -> "RT-1" [style=dotted, color=green];' in dot


def test_backward_analysis_lists_requirements_and_blockers() -> None:
    graph = _graph()
    requirements = what_must_be_true(graph, "RT-1")

    text = format_backward_analysis(graph, "RT-1", requirements, find_critical_path(graph))

    assert "Target: RT-1" in text
    assert "o [C] T1: " in text
    assert "    `-- REQUIRES: B1" in text
    assert "    `-- CONFLICTS: B1" in text
    assert "  * T1 blocks RT-1" in text


def test_conflict_report_rendering() -> None:
    empty = detect_conflicts(RequirementsDocument.from_dict({"feature": "none"}))
    assert "No semantic conflicts detected" in format_conflict_report(empty)

    report = detect_conflicts(
        RequirementsDocument.from_dict(
            {
                "feature": "latency",
                "constraints": {
                    "technical": [
                        {"id": "T1", "type": "boundary", "statement": "API latency under 200ms"},
                        {"id": "T2", "type": "boundary", "statement": "Batch latency under 5 seconds"},
                    ]
                },
            }
        )
    )
    text = format_conflict_report(report)

    assert "Found 1 potential conflict:" in text
    assert "HIGH (1):" in text
    assert "  [SC-1] resource_conflict" in text
    assert "    Suggestion: " in text


def test_cross_document_report_rendering() -> None:
    clean = detect_cross_document_conflicts([])
    clean_text = format_cross_document_report(clean)
    assert "Analyzed: 0 features, 0 constraints" in clean_text
    assert "No semantic conflicts detected between features" in clean_text

    report = detect_cross_document_conflicts(
        [
            RequirementsDocument.from_dict(
                {
                    "feature": "api",
                    "constraints": {
                        "technical": [
                            {"id": "T1", "type": "invariant",
                             "statement": "Billing ledger endpoints are public"}
                        ]
                    },
                }
            ),
            RequirementsDocument.from_dict(
                {
                    "feature": "security",
                    "constraints": {
                        "technical": [
                            {"id": "T1", "type": "invariant",
                             "statement": "Billing ledger endpoints are private"}
                        ]
                    },
                }
            ),
        ]
    )
    text = format_cross_document_report(report)

    assert "BLOCKING CONFLICTS (1) - Cannot proceed without resolution" in text
    assert "[CONFLICT-1] logical contradiction" in text
    assert "  Feature: api (T1) vs Feature: security (T1)" in text
    assert "    1. Scope api/T1 to exclude security's domain" in text
    assert "REQUIRES USER DECISION" in text


def test_renderer_prints_lines(capsys: pytest.CaptureFixture[str]) -> None:
    renderer = create_renderer(verbose=True)

    renderer.heading("Status")
    renderer.kv("Phase", "ANCHORED")
    renderer.items(["B1", "T1"])
    renderer.section("Ready:")

    out = capsys.readouterr().out
    assert renderer.verbose is True
    assert out == "Status\n======\nPhase: ANCHORED\n  - B1\n  - T1\n\nReady:\n"
