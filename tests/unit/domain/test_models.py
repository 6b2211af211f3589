"""Unit tests for requirement document parsing and graph/plan serialization."""

from __future__ import annotations

import pytest

from manifold_solver.domain.models import (
    CONSTRAINT_CATEGORIES,
    ConstraintGraph,
    ConstraintNode,
    DocumentPhase,
    NodeStatus,
    NodeType,
    RequirementsDocument,
    VerificationResult,
)
from manifold_solver.errors import DocumentError


def test_from_dict_groups_constraints_in_fixed_category_order() -> None:
    document = RequirementsDocument.from_dict(
        {
            "feature": "auth",
            "constraints": {
                "operational": [{"id": "O1", "type": "goal", "statement": "o"}],
                "ux": [{"id": "U1", "type": "Goal", "statement": "u"}],
                "business": [{"id": "B1", "type": "invariant", "statement": "b"}],
                "marketing": [{"id": "M1", "type": "goal", "statement": "ignored"}],
            },
        }
    )

    assert [item.id for item in document.all_constraints()] == ["B1", "U1", "O1"]
    assert document.constraints["user_experience"][0].category == "user_experience"
    assert document.constraints["user_experience"][0].type == "goal"
    assert document.constraint_count() == 3
    assert set(document.constraints) == set(CONSTRAINT_CATEGORIES)


def test_defaults_for_minimal_document() -> None:
    document = RequirementsDocument.from_dict({"feature": "bare"})

    assert document.phase == DocumentPhase.INITIALIZED.value
    assert document.all_constraints() == ()
    assert document.tensions == ()
    assert document.required_truths == ()
    assert document.artifacts == ()
    assert document.verification is None
    assert document.dependency_chain is None


def test_ids_are_coerced_and_dependency_lists_deduplicated() -> None:
    document = RequirementsDocument.from_dict(
        {
            "feature": "coerce",
            "constraints": {
                "technical": [
                    {"id": 7, "type": "goal", "statement": "x", "depends_on": ["A", "A", 3]},
                    {"id": "T2", "type": "goal", "statement": "y", "depends_on": "A"},
                ]
            },
            "anchors": {
                "required_truths": [
                    {"id": "RT-1", "statement": "s", "status": "required", "priority": "2"}
                ]
            },
        }
    )

    first, second = document.all_constraints()
    assert first.id == "7"
    assert first.depends_on == ("A", "3")
    assert second.depends_on == ("A",)
    assert document.required_truths[0].status == "REQUIRED"
    assert document.required_truths[0].priority == 2


def test_verification_accepts_flat_and_nested_evidence() -> None:
    document = RequirementsDocument.from_dict(
        {
            "feature": "verified",
            "verification": {
                "result": "pass",
                "constraints": {"B1": "satisfied"},
                "required_truths": {"RT-1": {"status": "partial", "evidence": "tests"}},
            },
        }
    )

    verification = document.verification
    assert verification is not None
    assert verification.result is VerificationResult.PASS
    assert verification.constraint_status("B1") == "SATISFIED"
    assert verification.required_truth_status("RT-1") == "PARTIAL"
    assert verification.constraint_status("B2") is None


@pytest.mark.parametrize(
    ("payload", "fragment"),
    [
        ({}, "document.feature"),
        ({"feature": "x", "constraints": {"business": [{"type": "goal"}]}}, "constraints.business[0].id"),
        ({"feature": "x", "tensions": "nope"}, "tensions"),
        ({"feature": "x", "anchors": {"required_truths": [{"id": "RT-1", "priority": True}]}}, "priority"),
        ({"feature": "x", "generation": {"artifacts": [{"type": "code"}]}}, "generation.artifacts[0].path"),
    ],
)
def test_structural_problems_raise_document_error(payload: dict[str, object], fragment: str) -> None:
    with pytest.raises(DocumentError) as error:
        RequirementsDocument.from_dict(payload)

    assert fragment in str(error.value)
    assert isinstance(error.value, ValueError)


def test_graph_serialization_omits_unset_wave_number() -> None:
    graph = ConstraintGraph(
        feature="auth",
        generated_at="2026-01-01T00:00:00Z",
        nodes={
            "B1": ConstraintNode(id="B1", type=NodeType.CONSTRAINT, label="b"),
            "B2": ConstraintNode(
                id="B2",
                type=NodeType.CONSTRAINT,
                label="c",
                depends_on=["B1"],
                status=NodeStatus.REQUIRED,
                wave_number=2,
            ),
        },
    )

    payload = graph.to_dict()

    assert payload["version"] == 1
    assert "wave_number" not in payload["nodes"]["B1"]  # type: ignore[index, operator]
    assert payload["nodes"]["B2"]["wave_number"] == 2  # type: ignore[index, call-overload]
    assert payload["nodes"]["B2"]["status"] == "REQUIRED"  # type: ignore[index, call-overload]
    assert "B1" in graph
    assert len(graph) == 2
    assert graph.nodes_of_type(NodeType.TENSION) == []
