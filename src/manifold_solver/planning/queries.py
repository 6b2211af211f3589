"""Forward and backward reachability queries over a constraint graph."""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from manifold_solver.domain.models import ConstraintGraph


def what_must_be_true(graph: ConstraintGraph, target_id: str) -> list[str]:
    """Every id transitively required by ``target_id`` (backward reasoning)."""
    return _breadth_first(graph, target_id, direction="depends_on")


def what_does_this_block(graph: ConstraintGraph, source_id: str) -> list[str]:
    """Every id transitively waiting on ``source_id`` (forward reasoning)."""
    return _breadth_first(graph, source_id, direction="blocks")


def get_conflicts(graph: ConstraintGraph, target_id: str) -> list[str]:
    """Direct conflict partners of ``target_id``; not transitive."""
    node = graph.nodes.get(target_id)
    if node is None:
        return []
    return list(node.conflicts_with)


def dependency_chain(graph: ConstraintGraph, target_id: str) -> dict[str, list[str]]:
    """Map each node reachable backward from ``target_id`` to its direct dependencies."""
    chain: dict[str, list[str]] = {}
    pending = deque([target_id])
    while pending:
        current = pending.popleft()
        if current in chain:
            continue
        node = graph.nodes.get(current)
        if node is None:
            continue
        chain[current] = list(node.depends_on)
        pending.extend(dep for dep in node.depends_on if dep not in chain)
    return chain


def _breadth_first(
    graph: ConstraintGraph,
    start_id: str,
    *,
    direction: Literal["depends_on", "blocks"],
) -> list[str]:
    found: dict[str, None] = {}
    pending = deque([start_id])

    while pending:
        node = graph.nodes.get(pending.popleft())
        if node is None:
            continue
        neighbors = node.depends_on if direction == "depends_on" else node.blocks
        for neighbor in neighbors:
            if neighbor != start_id and neighbor not in found:
                found[neighbor] = None
                pending.append(neighbor)

    return list(found)


__all__ = ["dependency_chain", "get_conflicts", "what_does_this_block", "what_must_be_true"]
