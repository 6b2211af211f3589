"""Pluggable extraction of extra graph edges from free-text ordering annotations.

Anchor documents may carry a legacy ``dependency_chain`` block of prose such as
``"RT-1 + RT-2 must complete before RT-4"``. Mining those strings is a brittle
heuristic, so the graph builder only consults it through a ``HintExtractor``
and the default extractor ignores the annotations entirely.
"""

from __future__ import annotations

import re
from collections.abc import Collection
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final, Protocol

if TYPE_CHECKING:
    from manifold_solver.domain.models import DependencyChain

_SEQUENTIAL_PATTERN: Final[re.Pattern[str]] = re.compile(r"RT-(\d+).*before.*RT-(\d+)", re.I)
_BLOCKING_PATTERN: Final[re.Pattern[str]] = re.compile(r"RT-(\d+)")


@dataclass(frozen=True, slots=True)
class HintResult:
    """Edges as ``(dependent, dependency)`` pairs plus ids to flag as critical."""

    dependencies: tuple[tuple[str, str], ...] = ()
    critical: tuple[str, ...] = ()


class HintExtractor(Protocol):
    def extract(self, chain: DependencyChain, node_ids: Collection[str]) -> HintResult: ...


class NullHintExtractor:
    """Extractor that never contributes edges."""

    def extract(self, chain: DependencyChain, node_ids: Collection[str]) -> HintResult:
        return HintResult()


class RegexChainHintExtractor:
    """Legacy ``RT-n ... before ... RT-m`` mining over dependency-chain prose."""

    def extract(self, chain: DependencyChain, node_ids: Collection[str]) -> HintResult:
        dependencies: list[tuple[str, str]] = []
        for sentence in chain.sequential:
            match = _SEQUENTIAL_PATTERN.search(sentence)
            if match is None:
                continue
            dependency = f"RT-{match.group(1)}"
            dependent = f"RT-{match.group(2)}"
            if dependent in node_ids and (dependent, dependency) not in dependencies:
                dependencies.append((dependent, dependency))

        critical: list[str] = []
        for sentence in chain.blocking:
            match = _BLOCKING_PATTERN.search(sentence)
            if match is None:
                continue
            node_id = f"RT-{match.group(1)}"
            if node_id in node_ids and node_id not in critical:
                critical.append(node_id)

        return HintResult(dependencies=tuple(dependencies), critical=tuple(critical))


def hint_extractor_for(enabled: bool) -> HintExtractor:
    """Return the regex extractor when legacy hints are enabled, else the null one."""
    if enabled:
        return RegexChainHintExtractor()
    return NullHintExtractor()


__all__ = [
    "HintExtractor",
    "HintResult",
    "NullHintExtractor",
    "RegexChainHintExtractor",
    "hint_extractor_for",
]
