"""Text helpers shared by the heuristic conflict scanners."""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Final

_NON_WORD: Final[re.Pattern[str]] = re.compile(r"\W+")
_DIGITS: Final[re.Pattern[str]] = re.compile(r"^\d+$")

STOP_WORDS: Final[frozenset[str]] = frozenset(
    {
        "the", "be", "to", "of", "and", "a", "in", "that", "have", "it", "for",
        "not", "on", "with", "he", "as", "you", "do", "at", "this", "but", "his",
        "by", "from", "they", "we", "say", "her", "she", "or", "an", "will", "my",
        "one", "all", "would", "there", "their", "what", "so", "up", "out", "if",
        "about", "who", "get", "which", "go", "me", "must", "should", "shall",
        "may", "can", "could", "might", "need", "want", "only", "just",
        "also", "any", "each", "every", "both", "few", "more", "most", "other",
        "some", "such", "than", "too", "very", "same", "different", "able", "back",
        "being", "been", "case", "come", "does", "done", "else", "even", "going",
        "good", "keep", "know", "last", "long", "made", "make", "much", "never",
        "over", "part", "take", "them", "then", "these", "time", "upon", "used",
        "well", "were", "when", "where", "while", "work", "year", "your",
    }
)  # fmt: skip


def truncate(text: str, max_len: int) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def significant_words(statement: str, *, min_length: int) -> list[str]:
    """Whitespace-split words longer than ``min_length - 1``, order kept, deduplicated."""
    words: dict[str, None] = {}
    for word in statement.lower().split():
        if len(word) >= min_length:
            words[word] = None
    return list(words)


def shared_words(left: str, right: str, *, min_length: int) -> list[str]:
    right_words = set(significant_words(right, min_length=min_length))
    return [word for word in significant_words(left, min_length=min_length) if word in right_words]


def domain_keywords(statement: str) -> list[str]:
    """Topic words: split on non-word characters, drop stop words, short words and numbers."""
    words: dict[str, None] = {}
    for word in _NON_WORD.split(statement.lower()):
        if len(word) > 3 and word not in STOP_WORDS and not _DIGITS.match(word):
            words[word] = None
    return list(words)


def shared_domain(left: str, right: str) -> list[str]:
    right_words = set(domain_keywords(right))
    return [word for word in domain_keywords(left) if word in right_words]


def contains_any(text: str, keywords: Iterable[str]) -> bool:
    return any(keyword in text for keyword in keywords)


__all__ = [
    "STOP_WORDS",
    "contains_any",
    "domain_keywords",
    "shared_domain",
    "shared_words",
    "significant_words",
    "truncate",
]
