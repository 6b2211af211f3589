"""Exception hierarchy shared across solver layers."""

from __future__ import annotations


class SolverError(Exception):
    """Base class for manifold-solver failures."""


class DocumentError(SolverError, ValueError):
    """Raised when a requirements document cannot be coerced into domain models."""


class FeatureNotFoundError(SolverError, LookupError):
    """Raised when a feature document cannot be located on disk."""

    def __init__(self, feature: str, available: tuple[str, ...] = ()) -> None:
        self.feature = feature
        self.available = available
        hint = ", ".join(available) if available else "none"
        super().__init__(f'Feature "{feature}" not found (available: {hint})')


__all__ = ["DocumentError", "FeatureNotFoundError", "SolverError"]
