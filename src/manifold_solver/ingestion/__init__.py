"""Filesystem loading of feature documents."""

from manifold_solver.ingestion.loader import (
    ANCHOR_SUFFIX,
    MANIFOLD_DIR_NAME,
    VERIFY_SUFFIX,
    find_manifold_dir,
    list_features,
    load_document,
    load_feature,
)

__all__ = [
    "ANCHOR_SUFFIX",
    "MANIFOLD_DIR_NAME",
    "VERIFY_SUFFIX",
    "find_manifold_dir",
    "list_features",
    "load_document",
    "load_feature",
]
