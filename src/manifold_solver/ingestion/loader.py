"""
Load feature documents from a ``.manifold`` directory.

A feature ``<name>`` is stored as ``<name>.yaml`` (or ``<name>.json``) with two
optional siblings:

- ``<name>.anchor.yaml`` supplies the legacy ``dependency_chain`` block and,
  when the main document has none, the ``required_truths`` list.
- ``<name>.verify.yaml`` supplies the ``verification`` block, replacing any
  block embedded in the main document.

Parsing is delegated to ``RequirementsDocument.from_dict``; structural
problems surface as ``DocumentError``.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final

import structlog
import yaml

from manifold_solver.domain.models import RequirementsDocument
from manifold_solver.errors import DocumentError, FeatureNotFoundError

MANIFOLD_DIR_NAME: Final[str] = ".manifold"
ANCHOR_SUFFIX: Final[str] = ".anchor.yaml"
VERIFY_SUFFIX: Final[str] = ".verify.yaml"
_DOCUMENT_SUFFIXES: Final[tuple[str, ...]] = (".yaml", ".yml", ".json")


def load_document(path: str | Path, *, logger: Any | None = None) -> RequirementsDocument:
    """Read one feature document plus its anchor/verify siblings."""
    log = logger if logger is not None else structlog.get_logger(__name__)
    document_path = Path(path)
    payload = dict(_read_mapping(document_path))

    stem = _feature_stem(document_path)
    payload.setdefault("feature", stem)

    anchor_path = document_path.with_name(stem + ANCHOR_SUFFIX)
    if anchor_path.is_file():
        _merge_anchor(payload, _read_mapping(anchor_path))
        log.debug("ingestion.anchor_merged", feature=stem, path=anchor_path.as_posix())

    verify_path = document_path.with_name(stem + VERIFY_SUFFIX)
    if verify_path.is_file():
        verification = _read_mapping(verify_path).get("verification")
        if isinstance(verification, Mapping):
            payload["verification"] = verification
            log.debug("ingestion.verification_merged", feature=stem, path=verify_path.as_posix())

    try:
        return RequirementsDocument.from_dict(payload)
    except DocumentError as exc:
        raise DocumentError(f"{document_path.as_posix()}: {exc}") from exc


def find_manifold_dir(start: str | Path | None = None) -> Path | None:
    """Return ``<start>/.manifold`` when it exists as a directory."""
    base = Path.cwd() if start is None else Path(start)
    candidate = base / MANIFOLD_DIR_NAME
    if candidate.is_dir():
        return candidate
    return None


def list_features(manifold_dir: str | Path) -> list[str]:
    """Sorted feature names, counting a feature once even with anchor/verify siblings."""
    directory = Path(manifold_dir)
    if not directory.is_dir():
        return []

    features: set[str] = set()
    for entry in directory.iterdir():
        if not entry.is_file():
            continue
        name = entry.name
        if name.endswith(ANCHOR_SUFFIX):
            features.add(name[: -len(ANCHOR_SUFFIX)])
        elif name.endswith(VERIFY_SUFFIX):
            features.add(name[: -len(VERIFY_SUFFIX)])
        elif entry.suffix.lower() in _DOCUMENT_SUFFIXES:
            features.add(entry.stem)
    return sorted(features)


def load_feature(
    manifold_dir: str | Path, feature: str, *, logger: Any | None = None
) -> RequirementsDocument:
    """Load ``feature`` from ``manifold_dir`` or raise ``FeatureNotFoundError``."""
    directory = Path(manifold_dir)
    for suffix in _DOCUMENT_SUFFIXES:
        candidate = directory / f"{feature}{suffix}"
        if candidate.is_file():
            return load_document(candidate, logger=logger)
    raise FeatureNotFoundError(feature, tuple(list_features(directory)))


def _feature_stem(path: Path) -> str:
    name = path.name
    for suffix in _DOCUMENT_SUFFIXES:
        if name.lower().endswith(suffix):
            return name[: -len(suffix)]
    return path.stem


def _read_mapping(path: Path) -> Mapping[str, object]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            if path.suffix.lower() == ".json":
                payload = json.load(handle)
            else:
                payload = yaml.safe_load(handle)
    except OSError as exc:
        raise DocumentError(f"Failed to read {path.as_posix()}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise DocumentError(f"Invalid JSON in {path.as_posix()}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise DocumentError(f"Invalid YAML in {path.as_posix()}: {exc}") from exc

    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise DocumentError(f"{path.as_posix()} must contain an object at the top level")
    return payload


def _merge_anchor(payload: dict[str, object], anchor: Mapping[str, object]) -> None:
    chain = anchor.get("dependency_chain")
    if isinstance(chain, Mapping):
        payload["dependency_chain"] = chain

    truths = anchor.get("required_truths")
    if not truths:
        return
    anchors = payload.get("anchors")
    merged: dict[str, object] = dict(anchors) if isinstance(anchors, Mapping) else {}
    if not merged.get("required_truths"):
        merged["required_truths"] = truths
        payload["anchors"] = merged


__all__ = [
    "ANCHOR_SUFFIX",
    "MANIFOLD_DIR_NAME",
    "VERIFY_SUFFIX",
    "find_manifold_dir",
    "list_features",
    "load_document",
    "load_feature",
]
