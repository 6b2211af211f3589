"""
manifold-solver — configuration schema and validation.

File: src/manifold_solver/config/schema.py

Purpose
- Define authoritative configuration defaults and strict validation rules.
- Materialize validated payloads into the typed ``SolverConfig`` used at runtime.

Functional requirements
- Validate config payloads and return structured errors (field path + message).
- Reject unknown sections and fields so typos fail loudly.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final, Literal, TypedDict

from manifold_solver.domain.models import PlanStrategy

LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")

# Config paths that should be normalized relative to config file location.
PATH_FIELDS: Final[tuple[tuple[str, ...], ...]] = (
    ("solver", "manifold_dir"),
    ("observability", "log_dir"),
)


class SolverSection(TypedDict):
    default_strategy: Literal["forward", "backward", "hybrid"]
    legacy_hints: bool
    manifold_dir: str


class ObservabilitySection(TypedDict):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"]
    log_dir: str
    log_to_stdout: bool
    max_text_chars: int


class SolverConfigPayload(TypedDict):
    solver: SolverSection
    observability: ObservabilitySection


DEFAULT_CONFIG: Final[SolverConfigPayload] = {
    "solver": {
        "default_strategy": "hybrid",
        "legacy_hints": False,
        "manifold_dir": ".manifold",
    },
    "observability": {
        "log_level": "INFO",
        "log_dir": "logs/",
        "log_to_stdout": False,
        "max_text_chars": 160,
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


@dataclass(frozen=True, slots=True)
class SolverConfig:
    """Effective runtime settings after every precedence layer has been applied."""

    default_strategy: PlanStrategy = PlanStrategy.HYBRID
    legacy_hints: bool = False
    manifold_dir: Path = Path(".manifold")
    log_level: str = "INFO"
    log_dir: Path = Path("logs")
    log_to_stdout: bool = False
    max_text_chars: int = 160

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object]) -> SolverConfig:
        validated = assert_valid_config(payload)
        solver = validated["solver"]
        observability = validated["observability"]
        return cls(
            default_strategy=PlanStrategy(solver["default_strategy"]),
            legacy_hints=solver["legacy_hints"],
            manifold_dir=Path(solver["manifold_dir"]),
            log_level=observability["log_level"],
            log_dir=Path(observability["log_dir"]),
            log_to_stdout=observability["log_to_stdout"],
            max_text_chars=observability["max_text_chars"],
        )

    def observability_settings(self) -> dict[str, object]:
        """Mapping accepted by ``observability.setup_logging``."""
        return {
            "log_level": self.log_level,
            "log_dir": str(self.log_dir),
            "log_to_stdout": self.log_to_stdout,
            "max_text_chars": self.max_text_chars,
        }


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ConfigValidationIssue(path=path, message=message))

    def items(self) -> tuple[ConfigValidationIssue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


def default_config() -> SolverConfigPayload:
    """Return a deep copy of the built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deterministically deep-merge ``overlay`` onto ``base``."""

    merged = copy.deepcopy(dict(base))
    _merge_into(merged, overlay)
    return merged


def validate_config(config: Mapping[str, object] | object) -> tuple[ConfigValidationIssue, ...]:
    """Return every validation issue found in a complete config payload."""

    issues = _IssueCollector()
    if not isinstance(config, Mapping):
        issues.add("<root>", f"expected object, got {type(config).__name__}")
        return issues.items()

    _reject_unknown_keys(config, {"solver", "observability"}, "", issues)
    solver = config.get("solver")
    if isinstance(solver, Mapping):
        _validate_solver(solver, issues)
    else:
        issues.add("solver", "expected object")

    observability = config.get("observability")
    if isinstance(observability, Mapping):
        _validate_observability(observability, issues)
    else:
        issues.add("observability", "expected object")

    return issues.items()


def assert_valid_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Validate config and raise ``ConfigValidationError`` on failure."""

    issues = validate_config(config)
    if issues:
        raise ConfigValidationError(issues)
    assert isinstance(config, Mapping)
    return dict(config)


def _validate_solver(payload: Mapping[str, object], issues: _IssueCollector) -> None:
    allowed = {"default_strategy", "legacy_hints", "manifold_dir"}
    _reject_unknown_keys(payload, allowed, "solver", issues)
    _require_keys(payload, allowed, "solver", issues)

    strategy = payload.get("default_strategy")
    if "default_strategy" in payload:
        valid = tuple(item.value for item in PlanStrategy)
        if not isinstance(strategy, str) or strategy not in valid:
            issues.add(
                "solver.default_strategy",
                f"invalid value {strategy!r}; expected one of: {', '.join(valid)}",
            )
    if "legacy_hints" in payload and not isinstance(payload["legacy_hints"], bool):
        issues.add("solver.legacy_hints", "expected boolean")
    if "manifold_dir" in payload:
        _check_path_text(payload["manifold_dir"], "solver.manifold_dir", issues)


def _validate_observability(payload: Mapping[str, object], issues: _IssueCollector) -> None:
    allowed = {"log_level", "log_dir", "log_to_stdout", "max_text_chars"}
    _reject_unknown_keys(payload, allowed, "observability", issues)
    _require_keys(payload, allowed, "observability", issues)

    level = payload.get("log_level")
    if "log_level" in payload and (not isinstance(level, str) or level not in LOG_LEVELS):
        issues.add(
            "observability.log_level",
            f"invalid value {level!r}; expected one of: {', '.join(LOG_LEVELS)}",
        )
    if "log_dir" in payload:
        _check_path_text(payload["log_dir"], "observability.log_dir", issues)
    if "log_to_stdout" in payload and not isinstance(payload["log_to_stdout"], bool):
        issues.add("observability.log_to_stdout", "expected boolean")
    limit = payload.get("max_text_chars")
    if "max_text_chars" in payload:
        if not isinstance(limit, int) or isinstance(limit, bool):
            issues.add("observability.max_text_chars", "expected integer")
        elif limit < 0:
            issues.add("observability.max_text_chars", "must be >= 0 (0 disables clipping)")


def _check_path_text(value: object, path: str, issues: _IssueCollector) -> None:
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
    elif not value.strip():
        issues.add(path, "must not be empty")
    elif "\x00" in value:
        issues.add(path, "must not contain NUL bytes")


def _reject_unknown_keys(
    payload: Mapping[str, object],
    allowed: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(payload):
        if key not in allowed:
            issues.add(_join(path, key), "unknown field")


def _require_keys(
    payload: Mapping[str, object],
    required: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(required):
        if key not in payload:
            issues.add(_join(path, key), "missing required field")


def _join(path: str, key: str) -> str:
    if not path:
        return key
    return f"{path}.{key}"


def _merge_into(target: dict[str, Any], overlay: Mapping[str, object]) -> None:
    for key in sorted(overlay):
        value = overlay[key]
        if isinstance(value, Mapping):
            existing = target.get(key)
            if not isinstance(existing, dict):
                existing = {}
                target[key] = existing
            _merge_into(existing, value)
        else:
            target[key] = copy.deepcopy(value)


__all__ = [
    "DEFAULT_CONFIG",
    "LOG_LEVELS",
    "PATH_FIELDS",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "SolverConfig",
    "SolverConfigPayload",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "validate_config",
]
