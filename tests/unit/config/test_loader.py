"""
manifold-solver — unit tests for config loader

File: tests/unit/config/test_loader.py

Purpose
- Validate deterministic config loading from defaults, TOML, env overrides, and CLI overrides.

What this test file should cover
- Precedence: CLI > env > file > defaults.
- Deterministic env var path mapping and type coercion.
- Path normalization relative to the config file.
- Failure modes for missing files, invalid TOML and unknown fields.

Functional requirements
- Works offline with no config file present.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from manifold_solver.config.loader import ConfigLoadError, load_config, normalize_paths
from manifold_solver.config.schema import ConfigValidationError
from manifold_solver.domain.models import PlanStrategy


def _write_config(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def test_defaults_apply_without_config_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.chdir(tmp_path)

    config = load_config(environ={})

    assert config.default_strategy is PlanStrategy.HYBRID
    assert config.legacy_hints is False
    assert config.manifold_dir == (tmp_path / ".manifold").resolve()
    assert config.log_dir == (tmp_path / "logs").resolve()
    assert config.log_level == "INFO"
    assert config.max_text_chars == 160


def test_loader_precedence_default_file_env_cli(tmp_path: Path) -> None:
    config_path = tmp_path / "manifold.toml"
    _write_config(
        config_path,
        """
[solver]
default_strategy = "forward"
legacy_hints = true

[observability]
log_level = "DEBUG"
""".strip(),
    )

    file_only = load_config(config_path, environ={})
    assert file_only.default_strategy is PlanStrategy.FORWARD
    assert file_only.legacy_hints is True
    assert file_only.log_level == "DEBUG"

    env = {
        "MANIFOLD_SOLVER_DEFAULT_STRATEGY": "backward",
        "MANIFOLD_SOLVER_LEGACY_HINTS": "off",
    }
    with_env = load_config(config_path, environ=env)
    assert with_env.default_strategy is PlanStrategy.BACKWARD
    assert with_env.legacy_hints is False

    with_cli = load_config(
        config_path,
        environ=env,
        cli_overrides={"solver.default_strategy": "hybrid", "solver.legacy_hints": None},
    )
    assert with_cli.default_strategy is PlanStrategy.HYBRID
    assert with_cli.legacy_hints is False


def test_paths_are_normalized_relative_to_config_file(tmp_path: Path) -> None:
    config_path = tmp_path / "project" / "manifold.toml"
    _write_config(
        config_path,
        """
[solver]
manifold_dir = "specs/.manifold"

[observability]
log_dir = "../shared-logs"
""".strip(),
    )

    config = load_config(config_path, environ={})

    project = (tmp_path / "project").resolve()
    assert config.manifold_dir == project / "specs" / ".manifold"
    assert config.log_dir == project.parent / "shared-logs"


def test_absolute_cli_paths_are_kept(tmp_path: Path) -> None:
    config_path = tmp_path / "manifold.toml"
    _write_config(config_path, "")
    target = (tmp_path / "elsewhere").resolve()

    config = load_config(
        config_path,
        environ={},
        cli_overrides={"solver.manifold_dir": str(target)},
    )

    assert config.manifold_dir == target


def test_explicit_missing_config_file_fails(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError, match="config file not found"):
        load_config(tmp_path / "missing.toml", environ={})


def test_invalid_toml_fails(tmp_path: Path) -> None:
    config_path = tmp_path / "manifold.toml"
    _write_config(config_path, "[solver\ndefault_strategy = ")

    with pytest.raises(ConfigLoadError, match="invalid TOML"):
        load_config(config_path, environ={})


def test_unknown_fields_and_bad_values_fail_validation(tmp_path: Path) -> None:
    config_path = tmp_path / "manifold.toml"
    _write_config(
        config_path,
        """
[solver]
default_strategy = "sideways"
surprise = 1
""".strip(),
    )

    with pytest.raises(ConfigValidationError) as error:
        load_config(config_path, environ={})

    paths = {issue.path for issue in error.value.issues}
    assert paths == {"solver.default_strategy", "solver.surprise"}


def test_invalid_env_boolean_is_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "manifold.toml"
    _write_config(config_path, "")

    with pytest.raises(ConfigLoadError, match="MANIFOLD_OBSERVABILITY_LOG_TO_STDOUT"):
        load_config(config_path, environ={"MANIFOLD_OBSERVABILITY_LOG_TO_STDOUT": "maybe"})


def test_env_integer_overrides_are_coerced_and_validated(tmp_path: Path) -> None:
    config_path = tmp_path / "manifold.toml"
    _write_config(config_path, "[observability]\nmax_text_chars = 80\n")

    config = load_config(config_path, environ={"MANIFOLD_OBSERVABILITY_MAX_TEXT_CHARS": " 0 "})
    assert config.max_text_chars == 0

    with pytest.raises(ConfigLoadError, match="must be an integer"):
        load_config(config_path, environ={"MANIFOLD_OBSERVABILITY_MAX_TEXT_CHARS": "lots"})
    with pytest.raises(ConfigValidationError):
        load_config(config_path, environ={"MANIFOLD_OBSERVABILITY_MAX_TEXT_CHARS": "-5"})


def test_invalid_env_enum_is_rejected_by_validation(tmp_path: Path) -> None:
    config_path = tmp_path / "manifold.toml"
    _write_config(config_path, "")

    with pytest.raises(ConfigValidationError):
        load_config(config_path, environ={"MANIFOLD_OBSERVABILITY_LOG_LEVEL": "LOUD"})


def test_malformed_cli_override_key_is_rejected(tmp_path: Path) -> None:
    config_path = tmp_path / "manifold.toml"
    _write_config(config_path, "")

    with pytest.raises(ConfigLoadError, match="invalid CLI override key"):
        load_config(config_path, environ={}, cli_overrides={"manifold_dir": "x"})


def test_normalize_paths_leaves_non_path_fields_untouched(tmp_path: Path) -> None:
    payload = {
        "solver": {"default_strategy": "hybrid", "manifold_dir": "a/../b"},
        "observability": {"log_level": "INFO"},
    }

    normalized = normalize_paths(payload, base_dir=tmp_path)

    assert normalized["solver"]["manifold_dir"] == (tmp_path / "b").as_posix()
    assert normalized["solver"]["default_strategy"] == "hybrid"
    assert payload["solver"]["manifold_dir"] == "a/../b"
