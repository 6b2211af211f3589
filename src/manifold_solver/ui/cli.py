"""Command-line interface router for manifold-solver."""

from __future__ import annotations

import argparse
import json
import sys
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

import structlog

from manifold_solver.analysis import detect_conflicts, detect_cross_document_conflicts
from manifold_solver.config import (
    ConfigLoadError,
    ConfigValidationError,
    SolverConfig,
    load_config,
)
from manifold_solver.domain.models import NodeType, PlanStrategy, RequirementsDocument
from manifold_solver.errors import DocumentError, FeatureNotFoundError
from manifold_solver.ingestion import list_features, load_feature
from manifold_solver.observability import correlation_scope, setup_logging, shutdown_logging
from manifold_solver.planning import ConstraintSolver, find_critical_path, hint_extractor_for
from manifold_solver.ui.render import (
    CLIRenderer,
    create_renderer,
    export_graph_dot,
    format_backward_analysis,
    format_conflict_report,
    format_cross_document_report,
    format_execution_plan,
    format_graph_ascii,
)


@dataclass(slots=True, eq=False)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 2

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="manifold-solver",
        description=(
            "manifold-solver — constraint graphs and wave-based execution plans.\n\n"
            "Common workflows:\n"
            "  manifold-solver solve auth             Execution plan as JSON\n"
            "  manifold-solver solve auth --ascii     Graph + plan as text\n"
            "  manifold-solver conflicts auth billing Cross-feature conflict scan\n"
            "  manifold-solver status auth            Progress and ready work\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--manifold-dir",
        default=None,
        help="Directory holding feature documents (default: ./.manifold).",
    )
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to TOML config (default: ./manifold.toml if present).",
    )
    common.add_argument(
        "--log-dir",
        default=None,
        help="Base directory for JSON-lines run logs (overrides config).",
    )
    common.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Show detailed output.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # solve ---------------------------------------------------------------
    solve_parser = subparsers.add_parser(
        "solve",
        parents=[common],
        help="Generate a parallel execution plan from a feature's constraint network",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    solve_parser.add_argument("feature", nargs="?", default=None, help="Feature name")
    solve_parser.add_argument(
        "--strategy",
        choices=[item.value for item in PlanStrategy],
        default=None,
        help="Planning strategy recorded on the plan (default from config: hybrid).",
    )
    output = solve_parser.add_mutually_exclusive_group()
    output.add_argument("--json", action="store_true", help="Output as JSON (default)")
    output.add_argument("--ascii", action="store_true", help="Output as text visualization")
    output.add_argument("--dot", action="store_true", help="Output as GraphViz DOT")
    solve_parser.add_argument(
        "--backward",
        action="store_true",
        help="Reason backward from a target node instead of planning",
    )
    solve_parser.add_argument(
        "--target",
        default=None,
        help="Target node for --backward (default: first required truth)",
    )
    solve_parser.add_argument(
        "--legacy-hints",
        action="store_true",
        default=None,
        help="Apply dependency hints parsed from anchor dependency_chain text",
    )
    solve_parser.set_defaults(handler=_cmd_solve)

    # conflicts -----------------------------------------------------------
    conflicts_parser = subparsers.add_parser(
        "conflicts",
        parents=[common],
        help="Scan one feature, or several features against each other, for conflicts",
    )
    conflicts_parser.add_argument(
        "features",
        nargs="*",
        help="One feature for an in-document scan; two or more for a cross-feature scan",
    )
    conflicts_parser.add_argument(
        "--all",
        dest="all_features",
        action="store_true",
        help="Cross-feature scan over every feature in the manifold directory",
    )
    conflicts_parser.add_argument("--json", action="store_true", help="Emit JSON output")
    conflicts_parser.set_defaults(handler=_cmd_conflicts)

    # status --------------------------------------------------------------
    status_parser = subparsers.add_parser(
        "status",
        parents=[common],
        help="Show progress, ready and blocked nodes for a feature",
    )
    status_parser.add_argument("feature", help="Feature name")
    status_parser.add_argument("--json", action="store_true", help="Emit JSON output")
    status_parser.set_defaults(handler=_cmd_status)

    return parser


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return 2

    try:
        config = _load_effective_config(namespace)
        setup_logging(
            config.observability_settings(),
            run_id=f"{namespace.command}-{uuid.uuid4().hex[:12]}",
        )
        try:
            with correlation_scope(command=namespace.command):
                result = handler(namespace, config)
        finally:
            shutdown_logging()
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_solve(args: argparse.Namespace, config: SolverConfig) -> int:
    manifold_dir = _manifold_dir(config)
    feature = _optional_str(getattr(args, "feature", None))

    if feature is None:
        features = list_features(manifold_dir)
        if not features:
            raise CLIError(f"no feature documents found in {manifold_dir}")
        if _flag(args, "ascii") or _flag(args, "dot"):
            renderer = _get_renderer(args)
            renderer.text("Available features:")
            renderer.items(features)
        else:
            _emit_json(
                {"features": features, "message": "Specify a feature to generate execution plan"}
            )
        return 0

    document = _load_document(manifold_dir, feature)
    solver = ConstraintSolver(
        document, hint_extractor=hint_extractor_for(config.legacy_hints)
    )
    graph = solver.graph

    if _flag(args, "backward"):
        return _solve_backward(args, solver)

    strategy = PlanStrategy(args.strategy) if args.strategy else config.default_strategy
    plan = solver.generate_execution_plan(strategy)
    structlog.get_logger(__name__).info(
        "cli.plan_generated", feature=feature, waves=len(plan.waves), strategy=strategy.value
    )

    if _flag(args, "dot"):
        print(export_graph_dot(graph))
    elif _flag(args, "ascii"):
        print(format_graph_ascii(graph))
        print()
        print(format_execution_plan(plan))
    else:
        _emit_json(
            {
                "feature": feature,
                "generated_at": plan.generated_at,
                "strategy": plan.strategy.value,
                "statistics": {
                    "total_waves": len(plan.waves),
                    "total_tasks": sum(len(wave.parallel_tasks) for wave in plan.waves),
                    "parallelization_factor": plan.parallelization_factor,
                },
                "critical_path": list(plan.critical_path),
                "waves": [wave.to_dict() for wave in plan.waves],
            }
        )
    return 0


def _solve_backward(args: argparse.Namespace, solver: ConstraintSolver) -> int:
    graph = solver.graph
    target = _optional_str(getattr(args, "target", None))
    if target is None:
        truths = graph.nodes_of_type(NodeType.REQUIRED_TRUTH)
        if not truths:
            raise CLIError("no required truths found for backward reasoning", exit_code=1)
        target = truths[0].id
    elif target not in graph.nodes:
        raise CLIError(f"target node not found: {target}")

    requirements = solver.what_must_be_true(target)
    if _flag(args, "json"):
        _emit_json(
            {
                "feature": solver.feature,
                "target": target,
                "reasoning": "backward",
                "requirements": requirements,
                "dependency_chain": solver.dependency_chain(target),
            }
        )
    else:
        print(format_backward_analysis(graph, target, requirements, find_critical_path(graph)))
    return 0


def _cmd_conflicts(args: argparse.Namespace, config: SolverConfig) -> int:
    manifold_dir = _manifold_dir(config)
    names = [name for name in getattr(args, "features", []) if name.strip()]
    if _flag(args, "all_features"):
        names = list_features(manifold_dir)
    if not names:
        raise CLIError("specify at least one feature, or --all")

    documents = [_load_document(manifold_dir, name) for name in names]
    if len(documents) == 1:
        report = detect_conflicts(documents[0])
        payload: Mapping[str, object] = {"feature": documents[0].feature, **report.to_dict()}
        text = format_conflict_report(report)
        found = report.has_conflicts
    else:
        cross_report = detect_cross_document_conflicts(documents)
        payload = {"features": names, **cross_report.to_dict()}
        text = format_cross_document_report(cross_report)
        found = cross_report.has_conflicts

    if _flag(args, "json"):
        _emit_json(payload)
    else:
        print(text)
    return 1 if found else 0


def _cmd_status(args: argparse.Namespace, config: SolverConfig) -> int:
    document = _load_document(_manifold_dir(config), _require_str(args.feature, "feature"))
    solver = ConstraintSolver(
        document, hint_extractor=hint_extractor_for(config.legacy_hints)
    )
    progress = solver.progress()
    remaining = solver.remaining_work()

    if _flag(args, "json"):
        _emit_json(
            {
                "feature": document.feature,
                "phase": document.phase,
                "progress": progress.to_dict(),
                "remaining": remaining.to_dict(),
            }
        )
        return 0

    renderer = _get_renderer(args)
    renderer.heading(f"Status: {document.feature}")
    renderer.kv("Phase", document.phase)
    renderer.kv("Progress", f"{progress.satisfied}/{progress.total} ({progress.percentage}%)")
    renderer.kv("Estimated waves remaining", remaining.estimated_waves)
    _render_ids(renderer, "Ready:", remaining.ready)
    _render_ids(renderer, "Blocked:", remaining.blocked)
    if renderer.verbose:
        renderer.section("Open work by type:")
        for node_type, count in remaining.by_type.items():
            renderer.kv(f"  {node_type}", count)
    return 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, indent=2, ensure_ascii=False))


def _get_renderer(args: argparse.Namespace) -> CLIRenderer:
    return create_renderer(verbose=_flag(args, "verbose"))


def _render_ids(renderer: CLIRenderer, title: str, ids: Sequence[str]) -> None:
    renderer.section(title)
    if ids:
        renderer.items(list(ids))
    else:
        renderer.text("  (none)")


def _load_effective_config(args: argparse.Namespace) -> SolverConfig:
    overrides: dict[str, object] = {
        "solver.manifold_dir": _optional_str(getattr(args, "manifold_dir", None)),
        "solver.legacy_hints": getattr(args, "legacy_hints", None),
        "observability.log_dir": _optional_str(getattr(args, "log_dir", None)),
    }
    config_path = _optional_str(getattr(args, "config_path", None))
    try:
        return load_config(config_path, cli_overrides=overrides)
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc)) from exc


def _manifold_dir(config: SolverConfig) -> Path:
    directory = config.manifold_dir
    if not directory.is_dir():
        raise CLIError(
            f"manifold directory not found: {directory.as_posix()} "
            "(create .manifold/ or pass --manifold-dir)",
            exit_code=2,
        )
    return directory


def _load_document(manifold_dir: Path, feature: str) -> RequirementsDocument:
    try:
        return load_feature(manifold_dir, feature)
    except FeatureNotFoundError as exc:
        raise CLIError(str(exc)) from exc
    except DocumentError as exc:
        raise CLIError(f"invalid feature document: {exc}") from exc


def _require_str(value: object, name: str) -> str:
    if not isinstance(value, str):
        raise CLIError(f"invalid {name}: expected string")
    cleaned = value.strip()
    if not cleaned:
        raise CLIError(f"invalid {name}: value cannot be empty")
    return cleaned


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise CLIError("expected string value")
    cleaned = value.strip()
    return cleaned or None


def _flag(args: argparse.Namespace, name: str) -> bool:
    return bool(getattr(args, name, False))


__all__ = ["CLIError", "build_parser", "run_cli"]
