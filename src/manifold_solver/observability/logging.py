"""
Per-run JSON-lines logging for solver commands.

Every CLI run gets ``<log_dir>/<run_id>/solver.jsonl``. Records travel through a
bounded queue to a background listener, so planning code never blocks on disk.
structlog events emitted by the core modules (``planner.cycle_broken``,
``cache.evicted`` ...) are routed into the same stdlib logger tree, with their
keyword fields landing under ``fields``.

Requirement statements, tension descriptions and node labels can be long prose.
String values longer than ``max_text_chars`` are clipped before they are
written; ``0`` disables clipping.
"""

from __future__ import annotations

import atexit
import contextvars
import json
import logging
import logging.handlers
import queue
import threading
import time
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Final, cast

import structlog

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

DEFAULT_LOG_FILENAME: Final[str] = "solver.jsonl"
DEFAULT_LOGGER_NAME: Final[str] = "manifold_solver"
DEFAULT_MAX_TEXT_CHARS: Final[int] = 160

_QUEUE_SIZE: Final[int] = 2048
_TOP_LEVEL_KEYS: Final[tuple[str, ...]] = ("run_id", "correlation_id", "feature")

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_RECORD_ATTRIBUTES: Final[frozenset[str]] = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "correlation"}

_CORRELATION: contextvars.ContextVar[tuple[tuple[str, str], ...]] = contextvars.ContextVar(
    "manifold_solver_correlation", default=()
)

_ACTIVE_LOCK = threading.Lock()
_ACTIVE: StructuredLoggingHandle | None = None
_ATEXIT_HOOKED = False


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Settings for one run's structured log."""

    run_id: str
    base_log_dir: Path | str = Path("logs")
    logger_name: str = DEFAULT_LOGGER_NAME
    level: int | str = "INFO"
    log_filename: str = DEFAULT_LOG_FILENAME
    log_to_stdout: bool = False
    max_text_chars: int = DEFAULT_MAX_TEXT_CHARS
    queue_size: int = _QUEUE_SIZE


def setup_logging(
    observability_config: Mapping[str, object] | None = None,
    *,
    run_id: str,
    log_dir: Path | str | None = None,
    logger_name: str = DEFAULT_LOGGER_NAME,
) -> logging.Logger:
    """Start a run log from an ``[observability]`` mapping and return its stdlib logger."""

    settings = dict(observability_config or {})
    level = settings.get("log_level", "INFO")
    base = log_dir if log_dir is not None else settings.get("log_dir", "logs")
    limit = settings.get("max_text_chars", DEFAULT_MAX_TEXT_CHARS)

    handle = setup_structured_logging(
        LoggingConfig(
            run_id=run_id,
            base_log_dir=base if isinstance(base, (Path, str)) else "logs",
            logger_name=logger_name,
            level=level if isinstance(level, (int, str)) else "INFO",
            log_to_stdout=bool(settings.get("log_to_stdout", False)),
            max_text_chars=limit if isinstance(limit, int) else DEFAULT_MAX_TEXT_CHARS,
        )
    )
    return handle.logger


def configure_structlog() -> None:
    """Send structlog events through stdlib logging with their kwargs as ``extra``."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.render_to_log_kwargs,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def clip_text_fields(value: JSONValue, max_chars: int) -> JSONValue:
    """Clip every string in ``value`` longer than ``max_chars``; ``0`` keeps text intact."""
    if max_chars <= 0:
        return value
    if isinstance(value, str):
        if len(value) <= max_chars:
            return value
        return f"{value[:max_chars]}...[+{len(value) - max_chars} chars]"
    if isinstance(value, list):
        return [clip_text_fields(item, max_chars) for item in value]
    if isinstance(value, dict):
        return {key: clip_text_fields(item, max_chars) for key, item in value.items()}
    return value


class _RunQueueHandler(logging.handlers.QueueHandler):
    """Stamps the caller's correlation scope and never blocks on a full queue."""

    def __init__(self, log_queue: queue.Queue[object]) -> None:
        super().__init__(log_queue)
        self._lock = threading.Lock()
        self.dropped = 0

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        # The listener thread has its own context; capture the scope here.
        scope = get_correlation_context()
        if scope:
            record.correlation = scope
        return cast("logging.LogRecord", super().prepare(record))

    def enqueue(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            with self._lock:
                self.dropped += 1


class _EventFormatter(logging.Formatter):
    def __init__(self, *, run_id: str, max_text_chars: int) -> None:
        super().__init__()
        self._run_id = run_id
        self._max_text_chars = max_text_chars

    def format(self, record: logging.LogRecord) -> str:
        event: dict[str, JSONValue] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": self._clip(record.getMessage()),
            "run_id": self._run_id,
        }

        scope = getattr(record, "correlation", None)
        if isinstance(scope, Mapping):
            event.update({str(key): str(value) for key, value in scope.items()})

        fields: dict[str, JSONValue] = {}
        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRIBUTES or key.startswith("_"):
                continue
            if key in _TOP_LEVEL_KEYS and isinstance(value, str) and value.strip():
                event[key] = value.strip()
                continue
            fields[key] = _jsonable(value)
        if fields:
            event["fields"] = self._clip(fields)

        if record.exc_info is not None:
            event["exception"] = self.formatException(record.exc_info)

        return json.dumps(event, sort_keys=True, separators=(",", ":"), ensure_ascii=False)

    def _clip(self, value: JSONValue) -> JSONValue:
        return clip_text_fields(value, self._max_text_chars)


@dataclass(eq=False)
class StructuredLoggingHandle:
    """Live run log: owns the queue handler, the listener thread and the sinks."""

    logger: logging.Logger
    run_id: str
    log_path: Path
    _queue_handler: _RunQueueHandler
    _listener: logging.handlers.QueueListener
    _sinks: tuple[logging.Handler, ...]
    _lock: threading.Lock = field(default_factory=threading.Lock)
    _closed: bool = False

    @property
    def dropped_records(self) -> int:
        return self._queue_handler.dropped

    @property
    def is_shutdown(self) -> bool:
        return self._closed

    def flush(self, *, timeout_seconds: float = 2.0) -> None:
        pending = cast("queue.Queue[object]", self._queue_handler.queue)
        deadline = time.monotonic() + max(timeout_seconds, 0.0)
        while pending.unfinished_tasks and time.monotonic() < deadline:
            time.sleep(0.01)
        for sink in self._sinks:
            sink.flush()

    def shutdown(self, *, timeout_seconds: float = 2.0) -> None:
        with self._lock:
            if self._closed:
                return
            self.flush(timeout_seconds=timeout_seconds)
            self._listener.stop()
            self.logger.removeHandler(self._queue_handler)
            self._queue_handler.close()
            for sink in self._sinks:
                sink.close()
            self._closed = True


def setup_structured_logging(config: LoggingConfig) -> StructuredLoggingHandle:
    """Open ``<base_log_dir>/<run_id>/<log_filename>`` and attach it to ``logger_name``."""
    run_id = _non_empty(config.run_id, "run_id")
    logger_name = _non_empty(config.logger_name, "logger_name")
    filename = _non_empty(config.log_filename, "log_filename")
    if Path(filename).name != filename:
        raise ValueError("log_filename must be a bare file name")
    if config.queue_size <= 0:
        raise ValueError("queue_size must be positive")
    if config.max_text_chars < 0:
        raise ValueError("max_text_chars must be >= 0")
    level = _level_number(config.level)

    _close_active()

    log_path = Path(config.base_log_dir) / run_id / filename
    log_path.parent.mkdir(parents=True, exist_ok=True)

    formatter = _EventFormatter(run_id=run_id, max_text_chars=config.max_text_chars)
    sinks: list[logging.Handler] = [logging.FileHandler(log_path, encoding="utf-8")]
    if config.log_to_stdout:
        sinks.append(logging.StreamHandler())
    for sink in sinks:
        sink.setLevel(level)
        sink.setFormatter(formatter)

    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    logger.propagate = False
    for stale in list(logger.handlers):
        logger.removeHandler(stale)
        stale.close()

    log_queue: queue.Queue[object] = queue.Queue(maxsize=config.queue_size)
    queue_handler = _RunQueueHandler(log_queue)
    queue_handler.setLevel(level)
    listener = logging.handlers.QueueListener(log_queue, *sinks, respect_handler_level=True)
    listener.start()
    logger.addHandler(queue_handler)
    configure_structlog()

    handle = StructuredLoggingHandle(
        logger=logger,
        run_id=run_id,
        log_path=log_path,
        _queue_handler=queue_handler,
        _listener=listener,
        _sinks=tuple(sinks),
    )
    global _ACTIVE, _ATEXIT_HOOKED
    with _ACTIVE_LOCK:
        _ACTIVE = handle
        if not _ATEXIT_HOOKED:
            atexit.register(shutdown_logging)
            _ATEXIT_HOOKED = True
    return handle


def shutdown_logging(
    handle: StructuredLoggingHandle | None = None,
    *,
    timeout_seconds: float = 2.0,
) -> None:
    """Drain and close ``handle`` (default: the active run log). Safe to call twice."""
    global _ACTIVE
    target = handle if handle is not None else get_active_logging_handle()
    if target is None:
        return
    target.shutdown(timeout_seconds=timeout_seconds)
    with _ACTIVE_LOCK:
        if _ACTIVE is target:
            _ACTIVE = None


def get_active_logging_handle() -> StructuredLoggingHandle | None:
    with _ACTIVE_LOCK:
        return _ACTIVE


def get_correlation_context() -> dict[str, str]:
    return dict(_CORRELATION.get())


@contextmanager
def correlation_scope(**fields: str | None) -> Iterator[None]:
    """Bind top-level keys (``feature``, ``command`` ...) onto records logged in scope.

    Passing ``None`` for a key unbinds it for the duration of the scope.
    """
    state = get_correlation_context()
    for key, value in fields.items():
        if value is None:
            state.pop(key, None)
        else:
            state[key] = _non_empty(value, f"correlation value for {key!r}")
    token = _CORRELATION.set(tuple(state.items()))
    try:
        yield
    finally:
        _CORRELATION.reset(token)


def _close_active() -> None:
    global _ACTIVE
    with _ACTIVE_LOCK:
        previous, _ACTIVE = _ACTIVE, None
    if previous is not None:
        previous.shutdown()


def _non_empty(value: object, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{name} must be a non-empty string")
    return value.strip()


def _level_number(value: int | str) -> int:
    if isinstance(value, int):
        return value
    resolved = logging.getLevelName(str(value).strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"unsupported logging level {value!r}")
    return resolved


def _jsonable(value: object) -> JSONValue:
    if isinstance(value, Enum):
        return _jsonable(value.value)
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Path):
        return value.as_posix()
    if isinstance(value, Mapping):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted((_jsonable(item) for item in value), key=str)
    return repr(value)


__all__ = [
    "DEFAULT_LOG_FILENAME",
    "DEFAULT_LOGGER_NAME",
    "DEFAULT_MAX_TEXT_CHARS",
    "JSONScalar",
    "JSONValue",
    "LoggingConfig",
    "StructuredLoggingHandle",
    "clip_text_fields",
    "configure_structlog",
    "correlation_scope",
    "get_active_logging_handle",
    "get_correlation_context",
    "setup_logging",
    "setup_structured_logging",
    "shutdown_logging",
]
