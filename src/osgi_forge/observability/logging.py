"""
osgi-forge - run logging

File: src/osgi_forge/observability/logging.py
Last updated: 2026-10-18

Purpose
- One logging setup per CLI run. A queue handler on the package logger is
  drained by a listener thread into the console stream and, optionally, a
  JSON-lines file under ``<log_dir>/<run_id>/``.
- Correlation fields (``run_id``, ``phase``, ``bundle``) bound with
  ``correlation_scope`` are stamped onto each record in the emitting thread,
  so worker threads of the parse phase keep their bundle attribution.

Console lines stay terse: progress messages print as-is, diagnostics get a
``warning:``/``error:`` prefix, and records emitted while a bundle is in
scope get a ``[bundle]`` prefix unless the message already names it.
"""

from __future__ import annotations

import atexit
import contextvars
import json
import logging
import logging.handlers
import queue
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import Final, TextIO

_DEFAULT_LOGGER_NAME: Final[str] = "osgi_forge"
_DEFAULT_LOG_FILENAME: Final[str] = "forge.log"

# Attributes every LogRecord carries; anything else came in through ``extra=``.
_RECORD_ATTRIBUTES: Final[frozenset[str]] = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "correlation"}

_correlation: contextvars.ContextVar[Mapping[str, str]] = contextvars.ContextVar(
    "osgi_forge_correlation", default={}
)

_active_lock = threading.Lock()
_active_handle: LoggingHandle | None = None
_atexit_registered = False


class LogFormat(StrEnum):
    TEXT = "text"
    JSON = "json"


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    run_id: str
    log_dir: Path | str = Path("logs")
    logger_name: str = _DEFAULT_LOGGER_NAME
    level: int | str = "INFO"
    log_format: LogFormat | str = LogFormat.TEXT
    log_filename: str = _DEFAULT_LOG_FILENAME
    log_to_stream: bool = True
    log_to_file: bool = False
    stream: TextIO | None = None


# ---------------------------------------------------------------------------
# Correlation
# ---------------------------------------------------------------------------


def get_correlation_context() -> dict[str, str]:
    return dict(_correlation.get())


@contextmanager
def correlation_scope(**fields: str | None) -> Iterator[None]:
    """Bind correlation fields for the block; passing ``None`` unbinds a field."""

    bound = get_correlation_context()
    for key, value in fields.items():
        if value is None:
            bound.pop(key, None)
            continue
        if not value.strip():
            raise ValueError(f"correlation field {key!r} must not be empty")
        bound[key] = value.strip()
    token = _correlation.set(bound)
    try:
        yield
    finally:
        _correlation.reset(token)


def _correlation_of(record: logging.LogRecord) -> dict[str, str]:
    stamped = getattr(record, "correlation", None)
    return dict(stamped) if isinstance(stamped, Mapping) else {}


# ---------------------------------------------------------------------------
# Handlers and formatters
# ---------------------------------------------------------------------------


class _CorrelatingQueueHandler(logging.handlers.QueueHandler):
    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        # The listener thread has its own context; capture the emitter's now.
        stamped = get_correlation_context()
        stamped.update(_correlation_of(record))
        record.correlation = stamped
        prepared: logging.LogRecord = super().prepare(record)
        return prepared


class _JsonLinesFormatter(logging.Formatter):
    """One JSON object per record; ``extra=`` fields are nested under ``fields``."""

    def __init__(self, run_id: str) -> None:
        super().__init__()
        self._run_id = run_id

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=UTC)
        event: dict[str, object] = {
            "timestamp": timestamp.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "run_id": self._run_id,
        }
        event.update(_correlation_of(record))
        fields = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRIBUTES and not key.startswith("_")
        }
        if fields:
            event["fields"] = fields
        return json.dumps(
            event,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            default=_json_fallback,
        )


class _TextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        bundle = _correlation_of(record).get("bundle")
        if bundle and bundle not in message:
            message = f"[{bundle}] {message}"
        if record.levelno >= logging.WARNING:
            return f"{record.levelname.lower()}: {message}"
        if record.levelno < logging.INFO:
            return f"debug: {message}"
        return message


def _json_fallback(value: object) -> object:
    if isinstance(value, Path):
        return value.as_posix()
    if isinstance(value, (set, frozenset)):
        return sorted(str(item) for item in value)
    return str(value)


# ---------------------------------------------------------------------------
# Setup and shutdown
# ---------------------------------------------------------------------------


class LoggingHandle:
    """An installed run logger; ``shutdown`` drains the queue and restores the logger."""

    def __init__(
        self,
        *,
        logger: logging.Logger,
        run_id: str,
        log_path: Path | None,
        queue_handler: logging.Handler,
        listener: logging.handlers.QueueListener,
        sinks: tuple[logging.Handler, ...],
        previous_state: tuple[int, bool],
    ) -> None:
        self.logger = logger
        self.run_id = run_id
        self.log_path = log_path
        self._queue_handler = queue_handler
        self._listener = listener
        self._sinks = sinks
        self._previous_state = previous_state
        self._lock = threading.Lock()
        self._closed = False

    @property
    def is_shutdown(self) -> bool:
        return self._closed

    def shutdown(self) -> None:
        with self._lock:
            if self._closed:
                return
            # stop() processes every record still queued before returning.
            self._listener.stop()
            self.logger.removeHandler(self._queue_handler)
            self.logger.setLevel(self._previous_state[0])
            self.logger.propagate = self._previous_state[1]
            self._queue_handler.close()
            for sink in self._sinks:
                sink.flush()
                sink.close()
            self._closed = True


def setup_structured_logging(config: LoggingConfig) -> LoggingHandle:
    """Install run logging on ``config.logger_name``, replacing any active setup."""

    run_id = config.run_id.strip()
    if not run_id:
        raise ValueError("run_id must not be empty")
    level = _parse_level(config.level)
    log_format = LogFormat(config.log_format)

    sinks: list[logging.Handler] = []
    if config.log_to_stream:
        console = logging.StreamHandler(config.stream or sys.stderr)
        console.setLevel(level)
        console.setFormatter(
            _JsonLinesFormatter(run_id) if log_format is LogFormat.JSON else _TextFormatter()
        )
        sinks.append(console)

    log_path: Path | None = None
    if config.log_to_file:
        if not config.log_filename.strip() or Path(config.log_filename).name != config.log_filename:
            raise ValueError(f"log_filename must be a bare file name: {config.log_filename!r}")
        log_path = Path(config.log_dir) / run_id / config.log_filename
        log_path.parent.mkdir(parents=True, exist_ok=True)
        run_file = logging.FileHandler(log_path, encoding="utf-8")
        run_file.setLevel(logging.DEBUG)
        run_file.setFormatter(_JsonLinesFormatter(run_id))
        sinks.append(run_file)

    shutdown_logging()

    logger = logging.getLogger(config.logger_name)
    previous_state = (logger.level, logger.propagate)
    for stale in list(logger.handlers):
        logger.removeHandler(stale)
        stale.close()
    logger.setLevel(logging.DEBUG if log_path is not None else level)
    logger.propagate = False

    log_queue: queue.SimpleQueue[logging.LogRecord] = queue.SimpleQueue()
    queue_handler = _CorrelatingQueueHandler(log_queue)
    listener = logging.handlers.QueueListener(log_queue, *sinks, respect_handler_level=True)
    listener.start()
    logger.addHandler(queue_handler)

    handle = LoggingHandle(
        logger=logger,
        run_id=run_id,
        log_path=log_path,
        queue_handler=queue_handler,
        listener=listener,
        sinks=tuple(sinks),
        previous_state=previous_state,
    )
    global _active_handle, _atexit_registered
    with _active_lock:
        _active_handle = handle
        if not _atexit_registered:
            atexit.register(shutdown_logging)
            _atexit_registered = True
    return handle


def shutdown_logging(handle: LoggingHandle | None = None) -> None:
    """Shut down ``handle`` (default: the active one). Safe to call repeatedly."""

    global _active_handle
    with _active_lock:
        target = handle if handle is not None else _active_handle
        if target is _active_handle:
            _active_handle = None
    if target is not None:
        target.shutdown()


def get_active_logging_handle() -> LoggingHandle | None:
    with _active_lock:
        return _active_handle


def _parse_level(value: int | str) -> int:
    if isinstance(value, int):
        return value
    parsed = logging.getLevelName(value.strip().upper())
    if not isinstance(parsed, int):
        raise ValueError(f"unsupported logging level {value!r}")
    return parsed


__all__ = [
    "LogFormat",
    "LoggingConfig",
    "LoggingHandle",
    "correlation_scope",
    "get_active_logging_handle",
    "get_correlation_context",
    "setup_structured_logging",
    "shutdown_logging",
]
