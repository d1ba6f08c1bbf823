"""Structured logging setup: structlog routed through stdlib with JSON-lines output."""

from __future__ import annotations

import json
import logging
import math
import sys
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Final

import structlog

try:
    from datetime import UTC
except ImportError:
    UTC = timezone.utc  # noqa: UP017

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

_DEFAULT_LOG_FILENAME: Final[str] = "report_intelligence.jsonl"
_DEFAULT_LOGGER_NAME: Final[str] = "report_intelligence"
_LOG_FORMATS: Final[frozenset[str]] = frozenset({"json", "text"})

CORRELATION_KEYS: Final[tuple[str, ...]] = ("report_id", "mapping_id", "validation_id")

_STANDARD_LOG_RECORD_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "thread",
        "threadName",
        "taskName",
    }
)

_ACTIVE_HANDLE_LOCK = threading.Lock()
_ACTIVE_HANDLE: LoggingHandle | None = None


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Where and how log records are written."""

    level: int | str = "INFO"
    log_format: str = "json"
    log_dir: Path | str | None = None
    log_filename: str = _DEFAULT_LOG_FILENAME
    log_to_stdout: bool = True
    logger_name: str = _DEFAULT_LOGGER_NAME


class _JsonLineFormatter(logging.Formatter):
    """Emit one canonical JSON object per record; correlation ids are lifted to the top level."""

    def format(self, record: logging.LogRecord) -> str:
        event: dict[str, JSONValue] = {
            "timestamp": _iso8601z_from_epoch(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extras = _extract_extra_fields(record)
        for key in CORRELATION_KEYS:
            value = extras.pop(key, None)
            if isinstance(value, str) and value.strip():
                event[key] = value.strip()
        if extras:
            event["fields"] = extras

        if record.exc_info is not None:
            event["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            event["stack"] = str(record.stack_info)

        return json.dumps(event, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


class _TextFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__("%(asctime)s %(levelname)s %(name)s %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        extras = _extract_extra_fields(record)
        if not extras:
            return base
        rendered = " ".join(
            f"{key}={json.dumps(value, ensure_ascii=False)}"
            for key, value in sorted(extras.items())
        )
        return f"{base} {rendered}"


class LoggingHandle:
    """Runtime handle for an active logging setup."""

    def __init__(
        self,
        *,
        logger: logging.Logger,
        log_path: Path | None,
        handlers: tuple[logging.Handler, ...],
    ) -> None:
        self.logger = logger
        self.log_path = log_path
        self._handlers = handlers
        self._is_shutdown = False

    @property
    def is_shutdown(self) -> bool:
        return self._is_shutdown

    def flush(self) -> None:
        for handler in self._handlers:
            handler.flush()

    def shutdown(self) -> None:
        if self._is_shutdown:
            return
        for handler in self._handlers:
            handler.flush()
            self.logger.removeHandler(handler)
            handler.close()
        self._is_shutdown = True


def configure_logging(config: LoggingConfig | None = None) -> LoggingHandle:
    """Attach JSON-lines (or text) handlers and route structlog through stdlib logging.

    Replaces any handle configured earlier in the process.
    """

    resolved = config if config is not None else LoggingConfig()
    level = _parse_log_level(resolved.level)
    if resolved.log_format not in _LOG_FORMATS:
        raise ValueError(
            f"log_format must be one of {sorted(_LOG_FORMATS)}, got {resolved.log_format!r}"
        )
    formatter: logging.Formatter = (
        _JsonLineFormatter() if resolved.log_format == "json" else _TextFormatter()
    )

    _shutdown_active_handle()

    handlers: list[logging.Handler] = []
    log_path: Path | None = None
    if resolved.log_dir is not None:
        log_dir = Path(resolved.log_dir).expanduser()
        log_dir.mkdir(parents=True, exist_ok=True)
        filename = resolved.log_filename.strip()
        if not filename or Path(filename).name != filename:
            raise ValueError("log_filename must be a bare file name")
        log_path = log_dir / filename
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
    if resolved.log_to_stdout:
        handlers.append(logging.StreamHandler(sys.stdout))

    logger = logging.getLogger(resolved.logger_name)
    logger.setLevel(level)
    logger.propagate = False
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.format_exc_info,
            structlog.stdlib.render_to_log_kwargs,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handle = LoggingHandle(logger=logger, log_path=log_path, handlers=tuple(handlers))
    global _ACTIVE_HANDLE
    with _ACTIVE_HANDLE_LOCK:
        _ACTIVE_HANDLE = handle
    return handle


def shutdown_logging() -> None:
    """Close the active handle's sinks and restore structlog defaults."""

    _shutdown_active_handle()
    structlog.reset_defaults()


def get_active_logging_handle() -> LoggingHandle | None:
    with _ACTIVE_HANDLE_LOCK:
        return _ACTIVE_HANDLE


def get_correlation_context() -> dict[str, str]:
    """Correlation fields bound in the current context."""

    bound = structlog.contextvars.get_contextvars()
    return {key: value for key, value in bound.items() if key in CORRELATION_KEYS}


@contextmanager
def correlation_scope(**fields: str | None) -> Iterator[None]:
    """Bind correlation ids for every log record emitted inside the block."""

    bound: dict[str, str] = {}
    for key, value in fields.items():
        if key not in CORRELATION_KEYS:
            raise ValueError(f"unknown correlation key {key!r}; expected one of {CORRELATION_KEYS}")
        if value is None:
            continue
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"correlation value for {key!r} must be a non-empty string")
        bound[key] = value.strip()

    with structlog.contextvars.bound_contextvars(**bound):
        yield


def _shutdown_active_handle() -> None:
    global _ACTIVE_HANDLE
    with _ACTIVE_HANDLE_LOCK:
        existing = _ACTIVE_HANDLE
        _ACTIVE_HANDLE = None
    if existing is not None:
        existing.shutdown()


def _parse_log_level(value: int | str) -> int:
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        raise ValueError(f"level must be int or str, got {type(value).__name__}")

    parsed = logging.getLevelName(value.strip().upper())
    if isinstance(parsed, int):
        return parsed
    raise ValueError(f"unsupported logging level {value!r}")


def _iso8601z_from_epoch(epoch_seconds: float) -> str:
    timestamp = datetime.fromtimestamp(epoch_seconds, tz=UTC)
    return timestamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _extract_extra_fields(record: logging.LogRecord) -> dict[str, JSONValue]:
    fields: dict[str, JSONValue] = {}
    for key, value in record.__dict__.items():
        if key in _STANDARD_LOG_RECORD_FIELDS or key.startswith("_"):
            continue
        fields[key] = _normalize_json_value(value)
    return fields


def _normalize_json_value(value: object) -> JSONValue:
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else repr(value)
    if isinstance(value, datetime):
        normalized = value if value.tzinfo is not None else value.replace(tzinfo=UTC)
        return normalized.astimezone(UTC).isoformat(timespec="microseconds").replace("+00:00", "Z")
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, Mapping):
        return {str(key): _normalize_json_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize_json_value(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted((_normalize_json_value(item) for item in value), key=repr)
    return repr(value)


__all__ = [
    "CORRELATION_KEYS",
    "LoggingConfig",
    "LoggingHandle",
    "configure_logging",
    "correlation_scope",
    "get_active_logging_handle",
    "get_correlation_context",
    "shutdown_logging",
]
