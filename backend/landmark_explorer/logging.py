"""structlog setup shared by the API process and the test suite."""

from __future__ import annotations

import logging
import sys
from typing import IO, Any

import structlog

from landmark_explorer.config import settings

_LOG_LEVEL_MAP: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Event keys whose values are capability credentials and must never be logged.
_SECRET_KEYS = frozenset({"credential", "api_key", "apikey"})


def redact_secrets(
    _logger: Any, _method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Replace credential values with a short fingerprint."""
    for key in list(event_dict):
        if key.lower() in _SECRET_KEYS and isinstance(event_dict[key], str):
            value = event_dict[key]
            event_dict[key] = f"***{value[-4:]}" if len(value) > 8 else "***"
    return event_dict


class _TeeWriter:
    """Write to stdout and append to a log file.

    The file side is dropped on the first I/O error; stdout keeps working.
    """

    def __init__(self, file_path: str) -> None:
        self._file: IO[str] | None = None
        try:
            self._file = open(file_path, "a")  # noqa: SIM115
        except OSError as exc:
            print(f"WARNING: Could not open log file {file_path!r}: {exc}", file=sys.stderr)

    def write(self, data: str) -> None:
        sys.stdout.write(data)
        if self._file is None:
            return
        try:
            self._file.write(data)
            self._file.flush()
        except (OSError, ValueError):
            self._file = None
            print("WARNING: Log file write failed. File logging disabled.", file=sys.stderr)

    def flush(self) -> None:
        sys.stdout.flush()


def configure_logging() -> None:
    """Console renderer in development, JSON lines everywhere else."""
    renderer = (
        structlog.dev.ConsoleRenderer()
        if settings.environment == "development"
        else structlog.processors.JSONRenderer(ensure_ascii=False)
    )
    level = _LOG_LEVEL_MAP.get(settings.log_level.upper(), logging.INFO)

    logger_factory: structlog.types.WrappedLogger
    if settings.log_file:
        logger_factory = structlog.PrintLoggerFactory(file=_TeeWriter(settings.log_file))  # type: ignore[arg-type]
    else:
        logger_factory = structlog.PrintLoggerFactory()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            redact_secrets,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=logger_factory,
        cache_logger_on_first_use=True,
    )
