"""structlog configuration shared by the API entrypoint and scripts."""

from __future__ import annotations

import logging
import sys
from typing import IO, Any

import structlog

from preppal.config import settings

SERVICE_NAME = "preppal"


class _TeeWriter:
    """Write log lines to stdout and append them to ``LOG_FILE``.

    A file that cannot be opened or written is dropped and logging carries
    on to stdout only.
    """

    def __init__(self, file_path: str) -> None:
        self._path = file_path
        self._file: IO[str] | None = None
        try:
            self._file = open(file_path, "a")  # noqa: SIM115
        except OSError as exc:
            # structlog is not configured yet
            print(
                f"WARNING: Could not open log file {file_path!r}: {exc}. "
                "Logging to stdout only.",
                file=sys.stderr,
            )

    def _disable_file(self, op: str) -> None:
        self._file = None
        print(
            f"WARNING: Log file {op} failed for {self._path!r}. File logging disabled.",
            file=sys.stderr,
        )

    def write(self, data: str) -> None:
        sys.stdout.write(data)
        if self._file is None:
            return
        try:
            self._file.write(data)
            self._file.flush()
        except (OSError, ValueError):
            self._disable_file("write")

    def flush(self) -> None:
        sys.stdout.flush()
        if self._file is None:
            return
        try:
            self._file.flush()
        except (OSError, ValueError):
            self._disable_file("flush")


def _add_service(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def configure_logging() -> None:
    """Console output in development, JSON lines everywhere else.

    Request-scoped values bound through ``structlog.contextvars`` (the
    request ID) are merged into every event.
    """
    dev = settings.environment == "development"
    renderer: structlog.types.Processor = (
        structlog.dev.ConsoleRenderer() if dev else structlog.processors.JSONRenderer()
    )
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _add_service,
    ]
    if not dev:
        processors.append(structlog.processors.format_exc_info)
    processors.append(renderer)

    if settings.log_file:
        # PrintLoggerFactory only needs write() and flush()
        logger_factory = structlog.PrintLoggerFactory(file=_TeeWriter(settings.log_file))  # type: ignore[arg-type]
    else:
        logger_factory = structlog.PrintLoggerFactory()

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=logger_factory,
        cache_logger_on_first_use=True,
    )
