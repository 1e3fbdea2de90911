"""
Structured logging for cadence.

Manifesto:
    Scheduling problems show up hours after the fact ("why did this job not
    fire at 09:00?"). Every arm, fire, and cancel is logged as a structured
    event carrying ``job_id`` and ``job_name`` so the history can be
    reconstructed from the log alone.

Architecture:
    ::

        configure_logging(level, json_format, service)
              │
              ▼
        build_processors():
          TimeStamper(iso)          optional
          merge_contextvars         LogContext / bind_context
          add_log_level, add_logger_name
          stack info, exc info
          service=<name>
          JSONRenderer (non-tty) │ ConsoleRenderer (tty)
              │
              ▼
        stdlib logging (root handler on stdout)

Examples:
    >>> from cadence.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", json_format=True)
    >>> logger = get_logger(__name__)
    >>> with LogContext(job_id="abc"):
    ...     logger.info("job_armed", next_run="2026-03-04T11:30:00+00:00")

Tags:
    logging, structlog, observability, cadence
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from contextvars import Token
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from cadence.core.errors import ConfigError

if TYPE_CHECKING:
    from cadence.core.settings import CadenceSettings

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _resolve_level(level: str) -> int:
    name = level.upper()
    if name not in _LEVELS:
        raise ConfigError(f"Unknown log level: {level!r}").with_context(level=level)
    return getattr(logging, name)


def _stamp_service(service: str) -> Processor:
    def processor(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service", service)
        return event_dict

    return processor


def build_processors(
    json_format: bool,
    service: str = "cadence",
    add_timestamp: bool = True,
) -> list[Processor]:
    """Processor chain ending in the JSON or console renderer."""
    processors: list[Processor] = []
    if add_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))
    processors += [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _stamp_service(service),
    ]
    if json_format:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    return processors


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "cadence",
    add_timestamp: bool = True,
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        json_format: JSON lines when True, console when False; when None,
            JSON unless stdout is a terminal
        service: Value of the ``service`` key on every event
        add_timestamp: Prefix events with an ISO timestamp

    Raises:
        ConfigError: unknown level
    """
    numeric = _resolve_level(level)
    if json_format is None:
        json_format = not sys.stdout.isatty()

    structlog.configure(
        processors=build_processors(json_format, service, add_timestamp),
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    # Backends and persistence log through the standard library
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric)


def configure_from_settings(settings: CadenceSettings) -> None:
    """``configure_logging`` with ``log_level`` and ``json_logs`` from settings."""
    configure_logging(level=settings.log_level, json_format=settings.json_logs)


def get_logger(name: str | None = None) -> Any:
    """Structured logger, usually ``get_logger(__name__)``."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> Mapping[str, Token[Any]]:
    """Bind keys onto every following event; returns reset tokens."""
    return structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Bind keys for the duration of a ``with`` block.

    Outer values of the same keys are restored on exit, so contexts nest.

    Example:
        with LogContext(job_id=job.id, job_name=job.name):
            logger.info("job_executed")
    """

    def __init__(self, **kwargs: Any) -> None:
        self._values = kwargs
        self._tokens: Mapping[str, Token[Any]] = {}

    def __enter__(self) -> LogContext:
        self._tokens = bind_context(**self._values)
        return self

    def __exit__(self, *exc_info: object) -> None:
        structlog.contextvars.reset_contextvars(**self._tokens)
        self._tokens = {}


__all__ = [
    "build_processors",
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
]
