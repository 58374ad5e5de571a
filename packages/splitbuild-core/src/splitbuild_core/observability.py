"""Structured logging and OpenTelemetry spans for splitbuild.

This module provides:
- Structured logging setup via structlog
- OpenTelemetry span helpers for unit and Input builds
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

if TYPE_CHECKING:
    from opentelemetry.trace import Span, Tracer

TRACER_NAME = "splitbuild"

logger = structlog.get_logger(TRACER_NAME)


def get_tracer() -> Tracer:
    """Get the OpenTelemetry tracer for splitbuild."""
    return trace.get_tracer(TRACER_NAME)


def configure_logging(
    *,
    log_level: str = "INFO",
    json_format: bool = False,
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging.

    Args:
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: If True, output JSON. If False, output human-readable lines.
        add_timestamp: If True, add an ISO timestamp to log entries.

    Example:
        >>> configure_logging(log_level="DEBUG", json_format=True)
    """
    processors: list[Any] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if add_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
    )


@contextmanager
def span(name: str, *, attributes: dict[str, Any] | None = None) -> Iterator[Span]:
    """Create an OpenTelemetry span with structured start/end logging.

    Args:
        name: Span name (e.g., "unit_build", "input_compile").
        attributes: Optional span attributes, also bound to the log events.

    Yields:
        OpenTelemetry Span instance.

    Example:
        >>> with span("input_compile", attributes={"artifact": "worker.js"}):
        ...     compiler.compile(files, entry_symbol, options)
    """
    attrs = attributes or {}
    log = logger.bind(**attrs)

    with get_tracer().start_as_current_span(
        name,
        attributes=attrs,
        record_exception=False,
        set_status_on_exception=False,
    ) as s:
        log.debug(f"{name}_started")
        try:
            yield s
        except Exception as exc:
            s.set_status(Status(StatusCode.ERROR, str(exc)))
            s.record_exception(exc)
            log.warning(f"{name}_failed", error=str(exc))
            raise
        s.set_status(Status(StatusCode.OK))
        log.debug(f"{name}_completed")
