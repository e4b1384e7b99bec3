"""
Structured logging setup using structlog.

Queue modules log through the standard library with ``extra`` fields;
the formatter installed here renders those records, and any structlog
loggers, as one JSON object or console line per event.
"""

import logging
import sys
from typing import Any, TextIO

import structlog
from opentelemetry import trace

from leasequeue.config import Settings, get_settings

# Driver topology and heartbeat chatter
QUIET_LOGGERS = ("pymongo", "opentelemetry")


def add_span_ids(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Attach the active span's trace and span ids, if a span is recording."""
    ctx = trace.get_current_span().get_span_context()
    if ctx.is_valid:
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def build_processors() -> list[Any]:
    """Processors applied to every event before rendering."""
    return [
        structlog.contextvars.merge_contextvars,
        add_span_ids,
        structlog.processors.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.ExtraAdder(),
    ]


def build_renderer(log_format: str) -> Any:
    """
    Pick the final renderer.

    Raises:
        ValueError: If ``log_format`` is neither ``json`` nor ``console``.
    """
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    if log_format == "console":
        return structlog.dev.ConsoleRenderer(colors=False)
    raise ValueError(f"unknown log format: {log_format!r}")


def setup_logging(settings: Settings | None = None, stream: TextIO | None = None) -> None:
    """
    Route all logging through structlog's formatter.

    Args:
        settings: Supplies ``log_level`` and ``log_format``.
        stream: Where records are written. Defaults to stdout.
    """
    settings = settings or get_settings()
    processors = build_processors()

    structlog.configure(
        processors=[*processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                build_renderer(settings.log_format),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_context(**kwargs: Any) -> None:
    """Add fields to every event logged from the current context."""
    structlog.contextvars.bind_contextvars(**kwargs)
