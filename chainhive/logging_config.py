"""Structured logging configuration using structlog.

Module loggers stay plain ``logging.getLogger(__name__)``; their records,
including anything passed through ``extra=``, are rendered as one JSON object
per line: ``{"timestamp", "level", "message", "logger", ...context}``.
A console renderer is available for local development.
"""

import logging
import sys
from typing import Optional, TextIO

import structlog
from structlog.types import EventDict, WrappedLogger

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def uppercase_level(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Render levels as DEBUG/INFO/WARNING/ERROR."""
    level = event_dict.get("level")
    if isinstance(level, str):
        event_dict["level"] = level.upper()
    return event_dict


def add_app_context(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add application context to all log events."""
    event_dict.setdefault("app", "chainhive")
    return event_dict


def build_formatter(log_format: str = "json") -> structlog.stdlib.ProcessorFormatter:
    """Build the stdlib formatter that renders records through structlog.

    Args:
        log_format: "json" for machine-readable lines, "console" for humans
    """
    pre_chain: list[structlog.types.Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
        uppercase_level,
        add_app_context,
    ]

    if log_format == "console":
        renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer(colors=False)
        processors = [structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer]
    else:
        processors = [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.EventRenamer("message"),
            structlog.processors.JSONRenderer(default=str),
        ]

    return structlog.stdlib.ProcessorFormatter(
        processors=processors,
        foreign_pre_chain=pre_chain,
    )


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    stream: Optional[TextIO] = None,
) -> logging.Handler:
    """Configure root logging for structured output.

    Args:
        log_level: Minimum level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: "json" or "console"
        stream: Output stream (defaults to stdout)

    Returns:
        The installed handler
    """
    level_name = log_level.upper()
    # Accept the common WARN spelling
    if level_name == "WARN":
        level_name = "WARNING"
    if level_name not in LEVELS:
        raise ValueError(f"Unknown log level: {log_level}")
    level = getattr(logging, level_name)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(build_formatter(log_format))
    handler.setLevel(level)

    root_logger = logging.getLogger()
    # Clear existing handlers to avoid duplicates
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging configured",
        extra={"log_level": level_name, "log_format": log_format},
    )
    return handler
