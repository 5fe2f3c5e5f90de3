"""Structured logging configuration."""

import logging
import sys
from typing import TextIO

import structlog


def configure_logging(
    level: int = logging.INFO,
    output: TextIO | None = None,
    json_format: bool = True,
) -> None:
    """Configure structured logging for the client.

    JSON lines by default; the console renderer is meant for development
    builds.

    Args:
        level: Logging level (default: INFO).
        output: Output stream (default: the current stderr).
        json_format: Whether to use JSON format (default: True).
    """
    output = output or sys.stderr
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=True,
    )

    # httpx logs every request at INFO through the standard library
    logging.basicConfig(
        format="%(message)s",
        stream=output,
        level=level,
    )
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


def configure_logging_for_settings(dev: bool) -> None:
    """Configure logging for a development or production build.

    Args:
        dev: True for readable DEBUG output, False for JSON at INFO.
    """
    if dev:
        configure_logging(level=logging.DEBUG, json_format=False)
    else:
        configure_logging(level=logging.INFO, json_format=True)


def bind_session_context(session_id: str, user_id: str | None = None) -> None:
    """Bind the client session to all subsequent log messages.

    Args:
        session_id: Error reporting session identifier.
        user_id: Current user, when known.
    """
    structlog.contextvars.bind_contextvars(session_id=session_id)
    if user_id is not None:
        structlog.contextvars.bind_contextvars(user_id=user_id)


def clear_session_context() -> None:
    """Clear session context from log messages."""
    structlog.contextvars.unbind_contextvars("session_id", "user_id")
