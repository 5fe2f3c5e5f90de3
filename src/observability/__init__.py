"""Observability module for structured logging."""

from src.observability.logging import (
    bind_session_context,
    clear_session_context,
    configure_logging,
    configure_logging_for_settings,
)


__all__ = [
    "bind_session_context",
    "clear_session_context",
    "configure_logging",
    "configure_logging_for_settings",
]
