"""
Observability - structured logging for the auth core.

Usage:
    from infinity_kb.observability import configure_logging, LogContext

    # Initialize once at process startup
    configure_logging(service_name="infinity-kb", log_level="INFO")
"""
from .logging_config import (
    LogContext,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    unbind_context,
)

__all__ = [
    "LogContext",
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "unbind_context",
]
