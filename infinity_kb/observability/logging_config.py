"""
Structured Logging - structlog rendering for stdlib loggers.

Library modules log through ``logging.getLogger(__name__)``; the process
entry point calls ``configure_logging`` once so every record is rendered by
structlog with:
- ISO timestamps and log level
- A ``service`` field
- Context bound through ``bind_context`` / ``LogContext`` (user, org)
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars, unbind_contextvars


def configure_logging(
    service_name: str = "infinity-kb",
    log_level: str = "INFO",
    json_output: bool = False,
) -> None:
    """
    Configure structured logging for the process.

    Args:
        service_name: Name used to tag every log entry
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_output: Whether to output JSON (True) or human-readable (False)
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _add_service_info(service_name),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Route stdlib logging through structlog's formatter
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    ))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def _add_service_info(service_name: str):
    """Processor to add service information to all log entries."""
    def processor(logger, method_name, event_dict):
        event_dict["service"] = service_name
        return event_dict
    return processor


def get_logger(name: Optional[str] = None) -> Any:
    """Get a structlog logger bound to ``name``."""
    return structlog.get_logger(name)


def bind_context(**kwargs) -> None:
    """
    Bind key-value pairs to the logging context.

    Usage:
        bind_context(user_id="123", organization_id="abc")
        logger.info("Processing request")  # includes both ids
    """
    bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove keys from the logging context."""
    unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear the logging context."""
    clear_contextvars()


class LogContext:
    """
    Context manager for scoped logging context.

    Usage:
        with LogContext(user_id="123", action="approve_request"):
            logger.info("Starting")
        # keys are unbound after the block
    """

    def __init__(self, **kwargs):
        self.context = kwargs

    def __enter__(self):
        bind_context(**self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        unbind_context(*self.context.keys())
        return False
