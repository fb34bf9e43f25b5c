"""Structured logging configuration with structlog."""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from flip_platform.config import get_settings

REDACTED = "[REDACTED]"

# Keys whose values are credentials or tokens
SECRET_KEYS = frozenset({
    "password",
    "current_password",
    "new_password",
    "access_token",
    "refresh_token",
    "code_verifier",
    "authorization",
    "apikey",
})


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: REDACTED if str(key).lower() in SECRET_KEYS else _redact(item)
            for key, item in value.items()
        }
    return value


def redact_secrets(
    logger: Any,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Mask credential values, including inside nested dicts."""
    return _redact(event_dict)


def setup_logging() -> None:
    """Configure structured logging with structlog.

    In development: Pretty console output with colors
    Elsewhere: JSON output for log aggregation
    """
    settings = get_settings()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        redact_secrets,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.is_development:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    log_level = logging.DEBUG if settings.debug else logging.INFO
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    # Suppress noisy loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.debug else logging.WARNING
    )


def log_context(**kwargs: Any) -> None:
    """Add context to all subsequent log messages in this request.

    Usage:
        log_context(user_id="123", correlation_id="abc")
        logger.info("processing")  # Will include user_id and correlation_id
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_log_context() -> None:
    """Clear all context variables."""
    structlog.contextvars.clear_contextvars()
