"""
Logging configuration module for structured logging.

This module configures the application's logging system using structlog.
It provides JSON output for production and human-readable console output
for development.

The logging configuration includes:
- Timestamp formatting
- Log level inclusion and filtering
- JSON/Console output based on environment
"""

import logging

import structlog


def configure_logging(log_level: str = "INFO", json_logs: bool = False) -> None:
    """
    Configures the application's logging system.

    Rate-limiter and session store failures are logged here instead of being
    surfaced to callers, so the output must stay machine readable in
    production (``LOG_JSON=True``).

    Args:
        log_level: Minimum level name, e.g. ``"INFO"``.
        json_logs: Render JSON lines instead of console output.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(format="%(message)s", level=level)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer(),
    ]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger()

__all__ = ["configure_logging", "logger"]
