"""Structured logging setup for mcast-discovery."""

import logging

import structlog

from .config import LoggingConfig


def configure_logging(config: LoggingConfig) -> structlog.BoundLogger:
    """Set up stdlib logging and structlog according to the logging config.

    Returns:
        A logger bound to the ``mcast_discovery`` name.
    """
    level = getattr(logging, config.level.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(message)s")

    processors = [
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if config.format == "console":
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger("mcast_discovery")
