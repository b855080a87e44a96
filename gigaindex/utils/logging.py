"""Structured logging setup using structlog.

The same shared processor chain (context vars, log level, timestamps,
stack info) feeds either a coloured ConsoleRenderer for interactive runs or
a JSONRenderer for batch jobs whose output is collected by a log shipper.
The renderer is selected from the ``APP_ENV`` environment variable
(default ``"development"``), or forced via the ``json_output`` flag.

Standard-library ``logging`` is rewired through the same formatter so
third-party libraries (nltk, sqlite adapters) produce identical output.

Indexing runs bind ``corpus`` and ``index`` with
``structlog.contextvars.bound_contextvars``, so parser and store events
logged during a run carry them without passing them down explicitly.
"""

import logging
import os
import sys

import structlog

from gigaindex.utils.errors import ConfigurationError

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
    "FATAL": logging.FATAL,
}


def resolve_level(log_level: str) -> int:
    """Map a level name (any case) to its numeric value.

    Raises:
        ConfigurationError: If the name is not a standard level.
    """
    try:
        return LOG_LEVELS[log_level.strip().upper()]
    except KeyError:
        raise ConfigurationError(
            message=f"Unknown log level '{log_level}'; expected one of {list(LOG_LEVELS)}"
        ) from None


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> structlog.BoundLogger:
    """Configure structlog with environment-appropriate rendering.

    Args:
        log_level: Logging level string (DEBUG, INFO, WARNING, ERROR, FATAL).
        json_output: Force JSON output. When False, uses console rendering in
                     development and JSON in production (detected via APP_ENV).

    Returns:
        A configured structlog BoundLogger.

    Raises:
        ConfigurationError: If *log_level* is not a standard level name.
    """
    level = resolve_level(log_level)
    use_json = json_output or os.environ.get("APP_ENV", "development") == "production"

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if use_json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        # stdout is reserved for CLI summaries.
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *shared_processors,
                renderer,
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a structlog logger bound with *name*, configuring defaults on first use."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(logger_name=name)
