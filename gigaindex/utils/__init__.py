"""Utility modules for gigaindex.

- **errors** -- exception hierarchy rooted at GigaIndexError; each layer
  raises its own subclass so callers can handle failures granularly.
- **logging** -- structlog setup: coloured console output in development,
  structured JSON in production.
- **files** -- recursive, name-filtered, sorted corpus file enumeration.
"""

from gigaindex.utils.errors import (
    AnnotationError,
    ConfigurationError,
    FormatError,
    GigaIndexError,
    PersistenceError,
    ResourceError,
)
from gigaindex.utils.files import DEFAULT_FILE_PATTERN, iter_files
from gigaindex.utils.logging import configure_logging, get_logger

__all__ = [
    "DEFAULT_FILE_PATTERN",
    "AnnotationError",
    "ConfigurationError",
    "FormatError",
    "GigaIndexError",
    "PersistenceError",
    "ResourceError",
    "configure_logging",
    "get_logger",
    "iter_files",
]
