"""Custom exception hierarchy for gigaindex.

All application exceptions inherit from :class:`GigaIndexError`, which
carries an optional ``provider_name`` so error handlers can identify which
collaborator (e.g. "gigaword", "sqlite_index", "nltk") caused the failure.

The hierarchy is organized by pipeline stage:

    GigaIndexError  (base -- catch-all for any gigaindex error)
    +-- ResourceError        (corpus file / stream open, read or close)
    +-- FormatError          (missing structural marker, bad marker attributes)
    +-- AnnotationError      (annotation engine or annotation codec)
    +-- PersistenceError     (index writer / reader, write lock)
    +-- ConfigurationError   (startup / invalid config)

None of these are retried inside the pipeline.  A failed indexing run is
recovered by re-running it in append mode.
"""

from __future__ import annotations

from pathlib import Path


class GigaIndexError(Exception):
    """Base exception for all gigaindex errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which collaborator triggered the error.
    The ``__str__`` method prefixes the provider name in brackets for
    structured log output, e.g. ``[sqlite_index] index is locked``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Corpus reading errors
# ---------------------------------------------------------------------------

class ResourceError(GigaIndexError):
    """Raised when a corpus file or decompression stream cannot be opened, read or closed."""

    def __init__(
        self,
        message: str = "Corpus resource could not be accessed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class FormatError(GigaIndexError):
    """Raised when a corpus file is structurally corrupt.

    A document whose ``<TEXT>`` block is never closed cannot be bounded
    safely, so the parser raises instead of truncating or dropping it.
    ``path`` and ``line_number`` point at where the scan stopped.
    """

    def __init__(
        self,
        message: str = "Malformed corpus document",
        provider_name: str | None = None,
        path: str | Path | None = None,
        line_number: int | None = None,
    ) -> None:
        self._path = str(path) if path is not None else None
        self._line_number = line_number
        if self._path is not None:
            location = self._path if line_number is None else f"{self._path}:{line_number}"
            message = f"{message} ({location})"
        super().__init__(message=message, provider_name=provider_name)

    @property
    def path(self) -> str | None:
        return self._path

    @property
    def line_number(self) -> int | None:
        return self._line_number


# ---------------------------------------------------------------------------
# Enrichment errors
# ---------------------------------------------------------------------------

class AnnotationError(GigaIndexError):
    """Raised when annotating a document, or encoding/decoding an annotation, fails."""

    def __init__(
        self,
        message: str = "Annotation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Index store errors
# ---------------------------------------------------------------------------

class PersistenceError(GigaIndexError):
    """Raised when an index store operation (append, merge, close, read) fails.

    Also raised when a second writer tries to open an index that is
    already write-locked.
    """

    def __init__(
        self,
        message: str = "Index store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------

class ConfigurationError(GigaIndexError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
