"""Abstract base classes for persistent index stores and their writers.

An index store owns one on-disk location.  Records go in through a single
:class:`IIndexWriter` at a time (the store enforces this with its own write
lock); reads go through the store itself.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from types import TracebackType

from gigaindex.models.index import IndexRecord, IndexStats, OpenMode, SearchHit, TermStats


class IIndexWriter(ABC):
    """Contract for the single active writer of an index store.

    Used as a context manager: a clean exit calls :meth:`close`, an exit
    caused by an exception calls :meth:`abort`.
    """

    @abstractmethod
    def add_record(self, record: IndexRecord) -> None:
        """Append one record.  May be buffered until the next flush.

        Raises
        ------
        gigaindex.utils.errors.PersistenceError
            If the record cannot be written.
        """

    @abstractmethod
    def commit(self) -> None:
        """Flush buffered records so they become durable and visible to readers."""

    @abstractmethod
    def force_merge(self, max_segments: int = 1) -> None:
        """Flush, then consolidate index segments down to *max_segments*.

        Expensive at write time; makes subsequent reads cheaper.
        """

    @abstractmethod
    def close(self) -> None:
        """Flush, release the write lock, and close the storage handle."""

    @abstractmethod
    def abort(self) -> None:
        """Discard unflushed records, release the write lock, and close."""

    @property
    @abstractmethod
    def records_added(self) -> int:
        """Number of records accepted by :meth:`add_record` so far."""

    def __enter__(self) -> IIndexWriter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.close()
        else:
            self.abort()


# Concrete implementation: SQLiteIndexStore (gigaindex/providers/index_store/)
class IIndexStore(ABC):
    """Contract for persistent, queryable index stores."""

    @property
    @abstractmethod
    def location(self) -> str:
        """Filesystem location of the index."""

    @abstractmethod
    def open_writer(
        self,
        mode: OpenMode = OpenMode.CREATE_OR_APPEND,
        buffer_size_mb: float = 1024.0,
    ) -> IIndexWriter:
        """Acquire the write lock and return a writer.

        ``OpenMode.CREATE`` destroys any existing content first.

        Raises
        ------
        gigaindex.utils.errors.PersistenceError
            If another writer holds the lock or the store cannot be opened.
        """

    @abstractmethod
    def count(self, corpus: str | None = None) -> int:
        """Number of records, optionally only those whose ``corpus`` matches exactly."""

    @abstractmethod
    def get_record(self, record_id: int) -> IndexRecord:
        """Return the stored fields of one record.

        Raises
        ------
        KeyError
            If no record has this id.
        """

    @abstractmethod
    def iter_record_ids(self) -> Iterator[int]:
        """Yield every record id in insertion order."""

    @abstractmethod
    def search(self, query: str, limit: int = 10) -> list[SearchHit]:
        """Full-text search over the tokenized ``text`` field, best match first."""

    @abstractmethod
    def get_term_vector(self, record_id: int) -> dict[str, TermStats]:
        """Return the stored term vector of one record (empty if none was stored)."""

    @abstractmethod
    def get_stats(self) -> IndexStats:
        """Return aggregate statistics about the stored records."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"sqlite_index"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the backing engine supports everything the store needs."""
