"""Abstract base class for corpus parsers.

A corpus parser produces a lazy, finite, single-pass sequence of
:class:`~gigaindex.models.document.Document` objects and releases whatever
it holds (open streams, file queues) on :meth:`ICorpusParser.close`.
Implementations must use bounded memory regardless of corpus size.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from types import TracebackType

from gigaindex.models.document import Document


# Concrete implementations: GigawordTextParser, IndexSearchParser
# (gigaindex/parsers/).
class ICorpusParser(ABC, Iterator[Document]):
    """Contract for pull-based corpus readers.

    Iterating a parser yields the same documents as calling
    :meth:`parse_next` until it returns ``None``.  The sequence is not
    restartable and must not be consumed from more than one thread.
    """

    corpus_name: str = "Unknown"

    @abstractmethod
    def parse_next(self) -> Document | None:
        """Return the next document, or ``None`` once the corpus is exhausted.

        Calling again after exhaustion keeps returning ``None``; it never
        raises for that reason.

        Raises
        ------
        gigaindex.utils.errors.ResourceError
            If a corpus file or stream cannot be read.
        gigaindex.utils.errors.FormatError
            If the corpus is structurally corrupt.
        """

    @abstractmethod
    def has_next(self) -> bool:
        """Return ``True`` if another document is available, without consuming it."""

    @abstractmethod
    def close(self) -> None:
        """Release all held resources.

        Idempotent, and safe at any point -- including before exhaustion,
        which abandons the rest of the input.
        """

    # ------------------------------------------------------------------
    # Iterator / context-manager protocol
    # ------------------------------------------------------------------

    def __iter__(self) -> ICorpusParser:
        return self

    def __next__(self) -> Document:
        document = self.parse_next()
        if document is None:
            raise StopIteration
        return document

    def __enter__(self) -> ICorpusParser:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
