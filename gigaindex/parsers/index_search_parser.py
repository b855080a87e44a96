"""Corpus parser over documents already stored in an index.

Turns a sequence of record ids -- typically the hits of a search against an
existing index -- back into documents, so they can be fed through the
indexing pipeline again (e.g. to annotate a query-selected subset).
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable

import structlog

from gigaindex.interfaces.annotation_engine import IAnnotationCodec
from gigaindex.interfaces.corpus_parser import ICorpusParser
from gigaindex.interfaces.index_store import IIndexStore
from gigaindex.models.document import Document
from gigaindex.models.index import SearchHit

logger = structlog.get_logger(logger_name=__name__)

INDEXED_CORPUS_NAME = "Indexed Documents"


class IndexSearchParser(ICorpusParser):
    """Yields the stored documents for a list of record ids or search hits.

    Each document is relabelled with this parser's ``corpus_name``.  The
    store is read, not owned: :meth:`close` only drops the pending ids.
    """

    def __init__(
        self,
        store: IIndexStore,
        hits: Iterable[int | SearchHit],
        codec: IAnnotationCodec | None = None,
        corpus_name: str = INDEXED_CORPUS_NAME,
    ) -> None:
        self.corpus_name = corpus_name
        self._store = store
        self._codec = codec
        self._pending: deque[int] = deque(
            hit.record_id if isinstance(hit, SearchHit) else int(hit) for hit in hits
        )
        logger.debug("index_search_parser_created", store=store.location, hits=len(self._pending))

    def has_next(self) -> bool:
        return bool(self._pending)

    def parse_next(self) -> Document | None:
        if not self._pending:
            return None
        record = self._store.get_record(self._pending.popleft())
        document = Document.from_index_record(record, self._codec)
        return document.model_copy(update={"corpus": self.corpus_name})

    def close(self) -> None:
        self._pending.clear()
