"""Orchestrator for corpus indexing.

Pipeline stages, one document at a time: **parse -> (annotate) -> convert
-> write**, followed by one forced segment merge.

The :class:`IndexingService` coordinates a corpus parser, an optional
annotation engine and codec, and an index store, none of which know about
each other.  All of them are passed in by the caller, so test doubles can
replace any of them.

The run is single-threaded and strictly sequential: the store has exactly
one writer for the whole run, and documents are written in the order the
parser produces them.  There is no resume state; if a run fails, re-run it
with ``append=True``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from gigaindex.models.index import IndexingResult, OpenMode
from gigaindex.pipeline.progress_tracker import ProgressTracker
from gigaindex.utils.errors import AnnotationError, ConfigurationError

if TYPE_CHECKING:
    from gigaindex.config.settings import IndexerConfig
    from gigaindex.interfaces.annotation_engine import IAnnotationCodec, IAnnotationEngine
    from gigaindex.interfaces.corpus_parser import ICorpusParser
    from gigaindex.interfaces.index_store import IIndexStore
    from gigaindex.models.document import Document

logger = structlog.get_logger(logger_name=__name__)


class IndexingService:
    """Drains a corpus parser into an index store.

    Parameters
    ----------
    parser:
        Source of documents.  The service reads it to exhaustion but does
        not close it; the caller owns it.
    store:
        Destination index.
    annotation_engine:
        Used when a run asks for annotation (``run_nlp=True``).
    codec:
        Serializes annotations into the ``"nlp"`` field.  Needed whenever
        documents carry annotations.
    progress_tracker:
        Receives a report every ``interval`` documents.  A tracker with the
        default interval is created when omitted.
    """

    def __init__(
        self,
        parser: ICorpusParser,
        store: IIndexStore,
        annotation_engine: IAnnotationEngine | None = None,
        codec: IAnnotationCodec | None = None,
        progress_tracker: ProgressTracker | None = None,
    ) -> None:
        self._parser = parser
        self._store = store
        self._annotation_engine = annotation_engine
        self._codec = codec
        self._progress = progress_tracker or ProgressTracker()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, config: IndexerConfig) -> IndexingResult:
        """Index with the toggles taken from *config*."""
        return self.index(
            append=config.append,
            buffer_size_mb=config.buffer_size_mb,
            run_nlp=config.run_nlp,
            store_postings=config.store_postings,
            store_term_vector=config.store_term_vector,
        )

    def index(
        self,
        append: bool = False,
        buffer_size_mb: float = 1024.0,
        run_nlp: bool = False,
        store_postings: bool = False,
        store_term_vector: bool = False,
    ) -> IndexingResult:
        """Index every document the parser yields.

        Parameters
        ----------
        append:
            Add to an existing index instead of replacing it.
        buffer_size_mb:
            Buffered payload size that triggers a flush to the store.
        run_nlp:
            Annotate each document and store the annotation under ``"nlp"``.
        store_postings:
            Keep token positions for phrase/proximity search.
        store_term_vector:
            Keep a per-document term vector.

        Returns
        -------
        IndexingResult
            Document count and timing for the run.

        Raises
        ------
        ConfigurationError
            If annotation is requested without an engine or codec.
        ResourceError, FormatError, AnnotationError, PersistenceError
            Any failure aborts the whole run.
        """
        if run_nlp and (self._annotation_engine is None or self._codec is None):
            raise ConfigurationError(
                message="run_nlp requires both an annotation engine and an annotation codec"
            )

        corpus_name = self._parser.corpus_name
        logger.info(
            "indexing_started",
            corpus=corpus_name,
            index=self._store.location,
            append=append,
            run_nlp=run_nlp,
            store_postings=store_postings,
            store_term_vector=store_term_vector,
        )
        self._progress.start(corpus_name)

        mode = OpenMode.CREATE_OR_APPEND if append else OpenMode.CREATE
        with structlog.contextvars.bound_contextvars(
            corpus=corpus_name, index=self._store.location
        ), self._store.open_writer(mode=mode, buffer_size_mb=buffer_size_mb) as writer:
            document = self._parser.parse_next()
            while document is not None:
                if run_nlp:
                    self._annotate(document)
                writer.add_record(
                    document.to_index_record(
                        codec=self._codec,
                        store_postings=store_postings,
                        store_term_vector=store_term_vector,
                    )
                )
                self._progress.advance()
                document = self._parser.parse_next()

            # Read-optimized layout at the cost of a long final write.
            writer.force_merge(1)
            count = writer.records_added

        elapsed = self._progress.finish()
        logger.info(
            "indexing_completed",
            corpus=corpus_name,
            documents=count,
            elapsed_ms=int(elapsed * 1000),
        )
        return IndexingResult(
            corpus_name=corpus_name,
            index_path=self._store.location,
            documents_indexed=count,
            elapsed_seconds=elapsed,
            append=append,
            run_nlp=run_nlp,
            store_postings=store_postings,
            store_term_vector=store_term_vector,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _annotate(self, document: Document) -> None:
        # One failed document aborts the whole run.
        try:
            document.annotate(self._annotation_engine)
        except AnnotationError as exc:
            logger.error(
                "annotation_failed",
                doc_id=document.get_string("id", ""),
                documents_done=self._progress.documents,
                error=str(exc),
            )
            raise
