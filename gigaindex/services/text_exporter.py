"""Plain-text export of one document type from a corpus.

Writes the body of every document whose ``type`` attribute matches, one
document per line, to a single UTF-8 file.  Output is buffered in memory and
appended to the file in large chunks so a full Gigaword pass does not issue
millions of small writes.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from gigaindex.models.index import ExportResult
from gigaindex.pipeline.progress_tracker import ProgressTracker
from gigaindex.utils.errors import ResourceError

if TYPE_CHECKING:
    from gigaindex.interfaces.corpus_parser import ICorpusParser

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_DOC_TYPE = "story"
DEFAULT_FLUSH_BYTES = 10 * 1024 * 1024

# Documents without a type attribute are treated as this type.
_MISSING_TYPE = "other"


class TextExporter:
    """Copies matching document bodies from a parser into a text file.

    Parameters
    ----------
    parser:
        Source of documents; read to exhaustion, not closed.
    progress_tracker:
        Receives a report every ``interval`` documents read.
    """

    def __init__(
        self,
        parser: ICorpusParser,
        progress_tracker: ProgressTracker | None = None,
    ) -> None:
        self._parser = parser
        self._progress = progress_tracker or ProgressTracker()

    def export(
        self,
        out_path: str | Path,
        doc_type: str = DEFAULT_DOC_TYPE,
        flush_bytes: int = DEFAULT_FLUSH_BYTES,
    ) -> ExportResult:
        """Write the text of every *doc_type* document to *out_path*.

        An existing file at *out_path* is replaced.

        Raises
        ------
        ResourceError
            If the output file cannot be written.
        """
        if flush_bytes < 1:
            raise ValueError("flush_bytes must be at least 1")

        path = Path(out_path)
        self._write(path, "", mode="w")
        logger.info("export_started", out=str(path), doc_type=doc_type)
        self._progress.start(f"export:{doc_type}")

        buffer: list[str] = []
        buffered = 0
        written = 0
        for document in self._parser:
            if document.get_string("type", _MISSING_TYPE) == doc_type:
                line = document.text + "\n"
                buffer.append(line)
                buffered += len(line)
                written += 1
                if buffered > flush_bytes:
                    self._write(path, "".join(buffer))
                    buffer.clear()
                    buffered = 0
            self._progress.advance()

        if buffer:
            self._write(path, "".join(buffer))

        elapsed = self._progress.finish()
        logger.info(
            "export_completed",
            out=str(path),
            documents_seen=self._progress.documents,
            documents_written=written,
        )
        return ExportResult(
            out_path=str(path),
            documents_seen=self._progress.documents,
            documents_written=written,
            elapsed_seconds=elapsed,
        )

    @staticmethod
    def _write(path: Path, contents: str, mode: str = "a") -> None:
        try:
            with open(path, mode, encoding="utf-8") as handle:
                handle.write(contents)
        except OSError as exc:
            raise ResourceError(
                message=f"Failed to write export file {path}: {exc}",
                provider_name="text_exporter",
            ) from exc
