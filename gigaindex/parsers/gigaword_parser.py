"""Streaming parser for the LDC English Gigaword corpus.

Reads every ``*.gz`` archive under a corpus root, one file at a time, and
yields one :class:`~gigaindex.models.document.Document` per
``<DOC ...>`` block.  Each archive is plain SGML-like text::

    <DOC id="APW_ENG_19941101.0001" type="story" >
    <HEADLINE>
    ...
    </HEADLINE>
    <TEXT>
    <P>
    First paragraph line one
    line two
    </P>
    </TEXT>
    </DOC>

Only one gzip stream is open at any moment and only one document is held
in memory ahead of the consumer, so memory stays bounded whatever the
corpus size.  The parser is a small pull-based state machine::

    NO_FILE_OPEN --open next archive--> SCANNING --end of archive--> NO_FILE_OPEN
         |                                  |
         +------no archives left------------+------close()/error--> EXHAUSTED
"""

from __future__ import annotations

import gzip
import re
from collections import deque
from enum import Enum
from pathlib import Path
from typing import TextIO

import structlog

from gigaindex.interfaces.corpus_parser import ICorpusParser
from gigaindex.models.document import Document
from gigaindex.utils.errors import FormatError, ResourceError
from gigaindex.utils.files import DEFAULT_FILE_PATTERN, iter_files

logger = structlog.get_logger(logger_name=__name__)

GIGAWORD_CORPUS_NAME = "English Gigaword Corpus"

# Structural markers; Gigaword puts each on its own line.
_DOC_OPEN = "<DOC "
_DOC_OPEN_BARE = "<DOC>"
_DOC_CLOSE = "</DOC>"
_TEXT_OPEN = "<TEXT>"
_TEXT_CLOSE = "</TEXT>"
_PARA_OPEN = "<P>"
_PARA_CLOSE = "</P>"

_ID_PATTERN = re.compile(r'\bid ?="([^"]*)"')
_TYPE_PATTERN = re.compile(r'\btype ?="([^"]*)"')
# An attribute name followed by '=' but no closed quoted value.
_ID_PRESENT = re.compile(r"\bid ?=")
_TYPE_PRESENT = re.compile(r"\btype ?=")

_ENTITY_PATTERN = re.compile(r"&(amp|AMP|lt|LT|gt|GT);")
_ENTITIES = {"amp": "&", "lt": "<", "gt": ">"}


class ParserState(str, Enum):
    """Lifecycle of a :class:`GigawordTextParser`."""

    NO_FILE_OPEN = "no_file_open"
    SCANNING = "scanning"
    EXHAUSTED = "exhausted"


def decode_entities(line: str) -> str:
    """Replace ``&amp;``, ``&lt;`` and ``&gt;`` with their literal characters.

    Decoding is a single pass, so ``&amp;lt;`` becomes ``&lt;`` and not ``<``.
    """
    if "&" not in line:
        return line
    return _ENTITY_PATTERN.sub(lambda match: _ENTITIES[match.group(1).lower()], line)


def is_doc_open(line: str) -> bool:
    return line.startswith(_DOC_OPEN) or line.startswith(_DOC_OPEN_BARE)


def extract_doc_attributes(line: str) -> tuple[str, str]:
    """Return the ``(type, id)`` attributes of a ``<DOC ...>`` line.

    A missing attribute defaults to ``""``.

    Raises
    ------
    ValueError
        If an attribute is named but its quoted value is not terminated.
    """
    attributes: list[str] = []
    for name, value_pattern, name_pattern in (
        ("type", _TYPE_PATTERN, _TYPE_PRESENT),
        ("id", _ID_PATTERN, _ID_PRESENT),
    ):
        match = value_pattern.search(line)
        if match:
            attributes.append(match.group(1))
        elif name_pattern.search(line):
            raise ValueError(f"Unparseable '{name}' attribute in marker: {line.strip()}")
        else:
            attributes.append("")
    return attributes[0], attributes[1]


class GigawordTextParser(ICorpusParser):
    """Lazily parses Gigaword documents from every archive under *corpus_dir*.

    Parameters
    ----------
    corpus_dir:
        Root directory of the corpus; searched recursively.
    corpus_name:
        Label written to each document's ``corpus``.
    file_pattern:
        Regular expression matched against archive file names.
    encoding:
        Text encoding of the decompressed archives.  Undecodable bytes are
        replaced rather than aborting a multi-hour run.
    """

    def __init__(
        self,
        corpus_dir: str | Path,
        corpus_name: str = GIGAWORD_CORPUS_NAME,
        file_pattern: str = DEFAULT_FILE_PATTERN,
        encoding: str = "utf-8",
    ) -> None:
        self.corpus_dir = Path(corpus_dir)
        self.corpus_name = corpus_name
        self._encoding = encoding
        self._files: deque[Path] = deque(iter_files(self.corpus_dir, file_pattern))
        self._state = ParserState.NO_FILE_OPEN
        self._file: Path | None = None
        self._stream: TextIO | None = None
        self._line_number = 0
        self._lookahead: Document | None = None
        self._primed = False
        # Read-ahead failure held back until the document before it is consumed.
        self._deferred_error: FormatError | ResourceError | None = None

        logger.info(
            "gigaword_parser_created",
            corpus_dir=str(self.corpus_dir),
            files=len(self._files),
        )

    # ------------------------------------------------------------------
    # ICorpusParser
    # ------------------------------------------------------------------

    @property
    def state(self) -> ParserState:
        return self._state

    @property
    def current_file(self) -> Path | None:
        return self._file

    def has_next(self) -> bool:
        self._prime()
        if self._lookahead is None:
            self._raise_deferred()
        return self._lookahead is not None

    def parse_next(self) -> Document | None:
        """Return the held document and read one more ahead.

        If reading ahead fails, the held document is still returned and the
        error is raised by the following call.
        """
        self._prime()
        document = self._lookahead
        if document is None:
            self._raise_deferred()
            return None
        try:
            self._lookahead = self._fetch_next_document()
        except (FormatError, ResourceError) as exc:
            self._lookahead = None
            self._deferred_error = exc
        return document

    def close(self) -> None:
        self._files.clear()
        self._lookahead = None
        self._deferred_error = None
        self._primed = True
        self._state = ParserState.EXHAUSTED
        self._close_stream()

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _raise_deferred(self) -> None:
        error, self._deferred_error = self._deferred_error, None
        if error is not None:
            raise error

    def _prime(self) -> None:
        # Archives are opened on first demand, not at construction.
        if not self._primed:
            self._primed = True
            self._lookahead = self._fetch_next_document()

    def _fetch_next_document(self) -> Document | None:
        try:
            while self._state is not ParserState.EXHAUSTED:
                if self._state is ParserState.NO_FILE_OPEN:
                    if not self._files:
                        self._state = ParserState.EXHAUSTED
                        break
                    self._open_file(self._files.popleft())
                    continue

                document = self._scan_for_document()
                if document is not None:
                    return document

                # Archive finished without another document; move on.
                logger.debug("corpus_file_finished", file=str(self._file), lines=self._line_number)
                self._close_stream()
                self._state = ParserState.NO_FILE_OPEN
        except (FormatError, ResourceError):
            self.close()
            raise
        return None

    def _open_file(self, path: Path) -> None:
        try:
            self._stream = gzip.open(path, mode="rt", encoding=self._encoding, errors="replace")
        except OSError as exc:
            raise ResourceError(
                message=f"Failed to open corpus file {path}: {exc}",
                provider_name="gigaword",
            ) from exc
        self._file = path
        self._line_number = 0
        self._state = ParserState.SCANNING
        logger.debug("corpus_file_opened", file=str(path), remaining=len(self._files))

    def _close_stream(self) -> None:
        stream, self._stream = self._stream, None
        self._file = None
        if stream is None:
            return
        try:
            stream.close()
        except OSError as exc:
            raise ResourceError(
                message=f"Failed to close corpus stream: {exc}",
                provider_name="gigaword",
            ) from exc

    def _next_line(self) -> str | None:
        """Return the next line without its line terminator, or ``None`` at end of file."""
        try:
            line = self._stream.readline()
        except (OSError, EOFError) as exc:
            raise ResourceError(
                message=f"Failed to read corpus file {self._file}: {exc}",
                provider_name="gigaword",
            ) from exc
        if not line:
            return None
        self._line_number += 1
        return line.rstrip("\r\n")

    def _format_error(self, message: str) -> FormatError:
        return FormatError(
            message=message,
            provider_name="gigaword",
            path=self._file,
            line_number=self._line_number,
        )

    # ------------------------------------------------------------------
    # Document scanning
    # ------------------------------------------------------------------

    def _scan_for_document(self) -> Document | None:
        """Scan the open archive for the next complete document.

        Returns ``None`` when the archive ends between documents.
        """
        while True:
            line = self._next_line()
            if line is None:
                return None
            if not is_doc_open(line):
                continue

            try:
                doc_type, doc_id = extract_doc_attributes(line)
            except ValueError as exc:
                raise self._format_error(str(exc)) from exc

            if not self._skip_to_text(doc_id):
                logger.debug("document_skipped_no_text", doc_id=doc_id, file=str(self._file))
                continue

            text = self._read_text_block(doc_id)
            return Document.from_strings(
                text=text,
                corpus=self.corpus_name,
                type=doc_type,
                id=doc_id,
            )

    def _skip_to_text(self, doc_id: str) -> bool:
        """Advance to the ``<TEXT>`` line of the current document.

        Returns ``False`` if the document closes without a text block.
        """
        while True:
            line = self._next_line()
            if line is None:
                raise self._format_error(f"Document is missing the <TEXT> tag: '{doc_id}'")
            if line.startswith(_TEXT_OPEN):
                return True
            if line.startswith(_DOC_CLOSE):
                return False

    def _read_text_block(self, doc_id: str) -> str:
        """Accumulate body lines up to the closing ``</TEXT>``.

        ``<P>`` starts a tab-separated paragraph; lines within a paragraph
        are joined by single spaces.
        """
        parts: list[str] = []
        continuing = False
        while True:
            line = self._next_line()
            if line is None:
                raise self._format_error(f"Missing ending </TEXT> tag for document '{doc_id}'")
            if line.startswith(_TEXT_CLOSE):
                return "".join(parts)
            if line.startswith(_DOC_CLOSE) or is_doc_open(line):
                raise self._format_error(f"Missing ending </TEXT> tag for document '{doc_id}'")

            if line.startswith(_PARA_OPEN):
                continuing = False
                parts.append("\t")
            elif not line.startswith(_PARA_CLOSE):
                if continuing:
                    parts.append(" ")
                else:
                    continuing = True
                parts.append(decode_entities(line))
