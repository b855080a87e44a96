"""Corpus parsers -- concrete :class:`~gigaindex.interfaces.ICorpusParser` implementations."""

from gigaindex.parsers.gigaword_parser import (
    GIGAWORD_CORPUS_NAME,
    GigawordTextParser,
    ParserState,
    decode_entities,
)
from gigaindex.parsers.index_search_parser import INDEXED_CORPUS_NAME, IndexSearchParser

__all__ = [
    "GIGAWORD_CORPUS_NAME",
    "INDEXED_CORPUS_NAME",
    "GigawordTextParser",
    "IndexSearchParser",
    "ParserState",
    "decode_entities",
]
