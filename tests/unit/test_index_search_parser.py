"""Unit tests for IndexSearchParser."""

from __future__ import annotations

import pytest

from gigaindex.models.document import Document
from gigaindex.models.index import OpenMode
from gigaindex.parsers.index_search_parser import INDEXED_CORPUS_NAME, IndexSearchParser
from gigaindex.providers.annotation.json_codec import JsonAnnotationCodec
from gigaindex.providers.index_store.sqlite_index_store import SQLiteIndexStore
from tests.conftest import FakeAnnotationEngine


@pytest.fixture
def populated_store(index_store: SQLiteIndexStore, codec: JsonAnnotationCodec) -> SQLiteIndexStore:
    annotated = Document.from_strings("\tpolice chased the suspect", "Gigaword", id="d1", type="story")
    annotated.annotate(FakeAnnotationEngine())
    documents = [
        annotated,
        Document.from_strings("\tmarkets rallied", "Gigaword", id="d2", type="story"),
        Document.from_strings("\tpolice report", "Gigaword", id="d3", type="advis"),
    ]
    with index_store.open_writer(mode=OpenMode.CREATE) as writer:
        for document in documents:
            writer.add_record(document.to_index_record(codec=codec, store_postings=True))
    return index_store


class TestIndexSearchParser:
    def test_yields_documents_for_hits(self, populated_store: SQLiteIndexStore, codec: JsonAnnotationCodec) -> None:
        hits = populated_store.search("police")
        parser = IndexSearchParser(populated_store, hits, codec=codec)

        ids = sorted(doc.get_string("id") for doc in parser)

        assert ids == ["d1", "d3"]

    def test_documents_are_relabelled(self, populated_store: SQLiteIndexStore, codec: JsonAnnotationCodec) -> None:
        parser = IndexSearchParser(populated_store, [2], codec=codec, corpus_name="Query Subset")
        document = parser.parse_next()

        assert document.corpus == "Query Subset"
        assert document.text == "\tmarkets rallied"
        assert document.get_string("type") == "story"

    def test_default_corpus_name(self, populated_store: SQLiteIndexStore, codec: JsonAnnotationCodec) -> None:
        parser = IndexSearchParser(populated_store, [1], codec=codec)
        assert parser.corpus_name == INDEXED_CORPUS_NAME
        assert parser.parse_next().corpus == INDEXED_CORPUS_NAME

    def test_stored_annotation_is_decoded(self, populated_store: SQLiteIndexStore, codec: JsonAnnotationCodec) -> None:
        document = IndexSearchParser(populated_store, [1], codec=codec).parse_next()
        assert document.annotation is not None
        assert document.annotation.sentences[0].words == ("police", "chased", "the", "suspect")

    def test_order_follows_hits(self, populated_store: SQLiteIndexStore, codec: JsonAnnotationCodec) -> None:
        parser = IndexSearchParser(populated_store, [3, 1, 2], codec=codec)
        assert [doc.get_string("id") for doc in parser] == ["d3", "d1", "d2"]

    def test_exhaustion_and_close(self, populated_store: SQLiteIndexStore, codec: JsonAnnotationCodec) -> None:
        parser = IndexSearchParser(populated_store, [1, 2], codec=codec)
        assert parser.has_next()
        parser.parse_next()
        parser.close()

        assert not parser.has_next()
        assert parser.parse_next() is None
        parser.close()

    def test_unknown_record_id_raises(self, populated_store: SQLiteIndexStore, codec: JsonAnnotationCodec) -> None:
        parser = IndexSearchParser(populated_store, [42], codec=codec)
        with pytest.raises(KeyError):
            parser.parse_next()
