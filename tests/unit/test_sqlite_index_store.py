"""Unit tests for SQLiteIndexStore and SQLiteIndexWriter.

Each test builds its index in a pytest ``tmp_path`` directory so nothing
touches a real index location.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from gigaindex.models.index import FieldKind, IndexField, IndexRecord, OpenMode, TermStats
from gigaindex.providers.index_store.sqlite_index_store import (
    LOCK_FILENAME,
    SQLiteIndexStore,
    analyze,
    build_term_vector,
)
from gigaindex.utils.errors import ConfigurationError, PersistenceError


def _record(
    text: str,
    corpus: str = "Gigaword",
    doc_id: str = "d1",
    positions: bool = False,
    term_vector: bool = False,
) -> IndexRecord:
    return IndexRecord(
        fields=(
            IndexField(name="corpus", kind=FieldKind.EXACT, value=corpus),
            IndexField(name="id", kind=FieldKind.STORED, value=doc_id),
            IndexField(name="nlp", kind=FieldKind.STORED, value=b'{"sentences":[]}'),
            IndexField(
                name="text",
                kind=FieldKind.TEXT,
                value=text,
                store_positions=positions,
                store_term_vector=term_vector,
            ),
        )
    )


def _fill(store: SQLiteIndexStore, *records: IndexRecord, mode: OpenMode = OpenMode.CREATE) -> None:
    with store.open_writer(mode=mode) as writer:
        for record in records:
            writer.add_record(record)


# ======================================================================
# Analysis helpers
# ======================================================================


class TestAnalysis:
    def test_analyze_lowercases_and_tracks_offsets(self) -> None:
        assert analyze("\tHello, world_2") == [
            ("hello", 0, 1, 6),
            ("world", 1, 8, 13),
            ("2", 2, 14, 15),
        ]

    def test_build_term_vector_groups_occurrences(self) -> None:
        vector = build_term_vector("\tHello hello world")

        assert vector["hello"] == TermStats(freq=2, positions=(0, 1), offsets=((1, 6), (7, 12)))
        assert vector["world"] == TermStats(freq=1, positions=(2,), offsets=((13, 18),))


# ======================================================================
# Construction
# ======================================================================


class TestStoreConstruction:
    def test_unknown_analyzer_is_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="analyzer"):
            SQLiteIndexStore(tmp_path, analyzer="klingon")

    def test_provider_name_and_availability(self, index_store: SQLiteIndexStore) -> None:
        assert index_store.get_provider_name() == "sqlite_index"
        assert index_store.is_available() is True

    def test_non_positive_buffer_is_rejected(self, index_store: SQLiteIndexStore) -> None:
        with pytest.raises(ConfigurationError):
            index_store.open_writer(buffer_size_mb=0)

    def test_reading_missing_index_raises(self, index_store: SQLiteIndexStore) -> None:
        with pytest.raises(PersistenceError, match="No index found"):
            index_store.count()


# ======================================================================
# Writing
# ======================================================================


class TestWriter:
    def test_records_round_trip(self, index_store: SQLiteIndexStore) -> None:
        original = _record("\thello world", positions=True)
        _fill(index_store, original)

        ids = list(index_store.iter_record_ids())
        assert len(ids) == 1
        assert index_store.get_record(ids[0]) == original

    def test_stored_bytes_stay_bytes(self, index_store: SQLiteIndexStore) -> None:
        _fill(index_store, _record("x"))
        record = index_store.get_record(next(index_store.iter_record_ids()))
        assert record.get("nlp").value == b'{"sentences":[]}'
        assert record.get("id").value == "d1"

    def test_count_by_corpus(self, index_store: SQLiteIndexStore) -> None:
        _fill(
            index_store,
            _record("a", corpus="Gigaword"),
            _record("b", corpus="Gigaword"),
            _record("c", corpus="Other"),
        )
        assert index_store.count() == 3
        assert index_store.count("Gigaword") == 2
        assert index_store.count("gigaword") == 0

    def test_unknown_record_raises_key_error(self, index_store: SQLiteIndexStore) -> None:
        _fill(index_store, _record("a"))
        with pytest.raises(KeyError):
            index_store.get_record(999)

    def test_create_replaces_existing_index(self, index_store: SQLiteIndexStore) -> None:
        _fill(index_store, _record("a"), _record("b"))
        _fill(index_store, _record("c"), mode=OpenMode.CREATE)
        assert index_store.count() == 1

    def test_create_or_append_keeps_existing_records(self, index_store: SQLiteIndexStore) -> None:
        _fill(index_store, _record("a"), _record("b"))
        _fill(index_store, _record("c"), mode=OpenMode.CREATE_OR_APPEND)
        assert index_store.count() == 3

    def test_append_on_empty_location_creates(self, index_store: SQLiteIndexStore) -> None:
        _fill(index_store, _record("a"), mode=OpenMode.CREATE_OR_APPEND)
        assert index_store.count() == 1

    def test_small_buffer_flushes_incrementally(self, index_store: SQLiteIndexStore) -> None:
        # ~1 byte buffer: every record triggers a flush.
        with index_store.open_writer(buffer_size_mb=1 / (1024 * 1024)) as writer:
            for i in range(3):
                writer.add_record(_record(f"text {i}"))
            assert writer.flush_count == 3
            assert writer.records_added == 3

    def test_buffer_counts_encoded_bytes(self, index_store: SQLiteIndexStore) -> None:
        # 60 characters, 120 bytes in UTF-8.
        accented = IndexRecord(fields=(IndexField(name="text", kind=FieldKind.TEXT, value="é" * 60),))
        with index_store.open_writer(buffer_size_mb=100 / (1024 * 1024)) as writer:
            writer.add_record(accented)
            assert writer.flush_count == 1

    def test_exception_aborts_unflushed_records(self, index_store: SQLiteIndexStore) -> None:
        with pytest.raises(RuntimeError):
            with index_store.open_writer(mode=OpenMode.CREATE) as writer:
                writer.add_record(_record("lost"))
                raise RuntimeError("boom")

        assert index_store.count() == 0
        assert not (Path(index_store.location) / LOCK_FILENAME).exists()

    def test_closed_writer_rejects_records(self, index_store: SQLiteIndexStore) -> None:
        writer = index_store.open_writer()
        writer.close()
        writer.close()
        with pytest.raises(PersistenceError, match="closed"):
            writer.add_record(_record("late"))

    def test_force_merge_keeps_records_searchable(self, index_store: SQLiteIndexStore) -> None:
        with index_store.open_writer(buffer_size_mb=1 / (1024 * 1024)) as writer:
            for i in range(5):
                writer.add_record(_record(f"merge target {i}"))
            writer.force_merge(1)
        assert len(index_store.search("merge", limit=10)) == 5

    def test_force_merge_rejects_zero_segments(self, index_store: SQLiteIndexStore) -> None:
        with index_store.open_writer() as writer:
            with pytest.raises(ValueError):
                writer.force_merge(0)


class TestWriteLock:
    def test_lock_exists_while_writer_open(self, index_store: SQLiteIndexStore) -> None:
        lock = Path(index_store.location) / LOCK_FILENAME
        with index_store.open_writer():
            assert lock.exists()
        assert not lock.exists()

    def test_second_writer_is_refused(self, index_store: SQLiteIndexStore) -> None:
        with index_store.open_writer():
            other = SQLiteIndexStore(index_store.location)
            with pytest.raises(PersistenceError, match="locked"):
                other.open_writer()

    def test_refused_writer_leaves_first_lock_in_place(self, index_store: SQLiteIndexStore) -> None:
        lock = Path(index_store.location) / LOCK_FILENAME
        with index_store.open_writer() as writer:
            with pytest.raises(PersistenceError):
                index_store.open_writer()
            assert lock.exists()
            writer.add_record(_record("still writable"))
        assert index_store.count() == 1


# ======================================================================
# Reading
# ======================================================================


class TestSearch:
    def test_term_search_covers_both_tables(self, index_store: SQLiteIndexStore) -> None:
        _fill(
            index_store,
            _record("the suspect fled", positions=True),
            _record("a suspect was caught", positions=False),
            _record("unrelated"),
        )
        hits = index_store.search("suspect")
        assert sorted(hit.record_id for hit in hits) == [1, 2]

    def test_phrase_search_only_matches_positional_records(self, index_store: SQLiteIndexStore) -> None:
        _fill(
            index_store,
            _record("police chased the suspect", positions=True),
            _record("police chased the suspect", positions=False),
        )
        hits = index_store.search('"chased the suspect"')
        assert [hit.record_id for hit in hits] == [1]

    def test_positional_hits_rank_before_positionless_hits(self, index_store: SQLiteIndexStore) -> None:
        _fill(
            index_store,
            _record("suspect suspect suspect", positions=False),
            _record("the suspect fled across the river before dawn", positions=True),
            _record("a suspect", positions=False),
        )
        hits = index_store.search("suspect")

        assert hits[0].record_id == 2
        assert sorted(hit.record_id for hit in hits[1:]) == [1, 3]

    def test_limit_spans_both_tables(self, index_store: SQLiteIndexStore) -> None:
        _fill(
            index_store,
            _record("common word", positions=True),
            _record("common word"),
            _record("common word"),
        )
        hits = index_store.search("common", limit=2)

        assert len(hits) == 2
        assert hits[0].record_id == 1

    def test_limit_is_applied(self, index_store: SQLiteIndexStore) -> None:
        _fill(index_store, *[_record(f"common word {i}") for i in range(5)])
        assert len(index_store.search("common", limit=2)) == 2

    def test_standard_analyzer_does_not_stem(self, index_store: SQLiteIndexStore) -> None:
        _fill(index_store, _record("police chased"))
        assert index_store.search("chase") == []

    def test_english_analyzer_stems(self, tmp_path: Path) -> None:
        store = SQLiteIndexStore(tmp_path / "stemmed", analyzer="english")
        _fill(store, _record("police chased"))
        assert [hit.record_id for hit in store.search("chase")] == [1]

    def test_malformed_query_raises(self, index_store: SQLiteIndexStore) -> None:
        _fill(index_store, _record("a"))
        with pytest.raises(PersistenceError):
            index_store.search('"unbalanced')


class TestTermVectorsAndStats:
    def test_term_vector_is_stored_when_requested(self, index_store: SQLiteIndexStore) -> None:
        _fill(index_store, _record("\tHello hello world", term_vector=True), _record("no vector"))

        assert index_store.get_term_vector(1) == build_term_vector("\tHello hello world")
        assert index_store.get_term_vector(2) == {}

    def test_stats(self, index_store: SQLiteIndexStore) -> None:
        _fill(
            index_store,
            _record("a", positions=True, term_vector=True),
            _record("b", corpus="Other"),
        )
        stats = index_store.get_stats()

        assert stats.total_records == 2
        assert stats.records_with_postings == 1
        assert stats.records_with_term_vectors == 1
        assert stats.records_by_corpus == {"Gigaword": 1, "Other": 1}
        assert stats.analyzer == "standard"

    def test_append_keeps_the_recorded_analyzer(self, tmp_path: Path) -> None:
        _fill(SQLiteIndexStore(tmp_path / "idx", analyzer="english"), _record("chased"))
        appender = SQLiteIndexStore(tmp_path / "idx", analyzer="standard")
        _fill(appender, _record("chasing"), mode=OpenMode.CREATE_OR_APPEND)

        assert appender.get_stats().analyzer == "english"
        assert len(appender.search("chase")) == 2
