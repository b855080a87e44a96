"""SQLite-backed persistent index store.

# --- ARCHITECTURE ROLE -------------------------------------------------
#
# Layer: Providers (concrete adapter implementing IIndexStore).
# Pattern: Adapter pattern -- wraps SQLite + FTS5 behind the IIndexStore ABC
#          so the indexing pipeline never touches SQL.
#
# On-disk layout (one directory per index):
#   <index_dir>/index.db    -- all tables below
#   <index_dir>/write.lock  -- exists while a writer is open
#
# Storage fidelity per record:
#   - text fields with positions go to ``text_postings`` (FTS5 detail=full,
#     phrase/proximity search), all others to ``text_terms`` (detail=none,
#     plain term search, much smaller);
#   - term vectors, when requested, go to ``term_vectors``;
#   - every field is kept verbatim in ``stored_fields``.
#
# Each buffered flush is one transaction, i.e. one new FTS5 segment;
# force_merge() runs FTS5 'optimize' to fold them into one.
# ----------------------------------------------------------------------
"""

from __future__ import annotations

import json
import os
import re
import sqlite3
from collections.abc import Iterator
from pathlib import Path

import structlog

from gigaindex.interfaces.index_store import IIndexStore, IIndexWriter
from gigaindex.models.index import (
    FieldKind,
    IndexField,
    IndexRecord,
    IndexStats,
    OpenMode,
    SearchHit,
    TermStats,
)
from gigaindex.utils.errors import ConfigurationError, PersistenceError

logger = structlog.get_logger(logger_name=__name__)

DB_FILENAME = "index.db"
LOCK_FILENAME = "write.lock"

# Analyzer name -> FTS5 tokenizer.  "english" adds Porter stemming.
ANALYZERS = {
    "standard": "unicode61",
    "english": "porter unicode61",
}

_POSTINGS_TABLE = "text_postings"
_TERMS_TABLE = "text_terms"

# Mirrors the unicode61 tokenizer: runs of letters and digits, lower-cased.
_TERM_PATTERN = re.compile(r"[^\W_]+")

# -- Schema DDL ----------------------------------------------------------

_CREATE_META_TABLE = """\
CREATE TABLE IF NOT EXISTS meta (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""

_CREATE_RECORDS_TABLE = """\
CREATE TABLE IF NOT EXISTS records (
    id     INTEGER PRIMARY KEY AUTOINCREMENT,
    corpus TEXT    NOT NULL
);
"""

_CREATE_FIELDS_TABLE = """\
CREATE TABLE IF NOT EXISTS stored_fields (
    record_id   INTEGER NOT NULL REFERENCES records(id),
    ord         INTEGER NOT NULL,
    name        TEXT    NOT NULL,
    kind        TEXT    NOT NULL,
    value       BLOB,
    positions   INTEGER NOT NULL DEFAULT 0,
    term_vector INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (record_id, ord)
);
"""

_CREATE_TERM_VECTORS_TABLE = """\
CREATE TABLE IF NOT EXISTS term_vectors (
    record_id INTEGER NOT NULL REFERENCES records(id),
    term      TEXT    NOT NULL,
    freq      INTEGER NOT NULL,
    positions TEXT    NOT NULL,
    offsets   TEXT    NOT NULL,
    PRIMARY KEY (record_id, term)
);
"""

_CREATE_FTS_TABLE = (
    "CREATE VIRTUAL TABLE IF NOT EXISTS {table} USING fts5("
    "text, content='', detail={detail}, tokenize='{tokenizer}');"
)

_CREATE_INDICES = [
    "CREATE INDEX IF NOT EXISTS idx_records_corpus ON records(corpus);",
]

# -- DML -----------------------------------------------------------------

_INSERT_RECORD = "INSERT INTO records (corpus) VALUES (?);"

_INSERT_FIELD = """\
INSERT INTO stored_fields (record_id, ord, name, kind, value, positions, term_vector)
VALUES (?, ?, ?, ?, ?, ?, ?);
"""

_INSERT_FTS = "INSERT INTO {table} (rowid, text) VALUES (?, ?);"

_INSERT_TERM = """\
INSERT INTO term_vectors (record_id, term, freq, positions, offsets)
VALUES (?, ?, ?, ?, ?);
"""

_SELECT_FIELDS = """\
SELECT name, kind, value, positions, term_vector
FROM stored_fields
WHERE record_id = ?
ORDER BY ord;
"""

_SELECT_TERMS = "SELECT term, freq, positions, offsets FROM term_vectors WHERE record_id = ?;"

_SEARCH_FTS = (
    "SELECT rowid, bm25({table}) AS score FROM {table} "
    "WHERE {table} MATCH ? ORDER BY score LIMIT ?;"
)


def analyze(text: str) -> list[tuple[str, int, int, int]]:
    """Split *text* into ``(term, position, start, end)`` tuples."""
    return [
        (match.group(0).lower(), position, match.start(), match.end())
        for position, match in enumerate(_TERM_PATTERN.finditer(text))
    ]


def build_term_vector(text: str) -> dict[str, TermStats]:
    """Group the analyzed terms of *text* into per-term statistics."""
    grouped: dict[str, tuple[list[int], list[tuple[int, int]]]] = {}
    for term, position, start, end in analyze(text):
        positions, offsets = grouped.setdefault(term, ([], []))
        positions.append(position)
        offsets.append((start, end))
    return {
        term: TermStats(freq=len(positions), positions=tuple(positions), offsets=tuple(offsets))
        for term, (positions, offsets) in grouped.items()
    }


class SQLiteIndexWriter(IIndexWriter):
    """The single writer of a :class:`SQLiteIndexStore`.

    Records are buffered in memory and written in one transaction whenever
    the buffered payload exceeds ``buffer_bytes``.  Created by
    :meth:`SQLiteIndexStore.open_writer`, which has already taken the lock.
    """

    def __init__(self, conn: sqlite3.Connection, lock_path: Path, buffer_bytes: int) -> None:
        self._conn: sqlite3.Connection | None = conn
        self._lock_path = lock_path
        self._buffer_bytes = buffer_bytes
        self._pending: list[IndexRecord] = []
        self._pending_bytes = 0
        self._records_added = 0
        self._flushes = 0

    @property
    def records_added(self) -> int:
        return self._records_added

    @property
    def flush_count(self) -> int:
        return self._flushes

    # ------------------------------------------------------------------
    # IIndexWriter
    # ------------------------------------------------------------------

    def add_record(self, record: IndexRecord) -> None:
        self._require_open()
        self._pending.append(record)
        self._pending_bytes += _record_size(record)
        self._records_added += 1
        if self._pending_bytes >= self._buffer_bytes:
            self._flush()

    def commit(self) -> None:
        self._require_open()
        self._flush()

    def force_merge(self, max_segments: int = 1) -> None:
        if max_segments < 1:
            raise ValueError("max_segments must be at least 1")
        conn = self._require_open()
        self._flush()
        try:
            for table in (_POSTINGS_TABLE, _TERMS_TABLE):
                if max_segments == 1:
                    conn.execute(f"INSERT INTO {table} ({table}) VALUES ('optimize');")
                else:
                    # FTS5 has no merge-to-N; an incremental merge pass is the closest.
                    conn.execute(f"INSERT INTO {table} ({table}, rank) VALUES ('merge', 500);")
            conn.commit()
            if max_segments == 1:
                conn.execute("VACUUM;")
        except sqlite3.Error as exc:
            raise PersistenceError(
                message=f"Segment merge failed: {exc}",
                provider_name="sqlite_index",
            ) from exc
        logger.info(
            "index_merged",
            max_segments=max_segments,
            flushes=self._flushes,
            records=self._records_added,
        )

    def close(self) -> None:
        if self._conn is None:
            return
        try:
            self._flush()
        finally:
            self._release()
        logger.debug("index_writer_closed", records=self._records_added)

    def abort(self) -> None:
        if self._conn is None:
            return
        discarded = len(self._pending)
        self._pending.clear()
        self._pending_bytes = 0
        try:
            self._conn.rollback()
        except sqlite3.Error as exc:
            logger.warning("index_rollback_failed", error=str(exc))
        finally:
            self._release()
        logger.warning("index_writer_aborted", discarded_records=discarded)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _require_open(self) -> sqlite3.Connection:
        if self._conn is None:
            raise PersistenceError(message="Index writer is closed", provider_name="sqlite_index")
        return self._conn

    def _flush(self) -> None:
        if not self._pending:
            return
        conn = self._require_open()
        try:
            with conn:
                for record in self._pending:
                    _insert_record(conn, record)
        except sqlite3.Error as exc:
            raise PersistenceError(
                message=f"Failed to write {len(self._pending)} buffered records: {exc}",
                provider_name="sqlite_index",
            ) from exc
        self._flushes += 1
        logger.debug("index_buffer_flushed", records=len(self._pending), bytes=self._pending_bytes)
        self._pending.clear()
        self._pending_bytes = 0

    def _release(self) -> None:
        conn, self._conn = self._conn, None
        try:
            conn.close()
        except sqlite3.Error as exc:
            raise PersistenceError(
                message=f"Failed to close index database: {exc}",
                provider_name="sqlite_index",
            ) from exc
        finally:
            self._lock_path.unlink(missing_ok=True)


class SQLiteIndexStore(IIndexStore):
    """Index store kept in a single SQLite database with FTS5 full-text tables.

    Parameters
    ----------
    index_dir:
        Directory holding the index; created on first write.
    analyzer:
        ``"standard"`` or ``"english"`` (Porter stemming).  Fixed when the
        index is created; appending reuses the analyzer recorded in the index.
    """

    def __init__(self, index_dir: str | Path, analyzer: str = "standard") -> None:
        if analyzer not in ANALYZERS:
            raise ConfigurationError(
                message=f"Unknown analyzer '{analyzer}'; expected one of {sorted(ANALYZERS)}",
                provider_name="sqlite_index",
            )
        self._index_dir = Path(index_dir)
        self._db_path = self._index_dir / DB_FILENAME
        self._lock_path = self._index_dir / LOCK_FILENAME
        self._analyzer = analyzer

    @property
    def location(self) -> str:
        return str(self._index_dir)

    @property
    def db_path(self) -> Path:
        return self._db_path

    def get_provider_name(self) -> str:
        return "sqlite_index"

    def is_available(self) -> bool:
        """Return ``True`` if the linked SQLite library was built with FTS5."""
        conn = sqlite3.connect(":memory:")
        try:
            conn.execute("CREATE VIRTUAL TABLE probe USING fts5(text);")
        except sqlite3.OperationalError:
            return False
        finally:
            conn.close()
        return True

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def open_writer(
        self,
        mode: OpenMode = OpenMode.CREATE_OR_APPEND,
        buffer_size_mb: float = 1024.0,
    ) -> SQLiteIndexWriter:
        if buffer_size_mb <= 0:
            raise ConfigurationError(
                message=f"buffer_size_mb must be positive, got {buffer_size_mb}",
                provider_name="sqlite_index",
            )
        try:
            self._index_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PersistenceError(
                message=f"Cannot create index directory {self._index_dir}: {exc}",
                provider_name="sqlite_index",
            ) from exc

        self._acquire_lock()
        try:
            if mode is OpenMode.CREATE:
                self._delete_database()
            conn = sqlite3.connect(str(self._db_path))
            try:
                analyzer = self._initialize_schema(conn)
            except sqlite3.Error:
                conn.close()
                raise
        except (sqlite3.Error, OSError) as exc:
            self._lock_path.unlink(missing_ok=True)
            raise PersistenceError(
                message=f"Failed to open index at {self._index_dir}: {exc}",
                provider_name="sqlite_index",
            ) from exc
        except BaseException:
            self._lock_path.unlink(missing_ok=True)
            raise

        logger.info(
            "index_writer_opened",
            path=str(self._index_dir),
            mode=mode.value,
            analyzer=analyzer,
            buffer_size_mb=buffer_size_mb,
        )
        return SQLiteIndexWriter(
            conn=conn,
            lock_path=self._lock_path,
            buffer_bytes=int(buffer_size_mb * 1024 * 1024),
        )

    def _acquire_lock(self) -> None:
        try:
            fd = os.open(self._lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError as exc:
            raise PersistenceError(
                message=(
                    f"Index at {self._index_dir} is locked by another writer "
                    f"(remove {self._lock_path} if no writer is running)"
                ),
                provider_name="sqlite_index",
            ) from exc
        except OSError as exc:
            raise PersistenceError(
                message=f"Cannot create write lock {self._lock_path}: {exc}",
                provider_name="sqlite_index",
            ) from exc
        with os.fdopen(fd, "w") as handle:
            handle.write(str(os.getpid()))

    def _delete_database(self) -> None:
        for suffix in ("", "-journal", "-wal", "-shm"):
            Path(f"{self._db_path}{suffix}").unlink(missing_ok=True)

    def _initialize_schema(self, conn: sqlite3.Connection) -> str:
        """Create tables if needed and return the analyzer the index uses."""
        conn.execute(_CREATE_META_TABLE)
        row = conn.execute("SELECT value FROM meta WHERE key = 'analyzer';").fetchone()
        if row is None:
            analyzer = self._analyzer
            conn.execute("INSERT INTO meta (key, value) VALUES ('analyzer', ?);", (analyzer,))
        else:
            analyzer = row[0]
            if analyzer != self._analyzer:
                logger.warning(
                    "index_analyzer_mismatch",
                    requested=self._analyzer,
                    existing=analyzer,
                )
        tokenizer = ANALYZERS.get(analyzer, ANALYZERS["standard"])

        conn.execute(_CREATE_RECORDS_TABLE)
        conn.execute(_CREATE_FIELDS_TABLE)
        conn.execute(_CREATE_TERM_VECTORS_TABLE)
        conn.execute(
            _CREATE_FTS_TABLE.format(table=_POSTINGS_TABLE, detail="full", tokenizer=tokenizer)
        )
        conn.execute(
            _CREATE_FTS_TABLE.format(table=_TERMS_TABLE, detail="none", tokenizer=tokenizer)
        )
        for idx_sql in _CREATE_INDICES:
            conn.execute(idx_sql)
        conn.commit()
        return analyzer

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def _connect(self) -> sqlite3.Connection:
        if not self._db_path.exists():
            raise PersistenceError(
                message=f"No index found at {self._index_dir}",
                provider_name="sqlite_index",
            )
        try:
            return sqlite3.connect(str(self._db_path))
        except sqlite3.Error as exc:
            raise PersistenceError(
                message=f"Failed to open index at {self._index_dir}: {exc}",
                provider_name="sqlite_index",
            ) from exc

    def count(self, corpus: str | None = None) -> int:
        conn = self._connect()
        try:
            if corpus is None:
                row = conn.execute("SELECT COUNT(*) FROM records;").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) FROM records WHERE corpus = ?;", (corpus,)
                ).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(message=f"Count failed: {exc}", provider_name="sqlite_index") from exc
        finally:
            conn.close()
        return row[0]

    def get_record(self, record_id: int) -> IndexRecord:
        conn = self._connect()
        try:
            rows = conn.execute(_SELECT_FIELDS, (record_id,)).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(
                message=f"Failed to read record {record_id}: {exc}",
                provider_name="sqlite_index",
            ) from exc
        finally:
            conn.close()
        if not rows:
            raise KeyError(record_id)
        return IndexRecord(
            fields=tuple(
                IndexField(
                    name=name,
                    kind=FieldKind(kind),
                    value=value,
                    store_positions=bool(positions),
                    store_term_vector=bool(term_vector),
                )
                for name, kind, value, positions, term_vector in rows
            )
        )

    def iter_record_ids(self) -> Iterator[int]:
        conn = self._connect()
        try:
            for (record_id,) in conn.execute("SELECT id FROM records ORDER BY id;"):
                yield record_id
        except sqlite3.Error as exc:
            raise PersistenceError(
                message=f"Failed to list records: {exc}",
                provider_name="sqlite_index",
            ) from exc
        finally:
            conn.close()

    def search(self, query: str, limit: int = 10) -> list[SearchHit]:
        """Run an FTS5 query over both text tables.

        BM25 statistics are per table, so scores are only comparable within
        one table: hits from position-bearing records come first, each group
        in its own BM25 order.  Phrase and proximity queries need positions,
        so records indexed without postings cannot match them and that table
        is skipped.
        """
        conn = self._connect()
        hits: list[SearchHit] = []
        try:
            for table in (_POSTINGS_TABLE, _TERMS_TABLE):
                remaining = limit - len(hits)
                if remaining <= 0:
                    break
                try:
                    rows = conn.execute(
                        _SEARCH_FTS.format(table=table), (query, remaining)
                    ).fetchall()
                except sqlite3.OperationalError as exc:
                    if table == _TERMS_TABLE and "detail" in str(exc):
                        logger.debug("search_skipped_positionless", query=query)
                        continue
                    raise PersistenceError(
                        message=f"Search for '{query}' failed: {exc}",
                        provider_name="sqlite_index",
                    ) from exc
                hits.extend(SearchHit(record_id=rowid, score=score) for rowid, score in rows)
        finally:
            conn.close()
        return hits

    def get_term_vector(self, record_id: int) -> dict[str, TermStats]:
        conn = self._connect()
        try:
            rows = conn.execute(_SELECT_TERMS, (record_id,)).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(
                message=f"Failed to read term vector {record_id}: {exc}",
                provider_name="sqlite_index",
            ) from exc
        finally:
            conn.close()
        return {
            term: TermStats(
                freq=freq,
                positions=tuple(json.loads(positions)),
                offsets=tuple(tuple(pair) for pair in json.loads(offsets)),
            )
            for term, freq, positions, offsets in rows
        }

    def get_stats(self) -> IndexStats:
        conn = self._connect()
        try:
            total = conn.execute("SELECT COUNT(*) FROM records;").fetchone()[0]
            with_postings = conn.execute(
                "SELECT COUNT(DISTINCT record_id) FROM stored_fields WHERE positions = 1;"
            ).fetchone()[0]
            with_vectors = conn.execute(
                "SELECT COUNT(DISTINCT record_id) FROM stored_fields WHERE term_vector = 1;"
            ).fetchone()[0]
            by_corpus = dict(
                conn.execute("SELECT corpus, COUNT(*) FROM records GROUP BY corpus;").fetchall()
            )
            row = conn.execute("SELECT value FROM meta WHERE key = 'analyzer';").fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(message=f"Stats query failed: {exc}", provider_name="sqlite_index") from exc
        finally:
            conn.close()
        return IndexStats(
            total_records=total,
            records_with_postings=with_postings,
            records_with_term_vectors=with_vectors,
            records_by_corpus=by_corpus,
            analyzer=row[0] if row else "",
        )


# ---------------------------------------------------------------------------
# Record insertion
# ---------------------------------------------------------------------------

def _record_size(record: IndexRecord) -> int:
    return sum(
        len(field.value.encode("utf-8")) if isinstance(field.value, str) else len(field.value)
        for field in record.fields
    )


def _insert_record(conn: sqlite3.Connection, record: IndexRecord) -> None:
    corpus_field = next(
        (field for field in record.fields if field.kind is FieldKind.EXACT and field.name == "corpus"),
        None,
    )
    corpus = corpus_field.value if corpus_field is not None else ""
    record_id = conn.execute(_INSERT_RECORD, (corpus,)).lastrowid

    conn.executemany(
        _INSERT_FIELD,
        [
            (
                record_id,
                ordinal,
                field.name,
                field.kind.value,
                field.value,
                int(field.store_positions),
                int(field.store_term_vector),
            )
            for ordinal, field in enumerate(record.fields)
        ],
    )

    # Only the first tokenized field is searchable.
    text_field = record.text_field()
    if text_field is None:
        return
    table = _POSTINGS_TABLE if text_field.store_positions else _TERMS_TABLE
    conn.execute(_INSERT_FTS.format(table=table), (record_id, text_field.value))

    if text_field.store_term_vector:
        conn.executemany(
            _INSERT_TERM,
            [
                (
                    record_id,
                    term,
                    stats.freq,
                    json.dumps(list(stats.positions)),
                    json.dumps([list(pair) for pair in stats.offsets]),
                )
                for term, stats in build_term_vector(text_field.value).items()
            ],
        )
