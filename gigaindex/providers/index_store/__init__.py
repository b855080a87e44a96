"""Index store adapters."""

from gigaindex.providers.index_store.sqlite_index_store import (
    ANALYZERS,
    SQLiteIndexStore,
    SQLiteIndexWriter,
)

__all__ = ["ANALYZERS", "SQLiteIndexStore", "SQLiteIndexWriter"]
