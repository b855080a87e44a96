"""gigaindex -- streaming ingestion and full-text indexing of Gigaword-style news corpora."""

__version__ = "0.1.0"
