"""Pipeline drivers: corpus indexing and plain-text export."""

from gigaindex.services.indexing_service import IndexingService
from gigaindex.services.text_exporter import TextExporter

__all__ = [
    "IndexingService",
    "TextExporter",
]
