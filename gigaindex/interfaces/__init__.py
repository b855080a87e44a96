"""Public interface definitions for the pipeline's collaborators.

Every swappable collaborator of the indexing pipeline is reached through
the abstract base classes defined here.  Concrete adapters implement these
interfaces and are passed into pipeline components at construction, so
unit tests can inject fakes and no component depends on a process-wide
singleton.

CONCRETE IMPLEMENTATION MAP:
    Interface            ->  Concrete implementations
    -------------------------------------------------------------------
    ICorpusParser        ->  GigawordTextParser, IndexSearchParser
                             (gigaindex/parsers/)
    IAnnotationEngine    ->  NLTKAnnotationEngine
                             (gigaindex/providers/annotation/)
    IAnnotationCodec     ->  JsonAnnotationCodec
                             (gigaindex/providers/annotation/)
    IIndexStore          ->  SQLiteIndexStore
    IIndexWriter         ->  SQLiteIndexWriter
                             (gigaindex/providers/index_store/)
"""

from gigaindex.interfaces.annotation_engine import IAnnotationCodec, IAnnotationEngine
from gigaindex.interfaces.corpus_parser import ICorpusParser
from gigaindex.interfaces.index_store import IIndexStore, IIndexWriter

__all__ = [
    "IAnnotationCodec",
    "IAnnotationEngine",
    "ICorpusParser",
    "IIndexStore",
    "IIndexWriter",
]
