"""gigaindex domain models -- re-exports all public model classes.

    - annotation.py -- structured language annotation (sentences, coreference)
    - document.py   -- the corpus document and its tagged attribute values
    - index.py      -- index records, open modes, search hits, run results
"""

from __future__ import annotations

from gigaindex.models.annotation import Annotation, CorefChain, CorefMention, Sentence
from gigaindex.models.document import (
    CORPUS_FIELD,
    NLP_FIELD,
    TEXT_FIELD,
    AnnotationValue,
    AttributeValue,
    Document,
    StringValue,
)
from gigaindex.models.index import (
    ExportResult,
    FieldKind,
    IndexField,
    IndexingResult,
    IndexRecord,
    IndexStats,
    OpenMode,
    SearchHit,
    TermStats,
)

__all__ = [
    "CORPUS_FIELD",
    "NLP_FIELD",
    "TEXT_FIELD",
    "Annotation",
    "AnnotationValue",
    "AttributeValue",
    "CorefChain",
    "CorefMention",
    "Document",
    "ExportResult",
    "FieldKind",
    "IndexField",
    "IndexRecord",
    "IndexStats",
    "IndexingResult",
    "OpenMode",
    "SearchHit",
    "Sentence",
    "StringValue",
    "TermStats",
]
