"""Index-side data models: typed record fields, open modes, run results.

An :class:`IndexRecord` is the persisted form of a
:class:`~gigaindex.models.document.Document`.  Its fields are typed by how
the store must treat them:

* ``EXACT``  -- stored and indexed as one exact-match term (``corpus``).
* ``STORED`` -- stored verbatim, never searched (attributes, the ``nlp`` blob).
* ``TEXT``   -- tokenized for search and stored; positional postings and
  per-record term vectors are independent opt-in flags.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class FieldKind(str, Enum):
    """How an index store treats a field."""

    EXACT = "exact"
    STORED = "stored"
    TEXT = "text"


class OpenMode(str, Enum):
    """Index writer open mode."""

    # Destroys whatever is already at the index location.
    CREATE = "create"
    CREATE_OR_APPEND = "create_or_append"


class IndexField(BaseModel):
    """One named, typed field of an index record."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    kind: FieldKind
    value: str | bytes
    store_positions: bool = False
    store_term_vector: bool = False

    @model_validator(mode="after")
    def _check_options(self) -> IndexField:
        if self.kind is not FieldKind.TEXT and (self.store_positions or self.store_term_vector):
            raise ValueError(
                f"Field '{self.name}': positions and term vectors apply to TEXT fields only"
            )
        if self.kind is not FieldKind.STORED and isinstance(self.value, bytes):
            raise ValueError(f"Field '{self.name}': only STORED fields may hold bytes")
        return self


class IndexRecord(BaseModel):
    """An ordered collection of typed fields, persisted as one index entry."""

    model_config = ConfigDict(frozen=True)

    fields: tuple[IndexField, ...] = ()

    def get(self, name: str) -> IndexField | None:
        """Return the first field called *name*, or ``None``."""
        for field in self.fields:
            if field.name == name:
                return field
        return None

    def names(self) -> list[str]:
        return [field.name for field in self.fields]

    def text_field(self) -> IndexField | None:
        """Return the first tokenized field, if any."""
        for field in self.fields:
            if field.kind is FieldKind.TEXT:
                return field
        return None


class SearchHit(BaseModel):
    """A record id returned by a full-text search, with its BM25 score (lower is better).

    Scores compare only between hits from the same FTS5 table.
    """

    model_config = ConfigDict(frozen=True)

    record_id: int
    score: float


class TermStats(BaseModel):
    """Occurrences of one term inside one record's text."""

    model_config = ConfigDict(frozen=True)

    freq: int = Field(ge=1)
    positions: tuple[int, ...] = ()
    # (start, end) character offsets, parallel to positions.
    offsets: tuple[tuple[int, int], ...] = ()


class IndexingResult(BaseModel):
    """Summary of one indexing run."""

    model_config = ConfigDict(frozen=True)

    corpus_name: str
    index_path: str
    documents_indexed: int = Field(default=0, ge=0)
    elapsed_seconds: float = Field(default=0.0, ge=0.0)
    append: bool = False
    run_nlp: bool = False
    store_postings: bool = False
    store_term_vector: bool = False


class ExportResult(BaseModel):
    """Summary of one text export run."""

    model_config = ConfigDict(frozen=True)

    out_path: str
    documents_seen: int = Field(default=0, ge=0)
    documents_written: int = Field(default=0, ge=0)
    elapsed_seconds: float = Field(default=0.0, ge=0.0)


class IndexStats(BaseModel):
    """Aggregate statistics about an index store."""

    model_config = ConfigDict(frozen=True)

    total_records: int = Field(default=0, ge=0)
    records_with_postings: int = Field(default=0, ge=0)
    records_with_term_vectors: int = Field(default=0, ge=0)
    records_by_corpus: dict[str, int] = Field(default_factory=dict)
    analyzer: str = ""
