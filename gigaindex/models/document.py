"""The in-memory corpus document and its conversion to and from index records.

A :class:`Document` is produced by a corpus parser, optionally enriched by an
annotation engine, and finally turned into an
:class:`~gigaindex.models.index.IndexRecord` for the index store.  Attribute
values are a closed tagged variant -- :class:`StringValue` or
:class:`AnnotationValue` -- so the field-name dispatch in
:meth:`Document.to_index_record` is explicit instead of relying on runtime
type checks.

The annotation engine and codec are passed in by the caller; this module
holds no process-wide engine or serializer instances.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Literal, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field, model_validator

from gigaindex.models.annotation import Annotation
from gigaindex.models.index import FieldKind, IndexField, IndexRecord
from gigaindex.utils.errors import AnnotationError

if TYPE_CHECKING:
    from gigaindex.interfaces.annotation_engine import IAnnotationCodec, IAnnotationEngine

logger = structlog.get_logger(logger_name=__name__)

# Reserved field / attribute names.
CORPUS_FIELD = "corpus"
TEXT_FIELD = "text"
NLP_FIELD = "nlp"
# Record field names are matched case-insensitively, so attributes may not
# use any casing of these.
RESERVED_FIELDS = frozenset({CORPUS_FIELD, TEXT_FIELD, NLP_FIELD})


class StringValue(BaseModel):
    """A plain string attribute (e.g. a Gigaword ``id`` or ``type``)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["string"] = "string"
    value: str


class AnnotationValue(BaseModel):
    """The structured annotation attribute, only ever stored under ``"nlp"``."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["annotation"] = "annotation"
    value: Annotation


AttributeValue = Annotated[Union[StringValue, AnnotationValue], Field(discriminator="kind")]


class Document(BaseModel):
    """One parsed unit of corpus text plus its metadata attributes.

    ``text`` and ``corpus`` cannot be reassigned once the document exists;
    ``attributes`` is mutated only by enrichment (:meth:`annotate`).
    """

    model_config = ConfigDict(validate_assignment=True)

    text: str = Field(frozen=True)
    corpus: str = Field(default="", frozen=True)
    attributes: dict[str, AttributeValue] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_annotation_slot(self) -> Document:
        for name, attribute in self.attributes.items():
            if isinstance(attribute, AnnotationValue):
                if name != NLP_FIELD:
                    raise ValueError(
                        f"Annotation attribute must be keyed '{NLP_FIELD}', got '{name}'"
                    )
            else:
                _check_string_name(name)
        return self

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_strings(cls, text: str, corpus: str = "", **attributes: str) -> Document:
        """Build a document whose attributes are all plain strings."""
        return cls(
            text=text,
            corpus=corpus,
            attributes={name: StringValue(value=value) for name, value in attributes.items()},
        )

    # ------------------------------------------------------------------
    # Attribute access
    # ------------------------------------------------------------------

    def get_string(self, name: str, default: str | None = None) -> str | None:
        """Return the string attribute *name*, or *default* if absent."""
        attribute = self.attributes.get(name)
        if isinstance(attribute, StringValue):
            return attribute.value
        return default

    def set_string(self, name: str, value: str) -> None:
        _check_string_name(name)
        self.attributes[name] = StringValue(value=value)

    @property
    def annotation(self) -> Annotation | None:
        attribute = self.attributes.get(NLP_FIELD)
        if isinstance(attribute, AnnotationValue):
            return attribute.value
        return None

    # ------------------------------------------------------------------
    # Enrichment
    # ------------------------------------------------------------------

    def annotate(self, engine: IAnnotationEngine) -> Annotation:
        """Run *engine* over the text and store the result under ``"nlp"``.

        Any previous annotation is overwritten; calling this twice redoes
        the work.  Engine failures surface as :class:`AnnotationError`.
        """
        try:
            annotation = engine.annotate(self.text)
        except AnnotationError:
            raise
        except Exception as exc:
            doc_id = self.get_string("id", "")
            raise AnnotationError(
                message=f"Annotation of document '{doc_id}' failed: {exc}",
                provider_name=engine.get_provider_name(),
            ) from exc
        self.attributes[NLP_FIELD] = AnnotationValue(value=annotation)
        return annotation

    # ------------------------------------------------------------------
    # Index record conversion
    # ------------------------------------------------------------------

    def to_index_record(
        self,
        codec: IAnnotationCodec | None = None,
        store_postings: bool = False,
        store_term_vector: bool = False,
    ) -> IndexRecord:
        """Convert to an index record.

        Parameters
        ----------
        codec:
            Serializes the ``"nlp"`` annotation.  Required only when the
            document carries one.
        store_postings:
            Keep token positions for the ``text`` field (phrase search).
        store_term_vector:
            Keep a per-record term vector for the ``text`` field.
        """
        fields: list[IndexField] = [
            IndexField(name=CORPUS_FIELD, kind=FieldKind.EXACT, value=self.corpus)
        ]

        for name, attribute in self.attributes.items():
            if isinstance(attribute, StringValue):
                fields.append(IndexField(name=name, kind=FieldKind.STORED, value=attribute.value))
            else:
                if codec is None:
                    raise AnnotationError(
                        message="Document carries an annotation but no codec was supplied"
                    )
                fields.append(
                    IndexField(name=name, kind=FieldKind.STORED, value=codec.encode(attribute.value))
                )

        fields.append(
            IndexField(
                name=TEXT_FIELD,
                kind=FieldKind.TEXT,
                value=self.text,
                store_positions=store_postings,
                store_term_vector=store_term_vector,
            )
        )
        return IndexRecord(fields=tuple(fields))

    @classmethod
    def from_index_record(
        cls,
        record: IndexRecord,
        codec: IAnnotationCodec | None = None,
    ) -> Document:
        """Rebuild a document from a stored index record.

        ``corpus`` and ``text`` are special-cased, ``nlp`` is decoded through
        *codec*, and every other field becomes a string attribute.  When the
        record has no ``text`` field but carries an annotation, the text is
        reconstructed from the annotation's sentences (lossy).
        """
        text: str | None = None
        corpus = ""
        attributes: dict[str, StringValue | AnnotationValue] = {}

        for field in record.fields:
            tag = field.name.lower()
            if tag == CORPUS_FIELD:
                corpus = _as_str(field.value)
            elif tag == TEXT_FIELD:
                text = _as_str(field.value)
            elif tag == NLP_FIELD:
                if codec is None:
                    raise AnnotationError(
                        message="Record carries an annotation but no codec was supplied"
                    )
                attributes[NLP_FIELD] = AnnotationValue(value=codec.decode(field.value))
            else:
                attributes[field.name] = StringValue(value=_as_str(field.value))

        if not text and NLP_FIELD in attributes:
            annotation = attributes[NLP_FIELD].value
            text = annotation.reconstruct_text()
            logger.debug("document_text_reconstructed", sentences=len(annotation.sentences))

        return cls(text=text or "", corpus=corpus, attributes=attributes)

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        parts = [f"corpus:\n======\n{self.corpus}\n"]
        if self.text:
            parts.append(f"text:\n======\n{self.text}\n")
        for name, attribute in self.attributes.items():
            if isinstance(attribute, StringValue):
                parts.append(f"{name}:\n======\n{attribute.value}\n")
            else:
                parts.append(f"{name}:\n======\n{attribute.value.render()}\n")
        return "\n".join(parts)


def _as_str(value: str | bytes) -> str:
    return value.decode("utf-8") if isinstance(value, bytes) else value


def _check_string_name(name: str) -> None:
    if name.lower() in RESERVED_FIELDS:
        raise ValueError(f"Attribute name '{name}' is reserved for the '{name.lower()}' field")
