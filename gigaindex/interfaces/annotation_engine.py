"""Abstract base classes for the annotation engine and its codec.

The engine turns raw document text into a structured
:class:`~gigaindex.models.annotation.Annotation` (sentences, tokens, tags,
lemmas, entities, coreference).  The codec turns that annotation into the
opaque blob stored in the index under the reserved ``"nlp"`` field, and
back.  Both are handed to pipeline components at construction time.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from gigaindex.models.annotation import Annotation


# Concrete implementation: NLTKAnnotationEngine (gigaindex/providers/annotation/)
class IAnnotationEngine(ABC):
    """Contract for language annotation engines."""

    @abstractmethod
    def annotate(self, text: str) -> Annotation:
        """Annotate *text*.

        Raises
        ------
        gigaindex.utils.errors.AnnotationError
            If the engine cannot process the text.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"nltk"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the engine and its models/data are installed."""


# Concrete implementation: JsonAnnotationCodec (gigaindex/providers/annotation/)
class IAnnotationCodec(ABC):
    """Contract for annotation (de)serialization."""

    @abstractmethod
    def encode(self, annotation: Annotation) -> bytes:
        """Serialize *annotation* into a blob for storage."""

    @abstractmethod
    def decode(self, blob: bytes | str) -> Annotation:
        """Rebuild an annotation from a stored blob.

        Raises
        ------
        gigaindex.utils.errors.AnnotationError
            If the blob is not a valid encoded annotation.
        """
