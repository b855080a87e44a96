"""JSON annotation codec.

Stores an :class:`~gigaindex.models.annotation.Annotation` as compact UTF-8
JSON produced by pydantic.  Absent optional layers are dropped on encode and
restored as ``None`` on decode, so a decoded annotation compares equal to
the original.
"""

from __future__ import annotations

import structlog
from pydantic import ValidationError

from gigaindex.interfaces.annotation_engine import IAnnotationCodec
from gigaindex.models.annotation import Annotation
from gigaindex.utils.errors import AnnotationError

logger = structlog.get_logger(logger_name=__name__)


class JsonAnnotationCodec(IAnnotationCodec):
    """Encodes annotations as JSON bytes."""

    def encode(self, annotation: Annotation) -> bytes:
        return annotation.model_dump_json(exclude_none=True).encode("utf-8")

    def decode(self, blob: bytes | str) -> Annotation:
        try:
            return Annotation.model_validate_json(blob)
        except ValidationError as exc:
            logger.warning("annotation_decode_failed", errors=exc.error_count())
            raise AnnotationError(
                message=f"Stored annotation is not valid: {exc}",
                provider_name="json_codec",
            ) from exc
