"""Annotation engine and codec adapters.

The NLTK engine is imported from its own module so the optional ``nltk``
dependency is only loaded when annotation is actually requested.
"""

from gigaindex.providers.annotation.json_codec import JsonAnnotationCodec

__all__ = ["JsonAnnotationCodec"]
