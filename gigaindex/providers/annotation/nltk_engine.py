"""NLTK annotation engine adapter.

Wraps NLTK's sentence splitter, Treebank tokenizer, averaged-perceptron
POS tagger, WordNet lemmatizer and named-entity chunker to implement
:class:`IAnnotationEngine`.  NLTK has no coreference resolver, so
``coreference_chains`` is always empty.

NLTK models are data packages downloaded separately, e.g.::

    python -m nltk.downloader punkt_tab averaged_perceptron_tagger_eng \\
        wordnet maxent_ne_chunker_tab words

A missing package surfaces as :class:`AnnotationError` on the first
document, and :meth:`NLTKAnnotationEngine.is_available` reports ``False``.
"""

from __future__ import annotations

import re

import structlog
from nltk import ne_chunk, pos_tag
from nltk.stem import WordNetLemmatizer
from nltk.tokenize import TreebankWordTokenizer, sent_tokenize
from nltk.tree import Tree

from gigaindex.interfaces.annotation_engine import IAnnotationEngine
from gigaindex.models.annotation import Annotation, Sentence
from gigaindex.utils.errors import AnnotationError

logger = structlog.get_logger(logger_name=__name__)

# Fallback when Treebank span alignment fails on unusual quoting.
_SIMPLE_TOKEN = re.compile(r"\w+|[^\w\s]")

# First letter of a Penn Treebank tag -> WordNet part of speech.
_WORDNET_POS = {"J": "a", "V": "v", "N": "n", "R": "r"}


class NLTKAnnotationEngine(IAnnotationEngine):
    """Annotation engine backed by NLTK.

    Parameters
    ----------
    tag:
        Add part-of-speech tags.
    lemmatize:
        Add WordNet lemmas (uses the POS tags when present).
    entities:
        Add named-entity labels (``PERSON``, ``GPE``, ... or ``O``); needs tags.
    language:
        Language passed to the sentence splitter.
    """

    def __init__(
        self,
        tag: bool = True,
        lemmatize: bool = True,
        entities: bool = True,
        language: str = "english",
    ) -> None:
        self._tag = tag or entities
        self._lemmatize = lemmatize
        self._entities = entities
        self._language = language
        self._tokenizer = TreebankWordTokenizer()
        self._lemmatizer = WordNetLemmatizer() if lemmatize else None

    def get_provider_name(self) -> str:
        return "nltk"

    def is_available(self) -> bool:
        try:
            self.annotate("The engine is ready.")
        except AnnotationError as exc:
            logger.warning("nltk_unavailable", error=str(exc))
            return False
        return True

    def annotate(self, text: str) -> Annotation:
        try:
            sentences = [
                self._annotate_sentence(text, start, end)
                for start, end in self._sentence_spans(text)
            ]
        except LookupError as exc:
            raise AnnotationError(
                message=f"NLTK data package missing: {exc}",
                provider_name="nltk",
            ) from exc
        return Annotation(sentences=tuple(sentences))

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _sentence_spans(self, text: str) -> list[tuple[int, int]]:
        """Locate each sentence returned by the splitter inside *text*."""
        spans: list[tuple[int, int]] = []
        cursor = 0
        for sentence in sent_tokenize(text, language=self._language):
            start = text.find(sentence, cursor)
            if start < 0:
                start = cursor
            end = start + len(sentence)
            spans.append((start, end))
            cursor = end
        return spans

    def _token_spans(self, sentence: str) -> list[tuple[int, int]]:
        try:
            return list(self._tokenizer.span_tokenize(sentence))
        except ValueError:
            return [match.span() for match in _SIMPLE_TOKEN.finditer(sentence)]

    def _annotate_sentence(self, text: str, start: int, end: int) -> Sentence:
        sentence_text = text[start:end]
        spans = self._token_spans(sentence_text)
        words = [sentence_text[s:e] for s, e in spans]

        tags: list[str] | None = None
        lemmas: list[str] | None = None
        labels: list[str] | None = None

        if self._tag and words:
            tagged = pos_tag(words)
            tags = [tag for _, tag in tagged]
            if self._entities:
                labels = _entity_labels(ne_chunk(tagged))
        if self._lemmatizer is not None:
            lemmas = [
                self._lemmatizer.lemmatize(
                    word.lower(), _WORDNET_POS.get(tag[:1], "n") if tag else "n"
                )
                for word, tag in zip(words, tags or [""] * len(words))
            ]

        return Sentence(
            words=tuple(words),
            start_offsets=tuple(start + s for s, _ in spans),
            end_offsets=tuple(start + e for _, e in spans),
            tags=tuple(tags) if tags is not None else None,
            lemmas=tuple(lemmas) if lemmas is not None else None,
            entities=tuple(labels) if labels is not None else None,
        )


def _entity_labels(tree: Tree) -> list[str]:
    """Flatten an ``ne_chunk`` tree into one label per token."""
    labels: list[str] = []
    for node in tree:
        if isinstance(node, Tree):
            labels.extend(node.label() for _ in node.leaves())
        else:
            labels.append("O")
    return labels
