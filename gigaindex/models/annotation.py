"""Structured language annotation attached to a document under ``"nlp"``.

An :class:`Annotation` is what an annotation engine returns for a document's
text: sentences of tokens with character offsets and optional per-token
layers (part-of-speech tags, lemmas, named-entity labels), plus coreference
chains linking mentions across sentences.

All models are frozen, so an annotation decoded from the index compares
equal to the one that was encoded.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CorefMention(BaseModel):
    """One mention in a coreference chain, addressed by token indices."""

    model_config = ConfigDict(frozen=True)

    sentence_index: int = Field(ge=0)
    head_index: int = Field(ge=0)
    # Half-open token range [start_index, end_index) within the sentence.
    start_index: int = Field(ge=0)
    end_index: int = Field(ge=0)


class CorefChain(BaseModel):
    """Mentions that refer to the same entity."""

    model_config = ConfigDict(frozen=True)

    mentions: tuple[CorefMention, ...] = ()


class Sentence(BaseModel):
    """A tokenized sentence with optional token-level annotation layers.

    ``words``, ``start_offsets`` and ``end_offsets`` are parallel.  Each
    optional layer, when present, has exactly one entry per word.
    """

    model_config = ConfigDict(frozen=True)

    words: tuple[str, ...]
    start_offsets: tuple[int, ...]
    end_offsets: tuple[int, ...]
    tags: tuple[str, ...] | None = None
    lemmas: tuple[str, ...] | None = None
    entities: tuple[str, ...] | None = None

    @model_validator(mode="after")
    def _check_parallel_layers(self) -> Sentence:
        size = len(self.words)
        layers = {
            "start_offsets": self.start_offsets,
            "end_offsets": self.end_offsets,
            "tags": self.tags,
            "lemmas": self.lemmas,
            "entities": self.entities,
        }
        for name, layer in layers.items():
            if layer is not None and len(layer) != size:
                raise ValueError(
                    f"Sentence layer '{name}' has {len(layer)} entries for {size} words"
                )
        return self

    def __len__(self) -> int:
        return len(self.words)


class Annotation(BaseModel):
    """Full annotation of one document's text."""

    model_config = ConfigDict(frozen=True)

    text: str | None = Field(
        default=None,
        description="The annotated text, kept when the engine was asked to.",
    )
    sentences: tuple[Sentence, ...] = ()
    coreference_chains: tuple[CorefChain, ...] = ()

    def reconstruct_text(self) -> str:
        """Rebuild approximate text: each sentence's words joined by spaces, one sentence per line.

        Lossy: the original whitespace and punctuation attachment are not kept.
        """
        return "".join(" ".join(sentence.words) + "\n" for sentence in self.sentences)

    def render(self) -> str:
        """Human-readable dump, one sentence per line as ``word/TAG`` pairs."""
        lines: list[str] = []
        for index, sentence in enumerate(self.sentences):
            if sentence.tags is not None:
                tokens = [f"{word}/{tag}" for word, tag in zip(sentence.words, sentence.tags)]
            else:
                tokens = list(sentence.words)
            lines.append(f"Sentence #{index}: " + " ".join(tokens))
            if sentence.entities is not None:
                named = [
                    f"{word}={label}"
                    for word, label in zip(sentence.words, sentence.entities)
                    if label != "O"
                ]
                if named:
                    lines.append("  entities: " + " ".join(named))
        for index, chain in enumerate(self.coreference_chains):
            mentions = ", ".join(
                f"s{m.sentence_index}[{m.start_index}:{m.end_index}]" for m in chain.mentions
            )
            lines.append(f"Coref chain #{index}: {mentions}")
        return "\n".join(lines)
