"""Shared pytest fixtures for the gigaindex test suite."""

from __future__ import annotations

import gzip
from pathlib import Path

import pytest

from gigaindex.interfaces.annotation_engine import IAnnotationEngine
from gigaindex.models.annotation import Annotation, Sentence
from gigaindex.providers.annotation.json_codec import JsonAnnotationCodec
from gigaindex.providers.index_store.sqlite_index_store import SQLiteIndexStore
from gigaindex.utils.errors import AnnotationError
from gigaindex.utils.logging import configure_logging

# ---------------------------------------------------------------------------
# Sample corpus data
# ---------------------------------------------------------------------------

TWO_DOC_ARCHIVE = """\
<DOC id="AFP_ENG_20050101.0001" type="story" >
<HEADLINE>
Quake hits coast
</HEADLINE>
<TEXT>
<P>
hello
world
</P>
</TEXT>
</DOC>
<DOC id="AFP_ENG_20050101.0002" type="other" >
<TEXT>
<P>
Scores &amp; results
</P>
</TEXT>
</DOC>
"""


def write_archive(path: Path, content: str) -> Path:
    """Write *content* as a gzip-compressed UTF-8 archive at *path*."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with gzip.open(path, "wt", encoding="utf-8") as handle:
        handle.write(content)
    return path


def make_doc(doc_id: str, doc_type: str | None = "story", paragraphs: list[list[str]] | None = None) -> str:
    """Render one well-formed DOC block."""
    paragraphs = paragraphs if paragraphs is not None else [[f"body of {doc_id}"]]
    type_attr = f' type="{doc_type}"' if doc_type is not None else ""
    lines = [f'<DOC id="{doc_id}"{type_attr} >', "<TEXT>"]
    for paragraph in paragraphs:
        lines.append("<P>")
        lines.extend(paragraph)
        lines.append("</P>")
    lines.extend(["</TEXT>", "</DOC>"])
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FakeAnnotationEngine(IAnnotationEngine):
    """Deterministic engine: one sentence per line, whitespace tokens, upper-cased tags."""

    def __init__(self, fail_on: str | None = None) -> None:
        self.calls: list[str] = []
        self._fail_on = fail_on

    def get_provider_name(self) -> str:
        return "fake"

    def is_available(self) -> bool:
        return True

    def annotate(self, text: str) -> Annotation:
        self.calls.append(text)
        if self._fail_on is not None and self._fail_on in text:
            raise RuntimeError(f"cannot annotate '{self._fail_on}'")
        sentences = []
        offset = 0
        for line in text.split("\n"):
            words, starts, ends = [], [], []
            cursor = 0
            for word in line.split():
                start = line.index(word, cursor)
                cursor = start + len(word)
                words.append(word)
                starts.append(offset + start)
                ends.append(offset + cursor)
            if words:
                sentences.append(
                    Sentence(
                        words=tuple(words),
                        start_offsets=tuple(starts),
                        end_offsets=tuple(ends),
                        tags=tuple(word.upper() for word in words),
                    )
                )
            offset += len(line) + 1
        return Annotation(sentences=tuple(sentences))


class BrokenAnnotationEngine(FakeAnnotationEngine):
    """Engine whose every call fails with an :class:`AnnotationError`."""

    def annotate(self, text: str) -> Annotation:
        raise AnnotationError(message="model not loaded", provider_name="broken")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session", autouse=True)
def _structured_logging() -> None:
    """Configure structlog once so every module logs through one pipeline."""
    configure_logging("DEBUG")


@pytest.fixture
def corpus_dir(tmp_path: Path) -> Path:
    """A corpus directory holding one archive with a story and an ``other`` document."""
    root = tmp_path / "corpus"
    write_archive(root / "afp_eng_200501.gz", TWO_DOC_ARCHIVE)
    return root


@pytest.fixture
def annotation_engine() -> FakeAnnotationEngine:
    return FakeAnnotationEngine()


@pytest.fixture
def codec() -> JsonAnnotationCodec:
    return JsonAnnotationCodec()


@pytest.fixture
def index_store(tmp_path: Path) -> SQLiteIndexStore:
    """An empty store in a temporary directory."""
    return SQLiteIndexStore(tmp_path / "index")


@pytest.fixture
def sample_annotation() -> Annotation:
    return Annotation(
        text="Police chased the suspect.",
        sentences=(
            Sentence(
                words=("Police", "chased", "the", "suspect", "."),
                start_offsets=(0, 7, 14, 18, 25),
                end_offsets=(6, 13, 17, 25, 26),
                tags=("NNS", "VBD", "DT", "NN", "."),
                lemmas=("police", "chase", "the", "suspect", "."),
                entities=("O", "O", "O", "O", "O"),
            ),
        ),
    )
