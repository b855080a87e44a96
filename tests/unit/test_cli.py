"""Unit tests for the gigaindex command-line interface."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

from gigaindex.cli import main as cli_main
from gigaindex.models.document import NLP_FIELD
from gigaindex.providers.index_store.sqlite_index_store import SQLiteIndexStore
from gigaindex.utils.errors import ConfigurationError
from tests.conftest import FakeAnnotationEngine


@pytest.fixture(autouse=True)
def _cli_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Isolate the CLI from the caller's environment and keep logging as configured."""
    for name in list(os.environ):
        if name.startswith("GIGAINDEX_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli_main, "configure_logging", lambda *args, **kwargs: None)


@pytest.fixture
def fake_engine(monkeypatch: pytest.MonkeyPatch) -> FakeAnnotationEngine:
    engine = FakeAnnotationEngine()
    monkeypatch.setattr(cli_main, "_build_annotation_engine", lambda: engine)
    return engine


def _index(corpus_dir: Path, index_dir: Path, *flags: str) -> int:
    return cli_main.main(
        [
            "index",
            "--corpus",
            "gigaword",
            "--corpus-dir",
            str(corpus_dir),
            "--index-dir",
            str(index_dir),
            *flags,
        ]
    )


# ======================================================================
# Argument parsing
# ======================================================================


class TestParser:
    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert cli_main.main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()

    def test_index_short_flags(self) -> None:
        args = cli_main._build_parser().parse_args(
            ["index", "--corpus", "gigaword", "-n", "-s", "-p", "-t"]
        )
        overrides = cli_main._config_overrides(args)

        assert overrides["run_nlp"] is True
        assert overrides["store_postings"] is True
        assert overrides["store_term_vector"] is True
        assert overrides["analyzer"] == "english"

    def test_unset_flags_do_not_override(self) -> None:
        args = cli_main._build_parser().parse_args(["index"])
        overrides = cli_main._config_overrides(args)

        assert overrides["run_nlp"] is None
        assert overrides["append"] is None
        assert "analyzer" not in overrides


# ======================================================================
# index
# ======================================================================


class TestIndexCommand:
    def test_indexes_corpus(self, corpus_dir: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        index_dir = tmp_path / "index"

        assert _index(corpus_dir, index_dir, "-p") == 0

        store = SQLiteIndexStore(index_dir)
        assert store.count() == 2
        assert store.get_stats().records_with_postings == 2
        assert "Documents:      2" in capsys.readouterr().out

    def test_stem_flag_selects_english_analyzer(self, corpus_dir: Path, tmp_path: Path) -> None:
        index_dir = tmp_path / "index"
        assert _index(corpus_dir, index_dir, "-s") == 0
        assert SQLiteIndexStore(index_dir).get_stats().analyzer == "english"

    def test_label_and_append(self, corpus_dir: Path, tmp_path: Path) -> None:
        index_dir = tmp_path / "index"
        _index(corpus_dir, index_dir)
        assert _index(corpus_dir, index_dir, "--append", "--label", "Second Pass") == 0

        store = SQLiteIndexStore(index_dir)
        assert store.count() == 4
        assert store.count("Second Pass") == 2

    def test_nlp_flag_annotates(self, corpus_dir: Path, tmp_path: Path, fake_engine: FakeAnnotationEngine) -> None:
        index_dir = tmp_path / "index"
        assert _index(corpus_dir, index_dir, "-n") == 0

        assert len(fake_engine.calls) == 2
        assert NLP_FIELD in SQLiteIndexStore(index_dir).get_record(1).names()

    def test_unknown_corpus_fails(self, corpus_dir: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        exit_code = cli_main.main(
            ["index", "--corpus", "wikipedia", "--corpus-dir", str(corpus_dir), "--index-dir", str(tmp_path / "i")]
        )

        assert exit_code == 1
        assert "Unrecognized corpus" in capsys.readouterr().err

    def test_corpus_name_is_case_insensitive(self, corpus_dir: Path, tmp_path: Path) -> None:
        assert cli_main.main(
            ["index", "--corpus", "GigaWord", "--corpus-dir", str(corpus_dir), "--index-dir", str(tmp_path / "i")]
        ) == 0

    def test_missing_index_dir_fails(self, corpus_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert cli_main.main(["index", "--corpus-dir", str(corpus_dir)]) == 1
        assert "--index-dir" in capsys.readouterr().err

    def test_missing_corpus_dir_fails(self, tmp_path: Path) -> None:
        exit_code = cli_main.main(
            ["index", "--corpus-dir", str(tmp_path / "nope"), "--index-dir", str(tmp_path / "i")]
        )
        assert exit_code == 1

    def test_environment_supplies_directories(
        self, corpus_dir: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("GIGAINDEX_CORPUS_DIR", str(corpus_dir))
        monkeypatch.setenv("GIGAINDEX_INDEX_DIR", str(tmp_path / "env-index"))

        assert cli_main.main(["index"]) == 0
        assert SQLiteIndexStore(tmp_path / "env-index").count() == 2

    def test_invalid_buffer_size_fails(self, corpus_dir: Path, tmp_path: Path) -> None:
        assert _index(corpus_dir, tmp_path / "index", "--buffer-mb", "-1") == 1


# ======================================================================
# reindex-query
# ======================================================================


class TestReindexQueryCommand:
    def test_annotates_query_hits_into_new_index(
        self, corpus_dir: Path, tmp_path: Path, fake_engine: FakeAnnotationEngine
    ) -> None:
        source_dir = tmp_path / "source"
        out_dir = tmp_path / "query"
        _index(corpus_dir, source_dir)

        exit_code = cli_main.main(
            ["reindex-query", "--index-dir", str(source_dir), "--out-dir", str(out_dir), "--query", "hello"]
        )

        assert exit_code == 0
        target = SQLiteIndexStore(out_dir)
        assert target.count() == 1
        assert target.count("Annotated Gigaword Corpus (hello)") == 1
        stats = target.get_stats()
        assert stats.records_with_postings == 1
        assert stats.records_with_term_vectors == 1
        record = target.get_record(1)
        assert NLP_FIELD in record.names()
        assert record.get("id").value == "AFP_ENG_20050101.0001"
        assert fake_engine.calls == ["\thello world"]

    def test_same_directory_is_refused(self, corpus_dir: Path, tmp_path: Path, fake_engine: FakeAnnotationEngine) -> None:
        source_dir = tmp_path / "source"
        _index(corpus_dir, source_dir)

        exit_code = cli_main.main(
            ["reindex-query", "--index-dir", str(source_dir), "--out-dir", str(source_dir), "--query", "hello"]
        )

        assert exit_code == 1
        assert SQLiteIndexStore(source_dir).count() == 2

    def test_missing_source_index_fails(self, tmp_path: Path, fake_engine: FakeAnnotationEngine) -> None:
        exit_code = cli_main.main(
            ["reindex-query", "--index-dir", str(tmp_path / "none"), "--out-dir", str(tmp_path / "o"), "--query", "x"]
        )
        assert exit_code == 1


# ======================================================================
# export and stats
# ======================================================================


class TestExportCommand:
    def test_exports_story_text(self, corpus_dir: Path, tmp_path: Path) -> None:
        out = tmp_path / "giga-story.txt"

        exit_code = cli_main.main(["export", "--corpus-dir", str(corpus_dir), "--out", str(out)])

        assert exit_code == 0
        assert out.read_text(encoding="utf-8") == "\thello world\n"

    def test_type_option(self, corpus_dir: Path, tmp_path: Path) -> None:
        out = tmp_path / "other.txt"
        cli_main.main(["export", "--corpus-dir", str(corpus_dir), "--out", str(out), "--type", "other"])
        assert out.read_text(encoding="utf-8") == "\tScores & results\n"


class TestStatsCommand:
    def test_prints_statistics(self, corpus_dir: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        index_dir = tmp_path / "index"
        _index(corpus_dir, index_dir, "-t")
        capsys.readouterr()

        assert cli_main.main(["stats", "--index-dir", str(index_dir)]) == 0

        out = capsys.readouterr().out
        assert "Total records:      2" in out
        assert "With term vectors:  2" in out
        assert "English Gigaword Corpus" in out

    def test_missing_index_fails(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert cli_main.main(["stats", "--index-dir", str(tmp_path / "none")]) == 1
        assert "No index found" in capsys.readouterr().err


# ======================================================================
# Factories
# ======================================================================


class TestFactories:
    def test_annotation_engine_without_nltk(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setitem(sys.modules, "gigaindex.providers.annotation.nltk_engine", None)
        with pytest.raises(ConfigurationError, match="nlp"):
            cli_main._build_annotation_engine()
