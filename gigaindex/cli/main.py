"""Command-line interface for building and inspecting gigaindex indexes.

Usage::

    gigaindex index --corpus gigaword --corpus-dir /data/gigaword/data \\
        --index-dir /data/indexes/gigaword -s -p

    gigaindex reindex-query --index-dir /data/indexes/gigaword \\
        --out-dir /data/indexes/chase --query "chase"

    gigaindex export --corpus-dir /data/gigaword/data --out giga-story.txt

    gigaindex stats --index-dir /data/indexes/gigaword

Every option that maps to an :class:`~gigaindex.config.settings.IndexerConfig`
field overrides the YAML file and ``GIGAINDEX_*`` environment variables.
The NLTK engine is imported only when a command actually annotates.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from gigaindex.config.loader import DEFAULT_CONFIG_PATH, load_config
from gigaindex.parsers.gigaword_parser import GIGAWORD_CORPUS_NAME, GigawordTextParser
from gigaindex.parsers.index_search_parser import IndexSearchParser
from gigaindex.pipeline.progress_tracker import ProgressTracker
from gigaindex.providers.annotation.json_codec import JsonAnnotationCodec
from gigaindex.providers.index_store.sqlite_index_store import SQLiteIndexStore
from gigaindex.services.indexing_service import IndexingService
from gigaindex.services.text_exporter import DEFAULT_DOC_TYPE, TextExporter
from gigaindex.utils.errors import ConfigurationError, GigaIndexError
from gigaindex.utils.logging import configure_logging

if TYPE_CHECKING:
    from gigaindex.config.settings import IndexerConfig
    from gigaindex.interfaces.annotation_engine import IAnnotationEngine
    from gigaindex.interfaces.corpus_parser import ICorpusParser

logger = structlog.get_logger(logger_name=__name__)

SUPPORTED_CORPORA = ("gigaword",)

# argparse dest -> IndexerConfig field
_CONFIG_FLAGS = {
    "corpus": "corpus",
    "corpus_dir": "corpus_dir",
    "index_dir": "index_dir",
    "label": "corpus_label",
    "nlp": "run_nlp",
    "postings": "store_postings",
    "term_vector": "store_term_vector",
    "append": "append",
    "buffer_mb": "buffer_size_mb",
    "progress_every": "progress_interval",
    "log_level": "log_level",
}


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def _build_corpus_parser(config: IndexerConfig) -> ICorpusParser:
    """Return the parser for ``config.corpus``, matched case-insensitively."""
    corpus = config.corpus.strip().lower()
    if corpus == "gigaword":
        return GigawordTextParser(
            corpus_dir=config.corpus_dir,
            corpus_name=config.corpus_label or GIGAWORD_CORPUS_NAME,
            file_pattern=config.file_pattern,
            encoding=config.encoding,
        )
    raise ConfigurationError(
        message=f"Unrecognized corpus '{config.corpus}'; try one of {list(SUPPORTED_CORPORA)}"
    )


def _build_annotation_engine() -> IAnnotationEngine:
    """Construct the NLTK engine and check its data packages are installed."""
    try:
        from gigaindex.providers.annotation.nltk_engine import NLTKAnnotationEngine
    except ImportError as exc:
        raise ConfigurationError(
            message="Annotation needs NLTK; install it with: pip install 'gigaindex[nlp]'",
            provider_name="nltk",
        ) from exc

    engine = NLTKAnnotationEngine()
    if not engine.is_available():
        raise ConfigurationError(
            message=(
                "NLTK data packages are missing; run: python -m nltk.downloader punkt_tab "
                "averaged_perceptron_tagger_eng wordnet maxent_ne_chunker_tab words"
            ),
            provider_name="nltk",
        )
    return engine


def _require(value: str, flag: str) -> str:
    if not value:
        raise ConfigurationError(message=f"Missing required setting {flag}")
    return value


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


def _handle_index(args: argparse.Namespace, config: IndexerConfig) -> int:
    """Index a raw corpus."""
    _require(config.corpus_dir, "--corpus-dir")
    _require(config.index_dir, "--index-dir")

    engine = _build_annotation_engine() if config.run_nlp else None
    store = SQLiteIndexStore(config.index_dir, analyzer=config.analyzer)
    corpus_parser = _build_corpus_parser(config)
    service = IndexingService(
        parser=corpus_parser,
        store=store,
        annotation_engine=engine,
        codec=JsonAnnotationCodec(),
        progress_tracker=ProgressTracker(interval=config.progress_interval),
    )

    print(f"Indexing {corpus_parser.corpus_name} into {store.location}")
    with corpus_parser:
        result = service.run(config)

    print("\nIndexing complete:")
    print(f"  Documents:      {result.documents_indexed}")
    print(f"  Analyzer:       {config.analyzer}")
    print(f"  NLP:            {'yes' if result.run_nlp else 'no'}")
    print(f"  Postings:       {'yes' if result.store_postings else 'no'}")
    print(f"  Term vectors:   {'yes' if result.store_term_vector else 'no'}")
    print(f"  Time:           {result.elapsed_seconds:.2f}s")
    return 0


def _handle_reindex_query(args: argparse.Namespace, config: IndexerConfig) -> int:
    """Annotate the documents matching a query into a new index."""
    source_dir = _require(config.index_dir, "--index-dir")
    if Path(source_dir).resolve() == Path(args.out_dir).resolve():
        raise ConfigurationError(message="--out-dir must differ from --index-dir")

    source = SQLiteIndexStore(source_dir)
    hits = source.search(args.query, limit=args.limit)
    print(f"Query '{args.query}' matched {len(hits)} documents")

    codec = JsonAnnotationCodec()
    engine = _build_annotation_engine()
    search_parser = IndexSearchParser(
        store=source,
        hits=hits,
        codec=codec,
        corpus_name=config.corpus_label or f"Annotated Gigaword Corpus ({args.query})",
    )
    service = IndexingService(
        parser=search_parser,
        store=SQLiteIndexStore(args.out_dir, analyzer=config.analyzer),
        annotation_engine=engine,
        codec=codec,
        progress_tracker=ProgressTracker(interval=config.progress_interval),
    )
    with search_parser:
        result = service.index(
            append=False,
            buffer_size_mb=config.buffer_size_mb,
            run_nlp=True,
            store_postings=True,
            store_term_vector=True,
        )

    print("\nQuery index complete:")
    print(f"  Documents:      {result.documents_indexed}")
    print(f"  Index:          {result.index_path}")
    print(f"  Time:           {result.elapsed_seconds:.2f}s")
    return 0


def _handle_export(args: argparse.Namespace, config: IndexerConfig) -> int:
    """Write the text of one document type to a flat file."""
    _require(config.corpus_dir, "--corpus-dir")
    corpus_parser = _build_corpus_parser(config)
    exporter = TextExporter(
        parser=corpus_parser,
        progress_tracker=ProgressTracker(interval=config.progress_interval),
    )
    with corpus_parser:
        result = exporter.export(args.out, doc_type=args.type)

    print("Export complete:")
    print(f"  Documents read:    {result.documents_seen}")
    print(f"  Documents written: {result.documents_written}")
    print(f"  Output:            {result.out_path}")
    return 0


def _handle_stats(args: argparse.Namespace, config: IndexerConfig) -> int:
    """Display index statistics."""
    store = SQLiteIndexStore(_require(config.index_dir, "--index-dir"))
    stats = store.get_stats()

    print("Index Statistics")
    print("=" * 40)
    print(f"  Location:           {store.location}")
    print(f"  Analyzer:           {stats.analyzer}")
    print(f"  Total records:      {stats.total_records}")
    print(f"  With postings:      {stats.records_with_postings}")
    print(f"  With term vectors:  {stats.records_with_term_vectors}")

    if stats.records_by_corpus:
        print("\n  Records by corpus:")
        for corpus, count in sorted(stats.records_by_corpus.items()):
            print(f"    {corpus:<40} {count}")
    return 0


_HANDLERS = {
    "index": _handle_index,
    "reindex-query": _handle_reindex_query,
    "export": _handle_export,
    "stats": _handle_stats,
}


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the gigaindex CLI."""
    parser = argparse.ArgumentParser(
        prog="gigaindex",
        description="Stream Gigaword-style corpora into a full-text index.",
    )
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"YAML configuration file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument("--log-level", dest="log_level", help="DEBUG, INFO, WARNING or ERROR")
    parser.add_argument(
        "--json-logs", action="store_true", dest="json_logs", help="Emit logs as JSON lines"
    )
    parser.add_argument(
        "--progress-every",
        type=int,
        dest="progress_every",
        help="Report progress every N documents",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # -- index --
    index_parser = subparsers.add_parser("index", help="Index a raw corpus")
    index_parser.add_argument("--corpus", help="Corpus kind (gigaword)")
    index_parser.add_argument("--corpus-dir", dest="corpus_dir", help="Corpus root directory")
    index_parser.add_argument("--index-dir", dest="index_dir", help="Index output directory")
    index_parser.add_argument("--label", help="Corpus label stored on every record")
    index_parser.add_argument(
        "-n", "--nlp", action="store_true", default=None, help="Annotate each document"
    )
    index_parser.add_argument(
        "-s", "--stem", action="store_true", help="Use the stemming (english) analyzer"
    )
    index_parser.add_argument(
        "-p", "--postings", action="store_true", default=None, help="Store token positions"
    )
    index_parser.add_argument(
        "-t",
        "--term-vector",
        action="store_true",
        default=None,
        dest="term_vector",
        help="Store per-document term vectors",
    )
    index_parser.add_argument(
        "--append", action="store_true", default=None, help="Add to an existing index"
    )
    index_parser.add_argument(
        "--buffer-mb", type=float, dest="buffer_mb", help="Write buffer size in MiB"
    )

    # -- reindex-query --
    query_parser = subparsers.add_parser(
        "reindex-query", help="Annotate the hits of a query into a new index"
    )
    query_parser.add_argument("--index-dir", dest="index_dir", help="Existing index to search")
    query_parser.add_argument("--out-dir", dest="out_dir", required=True, help="New index directory")
    query_parser.add_argument("--query", required=True, help="FTS5 query string")
    query_parser.add_argument(
        "--limit", type=int, default=1000, help="Maximum number of hits (default: 1000)"
    )
    query_parser.add_argument("--label", help="Corpus label for the new index")
    query_parser.add_argument(
        "-s", "--stem", action="store_true", help="Use the stemming (english) analyzer"
    )

    # -- export --
    export_parser = subparsers.add_parser("export", help="Export document text to a flat file")
    export_parser.add_argument("--corpus", help="Corpus kind (gigaword)")
    export_parser.add_argument("--corpus-dir", dest="corpus_dir", help="Corpus root directory")
    export_parser.add_argument("--out", required=True, help="Output text file (replaced)")
    export_parser.add_argument(
        "--type",
        default=DEFAULT_DOC_TYPE,
        help=f"Document type to export (default: {DEFAULT_DOC_TYPE})",
    )

    # -- stats --
    stats_parser = subparsers.add_parser("stats", help="Show index statistics")
    stats_parser.add_argument("--index-dir", dest="index_dir", help="Index directory")

    return parser


def _config_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides = {
        field: getattr(args, dest, None) for dest, field in _CONFIG_FLAGS.items()
    }
    if getattr(args, "stem", False):
        overrides["analyzer"] = "english"
    return overrides


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """CLI entry point; returns the process exit code.

    Configuration is layered YAML -> environment -> command-line flags.
    Any :class:`GigaIndexError` is reported on stderr with exit code 1.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    try:
        config = load_config(args.config).with_overrides(**_config_overrides(args))
        configure_logging(config.log_level, json_output=args.json_logs)
        logger.debug("config_loaded", path=args.config, command=args.command)
        return _HANDLERS[args.command](args, config)
    except GigaIndexError as exc:
        logger.error("command_failed", command=args.command, error=str(exc))
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
