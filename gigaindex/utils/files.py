"""Recursive corpus file enumeration."""

from __future__ import annotations

import re
from pathlib import Path

import structlog

from gigaindex.utils.errors import ResourceError

logger = structlog.get_logger(logger_name=__name__)

# Gigaword ships one gzip archive per newswire month.
DEFAULT_FILE_PATTERN = r".*\.gz$"


def iter_files(root: str | Path, pattern: str | re.Pattern[str] = DEFAULT_FILE_PATTERN) -> list[Path]:
    """Return every regular file under *root* whose name matches *pattern*.

    The walk is recursive and the result is sorted by path so two parsers
    built over the same directory read the archives in the same order.

    Parameters
    ----------
    root:
        Directory to search.
    pattern:
        Regular expression matched (``re.match``) against the file name,
        not the full path.

    Raises
    ------
    ResourceError
        If *root* does not exist or is not a directory.
    """
    root_path = Path(root)
    if not root_path.is_dir():
        raise ResourceError(
            message=f"Corpus root is not a directory: {root_path}",
            provider_name="file_enumerator",
        )

    regex = re.compile(pattern) if isinstance(pattern, str) else pattern
    try:
        files = sorted(
            path
            for path in root_path.rglob("*")
            if path.is_file() and regex.match(path.name)
        )
    except OSError as exc:
        raise ResourceError(
            message=f"Failed to list corpus files under {root_path}: {exc}",
            provider_name="file_enumerator",
        ) from exc

    logger.debug("corpus_files_found", root=str(root_path), count=len(files))
    return files
