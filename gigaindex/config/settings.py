"""Indexer settings.

Two layers:

* :class:`Settings` -- read from environment variables (prefix
  ``GIGAINDEX_``) and an optional ``.env`` file via pydantic-settings,
  e.g. ``GIGAINDEX_CORPUS_DIR=/data/gigaword``.
* :class:`IndexerConfig` -- the validated, immutable value handed to the
  indexing pipeline.  Components receive it explicitly; nothing reads
  configuration from global state at run time.

See :mod:`gigaindex.config.loader` for how YAML defaults and the
environment are merged into an :class:`IndexerConfig`.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from gigaindex.utils.errors import ConfigurationError
from gigaindex.utils.files import DEFAULT_FILE_PATTERN
from gigaindex.utils.logging import LOG_LEVELS


class Settings(BaseSettings):
    """Environment overrides for the indexer.

    Every field defaults to ``None`` = "not set", so only values that were
    actually provided override the YAML defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="GIGAINDEX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    corpus: str | None = None
    corpus_dir: str | None = None
    index_dir: str | None = None
    corpus_label: str | None = None
    file_pattern: str | None = None
    encoding: str | None = None
    analyzer: str | None = None
    append: bool | None = None
    run_nlp: bool | None = None
    store_postings: bool | None = None
    store_term_vector: bool | None = None
    buffer_size_mb: float | None = None
    progress_interval: int | None = None
    log_level: str | None = None

    def overrides(self) -> dict[str, Any]:
        """Return the settings that were set, as a plain dict."""
        return self.model_dump(exclude_none=True)


class IndexerConfig(BaseModel):
    """Everything one indexing run needs to know."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Corpus kind; resolved to a parser by name, case-insensitively.
    corpus: str = "gigaword"
    corpus_dir: str = ""
    index_dir: str = ""
    # Overrides the parser's default corpus label when non-empty.
    corpus_label: str = ""
    file_pattern: str = DEFAULT_FILE_PATTERN
    encoding: str = "utf-8"
    analyzer: Literal["standard", "english"] = "standard"

    append: bool = False
    run_nlp: bool = False
    store_postings: bool = False
    store_term_vector: bool = False
    buffer_size_mb: float = Field(default=1024.0, gt=0)
    progress_interval: int = Field(default=10_000, ge=1)

    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"unknown log level {value!r}")
        return level

    def with_overrides(self, **overrides: Any) -> IndexerConfig:
        """Return a copy with the given fields replaced; ``None`` values are ignored.

        Raises:
            ConfigurationError: If an override is not a valid value.
        """
        values = self.model_dump()
        values.update({key: value for key, value in overrides.items() if value is not None})
        try:
            return IndexerConfig.model_validate(values)
        except ValidationError as exc:
            raise ConfigurationError(message=f"Invalid indexer configuration: {exc}") from exc
