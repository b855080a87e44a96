"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

  1. ``config/config.yaml`` -- static defaults under an ``indexer:`` section
  2. ``.env`` file          -- local overrides (not committed)
  3. environment variables  -- ``GIGAINDEX_*``, set per deployment/job

Command-line flags are applied last by the CLI through
:meth:`IndexerConfig.with_overrides`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from gigaindex.config.settings import IndexerConfig, Settings
from gigaindex.utils.errors import ConfigurationError


DEFAULT_CONFIG_PATH = "config/config.yaml"


def load_config(path: str | Path = DEFAULT_CONFIG_PATH, settings: Settings | None = None) -> IndexerConfig:
    """Load YAML defaults, overlay environment settings, and validate.

    Args:
        path: Path to the YAML configuration file.  A missing file means
            built-in defaults only.
        settings: Environment settings; read from the environment when omitted.

    Returns:
        The validated indexer configuration.

    Raises:
        ConfigurationError: If the YAML is malformed or a value is invalid.
    """
    config_path = Path(path)
    yaml_config: dict[str, Any] = {}
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(message=f"Malformed config file {config_path}: {exc}") from exc

    if not isinstance(yaml_config, dict):
        raise ConfigurationError(message=f"Config file {config_path} must contain a mapping")
    section = yaml_config.get("indexer", {}) or {}
    if not isinstance(section, dict):
        raise ConfigurationError(message=f"'indexer' section in {config_path} must be a mapping")

    env_settings = settings if settings is not None else Settings()
    merged = _deep_merge(dict(section), env_settings.overrides())

    try:
        return IndexerConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigurationError(message=f"Invalid indexer configuration: {exc}") from exc


def _deep_merge(base: dict, overrides: dict) -> dict:
    """Recursively merge *overrides* into *base* in place and return it."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base
