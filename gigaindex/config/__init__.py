"""Configuration: environment settings, YAML loading, and the indexer config value."""

from gigaindex.config.loader import DEFAULT_CONFIG_PATH, load_config
from gigaindex.config.settings import IndexerConfig, Settings

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "IndexerConfig",
    "Settings",
    "load_config",
]
