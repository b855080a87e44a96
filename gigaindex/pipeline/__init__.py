"""Pipeline support components."""

from gigaindex.pipeline.progress_tracker import DEFAULT_INTERVAL, ProgressTracker

__all__ = [
    "DEFAULT_INTERVAL",
    "ProgressTracker",
]
