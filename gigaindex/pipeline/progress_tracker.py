"""Document-count progress tracking with callback-based listener notification.

Implements the Observer pattern::

    IndexingService --advance()--> ProgressTracker --log--> structlog
                                                   --callback()--> listeners

Progress is a side channel only: nothing a listener does feeds back into
the pipeline's control flow, and a listener that raises is logged and
skipped so it cannot abort a run.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from gigaindex.utils.logging import get_logger

# (run_name, documents_completed, elapsed_seconds)
ProgressListener = Callable[[str, int, float], None]

DEFAULT_INTERVAL = 10_000


@dataclass
class _RunStatus:
    """Internal snapshot of the current run; never serialized."""

    run_name: str = ""
    documents: int = 0
    started_at: float = 0.0
    finished: bool = False


class ProgressTracker:
    """Counts processed documents and reports every ``interval`` documents.

    Parameters
    ----------
    interval:
        Report after every this many documents.
    """

    def __init__(self, interval: int = DEFAULT_INTERVAL) -> None:
        if interval < 1:
            raise ValueError("interval must be at least 1")
        self._interval = interval
        self._status = _RunStatus()
        self._listeners: list[ProgressListener] = []
        self._logger: structlog.BoundLogger = get_logger(__name__)

    @property
    def interval(self) -> int:
        return self._interval

    @property
    def documents(self) -> int:
        return self._status.documents

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def start(self, run_name: str) -> None:
        """Reset the counter for a new run."""
        self._status = _RunStatus(run_name=run_name, started_at=time.monotonic())

    def advance(self, count: int = 1) -> None:
        """Record *count* more processed documents, reporting at each interval boundary."""
        before = self._status.documents
        self._status.documents += count
        if self._status.documents // self._interval > before // self._interval:
            self._report("docs_completed")

    def finish(self) -> float:
        """Mark the run finished, report the final count, and return elapsed seconds."""
        self._status.finished = True
        return self._report("docs_total")

    def elapsed(self) -> float:
        if not self._status.started_at:
            return 0.0
        return time.monotonic() - self._status.started_at

    def register_listener(self, callback: ProgressListener) -> None:
        if callback not in self._listeners:
            self._listeners.append(callback)
            self._logger.debug("listener_registered", total_listeners=len(self._listeners))

    def unregister_listener(self, callback: ProgressListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)
            self._logger.debug("listener_unregistered", remaining_listeners=len(self._listeners))

    def get_status(self) -> dict:
        """Return ``run_name``, ``documents``, ``elapsed_seconds`` and ``finished``."""
        return {
            "run_name": self._status.run_name,
            "documents": self._status.documents,
            "elapsed_seconds": round(self.elapsed(), 3),
            "finished": self._status.finished,
        }

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _report(self, event: str) -> float:
        elapsed = self.elapsed()
        self._logger.info(
            event,
            run=self._status.run_name,
            documents=self._status.documents,
            elapsed_seconds=round(elapsed, 1),
        )
        for callback in list(self._listeners):
            try:
                callback(self._status.run_name, self._status.documents, elapsed)
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )
        return elapsed
