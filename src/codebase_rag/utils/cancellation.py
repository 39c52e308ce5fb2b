"""Cooperative cancellation for long-running indexing work."""

import threading

from ..exceptions import IndexingCancelledError


class CancellationToken:
    """Flag checked by the indexer between files and embedding batches.

    ``cancel()`` may be called from any thread (e.g. a SIGINT handler); the
    indexer raises ``IndexingCancelledError`` at its next checkpoint. An
    in-flight embedding call is never interrupted.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str = "indexing") -> None:
        if self._event.is_set():
            raise IndexingCancelledError(stage)
