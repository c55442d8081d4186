"""Cooperative cancellation for long-running training."""

from __future__ import annotations

import threading

from flower_classifier.errors import TrainingCancelledError


class CancellationToken:
    """Thread-safe flag the training engine checks between batches.

    The thread that owns the UI calls :meth:`cancel`; the worker notices it at
    the next batch boundary and raises :class:`TrainingCancelledError`.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise TrainingCancelledError("Training was cancelled")
