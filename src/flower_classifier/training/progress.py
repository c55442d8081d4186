"""Progress records emitted by the training engine and sinks that consume them.

The engine pushes a :class:`TrainingProgress` to its sink many times per
epoch and never waits for an acknowledgement. A GUI running training on a
worker thread hands in a :class:`QueueProgressSink` and drains it on its own
schedule. There is no backpressure: a bounded queue drops records once full.
"""

from __future__ import annotations

import queue
from collections.abc import Callable
from datetime import datetime

from loguru import logger
from pydantic import BaseModel, Field


class TrainingProgress(BaseModel, frozen=True):
    """One progress notification."""

    epoch_completion_percentage: float = Field(default=0.0, ge=0.0, le=100.0)
    total_completion_percentage: float = Field(default=0.0, ge=0.0, le=100.0)
    status: str = ""


ProgressSink = Callable[[TrainingProgress], None]


class QueueProgressSink:
    """Progress sink that forwards records onto a thread-safe queue.

    Args:
        maxsize: Queue capacity; ``0`` means unbounded. When the queue is
            full new records are dropped and counted in :attr:`dropped`.
    """

    def __init__(self, maxsize: int = 0) -> None:
        self.queue: queue.Queue[TrainingProgress] = queue.Queue(maxsize=maxsize)
        self.dropped = 0

    def __call__(self, progress: TrainingProgress) -> None:
        try:
            self.queue.put_nowait(progress)
        except queue.Full:
            self.dropped += 1
            logger.debug(f"Progress queue full, dropped: {progress.status}")

    def drain(self) -> list[TrainingProgress]:
        """Remove and return every record queued so far, oldest first."""
        records: list[TrainingProgress] = []
        while True:
            try:
                records.append(self.queue.get_nowait())
            except queue.Empty:
                return records


def percent(done: float, total: float) -> float:
    """``done / total`` as a percentage clamped to ``[0, 100]``; 0 when total is 0."""
    if total <= 0:
        return 0.0
    return min(100.0, max(0.0, done / total * 100.0))


def format_duration(seconds: float) -> str:
    """Format seconds as ``hh:mm:ss``. Hours are not wrapped at 24."""
    total = max(0, int(seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_epoch_status(
    epoch: int,
    epochs: int,
    train_loss: float,
    val_loss: float,
    train_accuracy: float,
    val_accuracy: float,
    eta_seconds: float,
    avg_epoch_seconds: float,
    now: datetime | None = None,
) -> str:
    """Status line reported at the end of every epoch (``epoch`` is 1-based)."""
    now = now or datetime.now()
    return (
        f"{now:%H:%M:%S} | "
        f"Epoch {epoch}/{epochs} | "
        f"Train Loss: {train_loss:.4f} | Val Loss: {val_loss:.4f} | "
        f"Train Acc: {train_accuracy:.2f}% | Val Acc: {val_accuracy:.2f}% | "
        f"ETA: {format_duration(eta_seconds)} | Avg epoch: {avg_epoch_seconds:.1f}s"
    )
