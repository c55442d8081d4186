"""Tests for progress records, sinks, status formatting and cancellation."""

from __future__ import annotations

import threading
from datetime import datetime

import pytest
from pydantic import ValidationError

from flower_classifier.errors import TrainingCancelledError
from flower_classifier.training import CancellationToken, QueueProgressSink, TrainingProgress
from flower_classifier.training.progress import (
    format_duration,
    format_epoch_status,
    percent,
)


class TestTrainingProgress:
    def test_defaults(self) -> None:
        record = TrainingProgress()
        assert record.epoch_completion_percentage == 0.0
        assert record.total_completion_percentage == 0.0
        assert record.status == ""

    @pytest.mark.parametrize("value", [-0.1, 100.5])
    def test_percentages_bounded(self, value: float) -> None:
        with pytest.raises(ValidationError):
            TrainingProgress(epoch_completion_percentage=value)


class TestPercent:
    @pytest.mark.parametrize(
        ("done", "total", "expected"),
        [(0, 4, 0.0), (1, 4, 25.0), (4, 4, 100.0), (5, 4, 100.0), (3, 0, 0.0), (-1, 4, 0.0)],
    )
    def test_percent(self, done: int, total: int, expected: float) -> None:
        assert percent(done, total) == pytest.approx(expected)


class TestFormatting:
    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [
            (0, "00:00:00"),
            (59.9, "00:00:59"),
            (3661, "01:01:01"),
            (90000, "25:00:00"),
            (-5, "00:00:00"),
        ],
    )
    def test_format_duration(self, seconds: float, expected: str) -> None:
        assert format_duration(seconds) == expected

    def test_epoch_status_line(self) -> None:
        line = format_epoch_status(
            epoch=3,
            epochs=80,
            train_loss=1.23456,
            val_loss=0.5,
            train_accuracy=45.678,
            val_accuracy=50.0,
            eta_seconds=3725,
            avg_epoch_seconds=48.26,
            now=datetime(2024, 5, 1, 9, 7, 3),
        )
        assert line == (
            "09:07:03 | Epoch 3/80 | Train Loss: 1.2346 | Val Loss: 0.5000 | "
            "Train Acc: 45.68% | Val Acc: 50.00% | ETA: 01:02:05 | Avg epoch: 48.3s"
        )


class TestQueueProgressSink:
    def test_collects_in_order(self) -> None:
        sink = QueueProgressSink()
        for i in range(3):
            sink(TrainingProgress(status=f"step {i}"))
        assert [r.status for r in sink.drain()] == ["step 0", "step 1", "step 2"]
        assert sink.drain() == []

    def test_bounded_queue_drops(self) -> None:
        sink = QueueProgressSink(maxsize=1)
        sink(TrainingProgress(status="kept"))
        sink(TrainingProgress(status="dropped"))
        assert sink.dropped == 1
        assert [r.status for r in sink.drain()] == ["kept"]

    def test_cross_thread(self) -> None:
        sink = QueueProgressSink()
        worker = threading.Thread(
            target=lambda: [sink(TrainingProgress(status=str(i))) for i in range(50)]
        )
        worker.start()
        worker.join()
        assert len(sink.drain()) == 50


class TestCancellationToken:
    def test_initially_clear(self) -> None:
        token = CancellationToken()
        assert not token.cancelled
        token.raise_if_cancelled()

    def test_cancel(self) -> None:
        token = CancellationToken()
        token.cancel()
        assert token.cancelled
        with pytest.raises(TrainingCancelledError):
            token.raise_if_cancelled()

    def test_cancel_from_other_thread(self) -> None:
        token = CancellationToken()
        t = threading.Thread(target=token.cancel)
        t.start()
        t.join()
        assert token.cancelled
