"""Per-epoch metric history and running batch statistics."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple

import torch
from torchmetrics import MeanMetric


class EpochSummary(NamedTuple):
    """Averages for one completed epoch. Accuracies are percentages."""

    train_loss: float
    train_accuracy: float
    val_loss: float
    val_accuracy: float


class EvaluationSummary(NamedTuple):
    """Loss and accuracy of one pass over a split."""

    loss: float
    accuracy: float
    samples: int


@dataclass
class TrainingMetrics:
    """Four metric sequences with one entry per completed epoch, in epoch order."""

    train_losses: list[float] = field(default_factory=list)
    train_accuracies: list[float] = field(default_factory=list)
    val_losses: list[float] = field(default_factory=list)
    val_accuracies: list[float] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.train_losses)

    def append(self, summary: EpochSummary) -> None:
        self.train_losses.append(summary.train_loss)
        self.train_accuracies.append(summary.train_accuracy)
        self.val_losses.append(summary.val_loss)
        self.val_accuracies.append(summary.val_accuracy)


class RunningStats:
    """Accumulates loss and accuracy over the batches of one pass.

    The average loss is the mean of per-batch losses (each batch weighs the
    same); accuracy is ``100 * correct / total`` over all samples.
    """

    def __init__(self) -> None:
        self._loss = MeanMetric()
        self.batches = 0
        self.correct = 0
        self.total = 0

    def update(self, loss: float, logits: torch.Tensor, labels: torch.Tensor) -> None:
        self._loss.update(loss)
        self.batches += 1
        self.correct += int((logits.argmax(dim=1) == labels).sum().item())
        self.total += int(labels.shape[0])

    @property
    def average_loss(self) -> float:
        if self.batches == 0:
            return 0.0
        return float(self._loss.compute().item())

    @property
    def accuracy(self) -> float:
        if self.total == 0:
            return 0.0
        return 100.0 * self.correct / self.total

    def summary(self) -> EvaluationSummary:
        return EvaluationSummary(self.average_loss, self.accuracy, self.total)
