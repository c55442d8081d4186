"""LightningModule training a FlowerClassifier with Adam and cross-entropy."""

from __future__ import annotations

import lightning as L
import torch

from flower_classifier.config import IMAGE_SIZE
from flower_classifier.models.classifier import FlowerClassifier
from flower_classifier.training.metrics import (
    EpochSummary,
    RunningStats,
    TrainingMetrics,
)
from flower_classifier.types import ClassificationBatch


class FlowerClassificationModule(L.LightningModule):
    """Wraps :class:`FlowerClassifier` for ``L.Trainer``.

    Keeps one :class:`RunningStats` per split, reset at the start of each
    pass. An empty split therefore reports 0.0 loss and accuracy.
    :meth:`record_epoch` closes an epoch into :attr:`history`.

    Batches where every sample was skipped arrive as ``None`` and are passed
    over without an optimizer step.

    Args:
        num_classes: Number of output logits.
        image_size: Square input size.
        learning_rate: Adam learning rate.
        weight_decay: Adam weight decay.
    """

    def __init__(
        self,
        num_classes: int,
        image_size: int = IMAGE_SIZE,
        learning_rate: float = 2e-4,
        weight_decay: float = 1e-5,
    ) -> None:
        super().__init__()
        self.save_hyperparameters()
        self.model = FlowerClassifier(num_classes=num_classes, image_size=image_size)
        self.loss_fn = torch.nn.CrossEntropyLoss()

        self.history = TrainingMetrics()
        self.train_stats = RunningStats()
        self.val_stats = RunningStats()
        self.test_stats = RunningStats()
        self.last_train_loss: float | None = None

    def forward(self, images: torch.Tensor) -> torch.Tensor:
        return self.model(images)  # type: ignore[no-any-return]

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    def on_train_epoch_start(self) -> None:
        # Validation is skipped entirely when its split is empty.
        self.train_stats = RunningStats()
        self.val_stats = RunningStats()

    def training_step(
        self, batch: ClassificationBatch | None, batch_idx: int
    ) -> torch.Tensor | None:
        self.last_train_loss = None
        if batch is None:
            return None
        images, labels = batch["images"], batch["labels"]
        logits = self(images)
        loss: torch.Tensor = self.loss_fn(logits, labels)
        self.log(
            "train/loss",
            loss,
            on_step=True,
            on_epoch=True,
            batch_size=labels.shape[0],
        )
        self.last_train_loss = loss.item()
        self.train_stats.update(self.last_train_loss, logits.detach(), labels)
        return loss

    def record_epoch(self) -> EpochSummary:
        """Append the finished epoch's train and val averages to :attr:`history`."""
        summary = EpochSummary(
            train_loss=self.train_stats.average_loss,
            train_accuracy=self.train_stats.accuracy,
            val_loss=self.val_stats.average_loss,
            val_accuracy=self.val_stats.accuracy,
        )
        self.history.append(summary)
        return summary

    # ------------------------------------------------------------------
    # Validation / test
    # ------------------------------------------------------------------

    def on_validation_epoch_start(self) -> None:
        self.val_stats = RunningStats()

    def validation_step(
        self, batch: ClassificationBatch | None, batch_idx: int
    ) -> None:
        if batch is None:
            return
        images, labels = batch["images"], batch["labels"]
        logits = self(images)
        loss = self.loss_fn(logits, labels)
        self.log("val/loss", loss, on_step=False, on_epoch=True, batch_size=labels.shape[0])
        self.val_stats.update(loss.item(), logits, labels)

    def on_test_epoch_start(self) -> None:
        self.test_stats = RunningStats()

    def test_step(self, batch: ClassificationBatch | None, batch_idx: int) -> None:
        if batch is None:
            return
        images, labels = batch["images"], batch["labels"]
        logits = self(images)
        loss = self.loss_fn(logits, labels)
        self.log("test/loss", loss, on_step=False, on_epoch=True, batch_size=labels.shape[0])
        self.test_stats.update(loss.item(), logits, labels)

    def configure_optimizers(self) -> torch.optim.Optimizer:
        return torch.optim.Adam(
            self.parameters(),
            lr=self.hparams["learning_rate"],
            weight_decay=self.hparams["weight_decay"],
        )
