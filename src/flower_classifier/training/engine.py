"""Supervised training run for :class:`~flower_classifier.models.FlowerClassifier`."""

from __future__ import annotations

import time
from collections.abc import Sequence
from enum import Enum
from pathlib import Path
from typing import Any

import lightning as L
import torch
from loguru import logger

from flower_classifier.config import DEFAULT_MODEL_FILE_NAME, TrainingConfig, select_device
from flower_classifier.data.batching import SplitSizes, num_batches
from flower_classifier.data.datamodule import FlowerDataModule
from flower_classifier.models.checkpoint import save_weights
from flower_classifier.training.cancellation import CancellationToken
from flower_classifier.training.metrics import EvaluationSummary, TrainingMetrics
from flower_classifier.training.module import FlowerClassificationModule
from flower_classifier.training.progress import (
    ProgressSink,
    TrainingProgress,
    format_epoch_status,
    percent,
)


class TrainingState(str, Enum):
    """Where a :meth:`TrainingEngine.train` call currently is."""

    IDLE = "idle"
    PREPARING = "preparing"
    TRAINING = "training"
    VALIDATING = "validating"
    TESTING = "testing"
    SAVED = "saved"
    FAILED = "failed"


class TrainingProgressCallback(L.Callback):
    """Drives a :class:`TrainingEngine` from inside ``L.Trainer``.

    Moves the engine through its states, emits a progress record per batch,
    checks the cancellation token before every batch, and closes each epoch
    into the module's history with the status line and ETA. The engine
    registers it ahead of user callbacks, so their ``on_train_epoch_end``
    already sees the finished epoch in ``pl_module.history``.
    """

    def __init__(self, engine: TrainingEngine) -> None:
        super().__init__()
        self.engine = engine
        self._started = 0.0

    def _split_batches(self, split: str) -> int:
        sizes = self.engine.split_sizes
        if sizes is None:
            return 0
        return num_batches(getattr(sizes, split), self.engine.config.batch_size)

    def _total_pct(self, trainer: L.Trainer) -> float:
        return percent(trainer.current_epoch, self.engine.config.epochs)

    def on_fit_start(self, trainer: L.Trainer, pl_module: L.LightningModule) -> None:
        self._started = time.monotonic()

    def on_train_epoch_start(
        self, trainer: L.Trainer, pl_module: L.LightningModule
    ) -> None:
        self.engine.state = TrainingState.TRAINING
        self.engine._report(
            f"Loading training data for epoch {trainer.current_epoch + 1}/"
            f"{self.engine.config.epochs}...",
            0.0,
            self._total_pct(trainer),
        )

    def on_train_batch_start(
        self, trainer: L.Trainer, pl_module: L.LightningModule, batch: Any, batch_idx: int
    ) -> None:
        self.engine._check_cancelled()

    def on_train_batch_end(
        self,
        trainer: L.Trainer,
        pl_module: L.LightningModule,
        outputs: Any,
        batch: Any,
        batch_idx: int,
    ) -> None:
        total = self._split_batches("train")
        message = f"  Training: {batch_idx + 1}/{total} batches"
        loss = getattr(pl_module, "last_train_loss", None)
        if loss is not None:
            message += f" | Loss: {loss:.4f}"
        logger.debug(message)
        self.engine._report(message, percent(batch_idx, total), self._total_pct(trainer))

    def on_validation_epoch_start(
        self, trainer: L.Trainer, pl_module: L.LightningModule
    ) -> None:
        self.engine.state = TrainingState.VALIDATING
        self.engine._report(
            f"Loading validation data for epoch {trainer.current_epoch + 1}/"
            f"{self.engine.config.epochs}...",
            0.0,
            self._total_pct(trainer),
        )

    def on_validation_batch_start(
        self,
        trainer: L.Trainer,
        pl_module: L.LightningModule,
        batch: Any,
        batch_idx: int,
        dataloader_idx: int = 0,
    ) -> None:
        self.engine._check_cancelled()

    def on_validation_batch_end(
        self,
        trainer: L.Trainer,
        pl_module: L.LightningModule,
        outputs: Any,
        batch: Any,
        batch_idx: int,
        dataloader_idx: int = 0,
    ) -> None:
        total = self._split_batches("val")
        message = f"  Validation: {batch_idx + 1}/{total} batches"
        logger.debug(message)
        self.engine._report(message, percent(batch_idx, total), self._total_pct(trainer))

    def on_train_epoch_end(
        self, trainer: L.Trainer, pl_module: L.LightningModule
    ) -> None:
        if not isinstance(pl_module, FlowerClassificationModule):
            return
        epochs = self.engine.config.epochs
        summary = pl_module.record_epoch()
        done = len(pl_module.history)

        elapsed = time.monotonic() - self._started
        avg_epoch = elapsed / done
        status = format_epoch_status(
            done,
            epochs,
            summary.train_loss,
            summary.val_loss,
            summary.train_accuracy,
            summary.val_accuracy,
            eta_seconds=avg_epoch * (epochs - done),
            avg_epoch_seconds=avg_epoch,
        )
        logger.info(status)
        self.engine._report(status, 0.0, percent(done - 1, epochs))

    def on_test_batch_start(
        self,
        trainer: L.Trainer,
        pl_module: L.LightningModule,
        batch: Any,
        batch_idx: int,
        dataloader_idx: int = 0,
    ) -> None:
        self.engine._check_cancelled()


class TrainingEngine:
    """Train a classifier on an image-folder dataset and save its weights.

    One ``train`` call runs ``Preparing -> (Training -> Validating) x epochs ->
    Testing -> Saved -> Idle``. Any error moves the engine to ``FAILED`` and
    propagates unchanged; nothing is retried. Metrics of the epochs completed
    before a failure stay readable on :attr:`metrics`.

    The epoch loop runs on ``L.Trainer`` with :class:`FlowerDataModule` and
    :class:`FlowerClassificationModule`. Checkpointing, loggers and the
    Lightning progress bar are off; progress goes to ``progress_sink``.

    Args:
        config: Hyperparameters and paths. Defaults to :class:`TrainingConfig`.
        progress_sink: Receives a :class:`TrainingProgress` for every status
            change and every batch.
        callbacks: Extra Lightning callbacks handed to the trainer.
        cancel_token: Checked before every batch; when set the run stops with
            :class:`~flower_classifier.errors.TrainingCancelledError` and no
            weights are written.
    """

    def __init__(
        self,
        config: TrainingConfig | None = None,
        progress_sink: ProgressSink | None = None,
        callbacks: Sequence[L.Callback] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> None:
        self.config = config or TrainingConfig()
        self.progress_sink = progress_sink
        self.callbacks = list(callbacks or [])
        self.cancel_token = cancel_token

        self.state = TrainingState.IDLE
        self.metrics = TrainingMetrics()
        self.test_summary: EvaluationSummary | None = None
        self.split_sizes: SplitSizes | None = None
        self.class_to_idx: dict[str, int] = {}
        self.device: torch.device | None = None
        self.module: FlowerClassificationModule | None = None
        self.weights_path: Path | None = None

    # ------------------------------------------------------------------
    # Public entry point
    # ------------------------------------------------------------------

    def train(
        self,
        dataset_dir: str | Path,
        model_file_name: str = DEFAULT_MODEL_FILE_NAME,
    ) -> TrainingMetrics:
        """Run a full training session and return the per-epoch metrics.

        Args:
            dataset_dir: Root with one subdirectory of images per class.
            model_file_name: File name of the weights under ``config.weights_dir``.

        Raises:
            DatasetEmptyError: No class folders or no images were found.
            TrainingCancelledError: The cancellation token was set.
            OSError: The weights directory or file could not be written.
        """
        try:
            self._run(Path(dataset_dir), model_file_name)
        except Exception:
            self.state = TrainingState.FAILED
            logger.error(
                f"Training failed after {len(self.metrics)}/{self.config.epochs} epochs"
            )
            raise
        self.state = TrainingState.IDLE
        return self.metrics

    # ------------------------------------------------------------------
    # Run phases
    # ------------------------------------------------------------------

    def _run(self, dataset_dir: Path, model_file_name: str) -> None:
        cfg = self.config
        self.state = TrainingState.PREPARING
        self.metrics = TrainingMetrics()
        self.test_summary = None
        self.split_sizes = None
        self.module = None

        weights_dir = Path(cfg.weights_dir)
        weights_dir.mkdir(parents=True, exist_ok=True)
        self.weights_path = weights_dir / model_file_name

        self.device = select_device(cfg.device)
        if self.device.type == "cuda":
            self._report("CUDA is available. Using GPU for training.")
        else:
            self._report(
                f"CUDA is not available. Using {self.device.type.upper()} for training."
            )

        datamodule = FlowerDataModule(
            dataset_dir,
            batch_size=cfg.batch_size,
            image_size=cfg.image_size,
            seed=cfg.seed,
            train_fraction=cfg.train_fraction,
            val_fraction=cfg.val_fraction,
            on_decode_error=cfg.on_decode_error,
            num_workers=cfg.num_workers,
        )
        datamodule.setup("fit")
        self.class_to_idx = datamodule.class_to_idx
        self.split_sizes = datamodule.split_sizes
        for name, idx in self.class_to_idx.items():
            self._report(f"Class: {name}, Index: {idx}")

        module = FlowerClassificationModule(
            num_classes=datamodule.num_classes,
            image_size=cfg.image_size,
            learning_rate=cfg.learning_rate,
            weight_decay=cfg.weight_decay,
        )
        self.module = module
        self.metrics = module.history

        accelerator, devices = _trainer_devices(self.device)
        trainer = L.Trainer(
            max_epochs=cfg.epochs,
            accelerator=accelerator,
            devices=devices,
            callbacks=[TrainingProgressCallback(self), *self.callbacks],
            logger=False,
            enable_checkpointing=False,
            enable_progress_bar=False,
            enable_model_summary=False,
            num_sanity_val_steps=0,
            default_root_dir=str(weights_dir),
        )
        trainer.fit(module, datamodule=datamodule)

        self.state = TrainingState.TESTING
        trainer.test(module, datamodule=datamodule, verbose=False)
        self.test_summary = module.test_stats.summary()
        logger.info(f"Test Loss: {self.test_summary.loss:.4f}")
        logger.info(f"Test Accuracy: {self.test_summary.accuracy:.2f}%")

        save_weights(module.model, self.weights_path, self.class_to_idx, cfg.image_size)
        self.state = TrainingState.SAVED

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _report(
        self, status: str, epoch_pct: float = 0.0, total_pct: float = 0.0
    ) -> None:
        if self.progress_sink is None:
            return
        self.progress_sink(
            TrainingProgress(
                epoch_completion_percentage=epoch_pct,
                total_completion_percentage=total_pct,
                status=status,
            )
        )

    def _check_cancelled(self) -> None:
        if self.cancel_token is not None:
            self.cancel_token.raise_if_cancelled()


def _trainer_devices(device: torch.device) -> tuple[str, list[int] | int]:
    """Map a torch device onto ``L.Trainer`` ``accelerator`` / ``devices`` arguments."""
    if device.type == "cuda":
        return "gpu", [device.index or 0]
    return device.type, 1
