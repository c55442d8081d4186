"""Training history callback: saves loss and accuracy curve PNGs per epoch."""

from __future__ import annotations

from pathlib import Path

import lightning as L
import matplotlib
import matplotlib.pyplot as plt
from loguru import logger

from flower_classifier.training.metrics import TrainingMetrics


class TrainingHistoryCallback(L.Callback):
    """Plot and save training/validation loss and accuracy curves.

    After each training epoch, overwrites two PNG files drawn from
    ``pl_module.history``:
    - ``loss_history.png``: train loss vs val loss
    - ``accuracy_history.png``: train accuracy vs val accuracy

    Args:
        output_dir: Root directory for saved plots.
    """

    def __init__(self, output_dir: str = "outputs") -> None:
        super().__init__()
        self.output_dir = Path(output_dir) / "training_history"

    def on_train_epoch_end(
        self, trainer: L.Trainer, pl_module: L.LightningModule
    ) -> None:
        """Redraw both plots from the module's metric history."""
        history = getattr(pl_module, "history", None)
        if not isinstance(history, TrainingMetrics):
            return
        try:
            self.plot_metrics(history)
        except Exception as e:
            logger.error(f"Failed to plot training history: {e}")

    def plot_metrics(self, metrics: TrainingMetrics) -> None:
        """Draw and save loss + accuracy plots."""
        if len(metrics) == 0:
            return
        matplotlib.use("Agg")
        self.output_dir.mkdir(parents=True, exist_ok=True)
        epochs = list(range(1, len(metrics) + 1))

        self._save_plot(
            epochs,
            [
                (metrics.train_losses, "Train Loss", "o"),
                (metrics.val_losses, "Val Loss", "s"),
            ],
            title="Training and Validation Loss",
            ylabel="Loss",
            filename="loss_history.png",
        )
        self._save_plot(
            epochs,
            [
                (metrics.train_accuracies, "Train Accuracy", "o"),
                (metrics.val_accuracies, "Val Accuracy", "s"),
            ],
            title="Accuracy",
            ylabel="Accuracy (%)",
            filename="accuracy_history.png",
        )
        logger.info(f"Training history plots updated in {self.output_dir}")

    def _save_plot(
        self,
        epochs: list[int],
        series: list[tuple[list[float], str, str]],
        title: str,
        ylabel: str,
        filename: str,
    ) -> None:
        fig, ax = plt.subplots(figsize=(10, 6))
        for values, label, marker in series:
            ax.plot(epochs, values, label=label, marker=marker)
        ax.set_title(title)
        ax.set_xlabel("Epoch")
        ax.set_ylabel(ylabel)
        ax.legend()
        ax.grid(True, linestyle="--", alpha=0.7)
        fig.tight_layout()
        fig.savefig(self.output_dir / filename, dpi=150)
        plt.close(fig)
