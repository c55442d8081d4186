"""Dataset statistics callback: prints class distribution at training start."""

from __future__ import annotations

import lightning as L
from loguru import logger
from rich import box
from rich.console import Console
from rich.table import Table


class DatasetStatisticsCallback(L.Callback):
    """Print a rich table of images per class, sorted by class index.

    Classes whose folder holds no images are listed with a zero count so a
    misplaced folder is easy to spot. Reads the dataset and split sizes from
    ``trainer.datamodule``.

    Args:
        console: Console to print to. A new stdout console by default.
    """

    def __init__(self, console: Console | None = None) -> None:
        super().__init__()
        self.console = console or Console()

    def on_fit_start(self, trainer: L.Trainer, pl_module: L.LightningModule) -> None:
        """Compute and display class distribution at training start."""
        datamodule = getattr(trainer, "datamodule", None)
        dataset = getattr(datamodule, "dataset", None)
        if dataset is None:
            logger.warning("DatasetStatisticsCallback: no dataset on the datamodule")
            return

        counts = dataset.class_counts()
        idx_to_class = dataset.idx_to_class
        total = len(dataset)
        logger.info(f"Dataset: {total} samples, {len(counts)} classes")

        table = Table(
            title="Dataset Class Distribution",
            header_style="bold magenta",
            box=box.SQUARE,
            show_lines=True,
        )
        table.add_column("Class Name", style="cyan")
        table.add_column("Index", justify="right")
        table.add_column("Count", justify="right", style="green")
        table.add_column("Percentage", justify="right", style="yellow")

        for idx in sorted(counts):
            count = counts[idx]
            pct = count / total * 100 if total > 0 else 0.0
            table.add_row(idx_to_class[idx], str(idx), str(count), f"{pct:.1f}%")
            if count == 0:
                logger.warning(f"Class '{idx_to_class[idx]}' has no images")

        self.console.print(table)

        sizes = getattr(datamodule, "split_sizes", None)
        if sizes is not None:
            logger.info(
                f"Splits: train={sizes.train}, val={sizes.val}, test={sizes.test}"
            )
