"""Model info callback: reports parameter counts and the execution device."""

from __future__ import annotations

import lightning as L
from loguru import logger
from rich import box
from rich.console import Console
from rich.table import Table

from flower_classifier.models.classifier import count_parameters


class ModelInfoCallback(L.Callback):
    """Compute and display model statistics at training start.

    Reports total parameters, trainable parameters, model size in MB, the
    input size and the device training runs on.
    """

    def __init__(self, console: Console | None = None) -> None:
        super().__init__()
        self.console = console or Console()

    def on_fit_start(self, trainer: L.Trainer, pl_module: L.LightningModule) -> None:
        """Compute model stats and print them as a table."""
        model = getattr(pl_module, "model", pl_module)
        total_params, trainable_params = count_parameters(pl_module)
        param_size = sum(p.numel() * p.element_size() for p in pl_module.parameters())
        buffer_size = sum(b.numel() * b.element_size() for b in pl_module.buffers())
        model_size_mb = (param_size + buffer_size) / (1024 * 1024)

        table = Table(
            title="Model Information",
            header_style="bold magenta",
            box=box.SQUARE,
            show_lines=True,
        )
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green")

        table.add_row("Model Class", type(model).__name__)
        image_size = getattr(model, "image_size", None)
        if image_size is not None:
            table.add_row("Classes", str(model.num_classes))
            table.add_row("Input Size", f"{image_size}x{image_size}")
        table.add_row("Total Parameters", f"{total_params / 1e6:.2f} M")
        table.add_row("Trainable Parameters", f"{trainable_params / 1e6:.2f} M")
        table.add_row("Model Size", f"{model_size_mb:.2f} MB")
        table.add_row("Device", str(pl_module.device))

        self.console.print(table)

        logger.info(
            f"Model: {type(model).__name__} | "
            f"Params: {total_params:,} ({trainable_params:,} trainable) | "
            f"Size: {model_size_mb:.2f} MB"
        )
