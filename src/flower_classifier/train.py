"""Training entrypoint for flower_classifier.

Usage:
    flower-train dataset_dir=/data/flower_photos                      # defaults
    flower-train dataset_dir=/data/flower_photos training.epochs=5    # override epochs
    flower-train dataset_dir=/data/flower_photos training.batch_size=32
    flower-train dataset_dir=/data/flower_photos model_file_name=model_02.pth
"""

import sys
from typing import Any

import hydra
import lightning as L
from loguru import logger
from omegaconf import DictConfig, OmegaConf
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn

from flower_classifier.config import TrainingConfig
from flower_classifier.errors import FlowerClassifierError
from flower_classifier.training.engine import TrainingEngine
from flower_classifier.training.progress import TrainingProgress


class RichProgressSink:
    """Render engine progress as two rich progress bars: epoch and total."""

    def __init__(self, progress: Progress) -> None:
        self.progress = progress
        self.total_task = progress.add_task("Total", total=100.0)
        self.epoch_task = progress.add_task("Epoch", total=100.0)

    def __call__(self, record: TrainingProgress) -> None:
        self.progress.update(
            self.total_task, completed=record.total_completion_percentage
        )
        self.progress.update(
            self.epoch_task,
            completed=record.epoch_completion_percentage,
            description=record.status.strip() or "Epoch",
        )


def build_training_config(cfg: DictConfig) -> TrainingConfig:
    """Validate the ``training`` node of the Hydra config."""
    kwargs: dict[str, Any] = OmegaConf.to_container(cfg.training, resolve=True)  # type: ignore[assignment]
    if kwargs.get("seed") is None:
        kwargs.pop("seed", None)
    return TrainingConfig(**kwargs)


def build_callbacks(cfg: DictConfig) -> list[L.Callback]:
    callbacks: list[L.Callback] = []
    if cfg.get("callbacks"):
        for v in cfg.callbacks.values():
            if v is not None and "_target_" in v:
                callbacks.append(hydra.utils.instantiate(v))
    return callbacks


@hydra.main(version_base=None, config_path="conf", config_name="train")
def main(cfg: DictConfig) -> None:
    """Run training with the given Hydra config."""
    # Setup logging
    logger.remove()
    logger.add(sys.stderr, level=cfg.get("log_level", "INFO"))

    logger.info(f"Configuration:\n{OmegaConf.to_yaml(cfg)}")

    if cfg.get("seed") is not None:
        L.seed_everything(cfg.seed, workers=True)

    training_config = build_training_config(cfg)
    callbacks = build_callbacks(cfg)

    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        transient=True,
    ) as progress:
        engine = TrainingEngine(
            config=training_config,
            progress_sink=RichProgressSink(progress),
            callbacks=callbacks,
        )
        try:
            engine.train(cfg.dataset_dir, cfg.model_file_name)
        except (FlowerClassifierError, OSError) as e:
            logger.error(f"Training aborted: {e}")
            sys.exit(1)

    logger.info(f"Model saved to {engine.weights_path}")


if __name__ == "__main__":
    main()
