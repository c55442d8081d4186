"""Data pipeline for flower_classifier."""

from flower_classifier.data.batching import (
    SplitSizes,
    build_loader,
    collate_samples,
    compute_split_sizes,
    num_batches,
    split_positions,
)
from flower_classifier.data.datamodule import FlowerDataModule
from flower_classifier.data.dataset import (
    IMAGE_EXTENSIONS,
    ImageFolderDataset,
    epoch_plan,
)

__all__ = [
    "IMAGE_EXTENSIONS",
    "FlowerDataModule",
    "ImageFolderDataset",
    "SplitSizes",
    "build_loader",
    "collate_samples",
    "compute_split_sizes",
    "epoch_plan",
    "num_batches",
    "split_positions",
]
