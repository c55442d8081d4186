"""Train/validation/test splitting and batching of labelled image tensors."""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import NamedTuple

import torch
from torch.utils.data import DataLoader, Dataset, Subset

from flower_classifier.types import ClassificationBatch, LabelledTensor

TRAIN_FRACTION = 0.8
VAL_FRACTION = 0.15


class SplitSizes(NamedTuple):
    """Number of samples in each split. ``train + val + test`` is the total."""

    train: int
    val: int
    test: int


def compute_split_sizes(
    num_samples: int,
    train_fraction: float = TRAIN_FRACTION,
    val_fraction: float = VAL_FRACTION,
) -> SplitSizes:
    """Truncate ``num_samples * fraction`` for train and val; test takes the rest."""
    if num_samples < 0:
        raise ValueError(f"num_samples must be >= 0, got {num_samples}")
    train = int(num_samples * train_fraction)
    val = int(num_samples * val_fraction)
    return SplitSizes(train=train, val=val, test=num_samples - train - val)


def split_positions(
    order: Sequence[int], sizes: SplitSizes
) -> tuple[list[int], list[int], list[int]]:
    """Cut ``order`` by position: first ``sizes.train``, next ``sizes.val``, the rest."""
    if sum(sizes) != len(order):
        raise ValueError(f"Split sizes {tuple(sizes)} do not cover {len(order)} samples")
    train_end = sizes.train
    val_end = train_end + sizes.val
    return list(order[:train_end]), list(order[train_end:val_end]), list(order[val_end:])


def num_batches(num_samples: int, batch_size: int) -> int:
    """Number of batches :func:`build_loader` yields for ``num_samples`` inputs."""
    return math.ceil(num_samples / batch_size)


def collate_samples(
    batch: list[LabelledTensor | None],
) -> ClassificationBatch | None:
    """Collate ``(image, label)`` pairs into a ClassificationBatch dict.

    Samples the dataset skipped under its decode policy arrive as ``None``
    and are left out, so a batch can be smaller than the loader's batch size.
    Returns ``None`` when no sample of the batch could be decoded.
    """
    kept = [item for item in batch if item is not None]
    if not kept:
        return None
    images = torch.stack([item[0] for item in kept])
    labels = torch.tensor([int(item[1]) for item in kept], dtype=torch.long)
    return {"images": images, "labels": labels}


def build_loader(
    dataset: Dataset[LabelledTensor | None],
    positions: Sequence[int],
    batch_size: int,
    shuffle: bool = False,
    num_workers: int = 0,
) -> DataLoader[LabelledTensor | None]:
    """DataLoader over ``dataset`` restricted to ``positions``.

    Every batch holds ``batch_size`` positions except possibly the last one;
    an empty ``positions`` gives a loader without batches. With ``shuffle``
    the positions are reordered from the global torch RNG on every pass.

    Raises:
        ValueError: ``batch_size`` is smaller than 1.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    subset = Subset(dataset, list(positions))
    return DataLoader(
        subset,
        batch_size=batch_size,
        # RandomSampler rejects an empty dataset
        shuffle=shuffle and len(subset) > 0,
        num_workers=num_workers,
        collate_fn=collate_samples,
    )
