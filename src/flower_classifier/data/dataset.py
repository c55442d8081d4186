"""Image-folder-per-class dataset for flower classification."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import torch
from loguru import logger
from torch.utils.data import Dataset

from flower_classifier.config import IMAGE_SIZE
from flower_classifier.data.utils import get_files
from flower_classifier.errors import DecodeError
from flower_classifier.transforms import load_image_tensor
from flower_classifier.types import DecodePolicy, LabelledTensor, Sample

IMAGE_EXTENSIONS: tuple[str, ...] = (".jpg", ".jpeg", ".png")
DEFAULT_SEED = 42


def epoch_plan(num_samples: int, seed: int, epoch: int) -> list[int]:
    """Deterministic sample order for one epoch.

    The same ``(num_samples, seed, epoch)`` always yields the same permutation,
    in any process, and consecutive epochs get different orders.
    """
    if num_samples < 0:
        raise ValueError(f"num_samples must be >= 0, got {num_samples}")
    generator = torch.Generator().manual_seed(seed + epoch)
    return torch.randperm(num_samples, generator=generator).tolist()


class ImageFolderDataset(Dataset[LabelledTensor | None]):
    """Dataset over ``root/<class name>/<image>`` folders.

    Class folders are the immediate subdirectories of ``root``, sorted by
    name with ordinal comparison; their position in that order is the class
    index. Each class folder contributes the ``.jpg``/``.jpeg``/``.png``
    files directly inside it (extensions matched case-insensitively, nested
    folders ignored). A class folder without images still reserves its
    index.

    Only paths are recorded at construction. Every access decodes the image
    from disk again, so nothing is cached between epochs.

    Args:
        root: Dataset root directory.
        image_size: Side length of the square tensors produced.
        shuffle: Whether :meth:`epoch_order` permutes the samples.
        seed: Base seed of the epoch plan.
        on_decode_error: ``"raise"`` propagates :class:`DecodeError`;
            ``"skip"`` logs the broken file and returns ``None`` in its
            place, which :func:`~flower_classifier.data.collate_samples`
            leaves out of the batch.
    """

    def __init__(
        self,
        root: str | Path,
        image_size: int = IMAGE_SIZE,
        shuffle: bool = False,
        seed: int = DEFAULT_SEED,
        on_decode_error: DecodePolicy = "raise",
    ) -> None:
        self.root = Path(root)
        if not self.root.is_dir():
            raise FileNotFoundError(f"Dataset directory not found: {self.root}")
        self.image_size = image_size
        self.shuffle = shuffle
        self.seed = seed
        self.on_decode_error = on_decode_error

        class_dirs = sorted(
            (p for p in self.root.iterdir() if p.is_dir()), key=lambda p: p.name
        )
        self._class_to_idx = {d.name: i for i, d in enumerate(class_dirs)}

        samples: list[Sample] = []
        for class_dir in class_dirs:
            label = self._class_to_idx[class_dir.name]
            for path in get_files(class_dir, IMAGE_EXTENSIONS, recursive=False):
                samples.append((path, label))
        self._samples = tuple(samples)

        logger.debug(
            f"ImageFolderDataset: {len(self._samples)} images in "
            f"{len(self._class_to_idx)} classes under {self.root}"
        )

    @property
    def class_to_idx(self) -> dict[str, int]:
        """Class name to index, in sorted folder order. Returns a copy."""
        return dict(self._class_to_idx)

    @property
    def idx_to_class(self) -> dict[int, str]:
        return {v: k for k, v in self._class_to_idx.items()}

    @property
    def num_classes(self) -> int:
        return len(self._class_to_idx)

    @property
    def samples(self) -> tuple[Sample, ...]:
        """Discovered ``(path, label)`` pairs in scan order. Never reordered."""
        return self._samples

    def __len__(self) -> int:
        return len(self._samples)

    def __getitem__(self, idx: int) -> LabelledTensor | None:
        path, label = self._samples[idx]
        try:
            image = load_image_tensor(path, self.image_size)
        except DecodeError as e:
            if self.on_decode_error == "raise":
                raise
            logger.warning(f"Skipping unreadable image: {e}")
            return None
        return image, torch.tensor(label, dtype=torch.int64)

    def epoch_order(self, epoch: int = 0) -> list[int]:
        """Sample positions in the order used for ``epoch``.

        Scan order when shuffling is off, otherwise :func:`epoch_plan`.
        """
        if not self.shuffle:
            return list(range(len(self)))
        return epoch_plan(len(self), self.seed, epoch)

    def iter_epoch(self, epoch: int = 0) -> Iterator[LabelledTensor]:
        """Lazy pass over every readable sample in the order planned for ``epoch``.

        Each call starts a fresh pass; nothing about the dataset changes.
        """
        for pos in self.epoch_order(epoch):
            item = self[pos]
            if item is not None:
                yield item

    def class_counts(self) -> dict[int, int]:
        """Number of samples per class index, including empty classes."""
        counts = dict.fromkeys(self._class_to_idx.values(), 0)
        for _, label in self._samples:
            counts[label] += 1
        return counts
