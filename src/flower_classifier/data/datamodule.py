"""LightningDataModule splitting one image-folder dataset into train/val/test."""

from __future__ import annotations

from pathlib import Path

import lightning as L
import torch
from loguru import logger
from torch.utils.data import DataLoader

from flower_classifier.config import IMAGE_SIZE
from flower_classifier.data.batching import (
    TRAIN_FRACTION,
    VAL_FRACTION,
    SplitSizes,
    build_loader,
    compute_split_sizes,
    split_positions,
)
from flower_classifier.data.dataset import DEFAULT_SEED, ImageFolderDataset
from flower_classifier.errors import DatasetEmptyError
from flower_classifier.types import DecodePolicy, LabelledTensor


class FlowerDataModule(L.LightningDataModule):
    """DataModule over ``data_root/<class>/<image>`` with a positional split.

    The folder is scanned once, on the first :meth:`setup` call. Split
    membership comes from the seeded epoch-0 plan of the dataset and stays
    fixed for the lifetime of the module: the first ``train_fraction`` of
    the planned positions train, the next ``val_fraction`` validate and the
    remainder test. The training loader reshuffles its positions every
    epoch; validation and test keep split order.

    Args:
        data_root: Dataset root with one subdirectory per class.
        batch_size: Batch size for all three DataLoaders.
        image_size: Square input size the images are resized to.
        seed: Seed of the plan the split is cut from.
        train_fraction: Share of samples used for training (truncated).
        val_fraction: Share of samples used for validation (truncated).
        on_decode_error: Decode policy handed to the dataset.
        num_workers: DataLoader worker processes.
    """

    def __init__(
        self,
        data_root: str | Path,
        batch_size: int = 64,
        image_size: int = IMAGE_SIZE,
        seed: int = DEFAULT_SEED,
        train_fraction: float = TRAIN_FRACTION,
        val_fraction: float = VAL_FRACTION,
        on_decode_error: DecodePolicy = "skip",
        num_workers: int = 0,
    ) -> None:
        super().__init__()
        self._data_root = Path(data_root)
        self._batch_size = batch_size
        self._image_size = image_size
        self._seed = seed
        self._train_fraction = train_fraction
        self._val_fraction = val_fraction
        self._on_decode_error = on_decode_error

        # MPS guard: multiprocessing DataLoader workers crash on Apple Silicon.
        if torch.backends.mps.is_available() and num_workers > 0:
            logger.warning(
                "MPS detected: setting num_workers=0 to avoid multiprocessing crash."
            )
            num_workers = 0
        self._num_workers = num_workers

        self.dataset: ImageFolderDataset | None = None
        self.split_sizes: SplitSizes | None = None
        self._train_positions: list[int] | None = None
        self._val_positions: list[int] | None = None
        self._test_positions: list[int] | None = None

    @property
    def class_to_idx(self) -> dict[str, int]:
        if self.dataset is None:
            raise RuntimeError("Call setup() first")
        return self.dataset.class_to_idx

    @property
    def num_classes(self) -> int:
        return len(self.class_to_idx)

    # ------------------------------------------------------------------
    # LightningDataModule lifecycle
    # ------------------------------------------------------------------

    def setup(self, stage: str | None = None) -> None:
        """Scan the dataset and cut the split. Later calls are no-ops.

        Raises:
            FileNotFoundError: ``data_root`` does not exist.
            DatasetEmptyError: No class folders, or no images inside them.
        """
        if self.dataset is not None:
            return
        dataset = ImageFolderDataset(
            self._data_root,
            image_size=self._image_size,
            shuffle=True,
            seed=self._seed,
            on_decode_error=self._on_decode_error,
        )
        logger.info(
            f"Found {len(dataset)} images belonging to {dataset.num_classes} classes."
        )
        if dataset.num_classes == 0:
            raise DatasetEmptyError(f"No class folders found in {self._data_root}")
        if len(dataset) == 0:
            raise DatasetEmptyError(
                f"No images found in the class folders of {self._data_root}"
            )

        sizes = compute_split_sizes(
            len(dataset), self._train_fraction, self._val_fraction
        )
        train, val, test = split_positions(dataset.epoch_order(0), sizes)
        logger.info(
            f"Split: train={sizes.train}, val={sizes.val}, test={sizes.test} samples"
        )
        self.dataset = dataset
        self.split_sizes = sizes
        self._train_positions = train
        self._val_positions = val
        self._test_positions = test

    # ------------------------------------------------------------------
    # DataLoaders
    # ------------------------------------------------------------------

    def _loader(
        self, positions: list[int] | None, shuffle: bool
    ) -> DataLoader[LabelledTensor | None]:
        if self.dataset is None or positions is None:
            raise RuntimeError("Call setup() first")
        return build_loader(
            self.dataset,
            positions,
            self._batch_size,
            shuffle=shuffle,
            num_workers=self._num_workers,
        )

    def train_dataloader(self) -> DataLoader[LabelledTensor | None]:
        """Training DataLoader, reshuffled every epoch."""
        return self._loader(self._train_positions, shuffle=True)

    def val_dataloader(self) -> DataLoader[LabelledTensor | None]:
        return self._loader(self._val_positions, shuffle=False)

    def test_dataloader(self) -> DataLoader[LabelledTensor | None]:
        return self._loader(self._test_positions, shuffle=False)
