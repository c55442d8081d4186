"""Type aliases and TypedDicts for flower_classifier inter-module contracts."""

from pathlib import Path
from typing import Literal, TypedDict

import torch
from PIL import Image


class ClassificationBatch(TypedDict):
    """A single batch produced by :func:`~flower_classifier.data.collate_samples`.

    images: Float tensor of shape (N, 3, S, S), values in [0, 1].
    labels: Long tensor of shape (N,), integer class indices.
    """

    images: torch.Tensor
    labels: torch.Tensor


Sample = tuple[Path, int]
"""An (image path, class index) pair discovered during the dataset scan."""

ImageSource = str | Path | bytes | Image.Image
"""Anything the image codec accepts: a path, raw encoded bytes or a PIL image."""

DecodePolicy = Literal["raise", "skip"]
"""What to do with a sample whose image cannot be decoded."""

LabelledTensor = tuple[torch.Tensor, torch.Tensor]
"""(image tensor (3, S, S), 0-d int64 label tensor)."""
