"""Pydantic frozen configuration models for flower_classifier."""

from __future__ import annotations

import torch
from pydantic import BaseModel, Field, field_validator, model_validator

from flower_classifier.types import DecodePolicy

MODEL_WEIGHTS_DIR = "ModelWeights"
DEFAULT_MODEL_FILE_NAME = "model_01.pth"
IMAGE_SIZE = 256

# The classifier halves the spatial size four times.
IMAGE_SIZE_MULTIPLE = 16


def _check_image_size(value: int) -> int:
    if value <= 0 or value % IMAGE_SIZE_MULTIPLE:
        msg = f"image_size must be a positive multiple of {IMAGE_SIZE_MULTIPLE}, got {value}"
        raise ValueError(msg)
    return value


class TrainingConfig(BaseModel, frozen=True):
    """Hyperparameters and paths for :class:`~flower_classifier.training.TrainingEngine`.

    All fields are validated at construction time. Frozen, no mutation after creation.
    """

    epochs: int = Field(default=80, ge=1)
    batch_size: int = Field(default=64, ge=1)
    learning_rate: float = Field(default=2e-4, gt=0.0)
    weight_decay: float = Field(default=1e-5, ge=0.0)
    image_size: int = IMAGE_SIZE
    seed: int = 42
    train_fraction: float = Field(default=0.8, ge=0.0, le=1.0)
    val_fraction: float = Field(default=0.15, ge=0.0, le=1.0)
    weights_dir: str = MODEL_WEIGHTS_DIR
    on_decode_error: DecodePolicy = "skip"
    num_workers: int = Field(default=0, ge=0)
    device: str | None = None

    @field_validator("image_size")
    @classmethod
    def _image_size_divisible(cls, value: int) -> int:
        return _check_image_size(value)

    @model_validator(mode="after")
    def _fractions_fit(self) -> TrainingConfig:
        """train + val may not claim more than the whole dataset."""
        if self.train_fraction + self.val_fraction > 1.0:
            msg = (
                f"train_fraction ({self.train_fraction}) + val_fraction "
                f"({self.val_fraction}) exceeds 1.0"
            )
            raise ValueError(msg)
        return self


class InferenceConfig(BaseModel, frozen=True):
    """Settings for :class:`~flower_classifier.inference.FlowerInferencer`."""

    weights_dir: str = MODEL_WEIGHTS_DIR
    model_file_name: str = DEFAULT_MODEL_FILE_NAME
    image_size: int = IMAGE_SIZE
    device: str | None = None

    @field_validator("image_size")
    @classmethod
    def _image_size_divisible(cls, value: int) -> int:
        return _check_image_size(value)


def select_device(preferred: str | None = None) -> torch.device:
    """Return ``preferred`` if given, else CUDA when available, else CPU."""
    if preferred is not None:
        return torch.device(preferred)
    return torch.device("cuda" if torch.cuda.is_available() else "cpu")
