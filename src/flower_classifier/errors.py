"""Exception hierarchy raised by the training and inference pipeline."""

from __future__ import annotations


class FlowerClassifierError(Exception):
    """Base class for every error raised by flower_classifier."""


class DecodeError(FlowerClassifierError, ValueError):
    """Image bytes could not be decoded into a picture."""


class DatasetEmptyError(FlowerClassifierError, ValueError):
    """The dataset root holds no class folders or no usable images."""


class ModelNotFoundError(FlowerClassifierError, FileNotFoundError):
    """The requested weights file does not exist."""


class ModelMismatchError(FlowerClassifierError, RuntimeError):
    """Saved parameters do not fit the constructed architecture."""


class TrainingCancelledError(FlowerClassifierError):
    """Training stopped because its cancellation token was set."""
