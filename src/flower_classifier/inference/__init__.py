"""Classification inference framework."""

from flower_classifier.inference.base import BaseClassificationInferencer
from flower_classifier.inference.torch_inferencer import (
    DEFAULT_CLASS_NAMES,
    FlowerInferencer,
)

__all__ = [
    "DEFAULT_CLASS_NAMES",
    "BaseClassificationInferencer",
    "FlowerInferencer",
]
