"""Abstract base class for classification inferencers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from flower_classifier.schemas.prediction import ClassificationResult
from flower_classifier.types import ImageSource


class BaseClassificationInferencer(ABC):
    """Base class for classification inferencers.

    Subclasses must implement ``predict`` (single image) and
    ``predict_batch`` (multiple images). Both return predictions
    sorted by descending confidence.
    """

    @abstractmethod
    def predict(self, image: ImageSource) -> ClassificationResult:
        """Run inference on a single image.

        Returns predictions sorted by confidence descending.
        """

    @abstractmethod
    def predict_batch(self, images: list[ImageSource]) -> list[ClassificationResult]:
        """Run inference on a batch of images.

        Returns one result per image, each sorted by confidence descending.
        """
