"""Classification prediction schemas."""

from __future__ import annotations

from datetime import timedelta

from pydantic import BaseModel


class ClassificationPrediction(BaseModel, frozen=True):
    """A single classification prediction."""

    class_id: int
    label: str
    confidence: float


class ClassificationResult(BaseModel, frozen=True):
    """Outcome of classifying one image.

    ``predictions`` covers every class, sorted by confidence descending.
    ``elapsed`` is the wall-clock duration of the call that produced it.
    """

    predictions: list[ClassificationPrediction]
    elapsed: timedelta

    @property
    def top(self) -> ClassificationPrediction:
        """Most likely class."""
        return self.predictions[0]

    @property
    def probabilities(self) -> dict[str, float]:
        """Class name to probability, in class index order."""
        ordered = sorted(self.predictions, key=lambda p: p.class_id)
        return {p.label: p.confidence for p in ordered}
