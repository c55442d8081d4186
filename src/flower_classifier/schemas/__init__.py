"""Pydantic schemas shared by training and inference."""

from flower_classifier.schemas.labels import LabelsMapping
from flower_classifier.schemas.prediction import (
    ClassificationPrediction,
    ClassificationResult,
)

__all__ = [
    "ClassificationPrediction",
    "ClassificationResult",
    "LabelsMapping",
]
