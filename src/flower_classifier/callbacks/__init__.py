"""Training callbacks for flower_classifier."""

from flower_classifier.callbacks.model_info import ModelInfoCallback
from flower_classifier.callbacks.plotting import TrainingHistoryCallback
from flower_classifier.callbacks.statistics import DatasetStatisticsCallback

__all__ = [
    "DatasetStatisticsCallback",
    "ModelInfoCallback",
    "TrainingHistoryCallback",
]
