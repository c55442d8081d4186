"""Training engine, progress reporting and cancellation."""

from flower_classifier.training.cancellation import CancellationToken
from flower_classifier.training.engine import (
    TrainingEngine,
    TrainingProgressCallback,
    TrainingState,
)
from flower_classifier.training.metrics import (
    EpochSummary,
    EvaluationSummary,
    RunningStats,
    TrainingMetrics,
)
from flower_classifier.training.module import FlowerClassificationModule
from flower_classifier.training.progress import (
    ProgressSink,
    QueueProgressSink,
    TrainingProgress,
)

__all__ = [
    "CancellationToken",
    "EpochSummary",
    "EvaluationSummary",
    "FlowerClassificationModule",
    "ProgressSink",
    "QueueProgressSink",
    "RunningStats",
    "TrainingEngine",
    "TrainingMetrics",
    "TrainingProgress",
    "TrainingProgressCallback",
    "TrainingState",
]
