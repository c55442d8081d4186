"""Top-level training and classification entry points.

``train`` and ``classify`` block the calling thread. :class:`BackgroundWorker`
runs them on a single worker thread so an interactive front end stays
responsive while a job runs.
"""

from __future__ import annotations

import functools
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path

import lightning as L
from loguru import logger

from flower_classifier.config import (
    DEFAULT_MODEL_FILE_NAME,
    MODEL_WEIGHTS_DIR,
    InferenceConfig,
    TrainingConfig,
)
from flower_classifier.inference.torch_inferencer import FlowerInferencer
from flower_classifier.schemas.prediction import ClassificationResult
from flower_classifier.training.cancellation import CancellationToken
from flower_classifier.training.engine import TrainingEngine
from flower_classifier.training.metrics import TrainingMetrics
from flower_classifier.training.progress import ProgressSink
from flower_classifier.types import ImageSource


@functools.lru_cache(maxsize=8)
def _cached_inferencer(weights_dir: str) -> FlowerInferencer:
    return FlowerInferencer.from_config(InferenceConfig(weights_dir=weights_dir))


def classify(
    image_path: ImageSource,
    model_file_name: str = DEFAULT_MODEL_FILE_NAME,
    *,
    weights_dir: str | Path = MODEL_WEIGHTS_DIR,
    inferencer: FlowerInferencer | None = None,
) -> ClassificationResult:
    """Classify one image with the weights ``weights_dir / model_file_name``.

    The loaded model is reused across calls for the same ``weights_dir``
    until a different ``model_file_name`` is requested.

    Raises:
        ModelNotFoundError: The weights file does not exist.
        DecodeError: The image cannot be decoded.
    """
    if inferencer is None:
        inferencer = _cached_inferencer(str(Path(weights_dir)))
    result = inferencer.predict(image_path, model_file_name)
    logger.info(
        f"Class: {result.top.label} ({result.top.confidence:.2%}) "
        f"in {result.elapsed.total_seconds() * 1000:.1f} ms"
    )
    return result


def train(
    dataset_dir: str | Path,
    model_file_name: str = DEFAULT_MODEL_FILE_NAME,
    progress_sink: ProgressSink | None = None,
    *,
    config: TrainingConfig | None = None,
    cancel_token: CancellationToken | None = None,
    callbacks: Sequence[L.Callback] | None = None,
) -> TrainingMetrics:
    """Train on ``dataset_dir`` and save the weights as ``model_file_name``.

    Returns:
        Per-epoch train/validation loss and accuracy.
    """
    engine = TrainingEngine(
        config=config,
        progress_sink=progress_sink,
        callbacks=callbacks,
        cancel_token=cancel_token,
    )
    metrics = engine.train(dataset_dir, model_file_name)
    # Weights may have been overwritten; force the next classify to reload them.
    _cached_inferencer.cache_clear()
    return metrics


class BackgroundWorker:
    """Run training and classification jobs on one background thread.

    Jobs execute one at a time in submission order. Results and exceptions
    are delivered through the returned futures.

    Usage::

        with BackgroundWorker() as worker:
            token = CancellationToken()
            future = worker.submit_training("flower_photos", cancel_token=token)
            ...
            metrics = future.result()
    """

    def __init__(self) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="flower-worker"
        )

    def submit_training(
        self,
        dataset_dir: str | Path,
        model_file_name: str = DEFAULT_MODEL_FILE_NAME,
        progress_sink: ProgressSink | None = None,
        *,
        config: TrainingConfig | None = None,
        cancel_token: CancellationToken | None = None,
        callbacks: Sequence[L.Callback] | None = None,
    ) -> Future[TrainingMetrics]:
        return self._executor.submit(
            train,
            dataset_dir,
            model_file_name,
            progress_sink,
            config=config,
            cancel_token=cancel_token,
            callbacks=callbacks,
        )

    def submit_classification(
        self,
        image_path: ImageSource,
        model_file_name: str = DEFAULT_MODEL_FILE_NAME,
        *,
        weights_dir: str | Path = MODEL_WEIGHTS_DIR,
        inferencer: FlowerInferencer | None = None,
    ) -> Future[ClassificationResult]:
        return self._executor.submit(
            classify,
            image_path,
            model_file_name,
            weights_dir=weights_dir,
            inferencer=inferencer,
        )

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> BackgroundWorker:
        return self

    def __exit__(self, *exc: object) -> None:
        self.shutdown()
