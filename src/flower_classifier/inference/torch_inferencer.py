"""PyTorch inferencer for trained flower classifier weights."""

from __future__ import annotations

import time
from datetime import timedelta
from pathlib import Path

import torch
from loguru import logger

from flower_classifier.config import (
    DEFAULT_MODEL_FILE_NAME,
    IMAGE_SIZE,
    MODEL_WEIGHTS_DIR,
    InferenceConfig,
    select_device,
)
from flower_classifier.errors import ModelNotFoundError
from flower_classifier.inference.base import BaseClassificationInferencer
from flower_classifier.models.checkpoint import load_weights, read_labels_mapping
from flower_classifier.models.classifier import FlowerClassifier
from flower_classifier.schemas.prediction import (
    ClassificationPrediction,
    ClassificationResult,
)
from flower_classifier.transforms import load_image_tensor
from flower_classifier.types import ImageSource

# Alphabetical folder order of the flower_photos dataset. Only used for weights
# saved without a labels mapping sidecar.
DEFAULT_CLASS_NAMES: tuple[str, ...] = (
    "daisy",
    "dandelion",
    "roses",
    "sunflowers",
    "tulips",
)


class FlowerInferencer(BaseClassificationInferencer):
    """Classify images with weights saved by the training engine.

    The model is loaded lazily on the first prediction, and again whenever a
    different ``model_file_name`` is requested. Class names and input size
    come from the weights' labels mapping sidecar; weights without one fall
    back to ``class_names`` and ``image_size``.

    Images go through the same resize and tensor conversion as training.

    Args:
        weights_dir: Directory holding the weights files.
        image_size: Input size for weights without a sidecar.
        device: Execution device; CUDA when available, else CPU.
        class_names: Index-ordered names for weights without a sidecar.
    """

    def __init__(
        self,
        weights_dir: str | Path = MODEL_WEIGHTS_DIR,
        image_size: int = IMAGE_SIZE,
        device: str | None = None,
        class_names: tuple[str, ...] = DEFAULT_CLASS_NAMES,
    ) -> None:
        self.weights_dir = Path(weights_dir)
        self.default_image_size = image_size
        self.default_class_names = tuple(class_names)
        self.device = select_device(device)

        self.model: FlowerClassifier | None = None
        self.model_file_name: str | None = None
        self.class_names: tuple[str, ...] = ()
        self.image_size = image_size
        self.last_inference_duration = timedelta(0)

    @classmethod
    def from_config(cls, config: InferenceConfig) -> FlowerInferencer:
        return cls(
            weights_dir=config.weights_dir,
            image_size=config.image_size,
            device=config.device,
        )

    def load_model(self, model_file_name: str = DEFAULT_MODEL_FILE_NAME) -> FlowerClassifier:
        """Load ``weights_dir / model_file_name`` into a fresh model and return it.

        The current model is only replaced once the new one loaded cleanly.

        Raises:
            ModelNotFoundError: The weights file does not exist.
            ModelMismatchError: The weights do not fit the expected class count.
        """
        weights_path = self.weights_dir / model_file_name
        if not weights_path.is_file():
            raise ModelNotFoundError(f"Model file not found: {weights_path}")

        mapping = read_labels_mapping(weights_path)
        if mapping is not None:
            class_names = mapping.class_names
            image_size = mapping.image_size
        else:
            logger.warning(
                f"No labels mapping next to {weights_path}; "
                f"assuming classes {list(self.default_class_names)}"
            )
            class_names = self.default_class_names
            image_size = self.default_image_size

        model = FlowerClassifier(num_classes=len(class_names), image_size=image_size)
        load_weights(model, weights_path, map_location=self.device)
        model.to(self.device)
        model.eval()

        self.model = model
        self.model_file_name = model_file_name
        self.class_names = class_names
        self.image_size = image_size
        logger.info(f"Loaded {weights_path} ({len(class_names)} classes) on {self.device}")
        return model

    def _ensure_model(self, model_file_name: str) -> FlowerClassifier:
        if self.model is None or model_file_name != self.model_file_name:
            return self.load_model(model_file_name)
        return self.model

    def predict(
        self,
        image: ImageSource,
        model_file_name: str = DEFAULT_MODEL_FILE_NAME,
    ) -> ClassificationResult:
        """Classify one image.

        Args:
            image: Path, encoded bytes or PIL image.
            model_file_name: Weights file under ``weights_dir``.

        Returns:
            Probabilities for every class sorted by confidence descending,
            plus the wall-clock duration of this call.

        Raises:
            ModelNotFoundError: The weights file does not exist.
            DecodeError: ``image`` is not a decodable picture.
        """
        started = time.perf_counter()
        model = self._ensure_model(model_file_name)
        tensor = load_image_tensor(image, self.image_size).unsqueeze(0).to(self.device)
        with torch.inference_mode():
            probs = model(tensor).softmax(dim=1).squeeze(0).cpu()
        del tensor

        elapsed = self._record_duration(started)
        return self._to_result(probs.tolist(), elapsed)

    def predict_batch(
        self,
        images: list[ImageSource],
        model_file_name: str = DEFAULT_MODEL_FILE_NAME,
    ) -> list[ClassificationResult]:
        """Classify several images in one forward pass.

        Every result carries the duration of the whole batch.
        """
        if not images:
            return []
        started = time.perf_counter()
        model = self._ensure_model(model_file_name)
        batch = torch.stack(
            [load_image_tensor(img, self.image_size) for img in images]
        ).to(self.device)
        with torch.inference_mode():
            probs = model(batch).softmax(dim=1).cpu()
        del batch

        elapsed = self._record_duration(started)
        return [self._to_result(row, elapsed) for row in probs.tolist()]

    def _record_duration(self, started: float) -> timedelta:
        self.last_inference_duration = timedelta(seconds=time.perf_counter() - started)
        logger.debug(f"Inference time: {self.last_inference_duration}")
        return self.last_inference_duration

    def _to_result(self, probs: list[float], elapsed: timedelta) -> ClassificationResult:
        predictions = [
            ClassificationPrediction(class_id=idx, label=self.class_names[idx], confidence=p)
            for idx, p in enumerate(probs)
        ]
        predictions.sort(key=lambda p: p.confidence, reverse=True)
        return ClassificationResult(predictions=predictions, elapsed=elapsed)
