"""Classify a single flower image with trained weights.

Usage::

    flower-classify photo.jpg
    flower-classify photo.jpg --model model_02.pth --weights-dir ModelWeights
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from loguru import logger
from rich.console import Console
from rich.table import Table

from flower_classifier.config import (
    DEFAULT_MODEL_FILE_NAME,
    MODEL_WEIGHTS_DIR,
    InferenceConfig,
)
from flower_classifier.errors import FlowerClassifierError
from flower_classifier.inference.torch_inferencer import FlowerInferencer
from flower_classifier.schemas.prediction import ClassificationResult


def print_result(result: ClassificationResult, console: Console | None = None) -> None:
    """Print per-class percentages, the top class and the inference time."""
    console = console or Console()
    table = Table(title="Classification")
    table.add_column("Class", style="cyan")
    table.add_column("Probability", justify="right", style="green")
    for prediction in result.predictions:
        table.add_row(prediction.label, f"{prediction.confidence * 100:.2f}%")
    console.print(table)
    console.print(f"Class: {result.top.label}")
    console.print(f"Inference time: {result.elapsed.total_seconds() * 1000:.1f} ms")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Classify a flower image")
    parser.add_argument("image", type=Path, help="Image file (.jpg, .jpeg or .png)")
    parser.add_argument(
        "--model",
        type=str,
        default=DEFAULT_MODEL_FILE_NAME,
        help=f"Weights file name (default: {DEFAULT_MODEL_FILE_NAME})",
    )
    parser.add_argument(
        "--weights-dir",
        type=Path,
        default=Path(MODEL_WEIGHTS_DIR),
        help=f"Directory holding the weights (default: {MODEL_WEIGHTS_DIR})",
    )
    parser.add_argument(
        "--device",
        type=str,
        default=None,
        help="Torch device (default: cuda when available, else cpu)",
    )
    parser.add_argument(
        "--log-level", type=str, default="WARNING", help="Loguru level (default: WARNING)"
    )
    args = parser.parse_args(argv)

    logger.remove()
    logger.add(sys.stderr, level=args.log_level)

    config = InferenceConfig(
        weights_dir=str(args.weights_dir),
        model_file_name=args.model,
        device=args.device,
    )
    inferencer = FlowerInferencer.from_config(config)
    try:
        result = inferencer.predict(args.image, config.model_file_name)
    except (FlowerClassifierError, OSError) as e:
        logger.error(f"Classification failed: {e}")
        return 1

    print_result(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
