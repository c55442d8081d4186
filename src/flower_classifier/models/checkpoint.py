"""Weights file persistence with a labels mapping sidecar."""

from __future__ import annotations

import json
from pathlib import Path

import torch
import torch.nn as nn
from loguru import logger

from flower_classifier.errors import ModelMismatchError, ModelNotFoundError
from flower_classifier.schemas.labels import LabelsMapping

LABELS_SUFFIX = ".labels.json"


def labels_mapping_path(weights_path: Path) -> Path:
    """Sidecar location for ``weights_path``: ``model_01.pth`` -> ``model_01.labels.json``."""
    return weights_path.with_name(weights_path.stem + LABELS_SUFFIX)


def write_labels_mapping(
    save_path: Path, class_to_idx: dict[str, int], image_size: int
) -> None:
    """Write ``class_to_idx``, its inverse and the input size as JSON.

    Args:
        save_path: Destination path of the JSON file.
        class_to_idx: Class name to contiguous index.
        image_size: Square input size the model was trained with.
    """
    mapping = LabelsMapping.from_class_to_idx(class_to_idx, image_size)
    payload = {
        "num_classes": mapping.num_classes,
        "class_to_idx": mapping.class_to_idx,
        "idx_to_class": {str(k): v for k, v in mapping.idx_to_class.items()},
        "image_size": mapping.image_size,
    }
    save_path.parent.mkdir(parents=True, exist_ok=True)
    with open(save_path, "w") as f:
        json.dump(payload, f, indent=2)
    logger.debug(f"Saved labels mapping to {save_path}")


def read_labels_mapping(weights_path: Path) -> LabelsMapping | None:
    """Load the sidecar of ``weights_path``, or ``None`` when there is none."""
    path = labels_mapping_path(weights_path)
    if not path.is_file():
        return None
    with open(path) as f:
        return LabelsMapping.model_validate(json.load(f))


def save_weights(
    model: nn.Module,
    weights_path: str | Path,
    class_to_idx: dict[str, int],
    image_size: int,
) -> Path:
    """Serialize ``model.state_dict()`` to ``weights_path`` plus its labels sidecar.

    Existing files are overwritten. Filesystem failures propagate as ``OSError``.

    Returns:
        The weights path written.
    """
    weights_path = Path(weights_path)
    weights_path.parent.mkdir(parents=True, exist_ok=True)
    torch.save(model.state_dict(), weights_path)
    write_labels_mapping(labels_mapping_path(weights_path), class_to_idx, image_size)
    logger.info(f"Saved model weights to {weights_path}")
    return weights_path


def load_weights(
    model: nn.Module,
    weights_path: str | Path,
    map_location: str | torch.device = "cpu",
) -> nn.Module:
    """Restore parameters from ``weights_path`` into ``model`` after checking shapes.

    Raises:
        ModelNotFoundError: ``weights_path`` does not exist.
        ModelMismatchError: Parameter names or shapes differ from ``model``,
            e.g. a different class count.
    """
    weights_path = Path(weights_path)
    if not weights_path.is_file():
        raise ModelNotFoundError(f"Model file not found: {weights_path}")

    state = torch.load(weights_path, map_location=map_location, weights_only=True)
    expected = model.state_dict()

    problems: list[str] = []
    missing = sorted(expected.keys() - state.keys())
    unexpected = sorted(state.keys() - expected.keys())
    if missing:
        problems.append(f"missing {missing}")
    if unexpected:
        problems.append(f"unexpected {unexpected}")
    for key in sorted(expected.keys() & state.keys()):
        if expected[key].shape != state[key].shape:
            problems.append(
                f"{key}: saved {tuple(state[key].shape)} != model {tuple(expected[key].shape)}"
            )
    if problems:
        msg = f"Weights in {weights_path} do not fit {type(model).__name__}: " + "; ".join(
            problems
        )
        raise ModelMismatchError(msg)

    model.load_state_dict(state)
    return model
