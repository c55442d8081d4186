"""Classification model and its weights persistence."""

from flower_classifier.models.checkpoint import (
    labels_mapping_path,
    load_weights,
    read_labels_mapping,
    save_weights,
    write_labels_mapping,
)
from flower_classifier.models.classifier import FlowerClassifier, count_parameters

__all__ = [
    "FlowerClassifier",
    "count_parameters",
    "labels_mapping_path",
    "load_weights",
    "read_labels_mapping",
    "save_weights",
    "write_labels_mapping",
]
