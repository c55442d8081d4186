"""Flower image classification: training and inference pipeline."""

__version__ = "0.1.0"
