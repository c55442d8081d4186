"""Convolutional flower classifier."""

from __future__ import annotations

from collections import OrderedDict

import torch
import torch.nn as nn

from flower_classifier.config import IMAGE_SIZE, IMAGE_SIZE_MULTIPLE

CONV_CHANNELS: tuple[int, ...] = (3, 16, 32, 64, 128)
HIDDEN_FEATURES: tuple[int, ...] = (128, 64)


class FlowerClassifier(nn.Module):
    """Four conv blocks followed by a three-layer fully connected head.

    Each block is ``Conv2d(3x3, stride 1, pad 1) -> ReLU -> MaxPool2d(2) ->
    Dropout2d``, taking the channels from 3 up to 128. Four halvings turn a
    ``S x S`` input into a ``S/16 x S/16`` map, so the flatten width is
    ``128 * (S/16)**2`` (``128 * 16 * 16`` for the default 256 input). The
    head is ``Linear -> ReLU -> Dropout -> Linear -> ReLU -> Dropout ->
    Linear``.

    Dropout is only active in training mode; callers switch with
    :meth:`train` / :meth:`eval`.

    Args:
        num_classes: Number of output logits.
        image_size: Side length of the square input. Must be a positive
            multiple of 16.
        conv_dropout: Dropout rate after each conv block.
        fc_dropout: Dropout rate between the linear layers.
    """

    def __init__(
        self,
        num_classes: int = 5,
        image_size: int = IMAGE_SIZE,
        conv_dropout: float = 0.4,
        fc_dropout: float = 0.5,
    ) -> None:
        super().__init__()
        if num_classes < 1:
            raise ValueError(f"num_classes must be >= 1, got {num_classes}")
        if image_size <= 0 or image_size % IMAGE_SIZE_MULTIPLE:
            msg = (
                f"image_size must be a positive multiple of {IMAGE_SIZE_MULTIPLE}, "
                f"got {image_size}"
            )
            raise ValueError(msg)
        self.num_classes = num_classes
        self.image_size = image_size

        blocks: OrderedDict[str, nn.Module] = OrderedDict()
        for i, (c_in, c_out) in enumerate(
            zip(CONV_CHANNELS[:-1], CONV_CHANNELS[1:], strict=True), start=1
        ):
            blocks[f"conv{i}"] = nn.Conv2d(c_in, c_out, kernel_size=3, stride=1, padding=1)
            blocks[f"relu{i}"] = nn.ReLU()
            blocks[f"pool{i}"] = nn.MaxPool2d(2)
            blocks[f"drop{i}"] = nn.Dropout2d(conv_dropout)
        self.features = nn.Sequential(blocks)

        spatial = image_size // IMAGE_SIZE_MULTIPLE
        hidden_in, hidden_mid = HIDDEN_FEATURES
        self.classifier = nn.Sequential(
            OrderedDict(
                [
                    ("fc1", nn.Linear(CONV_CHANNELS[-1] * spatial * spatial, hidden_in)),
                    ("relu1", nn.ReLU()),
                    ("drop1", nn.Dropout(fc_dropout)),
                    ("fc2", nn.Linear(hidden_in, hidden_mid)),
                    ("relu2", nn.ReLU()),
                    ("drop2", nn.Dropout(fc_dropout)),
                    ("fc3", nn.Linear(hidden_mid, num_classes)),
                ]
            )
        )

    @property
    def flatten_features(self) -> int:
        """Width of the flattened feature map fed to the head."""
        return self.classifier.fc1.in_features  # type: ignore[no-any-return]

    def forward(self, images: torch.Tensor) -> torch.Tensor:
        """Map ``(N, 3, S, S)`` images to ``(N, num_classes)`` logits."""
        x = self.features(images)
        x = torch.flatten(x, 1)
        return self.classifier(x)  # type: ignore[no-any-return]


def count_parameters(model: nn.Module) -> tuple[int, int]:
    """Return ``(total, trainable)`` parameter counts."""
    total = sum(p.numel() for p in model.parameters())
    trainable = sum(p.numel() for p in model.parameters() if p.requires_grad)
    return total, trainable
