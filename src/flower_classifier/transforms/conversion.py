"""Conversion of decoded images into classifier input tensors."""

from __future__ import annotations

import torch
from PIL import Image
from torchvision.transforms.v2 import functional as F

from flower_classifier.transforms.resize import decode_and_resize
from flower_classifier.types import ImageSource


def image_to_tensor(image: Image.Image) -> torch.Tensor:
    """Convert a PIL image to a float32 ``(3, H, W)`` tensor in ``[0, 1]``.

    The image is forced to RGBA, scaled from ``[0, 255]`` to ``[0.0, 1.0]``,
    laid out channels-first, and the colour channels are premultiplied by
    alpha before the alpha channel is dropped. Opaque images are unaffected
    by the premultiplication.
    """
    rgba = image if image.mode == "RGBA" else image.convert("RGBA")
    try:
        raw = F.pil_to_tensor(rgba)  # (4, H, W) uint8
    finally:
        if rgba is not image:
            rgba.close()
    scaled = F.to_dtype(raw, torch.float32, scale=True)
    del raw
    return scaled[:3] * scaled[3:4]


def load_image_tensor(source: ImageSource, image_size: int) -> torch.Tensor:
    """Decode, resize and convert ``source`` into a ``(3, image_size, image_size)`` tensor.

    This is the single preprocessing path shared by training and inference.
    """
    resized = decode_and_resize(source, image_size)
    try:
        return image_to_tensor(resized)
    finally:
        resized.close()
