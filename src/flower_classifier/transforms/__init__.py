"""Image codec: decoding, square resizing and tensor conversion.

Training and inference both go through :func:`load_image_tensor`, so a
picture is resized and scaled identically wherever it enters the pipeline.
"""

from flower_classifier.transforms.conversion import (
    image_to_tensor,
    load_image_tensor,
)
from flower_classifier.transforms.resize import (
    choose_resample,
    decode_and_resize,
    decode_image,
    resize_square,
)

__all__ = [
    "choose_resample",
    "decode_and_resize",
    "decode_image",
    "image_to_tensor",
    "load_image_tensor",
    "resize_square",
]
