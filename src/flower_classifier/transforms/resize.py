"""Image decoding and square resizing for the classifier input."""

from __future__ import annotations

import io
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from flower_classifier.errors import DecodeError
from flower_classifier.types import ImageSource

# Downscales first shrink by whole factors with a box reduce, then resample
# the remainder bilinearly. Pillow's counterpart of linear mipmapping.
DOWNSCALE_REDUCING_GAP = 2.0


def choose_resample(
    source_size: tuple[int, int], target_size: tuple[int, int]
) -> Image.Resampling:
    """Pick the resampling filter for a resize from ``source_size`` to ``target_size``.

    Cubic when either target dimension exceeds the source, bilinear otherwise.
    """
    src_w, src_h = source_size
    dst_w, dst_h = target_size
    if dst_w > src_w or dst_h > src_h:
        return Image.Resampling.BICUBIC
    return Image.Resampling.BILINEAR


def _describe(source: ImageSource) -> str:
    if isinstance(source, bytes):
        return f"<{len(source)} bytes>"
    if isinstance(source, Image.Image):
        return f"<{source.mode} image {source.size}>"
    return str(source)


def decode_image(source: ImageSource) -> Image.Image:
    """Decode ``source`` into a fully loaded RGBA image owned by the caller.

    A PIL image is converted into a new image; the caller's object is left
    untouched.

    Raises:
        DecodeError: The data is not a readable image, or it exceeds
            Pillow's decompression bomb pixel limit.
        FileNotFoundError: ``source`` is a path that does not exist.
    """
    try:
        if isinstance(source, Image.Image):
            return source.convert("RGBA")
        stream = io.BytesIO(source) if isinstance(source, bytes) else Path(source)
        with Image.open(stream) as img:
            img.load()
            return img.convert("RGBA")
    except FileNotFoundError:
        raise
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        SyntaxError,
        ValueError,
    ) as e:
        raise DecodeError(f"Cannot decode image {_describe(source)}: {e}") from e


def resize_square(image: Image.Image, target_size: int) -> Image.Image:
    """Resize ``image`` to ``target_size`` x ``target_size``, ignoring aspect ratio."""
    size = (target_size, target_size)
    resample = choose_resample(image.size, size)
    if resample == Image.Resampling.BICUBIC:
        return image.resize(size, resample)
    return image.resize(size, resample, reducing_gap=DOWNSCALE_REDUCING_GAP)


def decode_and_resize(source: ImageSource, target_size: int) -> Image.Image:
    """Decode ``source`` and return an RGBA image of the square target size."""
    image = decode_image(source)
    try:
        return resize_square(image, target_size)
    finally:
        image.close()
