"""Shared pytest fixtures for flower_classifier tests."""

from collections.abc import Callable
from pathlib import Path

import pytest
from PIL import Image

from flower_classifier.config import TrainingConfig

CLASS_COLORS: dict[str, tuple[int, int, int]] = {
    "daisy": (240, 240, 60),
    "tulips": (200, 20, 40),
}

# Mixed sizes so both up- and downscaling paths run when resizing to 32.
IMAGE_SIZES: tuple[tuple[int, int], ...] = ((48, 36), (20, 28), (64, 64), (16, 40))


def _write_image(
    path: Path,
    size: tuple[int, int] = (40, 40),
    color: tuple[int, ...] = (128, 128, 128),
    mode: str = "RGB",
) -> Path:
    """Write a solid-colour image to ``path`` in the format implied by its suffix."""
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new(mode, size, color=color).save(path)
    return path


def _write_corrupt_image(path: Path) -> Path:
    """Write bytes that carry an image suffix but are not an image."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"definitely not a jpeg" * 8)
    return path


@pytest.fixture()
def flower_dataset_dir(tmp_path: Path) -> Path:
    """Image-folder dataset: 2 classes x 10 images = 20 images.

    Structure::

        flowers/
          daisy/   img_00.jpg ... img_09.png
          tulips/  img_00.jpg ... img_09.png

    Even indices are JPEG, odd indices PNG, sizes cycle through IMAGE_SIZES.
    Each class has its own base colour so a model can separate them.
    """
    root = tmp_path / "flowers"
    for name, (r, g, b) in CLASS_COLORS.items():
        for i in range(10):
            suffix = ".jpg" if i % 2 == 0 else ".png"
            _write_image(
                root / name / f"img_{i:02d}{suffix}",
                size=IMAGE_SIZES[i % len(IMAGE_SIZES)],
                color=(r, max(0, g - i), b),
            )
    return root


@pytest.fixture()
def weights_dir(tmp_path: Path) -> Path:
    return tmp_path / "ModelWeights"


@pytest.fixture()
def tiny_config(weights_dir: Path) -> TrainingConfig:
    """Fast CPU training config: 2 epochs at 32x32."""
    return TrainingConfig(
        epochs=2,
        batch_size=4,
        image_size=32,
        weights_dir=str(weights_dir),
        device="cpu",
    )


@pytest.fixture()
def sample_image(tmp_path: Path) -> Path:
    return _write_image(tmp_path / "query.jpg", size=(50, 30), color=(230, 230, 70))


@pytest.fixture()
def make_image() -> Callable[..., Path]:
    """Factory fixture writing a solid-colour image; see ``_write_image``."""
    return _write_image


@pytest.fixture()
def write_corrupt_image() -> Callable[[Path], Path]:
    """Factory fixture writing a file with an image suffix but no image data."""
    return _write_corrupt_image
