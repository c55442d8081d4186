"""Tests for FlowerClassifier and weights persistence."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import torch
import torch.nn as nn

from flower_classifier.errors import ModelMismatchError, ModelNotFoundError
from flower_classifier.models import (
    FlowerClassifier,
    count_parameters,
    labels_mapping_path,
    load_weights,
    read_labels_mapping,
    save_weights,
)
from flower_classifier.types import ClassificationBatch

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def batch_32() -> ClassificationBatch:
    """Small 2-class batch: B=4, 3-channel 32x32 images."""
    return {
        "images": torch.rand(4, 3, 32, 32),
        "labels": torch.randint(0, 2, (4,)),
    }


@pytest.fixture()
def model_32() -> FlowerClassifier:
    return FlowerClassifier(num_classes=2, image_size=32)


# ---------------------------------------------------------------------------
# Architecture
# ---------------------------------------------------------------------------


class TestArchitecture:
    def test_default_forward_shape(self) -> None:
        model = FlowerClassifier().eval()
        with torch.no_grad():
            out = model(torch.rand(2, 3, 256, 256))
        assert out.shape == (2, 5)

    def test_default_flatten_width(self) -> None:
        assert FlowerClassifier().flatten_features == 128 * 16 * 16

    def test_small_input_flatten_width(self, model_32: FlowerClassifier) -> None:
        assert model_32.flatten_features == 128 * 2 * 2

    def test_forward_shape(
        self, model_32: FlowerClassifier, batch_32: ClassificationBatch
    ) -> None:
        assert model_32(batch_32["images"]).shape == (4, 2)

    def test_conv_channels(self, model_32: FlowerClassifier) -> None:
        convs = [m for m in model_32.features if isinstance(m, nn.Conv2d)]
        assert [(c.in_channels, c.out_channels) for c in convs] == [
            (3, 16),
            (16, 32),
            (32, 64),
            (64, 128),
        ]
        for conv in convs:
            assert conv.kernel_size == (3, 3)
            assert conv.stride == (1, 1)
            assert conv.padding == (1, 1)

    def test_dropout_after_every_block(self, model_32: FlowerClassifier) -> None:
        drops = [m for m in model_32.features if isinstance(m, nn.Dropout2d)]
        assert len(drops) == 4
        assert all(d.p == pytest.approx(0.4) for d in drops)

    def test_head_layers(self, model_32: FlowerClassifier) -> None:
        linears = [m for m in model_32.classifier if isinstance(m, nn.Linear)]
        assert [(fc.in_features, fc.out_features) for fc in linears] == [
            (512, 128),
            (128, 64),
            (64, 2),
        ]
        drops = [m for m in model_32.classifier if isinstance(m, nn.Dropout)]
        assert all(d.p == pytest.approx(0.5) for d in drops)

    @pytest.mark.parametrize("size", [0, 20, 250])
    def test_invalid_image_size(self, size: int) -> None:
        with pytest.raises(ValueError, match="multiple of 16"):
            FlowerClassifier(image_size=size)

    def test_invalid_num_classes(self) -> None:
        with pytest.raises(ValueError):
            FlowerClassifier(num_classes=0)

    def test_count_parameters(self, model_32: FlowerClassifier) -> None:
        total, trainable = count_parameters(model_32)
        assert total == sum(p.numel() for p in model_32.parameters())
        assert trainable == total


class TestModes:
    def test_eval_is_deterministic(
        self, model_32: FlowerClassifier, batch_32: ClassificationBatch
    ) -> None:
        model_32.eval()
        assert not model_32.training
        with torch.no_grad():
            a = model_32(batch_32["images"])
            b = model_32(batch_32["images"])
        assert torch.equal(a, b)

    def test_train_mode_applies_dropout(
        self, model_32: FlowerClassifier, batch_32: ClassificationBatch
    ) -> None:
        torch.manual_seed(0)
        model_32.train()
        assert model_32.training
        with torch.no_grad():
            a = model_32(batch_32["images"])
            b = model_32(batch_32["images"])
        assert not torch.equal(a, b)

    def test_backward_reaches_first_conv(
        self, model_32: FlowerClassifier, batch_32: ClassificationBatch
    ) -> None:
        loss = nn.functional.cross_entropy(model_32(batch_32["images"]), batch_32["labels"])
        loss.backward()
        assert model_32.features.conv1.weight.grad is not None


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class TestCheckpoint:
    def test_labels_mapping_path(self) -> None:
        path = labels_mapping_path(Path("ModelWeights/model_01.pth"))
        assert path == Path("ModelWeights/model_01.labels.json")

    def test_round_trip(self, model_32: FlowerClassifier, tmp_path: Path) -> None:
        path = tmp_path / "weights" / "model_01.pth"
        written = save_weights(model_32, path, {"daisy": 0, "tulips": 1}, image_size=32)
        assert written == path
        assert path.is_file()

        restored = FlowerClassifier(num_classes=2, image_size=32)
        load_weights(restored, path)
        for key, value in model_32.state_dict().items():
            assert torch.equal(value, restored.state_dict()[key])

    def test_sidecar_written(self, model_32: FlowerClassifier, tmp_path: Path) -> None:
        path = tmp_path / "model_01.pth"
        save_weights(model_32, path, {"daisy": 0, "tulips": 1}, image_size=32)
        data = json.loads(labels_mapping_path(path).read_text())
        assert data["class_to_idx"] == {"daisy": 0, "tulips": 1}

        mapping = read_labels_mapping(path)
        assert mapping is not None
        assert mapping.class_names == ("daisy", "tulips")
        assert mapping.image_size == 32

    def test_read_labels_mapping_missing(self, tmp_path: Path) -> None:
        assert read_labels_mapping(tmp_path / "model_01.pth") is None

    def test_save_overwrites(self, tmp_path: Path) -> None:
        path = tmp_path / "model_01.pth"
        first = FlowerClassifier(num_classes=2, image_size=32)
        second = FlowerClassifier(num_classes=2, image_size=32)
        save_weights(first, path, {"a": 0, "b": 1}, image_size=32)
        save_weights(second, path, {"a": 0, "b": 1}, image_size=32)

        restored = load_weights(FlowerClassifier(num_classes=2, image_size=32), path)
        assert torch.equal(
            restored.state_dict()["classifier.fc3.weight"],
            second.state_dict()["classifier.fc3.weight"],
        )

    def test_class_count_mismatch(self, model_32: FlowerClassifier, tmp_path: Path) -> None:
        path = tmp_path / "model_01.pth"
        save_weights(model_32, path, {"a": 0, "b": 1}, image_size=32)
        with pytest.raises(ModelMismatchError, match="fc3"):
            load_weights(FlowerClassifier(num_classes=3, image_size=32), path)

    def test_image_size_mismatch(self, model_32: FlowerClassifier, tmp_path: Path) -> None:
        path = tmp_path / "model_01.pth"
        save_weights(model_32, path, {"a": 0, "b": 1}, image_size=32)
        with pytest.raises(ModelMismatchError, match="fc1"):
            load_weights(FlowerClassifier(num_classes=2, image_size=64), path)

    def test_foreign_state_dict(self, tmp_path: Path) -> None:
        path = tmp_path / "other.pth"
        torch.save(nn.Linear(4, 2).state_dict(), path)
        with pytest.raises(ModelMismatchError, match="missing"):
            load_weights(FlowerClassifier(num_classes=2, image_size=32), path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ModelNotFoundError):
            load_weights(FlowerClassifier(num_classes=2, image_size=32), tmp_path / "x.pth")

    def test_missing_file_is_file_not_found(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_weights(FlowerClassifier(num_classes=2, image_size=32), tmp_path / "x.pth")
