"""Unit tests for ImageFolderDataset and the epoch plan."""

from collections.abc import Callable
from pathlib import Path

import pytest
import torch

from flower_classifier.data.dataset import ImageFolderDataset, epoch_plan
from flower_classifier.errors import DecodeError


class TestEpochPlan:
    def test_is_permutation(self) -> None:
        assert sorted(epoch_plan(20, seed=42, epoch=0)) == list(range(20))

    def test_deterministic(self) -> None:
        assert epoch_plan(50, seed=7, epoch=3) == epoch_plan(50, seed=7, epoch=3)

    def test_epochs_differ(self) -> None:
        assert epoch_plan(50, seed=42, epoch=0) != epoch_plan(50, seed=42, epoch=1)

    def test_seeds_differ(self) -> None:
        assert epoch_plan(50, seed=1, epoch=0) != epoch_plan(50, seed=2, epoch=0)

    def test_empty(self) -> None:
        assert epoch_plan(0, seed=42, epoch=0) == []

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValueError):
            epoch_plan(-1, seed=42, epoch=0)


class TestImageFolderDataset:
    def test_class_to_idx_sorted(self, flower_dataset_dir: Path) -> None:
        ds = ImageFolderDataset(flower_dataset_dir, image_size=32)
        assert ds.class_to_idx == {"daisy": 0, "tulips": 1}
        assert ds.idx_to_class == {0: "daisy", 1: "tulips"}
        assert ds.num_classes == 2

    def test_class_to_idx_is_a_copy(self, flower_dataset_dir: Path) -> None:
        ds = ImageFolderDataset(flower_dataset_dir, image_size=32)
        ds.class_to_idx["roses"] = 9
        assert "roses" not in ds.class_to_idx

    def test_len(self, flower_dataset_dir: Path) -> None:
        ds = ImageFolderDataset(flower_dataset_dir, image_size=32)
        assert len(ds) == 20

    def test_getitem_returns_tensor_and_label(self, flower_dataset_dir: Path) -> None:
        ds = ImageFolderDataset(flower_dataset_dir, image_size=32)
        img, label = ds[0]
        assert img.shape == (3, 32, 32)
        assert img.dtype == torch.float32
        assert label.dtype == torch.int64
        assert label.dim() == 0

    def test_labels_follow_folders(self, flower_dataset_dir: Path) -> None:
        ds = ImageFolderDataset(flower_dataset_dir, image_size=32)
        for path, label in ds.samples:
            assert ds.idx_to_class[label] == path.parent.name

    def test_samples_in_scan_order(self, flower_dataset_dir: Path) -> None:
        ds = ImageFolderDataset(flower_dataset_dir, image_size=32)
        labels = [label for _, label in ds.samples]
        assert labels == sorted(labels)
        daisy = [p.name for p, label in ds.samples if label == 0]
        assert daisy == sorted(daisy)

    def test_ignores_other_files_and_nested_folders(
        self, tmp_path: Path, make_image: Callable[..., Path]
    ) -> None:
        make_image(tmp_path / "roses" / "a.JPG")
        make_image(tmp_path / "roses" / "b.jpeg")
        make_image(tmp_path / "roses" / "c.gif")
        (tmp_path / "roses" / "readme.txt").write_text("x")
        make_image(tmp_path / "roses" / "nested" / "d.png")
        (tmp_path / "stray.png").write_bytes(b"")
        ds = ImageFolderDataset(tmp_path, image_size=16)
        assert ds.class_to_idx == {"roses": 0}
        assert sorted(p.name for p, _ in ds.samples) == ["a.JPG", "b.jpeg"]

    def test_empty_class_keeps_index(
        self, tmp_path: Path, make_image: Callable[..., Path]
    ) -> None:
        make_image(tmp_path / "a" / "1.png")
        (tmp_path / "b").mkdir()
        make_image(tmp_path / "c" / "1.png")
        ds = ImageFolderDataset(tmp_path, image_size=16)
        assert ds.class_to_idx == {"a": 0, "b": 1, "c": 2}
        assert ds.class_counts() == {0: 1, 1: 0, 2: 1}

    def test_no_classes(self, tmp_path: Path) -> None:
        ds = ImageFolderDataset(tmp_path, image_size=16)
        assert len(ds) == 0
        assert ds.num_classes == 0

    def test_missing_root(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            ImageFolderDataset(tmp_path / "nope")

    def test_epoch_order_without_shuffle(self, flower_dataset_dir: Path) -> None:
        ds = ImageFolderDataset(flower_dataset_dir, image_size=32)
        assert ds.epoch_order(5) == list(range(20))

    def test_epoch_order_with_shuffle(self, flower_dataset_dir: Path) -> None:
        ds = ImageFolderDataset(flower_dataset_dir, image_size=32, shuffle=True, seed=3)
        assert ds.epoch_order(0) == epoch_plan(20, seed=3, epoch=0)
        assert ds.epoch_order(0) == ds.epoch_order(0)

    def test_iter_epoch_restartable(self, flower_dataset_dir: Path) -> None:
        ds = ImageFolderDataset(flower_dataset_dir, image_size=16, shuffle=True)
        first = [int(label) for _, label in ds.iter_epoch(1)]
        second = [int(label) for _, label in ds.iter_epoch(1)]
        assert len(first) == 20
        assert first == second

    def test_skip_policy_drops_corrupt_image(
        self, flower_dataset_dir: Path, write_corrupt_image: Callable[[Path], Path]
    ) -> None:
        write_corrupt_image(flower_dataset_dir / "daisy" / "broken.jpg")
        ds = ImageFolderDataset(flower_dataset_dir, image_size=16, on_decode_error="skip")
        assert len(ds) == 21
        assert len(list(ds.iter_epoch())) == 20

    def test_raise_policy_propagates(
        self, flower_dataset_dir: Path, write_corrupt_image: Callable[[Path], Path]
    ) -> None:
        write_corrupt_image(flower_dataset_dir / "daisy" / "broken.jpg")
        ds = ImageFolderDataset(flower_dataset_dir, image_size=16)
        with pytest.raises(DecodeError):
            list(ds.iter_epoch())

    def test_getitem_skip_policy_returns_none(
        self, tmp_path: Path, write_corrupt_image: Callable[[Path], Path]
    ) -> None:
        write_corrupt_image(tmp_path / "daisy" / "broken.png")
        ds = ImageFolderDataset(tmp_path, image_size=16, on_decode_error="skip")
        assert ds[0] is None

    def test_getitem_raise_policy_raises(
        self, tmp_path: Path, write_corrupt_image: Callable[[Path], Path]
    ) -> None:
        write_corrupt_image(tmp_path / "daisy" / "broken.png")
        ds = ImageFolderDataset(tmp_path, image_size=16, on_decode_error="raise")
        with pytest.raises(DecodeError, match="broken.png"):
            ds[0]
