"""Labels mapping sidecar schema.

Written next to every weights file so a model is always read back with the
class order it was trained with.
"""

from __future__ import annotations

from pydantic import BaseModel, model_validator


class LabelsMapping(BaseModel, frozen=True):
    """Class index mapping and input size of a trained model."""

    num_classes: int
    class_to_idx: dict[str, int]
    idx_to_class: dict[int, str]
    image_size: int

    @model_validator(mode="after")
    def _indices_contiguous(self) -> LabelsMapping:
        """Indices must be exactly 0..num_classes-1 and both maps must agree."""
        if sorted(self.class_to_idx.values()) != list(range(self.num_classes)):
            msg = f"class_to_idx indices are not 0..{self.num_classes - 1}"
            raise ValueError(msg)
        if {v: k for k, v in self.class_to_idx.items()} != self.idx_to_class:
            raise ValueError("class_to_idx and idx_to_class disagree")
        return self

    @classmethod
    def from_class_to_idx(
        cls, class_to_idx: dict[str, int], image_size: int
    ) -> LabelsMapping:
        return cls(
            num_classes=len(class_to_idx),
            class_to_idx=class_to_idx,
            idx_to_class={v: k for k, v in class_to_idx.items()},
            image_size=image_size,
        )

    @property
    def class_names(self) -> tuple[str, ...]:
        """Class names ordered by index."""
        return tuple(self.idx_to_class[i] for i in range(self.num_classes))
