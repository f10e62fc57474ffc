from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple
import numpy as np

from ..errors import ShapeError


@dataclass
class MaskGrid:
    """
    H rows x W boolean columns, one cell per image pixel.
    True marks a painted / selected pixel.
    """
    cells: np.ndarray  # Shape (H, W), dtype bool.

    def __post_init__(self) -> None:
        self.cells = np.asarray(self.cells, dtype=bool)
        if self.cells.ndim != 2:
            raise ShapeError(f"Mask must be 2-D, got shape {self.cells.shape}")

    @property
    def width(self) -> int:
        return self.cells.shape[1]

    @property
    def height(self) -> int:
        return self.cells.shape[0]

    @property
    def shape(self) -> Tuple[int, int]:
        return self.cells.shape

    def copy(self) -> "MaskGrid":
        return MaskGrid(self.cells.copy())

    def count(self) -> int:
        return int(self.cells.sum())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MaskGrid):
            return NotImplemented
        return self.shape == other.shape and bool(np.array_equal(self.cells, other.cells))
