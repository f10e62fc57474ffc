from __future__ import annotations
from dataclasses import dataclass
import numpy as np

from ..errors import ShapeError


@dataclass(frozen=True, eq=False)
class PixelImage:
    """
    Canvas-style image: interleaved RGBA bytes, row-major.
    Immutable once captured; the editor owns the only reference.
    """
    width: int
    height: int
    data: np.ndarray  # Shape (4*W*H,), dtype uint8, RGBA order.

    def __post_init__(self) -> None:
        if self.width < 1 or self.height < 1:
            raise ShapeError(f"Image must be at least 1x1, got {self.width}x{self.height}")
        if self.data.size != 4 * self.width * self.height:
            raise ShapeError(
                f"RGBA buffer has {self.data.size} values, "
                f"expected {4 * self.width * self.height} for {self.width}x{self.height}"
            )

    @classmethod
    def from_array(cls, rgba: np.ndarray) -> "PixelImage":
        """Wrap an (H, W, 4) uint8 array."""
        if rgba.ndim != 3 or rgba.shape[2] != 4:
            raise ShapeError(f"Expected (H, W, 4) array, got {rgba.shape}")
        h, w = rgba.shape[:2]
        return cls(width=w, height=h, data=np.ascontiguousarray(rgba, dtype=np.uint8).reshape(-1))

    def as_array(self) -> np.ndarray:
        """(H, W, 4) view of the pixel buffer."""
        return self.data.reshape(self.height, self.width, 4)


@dataclass(frozen=True, eq=False)
class PlanarRGB:
    """
    Short-lived RGB buffer, channel-interleaved per pixel (HWC).
    """
    width: int
    height: int
    data: np.ndarray  # Shape (3*W*H,), dtype uint8.

    def __post_init__(self) -> None:
        if self.data.size != 3 * self.width * self.height:
            raise ShapeError(
                f"RGB buffer has {self.data.size} values, "
                f"expected {3 * self.width * self.height} for {self.width}x{self.height}"
            )
