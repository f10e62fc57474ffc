# repositories/mask_repository.py
import cv2
import numpy as np


class MaskRepository:
    """
    Pixel-level mask operations on raw boolean arrays.

    • Morphological growth via cv2.
    • Brush footprint rasterisation (circle / capsule) via numpy.
    """

    # ---------- private helpers ----------
    @staticmethod
    def disk_kernel(radius: int) -> np.ndarray:
        """
        (2r+1, 2r+1) uint8 kernel with 1 where dx² + dy² <= r² (Euclidean disk).
        """
        offsets = np.arange(-radius, radius + 1)
        dy, dx = np.meshgrid(offsets, offsets, indexing="ij")
        return (dx * dx + dy * dy <= radius * radius).astype(np.uint8)

    @staticmethod
    def _segment_distance(px: np.ndarray, py: np.ndarray,
                          x0: float, y0: float, x1: float, y1: float) -> np.ndarray:
        """Distance from each (px, py) to segment (x0,y0)-(x1,y1)."""
        vx, vy = x1 - x0, y1 - y0
        length_sq = vx * vx + vy * vy
        if length_sq == 0:
            return np.hypot(px - x0, py - y0)
        t = np.clip(((px - x0) * vx + (py - y0) * vy) / length_sq, 0.0, 1.0)
        return np.hypot(px - (x0 + t * vx), py - (y0 + t * vy))

    # ---------- public API ----------
    def dilate(self, cells: np.ndarray, radius: int) -> np.ndarray:
        """
        Returns a new bool array: a cell is set if any set cell lies within
        Euclidean distance *radius*.
        """
        if radius < 0:
            raise ValueError(f"Dilation radius must be >= 0, got {radius}")
        if radius == 0:
            return cells.copy()
        grown = cv2.dilate(cells.astype(np.uint8), self.disk_kernel(radius), iterations=1)
        return grown.astype(bool)

    def stroke_footprint(self, height: int, width: int,
                         x: float, y: float, prev_x: float, prev_y: float,
                         diameter: float) -> np.ndarray:
        """
        Bool (H, W) array of cells whose centre (col + 0.5, row + 0.5) lies within
        diameter / 2 of the segment prev → current. A zero-length segment gives a
        filled circle, anything longer a capsule with round caps.
        """
        footprint = np.zeros((height, width), dtype=bool)
        r = diameter / 2.0
        if r <= 0:
            return footprint

        # Only scan the stroke's bounding box.
        col0 = max(int(np.floor(min(x, prev_x) - r - 0.5)), 0)
        col1 = min(int(np.ceil(max(x, prev_x) + r - 0.5)) + 1, width)
        row0 = max(int(np.floor(min(y, prev_y) - r - 0.5)), 0)
        row1 = min(int(np.ceil(max(y, prev_y) + r - 0.5)) + 1, height)
        if col0 >= col1 or row0 >= row1:
            return footprint

        rows, cols = np.mgrid[row0:row1, col0:col1]
        dist = self._segment_distance(cols + 0.5, rows + 0.5, prev_x, prev_y, x, y)
        footprint[row0:row1, col0:col1] = dist <= r
        return footprint
