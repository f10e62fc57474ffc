# services/mask_service.py
from typing import Tuple
import os
import logging

import numpy as np
from dotenv import load_dotenv

from ..errors import ShapeError
from ..models.mask import MaskGrid
from ..repositories.mask_repository import MaskRepository

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


class MaskService:
    """
    Business rules for the three editor masks (brush, raw SAM, dilated SAM).

    *   Masks live at full image resolution; the user paints at display
        resolution, so brush sizes are scaled by the image/canvas ratio.
    *   Uses environment variables for default dilation radius and brush size.
    """

    def __init__(self, dilation_radius: int = None, brush_size: float = None):
        self.dilation_radius = (
            dilation_radius if dilation_radius is not None
            else int(os.getenv("SAM_DILATION_RADIUS", "5"))
        )
        self.brush_size = (
            brush_size if brush_size is not None
            else float(os.getenv("BRUSH_SIZE", "20"))
        )
        self.repo = MaskRepository()

    @staticmethod
    def create_empty(width: int, height: int) -> MaskGrid:
        return MaskGrid(np.zeros((height, width), dtype=bool))

    @staticmethod
    def combine(brush: MaskGrid, sam_dilated: MaskGrid) -> MaskGrid:
        """Elementwise OR; both grids must have the same (H, W)."""
        if brush.shape != sam_dilated.shape:
            raise ShapeError(
                f"Cannot combine masks of shape {brush.shape} and {sam_dilated.shape}"
            )
        return MaskGrid(np.logical_or(brush.cells, sam_dilated.cells))

    def dilate(self, sam_raw: MaskGrid, radius: int = None) -> MaskGrid:
        """
        Grow the decoder mask by *radius* px (Euclidean disk) to cover edges the
        decoder tends to miss. Defaults to SAM_DILATION_RADIUS.
        """
        r = self.dilation_radius if radius is None else radius
        return MaskGrid(self.repo.dilate(sam_raw.cells, r))

    def paint_stroke(
            self,
            mask: MaskGrid,
            x: float,
            y: float,
            prev_x: float,
            prev_y: float,
            img_res_to_canvas_ratio: float = 1.0,
            brush_size: float = None,
    ) -> Tuple[float, float]:
        """
        Paint one brush segment into *mask* in place.

        Args:
            mask: grid to paint into (full image resolution).
            x, y: current cursor position in image pixels.
            prev_x, prev_y: previous cursor position; equal to (x, y) for a click.
            img_res_to_canvas_ratio: native image px per on-screen px.
            brush_size: on-screen brush diameter, defaults to BRUSH_SIZE.

        Returns:
            The new cursor position, to be passed as prev_x/prev_y next time.
        """
        size = self.brush_size if brush_size is None else brush_size
        diameter = size * img_res_to_canvas_ratio
        footprint = self.repo.stroke_footprint(
            mask.height, mask.width, x, y, prev_x, prev_y, diameter
        )
        mask.cells |= footprint
        logger.debug("Brush stroke (%.1f,%.1f)->(%.1f,%.1f) d=%.2f painted %d cells",
                     prev_x, prev_y, x, y, diameter, int(footprint.sum()))
        return x, y

    def threshold(self, values: np.ndarray, width: int, height: int, thr: float) -> MaskGrid:
        """Decoder output (any leading singleton dims, trailing H, W) → MaskGrid."""
        arr = np.asarray(values)
        if arr.size != width * height:
            raise ShapeError(
                f"Decoder mask has {arr.size} values, expected {width * height} for {width}x{height}"
            )
        return MaskGrid(arr.reshape(height, width) > thr)
