# services/render_service.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple, Union
import os

import cv2
import numpy as np
from dotenv import load_dotenv

from ..models.image import PixelImage
from ..models.mask import MaskGrid
from ..models.prompt import Polarity
from ..models.session import EditorSession

# Load environment variables
load_dotenv()

IMAGE_SURFACE = "image"
MASK_SURFACE = "mask"

MASK_RGB: Tuple[int, int, int] = (64, 141, 255)
POSITIVE_MARKER = "#021ded"
NEGATIVE_MARKER = "red"
_MARKER_RGB = {POSITIVE_MARKER: (2, 29, 237), NEGATIVE_MARKER: (255, 0, 0)}


@dataclass(frozen=True)
class ClearSurface:
    surface: str


@dataclass(frozen=True, eq=False)
class DrawImage:
    surface: str
    image: PixelImage


@dataclass(frozen=True)
class DrawMarker:
    surface: str
    x: float
    y: float
    radius: float
    color: str


@dataclass(frozen=True, eq=False)
class DrawMask:
    surface: str
    mask: MaskGrid
    opacity: float
    clear_first: bool = False
    rgb: Tuple[int, int, int] = MASK_RGB

    @property
    def fill_style(self) -> str:
        r, g, b = self.rgb
        return f"rgba({r}, {g}, {b}, {self.opacity})"


DrawInstruction = Union[ClearSurface, DrawImage, DrawMarker, DrawMask]


class RenderService:
    """
    Read-only projection of an EditorSession into draw instructions for the
    two display surfaces (image underneath, brush mask on top).
    """

    def __init__(self, marker_radius: float = None):
        self.marker_radius = (
            marker_radius if marker_radius is not None
            else float(os.getenv("MARKER_RADIUS", "5"))
        )

    def project(self, session: EditorSession, img_res_to_canvas_ratio: float = 1.0) -> List[DrawInstruction]:
        instructions: List[DrawInstruction] = [
            ClearSurface(IMAGE_SURFACE),
            ClearSurface(MASK_SURFACE),
            DrawImage(IMAGE_SURFACE, session.image),
        ]
        radius = self.marker_radius * img_res_to_canvas_ratio
        for p in session.prompts:
            color = POSITIVE_MARKER if p.polarity is Polarity.POSITIVE else NEGATIVE_MARKER
            instructions.append(DrawMarker(IMAGE_SURFACE, p.x, p.y, radius, color))
        instructions.append(DrawMask(IMAGE_SURFACE, session.sam_dilated, 0.5))
        instructions.append(DrawMask(MASK_SURFACE, session.brush, 1.0, clear_first=True))
        return instructions

    # ─── Preview compositing ──────────────────────────────────────────
    @staticmethod
    def _blend(canvas: np.ndarray, mask: MaskGrid, rgb: Tuple[int, int, int], opacity: float) -> None:
        """Source-over fill of every set cell, in place on a float RGBA canvas."""
        cells = mask.cells
        src = np.array([*rgb, 255], dtype=np.float32)
        canvas[cells] = src * opacity + canvas[cells] * (1.0 - opacity)

    def rasterize(self, instructions: List[DrawInstruction], surface: str,
                  width: int, height: int) -> PixelImage:
        """
        Replay the instructions for one surface onto a transparent canvas.
        """
        canvas = np.zeros((height, width, 4), dtype=np.float32)
        for ins in instructions:
            if ins.surface != surface:
                continue
            if isinstance(ins, ClearSurface):
                canvas[:] = 0
            elif isinstance(ins, DrawImage):
                canvas[:] = ins.image.as_array().astype(np.float32)
            elif isinstance(ins, DrawMarker):
                r, g, b = _MARKER_RGB[ins.color]
                cv2.circle(canvas, (int(round(ins.x)), int(round(ins.y))),
                           max(int(round(ins.radius)), 1), (r, g, b, 255), thickness=-1)
            elif isinstance(ins, DrawMask):
                if ins.clear_first:
                    canvas[:] = 0
                self._blend(canvas, ins.mask, ins.rgb, ins.opacity)
        return PixelImage.from_array(np.clip(np.rint(canvas), 0, 255).astype(np.uint8))
