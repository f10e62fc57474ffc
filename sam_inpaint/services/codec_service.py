# services/codec_service.py
"""
Pure conversions between canvas pixel buffers and model tensors.

• RGBA (interleaved)  →  RGB (HWC)        extract_planar_rgb
• RGBA                →  resized RGB      resize_long_side_to
• RGB (HWC)           →  NCHW             to_nchw
• CHW                 →  HWC              chw_to_hwc
• RGB (HWC)           →  RGBA, alpha=255  planar_rgb_to_rgba
• MaskGrid            →  uint8 (1,1,H,W)  pack_mask_to_uint8

No function clamps, pads or resizes to hide a shape mismatch; every
mismatch raises ShapeError.
"""
from __future__ import annotations
import math
from typing import Tuple
import cv2
import numpy as np

from ..errors import ShapeError
from ..models.image import PixelImage, PlanarRGB
from ..models.mask import MaskGrid
from ..models.tensor import TensorBuffer

# Packed mask values. 0 marks the region the inpainter must fill.
MASK_INPAINT = 0
MASK_KEEP = 255


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def long_side_size(width: int, height: int, long_side: int) -> Tuple[int, int]:
    """
    Target (W, H) whose long side is exactly *long_side*.
    Only the short side is rounded, so the result never drifts by one on both axes.
    """
    if long_side < 1:
        raise ValueError(f"long_side must be positive, got {long_side}")
    if width > height:
        w, h = long_side, _round_half_up(long_side * (height / width))
    else:
        w, h = _round_half_up(long_side * (width / height)), long_side
    if min(w, h) < 1:
        raise ShapeError(f"Resizing {width}x{height} to long side {long_side} gives a {w}x{h} image")
    return w, h


def _as_uint8(buffer: np.ndarray) -> np.ndarray:
    arr = np.asarray(buffer).reshape(-1)
    if arr.dtype == np.uint8:
        return arr
    if np.issubdtype(arr.dtype, np.floating):
        return np.clip(np.rint(arr), 0, 255).astype(np.uint8)
    return arr.astype(np.uint8)


# ------------------------------------------------------------------
def extract_planar_rgb(image: PixelImage) -> PlanarRGB:
    """Drop alpha, keep pixel order."""
    if image.data.size != 4 * image.width * image.height:
        raise ShapeError(
            f"RGBA buffer has {image.data.size} values, expected {4 * image.width * image.height}"
        )
    rgb = image.data.reshape(-1, 4)[:, :3]
    return PlanarRGB(width=image.width, height=image.height, data=np.ascontiguousarray(rgb).reshape(-1))


def resize_pixel_image(image: PixelImage, long_side: int) -> PixelImage:
    """Bilinear resize of the full RGBA image so its long side equals *long_side*."""
    new_w, new_h = long_side_size(image.width, image.height, long_side)
    resized = cv2.resize(image.as_array(), (new_w, new_h), interpolation=cv2.INTER_LINEAR)
    return PixelImage.from_array(resized)


def resize_long_side_to(image: PixelImage, long_side: int = 1024) -> PlanarRGB:
    """
    Encoder preprocessing: resize so the longer side equals *long_side*,
    then drop alpha.
    """
    return extract_planar_rgb(resize_pixel_image(image, long_side))


def to_nchw(rgb: PlanarRGB, batch: int = 1) -> TensorBuffer:
    """
    HWC → (batch, 3, H, W) uint8.

    nchw[b*3*H*W + c*H*W + i] = hwc[i*3 + c], identical for every b.
    """
    if batch < 1:
        raise ShapeError(f"batch must be >= 1, got {batch}")
    h, w = rgb.height, rgb.width
    if rgb.data.size != 3 * w * h:
        raise ShapeError(f"RGB buffer has {rgb.data.size} values, expected {3 * w * h}")
    chw = rgb.data.reshape(h, w, 3).transpose(2, 0, 1)
    nchw = np.broadcast_to(chw, (batch, 3, h, w))
    return TensorBuffer(data=np.ascontiguousarray(nchw).reshape(-1), dims=(batch, 3, h, w))


def chw_to_hwc(buffer: np.ndarray, width: int, height: int, channels: int = 3) -> np.ndarray:
    """Channel-planar → interleaved. Returns a flat array of the same dtype."""
    flat = np.asarray(buffer).reshape(-1)
    if flat.size != channels * width * height:
        raise ShapeError(
            f"CHW buffer has {flat.size} values, expected {channels * width * height} "
            f"for {channels}x{height}x{width}"
        )
    hwc = flat.reshape(channels, height, width).transpose(1, 2, 0)
    return np.ascontiguousarray(hwc).reshape(-1)


def planar_rgb_to_rgba(buffer: np.ndarray, width: int, height: int) -> PixelImage:
    """
    Interleaved RGB → displayable RGBA with a fully opaque alpha channel.
    Float buffers (model outputs) are rounded into [0, 255].
    """
    rgb = _as_uint8(buffer)
    if rgb.size != 3 * width * height:
        raise ShapeError(f"RGB buffer has {rgb.size} values, expected {3 * width * height}")
    rgba = np.full((width * height, 4), 255, dtype=np.uint8)
    rgba[:, :3] = rgb.reshape(-1, 3)
    return PixelImage(width=width, height=height, data=rgba.reshape(-1))


def pack_mask_to_uint8(mask: MaskGrid) -> TensorBuffer:
    """
    Inpainter mask tensor (1, 1, H, W): True → 0 (inpaint), False → 255 (keep).
    """
    packed = np.where(mask.cells, MASK_INPAINT, MASK_KEEP).astype(np.uint8)
    return TensorBuffer(data=packed.reshape(-1), dims=(1, 1, mask.height, mask.width))


def chw_tensor_to_image(tensor: TensorBuffer) -> PixelImage:
    """
    Inpainting output (1, 3, H, W) or (3, H, W) → RGBA image.
    """
    dims = tensor.dims
    if len(dims) == 4 and dims[0] == 1:
        dims = dims[1:]
    if len(dims) != 3 or dims[0] != 3:
        raise ShapeError(f"Expected a 3-channel CHW tensor, got dims {list(tensor.dims)}")
    _, h, w = dims
    return planar_rgb_to_rgba(chw_to_hwc(tensor.data, w, h, 3), w, h)
