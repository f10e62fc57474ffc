"""Shared fixtures: small synthetic canvas images and a configured editor."""
import numpy as np
import pytest

from sam_inpaint.models.image import PixelImage
from sam_inpaint.services.editor_service import EditorService
from sam_inpaint.services.mask_service import MaskService


def make_image(width: int, height: int, seed: int = 0) -> PixelImage:
    rng = np.random.default_rng(seed)
    rgba = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
    return PixelImage.from_array(rgba)


@pytest.fixture
def image_factory():
    return make_image


@pytest.fixture
def editor():
    """Editor with tiny, deterministic settings (no .env dependence)."""
    return EditorService(
        mask_service=MaskService(dilation_radius=1, brush_size=1),
        encoder_long_side=64,
        max_image_side=256,
        mask_threshold=0.0,
    )
