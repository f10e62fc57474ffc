from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .image import PixelImage
from .mask import MaskGrid
from .prompt import PromptPoint
from .tensor import TensorBuffer


class EditorPhase(Enum):
    EMPTY = "empty"
    RESIZE_PENDING = "resize_pending"
    IMAGE_LOADED = "image_loaded"
    EMBEDDING_READY = "embedding_ready"
    MASK_UPDATED = "mask_updated"
    INPAINTING_REQUESTED = "inpainting_requested"


@dataclass(eq=False)
class EditorSession:
    """
    Everything the editor knows about the image currently being edited.

    • brush / sam_raw / sam_dilated always match the image (W, H).
    • embedding is computed once per image; prompt and mask edits keep it.
    • generation increases every time a new image replaces the old one,
      so late inference responses can be recognised as stale.
    • mask_revision increases on every brush or decoder mask change.
    """
    image: PixelImage
    brush: MaskGrid
    sam_raw: MaskGrid
    sam_dilated: MaskGrid
    prompts: List[PromptPoint] = field(default_factory=list)
    embedding: Optional[TensorBuffer] = None
    generation: int = 0
    mask_revision: int = 0

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def has_embedding(self) -> bool:
        return self.embedding is not None
