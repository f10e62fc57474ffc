from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from .tensor import TensorBuffer


class MessageType(Enum):
    INIT = "INIT"
    ENCODER_RUN = "ENCODER_RUN"
    DECODER_RUN = "DECODER_RUN"
    INPAINTING_RUN = "INPAINTING_RUN"
    ENCODER_DONE = "ENCODER_DONE"
    DECODER_DONE = "DECODER_DONE"
    INPAINTING_DONE = "INPAINTING_DONE"
    ERROR = "ERROR"


class Stage(Enum):
    ENCODER = "encoder"
    DECODER = "decoder"
    INPAINTING = "inpainting"


REQUEST_TYPES = {
    Stage.ENCODER: MessageType.ENCODER_RUN,
    Stage.DECODER: MessageType.DECODER_RUN,
    Stage.INPAINTING: MessageType.INPAINTING_RUN,
}
RESPONSE_STAGES = {
    MessageType.ENCODER_DONE: Stage.ENCODER,
    MessageType.DECODER_DONE: Stage.DECODER,
    MessageType.INPAINTING_DONE: Stage.INPAINTING,
}


@dataclass(frozen=True, eq=False)
class DecoderRequest:
    """
    Feeds for a single-pass point-prompted decoder call.
    Names follow the exported decoder graph's input names.
    """
    image_embeddings: TensorBuffer
    point_coords: TensorBuffer    # (1, N, 2) float32, resized-image space
    point_labels: TensorBuffer    # (1, N) float32
    mask_input: TensorBuffer      # (1, 1, 256, 256) zeros
    has_mask_input: TensorBuffer  # (1,) = 0
    orig_im_size: TensorBuffer    # (2,) = (H, W)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "image_embeddings": self.image_embeddings.to_payload(),
            "point_coords": self.point_coords.to_payload(),
            "point_labels": self.point_labels.to_payload(),
            "mask_input": self.mask_input.to_payload(),
            "has_mask_input": self.has_mask_input.to_payload(),
            "orig_im_size": self.orig_im_size.to_payload(),
        }


@dataclass(frozen=True, eq=False)
class InpaintingRequest:
    image_tensor: TensorBuffer  # (1, 3, H, W) uint8
    mask_tensor: TensorBuffer   # (1, 1, H, W) uint8, 0 = inpaint, 255 = keep

    def to_payload(self) -> Dict[str, Any]:
        return {
            "imageTensorData": self.image_tensor.to_payload(),
            "maskTensorData": self.mask_tensor.to_payload(),
        }
