# services/editor_service.py
from __future__ import annotations

from typing import Optional, Tuple
import os
import logging

import numpy as np
from dotenv import load_dotenv

from ..errors import PreconditionError, ShapeError
from ..models.image import PixelImage
from ..models.prompt import Polarity, PromptPoint
from ..models.requests import DecoderRequest, InpaintingRequest
from ..models.session import EditorPhase, EditorSession
from ..models.tensor import TensorBuffer
from . import codec_service as codec
from .mask_service import MaskService
from .prompt_service import PromptService

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

MASK_HINT_SIDE = 256


# ─── Request builders (pure, take the session explicitly) ─────────────
def build_encoder_request(session: EditorSession, long_side: int = 1024) -> TensorBuffer:
    """
    Resized RGB as float32 with dims (H, W, 3), the encoder's input layout.
    """
    rgb = codec.resize_long_side_to(session.image, long_side)
    return TensorBuffer(
        data=rgb.data.astype(np.float32),
        dims=(rgb.height, rgb.width, 3),
    )


def build_decoder_request(session: EditorSession, resized_w: int, resized_h: int) -> DecoderRequest:
    """
    Bundle the cached embedding with the current prompts.
    No iterative refinement: the mask hint is always zeros with has_mask_input = 0.
    """
    if session.embedding is None:
        raise PreconditionError("No image embedding yet: run the encoder stage first")

    coords = PromptService.to_decoder_coordinates(
        session.prompts, session.width, session.height, resized_w, resized_h
    )
    labels = PromptService.to_label_sequence(session.prompts)
    coords, labels = PromptService.with_padding_point(coords, labels)
    n = len(labels)

    return DecoderRequest(
        image_embeddings=session.embedding,
        point_coords=TensorBuffer(np.asarray(coords, dtype=np.float32).reshape(-1), (1, n, 2)),
        point_labels=TensorBuffer(np.asarray(labels, dtype=np.float32), (1, n)),
        mask_input=TensorBuffer.zeros((1, 1, MASK_HINT_SIDE, MASK_HINT_SIDE)),
        has_mask_input=TensorBuffer.zeros((1,)),
        orig_im_size=TensorBuffer(
            np.asarray([session.height, session.width], dtype=np.float32), (2,)
        ),
    )


def build_inpainting_request(session: EditorSession) -> InpaintingRequest:
    """combine(brush, sam_dilated) → packed mask, plus the full-resolution NCHW image."""
    combined = MaskService.combine(session.brush, session.sam_dilated)
    if combined.shape != (session.height, session.width):
        raise ShapeError(
            f"Mask shape {combined.shape} does not match image {session.height}x{session.width}"
        )
    image_tensor = codec.to_nchw(codec.extract_planar_rgb(session.image), batch=1)
    return InpaintingRequest(image_tensor=image_tensor, mask_tensor=codec.pack_mask_to_uint8(combined))


# ─── Stateful aggregate ───────────────────────────────────────────────
class EditorService:
    """
    Owns the single active EditorSession and drives its state machine:

        EMPTY → (RESIZE_PENDING →) IMAGE_LOADED → EMBEDDING_READY
              → MASK_UPDATED* → INPAINTING_REQUESTED → IMAGE_LOADED (result)

    Loading an image always resets masks, prompts and the embedding.
    """

    def __init__(self,
                 mask_service: MaskService = None,
                 encoder_long_side: int = None,
                 max_image_side: int = None,
                 mask_threshold: float = None):
        self.mask_service = mask_service or MaskService()
        self.encoder_long_side = encoder_long_side or int(os.getenv("ENCODER_LONG_SIDE", "1024"))
        self.max_image_side = max_image_side or int(os.getenv("MAX_IMAGE_SIDE", "2048"))
        self.mask_threshold = (
            mask_threshold if mask_threshold is not None
            else float(os.getenv("DECODER_MASK_THRESHOLD", "0.0"))
        )
        self.session: Optional[EditorSession] = None
        self.phase = EditorPhase.EMPTY
        self._pending_image: Optional[PixelImage] = None
        self._generation = 0

    # ---------- helpers ----------
    def _require_session(self) -> EditorSession:
        if self.session is None:
            raise PreconditionError(f"No image loaded (phase={self.phase.value})")
        return self.session

    def _set_phase(self, phase: EditorPhase) -> None:
        if phase is not self.phase:
            logger.info("Editor phase %s -> %s", self.phase.value, phase.value)
        self.phase = phase

    def _start_session(self, image: PixelImage) -> EditorSession:
        self._generation += 1
        w, h = image.width, image.height
        self.session = EditorSession(
            image=image,
            brush=self.mask_service.create_empty(w, h),
            sam_raw=self.mask_service.create_empty(w, h),
            sam_dilated=self.mask_service.create_empty(w, h),
            generation=self._generation,
        )
        self._pending_image = None
        self._set_phase(EditorPhase.IMAGE_LOADED)
        logger.info("Loaded %dx%d image (generation %d)", w, h, self._generation)
        return self.session

    def _mark_mask_updated(self) -> None:
        self.session.mask_revision += 1
        if self.phase in (EditorPhase.IMAGE_LOADED, EditorPhase.EMBEDDING_READY,
                          EditorPhase.INPAINTING_REQUESTED):
            self._set_phase(EditorPhase.MASK_UPDATED)

    # ---------- image lifecycle ----------
    def load_image(self, image: PixelImage) -> EditorPhase:
        """
        Start editing *image*. Oversized images park in RESIZE_PENDING until
        decide_resize() is called.
        """
        self.session = None
        if max(image.width, image.height) > self.max_image_side:
            self._pending_image = image
            self._set_phase(EditorPhase.RESIZE_PENDING)
            return self.phase
        self._start_session(image)
        return self.phase

    def decide_resize(self, accept: bool) -> EditorPhase:
        if self.phase is not EditorPhase.RESIZE_PENDING or self._pending_image is None:
            raise PreconditionError(f"No resize decision pending (phase={self.phase.value})")
        image = self._pending_image
        if accept:
            image = codec.resize_pixel_image(image, self.max_image_side)
        self._start_session(image)
        return self.phase

    def close(self) -> None:
        self.session = None
        self._pending_image = None
        self._set_phase(EditorPhase.EMPTY)

    # ---------- user interaction ----------
    def add_prompt(self, x: float, y: float, polarity: Polarity = Polarity.POSITIVE) -> PromptPoint:
        session = self._require_session()
        return PromptService.append(session.prompts, x, y, polarity)

    def clear_prompts(self) -> None:
        PromptService.clear(self._require_session().prompts)

    def paint(self, x: float, y: float, prev_x: float, prev_y: float,
              img_res_to_canvas_ratio: float = 1.0, brush_size: float = None) -> Tuple[float, float]:
        session = self._require_session()
        pos = self.mask_service.paint_stroke(
            session.brush, x, y, prev_x, prev_y, img_res_to_canvas_ratio, brush_size
        )
        self._mark_mask_updated()
        return pos

    def clear_brush(self) -> None:
        session = self._require_session()
        session.brush = self.mask_service.create_empty(session.width, session.height)
        self._mark_mask_updated()

    # ---------- encoder ----------
    def encoder_input_size(self) -> Tuple[int, int]:
        session = self._require_session()
        return codec.long_side_size(session.width, session.height, self.encoder_long_side)

    def build_encoder_request(self) -> TensorBuffer:
        request = build_encoder_request(self._require_session(), self.encoder_long_side)
        logger.debug("Encoder request dims %s", list(request.dims))
        return request

    def set_embedding(self, embedding: TensorBuffer) -> None:
        self._require_session().embedding = embedding
        if self.phase is EditorPhase.IMAGE_LOADED:
            self._set_phase(EditorPhase.EMBEDDING_READY)

    # ---------- decoder ----------
    def build_decoder_request(self, resized_w: int = None, resized_h: int = None) -> DecoderRequest:
        session = self._require_session()
        if resized_w is None or resized_h is None:
            resized_w, resized_h = self.encoder_input_size()
        return build_decoder_request(session, resized_w, resized_h)

    def apply_decoder_mask(self, mask_tensor: TensorBuffer) -> None:
        """
        Replace sam_raw with the thresholded decoder output and refresh sam_dilated.
        Trailing dims must be the image (H, W).
        """
        session = self._require_session()
        if tuple(mask_tensor.dims[-2:]) != (session.height, session.width):
            raise ShapeError(
                f"Decoder mask dims {list(mask_tensor.dims)} do not end with "
                f"image size ({session.height}, {session.width})"
            )
        sam_raw = self.mask_service.threshold(
            mask_tensor.data, session.width, session.height, self.mask_threshold
        )
        session.sam_raw = sam_raw
        session.sam_dilated = self.mask_service.dilate(sam_raw)
        self._mark_mask_updated()

    # ---------- inpainting ----------
    def build_inpainting_request(self) -> InpaintingRequest:
        request = build_inpainting_request(self._require_session())
        self._set_phase(EditorPhase.INPAINTING_REQUESTED)
        return request

    def apply_inpainting_result(self, output: TensorBuffer) -> PixelImage:
        """Turn the CHW inpainting output into the new working image."""
        self._require_session()
        image = codec.chw_tensor_to_image(output)
        self._start_session(image)
        return image
