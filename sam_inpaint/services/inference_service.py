# services/inference_service.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional
import itertools
import logging

import numpy as np

from ..errors import ExternalStageError, PreconditionError
from ..models.image import PixelImage
from ..models.requests import REQUEST_TYPES, RESPONSE_STAGES, MessageType, Stage
from ..models.tensor import TensorBuffer
from ..repositories.inference_channel import InferenceChannel
from .editor_service import EditorService

logger = logging.getLogger(__name__)


def build_init_message(env: str, app_base_path: str) -> Dict[str, Any]:
    """Setup message sent once before any inference request."""
    return {"type": MessageType.INIT.value, "data": {"env": env, "appBasePath": app_base_path}}


@dataclass(frozen=True)
class _Pending:
    request_id: str
    generation: int
    mask_revision: int


class InferenceService:
    """
    Sends editor requests over an explicitly passed channel and applies the
    matching responses to the editor.

    • One in-flight request is tracked per stage; a new one supersedes it.
    • A response whose id is no longer the pending one, or whose image
      generation is gone, is dropped without touching the session.
    • An inpainting result is also dropped if the masks changed after the
      request was sent.
    • ERROR responses for the current request raise ExternalStageError and
      leave the session as is; stale ones are dropped like any other reply.
    """

    def __init__(self, editor: EditorService, channel: InferenceChannel):
        self.editor = editor
        self.channel = channel
        self._pending: Dict[Stage, _Pending] = {}
        self._ids = itertools.count(1)

    # ---------- outgoing ----------
    def _post(self, stage: Stage, data: Dict[str, Any]) -> str:
        session = self.editor.session
        if session is None:
            raise PreconditionError("No image loaded")
        request_id = f"{stage.value}-{next(self._ids)}"
        if stage in self._pending:
            logger.info("Superseding in-flight %s request %s",
                        stage.value, self._pending[stage].request_id)
        self._pending[stage] = _Pending(request_id, session.generation, session.mask_revision)
        self.channel.post_message({
            "type": REQUEST_TYPES[stage].value,
            "id": request_id,
            "generation": session.generation,
            "data": data,
        })
        logger.info("Posted %s request %s", stage.value, request_id)
        return request_id

    def initialize(self, env: str, app_base_path: str) -> None:
        self.channel.post_message(build_init_message(env, app_base_path))

    def request_encoder(self) -> str:
        tensor = self.editor.build_encoder_request()
        return self._post(Stage.ENCODER, tensor.to_payload())

    def request_decoder(self, resized_w: int = None, resized_h: int = None) -> str:
        request = self.editor.build_decoder_request(resized_w, resized_h)
        return self._post(Stage.DECODER, request.to_payload())

    def request_inpainting(self) -> str:
        request = self.editor.build_inpainting_request()
        return self._post(Stage.INPAINTING, request.to_payload())

    def pending(self, stage: Stage) -> Optional[str]:
        entry = self._pending.get(stage)
        return entry.request_id if entry else None

    # ---------- incoming ----------
    def _is_current(self, stage: Stage, message: Dict[str, Any]) -> bool:
        entry = self._pending.get(stage)
        session = self.editor.session
        if entry is None or message.get("id") != entry.request_id:
            return False
        if session is None or session.generation != entry.generation:
            return False
        # Inpainting output replaces the image, so newer mask edits would be lost.
        return stage is not Stage.INPAINTING or session.mask_revision == entry.mask_revision

    def handle_response(self, message: Dict[str, Any]) -> bool:
        """
        Apply a worker response. Returns True if it changed the session,
        False if it was discarded as stale.
        """
        msg_type = MessageType(message["type"])

        if msg_type is MessageType.ERROR:
            stage_name = str(message.get("stage", "unknown"))
            stage = next((s for s in Stage if s.value == stage_name), None)
            if stage is not None:
                if not self._is_current(stage, message):
                    logger.info("Discarding stale %s error %s", stage_name, message.get("id"))
                    return False
                del self._pending[stage]
            raise ExternalStageError(stage_name, str(message.get("error", "unspecified error")))

        if msg_type not in RESPONSE_STAGES:
            raise ValueError(f"Unexpected message type from worker: {msg_type.value}")
        stage = RESPONSE_STAGES[msg_type]

        if not self._is_current(stage, message):
            logger.info("Discarding stale %s response %s", stage.value, message.get("id"))
            return False

        del self._pending[stage]
        data = message["data"]
        if stage is Stage.ENCODER:
            self.editor.set_embedding(TensorBuffer.from_payload(data, dtype=np.float32))
        elif stage is Stage.DECODER:
            self.editor.apply_decoder_mask(TensorBuffer.from_payload(data))
        else:
            self._apply_inpainting(TensorBuffer.from_payload(data))
        return True

    def _apply_inpainting(self, output: TensorBuffer) -> PixelImage:
        image = self.editor.apply_inpainting_result(output)
        # The new image starts a new generation; nothing in flight still applies.
        self._pending.clear()
        return image
