# errors.py
"""
Error taxonomy shared by every layer.

• ShapeError          : buffer length / dimension mismatch, fatal to the request
• PreconditionError   : operation called in the wrong editor state
• ExternalStageError  : the inference runtime reported a failure
"""


class ShapeError(ValueError):
    """Buffer length or dimensions do not match the declared shape."""


class PreconditionError(RuntimeError):
    """The editor is not in a state that allows the requested operation."""


class ExternalStageError(RuntimeError):
    """An inference stage (encoder, decoder, inpainting) failed."""

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(f"{stage} stage failed: {message}")
        self.stage = stage
