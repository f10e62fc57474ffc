"""Tensor pre/post-processing and editor mask state for SAM + inpainting."""

from .errors import ExternalStageError, PreconditionError, ShapeError

__version__ = "1.0.0"

__all__ = ["ShapeError", "PreconditionError", "ExternalStageError"]
