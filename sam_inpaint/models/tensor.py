from __future__ import annotations
from dataclasses import dataclass
from math import prod
from typing import Any, Dict, Sequence, Tuple
import numpy as np

from ..errors import ShapeError


@dataclass(frozen=True, eq=False)
class TensorBuffer:
    """
    Flat numeric buffer paired with an explicit dimension order,
    e.g. (N, C, H, W) or (N, H, W).

    Invariant: data.size == prod(dims). Checked on construction so a
    malformed buffer never travels further than the call that built it.
    """
    data: np.ndarray
    dims: Tuple[int, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "dims", tuple(int(d) for d in self.dims))
        if self.data.ndim != 1:
            raise ShapeError(f"Tensor data must be flat, got array of shape {self.data.shape}")
        if any(d < 0 for d in self.dims):
            raise ShapeError(f"Negative dimension in {list(self.dims)}")
        if self.data.size != prod(self.dims):
            raise ShapeError(
                f"Tensor data has {self.data.size} values but dims {list(self.dims)} "
                f"require {prod(self.dims)}"
            )

    @property
    def dtype(self) -> np.dtype:
        return self.data.dtype

    def as_array(self) -> np.ndarray:
        return self.data.reshape(self.dims)

    def to_payload(self) -> Dict[str, Any]:
        return {"data": self.data, "dims": list(self.dims)}

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], dtype: Any = None) -> "TensorBuffer":
        """
        Receiver-side constructor: validates length against dims before use.
        """
        if "data" not in payload or "dims" not in payload:
            raise ShapeError(f"Tensor payload needs 'data' and 'dims', got keys {sorted(payload)}")
        data = np.asarray(payload["data"], dtype=dtype).reshape(-1)
        return cls(data=data, dims=tuple(payload["dims"]))

    @classmethod
    def zeros(cls, dims: Sequence[int], dtype: Any = np.float32) -> "TensorBuffer":
        return cls(data=np.zeros(prod(dims), dtype=dtype), dims=tuple(dims))
