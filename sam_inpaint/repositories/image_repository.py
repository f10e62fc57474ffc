# repositories/image_repository.py
from pathlib import Path
from typing import Union

import cv2
import numpy as np
from PIL import Image as PILImage

from ..errors import ShapeError
from ..models.image import PixelImage
from ..models.mask import MaskGrid
from ..models.tensor import TensorBuffer


class ImageRepository:
    """
    Handles file I/O for pixel images, masks and tensor dumps.
    """

    @staticmethod
    def load(path: Union[str, Path]) -> PixelImage:
        """Decode any Pillow-readable file into canvas-style RGBA."""
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Image not found or unreadable: {path}")
        with PILImage.open(path) as pil:
            rgba = np.asarray(pil.convert("RGBA"), dtype=np.uint8)
        return PixelImage.from_array(rgba)

    @staticmethod
    def save(image: PixelImage, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        PILImage.fromarray(image.as_array()).save(path)
        return path

    @staticmethod
    def load_mask(path: Union[str, Path], width: int = None, height: int = None) -> MaskGrid:
        """
        Grayscale mask file → MaskGrid (non-zero = set).
        If a size is given the file must already have it; nothing is resized.
        """
        gray = cv2.imread(str(path), cv2.IMREAD_GRAYSCALE)
        if gray is None:
            raise FileNotFoundError(f"Mask not found or unreadable: {path}")
        if width is not None and height is not None and gray.shape != (height, width):
            raise ShapeError(
                f"Mask {path} is {gray.shape[1]}x{gray.shape[0]}, expected {width}x{height}"
            )
        return MaskGrid(gray > 0)

    @staticmethod
    def save_tensors(path: Union[str, Path], **tensors: TensorBuffer) -> Path:
        """
        Write tensors to one .npz; each name stores data plus '<name>__dims'.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        arrays = {}
        for name, tensor in tensors.items():
            arrays[name] = tensor.data
            arrays[f"{name}__dims"] = np.asarray(tensor.dims, dtype=np.int64)
        np.savez(path, **arrays)
        return path

    @staticmethod
    def load_tensor(path: Union[str, Path], name: str = None) -> TensorBuffer:
        """
        Read a tensor from .npy (dims = array shape) or from a .npz written by
        save_tensors (dims from '<name>__dims', first tensor if *name* is None).
        """
        path = Path(path)
        if path.suffix == ".npy":
            arr = np.load(path)
            return TensorBuffer(data=arr.reshape(-1), dims=arr.shape)
        with np.load(path) as archive:
            names = [k for k in archive.files if not k.endswith("__dims")]
            if not names:
                raise ValueError(f"No tensors in {path}")
            key = name or names[0]
            if key not in archive.files:
                raise KeyError(f"Tensor '{key}' not in {path}; available: {names}")
            dims_key = f"{key}__dims"
            data = archive[key].reshape(-1)
            dims = tuple(archive[dims_key]) if dims_key in archive.files else archive[key].shape
        return TensorBuffer(data=data, dims=dims)
