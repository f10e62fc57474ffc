"""Tests for image, mask and tensor file I/O.

Run: pytest tests/test_image_repository.py -v
"""
import cv2
import numpy as np
import pytest

from sam_inpaint.errors import ShapeError
from sam_inpaint.models.tensor import TensorBuffer
from sam_inpaint.repositories.image_repository import ImageRepository


class TestImages:
    def test_png_round_trip(self, tmp_path, image_factory):
        img = image_factory(5, 3)
        path = ImageRepository.save(img, tmp_path / "sub" / "img.png")
        back = ImageRepository.load(path)
        assert (back.width, back.height) == (5, 3)
        assert np.array_equal(back.data, img.data)

    def test_rgb_file_gets_opaque_alpha(self, tmp_path):
        bgr = np.zeros((2, 2, 3), dtype=np.uint8)
        bgr[0, 0] = (255, 0, 0)   # blue in BGR
        cv2.imwrite(str(tmp_path / "rgb.png"), bgr)
        img = ImageRepository.load(tmp_path / "rgb.png")
        assert img.as_array()[0, 0].tolist() == [0, 0, 255, 255]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ImageRepository.load(tmp_path / "nope.png")


class TestMasks:
    def test_load_mask(self, tmp_path):
        gray = np.zeros((3, 4), dtype=np.uint8)
        gray[1, 2] = 255
        cv2.imwrite(str(tmp_path / "m.png"), gray)
        mask = ImageRepository.load_mask(tmp_path / "m.png", 4, 3)
        assert mask.count() == 1 and mask.cells[1, 2]

    def test_mask_size_must_match(self, tmp_path):
        cv2.imwrite(str(tmp_path / "m.png"), np.zeros((3, 4), dtype=np.uint8))
        with pytest.raises(ShapeError):
            ImageRepository.load_mask(tmp_path / "m.png", 3, 4)

    def test_missing_mask(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ImageRepository.load_mask(tmp_path / "nope.png")


class TestTensors:
    def test_npz_keeps_dims(self, tmp_path):
        a = TensorBuffer(np.arange(6, dtype=np.float32), (1, 2, 3))
        b = TensorBuffer(np.arange(4, dtype=np.uint8), (2, 2))
        path = ImageRepository.save_tensors(tmp_path / "t.npz", a=a, b=b)
        assert ImageRepository.load_tensor(path, "b").dims == (2, 2)
        loaded = ImageRepository.load_tensor(path, "a")
        assert loaded.dims == (1, 2, 3)
        assert loaded.data.tolist() == list(range(6))

    def test_npy_uses_array_shape(self, tmp_path):
        np.save(tmp_path / "e.npy", np.zeros((1, 4, 2, 2), dtype=np.float32))
        assert ImageRepository.load_tensor(tmp_path / "e.npy").dims == (1, 4, 2, 2)

    def test_unknown_name(self, tmp_path):
        path = ImageRepository.save_tensors(tmp_path / "t.npz", a=TensorBuffer.zeros((2,)))
        with pytest.raises(KeyError):
            ImageRepository.load_tensor(path, "missing")
