"""Tests for the sam-inpaint command line entry point.

Run: pytest tests/test_cli.py -v
"""
import numpy as np
import pytest

from sam_inpaint.cli.prepare_requests import main
from sam_inpaint.repositories.image_repository import ImageRepository


@pytest.fixture
def image_path(tmp_path, image_factory):
    return ImageRepository.save(image_factory(12, 8), tmp_path / "in.png")


def test_encode(tmp_path, image_path, monkeypatch):
    monkeypatch.setenv("ENCODER_LONG_SIDE", "24")
    main(["encode", "--image", str(image_path), "--out", str(tmp_path / "out")])
    t = ImageRepository.load_tensor(tmp_path / "out" / "encoder_request.npz", "input_image")
    assert t.dims == (16, 24, 3)


def test_decode(tmp_path, image_path, monkeypatch):
    monkeypatch.setenv("ENCODER_LONG_SIDE", "24")
    np.save(tmp_path / "emb.npy", np.zeros((1, 8, 2, 2), dtype=np.float32))
    main(["decode", "--image", str(image_path), "--embedding", str(tmp_path / "emb.npy"),
          "--point", "6,4,+", "--point", "1,1,-", "--out", str(tmp_path / "out")])
    path = tmp_path / "out" / "decoder_request.npz"
    assert ImageRepository.load_tensor(path, "point_labels").data.tolist() == [1.0, 0.0, -1.0]
    assert ImageRepository.load_tensor(path, "point_coords").data[:2].tolist() == [12.0, 8.0]


def test_inpaint_and_restore(tmp_path, image_path):
    out = tmp_path / "out"
    sam = np.zeros((1, 1, 8, 12), dtype=np.float32)
    sam[0, 0, 4, 6] = 1.0
    np.save(tmp_path / "sam.npy", sam)
    main(["inpaint", "--image", str(image_path), "--sam-mask", str(tmp_path / "sam.npy"),
          "--out", str(out)])
    mask = ImageRepository.load_tensor(out / "inpainting_request.npz", "mask")
    assert mask.dims == (1, 1, 8, 12)
    assert (mask.data == 0).sum() > 0
    assert (out / "preview.png").is_file()

    image = ImageRepository.load_tensor(out / "inpainting_request.npz", "image")
    np.save(tmp_path / "result.npy", image.as_array())
    main(["restore", "--tensor", str(tmp_path / "result.npy"), "--out", str(out / "result.png")])
    restored = ImageRepository.load(out / "result.png")
    original = ImageRepository.load(image_path)
    assert np.array_equal(restored.as_array()[..., :3], original.as_array()[..., :3])


def test_restore_size_comes_from_tensor_dims(tmp_path):
    np.save(tmp_path / "chw.npy", np.full((3, 5, 7), 9, dtype=np.uint8))
    main(["restore", "--tensor", str(tmp_path / "chw.npy"), "--out", str(tmp_path / "r.png")])
    restored = ImageRepository.load(tmp_path / "r.png")
    assert (restored.width, restored.height) == (7, 5)

    with pytest.raises(SystemExit) as info:
        main(["restore", "--tensor", str(tmp_path / "chw.npy"), "--width", "7", "--height", "5"])
    assert info.value.code == 2


def test_bad_point_exits(image_path):
    with pytest.raises(SystemExit):
        main(["decode", "--image", str(image_path), "--embedding", "x.npy", "--point", "a,b"])


def test_missing_image_exits_with_error(tmp_path, capsys):
    with pytest.raises(SystemExit) as info:
        main(["encode", "--image", str(tmp_path / "nope.png")])
    assert info.value.code == 1
    assert "[ERROR]" in capsys.readouterr().err
