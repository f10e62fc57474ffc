"""Tests for the brush / decoder mask model.

Verifies:
    - combine is an exact-shape elementwise OR (commutative, idempotent)
    - dilate: radius 0 is identity, Euclidean disk growth otherwise
    - paint_stroke: click = filled circle, drag = capsule, brush size scaled
      by image/canvas ratio

Run: pytest tests/test_mask_service.py -v
"""
import numpy as np
import pytest

from sam_inpaint.errors import ShapeError
from sam_inpaint.models.mask import MaskGrid
from sam_inpaint.services.mask_service import MaskService


@pytest.fixture
def service():
    return MaskService(dilation_radius=1, brush_size=1)


def _single(h, w, row, col):
    cells = np.zeros((h, w), dtype=bool)
    cells[row, col] = True
    return MaskGrid(cells)


class TestMaskGrid:
    def test_accepts_nested_lists(self):
        m = MaskGrid([[True, False], [False, False]])
        assert m.shape == (2, 2)
        assert m.count() == 1

    def test_one_dimensional_is_shape_error(self):
        with pytest.raises(ShapeError):
            MaskGrid([True, False, True])


class TestCreateAndCombine:
    def test_create_empty(self, service):
        m = service.create_empty(4, 3)
        assert m.shape == (3, 4)
        assert (m.width, m.height) == (4, 3)
        assert m.count() == 0

    def test_combine_is_or(self, service):
        a = _single(3, 3, 0, 0)
        b = _single(3, 3, 2, 2)
        c = service.combine(a, b)
        assert c.count() == 2
        assert c.cells[0, 0] and c.cells[2, 2]

    def test_combine_commutative_and_idempotent(self, service):
        rng = np.random.default_rng(3)
        a = MaskGrid(rng.random((5, 6)) > 0.5)
        b = MaskGrid(rng.random((5, 6)) > 0.5)
        assert service.combine(a, b) == service.combine(b, a)
        assert service.combine(a, a) == a

    def test_combine_shape_mismatch(self, service):
        with pytest.raises(ShapeError):
            service.combine(service.create_empty(3, 3), service.create_empty(3, 4))


class TestDilate:
    def test_radius_zero_is_identity(self, service):
        m = _single(4, 4, 1, 2)
        out = service.dilate(m, 0)
        assert out == m
        assert out.cells is not m.cells

    def test_radius_one_is_plus_shape(self, service):
        out = service.dilate(_single(5, 5, 2, 2), 1)
        expected = np.zeros((5, 5), dtype=bool)
        expected[2, 1:4] = True
        expected[1:4, 2] = True
        assert np.array_equal(out.cells, expected)

    def test_radius_two_is_euclidean(self, service):
        out = service.dilate(_single(7, 7, 3, 3), 2)
        assert out.cells[2, 2]          # dist² = 2
        assert out.cells[3, 1]          # dist² = 4
        assert not out.cells[1, 1]      # dist² = 8
        assert out.count() == 13

    def test_default_radius_from_service(self, service):
        assert service.dilate(_single(5, 5, 2, 2)).count() == 5

    def test_source_untouched(self, service):
        m = _single(5, 5, 2, 2)
        service.dilate(m, 2)
        assert m.count() == 1

    def test_negative_radius(self, service):
        with pytest.raises(ValueError):
            service.dilate(_single(3, 3, 1, 1), -1)

    def test_radius_from_env(self, monkeypatch):
        monkeypatch.setenv("SAM_DILATION_RADIUS", "7")
        monkeypatch.setenv("BRUSH_SIZE", "12")
        svc = MaskService()
        assert svc.dilation_radius == 7
        assert svc.brush_size == 12.0


class TestPaint:
    def test_single_click_covers_one_cell(self, service):
        m = service.create_empty(3, 3)
        service.paint_stroke(m, 1.5, 1.5, 1.5, 1.5, img_res_to_canvas_ratio=1.0, brush_size=1)
        assert np.array_equal(m.cells, _single(3, 3, 1, 1).cells)

    def test_brush_scaled_by_ratio(self, service):
        m = service.create_empty(3, 3)
        service.paint_stroke(m, 1.5, 1.5, 1.5, 1.5, img_res_to_canvas_ratio=2.0, brush_size=0.5)
        assert m.count() == 1 and m.cells[1, 1]

    def test_click_circle(self, service):
        m = service.create_empty(9, 9)
        # radius 1.5 around a cell centre: dist² <= 2.25 → 3x3 block
        service.paint_stroke(m, 4.5, 4.5, 4.5, 4.5, brush_size=3)
        assert m.count() == 9
        assert m.cells[3:6, 3:6].all()

    def test_drag_paints_capsule(self, service):
        m = service.create_empty(10, 5)
        service.paint_stroke(m, 8.5, 2.5, 1.5, 2.5, brush_size=1)
        assert m.cells[2, 1:9].all()
        assert m.count() == 8

    def test_diagonal_drag_is_connected(self, service):
        m = service.create_empty(6, 6)
        service.paint_stroke(m, 5.5, 5.5, 0.5, 0.5, brush_size=1)
        assert all(m.cells[i, i] for i in range(6))

    def test_paint_accumulates_and_returns_position(self, service):
        m = service.create_empty(5, 5)
        pos = service.paint_stroke(m, 0.5, 0.5, 0.5, 0.5, brush_size=1)
        assert pos == (0.5, 0.5)
        service.paint_stroke(m, 4.5, 4.5, 4.5, 4.5, brush_size=1)
        assert m.count() == 2

    def test_stroke_outside_grid_paints_nothing(self, service):
        m = service.create_empty(4, 4)
        service.paint_stroke(m, 40, 40, 50, 50, brush_size=2)
        assert m.count() == 0

    def test_default_brush_size(self, service):
        m = service.create_empty(3, 3)
        service.paint_stroke(m, 1.5, 1.5, 1.5, 1.5)
        assert m.count() == 1


class TestThreshold:
    def test_logits_to_mask(self, service):
        m = service.threshold(np.array([-1.0, 0.0, 0.5, 3.0]), 2, 2, 0.0)
        assert m.cells.tolist() == [[False, False], [True, True]]

    def test_size_mismatch(self, service):
        with pytest.raises(ShapeError):
            service.threshold(np.zeros(5), 2, 2, 0.0)
