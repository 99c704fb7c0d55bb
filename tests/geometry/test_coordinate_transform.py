"""Tests for the pixel <-> physical coordinate transform."""

import numpy as np
import pytest

pytestmark = pytest.mark.unit

from hsvideo.contracts import InvalidInputError, NotImplementedTransformError
from hsvideo.geometry import CoordinateTransform


@pytest.fixture
def transform():
    """3 pixels along x (pitch 1), 2 pixels along y (pitch 2)."""
    return CoordinateTransform([0.0, 1.0, 2.0], [10.0, 12.0], pixel_pitch=(1.0, 2.0))


class TestPix2Real:

    def test_pixel_centers_are_one_based(self, transform):
        x, y = transform.pix2real(1, 1)
        assert float(x) == pytest.approx(0.0)
        assert float(y) == pytest.approx(10.0)

    def test_two_arrays_keep_their_shape(self, transform):
        px = np.array([[1, 2], [3, 1]])
        py = np.array([[1, 2], [1, 2]])
        x, y = transform.pix2real(px, py)

        assert x.shape == (2, 2)
        np.testing.assert_allclose(x, [[0, 1], [2, 0]])
        np.testing.assert_allclose(y, [[10, 12], [10, 12]])

    def test_extrapolates_outside_the_frame(self, transform):
        x, y = transform.pix2real(np.array([0.0, 4.0]), np.array([0.0, 3.0]))
        np.testing.assert_allclose(x, [-1.0, 3.0])
        np.testing.assert_allclose(y, [8.0, 14.0])

    def test_linear_indices_are_zero_based_c_order(self, transform):
        # index 4 in a (2, 3) image is row 1, col 1 -> pixel (2, 2)
        x, y = transform.pix2real(np.array([0, 4, 5]))
        np.testing.assert_allclose(x, [0.0, 1.0, 2.0])
        np.testing.assert_allclose(y, [10.0, 12.0, 12.0])

    def test_linear_index_column_vector(self, transform):
        x, y = transform.pix2real(np.array([[2], [3]]))
        np.testing.assert_allclose(x.ravel(), [2.0, 0.0])
        np.testing.assert_allclose(y.ravel(), [10.0, 12.0])

    def test_linear_index_out_of_range(self, transform):
        with pytest.raises(InvalidInputError):
            transform.pix2real(np.array([6]))

    def test_n_by_2_array(self, transform):
        out = transform.pix2real(np.array([[1, 1], [3, 2], [2, 2]]))
        assert out.shape == (3, 2)
        np.testing.assert_allclose(out, [[0, 10], [2, 12], [1, 12]])

    def test_2_by_n_array(self, transform):
        out = transform.pix2real(np.array([[1, 2, 3], [1, 1, 2]]))
        assert out.shape == (2, 3)
        np.testing.assert_allclose(out, [[0, 1, 2], [10, 10, 12]])

    def test_one_d_pair_is_a_single_point(self, transform):
        out = transform.pix2real(np.array([2.0, 2.0]))
        assert out.shape == (2,)
        np.testing.assert_allclose(out, [1.0, 12.0])


class TestReal2Pix:

    def test_inverse_of_pix2real(self, transform):
        px = np.array([1.0, 1.5, 2.75, 3.0, 5.0])
        py = np.array([1.0, 2.0, 0.5, 1.25, -1.0])
        x, y = transform.pix2real(px, py)
        bx, by = transform.real2pix(x, y)

        np.testing.assert_allclose(bx, px)
        np.testing.assert_allclose(by, py)

    def test_reversed_axis(self):
        t = CoordinateTransform([2.0, 1.0, 0.0], [0.0, 1.0])
        px, _ = t.real2pix(np.array([2.0, 0.0]), np.array([0.0, 0.0]))
        np.testing.assert_allclose(px, [1.0, 3.0])

    def test_rejects_linear_indices(self, transform):
        with pytest.raises(InvalidInputError):
            transform.real2pix(np.array([0, 1, 2]))


def test_single_pixel_axis_uses_pitch_as_step():
    t = CoordinateTransform([5.0], [1.0, 2.0], pixel_pitch=(0.5, 1.0))
    x, _ = t.pix2real(np.array([1.0, 2.0]), np.array([1.0, 1.0]))
    np.testing.assert_allclose(x, [5.0, 5.5])


def test_three_coordinate_groups_not_implemented(transform):
    with pytest.raises(NotImplementedTransformError):
        transform.pix2real([1], [1], [1])
    with pytest.raises(NotImplementedError):
        transform.real2pix([1], [1], [1])


@pytest.mark.parametrize("n", [0, 4])
def test_unexpected_number_of_groups(transform, n):
    with pytest.raises(InvalidInputError):
        transform.pix2real(*([[1.0]] * n))


def test_mismatched_shapes(transform):
    with pytest.raises(InvalidInputError):
        transform.pix2real(np.ones(3), np.ones(2))


def test_empty_vectors_rejected():
    with pytest.raises(InvalidInputError):
        CoordinateTransform([], [1.0])
