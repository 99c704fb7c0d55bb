"""Pixel <-> physical coordinate transform of a video frame.

Pixel coordinates are 1-based: pixel centers sit at ``1..n_x`` along image
x and ``1..n_y`` along image y. Both directions interpolate linearly
between pixel centers and extrapolate linearly outside the frame, since
ROI handles may sit outside the visible image.

Accepted coordinate forms
-------------------------
``transform(idx)``
    Linear indices (0-based, C order into the ``(n_y, n_x)`` image).
    ``pix2real`` only. Returns ``(x, y)`` shaped like ``idx``.
``transform(x, y)``
    Two arrays of identical shape. Returns ``(x, y)`` with that shape.
``transform(xy)``
    One ``(N, 2)`` array, returned as ``(N, 2)``; or one ``(2, N)`` array,
    returned as ``(2, N)``. A 1-D pair is handled as ``(1, 2)`` and
    returned as a pair.
"""

import logging

import numpy as np
from scipy.interpolate import interp1d

from hsvideo.contracts import InvalidInputError, NotImplementedTransformError, require

__all__ = ['CoordinateTransform']

logger = logging.getLogger(__name__)


def _interpolator(src, dst):
    return interp1d(src, dst, kind="linear", fill_value="extrapolate",
                    assume_sorted=False, copy=False)


def _pad_single(vec, step):
    # interp1d needs two support points
    if vec.size == 1:
        return np.array([vec[0], vec[0] + step], dtype=float)
    return vec


class CoordinateTransform:
    """Bidirectional mapping between pixel and physical coordinates.

    Parameters
    ----------
    x_vector, y_vector : np.ndarray
        Physical coordinate of each pixel center along image x and y.
    pixel_pitch : tuple of float, optional
        Step used when an axis has a single pixel.
    """

    def __init__(self, x_vector, y_vector, pixel_pitch=(1.0, 1.0)):
        self.x_vector = np.asarray(x_vector, dtype=float).ravel()
        self.y_vector = np.asarray(y_vector, dtype=float).ravel()
        require(self.x_vector.size > 0 and self.y_vector.size > 0,
                "Coordinate vectors must not be empty")
        self.n_x = self.x_vector.size
        self.n_y = self.y_vector.size

        px, py = (float(p) for p in pixel_pitch)
        xv = _pad_single(self.x_vector, px if px != 0 else 1.0)
        yv = _pad_single(self.y_vector, py if py != 0 else 1.0)
        ix = np.arange(1, xv.size + 1, dtype=float)
        iy = np.arange(1, yv.size + 1, dtype=float)

        self._x_pix2real = _interpolator(ix, xv)
        self._y_pix2real = _interpolator(iy, yv)
        self._x_real2pix = _interpolator(xv, ix)
        self._y_real2pix = _interpolator(yv, iy)

    def __repr__(self):
        return f"CoordinateTransform(n_x={self.n_x}, n_y={self.n_y})"

    def pix2real(self, *coords):
        """Map pixel coordinates (or linear indices) to physical coordinates."""
        return self._apply("pix2real", coords)

    def real2pix(self, *coords):
        """Map physical coordinates to 1-based pixel coordinates."""
        return self._apply("real2pix", coords)

    def linear_to_pixel(self, index):
        """Split 0-based C-order linear indices into 1-based ``(x, y)`` pixels."""
        index = np.asarray(index)
        require(np.issubdtype(index.dtype, np.integer) or np.all(np.mod(index, 1) == 0),
                "Linear indices must be integers")
        index = index.astype(np.int64)
        require(np.all((index >= 0) & (index < self.n_x * self.n_y)),
                f"Linear index out of range for a {self.n_y}x{self.n_x} image")
        row, col = np.unravel_index(index, (self.n_y, self.n_x))
        return col.astype(float) + 1.0, row.astype(float) + 1.0

    def _map(self, direction, x, y):
        if direction == "pix2real":
            fx, fy = self._x_pix2real, self._y_pix2real
        else:
            fx, fy = self._x_real2pix, self._y_real2pix
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        return fx(x.ravel()).reshape(x.shape), fy(y.ravel()).reshape(y.shape)

    def _apply(self, direction, coords):
        n = len(coords)
        if n == 3:
            raise NotImplementedTransformError(
                "Transform of three global coordinates is not implemented")
        if n not in (1, 2):
            raise InvalidInputError(f"Unknown number ({n}) of coordinates")

        if n == 2:
            x = np.asarray(coords[0], dtype=float)
            y = np.asarray(coords[1], dtype=float)
            require(x.shape == y.shape,
                    f"Coordinate arrays must have the same shape, got {x.shape} and {y.shape}")
            return self._map(direction, x, y)

        arr = np.asarray(coords[0])
        if arr.ndim == 1 and arr.size == 2:
            x, y = self._map(direction, arr[0], arr[1])
            return np.array([x, y], dtype=float)

        if arr.ndim <= 1 or (arr.ndim == 2 and arr.shape[1] == 1):
            if direction != "pix2real":
                raise InvalidInputError(
                    "Single coordinate input is read as linear indices, which only pix2real accepts")
            x, y = self.linear_to_pixel(arr)
            return self._map(direction, x, y)

        if arr.ndim == 2 and arr.shape[1] == 2:
            x, y = self._map(direction, arr[:, 0], arr[:, 1])
            return np.column_stack([x, y])
        if arr.ndim == 2 and arr.shape[0] == 2:
            x, y = self._map(direction, arr[0, :], arr[1, :])
            return np.vstack([x, y])

        raise InvalidInputError(f"Unexpected coordinate array of shape {arr.shape}")
