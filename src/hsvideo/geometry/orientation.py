"""Sensor orientation: which global axis each image axis represents.

The sensor normal must be axis aligned. The nonzero component selects one
of three layouts and its sign selects whether the image x direction is
reversed:

=====  ========  ========  =====================
axis   image x   image y   image x reversed when
=====  ========  ========  =====================
z      y         x         normal > 0
y      z         x         normal < 0
x      z         y         normal > 0
=====  ========  ========  =====================
"""

import logging
from dataclasses import dataclass

import numpy as np

from hsvideo.contracts import InvalidInputError, require

__all__ = ['Orientation', 'resolve_orientation', 'validate_normal', 'axis_vector']

logger = logging.getLogger(__name__)

AXIS_LABELS = ("x", "y", "z")

# normal axis (0-based) -> (image x axis, image y axis, sign that reverses image x)
_LAYOUT = {
    2: (1, 0, 1),
    1: (2, 0, -1),
    0: (2, 1, 1),
}


@dataclass(frozen=True)
class Orientation:
    """Resolved axis semantics of one sensor geometry.

    ``x_index`` and ``y_index`` are 1-based global axis numbers (1=x, 2=y, 3=z).
    """
    x_label: str
    y_label: str
    x_index: int
    y_index: int
    x_dir: int
    y_dir: int
    x_vector: np.ndarray
    y_vector: np.ndarray

    @property
    def shape(self):
        return (self.y_vector.size, self.x_vector.size)


def validate_normal(normal) -> np.ndarray:
    """Return ``normal`` as a float 3-vector with exactly one nonzero component.

    Raises
    ------
    InvalidInputError
        If the normal is not an axis-aligned, finite 3-vector.
    """
    try:
        value = np.asarray(normal, dtype=float).ravel()
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Input not valid for normal: {normal!r}") from e
    require(value.size == 3, f"Normal must have 3 components, got {value.size}")
    require(np.all(np.isfinite(value)), f"Normal must be finite, got {value.tolist()}")
    require(
        np.count_nonzero(value) == 1,
        f"Only sensor normals along one axis (e.g. [1, 0, 0]) are supported, got {value.tolist()}",
    )
    return value


def axis_vector(n: int, pitch: float, offset: float, flip: bool = False) -> np.ndarray:
    """Physical coordinate of each pixel center along one image axis.

    Examples
    --------
    >>> axis_vector(3, 2.0, 1.0)
    array([-1.,  1.,  3.])
    """
    vec = (np.arange(n, dtype=float) - (n - 1) / 2.0) * pitch + offset
    if flip:
        vec = vec[::-1].copy()
    return vec


def resolve_orientation(normal, position, pixel_pitch, n_x: int, n_y: int) -> Orientation:
    """Derive axis labels, directions and coordinate vectors of a geometry.

    Parameters
    ----------
    normal : array-like, shape (3,)
        Sensor normal, exactly one nonzero component.
    position : array-like, shape (3,)
        Global position of the sensor center.
    pixel_pitch : array-like, shape (2,)
        Physical size of one pixel along image x and image y.
    n_x, n_y : int
        Image width and height in pixels.

    Returns
    -------
    Orientation

    Raises
    ------
    InvalidInputError
        On a non axis-aligned normal or malformed position/pitch.
    """
    normal = validate_normal(normal)
    position = np.asarray(position, dtype=float).ravel()
    pitch = np.asarray(pixel_pitch, dtype=float).ravel()
    require(position.size == 3, f"Position must have 3 components, got {position.size}")
    require(pitch.size == 2, f"Pixel pitch must have 2 components, got {pitch.size}")

    axis = int(np.flatnonzero(normal)[0])
    sign = 1 if normal[axis] > 0 else -1
    x_axis, y_axis, flip_sign = _LAYOUT[axis]
    flip_x = sign == flip_sign

    x_vector = axis_vector(int(n_x), pitch[0], position[x_axis], flip=flip_x)
    y_vector = axis_vector(int(n_y), pitch[1], position[y_axis])

    orientation = Orientation(
        x_label=AXIS_LABELS[x_axis],
        y_label=AXIS_LABELS[y_axis],
        x_index=x_axis + 1,
        y_index=y_axis + 1,
        x_dir=-1 if flip_x else 1,
        y_dir=1,
        x_vector=x_vector,
        y_vector=y_vector,
    )
    logger.debug("Orientation for normal %s: x->%s (dir %d), y->%s",
                 normal.tolist(), orientation.x_label, orientation.x_dir, orientation.y_label)
    return orientation
