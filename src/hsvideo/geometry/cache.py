"""Lazily computed geometry state of a video.

Every derived quantity (orientation and axis vectors, 2-D grids, the
coordinate transform, the reference frame) is computed on first access and
kept until :meth:`LazyGeometryCache.invalidate` clears the whole set.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np
import xarray as xr

from hsvideo.geometry.orientation import Orientation, resolve_orientation
from hsvideo.geometry.transform import CoordinateTransform

__all__ = ['GeometryParams', 'LazyGeometryCache']

logger = logging.getLogger(__name__)

GROUPS = ("orientation", "grids", "transform", "reference")


@dataclass(frozen=True)
class GeometryParams:
    """Snapshot of the parameters every derived quantity depends on."""
    normal: tuple
    position: tuple
    pixel_pitch: tuple
    n_x: int
    n_y: int

    @property
    def dims(self):
        return (self.n_y, self.n_x)


class LazyGeometryCache:
    """Memoized geometry state with one dirty flag per group.

    Parameters
    ----------
    provider : callable
        Returns the current :class:`GeometryParams`.
    on_reset : callable, optional
        Called without arguments after every invalidation.
    buffer_grids : bool
        Keep 2-D grids after the first computation. When False they are
        rebuilt on each access and not retained.
    """

    def __init__(self, provider: Callable[[], GeometryParams],
                 on_reset: Optional[Callable[[], None]] = None,
                 buffer_grids: bool = True):
        self._provider = provider
        self._on_reset = on_reset
        self.buffer_grids = bool(buffer_grids)
        self._dims = None
        self._clear()

    def _clear(self):
        self.dirty = {group: True for group in GROUPS}
        self._orientation = None
        self._grids = None
        self._transform = None
        self._reference = None

    def invalidate(self, reason: str = "geometry changed"):
        """Drop every derived quantity and publish a geometry reset."""
        self._clear()
        self._dims = None
        logger.debug("Geometry cache invalidated: %s", reason)
        if self._on_reset is not None:
            self._on_reset()

    @property
    def buffer_grids(self) -> bool:
        return self._buffer_grids

    @buffer_grids.setter
    def buffer_grids(self, value: bool):
        self._buffer_grids = bool(value)
        if not self._buffer_grids and getattr(self, "_grids", None) is not None:
            self._grids = None
            self.dirty["grids"] = True

    def _params(self) -> GeometryParams:
        params = self._provider()
        if self._dims is not None and params.dims != self._dims:
            logger.info("Frame dimensions changed from %s to %s, resetting geometry",
                        self._dims, params.dims)
            self.invalidate("frame dimensions changed")
        return params

    @property
    def orientation(self) -> Orientation:
        params = self._params()
        if self.dirty["orientation"]:
            self._orientation = resolve_orientation(
                params.normal, params.position, params.pixel_pitch, params.n_x, params.n_y)
            self._dims = params.dims
            self.dirty["orientation"] = False
        return self._orientation

    @property
    def x(self) -> np.ndarray:
        return self.orientation.x_vector

    @property
    def y(self) -> np.ndarray:
        return self.orientation.y_vector

    def _compute_grids(self):
        o = self.orientation
        return np.meshgrid(o.x_vector, o.y_vector)

    @property
    def grids(self):
        """``(x_grid, y_grid)``, each of shape ``(n_y, n_x)``."""
        orientation = self.orientation
        if not self.buffer_grids:
            return tuple(np.meshgrid(orientation.x_vector, orientation.y_vector))
        if self.dirty["grids"]:
            self._grids = tuple(self._compute_grids())
            self.dirty["grids"] = False
        return self._grids

    @property
    def x_grid(self) -> np.ndarray:
        return self.grids[0]

    @property
    def y_grid(self) -> np.ndarray:
        return self.grids[1]

    @property
    def depth(self) -> float:
        """Global coordinate of the sensor plane along its normal."""
        params = self._params()
        axis = int(np.flatnonzero(np.asarray(params.normal))[0])
        return float(params.position[axis])

    @property
    def z_grid(self) -> np.ndarray:
        """Constant plane coordinate, shape ``(n_y, n_x)``."""
        o = self.orientation
        return np.full((o.y_vector.size, o.x_vector.size), self.depth)

    @property
    def transform(self) -> CoordinateTransform:
        orientation = self.orientation
        if self.dirty["transform"]:
            params = self._params()
            self._transform = CoordinateTransform(
                orientation.x_vector, orientation.y_vector, params.pixel_pitch)
            self.dirty["transform"] = False
        return self._transform

    @property
    def reference(self) -> xr.DataArray:
        """Empty frame carrying the physical coordinates of every pixel."""
        orientation = self.orientation
        if self.dirty["reference"]:
            params = self._params()
            self._reference = xr.DataArray(
                np.zeros(params.dims, dtype=bool),
                dims=("y", "x"),
                coords={"x": orientation.x_vector, "y": orientation.y_vector},
                attrs={
                    "x_label": orientation.x_label,
                    "y_label": orientation.y_label,
                    "x_dir": orientation.x_dir,
                    "y_dir": orientation.y_dir,
                    "normal": list(params.normal),
                    "position": list(params.position),
                    "pixel_pitch": list(params.pixel_pitch),
                },
            )
            self.dirty["reference"] = False
        return self._reference
