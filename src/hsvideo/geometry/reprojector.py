"""Keep tracked regions anchored to their pixels across geometry changes.

Track positions are stored in physical coordinates of the current geometry.
When the normal, position or pixel pitch changes, the pixels under each
region stay the same, so the stored positions are pushed through
``real2pix`` under the old geometry and back through ``pix2real`` under the
new one.

Position layouts
----------------
ellipse, rect
    ``[x, y, w, h]`` per frame, with ``(x, y)`` the lower corner.
line, distline, polygon, point
    ``[x1 .. xn, y1 .. yn]`` per frame.
"""

import logging
from typing import Callable, Optional, Sequence

import numpy as np

from hsvideo.contracts import InvalidInputError, UnsupportedShapeError, require

__all__ = ['ROIReprojector', 'BOX_SHAPES', 'VERTEX_SHAPES', 'representative_pairs']

logger = logging.getLogger(__name__)

BOX_SHAPES = frozenset({"ellipse", "rect"})
VERTEX_SHAPES = frozenset({"line", "distline", "polygon", "point"})


def _kind(track) -> str:
    shape = getattr(track, "shape")
    return str(getattr(shape, "value", shape))


def check_supported(tracks: Sequence) -> None:
    """Raise before any side effect if a track has an unknown shape kind."""
    for track in tracks:
        kind = _kind(track)
        if kind not in BOX_SHAPES and kind not in VERTEX_SHAPES:
            raise UnsupportedShapeError(
                f"Unknown ROI '{kind}' in track '{getattr(track, 'name', '?')}'")


def representative_pairs(kind: str, position: np.ndarray):
    """Coordinate pairs that pin a region to the image.

    Returns ``(x, y)`` arrays: the center of boxes, every vertex otherwise.
    """
    position = np.asarray(position, dtype=float)
    if kind in BOX_SHAPES:
        require(position.shape[1] >= 4,
                f"{kind} position needs 4 columns, got {position.shape[1]}")
        return (position[:, 0] + position[:, 2] / 2.0,
                position[:, 1] + position[:, 3] / 2.0)
    if kind in VERTEX_SHAPES:
        n_col = position.shape[1]
        if n_col % 2:
            raise InvalidInputError(
                f"{kind} position needs an even number of columns, got {n_col}")
        half = n_col // 2
        return position[:, :half], position[:, half:]
    raise UnsupportedShapeError(f"Unknown ROI '{kind}'")


def _write_back(kind: str, position: np.ndarray, x, y, ratio) -> np.ndarray:
    out = np.array(position, dtype=float, copy=True)
    if kind in BOX_SHAPES:
        rx, ry = ratio
        out[:, 0] = x - out[:, 2] / 2.0 * rx
        out[:, 1] = y - out[:, 3] / 2.0 * ry
        out[:, 2] = out[:, 2] * rx
        out[:, 3] = out[:, 3] * ry
    else:
        half = out.shape[1] // 2
        out[:, :half] = x
        out[:, half:] = y
    return out


class ROIReprojector:
    """Reprojects track positions while a geometry change is committed.

    Parameters
    ----------
    display : object, optional
        Display session with ``hide_tracks(tracks) -> bool`` and
        ``show_tracks(tracks)``. Widgets are hidden before the first
        transform and shown again afterwards when they were visible.

    Examples
    --------
    >>> reprojector = ROIReprojector()
    >>> reprojector.reproject(tracks, cache.transform,
    ...                       commit=apply_new_pitch,
    ...                       new_transform=lambda: cache.transform,
    ...                       pitch_ratio=(2.0, 1.0))
    """

    def __init__(self, display=None):
        self.display = display

    def reproject(self, tracks: Sequence, old_transform, commit: Callable[[], None],
                  new_transform: Callable[[], object],
                  pitch_ratio: Optional[Sequence[float]] = None) -> None:
        """Commit a geometry change and move every track with it.

        Parameters
        ----------
        tracks : sequence of Track
            Tracks whose ``position`` is rewritten in place.
        old_transform : CoordinateTransform
            Transform of the geometry before the change.
        commit : callable
            Applies the new geometry parameter and invalidates the cache.
        new_transform : callable
            Returns the transform of the committed geometry.
        pitch_ratio : sequence of float, optional
            ``new / old`` pixel pitch per axis; only for pitch changes.

        Raises
        ------
        UnsupportedShapeError
            If any track has an unknown shape kind. Nothing is changed.
        """
        tracks = list(tracks)
        check_supported(tracks)
        ratio = (1.0, 1.0) if pitch_ratio is None else tuple(float(r) for r in pitch_ratio)

        if not tracks:
            commit()
            return

        shown = self.display.hide_tracks(tracks) if self.display is not None else False
        try:
            pixels = []
            for track in tracks:
                kind = _kind(track)
                x, y = representative_pairs(kind, track.position)
                pixels.append(old_transform.real2pix(x, y))

            commit()
            transform = new_transform()

            for track, (px, py) in zip(tracks, pixels):
                kind = _kind(track)
                x, y = transform.pix2real(px, py)
                track.position = _write_back(kind, track.position, x, y, ratio)
            logger.debug("Reprojected %d track(s), pitch ratio %s", len(tracks), ratio)
        finally:
            if shown:
                self.display.show_tracks(tracks)
