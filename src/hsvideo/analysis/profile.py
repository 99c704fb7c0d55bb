"""Intensity profiles along tracked regions.

A profile samples one frame along the outline of a track: the perimeter of
an ellipse, the closed outline of a rect or polygon, or the open path of a
line. Sample points are placed equidistantly in physical coordinates and
read from the frame with bilinear interpolation.
"""

import logging
from typing import Optional, Union

import numpy as np
import pandas as pd
from scipy.ndimage import map_coordinates

from hsvideo.contracts import InvalidInputError, require
from hsvideo.core.tracks import ShapeKind, Track

__all__ = ['track_profile', 'track_outline']

logger = logging.getLogger(__name__)

# vertices of the ellipse polygon before resampling
ELLIPSE_VERTICES = 360


def track_outline(track: Track, frame: int = 0) -> np.ndarray:
    """Outline vertices ``(N, 2)`` of a track in physical coordinates.

    Closed outlines repeat their first vertex at the end.
    """
    kind = ShapeKind.parse(track.shape)
    row = np.asarray(track.position, dtype=float)[frame]
    if kind.is_box:
        x, y, w, h = row[:4]
        if kind == ShapeKind.RECT:
            return np.array([[x, y], [x + w, y], [x + w, y + h], [x, y + h], [x, y]])
        phi = np.linspace(0.0, 2.0 * np.pi, ELLIPSE_VERTICES + 1)
        return np.column_stack([x + w / 2.0 * (1 + np.cos(phi)),
                                y + h / 2.0 * (1 + np.sin(phi))])

    half = row.size // 2
    vertices = np.column_stack([row[:half], row[half:2 * half]])
    vertices = vertices[np.all(np.isfinite(vertices), axis=1)]
    if kind == ShapeKind.POLYGON and len(vertices) > 2:
        vertices = np.vstack([vertices, vertices[:1]])
    return vertices


def _resample(vertices: np.ndarray, n_points: int):
    segment = np.hypot(*np.diff(vertices, axis=0).T)
    s_vertex = np.concatenate([[0.0], np.cumsum(segment)])
    s = np.linspace(0.0, s_vertex[-1], n_points)
    return s, np.interp(s, s_vertex, vertices[:, 0]), np.interp(s, s_vertex, vertices[:, 1])


def track_profile(video, track: Union[Track, str, int], frame: int = 0,
                  n_points: Optional[int] = None, normalize: bool = True) -> pd.DataFrame:
    """Sample frame data along the outline of a track.

    Parameters
    ----------
    video : Video
        Source of the frame data and the geometry.
    track : Track, str or int
        The track itself, its name, or its 0-based index in ``video.tracks``.
    frame : int, optional
        0-based frame index.
    n_points : int, optional
        Number of samples; defaults to about one per pixel of outline length.
    normalize : bool, optional
        Scale the arc length ``s`` to ``0..1``.

    Returns
    -------
    pd.DataFrame
        Columns ``s``, ``x``, ``y`` (physical) and ``value_<c>`` per channel.
        Samples outside the frame hold the value of the nearest edge pixel.

    Raises
    ------
    InvalidInputError
        If the track is unknown, the frame is out of range, or the track has
        no position in that frame.
    """
    if isinstance(track, str):
        matches = [t for t in video.tracks if t.name == track]
        require(len(matches) == 1, f"Track '{track}' not found in video '{video.name}'")
        track = matches[0]
    elif isinstance(track, (int, np.integer)):
        tracks = video.tracks
        require(0 <= track < len(tracks), f"Track index {track} out of range")
        track = tracks[track]
    require(isinstance(track, Track), "Unknown input for track")
    require(0 <= frame < video.n_frames, f"Frame {frame} out of range for {video.n_frames} frames")

    vertices = track_outline(track, frame)
    if len(vertices) == 0 or not np.all(np.isfinite(vertices)):
        raise InvalidInputError(f"Track '{track.name}' has no position in frame {frame}")

    px, py = video.real2pix(vertices[:, 0], vertices[:, 1])
    if n_points is None:
        length_px = np.sum(np.hypot(np.diff(px), np.diff(py)))
        n_points = max(2, int(np.ceil(length_px)) + 1) if len(vertices) > 1 else 1
    require(n_points >= 1, "Number of profile points must be positive")

    if len(vertices) == 1:
        s = np.zeros(n_points)
        x = np.full(n_points, vertices[0, 0])
        y = np.full(n_points, vertices[0, 1])
    else:
        s, x, y = _resample(vertices, n_points)
    if normalize and s[-1] > 0:
        s = s / s[-1]

    col, row = video.real2pix(x, y)
    coords = np.vstack([row - 1.0, col - 1.0])
    data = video.frames.get([frame])[:, :, :, 0]

    out = {"s": s, "x": x, "y": y}
    for c in range(data.shape[2]):
        out[f"value_{c}"] = map_coordinates(data[:, :, c].astype(float), coords,
                                            order=1, mode="nearest")
    logger.debug("Profile of track '%s' in frame %d with %d points", track.name, frame, n_points)
    return pd.DataFrame(out)
