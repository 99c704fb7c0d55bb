"""Tracked regions of interest.

A track holds one row of position and color data per video frame. Rows
that do not match the frame count are padded with NaN or truncated, with a
warning, so that ``position`` and ``color`` always have ``n_frames`` rows.
"""

import logging
import warnings
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional

import numpy as np
import pandas as pd

from hsvideo.contracts import (
    InvalidInputError,
    UnsupportedShapeError,
    assert_track_record,
    assert_track_rows,
)

__all__ = ['ShapeKind', 'Track', 'normalize_tracks', 'tracks_to_frame', 'track_center', 'fit_rows']

logger = logging.getLogger(__name__)

DEFAULT_COLOR = (1.0, 0.0, 0.0)


class ShapeKind(str, Enum):
    ELLIPSE = "ellipse"
    RECT = "rect"
    LINE = "line"
    DISTLINE = "distline"
    POLYGON = "polygon"
    POINT = "point"

    @classmethod
    def parse(cls, value) -> "ShapeKind":
        """Accept enum members, names and widget class names such as ``imrect``."""
        if isinstance(value, cls):
            return value
        text = str(getattr(value, "value", value)).strip().lower()
        aliases = {"impoly": "polygon", "poly": "polygon", "distance-line": "distline"}
        text = aliases.get(text, text)
        if text.startswith("im") and text[2:] in cls._value2member_map_:
            text = text[2:]
        try:
            return cls(text)
        except ValueError as e:
            raise UnsupportedShapeError(f"Unknown ROI '{value}'") from e

    @property
    def is_box(self) -> bool:
        return self in (ShapeKind.ELLIPSE, ShapeKind.RECT)


def fit_rows(values: np.ndarray, n_rows: int) -> np.ndarray:
    """Pad with NaN rows or truncate to exactly ``n_rows`` rows."""
    values = np.asarray(values, dtype=float)
    if values.shape[0] >= n_rows:
        return values[:n_rows].copy()
    pad = np.full((n_rows - values.shape[0],) + values.shape[1:], np.nan)
    return np.concatenate([values, pad], axis=0)


def _as_rows(values, name: str) -> np.ndarray:
    try:
        values = np.array(values, dtype=float)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Track {name} must be numeric") from e
    if values.ndim == 1:
        values = values[np.newaxis, :]
    if values.ndim != 2:
        raise InvalidInputError(f"Track {name} must be 1-D or 2-D, got {values.ndim}-D")
    return values


def default_color(n_frames: int) -> np.ndarray:
    color = np.full((n_frames, 3), np.nan)
    if n_frames > 0:
        color[0] = DEFAULT_COLOR
    return color


@dataclass(eq=False)
class Track:
    """One region of interest with per-frame positions."""
    shape: ShapeKind
    position: np.ndarray
    color: np.ndarray
    name: str
    widget: Any = field(default=None, repr=False)

    @classmethod
    def from_record(cls, record: Mapping, index: int, n_frames: int) -> "Track":
        """Build a track from a mapping with at least ``shape`` and ``position``.

        ``color`` defaults to NaN with a red first row and ``name`` to the
        1-based ``index``.
        """
        if isinstance(record, Track):
            record = record.to_record(with_widget=True)
        assert_track_record(record)
        shape = ShapeKind.parse(record["shape"])
        position = _as_rows(record["position"], "position")
        color = record.get("color")
        color = default_color(n_frames) if color is None else _as_rows(color, "color")
        if color.shape[1] != 3:
            raise InvalidInputError(f"Track color needs 3 columns, got {color.shape[1]}")
        name = record.get("name")
        name = str(index + 1) if name is None else str(name)
        track = cls(shape=shape, position=position, color=color, name=name,
                    widget=record.get("widget"))
        track.fit(n_frames)
        return track

    def fit(self, n_frames: int) -> bool:
        """Match row counts to ``n_frames``; returns True if anything changed."""
        if self.position.shape[0] == n_frames and self.color.shape[0] == n_frames:
            return False
        logger.warning(
            "Track '%s' has %d position and %d color rows for %d frames, "
            "changing size to match number of frames",
            self.name, self.position.shape[0], self.color.shape[0], n_frames)
        self.position = fit_rows(self.position, n_frames)
        self.color = fit_rows(self.color, n_frames)
        return True

    def select(self, frames) -> "Track":
        """Copy holding only the given frame rows."""
        frames = np.asarray(frames, dtype=np.int64)
        return Track(self.shape, self.position[frames].copy(), self.color[frames].copy(), self.name)

    def copy(self) -> "Track":
        """Copy with its own rows; the widget handle is shared."""
        return Track(self.shape, self.position.copy(), self.color.copy(), self.name, widget=self.widget)

    def to_record(self, with_widget: bool = False) -> dict:
        record = {
            "shape": ShapeKind.parse(self.shape).value,
            "position": self.position.tolist(),
            "color": self.color.tolist(),
            "name": self.name,
        }
        if with_widget:
            record["widget"] = self.widget
        return record

    def center(self, frame: Optional[int] = None) -> np.ndarray:
        return track_center(self, frame)


def normalize_tracks(records: Optional[Iterable], n_frames: int) -> List[Track]:
    """Validate track input and return tracks with ``n_frames`` rows each.

    Raises
    ------
    InvalidInputError
        If a record misses ``shape`` or ``position``.
    UnsupportedShapeError
        If a record names an unknown shape kind.
    """
    if records is None:
        return []
    if isinstance(records, (Mapping, Track)):
        records = [records]
    tracks = [Track.from_record(record, i, n_frames) for i, record in enumerate(records)]
    for track in tracks:
        assert_track_rows(track, n_frames)
    return tracks


def track_center(track: Track, frame: Optional[int] = None) -> np.ndarray:
    """Center of a track: box center or mean vertex.

    Returns ``(n_frames, 2)``, or ``(2,)`` for a single ``frame``.
    """
    position = np.asarray(track.position, dtype=float)
    if frame is not None:
        position = position[[frame]]
    if ShapeKind.parse(track.shape).is_box:
        center = position[:, 0:2] + position[:, 2:4] / 2.0
    else:
        half = position.shape[1] // 2
        with warnings.catch_warnings():
            # all-NaN padding rows give NaN centers
            warnings.simplefilter("ignore", category=RuntimeWarning)
            center = np.column_stack([np.nanmean(position[:, :half], axis=1),
                                      np.nanmean(position[:, half:], axis=1)])
    return center[0] if frame is not None else center


def tracks_to_frame(tracks: Iterable[Track]) -> pd.DataFrame:
    """Long table with one row per track and frame."""
    rows = []
    for track in tracks:
        centers = track_center(track)
        for frame in range(track.position.shape[0]):
            rows.append({
                "name": track.name,
                "shape": ShapeKind.parse(track.shape).value,
                "frame": frame,
                "center_x": centers[frame, 0],
                "center_y": centers[frame, 1],
                "r": track.color[frame, 0],
                "g": track.color[frame, 1],
                "b": track.color[frame, 2],
            })
    columns = ["name", "shape", "frame", "center_x", "center_y", "r", "g", "b"]
    return pd.DataFrame(rows, columns=columns)
