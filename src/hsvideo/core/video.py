"""Video: frame data with a physical coordinate model.

A Video owns one frame store and the parameters that place its pixels in a
global xyz system:

- ``normal``: sensor normal, exactly one nonzero component
- ``position``: global position of the sensor center
- ``pixel_pitch``: physical size of one pixel along image x and y

Derived geometry (axis vectors, grids, transform) is computed lazily and
reset whenever one of these or the frame dimensions change. Tracks are kept
on the same pixels across such changes.

A locked video rejects every mutating call with :class:`LockedError` before
any side effect; reads are unaffected.
"""

import copy as _copy
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
import xarray as xr
from skimage.transform import resize as sk_resize

from hsvideo.contracts import InvalidInputError, LockedError, require
from hsvideo.core.events import DisplaySession, EventChannel, VideoEvent
from hsvideo.core.frame_store import ArrayFrameStore, FrameStore
from hsvideo.core.parameter_file import apply_cih
from hsvideo.core.persistence import MinimizeStoreHasher, backup_path, to_jsonable
from hsvideo.core.tracks import Track, fit_rows, normalize_tracks, track_center, tracks_to_frame
from hsvideo.geometry import GeometryParams, LazyGeometryCache, ROIReprojector, validate_normal
from hsvideo.pipeline import ProcessingPipeline
from hsvideo.schemas import default_config

__all__ = ['Video', 'check_videos', 'PERSISTED_FIELDS']

logger = logging.getLogger(__name__)

PERSISTED_FIELDS = (
    "device", "comment", "color_map", "pixel_pitch", "position", "normal", "date",
    "userdata", "time", "exposure", "name", "tracks", "transform",
    "buffer_data", "minimize_store",
)


def _vector(value, n: int, label: str) -> np.ndarray:
    try:
        value = np.asarray(value, dtype=float).ravel()
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Input not valid for {label}") from e
    require(value.size == n, f"Input not valid for {label}, expected {n} values, got {value.size}")
    require(np.all(np.isfinite(value)), f"Input not valid for {label}, values must be finite")
    return value


def _pitch(value) -> np.ndarray:
    value = np.asarray(value, dtype=float).ravel()
    if value.size == 1:
        value = np.repeat(value, 2)
    require(value.size == 2, f"Input not valid for pixel pitch, expected 1 or 2 values, got {value.size}")
    require(np.all(np.isfinite(value)) and np.all(value > 0),
            f"Pixel pitch must be positive, got {value.tolist()}")
    return value


def _per_frame(value, n_frames: int, label: str, scalar_mode: str) -> np.ndarray:
    """Per-frame vector from a scalar or an array with one value per frame."""
    arr = np.asarray(value, dtype=float)
    if arr.ndim == 0 or arr.size == 1:
        v = float(arr.ravel()[0])
        if scalar_mode == "interval":
            return np.arange(n_frames, dtype=float) * v
        return np.full(n_frames, v)
    arr = arr.ravel()
    if arr.size != n_frames:
        logger.warning("Input for %s exhibits %d elements for a video with %d frames, "
                       "padding or truncating to match", label, arr.size, n_frames)
        arr = fit_rows(arr, n_frames)
    return arr


def _to_datetime(value) -> Optional[datetime]:
    if value is None:
        return None
    try:
        ts = pd.Timestamp(value)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Input not valid for date: {value!r}") from e
    require(not pd.isna(ts), f"Input not valid for date: {value!r}")
    return ts.to_pydatetime()


class Video:
    """Frame sequence with physical geometry, metadata, tracks and processing.

    Parameters
    ----------
    frames : FrameStore or array-like, optional
        Frame store to own, or 2-D to 4-D ``(y, x, channel, frame)`` data
        wrapped in an :class:`ArrayFrameStore`.
    config : InternalConfig, optional
        Runtime configuration; defaults to ``default_config()``.
    normal, position, pixel_pitch : array-like
        Geometry; defaults ``[0, -1, 0]``, ``[0, 0, 0]`` and ``[1, 1]``.
    persistent : bool
        False for sandboxes; :meth:`store` then writes nothing.

    Examples
    --------
    >>> video = Video(np.zeros((3, 4, 5)), pixel_pitch=[1e-5, 1e-5])
    >>> video.geometry.x_label, video.n_frames
    ('z', 5)
    >>> video.pixel_pitch = [2e-5, 1e-5]      # tracks stay on their pixels
    """

    def __init__(self, frames=None, *, config=None, name: str = "", filename: str = "",
                 normal=(0.0, -1.0, 0.0), position=(0.0, 0.0, 0.0), pixel_pitch=(1.0, 1.0),
                 tracks=None, time=None, exposure=None, device: str = "",
                 comment=None, color_map=None, date=None, userdata=None,
                 transform=None, persistent: bool = True):
        self.config = config if config is not None else default_config()
        self.events = EventChannel()
        self.display = DisplaySession(self.events, self)
        self.persistent = bool(persistent)
        self._lock = False

        self._normal = validate_normal(normal)
        self._position = _vector(position, 3, "position")
        self._pitch = _pitch(pixel_pitch)

        self._cache = LazyGeometryCache(self._geometry_params, on_reset=self._on_geometry_reset,
                                        buffer_grids=self.config.video.buffer_data)
        self._reprojector = ROIReprojector(self.display)
        self._hasher = MinimizeStoreHasher(self.config.video.hash_name,
                                           enabled=self.config.video.minimize_store)

        self._store = None
        if not isinstance(frames, FrameStore):
            frames = ArrayFrameStore(frames, filename=filename)
        self._attach(frames)

        self._name = str(name)
        self._filename = str(filename) or self._store.filename
        self._device = ""
        self._comment = []
        self._color_map = None
        self._date = None
        self._userdata = {}
        self._temp = None
        self._transform = None
        self._time = np.full(self.n_frames, np.nan)
        self._exposure = np.full(self.n_frames, np.nan)
        self._tracks: List[Track] = []
        self._backup = None
        self.last_failures = []
        self.last_pipeline = None

        self.device = device
        self.comment = comment
        self.color_map = color_map
        self.date = date
        self.userdata = userdata
        self.transform = transform if transform is not None else getattr(self._store, "transform", None)
        if time is not None:
            self.time = time
        if exposure is not None:
            self.exposure = exposure
        if tracks is not None:
            self.tracks = tracks

    def __repr__(self):
        return (f"Video(name={self.name!r}, shape={self.frames.shape}, "
                f"normal={self._normal.tolist()}, locked={self._lock})")

    # ------------------------------------------------------------------
    # lock and ownership

    @property
    def lock(self) -> bool:
        return self._lock

    @lock.setter
    def lock(self, value: bool):
        self._lock = bool(value)
        self._store.lock = self._lock
        logger.debug("Video '%s' %s", self.name, "locked" if self._lock else "unlocked")

    def _check_unlocked(self, action: str = "change data"):
        if self._lock:
            raise LockedError(
                f"File '{self.filename}' is locked to prevent any data change ({action})")

    def _attach(self, store: FrameStore):
        if self._store is not None and self._store is not store:
            self._store.unlink()
            self._store.lock = False
        store.link(self)
        store.lock = self._lock
        self._store = store

    def _detach_store(self, store: FrameStore):
        """Called when ``store`` is re-parented to another video."""
        if self._store is not store:
            return
        self._store = ArrayFrameStore.empty()
        self._store.link(self)
        self._store.lock = self._lock
        self._refit_per_frame()
        self._cache.invalidate("frame store re-parented")
        self.events.publish(VideoEvent.DATA_CHANGED, self)

    # ------------------------------------------------------------------
    # frames

    @property
    def frames(self) -> FrameStore:
        return self._store

    @frames.setter
    def frames(self, value):
        self._check_unlocked("replace frame store")
        if not isinstance(value, FrameStore):
            value = ArrayFrameStore(value, filename=self.filename)
        if value is self._store:
            return
        self._attach(value)
        self._refit_per_frame()
        self._cache.invalidate("frame store replaced")
        self.events.publish(VideoEvent.DATA_CHANGED, self)

    @property
    def n_y(self) -> int:
        return self._store.n_y

    @property
    def n_x(self) -> int:
        return self._store.n_x

    @property
    def n_channels(self) -> int:
        return self._store.n_channels

    @property
    def n_frames(self) -> int:
        return self._store.n_frames

    def read_frames(self, frames=None) -> np.ndarray:
        return self._store.get(frames)

    def write_frames(self, frames, values) -> None:
        """Write 4-D ``values`` into the given frames."""
        self._check_unlocked("write frames")
        self._write_frames(frames, values)

    def _write_frames(self, frames, values) -> None:
        self._store.set(frames, values)
        self.events.publish(VideoEvent.DATA_CHANGED, self)

    def _refit_per_frame(self):
        n = self.n_frames
        if self._time.size != n:
            self._time = fit_rows(self._time, n)
        if self._exposure.size != n:
            self._exposure = fit_rows(self._exposure, n)
        changed = [track.fit(n) for track in self._tracks]
        if any(changed):
            self.events.publish(VideoEvent.TRACK_CHANGED, self)

    # ------------------------------------------------------------------
    # geometry

    def _geometry_params(self) -> GeometryParams:
        return GeometryParams(
            normal=tuple(self._normal.tolist()),
            position=tuple(self._position.tolist()),
            pixel_pitch=tuple(self._pitch.tolist()),
            n_x=self.n_x,
            n_y=self.n_y,
        )

    def _on_geometry_reset(self):
        self.events.publish(VideoEvent.GEOMETRY_RESET, self)

    def _change_geometry(self, apply, reason: str, pitch_ratio=None):
        """Commit a geometry parameter while keeping tracks on their pixels."""
        def commit():
            apply()
            self._cache.invalidate(reason)

        if not self._tracks or self.n_x == 0 or self.n_y == 0:
            commit()
            return
        old_transform = self._cache.transform
        self._reprojector.reproject(self._tracks, old_transform, commit,
                                    lambda: self._cache.transform, pitch_ratio)
        self.events.publish(VideoEvent.TRACK_CHANGED, self)

    @property
    def normal(self) -> np.ndarray:
        return self._normal.copy()

    @normal.setter
    def normal(self, value):
        self._check_unlocked("set normal")
        value = validate_normal(value)
        if np.array_equal(value, self._normal):
            return
        self._change_geometry(lambda: setattr(self, "_normal", value), "normal changed")

    @property
    def position(self) -> np.ndarray:
        return self._position.copy()

    @position.setter
    def position(self, value):
        self._check_unlocked("set position")
        value = _vector(value, 3, "position")
        if np.array_equal(value, self._position):
            return
        self._change_geometry(lambda: setattr(self, "_position", value), "position changed")

    @property
    def pixel_pitch(self) -> np.ndarray:
        return self._pitch.copy()

    @pixel_pitch.setter
    def pixel_pitch(self, value):
        self._check_unlocked("set pixel pitch")
        value = _pitch(value)
        if np.array_equal(value, self._pitch):
            return
        ratio = value / self._pitch
        self._change_geometry(lambda: setattr(self, "_pitch", value), "pixel pitch changed",
                              pitch_ratio=ratio)

    @property
    def pitch_x(self) -> float:
        return float(self._pitch[0])

    @pitch_x.setter
    def pitch_x(self, value: float):
        self.pixel_pitch = [value, self._pitch[1]]

    @property
    def pitch_y(self) -> float:
        return float(self._pitch[1])

    @pitch_y.setter
    def pitch_y(self, value: float):
        self.pixel_pitch = [self._pitch[0], value]

    @property
    def pitch_equivalent(self) -> float:
        """Pitch of a square pixel with the same area."""
        return float(np.sqrt(np.prod(self._pitch)))

    @pitch_equivalent.setter
    def pitch_equivalent(self, value: float):
        require(np.isscalar(value) and value > 0, "Equivalent pixel pitch must be a positive scalar")
        px, py = self._pitch
        self.pixel_pitch = value / np.sqrt([py / px, px / py])

    @property
    def pitch_mean(self) -> float:
        return float(np.mean(self._pitch))

    @pitch_mean.setter
    def pitch_mean(self, value: float):
        require(np.isscalar(value) and value > 0, "Mean pixel pitch must be a positive scalar")
        px, py = self._pitch
        self.pixel_pitch = 2 * value / (1 + np.array([py / px, px / py]))

    @property
    def buffer_data(self) -> bool:
        return self._cache.buffer_grids

    @buffer_data.setter
    def buffer_data(self, value: bool):
        self._check_unlocked("set buffer_data")
        self._cache.buffer_grids = bool(value)

    @property
    def minimize_store(self) -> bool:
        return self._hasher.enabled

    @minimize_store.setter
    def minimize_store(self, value: bool):
        self._check_unlocked("set minimize_store")
        self._hasher.enabled = bool(value)
        self._hasher.reset()

    @property
    def geometry(self):
        """Resolved :class:`Orientation` of the current geometry."""
        return self._cache.orientation

    @property
    def x(self) -> np.ndarray:
        return self._cache.x

    @property
    def y(self) -> np.ndarray:
        return self._cache.y

    @property
    def x_grid(self) -> np.ndarray:
        return self._cache.x_grid

    @property
    def y_grid(self) -> np.ndarray:
        return self._cache.y_grid

    @property
    def z_grid(self) -> np.ndarray:
        return self._cache.z_grid

    @property
    def reference(self) -> xr.DataArray:
        return self._cache.reference

    @property
    def coordinate_transform(self):
        return self._cache.transform

    def pix2real(self, *coords):
        """Pixel coordinates (1-based) or linear indices to physical coordinates."""
        return self._cache.transform.pix2real(*coords)

    def real2pix(self, *coords):
        """Physical coordinates to 1-based pixel coordinates."""
        return self._cache.transform.real2pix(*coords)

    def set_origin(self, track: Union[Track, str], index: int = 0) -> None:
        """Shift ``position`` so the center of ``track`` in frame ``index`` is the origin."""
        self._check_unlocked("set origin")
        if isinstance(track, str):
            matches = [t for t in self._tracks if t.name == track]
            require(len(matches) == 1, f"Track '{track}' not found in video")
            track = matches[0]
        require(isinstance(track, Track), "Unknown input for track")
        require(0 <= index < track.position.shape[0],
                "Unknown input for index or index exceeds limits")
        center = track_center(track, index)
        require(np.all(np.isfinite(center)), f"Track '{track.name}' has no position in frame {index}")
        shift = np.zeros(3)
        orientation = self.geometry
        shift[orientation.x_index - 1] = center[0]
        shift[orientation.y_index - 1] = center[1]
        self.position = self._position - shift

    # ------------------------------------------------------------------
    # metadata

    @property
    def device(self) -> str:
        return self._device

    @device.setter
    def device(self, value: str):
        self._check_unlocked("set device")
        require(isinstance(value, str), "Input not valid for device name")
        self._device = value

    @property
    def comment(self) -> List[str]:
        return list(self._comment)

    @comment.setter
    def comment(self, value):
        self._check_unlocked("set comment")
        if value is None:
            value = []
        elif isinstance(value, str):
            value = [value]
        value = list(value)
        require(all(isinstance(v, str) for v in value), "Input not valid for comment")
        self._comment = value

    @property
    def color_map(self) -> Optional[np.ndarray]:
        return None if self._color_map is None else self._color_map.copy()

    @color_map.setter
    def color_map(self, value):
        self._check_unlocked("set color map")
        if value is None:
            self._color_map = None
            return
        value = np.asarray(value, dtype=float)
        require(value.ndim == 2 and value.shape[1] == 3, "Color map must be an (n, 3) array")
        self._color_map = value

    @property
    def date(self) -> Optional[datetime]:
        return self._date

    @date.setter
    def date(self, value):
        self._check_unlocked("set date")
        self._date = _to_datetime(value)

    @property
    def name(self) -> str:
        if self._name:
            return self._name
        if self._filename:
            return Path(self._filename).stem
        return "<undefined>"

    @name.setter
    def name(self, value: str):
        self._check_unlocked("set name")
        require(isinstance(value, str), "Input not valid for name")
        self._name = value

    @property
    def filename(self) -> str:
        return self._filename

    @filename.setter
    def filename(self, value: str):
        self._check_unlocked("set filename")
        require(isinstance(value, str), "Input not valid for filename")
        self._filename = value
        self._store.filename = value

    @property
    def time(self) -> np.ndarray:
        return self._time.copy()

    @time.setter
    def time(self, value):
        """Scalar sets the frame interval, otherwise one time per frame."""
        self._check_unlocked("set time")
        self._time = _per_frame(value, self.n_frames, "time", "interval")

    @property
    def exposure(self) -> np.ndarray:
        return self._exposure.copy()

    @exposure.setter
    def exposure(self, value):
        """Scalar is repeated for every frame."""
        self._check_unlocked("set exposure")
        self._exposure = _per_frame(value, self.n_frames, "exposure", "repeat")

    @property
    def userdata(self) -> dict:
        """Copy of the user data; assign a new dict to change it."""
        return _copy.deepcopy(self._userdata)

    @userdata.setter
    def userdata(self, value):
        self._check_unlocked("set userdata")
        if value is None:
            value = {}
        require(isinstance(value, dict), "Input not valid for userdata, must be a dict")
        self._userdata = _copy.deepcopy(value)

    def _set_userdata_entry(self, key: str, value) -> None:
        self._userdata[key] = value

    @property
    def temp(self):
        """Scratch slot, e.g. the sandbox of the last debug run."""
        return self._temp

    @temp.setter
    def temp(self, value):
        self._temp = value

    def clean(self) -> None:
        self._temp = None

    @property
    def transform(self):
        """Geometric transform applied to frames on read, kept with the store."""
        return self._transform

    @transform.setter
    def transform(self, value):
        self._check_unlocked("set transform")
        self._transform = value
        self._store.transform = value

    # ------------------------------------------------------------------
    # tracks

    @property
    def tracks(self) -> List[Track]:
        """Copies of the tracks; assign a new list to change them."""
        return [track.copy() for track in self._tracks]

    @tracks.setter
    def tracks(self, value):
        self._check_unlocked("set tracks")
        tracks = normalize_tracks(value, self.n_frames)
        shown = self.display.hide_tracks(self._tracks)
        self._tracks = tracks
        if shown:
            self.display.show_tracks(self._tracks)
        self.events.publish(VideoEvent.TRACK_CHANGED, self)

    def tracks_frame(self) -> pd.DataFrame:
        return tracks_to_frame(self._tracks)

    def read_cih(self, path=None, props=None) -> bool:
        """Read time, exposure and device from the Photron CIH file next to the data."""
        return apply_cih(self, path, props)

    # ------------------------------------------------------------------
    # processing

    def process(self, stages, **options) -> "Video":
        """Run ``stages`` through a :class:`ProcessingPipeline`; returns self.

        Chunk failures are available afterwards in :attr:`last_failures`.
        """
        pipeline = ProcessingPipeline(self)
        pipeline.run(stages, **options)
        self.last_pipeline = pipeline
        self.last_failures = list(pipeline.failures)
        return self

    def _clone(self, frame_indices, persistent: bool) -> "Video":
        idx = np.asarray(frame_indices, dtype=np.int64)
        store = ArrayFrameStore(self._store.get(idx), filename=self.filename)
        clone = Video(
            store, config=self.config, name=self._name, filename=self._filename,
            normal=self._normal, position=self._position, pixel_pitch=self._pitch,
            device=self._device, comment=self._comment, color_map=self._color_map,
            date=self._date, userdata=_copy.deepcopy(self._userdata),
            transform=_copy.deepcopy(self._transform), persistent=persistent,
        )
        clone._time = self._time[idx].copy()
        clone._exposure = self._exposure[idx].copy()
        clone._tracks = [track.select(idx) for track in self._tracks]
        return clone

    def sandbox(self, frame_indices: Optional[Sequence[int]] = None) -> "Video":
        """Non-persistent in-memory copy holding the selected frames."""
        if frame_indices is None:
            frame_indices = range(self.n_frames)
        frame_indices = list(frame_indices)
        require(all(0 <= i < self.n_frames for i in frame_indices),
                f"Frame index out of range for {self.n_frames} frames")
        return self._clone(frame_indices, persistent=False)

    def copy(self) -> "Video":
        """Independent copy with a cloned frame store."""
        clone = self._clone(range(self.n_frames), persistent=self.persistent)
        clone.lock = self._lock
        return clone

    def copy_shallow(self) -> "Video":
        """Copy of all metadata with a store holding only the first frame."""
        return self._clone([0] if self.n_frames else [], persistent=self.persistent)

    def to_dataarray(self, frames=None) -> xr.DataArray:
        """Frames as a labeled ``(y, x, channel, frame)`` DataArray."""
        frame_idx = np.arange(self.n_frames) if frames is None else np.atleast_1d(frames)
        data = self._store.get(frame_idx)
        orientation = self.geometry
        return xr.DataArray(
            data,
            dims=("y", "x", "channel", "frame"),
            coords={
                "x": orientation.x_vector,
                "y": orientation.y_vector,
                "channel": np.arange(data.shape[2]),
                "frame": frame_idx,
                "time": ("frame", self._time[frame_idx]),
                "exposure": ("frame", self._exposure[frame_idx]),
            },
            attrs={
                "name": self.name,
                "device": self._device,
                "x_label": orientation.x_label,
                "y_label": orientation.y_label,
                "normal": self._normal.tolist(),
                "position": self._position.tolist(),
                "pixel_pitch": self._pitch.tolist(),
            },
            name=self.name,
        )

    # ------------------------------------------------------------------
    # persistence

    def persisted_state(self) -> dict:
        """The non-pixel state written by :meth:`store`."""
        return to_jsonable({
            "device": self._device,
            "comment": self._comment,
            "color_map": self._color_map,
            "pixel_pitch": self._pitch,
            "position": self._position,
            "normal": self._normal,
            "date": self._date,
            "userdata": self._userdata,
            "time": self._time,
            "exposure": self._exposure,
            "name": self._name,
            "tracks": [track.to_record() for track in self._tracks],
            "transform": self._transform,
            "buffer_data": self.buffer_data,
            "minimize_store": self.minimize_store,
        })

    def _apply_record(self, record: dict, props: Optional[Iterable[str]] = None) -> None:
        """Restore fields without reprojecting tracks."""
        fields = set(PERSISTED_FIELDS) if not props else set(props)
        unknown = fields - set(PERSISTED_FIELDS)
        require(not unknown, f"Input for properties to restore is unexpected: {sorted(unknown)}")
        fields &= set(record)
        values = {key: record[key] for key in fields}

        if "normal" in values:
            values["normal"] = validate_normal(values["normal"])
        if "position" in values:
            values["position"] = _vector(values["position"], 3, "position")
        if "pixel_pitch" in values:
            values["pixel_pitch"] = _pitch(values["pixel_pitch"])
        if "tracks" in values:
            values["tracks"] = normalize_tracks(values["tracks"] or [], self.n_frames)

        shown = self.display.hide_tracks(self._tracks) if "tracks" in values else False
        for key, value in values.items():
            if key == "normal":
                self._normal = value
            elif key == "position":
                self._position = value
            elif key == "pixel_pitch":
                self._pitch = value
            elif key == "tracks":
                self._tracks = value
            elif key in ("time", "exposure"):
                arr = np.array([np.nan if v is None else v for v in np.atleast_1d(value)], dtype=float)
                setattr(self, f"_{key}", fit_rows(arr, self.n_frames))
            elif key == "color_map":
                self._color_map = None if value is None else np.asarray(value, dtype=float)
            elif key == "date":
                self._date = _to_datetime(value)
            elif key == "comment":
                self._comment = list(value or [])
            elif key == "userdata":
                self._userdata = dict(value or {})
            elif key == "buffer_data":
                self._cache.buffer_grids = bool(value)
            elif key == "minimize_store":
                self._hasher.enabled = bool(value)
            elif key == "transform":
                self._transform = value
                self._store.transform = value
            else:
                setattr(self, f"_{key}", value)

        self._cache.invalidate("state restored")
        if "tracks" in values:
            if shown:
                self.display.show_tracks(self._tracks)
            self.events.publish(VideoEvent.TRACK_CHANGED, self)

    def store(self) -> bool:
        """Write the persisted state; returns True if a write happened.

        With minimize-store enabled, an unchanged state is not written again.
        """
        self._check_unlocked("store")
        if not self.persistent:
            logger.warning("Video '%s' is a non-persistent sandbox, nothing stored", self.name)
            return False
        self.check()
        record = self.persisted_state()
        if not self._hasher.should_write(record):
            logger.debug("State of '%s' unchanged, skipping write", self.name)
            return False
        self._store.write_state(record)
        self._hasher.remember(record)
        if hasattr(self._store, "flush"):
            self._store.flush()
        logger.info("Stored state of '%s'", self.name)
        return True

    def recall(self) -> bool:
        """Load the persisted state from the frame store; returns False if there is none."""
        self._check_unlocked("recall")
        record = self._store.read_state()
        if record is None:
            logger.info("No stored state for '%s'", self.name)
            return False
        self._apply_record(record)
        self._hasher.remember(self.persisted_state())
        return True

    def backup(self) -> None:
        """Keep a copy of the persisted state in memory."""
        self._check_unlocked("backup")
        self.check()
        self._backup = self.persisted_state()

    def restore(self, *props: str) -> None:
        """Restore ``props`` (all by default) from the in-memory backup.

        The current state becomes the new backup.
        """
        self._check_unlocked("restore")
        if self._backup is None:
            logger.warning("No backup available for '%s'", self.name)
            return
        current = self.persisted_state()
        self._apply_record(self._backup, props)
        self._backup = current

    def _backup_files(self) -> List[Path]:
        pattern = f"{Path(self._filename).name}.BAK*.json"
        return sorted(p for p in Path(self._filename).parent.glob(pattern) if p.is_file())

    def _backup_count(self) -> int:
        counter = 0
        while backup_path(self._filename, counter).exists():
            counter += 1
        return counter

    def backup_to_disk(self, clean: bool = False) -> Optional[Path]:
        """Write the persisted state to ``<filename>.BAKnn.json``.

        With ``clean`` the backup goes to ``BAK00`` and later ones are removed.
        """
        if not self._filename:
            logger.warning("No filename is set for video '%s', backup skipped", self.name)
            return None
        counter = self._backup_count()
        existing = self._backup_files()
        target = backup_path(self._filename, 0 if clean else counter)
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w") as f:
            json.dump(self.persisted_state(), f, sort_keys=True, indent=1)
        if clean:
            for j in range(counter - 1, 0, -1):
                backup_path(self._filename, j).unlink()
            if len(self._backup_files()) != 1:
                logger.warning("Mismatch in number of backup files, possibly due to discontinuous "
                               "numbering, last backup was written to '%s', please clean up manually",
                               target)
        elif len(existing) != counter:
            logger.warning("Mismatch in number of backup files, possibly due to discontinuous "
                           "numbering, last backup was written to '%s', please clean up manually",
                           target)
        logger.info("Backup of '%s' written to %s", self.name, target)
        return target

    def restore_from_disk(self, *props: str) -> bool:
        """Restore ``props`` (all by default) from the last backup on disk."""
        self._check_unlocked("restore from disk")
        if not self._filename:
            logger.warning("No filename is set for video '%s', restore skipped", self.name)
            return False
        counter = self._backup_count() - 1
        if counter < 0:
            logger.info("No backup file found for '%s'", self.name)
            return False
        path = backup_path(self._filename, counter)
        record = json.loads(path.read_text())
        wanted = set(props) if props else set(PERSISTED_FIELDS)
        if not isinstance(record, dict) or not wanted & set(record):
            logger.warning("Backup file '%s' seems to be invalid for video '%s', please check!",
                           path, self.name)
            return False
        self._apply_record(record, props)
        return True

    def clean_backups(self, keep_last: bool = True) -> int:
        """Remove backup files, optionally keeping the last one as ``BAK00``.

        Returns the number of removed files.
        """
        if not self._filename:
            logger.warning("No filename is set for video '%s'", self.name)
            return 0
        counter = self._backup_count()
        if counter == 0:
            delete = []
        elif keep_last:
            if counter > 1:
                backup_path(self._filename, counter - 1).replace(backup_path(self._filename, 0))
            delete = list(range(1, counter - 1))
        else:
            delete = list(range(counter))
        for j in delete:
            backup_path(self._filename, j).unlink()
        remaining = self._backup_files()
        expected = 1 if (keep_last and counter > 0) else 0
        if len(remaining) != expected:
            logger.warning("%d backup file(s) removed, but some unexpected file(s) (%s) are still "
                           "available, possibly due to discontinuous numbering, please clean up manually",
                           len(delete), ", ".join(p.name for p in remaining))
        return len(delete)

    # ------------------------------------------------------------------
    # integrity and reshaping

    def check(self) -> bool:
        """Log a warning for every per-frame array that does not fit the frame count."""
        ok = True
        n = self.n_frames
        for i, track in enumerate(self._tracks):
            if track.position.shape[0] != n or track.color.shape[0] != n:
                logger.warning("Video '%s' contains a track (track %d called '%s') where the number "
                               "of position or color rows does not match the number of frames",
                               self.name, i + 1, track.name)
                ok = False
        for label, arr in (("time", self._time), ("exposure", self._exposure)):
            if arr.size != n:
                logger.warning("Video '%s' has %d %s values for %d frames", self.name, arr.size, label, n)
                ok = False
        return ok

    def crop(self, rect: Sequence[float]) -> None:
        """Crop by ``[x, y, width, height]`` or ``[x, y, channel, frame, width, height, depth, frames]``.

        Offsets are 1-based pixel indices. The sensor position moves to the
        center of the kept region so physical coordinates of the content
        do not change.
        """
        self._check_unlocked("crop")
        rect = np.asarray(rect, dtype=float).ravel()
        require(rect.size in (4, 8), "Input for rect is unexpected")
        require(np.all(np.mod(rect, 1) == 0), "Rect must hold whole pixel counts")
        rect = rect.astype(int)
        if rect.size == 4:
            rect = np.array([rect[0], rect[1], 1, 1, rect[2], rect[3], self.n_channels, self.n_frames])
        start, size = rect[:4], rect[4:]
        stop = start + size - 1
        limits = np.array([self.n_x, self.n_y, self.n_channels, self.n_frames])
        require(np.all(rect >= 1) and np.all(stop <= limits),
                f"Rect exceeds size of video '{self.name}'")

        transform = self._cache.transform
        cx, cy = transform.pix2real((start[0] + stop[0]) / 2.0, (start[1] + stop[1]) / 2.0)
        orientation = self.geometry

        (x0, y0, c0, f0), (x1, y1, c1, f1) = start - 1, stop
        data = self._store.get()[y0:y1, x0:x1, c0:c1, f0:f1]
        frames = np.arange(f0, f1)

        self._store.replace(data)
        self._position[orientation.x_index - 1] = float(cx)
        self._position[orientation.y_index - 1] = float(cy)
        self._time = self._time[frames]
        self._exposure = self._exposure[frames]
        self._tracks = [track.select(frames) for track in self._tracks]
        self._cache.invalidate("cropped")
        self.events.publish(VideoEvent.DATA_CHANGED, self)
        logger.info("Cropped '%s' to %s", self.name, self._store.shape)

    def resize(self, scale: Union[float, Sequence[int]]) -> None:
        """Resize frames by a factor or to ``(n_y, n_x)``; pixel pitch follows.

        The physical extent of the image is unchanged.
        """
        self._check_unlocked("resize")
        scale_arr = np.asarray(scale, dtype=float).ravel()
        require((scale_arr.size == 1 and scale_arr[0] > 0) or
                (scale_arr.size == 2 and np.all(scale_arr >= 1)),
                "Input for scale is unexpected")
        if scale_arr.size == 1:
            if scale_arr[0] == 1:
                return
            new_y = max(1, int(round(self.n_y * scale_arr[0])))
            new_x = max(1, int(round(self.n_x * scale_arr[0])))
        else:
            new_y, new_x = (int(s) for s in scale_arr)
        if (new_y, new_x) == (self.n_y, self.n_x):
            return

        data = self._store.get()
        dtype = data.dtype
        out = sk_resize(data.astype(float), (new_y, new_x) + data.shape[2:],
                        order=1, preserve_range=True, anti_aliasing=True)
        if np.issubdtype(dtype, np.integer):
            info = np.iinfo(dtype)
            out = np.clip(np.rint(out), info.min, info.max)
        elif dtype == bool:
            out = out >= 0.5

        self._pitch = self._pitch * np.array([self.n_x / new_x, self.n_y / new_y])
        self._store.replace(out.astype(dtype))
        self._cache.invalidate("resized")
        self.events.publish(VideoEvent.DATA_CHANGED, self)
        logger.info("Resized '%s' to %dx%d, pixel pitch %s", self.name, new_y, new_x, self._pitch.tolist())

    # ------------------------------------------------------------------

    def info(self) -> str:
        """Human-readable summary."""
        orientation = self.geometry
        status = "locked" if self._lock else "unlocked"
        date = self._date.isoformat() if self._date else "-"
        lines = [
            f"{'Video':>16}: {self.name} from {date}",
            f"{'filename':>16}: {self._filename or '-'}",
            f"{'device':>16}: {self._device or '-'}",
            f"{'comment':>16}: {' | '.join(self._comment) or '-'}",
            f"{'data':>16}: {list(self._store.shape)} as {np.dtype(self._store.dtype).name}, "
            f"{self._store.nbytes / 1024 ** 2:.2f} MiB",
            f"{'status':>16}: object is {status}",
            "",
            f"{'position':>16}: {self._position.tolist()}",
            f"{'normal':>16}: {self._normal.tolist()}",
            f"{'image axes':>16}: x -> {orientation.x_label}, y -> {orientation.y_label}",
            "",
            f"{'tracks':>16}: {', '.join(t.name for t in self._tracks) or '-'}",
            f"{'time':>16}: {np.nanmin(self._time) if np.any(np.isfinite(self._time)) else '-'} to "
            f"{np.nanmax(self._time) if np.any(np.isfinite(self._time)) else '-'}",
            "",
            f"{'pixel pitch':>16}: {self._pitch.tolist()} (equivalent {self.pitch_equivalent:.4g}, "
            f"mean {self.pitch_mean:.4g})",
        ]
        return "\n".join(lines)

    def close(self) -> None:
        """Release the frame store and drop all listeners."""
        self._store.close()
        self._store = ArrayFrameStore.empty()
        self._store.link(self)
        self._store.lock = self._lock
        self._refit_per_frame()
        self._cache.invalidate("closed")
        self.events.clear()


def check_videos(videos: Iterable[Video]) -> bool:
    """Check several videos; warn when two of them share a file basename."""
    videos = list(videos)
    bases = {}
    for video in videos:
        if not video.filename:
            continue
        path = Path(video.filename).resolve()
        base = str(path.with_suffix(""))
        bases.setdefault(base, []).append(video.name)
    duplicates = {base: names for base, names in bases.items() if len(names) > 1}
    if duplicates:
        logger.warning("Videos link to the same file multiple times, is this on purpose? "
                       "List of basenames:\n%s", "\n".join(sorted(duplicates)))
    results = [video.check() for video in videos]
    return not duplicates and all(results)
