"""Random-access 4-D frame storage owned by exactly one Video.

Frames are addressed as ``(row, col, channel, frame)``. The store also keeps
the persisted non-pixel state record of its owner, either in memory or in a
JSON sidecar file next to the data.
"""

import json
import logging
import weakref
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

import numpy as np

from hsvideo.contracts import InvalidInputError, LockedError, require

__all__ = ['FrameStore', 'ArrayFrameStore', 'owner_of', 'as_4d']

logger = logging.getLogger(__name__)

# store -> weakref(owner); neither side keeps the other alive
_OWNERS = weakref.WeakKeyDictionary()


def owner_of(store: "FrameStore"):
    """Return the Video currently owning ``store``, or None."""
    ref = _OWNERS.get(store)
    return ref() if ref is not None else None


def as_4d(data) -> np.ndarray:
    """Promote 2-D ``(y, x)`` or 3-D ``(y, x, frame)`` data to 4-D."""
    data = np.asarray(data)
    if data.ndim == 2:
        return data[:, :, np.newaxis, np.newaxis]
    if data.ndim == 3:
        return data[:, :, np.newaxis, :]
    if data.ndim == 4:
        return data
    raise InvalidInputError(f"Frame data must have 2 to 4 dimensions, got {data.ndim}")


class FrameStore(ABC):
    """Interface the Video consumes for frame data and persisted state."""

    filename: str = ""
    lock: bool = False

    def _check_unlocked(self, action: str) -> None:
        if self.lock:
            raise LockedError(
                f"Frame store '{self.filename or '<memory>'}' is locked to prevent any data change ({action})")

    @property
    @abstractmethod
    def shape(self) -> tuple:
        """``(n_y, n_x, n_channels, n_frames)``."""

    @property
    @abstractmethod
    def dtype(self) -> np.dtype:
        ...

    @abstractmethod
    def get(self, frames=None) -> np.ndarray:
        """Copy of the selected frames as a 4-D array."""

    @abstractmethod
    def set(self, frames, values) -> None:
        """Write 4-D ``values`` into the selected frames."""

    @abstractmethod
    def replace(self, data) -> None:
        """Replace the whole content, dimensions may change."""

    @abstractmethod
    def read_state(self) -> Optional[dict]:
        ...

    @abstractmethod
    def write_state(self, record: dict) -> None:
        ...

    @abstractmethod
    def copy(self) -> "FrameStore":
        """Independent in-memory clone of the pixel data."""

    @property
    def n_y(self) -> int:
        return self.shape[0]

    @property
    def n_x(self) -> int:
        return self.shape[1]

    @property
    def n_channels(self) -> int:
        return self.shape[2]

    @property
    def n_frames(self) -> int:
        return self.shape[3]

    @property
    def frame_nbytes(self) -> int:
        """Bytes of one frame, all channels."""
        n_y, n_x, n_c, _ = self.shape
        return int(n_y * n_x * n_c * np.dtype(self.dtype).itemsize)

    @property
    def nbytes(self) -> int:
        return self.frame_nbytes * self.n_frames

    # ownership ---------------------------------------------------------

    def link(self, owner) -> None:
        """Make ``owner`` the only Video holding this store.

        A previous live owner is severed and handed an empty store.
        """
        previous = owner_of(self)
        if previous is not None and previous is not owner:
            logger.warning("Frame store of '%s' is re-parented, previous owner gets an empty store",
                           getattr(previous, "name", "?"))
            _OWNERS.pop(self, None)
            previous._detach_store(self)
        _OWNERS[self] = weakref.ref(owner)

    def unlink(self) -> None:
        _OWNERS.pop(self, None)

    @property
    def is_linked(self) -> bool:
        return owner_of(self) is not None

    def close(self) -> None:
        self.unlink()


class ArrayFrameStore(FrameStore):
    """numpy backed frame store.

    Parameters
    ----------
    data : array-like, optional
        2-D, 3-D ``(y, x, frame)`` or 4-D ``(y, x, channel, frame)`` data.
        ``np.memmap`` instances are used without copying.
    state_path : str or Path, optional
        JSON sidecar holding the persisted state. Without it the state is
        kept in memory.
    filename : str, optional
        Name of the backing data file, used for backups and messages.
    """

    def __init__(self, data=None, state_path: Optional[Union[str, Path]] = None,
                 filename: str = ""):
        if data is None:
            data = np.zeros((0, 0, 1, 0), dtype=np.uint8)
        self._data = as_4d(data)
        self.state_path = Path(state_path) if state_path is not None else None
        self.filename = str(filename)
        self.transform = None
        self._state = None
        self.state_writes = 0

    def __repr__(self):
        return f"ArrayFrameStore(shape={self.shape}, dtype={self.dtype}, filename={self.filename!r})"

    @classmethod
    def empty(cls) -> "ArrayFrameStore":
        return cls()

    @classmethod
    def open_memmap(cls, path: Union[str, Path], shape=None, dtype=np.uint8, mode: str = "r+",
                    state_path: Optional[Union[str, Path]] = None) -> "ArrayFrameStore":
        """Back the store with a memory-mapped raw file.

        ``shape`` is required when the file is created (``mode="w+"``) and
        must match the file for the other modes.
        """
        path = Path(path)
        require(mode in ("r", "r+", "w+", "c"), f"Unknown memmap mode '{mode}'")
        require(shape is not None, "Shape of memory-mapped frames must be given")
        shape = tuple(int(s) for s in shape)
        require(len(shape) == 4, f"Memory-mapped frames need a 4-D shape, got {shape}")
        data = np.memmap(path, dtype=dtype, mode=mode, shape=shape)
        if state_path is None:
            state_path = path.with_suffix(path.suffix + ".json")
        logger.info("Memory-mapped %s (%s, %s)", path, shape, np.dtype(dtype).name)
        return cls(data, state_path=state_path, filename=str(path))

    @property
    def shape(self) -> tuple:
        return tuple(int(s) for s in self._data.shape)

    @property
    def dtype(self) -> np.dtype:
        return self._data.dtype

    @property
    def is_memmap(self) -> bool:
        return isinstance(self._data, np.memmap)

    def _frames(self, frames):
        if frames is None:
            return slice(None)
        idx = np.atleast_1d(np.asarray(frames, dtype=np.int64))
        require(np.all((idx >= 0) & (idx < self.n_frames)),
                f"Frame index out of range for {self.n_frames} frames")
        return idx

    def get(self, frames=None) -> np.ndarray:
        return np.array(self._data[:, :, :, self._frames(frames)], copy=True)

    def set(self, frames, values) -> None:
        self._check_unlocked("write frames")
        idx = self._frames(frames)
        values = np.asarray(values)
        target = self._data[:, :, :, idx].shape
        if values.shape != target:
            values = as_4d(values)
        require(values.shape == target,
                f"Frame data of shape {values.shape} does not fit {target}")
        self._data[:, :, :, idx] = values.astype(self.dtype, copy=False)

    def replace(self, data) -> None:
        self._check_unlocked("replace frames")
        self._data = as_4d(np.array(data, copy=True))

    def flush(self) -> None:
        if self.is_memmap:
            self._data.flush()

    def read_state(self) -> Optional[dict]:
        if self.state_path is not None and self.state_path.exists():
            with open(self.state_path, "r") as f:
                return json.load(f)
        if self._state is None:
            return None
        return json.loads(self._state)

    def write_state(self, record: dict) -> None:
        text = json.dumps(record, sort_keys=True, indent=1)
        if self.state_path is not None:
            self.state_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.state_path, "w") as f:
                f.write(text)
        self._state = text
        self.state_writes += 1
        logger.debug("State written for %s (%d writes)", self.filename or "<memory>", self.state_writes)

    def copy(self) -> "ArrayFrameStore":
        clone = ArrayFrameStore(np.array(self._data, copy=True), filename=self.filename)
        clone.transform = self.transform
        clone._state = self._state
        return clone

    def close(self) -> None:
        self.flush()
        super().close()
