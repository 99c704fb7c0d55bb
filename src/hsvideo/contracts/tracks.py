"""Track record contract.

Enforces the structural guarantees of a track record before it is accepted
by a video: required fields are present and per-frame arrays are 2-D.
"""

from typing import Mapping

import numpy as np

from hsvideo.contracts.base import require
from hsvideo.contracts.failure import ContractViolation

REQUIRED_TRACK_FIELDS = ("shape", "position")


def assert_track_record(record: Mapping) -> None:
    """Fail if a track record misses required fields.

    Parameters
    ----------
    record : mapping
        Track record, e.g. ``{"shape": "rect", "position": [[0, 0, 1, 1]]}``

    Raises
    ------
    InvalidInputError
        If the record is not a mapping or lacks ``shape`` or ``position``.
    """
    require(
        isinstance(record, Mapping),
        f"Track record must be a mapping, got {type(record).__name__}"
    )
    for field in REQUIRED_TRACK_FIELDS:
        require(
            field in record,
            f"Track record is missing required field '{field}'"
        )


def assert_track_rows(track, n_frames: int) -> None:
    """Enforce the row invariant of an accepted track.

    Called after normalization. Position and color must both hold exactly
    one row per frame.

    Raises
    ------
    ContractViolation
        If the invariant does not hold. This indicates a normalization bug.
    """
    position = np.asarray(track.position)
    color = np.asarray(track.color)
    require(
        position.ndim == 2 and position.shape[0] == n_frames,
        f"Track contract violated: position has shape {position.shape}, expected {n_frames} rows",
        ContractViolation,
    )
    require(
        color.ndim == 2 and color.shape == (n_frames, 3),
        f"Track contract violated: color has shape {color.shape}, expected ({n_frames}, 3)",
        ContractViolation,
    )
