"""Contracts - fail-fast validation for the video aggregate and its stages.

Key principle:
- Pydantic validates config correctness
- Contracts validate inputs and stage results
- Warnings cover conditions that are repaired in place
"""

from hsvideo.contracts.failure import (
    ContractViolation,
    HsVideoError,
    InvalidInputError,
    LockedError,
    NotImplementedTransformError,
    UnsupportedShapeError,
)
from hsvideo.contracts.base import require
from hsvideo.contracts.tracks import assert_track_record, assert_track_rows

__all__ = [
    "ContractViolation",
    "HsVideoError",
    "InvalidInputError",
    "LockedError",
    "NotImplementedTransformError",
    "UnsupportedShapeError",
    "require",
    "assert_track_record",
    "assert_track_rows",
]
