"""Persisted non-pixel state and the minimize-store write gate.

The persisted record is one JSON-compatible mapping. Before a write its
canonical JSON text is hashed; the write is skipped when the digest equals
the one recorded by the last write or load.
"""

import hashlib
import json
import logging
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

import numpy as np
import pandas as pd

__all__ = ['to_jsonable', 'canonical_json', 'MinimizeStoreHasher', 'backup_path']

logger = logging.getLogger(__name__)

BACKUP_PATTERN = "{filename}.BAK{counter:02d}.json"


def backup_path(filename: Union[str, Path], counter: int) -> Path:
    """Path of backup number ``counter`` of ``filename``."""
    return Path(BACKUP_PATTERN.format(filename=str(filename), counter=counter))


def to_jsonable(value):
    """Convert numpy, pandas, datetime and enum values to plain JSON types."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, np.ndarray):
        return to_jsonable(value.tolist())
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, float) and not np.isfinite(value):
        # JSON has no NaN/inf
        return None if np.isnan(value) else ("inf" if value > 0 else "-inf")
    return value


def canonical_json(record) -> str:
    return json.dumps(to_jsonable(record), sort_keys=True, separators=(",", ":"))


def _resolve_hash(hash_function) -> Optional[Callable[[bytes], str]]:
    if hash_function is None:
        return None
    if callable(hash_function):
        def _call(payload: bytes) -> str:
            result = hash_function(payload)
            return result.hexdigest() if hasattr(result, "hexdigest") else str(result)
        return _call
    name = str(hash_function).lower()
    try:
        hashlib.new(name)
    except (ValueError, TypeError):
        return None
    return lambda payload: hashlib.new(name, payload).hexdigest()


class MinimizeStoreHasher:
    """Skip persistence writes of unchanged state.

    Parameters
    ----------
    hash_function : str, callable or None
        hashlib algorithm name or ``callable(bytes) -> hex digest``.
        An unknown name or None disables hashing with one warning, and
        every write goes through.
    enabled : bool
        When False every write goes through without hashing.

    Examples
    --------
    >>> hasher = MinimizeStoreHasher("md5")
    >>> hasher.should_write({"name": "a"})
    True
    >>> hasher.remember({"name": "a"})
    >>> hasher.should_write({"name": "a"})
    False
    """

    def __init__(self, hash_function: Union[str, Callable, None] = "md5", enabled: bool = True):
        self.enabled = bool(enabled)
        self._hash = _resolve_hash(hash_function)
        self.last_digest = None
        if self._hash is None and self.enabled:
            logger.warning("Hash function %r is not available, minimize-store is disabled "
                           "and every store writes to disk", hash_function)

    @property
    def available(self) -> bool:
        return self._hash is not None

    def digest(self, record) -> Optional[str]:
        if self._hash is None:
            return None
        return self._hash(canonical_json(record).encode("utf-8"))

    def should_write(self, record) -> bool:
        if not self.enabled or self._hash is None or self.last_digest is None:
            return True
        return self.digest(record) != self.last_digest

    def remember(self, record) -> None:
        if self.enabled:
            self.last_digest = self.digest(record)

    def reset(self) -> None:
        self.last_digest = None
