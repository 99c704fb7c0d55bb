"""ProcessOptions: per-run option snapshot handed to pipeline stages.

Stages may attach their own parameters, so unknown keys are accepted and
carried through untouched. Only the recognized keys below are ever read
by the pipeline itself.
"""

from enum import Enum
from typing import Any, List, Optional

import numpy as np
from pydantic import ConfigDict, Field, field_validator

from hsvideo.schemas.base import HsVideoBaseModel


class RunMode(str, Enum):
    """How the ``run`` state of a stage is driven."""
    OBJECT = "object"
    IMAGES = "images"
    CHUNKS = "chunks"


class OutMode(str, Enum):
    """What the ``run`` state of a stage returns."""
    CDATA = "cdata"
    CELL = "cell"


class StageState(str, Enum):
    """Pipeline state passed as the fourth stage argument."""
    PRE = "pre"
    RUN = "run"
    POST = "post"


class ProcessOptions(HsVideoBaseModel):
    """Options snapshot for one stage of one pipeline run.

    Examples
    --------
    >>> opts = ProcessOptions(runmode="chunks", threshold=0.5)
    >>> opts.runmode, opts.threshold
    ('chunks', 0.5)
    """

    model_config = ConfigDict(
        extra='allow',            # Stage-specific parameters
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
    )

    runmode: RunMode = RunMode.IMAGES
    outmode: OutMode = OutMode.CDATA
    ignore_output: bool = False
    verbose: int = 10
    frame_indices: Optional[List[int]] = None
    chunk_size_mib: float = Field(1024.0, gt=0)
    debug: bool = False
    play_debug: bool = False
    current_frames: List[int] = Field(default_factory=list)

    @field_validator("runmode", "outmode", mode="before")
    @classmethod
    def normalize_mode(cls, v):
        """Accept mode names in any case."""
        if isinstance(v, str):
            return v.lower().strip()
        return v

    @field_validator("frame_indices", "current_frames", mode="before")
    @classmethod
    def coerce_indices(cls, v):
        """Accept scalars, ranges and numpy arrays as index lists."""
        if v is None:
            return v
        return [int(i) for i in np.atleast_1d(np.asarray(v)).ravel()]

    @classmethod
    def from_config(cls, config, **overrides: Any) -> "ProcessOptions":
        """Build options from runtime defaults, then apply ``overrides``."""
        base = {
            "verbose": config.process.verbose,
            "ignore_output": config.process.ignore_output,
            "play_debug": config.process.play_debug,
            "chunk_size_mib": config.video.chunk_size_mib,
        }
        base.update(overrides)
        return cls.model_validate(base)

    @property
    def extras(self) -> dict:
        """Stage-specific keys that are not recognized by the pipeline."""
        return dict(self.model_extra or {})
