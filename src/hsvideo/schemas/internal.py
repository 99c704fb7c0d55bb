"""InternalConfig: Authoritative runtime configuration.

This is the ONLY config schema that runtime code sees. It is fully validated,
normalized, and contains NO optional fields that runtime code depends on.
"""

from typing import Literal

from pydantic import ConfigDict, Field

from hsvideo.schemas.base import HsVideoBaseModel


class _FrozenModel(HsVideoBaseModel):
    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        frozen=True,
    )


class InternalVideoConfig(_FrozenModel):
    """Runtime video defaults."""
    buffer_data: bool
    minimize_store: bool
    chunk_size_mib: float = Field(gt=0)
    hash_name: str


class InternalProcessConfig(_FrozenModel):
    """Runtime pipeline defaults."""
    verbose: int
    ignore_output: bool
    play_debug: bool
    debug_chunk_factor: float = Field(gt=0)


class InternalLoggingConfig(_FrozenModel):
    """Runtime logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class InternalConfig(HsVideoBaseModel):
    """Authoritative runtime configuration.

    Runtime modules receive InternalConfig and access fields directly:

        def __init__(self, config: InternalConfig):
            self.chunk_size_mib = config.video.chunk_size_mib  # NOT .get()

    Rules
    -----
    - NO .get() calls
    - NO fallback defaults
    - NO validation in runtime code
    """

    video: InternalVideoConfig
    process: InternalProcessConfig
    logging: InternalLoggingConfig

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        frozen=True,  # Immutable after construction
    )
