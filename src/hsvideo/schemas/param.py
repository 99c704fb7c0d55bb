"""ParamConfig: Expert defaults for hsvideo.

This module defines the complete default configuration. ALL runtime
parameters must have defaults here. No runtime code should define fallback
values - this is the single source of truth for defaults.

Runtime code NEVER reads from ParamConfig directly - it only receives InternalConfig.
"""

from typing import Literal

from pydantic import Field, field_validator

from hsvideo.schemas.base import HsVideoBaseModel


class VideoDefaultsConfig(HsVideoBaseModel):
    """Defaults applied to every new Video."""
    buffer_data: bool = Field(True, description="Keep 2-D coordinate grids in memory after first use")
    minimize_store: bool = Field(True, description="Skip persistence writes when the state hash is unchanged")
    chunk_size_mib: float = Field(1024.0, gt=0, description="Memory budget in MiB for one processing chunk")
    hash_name: str = Field("md5", description="hashlib algorithm used by the minimize-store gate")

    @field_validator("chunk_size_mib", mode="before")
    @classmethod
    def coerce_chunk_size_to_float(cls, v):
        """Allow int or float for chunk_size_mib."""
        return float(v)

    @field_validator("hash_name", mode="before")
    @classmethod
    def normalize_hash_name(cls, v):
        """Normalize hash names to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v


class ProcessDefaultsConfig(HsVideoBaseModel):
    """Defaults for pipeline runs."""
    verbose: int = Field(10, description="Progress step in percent, <= 0 disables progress lines")
    ignore_output: bool = False
    play_debug: bool = False
    debug_chunk_factor: float = Field(2.0, gt=0, description="Sandbox budget as multiple of chunk_size_mib")


class LoggingConfig(HsVideoBaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v):
        """Accept lowercase level names."""
        if isinstance(v, str):
            return v.upper().strip()
        return v


class ParamConfig(HsVideoBaseModel):
    """Expert configuration with complete defaults.

    Usage
    -----
        param = ParamConfig()
        config = resolve_config(param, user_cfg)
    """
    video: VideoDefaultsConfig = Field(default_factory=VideoDefaultsConfig)
    process: ProcessDefaultsConfig = Field(default_factory=ProcessDefaultsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
