"""UserConfig: Forgiving, minimal user-facing configuration.

This schema accepts flat user inputs with aliases for common naming patterns
(e.g., CHUNK_SIZE_MIB -> video.chunk_size_mib, LOG_LEVEL -> logging.level).

UserConfig is intentionally minimal - users only specify what they want to
override from the expert defaults.
"""

from typing import Optional

from pydantic import ConfigDict, Field, field_validator

from hsvideo.schemas.base import HsVideoBaseModel


class UserConfig(HsVideoBaseModel):
    """User-facing configuration schema.

    Usage
    -----
        user_cfg = UserConfig(CHUNK_SIZE_MIB=256, LOG_LEVEL="debug")
        internal = resolve_config(ParamConfig(), user_cfg)
    """

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        populate_by_name=True,  # Allow both 'chunk_size_mib' and 'CHUNK_SIZE_MIB'
    )

    buffer_data: Optional[bool] = Field(None, alias="BUFFER_DATA")
    minimize_store: Optional[bool] = Field(None, alias="MINIMIZE_STORE")
    chunk_size_mib: Optional[float] = Field(None, alias="CHUNK_SIZE_MIB")
    hash_name: Optional[str] = Field(None, alias="HASH_NAME")
    verbose: Optional[int] = Field(None, alias="VERBOSE")
    play_debug: Optional[bool] = Field(None, alias="PLAY_DEBUG")
    log_level: Optional[str] = Field(None, alias="LOG_LEVEL")

    @field_validator("chunk_size_mib", mode="before")
    @classmethod
    def coerce_chunk_size(cls, v):
        """Accept int or float for chunk size."""
        if v is not None:
            return float(v)
        return v

    @field_validator("hash_name", mode="before")
    @classmethod
    def normalize_hash_name(cls, v):
        """Normalize hash names to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Normalize level names to uppercase."""
        if isinstance(v, str):
            return v.upper().strip()
        return v

    def to_internal_overrides(self) -> dict:
        """Convert user config to the nested internal config structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        video = {}
        for key in ("buffer_data", "minimize_store", "chunk_size_mib", "hash_name"):
            value = getattr(self, key)
            if value is not None:
                video[key] = value
        if video:
            overrides["video"] = video

        process = {}
        if self.verbose is not None:
            process["verbose"] = self.verbose
        if self.play_debug is not None:
            process["play_debug"] = self.play_debug
        if process:
            overrides["process"] = process

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        return overrides
