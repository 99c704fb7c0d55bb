"""Pydantic configuration schemas for hsvideo.

This module provides strictly typed configuration models for videos and
their processing pipeline. All configuration validation, coercion, and
normalization happens at schema validation time via Pydantic.

Exports
-------
resolve_config : function
    Single entrypoint for configuration resolution
default_config : function
    Cached InternalConfig built from defaults only
InternalConfig : class
    Fully validated, authoritative runtime configuration
ParamConfig : class
    Expert defaults (complete)
UserConfig : class
    User-facing configuration (forgiving, minimal)
ProcessOptions : class
    Per-run option snapshot for pipeline stages
"""

from hsvideo.schemas.resolve import resolve_config, default_config, deep_merge
from hsvideo.schemas.internal import InternalConfig
from hsvideo.schemas.param import ParamConfig
from hsvideo.schemas.user import UserConfig
from hsvideo.schemas.options import ProcessOptions, RunMode, OutMode, StageState

__all__ = [
    'resolve_config',
    'default_config',
    'deep_merge',
    'InternalConfig',
    'ParamConfig',
    'UserConfig',
    'ProcessOptions',
    'RunMode',
    'OutMode',
    'StageState',
]
