"""Chunked processing pipeline: stage interface and driver."""

from hsvideo.pipeline.stages import (
    RunMode,
    OutMode,
    StageState,
    FrameStage,
    StatefulStage,
    as_stage,
    as_stages,
)
from hsvideo.pipeline.processor import (
    ProcessingPipeline,
    ProcessingContext,
    ChunkFailure,
    chunk_frame_count,
)

__all__ = [
    'RunMode',
    'OutMode',
    'StageState',
    'FrameStage',
    'StatefulStage',
    'as_stage',
    'as_stages',
    'ProcessingPipeline',
    'ProcessingContext',
    'ChunkFailure',
    'chunk_frame_count',
]
