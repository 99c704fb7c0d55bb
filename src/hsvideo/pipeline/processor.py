"""Chunked, stage-based processing of video frames.

Each stage is driven through three states:

1. **pre**: called once with the video, an options snapshot and empty
   storage. Returns possibly changed options and initialized storage.
2. **run**: called once for the whole video (``runmode="object"``), or per
   chunk of frames (``"images"``: one frame, ``"chunks"``: as many frames
   as fit in ``chunk_size_mib``). Output replaces frame data
   (``outmode="cdata"``) or is collected per frame into
   ``video.userdata[stage.name]`` (``outmode="cell"``).
3. **post**: called once with the video and final storage, must return the
   video.

An exception inside a ``run`` call is logged with its traceback, recorded in
:attr:`ProcessingPipeline.failures`, and processing continues with the next
chunk. Exceptions in ``pre`` and ``post`` propagate.
"""

import logging
import math
import time
import traceback
from dataclasses import dataclass, field
from typing import Any, List, Optional

import numpy as np

from hsvideo.contracts import ContractViolation, LockedError, require
from hsvideo.pipeline.stages import FrameStage, OutMode, RunMode, StageState, as_stages
from hsvideo.schemas import ProcessOptions
from hsvideo.visualization.compare import SideBySideViewer

__all__ = ['ProcessingPipeline', 'ProcessingContext', 'ChunkFailure', 'chunk_frame_count']

logger = logging.getLogger(__name__)

MIB = 1024 ** 2


def chunk_frame_count(budget_mib: float, frame_nbytes: int) -> int:
    """Whole frames that fit into ``budget_mib``, at least one.

    Examples
    --------
    >>> chunk_frame_count(1.0, 256 * 1024)
    4
    """
    if frame_nbytes <= 0:
        return 1
    return max(1, int(math.floor(budget_mib * MIB / frame_nbytes)))


@dataclass
class ChunkFailure:
    """A ``run`` call that raised."""
    stage: str
    frames: List[int]
    error: BaseException
    traceback: str

    def __str__(self):
        return f"{self.stage} frames {self.frames[:1]}..{self.frames[-1:]}: {self.error!r}"


@dataclass
class ProcessingContext:
    """Mutable per-stage state, alive for one pipeline run."""
    options: ProcessOptions
    storage: Any = None
    current_frames: List[int] = field(default_factory=list)
    selected_frames: List[int] = field(default_factory=list)


def _unpack(result, state: str, stage_name: str):
    if isinstance(result, tuple) and len(result) == 3:
        return result
    raise ContractViolation(
        f"Stage '{stage_name}' must return (data, options, storage) in state '{state}', "
        f"got {type(result).__name__}")


def _options(value, fallback: ProcessOptions) -> ProcessOptions:
    if value is None:
        return fallback
    if isinstance(value, ProcessOptions):
        return value
    return ProcessOptions.model_validate(dict(value))


def _stage_input(chunk: np.ndarray, runmode: str) -> np.ndarray:
    """Images mode hands one frame as (y, x) or (y, x, channel)."""
    if runmode == RunMode.IMAGES.value:
        frame = chunk[:, :, :, 0]
        return frame[:, :, 0] if frame.shape[2] == 1 else frame
    return chunk


def _store_shape(values, shape) -> np.ndarray:
    values = np.asarray(values)
    require(values.size == int(np.prod(shape)),
            f"Stage returned frame data with {values.size} elements for chunk of shape {shape}",
            ContractViolation)
    return values.reshape(shape)


class ProcessingPipeline:
    """Runs stages over the frames of one video.

    Parameters
    ----------
    video : Video
        The video to process.
    config : InternalConfig, optional
        Runtime configuration; defaults to ``video.config``.

    Examples
    --------
    >>> pipeline = ProcessingPipeline(video)
    >>> pipeline.run([subtract_background], runmode="chunks", chunk_size_mib=64)
    >>> pipeline.failures
    []
    """

    def __init__(self, video, config=None):
        self.video = video
        self.config = config if config is not None else video.config
        self.failures: List[ChunkFailure] = []
        self.viewer = None

    def options(self, **overrides) -> ProcessOptions:
        return ProcessOptions.from_config(self.config, **overrides)

    def select_frames(self, frame_indices, n_frames: int) -> List[int]:
        """0-based selection; indices outside ``0..n_frames-1`` are dropped."""
        if frame_indices is None:
            return list(range(n_frames))
        selected = [int(i) for i in frame_indices]
        kept = [i for i in selected if 0 <= i < n_frames]
        if len(kept) != len(selected):
            logger.info("Dropped %d frame indices outside 0..%d",
                        len(selected) - len(kept), n_frames - 1)
        return kept

    def run(self, stages, **options):
        """Process the video with ``stages``; returns the video.

        Raises
        ------
        LockedError
            If the video is locked and not in debug mode.
        InvalidInputError
            If a stage has an unsupported signature or an option is invalid.
        """
        stages = as_stages(stages)
        opts = self.options(**options)
        video = self.video
        self.failures = []

        if not opts.debug and video.lock:
            raise LockedError(f"File '{video.filename}' is locked to prevent any data change")

        selected = self.select_frames(opts.frame_indices, video.n_frames)
        if not selected:
            logger.warning("Current data and settings lead to empty selection of frames for '%s', "
                           "no data processed", video.name)
            return video

        if opts.debug:
            return self._run_debug(stages, opts, selected)

        logger.info("Post processing %d frames of '%s'", len(selected), video.name)
        t_start = time.perf_counter()
        self._execute(video, stages, opts, selected)
        logger.info("Post processing of %d frames finished after %.2f s (%d failed chunk(s))",
                    len(selected), time.perf_counter() - t_start, len(self.failures))
        return video

    def _run_debug(self, stages, opts: ProcessOptions, selected: List[int]):
        video = self.video
        size_mib = len(selected) * video.frames.frame_nbytes / MIB
        budget = self.config.process.debug_chunk_factor * opts.chunk_size_mib
        if size_mib > budget:
            logger.warning("Reading %.2f MiB of '%s' into memory for the debug sandbox, "
                           "which is larger than %.2f MiB", size_mib, video.name, budget)

        sandbox = video.sandbox(selected)
        video.temp = sandbox
        logger.info("Post processing %d frames of '%s' in debug mode (temp holds the result)",
                    len(selected), video.name)

        t_start = time.perf_counter()
        sandbox_opts = opts.model_copy(update={"frame_indices": list(range(sandbox.n_frames))})
        self._execute(sandbox, stages, sandbox_opts, list(range(sandbox.n_frames)))
        logger.info("Debug post processing of %d frames finished after %.2f s",
                    len(selected), time.perf_counter() - t_start)

        sandbox.name = f"{video.name}_debug"
        sandbox.filename = f"{video.filename}_debug"

        if opts.play_debug:
            self.viewer = SideBySideViewer(video, sandbox, frames=selected)
            self.viewer.show()
        return video

    def _execute(self, video, stages, opts: ProcessOptions, selected: List[int]):
        for stage in stages:
            if isinstance(stage, FrameStage):
                context = ProcessingContext(opts.model_copy(deep=True), None, [], selected)
                self._run_chunks(video, stage, context, RunMode.IMAGES.value, OutMode.CDATA.value)
                continue

            snapshot = opts.model_copy(deep=True)
            _, new_opts, storage = _unpack(stage(video, snapshot, {}, StageState.PRE), "pre", stage.name)
            context = ProcessingContext(_options(new_opts, snapshot), storage, [], selected)

            runmode = RunMode(context.options.runmode).value
            outmode = OutMode(context.options.outmode).value
            if runmode == RunMode.OBJECT.value:
                self._run_object(video, stage, context)
            else:
                self._run_chunks(video, stage, context, runmode, outmode)

            result = stage(video, context.options, context.storage, StageState.POST)
            if isinstance(result, tuple):
                result = result[0]
            if result is not video:
                raise ContractViolation(f"Stage '{stage.name}' must return the video in state 'post'")

    def _record_failure(self, stage, frames, error):
        detail = traceback.format_exc()
        self.failures.append(ChunkFailure(stage.name, list(frames), error, detail))
        logger.warning("Error during post processing in stage '%s' (frames %s), "
                       "continuing to recover data at least partially:\n%s",
                       stage.name, _frame_range(frames), detail)

    def _run_object(self, video, stage, context: ProcessingContext):
        context.current_frames = list(context.selected_frames)
        context.options.current_frames = context.current_frames
        try:
            _, new_opts, storage = _unpack(
                stage(video, context.options, context.storage, StageState.RUN), "run", stage.name)
        except Exception as e:
            self._record_failure(stage, context.current_frames, e)
            return
        context.options = _options(new_opts, context.options)
        context.storage = storage

    def _run_chunks(self, video, stage, context: ProcessingContext, runmode: str, outmode: str):
        selected = context.selected_frames
        total = len(selected)
        if runmode == RunMode.CHUNKS.value:
            per_chunk = chunk_frame_count(context.options.chunk_size_mib, video.frames.frame_nbytes)
        else:
            per_chunk = 1
        is_frame_stage = isinstance(stage, FrameStage)
        results = [None] * total if outmode == OutMode.CELL.value else None

        verbose = context.options.verbose
        report_step = max(1, int(math.ceil(total * verbose / 100.0))) if verbose > 0 else None
        next_report = 0

        for start in range(0, total, per_chunk):
            current = selected[start:start + per_chunk]
            done = start + len(current)
            context.current_frames = current
            if not is_frame_stage:
                context.options.current_frames = current
            if report_step is not None and (done > next_report or done == total):
                logger.info("  %d of %d frames: %d to %d (%.0f%%)", len(current), total,
                            current[0], current[-1], 100.0 * done / total)
                next_report = (done // report_step + 1) * report_step

            try:
                chunk = video.frames.get(current)
                data = _stage_input(chunk, runmode)
                if is_frame_stage:
                    out = stage(data)
                else:
                    out, new_opts, storage = _unpack(
                        stage(data, context.options, context.storage, StageState.RUN), "run", stage.name)
                    context.options = _options(new_opts, context.options)
                    context.storage = storage

                if context.options.ignore_output:
                    continue
                if outmode == OutMode.CDATA.value:
                    video._write_frames(current, _store_shape(out, chunk.shape))
                else:
                    if runmode == RunMode.IMAGES.value:
                        out = [out]
                    out = list(out)
                    require(len(out) == len(current),
                            f"Stage '{stage.name}' returned {len(out)} results for {len(current)} frames",
                            ContractViolation)
                    results[start:done] = out
            except Exception as e:
                self._record_failure(stage, current, e)

        if results is not None and not context.options.ignore_output:
            video._set_userdata_entry(stage.name, results)


def _frame_range(frames) -> str:
    frames = list(frames)
    if not frames:
        return "-"
    return f"{frames[0]} to {frames[-1]}" if len(frames) > 1 else str(frames[0])
