"""Tests for per-chunk failure isolation."""

import logging

import numpy as np
import pytest

pytestmark = pytest.mark.pipeline

from hsvideo.pipeline import ProcessingPipeline
from tests.helpers.fake_video import make_frames


def fails_on_frame_2000(frame):
    if frame.min() >= 2000 and frame.max() < 3000:
        raise ValueError("bad frame")
    return frame + 1


def test_failure_in_one_frame_continues(video, caplog):
    with caplog.at_level(logging.WARNING):
        video.process(fails_on_frame_2000)

    assert len(video.last_failures) == 1
    failure = video.last_failures[0]
    assert failure.frames == [2]
    assert isinstance(failure.error, ValueError)
    assert "Traceback" in failure.traceback
    assert "continuing to recover data" in caplog.text

    data = video.read_frames()
    expected = make_frames()
    np.testing.assert_array_equal(data[..., 2], expected[..., 2])
    np.testing.assert_array_equal(data[..., [0, 1, 3, 4]], expected[..., [0, 1, 3, 4]] + 1)


def test_chunk_failure_skips_whole_chunk(video):
    def fail_first_chunk(data, options, storage, state):
        if state == "run":
            if 0 in options.current_frames:
                raise RuntimeError("chunk broken")
            data = data + 1
        return data, options, storage

    budget = 2 * video.frames.frame_nbytes / 1024 ** 2
    video.process(fail_first_chunk, runmode="chunks", chunk_size_mib=budget)

    assert [f.frames for f in video.last_failures] == [[0, 1]]
    data = video.read_frames()
    np.testing.assert_array_equal(data[..., :2], make_frames()[..., :2])
    np.testing.assert_array_equal(data[..., 2:], make_frames()[..., 2:] + 1)


def test_malformed_run_result_is_recorded(video):
    def no_tuple(data, options, storage, state):
        if state == "run":
            return data
        return data, options, storage

    pipeline = ProcessingPipeline(video)
    pipeline.run(no_tuple)

    assert len(pipeline.failures) == 5
    assert "no_tuple" in str(pipeline.failures[0])


def test_wrong_output_size_is_recorded(video):
    video.process(lambda frame: frame[:2])
    assert len(video.last_failures) == 5
    np.testing.assert_array_equal(video.read_frames(), make_frames())


def test_failures_reset_between_runs(video):
    video.process(fails_on_frame_2000)
    video.process(lambda frame: frame)
    assert video.last_failures == []


def test_failure_does_not_stop_later_stages(video):
    video.process([fails_on_frame_2000, lambda frame: frame * 2])

    assert [f.frames for f in video.last_failures] == [[2]]
    assert video.last_failures[0].stage == "fails_on_frame_2000"

    data = video.read_frames()
    expected = make_frames()
    np.testing.assert_array_equal(data[..., 2], expected[..., 2] * 2)
    np.testing.assert_array_equal(data[..., [0, 1, 3, 4]], (expected[..., [0, 1, 3, 4]] + 1) * 2)
