"""End-to-end tests of the chunked processing pipeline."""

import logging

import numpy as np
import pytest

pytestmark = pytest.mark.pipeline

from hsvideo.contracts import ContractViolation, LockedError
from hsvideo.pipeline import ProcessingPipeline, chunk_frame_count
from tests.helpers.fake_video import make_frames, make_video


def add_five(data, options, storage, state):
    if state == "run":
        data = data + 5
    return data, options, storage


def two_frame_budget(video):
    return 2 * video.frames.frame_nbytes / 1024 ** 2


def test_chunk_frame_count():
    assert chunk_frame_count(1.0, 256 * 1024) == 4
    assert chunk_frame_count(1e-9, 1024) == 1
    assert chunk_frame_count(1.0, 0) == 1


def test_identity_stage_is_bit_identical(video):
    before = video.read_frames()
    video.process(lambda frame: frame)
    np.testing.assert_array_equal(video.read_frames(), before)
    assert video.frames.dtype == before.dtype


def test_frame_stage_sees_2d_frames(video):
    shapes = []

    def record(frame):
        shapes.append(frame.shape)
        return frame

    video.process(record)
    assert shapes == [(6, 8)] * 5


def test_chunks_and_images_agree(video_factory):
    by_image = video_factory()
    by_chunk = video_factory()

    by_image.process(add_five, runmode="images")
    by_chunk.process(add_five, runmode="chunks", chunk_size_mib=two_frame_budget(by_chunk))

    np.testing.assert_array_equal(by_image.read_frames(), by_chunk.read_frames())
    np.testing.assert_array_equal(by_image.read_frames(), make_frames() + 5)


def test_chunks_respect_budget(video):
    sizes = []

    def record(data, options, storage, state):
        if state == "run":
            sizes.append(data.shape[3])
        return data, options, storage

    video.process(record, runmode="chunks", chunk_size_mib=two_frame_budget(video))
    assert sizes == [2, 2, 1]


def test_cell_output_goes_to_userdata(video):
    def frame_mean(data, options, storage, state):
        if state == "run":
            return [float(data[..., k].mean()) for k in range(data.shape[3])], options, storage
        return data, options, storage

    video.process(frame_mean, runmode="chunks", outmode="cell",
                  chunk_size_mib=two_frame_budget(video), frame_indices=[0, 2, 4])

    result = video.userdata["frame_mean"]
    assert len(result) == 3
    assert result[1] == pytest.approx(make_frames()[..., 2].mean())
    np.testing.assert_array_equal(video.read_frames(), make_frames())


def test_cell_output_in_images_mode(video):
    def peak(data, options, storage, state):
        if state == "run":
            return int(data.max()), options, storage
        return data, options, storage

    video.process(peak, outmode="cell")
    assert video.userdata["peak"] == [57 + 1000 * k for k in range(5)]


def test_frame_selection(video):
    video.process(lambda frame: frame * 0, frame_indices=[1, 3, 99, -1])
    data = video.read_frames()
    assert data[..., 1].max() == 0
    assert data[..., 3].max() == 0
    assert data[..., 0].max() > 0


def test_empty_selection_warns(video, caplog):
    before = video.read_frames()
    with caplog.at_level(logging.WARNING):
        result = video.process(lambda frame: frame * 0, frame_indices=[])
    assert result is video
    assert "empty selection" in caplog.text
    np.testing.assert_array_equal(video.read_frames(), before)


def test_object_mode_runs_once_with_all_frames(video):
    calls = []

    def whole(data, options, storage, state):
        if state == "run":
            calls.append((list(options.current_frames), data is video))
        return data, options, storage

    video.process(whole, runmode="object", frame_indices=[0, 1])
    assert calls == [([0, 1], True)]


def test_pre_state_can_change_options_and_storage(video):
    def counting(data, options, storage, state):
        if state == "pre":
            options.ignore_output = True
            storage = {"frames": 0, "gain": options.gain}
        elif state == "run":
            storage["frames"] += data.shape[3] if data.ndim == 4 else 1
            data = data * storage["gain"]
        else:
            data.userdata = {**data.userdata, "counted": storage["frames"]}
        return data, options, storage

    before = video.read_frames()
    video.process(counting, gain=3)

    assert video.userdata["counted"] == 5
    np.testing.assert_array_equal(video.read_frames(), before)


def test_ignore_output_protects_frames_from_frame_stage(video):
    before = video.read_frames()
    video.process(lambda frame: frame * 0, ignore_output=True)
    np.testing.assert_array_equal(video.read_frames(), before)


def test_ignore_output_skips_cell_results_of_frame_stage(video):
    def peak(frame):
        return int(frame.max())

    video.process(peak, outmode="cell", ignore_output=True)
    assert "peak" not in video.userdata


def test_stages_run_in_sequence(video):
    video.process([lambda f: f + 1, lambda f: f * 2])
    np.testing.assert_array_equal(video.read_frames(), (make_frames() + 1) * 2)


def test_progress_lines(video, caplog):
    with caplog.at_level(logging.INFO, logger="hsvideo.pipeline.processor"):
        video.process(lambda frame: frame, verbose=50)
    assert "of 5 frames" in caplog.text


def test_post_must_return_video(video):
    def bad_post(data, options, storage, state):
        if state == "post":
            return None, options, storage
        return data, options, storage

    with pytest.raises(ContractViolation):
        video.process(bad_post)


def test_pre_failure_propagates(video):
    def broken(data, options, storage, state):
        if state == "pre":
            raise RuntimeError("setup failed")
        return data, options, storage

    with pytest.raises(RuntimeError, match="setup failed"):
        video.process(broken)


def test_locked_video_rejected(video):
    video.lock = True
    with pytest.raises(LockedError):
        ProcessingPipeline(video).run(lambda frame: frame)


def test_pipeline_defaults_come_from_config(make_config):
    video = make_video(config=make_config(CHUNK_SIZE_MIB=2, VERBOSE=0))
    opts = ProcessingPipeline(video).options()
    assert opts.chunk_size_mib == 2.0
    assert opts.verbose == 0
