"""Tests for the uniform lock policy of the Video aggregate."""

import numpy as np
import pytest

pytestmark = pytest.mark.unit

from hsvideo.contracts import LockedError


MUTATIONS = {
    "normal": lambda v: setattr(v, "normal", [1, 0, 0]),
    "position": lambda v: setattr(v, "position", [1, 2, 3]),
    "pixel_pitch": lambda v: setattr(v, "pixel_pitch", [2, 2]),
    "pitch_equivalent": lambda v: setattr(v, "pitch_equivalent", 3.0),
    "pitch_mean": lambda v: setattr(v, "pitch_mean", 3.0),
    "device": lambda v: setattr(v, "device", "cam"),
    "comment": lambda v: setattr(v, "comment", "note"),
    "name": lambda v: setattr(v, "name", "other"),
    "filename": lambda v: setattr(v, "filename", "other.raw"),
    "time": lambda v: setattr(v, "time", 0.1),
    "exposure": lambda v: setattr(v, "exposure", 0.01),
    "userdata": lambda v: setattr(v, "userdata", {"a": 1}),
    "tracks": lambda v: setattr(v, "tracks", []),
    "frames": lambda v: setattr(v, "frames", np.zeros((2, 2, 1, 1))),
    "write_frames": lambda v: v.write_frames([0], np.zeros((6, 8, 1, 1))),
    "set_origin": lambda v: v.set_origin("box"),
    "crop": lambda v: v.crop([1, 1, 2, 2]),
    "resize": lambda v: v.resize(0.5),
    "store": lambda v: v.store(),
    "recall": lambda v: v.recall(),
    "backup": lambda v: v.backup(),
    "restore": lambda v: v.restore(),
    "read_cih": lambda v: v.read_cih(),
    "process": lambda v: v.process(lambda frame: frame),
}


@pytest.mark.parametrize("name", sorted(MUTATIONS))
def test_locked_video_rejects_mutation(video, name):
    before = video.persisted_state()
    shape = video.frames.shape
    video.lock = True

    with pytest.raises(LockedError):
        MUTATIONS[name](video)

    assert video.persisted_state() == before
    assert video.frames.shape == shape


def test_locked_video_still_reads(video):
    video.lock = True
    assert video.x.size == 8
    assert video.read_frames([0]).shape == (6, 8, 1, 1)
    assert "locked" in video.info()
    assert video.copy().n_frames == 5


def test_temp_is_not_lock_checked(video):
    video.lock = True
    video.temp = "scratch"
    assert video.temp == "scratch"


def test_unlock_restores_mutation(video):
    video.lock = True
    video.lock = False
    video.device = "cam"
    assert video.device == "cam"


def test_locked_error_identifier(video):
    video.lock = True
    with pytest.raises(LockedError) as excinfo:
        video.device = "cam"
    assert excinfo.value.identifier == "hsvideo:Locked"


class TestLockReachesCollaborators:

    def test_store_writes_rejected(self, video):
        video.lock = True
        with pytest.raises(LockedError):
            video.frames.set([0], np.zeros((6, 8, 1, 1)))
        with pytest.raises(LockedError):
            video.frames.replace(np.zeros((2, 2, 1, 1)))
        assert video.read_frames([0]).max() > 0
        assert video.frames.shape == (6, 8, 1, 5)

    def test_unlock_releases_store(self, video):
        video.lock = True
        video.lock = False
        video.frames.set([0], np.zeros((6, 8, 1, 1)))
        assert video.read_frames([0]).max() == 0

    def test_copy_of_locked_video_has_locked_store(self, video):
        video.lock = True
        clone = video.copy()
        assert clone.lock is True
        assert clone.frames.lock is True
        assert video.sandbox([0]).frames.lock is False

    def test_replaced_store_is_released(self, video, frames):
        old = video.frames
        video.frames = frames
        video.lock = True
        assert old.lock is False
        assert video.frames.lock is True

    def test_returned_tracks_and_userdata_are_copies(self, video):
        video.userdata = {"note": [1]}
        video.lock = True
        before = video.persisted_state()

        video.tracks[0].position = np.zeros((1, 4))
        video.userdata["x"] = 1
        video.userdata["note"].append(2)

        assert video.persisted_state() == before
        assert video.userdata == {"note": [1]}
