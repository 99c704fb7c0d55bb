"""Tests for plain-text parameter files and Photron CIH import."""

import logging

import numpy as np
import pytest

pytestmark = pytest.mark.unit

from hsvideo.contracts import InvalidInputError
from hsvideo.core import read_parameter_file
from hsvideo.core.parameter_file import valid_name
from tests.helpers.fake_video import make_video

CIH = """#Camera Information Header
Date : 2019/05/06
Time : 10:31
Camera Type : FASTCAM SA-Z
Record Rate(fps) : 1000
Shutter Speed(s) : 1/20000
Total Frame : 5
Start Frame : 0
Correct Trigger Frame : 0
Image Width : 8
"""


@pytest.fixture
def cih_video(temp_dir, internal_config):
    filename = temp_dir / "clip.raw"
    (temp_dir / "clip.raw.cih").write_text(CIH)
    return make_video(config=internal_config, filename=str(filename))


def test_valid_name():
    assert valid_name("Record Rate(fps)") == "RecordRate_fps_"
    assert valid_name("Camera Type") == "CameraType"
    assert valid_name("1st") == "x1st"


def test_read_parameter_file(temp_dir):
    path = temp_dir / "p.cih"
    path.write_text(CIH + "% another comment\nOffsets : 1, 2, 3\n")

    params = read_parameter_file(path)

    assert params["RecordRate_fps_"] == 1000
    assert params["ShutterSpeed_s_"] == pytest.approx(5e-5)
    assert params["CameraType"] == "FASTCAM SA-Z"
    assert params["Date"] == "2019/05/06"
    assert params["Time"] == "10:31"
    np.testing.assert_array_equal(params["Offsets"], [1, 2, 3])
    assert params["Comment"] == ["#Camera Information Header", "% another comment"]
    assert list(params) == sorted(params)


def test_missing_parameter_file(temp_dir):
    with pytest.raises(InvalidInputError):
        read_parameter_file(temp_dir / "missing.cih")


def test_read_cih(cih_video):
    assert cih_video.read_cih() is True

    np.testing.assert_allclose(cih_video.time, np.array([-1, 0, 1, 2, 3]) / 1000.0)
    np.testing.assert_allclose(cih_video.exposure, [5e-5] * 5)
    assert cih_video.device == "FASTCAM SA-Z"


def test_read_cih_selected_properties(cih_video):
    cih_video.read_cih(props=["device"])
    assert cih_video.device == "FASTCAM SA-Z"
    assert np.isnan(cih_video.time).all()


def test_read_cih_frame_mismatch_warns(temp_dir, internal_config, caplog):
    (temp_dir / "short.raw.cih").write_text(CIH)
    video = make_video(shape=(6, 8, 1, 3), config=internal_config, filename=str(temp_dir / "short.raw"))

    with caplog.at_level(logging.WARNING):
        video.read_cih()

    assert video.time.size == 3
    assert "contains information for 5 frames" in caplog.text


def test_incomplete_cih_warns(temp_dir, internal_config, caplog):
    (temp_dir / "bad.raw.cih").write_text("Camera Type : X\n")
    video = make_video(config=internal_config, filename=str(temp_dir / "bad.raw"))

    with caplog.at_level(logging.WARNING):
        assert video.read_cih() is False
    assert "missing information" in caplog.text


def test_missing_cih_file(video):
    assert video.read_cih() is False
