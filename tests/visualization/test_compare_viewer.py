"""Tests for the side-by-side comparison viewer."""

import pytest

pytestmark = pytest.mark.unit

from hsvideo.contracts import InvalidInputError
from hsvideo.visualization import SideBySideViewer


def test_render_two_panels(video):
    sandbox = video.sandbox([0, 3])
    viewer = SideBySideViewer(video, sandbox, frames=[0, 3])

    fig = viewer.render(1)

    assert len(fig.axes) == 2
    assert fig.axes[0].get_title() == "fake [3]"
    assert fig.axes[0].get_xlabel() == "z"
    viewer.close()
    assert viewer.figure is None


def test_save(video, temp_dir):
    viewer = SideBySideViewer(video, video.sandbox([1]), frames=[1])
    path = viewer.save(temp_dir / "plots" / "compare.png")
    assert (temp_dir / "plots" / "compare.png").exists()
    assert path.endswith("compare.png")
    viewer.close()


def test_frame_count_must_match(video):
    with pytest.raises(InvalidInputError):
        SideBySideViewer(video, video.sandbox([0, 1]), frames=[0])


def test_position_out_of_range(video):
    viewer = SideBySideViewer(video, video.sandbox([0]))
    with pytest.raises(InvalidInputError):
        viewer.render(1)
