"""Tests for keeping tracked regions on their pixels across geometry changes."""

from types import SimpleNamespace

import numpy as np
import pytest

pytestmark = pytest.mark.unit

from hsvideo.contracts import UnsupportedShapeError
from hsvideo.geometry import CoordinateTransform, ROIReprojector, axis_vector
from hsvideo.geometry.reprojector import representative_pairs


def make_transform(pitch=(1.0, 1.0), offset=(0.0, 0.0), n=4):
    return CoordinateTransform(axis_vector(n, pitch[0], offset[0]),
                               axis_vector(n, pitch[1], offset[1]), pitch)


def make_track(shape, position, name="t"):
    return SimpleNamespace(shape=shape, position=np.atleast_2d(np.asarray(position, dtype=float)),
                           name=name, widget=None)


class Recorder:
    def __init__(self):
        self.calls = 0

    def __call__(self):
        self.calls += 1


def test_rect_under_pitch_change_keeps_its_corner_pixel():
    old = make_transform((1.0, 1.0))
    new = make_transform((2.0, 1.0))
    track = make_track("rect", [1.0, 1.0, 2.0, 2.0])
    commit = Recorder()

    corner_before = old.real2pix(np.array([1.0]), np.array([1.0]))
    ROIReprojector().reproject([track], old, commit, lambda: new, pitch_ratio=(2.0, 1.0))

    np.testing.assert_allclose(track.position[0], [2.0, 1.0, 4.0, 2.0])
    corner_after = new.real2pix(track.position[:, 0], track.position[:, 1])
    np.testing.assert_allclose(corner_after, corner_before)
    assert commit.calls == 1


def test_vertices_follow_a_position_shift():
    old = make_transform()
    new = make_transform(offset=(1.0, -2.0))
    track = make_track("polygon", [-1.5, 0.5, 1.5, -1.5, -1.5, 0.5])

    ROIReprojector().reproject([track], old, Recorder(), lambda: new)

    np.testing.assert_allclose(track.position[0], [-0.5, 1.5, 2.5, -3.5, -3.5, -1.5])


def test_inverse_change_restores_positions():
    a = make_transform((1.0, 1.0), (0.0, 0.0))
    b = make_transform((0.5, 2.0), (3.0, -1.0))
    rect = make_track("ellipse", [[0.2, -0.4, 1.0, 0.6], [np.nan] * 4])
    line = make_track("line", [[-1.0, 1.0, 0.25, 0.75], [0.0, 0.0, 0.0, 0.0]])
    original = [rect.position.copy(), line.position.copy()]

    reprojector = ROIReprojector()
    reprojector.reproject([rect, line], a, Recorder(), lambda: b, pitch_ratio=(0.5, 2.0))
    reprojector.reproject([rect, line], b, Recorder(), lambda: a, pitch_ratio=(2.0, 0.5))

    np.testing.assert_allclose(rect.position, original[0])
    np.testing.assert_allclose(line.position, original[1])


def test_unsupported_shape_changes_nothing():
    old = make_transform()
    good = make_track("rect", [0.0, 0.0, 1.0, 1.0])
    bad = make_track("blob", [0.0, 0.0])
    commit = Recorder()

    with pytest.raises(UnsupportedShapeError):
        ROIReprojector().reproject([good, bad], old, commit, lambda: old)

    assert commit.calls == 0
    np.testing.assert_allclose(good.position[0], [0.0, 0.0, 1.0, 1.0])


def test_no_tracks_still_commits():
    commit = Recorder()
    ROIReprojector().reproject([], None, commit, lambda: None)
    assert commit.calls == 1


def test_widgets_hidden_and_shown_around_change():
    events = []

    class Display:
        def hide_tracks(self, tracks):
            events.append("hide")
            return True

        def show_tracks(self, tracks):
            events.append("show")

    old = make_transform()

    def commit():
        events.append("commit")

    ROIReprojector(Display()).reproject([make_track("point", [0.0, 0.0])], old, commit, lambda: old)
    assert events == ["hide", "commit", "show"]


def test_representative_pairs():
    x, y = representative_pairs("rect", np.array([[0.0, 2.0, 4.0, 2.0]]))
    np.testing.assert_allclose([x[0], y[0]], [2.0, 3.0])

    x, y = representative_pairs("line", np.array([[1.0, 2.0, 3.0, 4.0]]))
    np.testing.assert_allclose(x, [[1.0, 2.0]])
    np.testing.assert_allclose(y, [[3.0, 4.0]])
