"""Tests for stage classification by signature."""

import functools

import pytest

pytestmark = pytest.mark.unit

from hsvideo.contracts import InvalidInputError
from hsvideo.pipeline import FrameStage, StatefulStage, as_stage, as_stages


def frame_filter(frame):
    return frame


def stateful(data, options, storage, state):
    return data, options, storage


def test_one_argument_is_a_frame_stage():
    stage = as_stage(frame_filter)
    assert isinstance(stage, FrameStage)
    assert stage.kind == "frame"
    assert stage.name == "frame_filter"


def test_four_arguments_is_a_stateful_stage():
    stage = as_stage(stateful)
    assert isinstance(stage, StatefulStage)
    assert stage.name == "stateful"


def test_optional_arguments_count():
    assert isinstance(as_stage(lambda frame, gain=2: frame * gain), FrameStage)
    assert isinstance(as_stage(lambda d, o, s, t, extra=None: (d, o, s)), StatefulStage)
    assert isinstance(as_stage(lambda *args: args[:3]), StatefulStage)


@pytest.mark.parametrize("func", [
    lambda: None,
    lambda a, b: None,
    lambda a, b, c: None,
    lambda a, b, c, d, e: None,
])
def test_other_signatures_are_rejected(func):
    with pytest.raises(InvalidInputError):
        as_stage(func)


def test_not_callable():
    with pytest.raises(InvalidInputError):
        as_stage(42)


def test_partial_and_custom_name():
    stage = as_stage(functools.partial(stateful), name="custom")
    assert stage.name == "custom"


def test_stateful_stage_receives_plain_state_string():
    seen = []
    stage = as_stage(lambda d, o, s, state: seen.append(state) or (d, o, s))
    stage(None, None, None, "run")
    assert seen == ["run"]
    assert type(seen[0]) is str


def test_as_stages_accepts_single_or_sequence():
    assert len(as_stages(frame_filter)) == 1
    assert len(as_stages([frame_filter, stateful])) == 2
    with pytest.raises(InvalidInputError):
        as_stages(3)
