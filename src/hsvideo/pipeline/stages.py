"""Stage interface of the processing pipeline.

A stage is one of two kinds:

``FrameStage``
    ``func(frame) -> frame``, a pure per-frame transform. Always driven one
    frame at a time and its output always replaces the frame data.
``StatefulStage``
    ``func(data, options, storage, state) -> (data, options, storage)``,
    called once with ``state="pre"``, then per chunk with ``"run"``, and
    once with ``"post"``.
"""

import inspect
import logging
from typing import Callable, Optional

from hsvideo.contracts import InvalidInputError
from hsvideo.schemas.options import OutMode, RunMode, StageState

__all__ = ['RunMode', 'OutMode', 'StageState', 'FrameStage', 'StatefulStage', 'as_stage', 'as_stages']

logger = logging.getLogger(__name__)


def _default_name(func) -> str:
    return getattr(func, "__name__", type(func).__name__)


class _Stage:
    kind = ""

    def __init__(self, func: Callable, name: Optional[str] = None):
        if not callable(func):
            raise InvalidInputError(f"Stage must be callable, got {type(func).__name__}")
        self.func = func
        self.name = name or _default_name(func)

    def __repr__(self):
        return f"{type(self).__name__}({self.name!r})"


class FrameStage(_Stage):
    """One-argument per-frame transform."""
    kind = "frame"

    def __call__(self, frame):
        return self.func(frame)


class StatefulStage(_Stage):
    """Four-argument stage driven through pre, run and post."""
    kind = "stateful"

    def __call__(self, data, options, storage, state):
        return self.func(data, options, storage, StageState(state).value)


def _arity(func):
    """``(required, total, has_varargs)`` of positional parameters."""
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Cannot inspect signature of stage {func!r}") from e
    required = total = 0
    varargs = False
    for param in signature.parameters.values():
        if param.kind == param.VAR_POSITIONAL:
            varargs = True
        elif param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD):
            total += 1
            if param.default is param.empty:
                required += 1
    return required, total, varargs


def as_stage(func, name: Optional[str] = None):
    """Classify ``func`` by its signature.

    Returns
    -------
    FrameStage or StatefulStage

    Raises
    ------
    InvalidInputError
        If ``func`` accepts neither one nor four positional arguments.

    Examples
    --------
    >>> as_stage(lambda frame: frame).kind
    'frame'
    >>> as_stage(lambda data, options, storage, state: (data, options, storage)).kind
    'stateful'
    """
    if isinstance(func, _Stage):
        if name is not None:
            func.name = name
        return func
    if not callable(func):
        raise InvalidInputError(f"Stage must be callable, got {type(func).__name__}")

    required, total, varargs = _arity(func)
    if varargs or (required <= 4 <= total):
        return StatefulStage(func, name)
    if required <= 1 <= total and total < 4:
        return FrameStage(func, name)
    raise InvalidInputError(
        f"Stage '{_default_name(func)}' should accept either one or four positional arguments, "
        f"it accepts {required} to {total}")


def as_stages(stages) -> list:
    """Accept a single stage or an iterable of stages."""
    if callable(stages) or isinstance(stages, _Stage):
        stages = [stages]
    try:
        stages = list(stages)
    except TypeError as e:
        raise InvalidInputError("Stages must be a callable or a sequence of callables") from e
    return [as_stage(stage) for stage in stages]
