"""Plain-text parameter files written by lab equipment.

Lines look like ``<name> : <value>``. Lines starting with ``%`` or ``#`` are
comments. Values are read as numbers where possible.
"""

import logging
import re
from pathlib import Path
from typing import Iterable, Optional, Union

import numpy as np

from hsvideo.contracts import InvalidInputError, require

__all__ = ['read_parameter_file', 'valid_name', 'apply_cih', 'CIH_PROPERTIES']

logger = logging.getLogger(__name__)

CIH_PROPERTIES = ("time", "exposure", "device")
CIH_FIELDS = ("CameraType", "RecordRate_fps_", "ShutterSpeed_s_", "StartFrame",
              "TotalFrame", "CorrectTriggerFrame")


def valid_name(token: str) -> str:
    """Turn a parameter label into an identifier.

    Whitespace is removed and the following letter upper-cased, other
    invalid characters become underscores.

    Examples
    --------
    >>> valid_name("Record Rate(fps)")
    'RecordRate_fps_'
    """
    token = re.sub(r"\s+(\w)", lambda m: m.group(1).upper(), token.strip())
    token = re.sub(r"\W", "_", token)
    if not token or not (token[0].isalpha()):
        token = "x" + token
    return token


def _number(text: str):
    if "/" in text:
        num, _, den = text.partition("/")
        return float(num) / float(den)
    if re.fullmatch(r"[-+]?\d+", text):
        return int(text)
    return float(text)


def _parse_value(text: str):
    parts = text.replace(",", " ").split()
    if not parts:
        return text
    try:
        numbers = [_number(p) for p in parts]
    except (ValueError, ZeroDivisionError):
        return text
    return numbers[0] if len(numbers) == 1 else np.array(numbers)


def read_parameter_file(path: Union[str, Path]) -> dict:
    """Read a parameter file into a dict.

    Returns
    -------
    dict
        Parameters under their :func:`valid_name`, plus ``"Comment"`` with
        the list of comment lines. Keys are sorted.

    Raises
    ------
    InvalidInputError
        If the file does not exist.
    """
    path = Path(path)
    if not path.is_file():
        raise InvalidInputError(f"File '{path}' does not exist")

    out = {"Comment": []}
    with open(path, "r", errors="replace") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            if line[0] in "%#":
                out["Comment"].append(line)
                continue
            token, _, remain = line.partition(":")
            token = token.strip()
            if not token:
                continue
            out[valid_name(token)] = _parse_value(remain.strip())
    return dict(sorted(out.items()))


def apply_cih(video, path: Optional[Union[str, Path]] = None,
              props: Optional[Iterable[str]] = None) -> bool:
    """Populate time, exposure and device of ``video`` from a Photron CIH file.

    Parameters
    ----------
    video : Video
        Target video; must not be locked.
    path : str or Path, optional
        CIH file, defaults to ``<video.filename>.cih``.
    props : iterable of str, optional
        Subset of ``("time", "exposure", "device")``; all by default.

    Returns
    -------
    bool
        False if the file is missing or incomplete (a warning is logged).
    """
    props = CIH_PROPERTIES if props is None else tuple(props)
    unknown = set(props) - set(CIH_PROPERTIES)
    require(not unknown, f"Unknown property to read from CIH file: {sorted(unknown)}")
    video._check_unlocked("read CIH")

    path = Path(f"{video.filename}.cih") if path is None else Path(path)
    if not path.is_file():
        logger.info("No CIH file at %s", path)
        return False

    data = read_parameter_file(path)
    missing = [key for key in CIH_FIELDS if key not in data]
    if missing:
        logger.warning("CIH file '%s' is missing information (%s), please check it!",
                       path, ", ".join(missing))
        return False

    n_frames = video.n_frames
    for prop in props:
        if prop == "time":
            if n_frames != data["TotalFrame"]:
                logger.warning(
                    "CIH file '%s' contains information for %d frames but %s holds %d frames, "
                    "timing is taken from the first %d frames",
                    path, data["TotalFrame"], video.name, n_frames, n_frames)
            frames = np.arange(1, n_frames + 1, dtype=float)
            video.time = (frames - 2 + data["StartFrame"] - data["CorrectTriggerFrame"]) / data["RecordRate_fps_"]
        elif prop == "exposure":
            video.exposure = float(data["ShutterSpeed_s_"])
        elif prop == "device":
            video.device = str(data["CameraType"])
    logger.info("Read %s from %s", ", ".join(props), path)
    return True
