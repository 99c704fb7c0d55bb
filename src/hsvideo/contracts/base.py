"""Base contract enforcement utilities.

The require() function is the single enforcement mechanism for all
validation in hsvideo. It raises immediately, before any side effect of the
calling operation has happened.
"""

from typing import Type

from hsvideo.contracts.failure import HsVideoError, InvalidInputError


def require(condition: bool, message: str,
            error: Type[HsVideoError] = InvalidInputError) -> None:
    """Enforce a precondition or contract.

    Parameters
    ----------
    condition : bool
        The invariant that must be true.

    message : str
        Error message explaining the violation.

    error : type, optional
        Subclass of HsVideoError to raise (default: InvalidInputError).

    Raises
    ------
    HsVideoError
        The given error type if condition is False.

    Examples
    --------
    >>> require(pitch > 0, "Pixel pitch must be positive")
    >>> require(not video.lock, "Video is locked", LockedError)
    """
    if not condition:
        raise error(message)
