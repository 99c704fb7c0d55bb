"""Centralized failure types for hsvideo.

Every fatal condition raises a subclass of ``HsVideoError``. Each carries a
namespaced ``identifier`` so callers (and log readers) can tell the category
of a failure apart without parsing the message.

Key distinction:
- InvalidInputError: caller handed us something we cannot accept
- LockedError: the aggregate is locked against mutation
- UnsupportedShapeError: a track kind the geometry code cannot transform
- ContractViolation: a stage or collaborator broke its promise (programmer error)
"""


class HsVideoError(RuntimeError):
    """Base class for all fatal hsvideo errors."""

    identifier = "hsvideo:Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"[{self.identifier}] {self.message}"


class InvalidInputError(HsVideoError, ValueError):
    """Raised for input that fails validation."""

    identifier = "hsvideo:Input"


class LockedError(HsVideoError):
    """Raised when a mutating call hits a locked video."""

    identifier = "hsvideo:Locked"


class UnsupportedShapeError(HsVideoError):
    """Raised when a track shape kind has no transform rule."""

    identifier = "hsvideo:Shape"


class ContractViolation(HsVideoError):
    """Raised when a processing stage or collaborator violates its contract.

    This indicates a bug in the stage or collaborator, not bad user input.
    """

    identifier = "hsvideo:Contract"


class NotImplementedTransformError(HsVideoError, NotImplementedError):
    """Raised for coordinate transforms that are not implemented (full 3-D)."""

    identifier = "hsvideo:NotImplemented"
