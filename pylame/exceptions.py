"""Exception classes for the pylame library."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar


if TYPE_CHECKING:
    from .status import EncodeStatus, LameStatus


__all__ = [
    "LameException",
    "LameLibraryError",
    "LameAllocationError",
    "LameClosedError",
    "LameError",
    "LameGenericError",
    "LameNoMemError",
    "LameBadBitRateError",
    "LameBadSampleFreqError",
    "LameInternalError",
    "LameUnknownError",
    "LameEncodeError",
    "OutputBufferTooSmallError",
    "EncodeNoMemError",
    "InitParamsNotCalledError",
    "PsychoAcousticError",
    "EncodeUnknownError",
]


class LameException(Exception):
    """Base class for all custom library exceptions."""


class LameLibraryError(LameException, OSError):
    """Raised when the native LAME library cannot be found or loaded."""


class LameAllocationError(LameException, MemoryError):
    """Raised when the backend could not allocate a new encoder context."""


class LameClosedError(LameException, ValueError):
    """Raised when an operation is attempted on a closed encoder context."""


class LameError(LameException):
    """
    Base class for errors returned by configuration and lifecycle calls.

    Carries the raw status code returned by the backend, and the matching
    :class:`LameStatus` member, or None if the code is not a documented one.
    """

    description: ClassVar[str] = "Unknown error"

    def __init__(self, code: int, status: LameStatus | None = None):
        self.code: int = code
        self.status: LameStatus | None = status
        super().__init__(f"{self.description} (code {code})")


class LameGenericError(LameError):
    """Generic failure reported by the backend."""

    description = "Generic error"


class LameNoMemError(LameError, MemoryError):
    """The backend ran out of memory."""

    description = "No memory"


class LameBadBitRateError(LameError, ValueError):
    """The configured bitrate is not supported."""

    description = "Bad bitrate"


class LameBadSampleFreqError(LameError, ValueError):
    """The configured sample frequency is not supported."""

    description = "Bad sample frequency"


class LameInternalError(LameError):
    """Internal backend error."""

    description = "Internal error"


class LameUnknownError(LameError):
    """An undocumented status code was returned."""

    description = "Unknown error"


class LameEncodeError(LameException):
    """
    Base class for errors returned by the encoding calls.

    Encoding calls use their own status codes, so these never overlap
    with :class:`LameError`, even when the numeric codes are the same.
    """

    description: ClassVar[str] = "Unknown"

    def __init__(self, code: int, status: EncodeStatus | None = None):
        self.code: int = code
        self.status: EncodeStatus | None = status
        super().__init__(f"{self.description} (code {code})")


class OutputBufferTooSmallError(LameEncodeError, BufferError):
    """The output buffer cannot hold the encoded frames."""

    description = "Output buffer too small"


class EncodeNoMemError(LameEncodeError, MemoryError):
    """The backend ran out of memory while encoding."""

    description = "No memory"


class InitParamsNotCalledError(LameEncodeError):
    """Encoding was attempted before the configuration was committed."""

    description = "Init params not called"


class PsychoAcousticError(LameEncodeError):
    """The psychoacoustic model failed."""

    description = "Psycho acoustic error"


class EncodeUnknownError(LameEncodeError):
    """An undocumented negative code was returned by an encoding call."""

    description = "Unknown"
