"""
Translation of the backend integer status codes into exceptions.

The backend uses two separate conventions: configuration and lifecycle calls
return 0 or one of the :class:`LameStatus` codes, while encoding calls return
a non-negative byte count or one of the :class:`EncodeStatus` codes.
The two families share numeric values (e.g. -1) with different meanings,
and are therefore kept apart.
"""

from __future__ import annotations

import enum
from typing import Mapping

from .exceptions import (
    EncodeNoMemError,
    EncodeUnknownError,
    InitParamsNotCalledError,
    LameBadBitRateError,
    LameBadSampleFreqError,
    LameEncodeError,
    LameError,
    LameGenericError,
    LameInternalError,
    LameNoMemError,
    LameUnknownError,
    OutputBufferTooSmallError,
    PsychoAcousticError,
)


__all__ = [
    "LameStatus",
    "EncodeStatus",
    "lame_error_from_code",
    "check_lame_status",
    "encode_error_from_code",
    "check_encode_result",
]


class LameStatus(enum.IntEnum):
    """Status codes of the configuration and lifecycle calls."""

    OK = 0
    GENERIC_ERROR = -1
    NO_MEM = -10
    BAD_BITRATE = -11
    BAD_SAMPLE_FREQ = -12
    INTERNAL_ERROR = -13


class EncodeStatus(enum.IntEnum):
    """Error codes of the encoding calls. Non-negative codes are byte counts."""

    OUTPUT_BUFFER_TOO_SMALL = -1
    NO_MEM = -2
    INIT_PARAMS_NOT_CALLED = -3
    PSYCHO_ACOUSTIC_ERROR = -4


LAME_ERRORS: Mapping[LameStatus, type[LameError]] = {
    LameStatus.GENERIC_ERROR: LameGenericError,
    LameStatus.NO_MEM: LameNoMemError,
    LameStatus.BAD_BITRATE: LameBadBitRateError,
    LameStatus.BAD_SAMPLE_FREQ: LameBadSampleFreqError,
    LameStatus.INTERNAL_ERROR: LameInternalError,
}

ENCODE_ERRORS: Mapping[EncodeStatus, type[LameEncodeError]] = {
    EncodeStatus.OUTPUT_BUFFER_TOO_SMALL: OutputBufferTooSmallError,
    EncodeStatus.NO_MEM: EncodeNoMemError,
    EncodeStatus.INIT_PARAMS_NOT_CALLED: InitParamsNotCalledError,
    EncodeStatus.PSYCHO_ACOUSTIC_ERROR: PsychoAcousticError,
}


def lame_error_from_code(code: int) -> LameError | None:
    """
    Map a configuration / lifecycle status code to its error.

    :param code: The code returned by the backend.
    :return: None if the code is :attr:`LameStatus.OK`, otherwise the matching
        error, or a :class:`LameUnknownError` for undocumented codes.
    """
    try:
        status = LameStatus(code)
    except ValueError:
        return LameUnknownError(code)
    if status == LameStatus.OK:
        return None
    return LAME_ERRORS[status](code, status)


def check_lame_status(code: int) -> None:
    """Raise the error matching a configuration / lifecycle status code, if any."""
    if (error := lame_error_from_code(code)) is not None:
        raise error


def encode_error_from_code(code: int) -> LameEncodeError | None:
    """
    Map the return value of an encoding call to its error.

    :param code: The value returned by the backend.
    :return: None if the value is a byte count (non-negative), otherwise the
        matching error, or an :class:`EncodeUnknownError` for undocumented codes.
    """
    if code >= 0:
        return None
    try:
        status = EncodeStatus(code)
    except ValueError:
        return EncodeUnknownError(code)
    return ENCODE_ERRORS[status](code, status)


def check_encode_result(code: int) -> int:
    """Return the byte count of an encoding call, or raise the matching error."""
    if (error := encode_error_from_code(code)) is not None:
        raise error
    return code
