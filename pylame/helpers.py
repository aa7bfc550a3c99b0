"""Helpers, utilities, and other miscellaneous functions and classes."""

from __future__ import annotations

import functools
import math
import sys
from dataclasses import dataclass as _dtcls
from typing import TYPE_CHECKING, Any, Callable, Sequence, TypeVar, Union, cast

import numpy as np
from typing_extensions import TypeAlias, dataclass_transform

from .constants import (
    C_INT_MAX,
    MP3_BUFFER_PADDING,
    MP3_BUFFER_SAMPLES_FACTOR,
)


if TYPE_CHECKING:
    from numpy.typing import NDArray


PCMData: TypeAlias = Union["NDArray[Any]", Sequence[int], Sequence[float]]


_dT = TypeVar("_dT")


@functools.wraps(_dtcls)
@dataclass_transform()
def slots_dataclass(*args: Any, **kwargs: Any) -> Callable[[_dT], _dT]:
    """Wrapper for dataclass decorator that adds slots if supported (py3.10+)."""
    if sys.version_info < (3, 10):
        kwargs.pop("slots", None)
    else:
        kwargs.setdefault("slots", True)
    return cast(Callable[[_dT], _dT], _dtcls(*args, **kwargs))


def int_size(size: int, what: str = "size") -> int:
    """
    Check that a length fits the native `int` of the backend ABI.

    A larger value means the caller passed an unreasonably large single buffer,
    which is a programming error rather than a runtime condition.

    :raises OverflowError: if the value does not fit.
    """
    if size > C_INT_MAX:
        raise OverflowError(f"{what} {size} does not fit a native int (max {C_INT_MAX})")
    return size


def mp3_buffer_size(num_samples: int) -> int:
    """Worst-case size in bytes of the output for `num_samples` samples per channel."""
    return math.ceil(MP3_BUFFER_SAMPLES_FACTOR * num_samples) + MP3_BUFFER_PADDING


def as_pcm_int16(data: PCMData) -> NDArray[np.int16]:
    """
    Convert PCM samples to a C-contiguous `np.int16` array.

    Integer data is clipped to the 16-bit range, floating data is expected in
    the [-1, 1] range and is clipped and scaled to the 16-bit range.
    """
    array = np.asarray(data)
    if np.issubdtype(array.dtype, np.floating):
        array = (np.clip(array, -1.0, 1.0) * (2**15 - 1)).astype(np.int16)
    elif np.can_cast(array.dtype, np.int16):
        array = array.astype(np.int16, copy=False)
    else:
        bounds = np.iinfo(np.int16)
        low = max(bounds.min, np.iinfo(array.dtype).min)
        array = np.clip(array, low, bounds.max).astype(np.int16)
    return np.ascontiguousarray(array)


def writable_buffer(buffer: Any) -> memoryview:
    """
    Return a flat, writable byte view over an output buffer.

    :raises TypeError: if the object does not expose a writable buffer,
        or if the buffer is not C-contiguous.
    """
    view = memoryview(buffer)
    if view.readonly:
        raise TypeError(f"Output buffer must be writable, got {type(buffer).__name__}")
    if not view.c_contiguous:
        raise TypeError("Output buffer must be C-contiguous")
    if view.format != "B" or view.ndim != 1:
        view = view.cast("B")
    return view
