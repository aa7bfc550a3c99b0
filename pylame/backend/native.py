"""
Backend bound to the native libmp3lame shared library, through ctypes.

The library is looked up from the path in the ``PYLAME_LIBRARY`` environment
variable, if set, otherwise through :func:`ctypes.util.find_library`.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import logging
import os
from ctypes import POINTER, c_char_p, c_int, c_short, c_ubyte, c_void_p
from typing import TYPE_CHECKING

from typing_extensions import override

from ..constants import LIBRARY_ENV_VAR, LIBRARY_NAME
from ..exceptions import LameLibraryError
from .base import Handle, LameBackend


if TYPE_CHECKING:
    import numpy as np
    from numpy.typing import NDArray


__all__ = [
    "NativeLameBackend",
    "find_library_path",
]


_logger = logging.getLogger(__name__)


# name: (argtypes, restype)
_PROTOTYPES: dict[str, tuple[list[type], type | None]] = {
    "lame_init": ([], c_void_p),
    "lame_close": ([c_void_p], c_int),
    "lame_get_in_samplerate": ([c_void_p], c_int),
    "lame_set_in_samplerate": ([c_void_p, c_int], c_int),
    "lame_get_num_channels": ([c_void_p], c_int),
    "lame_set_num_channels": ([c_void_p, c_int], c_int),
    "lame_get_quality": ([c_void_p], c_int),
    "lame_set_quality": ([c_void_p, c_int], c_int),
    "lame_get_brate": ([c_void_p], c_int),
    "lame_set_brate": ([c_void_p, c_int], c_int),
    "lame_init_params": ([c_void_p], c_int),
    "lame_get_framesize": ([c_void_p], c_int),
    "lame_encode_buffer": (
        [
            c_void_p,  # gfp
            POINTER(c_short),  # buffer_l
            POINTER(c_short),  # buffer_r
            c_int,  # nsamples
            POINTER(c_ubyte),  # mp3buf
            c_int,  # mp3buf_size
        ],
        c_int,
    ),
    "lame_encode_buffer_interleaved": (
        [
            c_void_p,  # gfp
            POINTER(c_short),  # pcm
            c_int,  # num_samples
            POINTER(c_ubyte),  # mp3buf
            c_int,  # mp3buf_size
        ],
        c_int,
    ),
    "lame_encode_flush": ([c_void_p, POINTER(c_ubyte), c_int], c_int),
    "get_lame_version": ([], c_char_p),
}


def find_library_path() -> str | None:
    """Locate the libmp3lame shared library, honoring the environment override."""
    if env_path := os.environ.get(LIBRARY_ENV_VAR):
        return env_path
    return ctypes.util.find_library(LIBRARY_NAME)


def _short_ptr(data: NDArray[np.int16]) -> ctypes._Pointer:
    return data.ctypes.data_as(POINTER(c_short))


def _out_ptr(out: memoryview, out_size: int) -> tuple[ctypes.Array, int]:
    # libmp3lame reads a size of 0 as "no limit": never hand it an empty buffer
    if out_size == 0:
        return (c_ubyte * 1)(), 1
    return (c_ubyte * out_size).from_buffer(out), out_size


class NativeLameBackend(LameBackend):
    """Backend calling into libmp3lame."""

    def __init__(self, library_path: str | None = None):
        """
        Load the shared library.

        :param library_path: Explicit path of the library. If omitted, it's looked up
            with :func:`find_library_path`.
        :raises LameLibraryError: if the library cannot be found or loaded.
        """
        if library_path is None:
            library_path = find_library_path()
        if library_path is None:
            raise LameLibraryError(
                f"Could not find the {LIBRARY_NAME} library, "
                f"set {LIBRARY_ENV_VAR} to its path"
            )
        try:
            self._lib = ctypes.CDLL(library_path)
        except OSError as exc:
            raise LameLibraryError(f"Failed to load {library_path}: {exc}") from exc

        for name, (argtypes, restype) in _PROTOTYPES.items():
            try:
                func = getattr(self._lib, name)
            except AttributeError as exc:
                raise LameLibraryError(
                    f"Symbol {name} missing from {library_path}"
                ) from exc
            func.argtypes = argtypes
            func.restype = restype

        self.library_path: str = library_path
        _logger.debug(f"Loaded {library_path} (LAME {self.get_version()})")

    @override
    def init(self) -> Handle | None:
        handle = self._lib.lame_init()
        return handle or None

    @override
    def close(self, handle: Handle) -> None:
        self._lib.lame_close(handle)

    @override
    def get_in_samplerate(self, handle: Handle) -> int:
        return self._lib.lame_get_in_samplerate(handle)

    @override
    def set_in_samplerate(self, handle: Handle, value: int) -> int:
        return self._lib.lame_set_in_samplerate(handle, value)

    @override
    def get_num_channels(self, handle: Handle) -> int:
        return self._lib.lame_get_num_channels(handle)

    @override
    def set_num_channels(self, handle: Handle, value: int) -> int:
        return self._lib.lame_set_num_channels(handle, value)

    @override
    def get_quality(self, handle: Handle) -> int:
        return self._lib.lame_get_quality(handle)

    @override
    def set_quality(self, handle: Handle, value: int) -> int:
        return self._lib.lame_set_quality(handle, value)

    @override
    def get_brate(self, handle: Handle) -> int:
        return self._lib.lame_get_brate(handle)

    @override
    def set_brate(self, handle: Handle, value: int) -> int:
        return self._lib.lame_set_brate(handle, value)

    @override
    def init_params(self, handle: Handle) -> int:
        return self._lib.lame_init_params(handle)

    @override
    def encode_buffer(
        self,
        handle: Handle,
        left: NDArray[np.int16],
        right: NDArray[np.int16],
        num_samples: int,
        out: memoryview,
        out_size: int,
    ) -> int:
        out_buf, out_size = _out_ptr(out, out_size)
        return self._lib.lame_encode_buffer(
            handle, _short_ptr(left), _short_ptr(right), num_samples, out_buf, out_size
        )

    @override
    def encode_buffer_interleaved(
        self,
        handle: Handle,
        pcm: NDArray[np.int16],
        num_samples: int,
        out: memoryview,
        out_size: int,
    ) -> int:
        out_buf, out_size = _out_ptr(out, out_size)
        return self._lib.lame_encode_buffer_interleaved(
            handle, _short_ptr(pcm), num_samples, out_buf, out_size
        )

    @override
    def encode_flush(self, handle: Handle, out: memoryview, out_size: int) -> int:
        out_buf, out_size = _out_ptr(out, out_size)
        return self._lib.lame_encode_flush(handle, out_buf, out_size)

    @override
    def get_framesize(self, handle: Handle) -> int:
        return self._lib.lame_get_framesize(handle)

    @override
    def get_version(self) -> str:
        version: bytes | None = self._lib.get_lame_version()
        return version.decode("ascii") if version else ""
