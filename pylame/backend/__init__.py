"""Encoder backends: the native ABI wrapped by :class:`pylame.Lame`."""

from __future__ import annotations

import functools

from .base import Handle, LameBackend
from .native import NativeLameBackend, find_library_path


__all__ = [
    "Handle",
    "LameBackend",
    "NativeLameBackend",
    "find_library_path",
    "get_default_backend",
]


@functools.lru_cache(maxsize=None)
def get_default_backend() -> LameBackend:
    """
    Return the shared native backend, loading the library on first use.

    :raises LameLibraryError: if the library cannot be loaded.
    """
    return NativeLameBackend()
