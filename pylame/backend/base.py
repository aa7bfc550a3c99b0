"""Base class for the encoder backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    import numpy as np
    from numpy.typing import NDArray


Handle = Any
"""Opaque reference to the backend state of one encoder context."""


class LameBackend(ABC):
    """
    Abstract interface over the native encoder ABI.

    Each method maps to one native entry point, and returns its raw result:
    status codes are not interpreted here, that is the job of
    :mod:`pylame.status`. Backends are not required to be thread-safe
    for calls on the same handle.
    """

    @abstractmethod
    def init(self) -> Handle | None:
        """Allocate a new encoder context. Return None if allocation failed."""

    @abstractmethod
    def close(self, handle: Handle) -> None:
        """Release an encoder context. The handle must not be used afterwards."""

    @abstractmethod
    def get_in_samplerate(self, handle: Handle) -> int: ...

    @abstractmethod
    def set_in_samplerate(self, handle: Handle, value: int) -> int: ...

    @abstractmethod
    def get_num_channels(self, handle: Handle) -> int: ...

    @abstractmethod
    def set_num_channels(self, handle: Handle, value: int) -> int: ...

    @abstractmethod
    def get_quality(self, handle: Handle) -> int: ...

    @abstractmethod
    def set_quality(self, handle: Handle, value: int) -> int: ...

    @abstractmethod
    def get_brate(self, handle: Handle) -> int: ...

    @abstractmethod
    def set_brate(self, handle: Handle, value: int) -> int: ...

    @abstractmethod
    def init_params(self, handle: Handle) -> int:
        """Derive the internal encoder state from the configured parameters."""

    @abstractmethod
    def encode_buffer(
        self,
        handle: Handle,
        left: NDArray[np.int16],
        right: NDArray[np.int16],
        num_samples: int,
        out: memoryview,
        out_size: int,
    ) -> int:
        """
        Encode `num_samples` samples per channel into `out`.

        :return: the number of bytes written, or a negative error code.
        """

    @abstractmethod
    def encode_buffer_interleaved(
        self,
        handle: Handle,
        pcm: NDArray[np.int16],
        num_samples: int,
        out: memoryview,
        out_size: int,
    ) -> int:
        """Encode `num_samples` interleaved stereo samples per channel into `out`."""

    @abstractmethod
    def encode_flush(self, handle: Handle, out: memoryview, out_size: int) -> int:
        """Flush the internal buffers into `out`, returning bytes written or an error."""

    @abstractmethod
    def get_framesize(self, handle: Handle) -> int:
        """Number of samples per channel in one encoded frame."""

    @abstractmethod
    def get_version(self) -> str:
        """Version string of the backend."""
