"""The LAME encoder context."""

from __future__ import annotations

import enum
import logging
import weakref
from typing import TYPE_CHECKING, Any, Callable

import numpy as np
from typing_extensions import Self

from .backend import Handle, LameBackend, get_default_backend
from .constants import C_INT_MAX, C_INT_MIN, MP3_FLUSH_BUFFER_SIZE
from .exceptions import LameAllocationError, LameClosedError
from .helpers import (
    PCMData,
    as_pcm_int16,
    int_size,
    mp3_buffer_size,
    slots_dataclass,
    writable_buffer,
)
from .status import check_encode_result, check_lame_status


if TYPE_CHECKING:
    from types import TracebackType

    from numpy.typing import NDArray


__all__ = [
    "EncoderState",
    "EncoderConfig",
    "Lame",
    "lame_version",
]


_logger = logging.getLogger(__name__)


class EncoderState(enum.Enum):
    """Enum of the encoder context lifecycle states."""

    CREATED = "created"
    CONFIGURING = "configuring"
    COMMITTED = "committed"
    ENCODING = "encoding"
    FLUSHED = "flushed"
    CLOSED = "closed"


@slots_dataclass(frozen=True)
class EncoderConfig:
    """
    A set of encoder parameters. Fields left as None keep the backend value.

    :param sample_rate: Input sample rate, in Hz.
    :param channels: Number of input channels.
    :param quality: Algorithm quality, from 0 (best, slowest) to 9 (worst, fastest).
    :param kilobitrate: Target bitrate, in kbps.
    """

    sample_rate: int | None = None
    channels: int | None = None
    quality: int | None = None
    kilobitrate: int | None = None


def _release(backend: LameBackend, handle: Handle, name: str) -> None:
    # errors on release cannot be acted upon by the caller
    try:
        backend.close(handle)
    except Exception as exc:
        _logger.warning(f"Error while closing {name}: {exc}")
    else:
        _logger.debug(f"Closed {name}")


def _release_collected(backend: LameBackend, handle: Handle, name: str) -> None:
    _logger.warning(f"{name} was not closed, releasing it on garbage collection")
    _release(backend, handle, name)


def _c_int(value: int, what: str) -> int:
    if not C_INT_MIN <= value <= C_INT_MAX:
        raise OverflowError(f"{what} {value} does not fit a native int")
    return value


def lame_version(backend: LameBackend | None = None) -> str:
    """Version string of the LAME backend."""
    if backend is None:
        backend = get_default_backend()
    return backend.get_version()


class Lame:
    """
    A LAME encoder context.

    Owns one backend handle, released exactly once by :meth:`close`, by leaving
    a ``with`` block, or when the object is garbage collected.

    Typical usage::

        with Lame() as lame:
            lame.set_sample_rate(44100)
            lame.set_channels(2)
            lame.set_quality(5)
            lame.set_kilobitrate(128)
            lame.init_params()
            written = lame.encode(left, right, mp3_buffer)

    All parameters must be set before :meth:`init_params` is called, which must
    itself be called before encoding. The latter is enforced by the backend,
    that will fail the encoding with :class:`InitParamsNotCalledError`.

    A context is not thread-safe: use one context per thread, or synchronize
    the calls externally.
    """

    def __init__(self, backend: LameBackend | None = None):
        """
        Allocate a new encoder context with default parameters.

        :param backend: The backend to use. Defaults to the native libmp3lame backend.
        :raises LameAllocationError: if the backend could not allocate the context.
        """
        self._backend: LameBackend = backend if backend is not None else get_default_backend()
        handle = self._backend.init()
        if handle is None:
            raise LameAllocationError("The backend could not allocate an encoder context")
        self._handle: Handle | None = handle
        self._state: EncoderState = EncoderState.CREATED
        self._name: str = f"encoder context {id(self):#x}"
        self._finalizer = weakref.finalize(
            self, _release_collected, self._backend, handle, self._name
        )
        _logger.debug(f"Created {self._name}")

    @classmethod
    def create(cls, backend: LameBackend | None = None) -> Self | None:
        """
        Create a new encoder context, or return None if the backend
        could not allocate its internal structures.
        """
        try:
            return cls(backend)
        except LameAllocationError:
            return None

    @property
    def state(self) -> EncoderState:
        """The current lifecycle state. Informative only, never enforced."""
        return self._state

    @property
    def closed(self) -> bool:
        """Whether the context was released."""
        return self._handle is None

    @property
    def backend(self) -> LameBackend:
        """The backend this context runs on."""
        return self._backend

    def _checked_handle(self) -> Handle:
        if self._handle is None:
            raise LameClosedError(f"Operation on closed {self._name}")
        return self._handle

    def _set_param(self, setter: Callable[[Handle, int], int], value: int, what: str) -> None:
        handle = self._checked_handle()
        if self._state in {EncoderState.COMMITTED, EncoderState.ENCODING}:
            _logger.debug(f"Setting {what} on {self._name} after init_params")
        check_lame_status(setter(handle, _c_int(value, what)))
        if self._state == EncoderState.CREATED:
            self._state = EncoderState.CONFIGURING

    @property
    def sample_rate(self) -> int:
        """Sample rate of the input PCM data, in Hz. Defaults to 44100."""
        return self._backend.get_in_samplerate(self._checked_handle())

    @sample_rate.setter
    def sample_rate(self, value: int) -> None:
        self.set_sample_rate(value)

    def set_sample_rate(self, sample_rate: int) -> None:
        """Set the sample rate of the input PCM data, in Hz."""
        self._set_param(self._backend.set_in_samplerate, sample_rate, "sample rate")

    @property
    def channels(self) -> int:
        """Number of channels of the input stream. Defaults to 2."""
        return self._backend.get_num_channels(self._checked_handle())

    @channels.setter
    def channels(self, value: int) -> None:
        self.set_channels(value)

    def set_channels(self, channels: int) -> None:
        """Set the number of channels of the input stream."""
        self._set_param(self._backend.set_num_channels, channels, "channels")

    @property
    def quality(self) -> int:
        """The LAME quality parameter. See :meth:`set_quality`."""
        return self._backend.get_quality(self._checked_handle())

    @quality.setter
    def quality(self, value: int) -> None:
        self.set_quality(value)

    def set_quality(self, quality: int) -> None:
        """
        Set the LAME quality parameter.

        The actual quality is determined by the bitrate, but this parameter
        selects between expensive and cheap algorithms. It's a number from 0 to 9
        (inclusive), where 0 is the best and slowest and 9 the worst and fastest.
        The value is not clamped, out of range values are left to the backend.
        """
        self._set_param(self._backend.set_quality, quality, "quality")

    @property
    def kilobitrate(self) -> int:
        """The output bitrate, in kilobits per second."""
        return self._backend.get_brate(self._checked_handle())

    @kilobitrate.setter
    def kilobitrate(self, value: int) -> None:
        self.set_kilobitrate(value)

    def set_kilobitrate(self, kilobitrate: int) -> None:
        """Set the target output bitrate, in kilobits per second (e.g. 320)."""
        self._set_param(self._backend.set_brate, kilobitrate, "bitrate")

    @property
    def framesize(self) -> int:
        """Number of samples per channel in one encoded frame."""
        return self._backend.get_framesize(self._checked_handle())

    def configure(self, config: EncoderConfig, *, commit: bool = True) -> None:
        """
        Apply the set fields of a config, then optionally commit them.

        :param config: The parameters to set.
        :param commit: Whether to call :meth:`init_params` afterwards.
        """
        if config.sample_rate is not None:
            self.set_sample_rate(config.sample_rate)
        if config.channels is not None:
            self.set_channels(config.channels)
        if config.quality is not None:
            self.set_quality(config.quality)
        if config.kilobitrate is not None:
            self.set_kilobitrate(config.kilobitrate)
        if commit:
            self.init_params()

    def init_params(self) -> None:
        """
        Set the internal parameters according to the basic parameters.

        Must be called after all parameters are set, and before encoding.
        If it fails, the context can be reconfigured and committed again.
        """
        handle = self._checked_handle()
        try:
            check_lame_status(self._backend.init_params(handle))
        except Exception:
            self._state = EncoderState.CONFIGURING
            raise
        self._state = EncoderState.COMMITTED
        _logger.debug(f"Committed parameters of {self._name}")

    def _encode_result(self, result: int) -> int:
        written = check_encode_result(result)
        self._state = EncoderState.ENCODING
        return written

    def encode(self, pcm_left: PCMData, pcm_right: PCMData, mp3_buffer: Any) -> int:
        """
        Encode PCM data into MP3 frames.

        Encoding is stateful: the backend may keep samples buffered until a whole
        frame is available, so a result of 0 bytes is valid.

        :param pcm_left: The left channel samples.
        :param pcm_right: The right channel samples. Must have the same length
            as `pcm_left`.
        :param mp3_buffer: A writable buffer receiving the encoded data.
        :return: The number of bytes written to `mp3_buffer`.
        :raises ValueError: if the channels have different lengths.
        :raises OverflowError: if a buffer is too large for the backend.
        :raises TypeError: if `mp3_buffer` is not writable.
        """
        handle = self._checked_handle()
        if len(pcm_left) != len(pcm_right):
            raise ValueError(
                "Left and right channels must have the same number of samples, "
                f"got {len(pcm_left)} and {len(pcm_right)}"
            )
        num_samples = int_size(len(pcm_left), "number of samples")
        out = writable_buffer(mp3_buffer)
        out_size = int_size(out.nbytes, "output buffer size")
        left, right = as_pcm_int16(pcm_left), as_pcm_int16(pcm_right)
        return self._encode_result(
            self._backend.encode_buffer(handle, left, right, num_samples, out, out_size)
        )

    def encode_interleaved(self, pcm: PCMData, mp3_buffer: Any) -> int:
        """
        Encode interleaved stereo PCM data into MP3 frames.

        :param pcm: The samples, either flat as ``L R L R ...``, or with shape (n, 2).
        :param mp3_buffer: A writable buffer receiving the encoded data.
        :return: The number of bytes written to `mp3_buffer`.
        :raises ValueError: if the samples are not interleaved stereo,
            or if the context is not configured for 2 channels.
        """
        handle = self._checked_handle()
        if (channels := self.channels) != 2:
            raise ValueError(f"Interleaved encoding needs 2 channels, context has {channels}")
        samples = np.asarray(pcm)
        if samples.ndim == 2 and samples.shape[1] == 2:
            num_samples = samples.shape[0]
        elif samples.ndim == 1 and samples.shape[0] % 2 == 0:
            num_samples = samples.shape[0] // 2
        else:
            raise ValueError(
                f"Expected interleaved stereo samples, got shape {samples.shape}"
            )
        num_samples = int_size(num_samples, "number of samples")
        out = writable_buffer(mp3_buffer)
        out_size = int_size(out.nbytes, "output buffer size")
        interleaved: NDArray[np.int16] = as_pcm_int16(samples).reshape(-1)
        return self._encode_result(
            self._backend.encode_buffer_interleaved(
                handle, interleaved, num_samples, out, out_size
            )
        )

    def flush(self, mp3_buffer: Any) -> int:
        """
        Flush the buffered samples as the final MP3 frames.

        The buffer should be at least 7200 bytes long.
        No more data should be encoded after flushing.

        :return: The number of bytes written to `mp3_buffer`.
        """
        handle = self._checked_handle()
        out = writable_buffer(mp3_buffer)
        out_size = int_size(out.nbytes, "output buffer size")
        written = check_encode_result(self._backend.encode_flush(handle, out, out_size))
        self._state = EncoderState.FLUSHED
        return written

    def encode_to_bytes(self, pcm_left: PCMData, pcm_right: PCMData) -> bytes:
        """Encode PCM data, allocating a large enough buffer, and return the MP3 bytes."""
        mp3_buffer = bytearray(mp3_buffer_size(len(pcm_left)))
        written = self.encode(pcm_left, pcm_right, mp3_buffer)
        return bytes(mp3_buffer[:written])

    def flush_to_bytes(self) -> bytes:
        """Flush the buffered samples and return the final MP3 bytes."""
        mp3_buffer = bytearray(MP3_FLUSH_BUFFER_SIZE)
        written = self.flush(mp3_buffer)
        return bytes(mp3_buffer[:written])

    def close(self) -> None:
        """Release the backend context. Calling it again has no effect."""
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        self._state = EncoderState.CLOSED
        self._finalizer.detach()
        _release(self._backend, handle, self._name)

    def __enter__(self) -> Self:
        self._checked_handle()
        return self

    def __exit__(
        self,
        exctype: type[BaseException] | None,
        excinst: BaseException | None,
        exctb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._state.value} at {id(self):#x}>"
