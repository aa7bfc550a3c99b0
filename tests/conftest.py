from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field as dataclass_field
from typing import TYPE_CHECKING

import numpy as np
import pytest
from typing_extensions import override

from pylame import Lame
from pylame.backend import LameBackend, NativeLameBackend
from pylame.constants import (
    BEST_QUALITY,
    DEFAULT_CHANNELS,
    DEFAULT_SAMPLE_RATE,
    WORST_QUALITY,
)
from pylame.exceptions import LameLibraryError
from pylame.status import EncodeStatus, LameStatus


if TYPE_CHECKING:
    from numpy.typing import NDArray


_logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "needs_libmp3lame: mark test as needing the native libmp3lame"
    )


def load_native_backend() -> NativeLameBackend:
    return NativeLameBackend()


def pytest_collection_modifyitems(config, items):
    skip_reason = "need libmp3lame installed, or PYLAME_LIBRARY set, to run"
    try:
        load_native_backend()
        enable_native_tests = True
    except LameLibraryError as e:
        enable_native_tests = False
        skip_reason = f"{skip_reason} ({e})"

    skip_needs_libmp3lame = pytest.mark.skip(reason=skip_reason)
    for item in items:
        if "needs_libmp3lame" in item.keywords and not enable_native_tests:
            item.add_marker(skip_needs_libmp3lame)


@pytest.fixture(scope="session")
def native_backend():
    return load_native_backend()


FAKE_FRAME_SAMPLES: int = 1152
FAKE_FRAME_BYTES: int = 417
FAKE_FRAME_HEADER: bytes = b"\xff\xfb"
FAKE_SAMPLE_RATES: frozenset[int] = frozenset(
    {8000, 11025, 12000, 16000, 22050, 24000, 32000, 44100, 48000}
)
FAKE_BITRATES: frozenset[int] = frozenset(
    {8, 16, 24, 32, 40, 48, 56, 64, 80, 96, 112, 128, 160, 192, 224, 256, 320}
)


@dataclass
class FakeContext:
    """The state behind one handle of :class:`FakeLameBackend`."""

    id: int
    sample_rate: int = DEFAULT_SAMPLE_RATE
    channels: int = DEFAULT_CHANNELS
    quality: int = -1
    brate: int = 0
    committed: bool = False
    buffered: int = 0
    close_count: int = 0
    encoded_samples: list[int] = dataclass_field(default_factory=list)


class UseAfterCloseError(AssertionError):
    """Raised by the fake backend when a released handle is used."""


class FakeLameBackend(LameBackend):
    """
    In-memory backend double.

    Parameters are echoed back exactly, :meth:`init_params` validates them,
    encoding before :meth:`init_params` fails, and every
    :data:`FAKE_FRAME_SAMPLES` samples produce one frame of
    :data:`FAKE_FRAME_BYTES` bytes.
    Return values of any method can be forced with :meth:`inject`.
    """

    def __init__(self):
        self.contexts: list[FakeContext] = []
        self.fail_alloc: bool = False
        self.fail_close: bool = False
        self.calls: list[str] = []
        self._injected: dict[str, int] = {}
        self._ids = itertools.count(1)

    def inject(self, method: str, code: int) -> None:
        """Make the next call of `method` return `code`."""
        self._injected[method] = code

    def _call(self, method: str, handle: FakeContext) -> int | None:
        self.calls.append(method)
        if handle.close_count:
            raise UseAfterCloseError(f"{method} called on closed handle {handle.id}")
        return self._injected.pop(method, None)

    @override
    def init(self) -> FakeContext | None:
        if self.fail_alloc:
            return None
        context = FakeContext(id=next(self._ids))
        self.contexts.append(context)
        return context

    @override
    def close(self, handle: FakeContext) -> None:
        handle.close_count += 1
        if self.fail_close:
            raise RuntimeError("close failed")

    @override
    def get_in_samplerate(self, handle: FakeContext) -> int:
        self._call("get_in_samplerate", handle)
        return handle.sample_rate

    @override
    def set_in_samplerate(self, handle: FakeContext, value: int) -> int:
        if (code := self._call("set_in_samplerate", handle)) is not None:
            return code
        handle.sample_rate = value
        return LameStatus.OK

    @override
    def get_num_channels(self, handle: FakeContext) -> int:
        self._call("get_num_channels", handle)
        return handle.channels

    @override
    def set_num_channels(self, handle: FakeContext, value: int) -> int:
        if (code := self._call("set_num_channels", handle)) is not None:
            return code
        handle.channels = value
        return LameStatus.OK

    @override
    def get_quality(self, handle: FakeContext) -> int:
        self._call("get_quality", handle)
        return handle.quality

    @override
    def set_quality(self, handle: FakeContext, value: int) -> int:
        if (code := self._call("set_quality", handle)) is not None:
            return code
        handle.quality = value
        return LameStatus.OK

    @override
    def get_brate(self, handle: FakeContext) -> int:
        self._call("get_brate", handle)
        return handle.brate

    @override
    def set_brate(self, handle: FakeContext, value: int) -> int:
        if (code := self._call("set_brate", handle)) is not None:
            return code
        handle.brate = value
        return LameStatus.OK

    @override
    def init_params(self, handle: FakeContext) -> int:
        if (code := self._call("init_params", handle)) is not None:
            return code
        handle.committed = False
        if handle.channels not in (1, 2):
            return LameStatus.GENERIC_ERROR
        if handle.sample_rate not in FAKE_SAMPLE_RATES:
            return LameStatus.BAD_SAMPLE_FREQ
        if handle.brate == 0:
            handle.brate = 128
        if handle.brate not in FAKE_BITRATES:
            return LameStatus.BAD_BITRATE
        if not BEST_QUALITY <= handle.quality <= WORST_QUALITY:
            handle.quality = 3
        handle.committed = True
        return LameStatus.OK

    def _emit(self, handle: FakeContext, num_samples: int, out: memoryview, out_size: int) -> int:
        if not handle.committed:
            return EncodeStatus.INIT_PARAMS_NOT_CALLED
        frames = (handle.buffered + num_samples) // FAKE_FRAME_SAMPLES
        needed = frames * FAKE_FRAME_BYTES
        if needed > out_size:
            return EncodeStatus.OUTPUT_BUFFER_TOO_SMALL
        frame = FAKE_FRAME_HEADER.ljust(FAKE_FRAME_BYTES, b"\x00")
        out[:needed] = frame * frames
        handle.buffered = (handle.buffered + num_samples) % FAKE_FRAME_SAMPLES
        handle.encoded_samples.append(num_samples)
        return needed

    @override
    def encode_buffer(
        self,
        handle: FakeContext,
        left: NDArray[np.int16],
        right: NDArray[np.int16],
        num_samples: int,
        out: memoryview,
        out_size: int,
    ) -> int:
        if (code := self._call("encode_buffer", handle)) is not None:
            return code
        assert left.dtype == np.int16 and right.dtype == np.int16
        assert len(left) == len(right) == num_samples
        return self._emit(handle, num_samples, out, out_size)

    @override
    def encode_buffer_interleaved(
        self,
        handle: FakeContext,
        pcm: NDArray[np.int16],
        num_samples: int,
        out: memoryview,
        out_size: int,
    ) -> int:
        if (code := self._call("encode_buffer_interleaved", handle)) is not None:
            return code
        assert pcm.dtype == np.int16 and pcm.ndim == 1
        assert len(pcm) == 2 * num_samples
        return self._emit(handle, num_samples, out, out_size)

    @override
    def encode_flush(self, handle: FakeContext, out: memoryview, out_size: int) -> int:
        if (code := self._call("encode_flush", handle)) is not None:
            return code
        pending = FAKE_FRAME_SAMPLES - handle.buffered if handle.buffered else 0
        return self._emit(handle, pending, out, out_size)

    @override
    def get_framesize(self, handle: FakeContext) -> int:
        self._call("get_framesize", handle)
        return FAKE_FRAME_SAMPLES

    @override
    def get_version(self) -> str:
        return "3.100-fake"


@pytest.fixture
def backend():
    return FakeLameBackend()


@pytest.fixture
def lame(backend):
    with Lame(backend) as lame:
        yield lame


@pytest.fixture
def committed_lame(lame):
    lame.set_sample_rate(44100)
    lame.set_channels(2)
    lame.set_quality(5)
    lame.set_kilobitrate(128)
    lame.init_params()
    return lame
