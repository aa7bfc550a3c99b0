"""Various constants used by the pylame library."""

from __future__ import annotations

import ctypes as _ctypes


DEFAULT_SAMPLE_RATE: int = 44100
DEFAULT_CHANNELS: int = 2

BEST_QUALITY: int = 0
WORST_QUALITY: int = 9

# native `int` domain of the backend ABI
C_INT_MAX: int = 2 ** (8 * _ctypes.sizeof(_ctypes.c_int) - 1) - 1
C_INT_MIN: int = -C_INT_MAX - 1

# worst case output size, as documented in lame.h: 1.25 * num_samples + 7200
MP3_BUFFER_SAMPLES_FACTOR: float = 1.25
MP3_BUFFER_PADDING: int = 7200
MP3_FLUSH_BUFFER_SIZE: int = 7200

LIBRARY_ENV_VAR: str = "PYLAME_LIBRARY"
LIBRARY_NAME: str = "mp3lame"
