"""WAV encoding for synthesized sample arrays.

Responsibilities:
- Convert `float32` samples in `[-1.0, 1.0]` to 16-bit PCM frames.
- Write mono or stereo WAV files with deterministic headers.
"""

from __future__ import annotations

import io
from pathlib import Path
import wave

import numpy as np

_SAMPLE_WIDTH_BYTES = 2
_INT16_SCALE = 32767.0


def to_pcm16(samples: np.ndarray) -> bytes:
    """Clip samples to `[-1.0, 1.0]` and encode them as little-endian int16."""

    clipped = np.clip(np.asarray(samples, dtype=np.float32), -1.0, 1.0)
    return (clipped * _INT16_SCALE).astype("<i2").tobytes()


def _channel_count(samples: np.ndarray) -> int:
    if samples.ndim == 1:
        return 1
    if samples.ndim == 2 and samples.shape[1] in (1, 2):
        return int(samples.shape[1])
    raise ValueError(f"Unsupported sample array shape {samples.shape}; expected (n,) or (n, 2).")


def encode_wav(samples: np.ndarray, sampling_rate: int) -> bytes:
    """Return a complete WAV file for `samples` as bytes."""

    channels = _channel_count(samples)
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as output:
        output.setnchannels(channels)
        output.setsampwidth(_SAMPLE_WIDTH_BYTES)
        output.setframerate(sampling_rate)
        output.writeframes(to_pcm16(samples))
    return buffer.getvalue()


def write_wav(samples: np.ndarray, sampling_rate: int, output_path: Path) -> Path:
    """Write `samples` to `output_path`, creating parent directories."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(encode_wav(samples, sampling_rate))
    return output_path
