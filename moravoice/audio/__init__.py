"""Audio output helpers."""

from .wav import encode_wav, to_pcm16, write_wav

__all__ = ["encode_wav", "to_pcm16", "write_wav"]
