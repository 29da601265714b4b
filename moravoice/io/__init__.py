"""Input/output helpers for voice model bundles."""

from .bundle import read_voice_model, write_voice_model

__all__ = ["read_voice_model", "write_voice_model"]
