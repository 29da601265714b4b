"""Top-level package for moravoice.

This package provides a voice model registry and a multi-stage text-to-speech
pipeline (analysis, duration, pitch, waveform decoding). The main entry point
is `Synthesizer`.
"""

from .devices import SupportedDevices
from .synthesizer import Synthesizer, SynthesizerOptions

__all__ = ["SupportedDevices", "Synthesizer", "SynthesizerOptions", "__version__"]

__version__ = "0.1.0"
