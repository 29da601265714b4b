"""Shared typed data models for moravoice.

This package contains the prosodic records exchanged between pipeline stages
and the voice model containers loaded into a synthesizer.
"""

from .datatypes import (
    AccelerationMode,
    AccentPhrase,
    AudioQuery,
    Mora,
    SpeakerMeta,
    StyleId,
    StyleMeta,
    SynthesisOptions,
    VoiceModelId,
)
from .voice_model import StyleWeights, VoiceModel

__all__ = [
    "AccelerationMode",
    "AccentPhrase",
    "AudioQuery",
    "Mora",
    "SpeakerMeta",
    "StyleId",
    "StyleMeta",
    "StyleWeights",
    "SynthesisOptions",
    "VoiceModel",
    "VoiceModelId",
]
