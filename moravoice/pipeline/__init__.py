"""Synthesis pipeline stages and orchestration."""

from .orchestrator import SynthesisPipeline
from .prosody import ProsodyStage
from .waveform import WaveformStage

__all__ = ["ProsodyStage", "SynthesisPipeline", "WaveformStage"]
