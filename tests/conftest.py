"""Shared pytest fixtures for the full moravoice test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from moravoice import Synthesizer, SynthesizerOptions
from moravoice.models import AccelerationMode, VoiceModel
from moravoice.text import KanaTextAnalyzer
from tests.fixture_models import model_a, model_b, write_model_bundle


@pytest.fixture
def voice_model_a() -> VoiceModel:
    """Provide the single-style model `model-a` (style 0)."""

    return model_a()


@pytest.fixture
def voice_model_b() -> VoiceModel:
    """Provide the single-style model `model-b` (style 1)."""

    return model_b()


@pytest.fixture
def cpu_synthesizer() -> Synthesizer:
    """Provide an empty CPU-bound synthesizer reading kana notation."""

    return Synthesizer(
        KanaTextAnalyzer(),
        SynthesizerOptions(acceleration_mode=AccelerationMode.CPU),
    )


@pytest.fixture
def loaded_synthesizer(
    cpu_synthesizer: Synthesizer, voice_model_a: VoiceModel, voice_model_b: VoiceModel
) -> Synthesizer:
    """Provide a CPU synthesizer with styles 0 and 1 loaded."""

    cpu_synthesizer.load_voice_model(voice_model_a)
    cpu_synthesizer.load_voice_model(voice_model_b)
    return cpu_synthesizer


@pytest.fixture
def model_bundle_paths(
    tmp_path: Path, voice_model_a: VoiceModel, voice_model_b: VoiceModel
) -> list[Path]:
    """Write both fixture models as bundles and return their paths."""

    bundle_dir = tmp_path / "models"
    return [
        write_model_bundle(voice_model_a, bundle_dir),
        write_model_bundle(voice_model_b, bundle_dir),
    ]
