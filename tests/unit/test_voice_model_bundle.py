"""Unit tests for voice model construction and bundle persistence."""

from __future__ import annotations

import json
from pathlib import Path
import zipfile

import pytest
import torch

from moravoice.errors import InvalidModelError
from moravoice.io.bundle import write_voice_model
from moravoice.models import SpeakerMeta, StyleId, StyleMeta, VoiceModel, VoiceModelId
from moravoice.models.voice_model import StyleWeights
from tests.fixture_models import random_style_weights


def test_voice_model_rejects_duplicate_styles_and_missing_weights() -> None:
    """Models declaring a style twice or without weights should be rejected."""

    weights = random_style_weights(3)
    duplicated = SpeakerMeta(
        name="Alpha",
        speaker_uuid="uuid-a",
        styles=(StyleMeta(id=StyleId(0), name="normal"), StyleMeta(id=StyleId(0), name="happy")),
    )
    with pytest.raises(InvalidModelError, match="more than once"):
        VoiceModel(id=VoiceModelId("dup"), speakers=(duplicated,), weights={StyleId(0): weights})

    missing = SpeakerMeta(
        name="Alpha", speaker_uuid="uuid-a", styles=(StyleMeta(id=StyleId(5), name="normal"),)
    )
    with pytest.raises(InvalidModelError, match="no weights"):
        VoiceModel(id=VoiceModelId("missing"), speakers=(missing,), weights={})


def test_style_weights_validate_shapes() -> None:
    """Weights with mismatched shapes or missing tensors should be rejected."""

    tensors = random_style_weights(4).tensors()

    with pytest.raises(InvalidModelError, match="timbre"):
        StyleWeights.from_tensors({**tensors, "timbre": torch.zeros(3)})
    incomplete = dict(tensors)
    del incomplete["pitch_offset"]
    with pytest.raises(InvalidModelError, match="pitch_offset"):
        StyleWeights.from_tensors(incomplete)


def test_bundle_round_trip_preserves_metadata_and_weights(
    tmp_path: Path, voice_model_a: VoiceModel
) -> None:
    """Written bundles should load back with equal metadata and tensors."""

    path = write_voice_model(voice_model_a, tmp_path / "alpha.vvm")

    loaded = VoiceModel.from_path(path)

    assert loaded.id == voice_model_a.id
    assert loaded.speakers == voice_model_a.speakers
    for name, tensor in voice_model_a.weights[StyleId(0)].tensors().items():
        assert torch.equal(loaded.weights[StyleId(0)].tensors()[name], tensor), name


def test_bundle_reader_reports_missing_and_corrupt_bundles(tmp_path: Path) -> None:
    """Missing files, non-zip files, and incomplete manifests should raise `InvalidModelError`."""

    with pytest.raises(InvalidModelError, match="not found"):
        VoiceModel.from_path(tmp_path / "missing.vvm")

    corrupt = tmp_path / "corrupt.vvm"
    corrupt.write_bytes(b"not a zip")
    with pytest.raises(InvalidModelError, match="unreadable"):
        VoiceModel.from_path(corrupt)

    incomplete = tmp_path / "incomplete.vvm"
    with zipfile.ZipFile(incomplete, "w") as archive:
        archive.writestr("manifest.json", json.dumps({"id": "x", "speakers": []}))
    with pytest.raises(InvalidModelError, match="incomplete"):
        VoiceModel.from_path(incomplete)
