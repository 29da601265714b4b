"""Unit tests for duration and pitch prediction."""

from __future__ import annotations

import pytest

from moravoice.backend import ExecutionBackend
from moravoice.errors import StyleNotFoundError
from moravoice.models import AccelerationMode, StyleId, VoiceModel
from moravoice.pipeline.prosody import ProsodyStage
from moravoice.registry import ModelRegistry
from moravoice.text.kana import parse_kana


@pytest.fixture
def prosody(voice_model_a: VoiceModel, voice_model_b: VoiceModel) -> ProsodyStage:
    """Provide a CPU prosody stage with styles 0 and 1 loaded."""

    registry = ModelRegistry()
    registry.load(voice_model_a)
    registry.load(voice_model_b)
    return ProsodyStage(registry, ExecutionBackend.resolve(AccelerationMode.CPU))


def _lengths(phrases: list) -> list[tuple[float | None, float]]:
    return [
        (mora.consonant_length, mora.vowel_length)
        for phrase in phrases
        for mora in phrase.moras
    ]


def test_predict_duration_fills_lengths_and_keeps_pitch(prosody: ProsodyStage) -> None:
    """Duration prediction should set positive lengths and leave pitch at zero."""

    skeleton = parse_kana("コンニチワ'、ア'メ")

    phrases = prosody.predict_duration(skeleton, StyleId(0))

    for consonant_length, vowel_length in _lengths(phrases):
        assert vowel_length > 0.0
        assert consonant_length is None or consonant_length > 0.0
    assert phrases[0].pause_mora is not None
    assert phrases[0].pause_mora.vowel_length > 0.0
    assert all(mora.pitch == 0.0 for phrase in phrases for mora in phrase.moras)


def test_predict_pitch_silences_unvoiced_moras(prosody: ProsodyStage) -> None:
    """Devoiced vowels and `cl` moras should receive pitch zero; voiced moras positive pitch."""

    phrases = prosody.predict_both(parse_kana("_シ'ッテ"), StyleId(0))

    pitches = [mora.pitch for mora in phrases[0].moras]
    assert pitches[0] == 0.0
    assert pitches[1] == 0.0
    assert pitches[2] > 0.0


def test_predict_both_durations_match_predict_duration(prosody: ProsodyStage) -> None:
    """Durations from `predict_both` should equal durations from `predict_duration`."""

    skeleton = parse_kana("ア'メガ/フ'ル")

    both = prosody.predict_both(skeleton, StyleId(0))
    durations_only = prosody.predict_duration(skeleton, StyleId(0))

    assert _lengths(both) == _lengths(durations_only)


def test_predict_pitch_keeps_durations(prosody: ProsodyStage) -> None:
    """Pitch prediction should not touch consonant or vowel lengths."""

    with_lengths = prosody.predict_duration(parse_kana("ア'メガ"), StyleId(0))

    with_pitch = prosody.predict_pitch(with_lengths, StyleId(1))

    assert _lengths(with_pitch) == _lengths(with_lengths)


def test_cross_style_pitch_prediction_differs(prosody: ProsodyStage) -> None:
    """Re-predicting pitch with another style should change at least one voiced pitch."""

    phrases = prosody.predict_both(parse_kana("コンニチワ'"), StyleId(0))

    repitched = prosody.predict_pitch(phrases, StyleId(1))

    original = [mora.pitch for mora in phrases[0].moras]
    updated = [mora.pitch for mora in repitched[0].moras]
    assert original != updated


def test_prediction_is_deterministic_and_never_mutates_input(prosody: ProsodyStage) -> None:
    """Repeated predictions should match, and the input sequence should stay unchanged."""

    skeleton = parse_kana("ア'メ/フ'ル")
    snapshot = list(skeleton)

    first = prosody.predict_both(skeleton, StyleId(1))
    second = prosody.predict_both(skeleton, StyleId(1))

    assert first == second
    assert skeleton == snapshot
    assert first is not skeleton


def test_prediction_with_unknown_style_raises(prosody: ProsodyStage) -> None:
    """Unresolvable styles should raise `StyleNotFoundError`."""

    with pytest.raises(StyleNotFoundError):
        prosody.predict_duration(parse_kana("ア'"), StyleId(99))
