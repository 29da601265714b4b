"""Unit tests for audio query validation and waveform decoding."""

from __future__ import annotations

from dataclasses import replace

import numpy as np
import pytest

from moravoice import Synthesizer
from moravoice.backend import ExecutionBackend
from moravoice.errors import IncompleteQueryError, StyleNotFoundError
from moravoice.models import (
    AccelerationMode,
    AccentPhrase,
    AudioQuery,
    Mora,
    StyleId,
    SynthesisOptions,
)
from moravoice.pipeline.waveform import (
    MAX_LOG_F0,
    UPSPEAK_LENGTH,
    WaveformStage,
    apply_interrogative_upspeak,
    validate_query,
)
from moravoice.registry import ModelRegistry
from moravoice.text.kana import parse_kana


@pytest.fixture
def query(loaded_synthesizer: Synthesizer) -> AudioQuery:
    """Provide a fully predicted query for style 0."""

    return loaded_synthesizer.build_query("コンニチワ'、ア'メ", StyleId(0))


def _replace_first_mora(query: AudioQuery, **changes: object) -> AudioQuery:
    first_phrase = query.accent_phrases[0]
    moras = (replace(first_phrase.moras[0], **changes),) + first_phrase.moras[1:]
    phrases = (replace(first_phrase, moras=moras),) + query.accent_phrases[1:]
    return replace(query, accent_phrases=phrases)


def test_decode_returns_float32_mono_samples(
    loaded_synthesizer: Synthesizer, query: AudioQuery
) -> None:
    """Decoding should return a non-silent 1-D float32 array."""

    samples = loaded_synthesizer.synthesize(query, StyleId(0))

    assert samples.dtype == np.float32
    assert samples.ndim == 1
    assert np.any(samples != 0.0)


def test_decode_pads_silence_at_output_rate(
    loaded_synthesizer: Synthesizer, query: AudioQuery
) -> None:
    """Pre and post phoneme lengths should become leading and trailing zero samples."""

    padded = replace(
        query, pre_phoneme_length=0.5, post_phoneme_length=0.25, output_sampling_rate=16000
    )
    bare = replace(padded, pre_phoneme_length=0.0, post_phoneme_length=0.0)

    padded_samples = loaded_synthesizer.synthesize(padded, StyleId(0))
    bare_samples = loaded_synthesizer.synthesize(bare, StyleId(0))

    assert len(padded_samples) == len(bare_samples) + 8000 + 4000
    assert np.all(padded_samples[:8000] == 0.0)
    assert np.all(padded_samples[-4000:] == 0.0)
    np.testing.assert_array_equal(padded_samples[8000:-4000], bare_samples)


def test_decode_speed_and_volume_scales(
    loaded_synthesizer: Synthesizer, query: AudioQuery
) -> None:
    """Faster speech should be shorter, and volume should scale amplitude linearly."""

    bare = replace(query, pre_phoneme_length=0.0, post_phoneme_length=0.0)

    normal = loaded_synthesizer.synthesize(bare, StyleId(0))
    fast = loaded_synthesizer.synthesize(replace(bare, speed_scale=2.0), StyleId(0))
    loud = loaded_synthesizer.synthesize(replace(bare, volume_scale=2.0), StyleId(0))

    assert len(fast) < len(normal)
    np.testing.assert_allclose(loud, normal * 2.0, rtol=1e-5, atol=1e-6)


def test_decode_stereo_duplicates_channels(
    loaded_synthesizer: Synthesizer, query: AudioQuery
) -> None:
    """Stereo output should have two identical channels."""

    samples = loaded_synthesizer.synthesize(replace(query, output_stereo=True), StyleId(0))

    assert samples.ndim == 2
    assert samples.shape[1] == 2
    np.testing.assert_array_equal(samples[:, 0], samples[:, 1])


def test_decode_rejects_negative_duration(
    loaded_synthesizer: Synthesizer, query: AudioQuery
) -> None:
    """Negative vowel lengths should raise `IncompleteQueryError`."""

    with pytest.raises(IncompleteQueryError, match="vowel length"):
        loaded_synthesizer.synthesize(_replace_first_mora(query, vowel_length=-0.1), StyleId(0))


def test_decode_rejects_zero_prosody_skeleton(loaded_synthesizer: Synthesizer) -> None:
    """A query built from an unpredicted skeleton should be rejected."""

    skeleton_query = AudioQuery(accent_phrases=tuple(parse_kana("ア'メ")))

    with pytest.raises(IncompleteQueryError, match="predict prosody"):
        loaded_synthesizer.synthesize(skeleton_query, StyleId(0))


@pytest.mark.parametrize(
    "changes",
    [
        {"speed_scale": 0.0},
        {"volume_scale": -1.0},
        {"intonation_scale": -0.5},
        {"pre_phoneme_length": -0.1},
        {"output_sampling_rate": 0},
        {"pitch_scale": float("nan")},
    ],
)
def test_validate_query_rejects_out_of_range_globals(
    query: AudioQuery, changes: dict[str, object]
) -> None:
    """Out-of-range global parameters should raise `IncompleteQueryError`."""

    with pytest.raises(IncompleteQueryError):
        validate_query(replace(query, **changes))


def test_validate_query_rejects_malformed_moras(query: AudioQuery) -> None:
    """Missing consonant lengths, unknown phonemes, and bad accents should be rejected."""

    with pytest.raises(IncompleteQueryError, match="consonant length"):
        validate_query(_replace_first_mora(query, consonant_length=None))
    with pytest.raises(IncompleteQueryError, match="unknown vowel"):
        validate_query(_replace_first_mora(query, vowel="q"))
    bad_accent = replace(
        query,
        accent_phrases=(replace(query.accent_phrases[0], accent=0),) + query.accent_phrases[1:],
    )
    with pytest.raises(IncompleteQueryError, match="accent"):
        validate_query(bad_accent)


def test_decode_unknown_style_raises(query: AudioQuery, loaded_synthesizer: Synthesizer) -> None:
    """Decoding with an unloaded style should raise `StyleNotFoundError`."""

    with pytest.raises(StyleNotFoundError):
        loaded_synthesizer.synthesize(query, StyleId(42))


def test_interrogative_upspeak_appends_rising_mora() -> None:
    """Interrogative phrases ending voiced should gain one higher trailing mora."""

    phrase = AccentPhrase(
        moras=(Mora(text="カ", consonant="k", consonant_length=0.05, vowel="a", vowel_length=0.1, pitch=5.5),),
        accent=1,
        is_interrogative=True,
    )
    unvoiced = replace(phrase, moras=(replace(phrase.moras[0], vowel="A", pitch=0.0),))

    raised, untouched = apply_interrogative_upspeak([phrase, unvoiced])

    assert len(raised.moras) == 2
    assert raised.moras[1].text == "ア"
    assert raised.moras[1].vowel_length == UPSPEAK_LENGTH
    assert raised.moras[1].pitch == pytest.approx(5.8)
    assert untouched is unvoiced


def test_upspeak_option_changes_interrogative_output(loaded_synthesizer: Synthesizer) -> None:
    """Disabling upspeak should yield shorter audio for an interrogative query."""

    question = loaded_synthesizer.build_query("ア'メ？", StyleId(1))

    with_upspeak = loaded_synthesizer.synthesize(question, StyleId(1))
    without_upspeak = loaded_synthesizer.synthesize(
        question, StyleId(1), SynthesisOptions(enable_interrogative_upspeak=False)
    )

    assert len(with_upspeak) > len(without_upspeak)


def _flatten_pitches(**changes: object) -> tuple[list[float], list[float]]:
    """Flatten a fixed phrase (`a`=5.0, `i`=6.0, devoiced `kU`) with query overrides."""

    phrase = AccentPhrase(
        moras=(
            Mora(text="ア", vowel="a", vowel_length=0.1, pitch=5.0),
            Mora(text="イ", vowel="i", vowel_length=0.2, pitch=6.0),
            Mora(
                text="ク",
                consonant="k",
                consonant_length=0.04,
                vowel="U",
                vowel_length=0.06,
                pitch=0.0,
            ),
        ),
        accent=1,
    )
    query = replace(AudioQuery(accent_phrases=(phrase,)), **changes)
    stage = WaveformStage(ModelRegistry(), ExecutionBackend.resolve(AccelerationMode.CPU))

    phonemes, lengths, pitches = stage._flatten(query.accent_phrases, query)

    assert phonemes == ["a", "i", "k", "U"]
    return lengths, pitches


def test_flatten_pitch_scale_multiplies_voiced_pitch() -> None:
    """`pitch_scale` should multiply voiced log-F0 by `2 ** pitch_scale` and keep silence."""

    _, pitches = _flatten_pitches(pitch_scale=0.5)

    assert pitches == pytest.approx([5.0 * 2.0**0.5, 6.0 * 2.0**0.5, 0.0, 0.0])


def test_flatten_intonation_scale_stretches_deviation_from_voiced_mean() -> None:
    """`intonation_scale` should scale each voiced pitch's distance from the voiced mean."""

    _, widened = _flatten_pitches(intonation_scale=2.0)
    _, flattened = _flatten_pitches(intonation_scale=0.0)
    _, unchanged = _flatten_pitches()

    assert widened == pytest.approx([4.5, 6.5, 0.0, 0.0])
    assert flattened == pytest.approx([5.5, 5.5, 0.0, 0.0])
    assert unchanged == pytest.approx([5.0, 6.0, 0.0, 0.0])


def test_flatten_speed_scale_divides_phoneme_lengths() -> None:
    """`speed_scale` should divide every consonant and vowel length."""

    lengths, _ = _flatten_pitches(speed_scale=2.0)

    assert lengths == pytest.approx([0.05, 0.1, 0.02, 0.03])


def test_decode_rejects_pitch_scale_beyond_nyquist(
    loaded_synthesizer: Synthesizer, query: AudioQuery
) -> None:
    """A finite `pitch_scale` that pushes voiced pitch past Nyquist should be rejected."""

    with pytest.raises(IncompleteQueryError, match="Scaled pitch exceeds"):
        loaded_synthesizer.synthesize(replace(query, pitch_scale=5.0), StyleId(0))
    with pytest.raises(IncompleteQueryError, match="pitch_scale"):
        loaded_synthesizer.synthesize(replace(query, pitch_scale=5000.0), StyleId(0))


def test_decode_with_raised_pitch_stays_finite(
    loaded_synthesizer: Synthesizer, query: AudioQuery
) -> None:
    """Accepted pitch and intonation scales should always decode to finite samples."""

    samples = loaded_synthesizer.synthesize(
        replace(query, pitch_scale=0.5, intonation_scale=1.5), StyleId(0)
    )

    assert np.isfinite(samples).all()
    assert MAX_LOG_F0 == pytest.approx(np.log(12000.0))
