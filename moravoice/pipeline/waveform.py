"""Waveform decoding for fully specified audio queries.

Responsibilities:
- Validate audio queries before any decoding work starts.
- Apply global query parameters (speed, pitch, intonation, volume, silence).
- Decode per-phoneme lengths and pitches into samples with a style's decoder.

The decoder renders a harmonic-plus-noise signal at 24 kHz: phoneme
embeddings set per-frame harmonic and noise amplitudes, mora pitch sets the
fundamental frequency, and pause frames are silent. Noise comes from a fixed
seed, so equal queries decode to equal samples.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
import math

import numpy as np
import torch
import torch.nn.functional as F

from ..backend import ExecutionBackend
from ..errors import IncompleteQueryError
from ..models.datatypes import (
    DEFAULT_SAMPLING_RATE,
    AccentPhrase,
    AudioQuery,
    Mora,
    StyleId,
    SynthesisOptions,
)
from ..models.voice_model import StyleWeights
from ..registry import ModelRegistry
from ..text.phonemes import MORA_TEXT_BY_PHONEMES, PAUSE, PHONEME_INDEX, is_unvoiced

HOP_LENGTH = 256
FRAME_RATE = DEFAULT_SAMPLING_RATE / HOP_LENGTH
NOISE_SEED = 1234
UPSPEAK_LENGTH = 0.15
UPSPEAK_PITCH_DELTA = 0.3
MAX_PITCH = 6.5
# Highest voiced log-F0 the decoder renders: the Nyquist frequency of its 24 kHz grid.
MAX_LOG_F0 = math.log(DEFAULT_SAMPLING_RATE / 2)
_VOICED_NOISE_RATIO = 0.1


def _require(condition: bool, detail: str) -> None:
    """Raise `IncompleteQueryError` with `detail` unless `condition` holds."""

    if not condition:
        raise IncompleteQueryError(detail)


def _is_finite_non_negative(value: float | None) -> bool:
    return value is not None and math.isfinite(value) and value >= 0.0


def validate_query(query: AudioQuery) -> None:
    """Check every global parameter and mora of `query`.

    Raises:
        IncompleteQueryError: On the first malformed or out-of-range value.
    """

    _require(
        math.isfinite(query.speed_scale) and query.speed_scale > 0.0,
        f"`speed_scale` must be positive, got {query.speed_scale}.",
    )
    _require(math.isfinite(query.pitch_scale), "`pitch_scale` must be finite.")
    _require(
        _is_finite_non_negative(query.intonation_scale),
        f"`intonation_scale` must be non-negative, got {query.intonation_scale}.",
    )
    _require(
        _is_finite_non_negative(query.volume_scale),
        f"`volume_scale` must be non-negative, got {query.volume_scale}.",
    )
    _require(
        _is_finite_non_negative(query.pre_phoneme_length),
        f"`pre_phoneme_length` must be non-negative, got {query.pre_phoneme_length}.",
    )
    _require(
        _is_finite_non_negative(query.post_phoneme_length),
        f"`post_phoneme_length` must be non-negative, got {query.post_phoneme_length}.",
    )
    _require(
        isinstance(query.output_sampling_rate, int) and query.output_sampling_rate > 0,
        f"`output_sampling_rate` must be a positive integer, got {query.output_sampling_rate}.",
    )

    total_mora_length = 0.0
    mora_count = 0
    for phrase_index, phrase in enumerate(query.accent_phrases):
        location = f"accent phrase {phrase_index}"
        _require(bool(phrase.moras), f"{location} has no moras.")
        _require(
            1 <= phrase.accent <= len(phrase.moras),
            f"{location} accent {phrase.accent} is outside 1..{len(phrase.moras)}.",
        )
        for mora_index, mora in enumerate(phrase.moras):
            _validate_mora(mora, f"{location} mora {mora_index}")
            total_mora_length += mora.duration
            mora_count += 1
        if phrase.pause_mora is not None:
            _validate_mora(phrase.pause_mora, f"{location} pause")

    _require(
        mora_count == 0 or total_mora_length > 0.0,
        "Audio query moras carry no durations; predict prosody before decoding.",
    )


def _validate_mora(mora: Mora, location: str) -> None:
    """Check phoneme identities, lengths, and pitch of one mora."""

    _require(mora.vowel in PHONEME_INDEX, f"{location} has unknown vowel `{mora.vowel}`.")
    _require(
        _is_finite_non_negative(mora.vowel_length),
        f"{location} has invalid vowel length {mora.vowel_length}.",
    )
    _require(
        _is_finite_non_negative(mora.pitch),
        f"{location} has invalid pitch {mora.pitch}.",
    )
    if mora.consonant is None:
        _require(
            mora.consonant_length is None,
            f"{location} has a consonant length but no consonant.",
        )
        return
    _require(
        mora.consonant in PHONEME_INDEX,
        f"{location} has unknown consonant `{mora.consonant}`.",
    )
    _require(
        _is_finite_non_negative(mora.consonant_length),
        f"{location} has invalid consonant length {mora.consonant_length}.",
    )


def apply_interrogative_upspeak(
    accent_phrases: Sequence[AccentPhrase],
) -> list[AccentPhrase]:
    """Append a rising mora to interrogative phrases that end voiced."""

    adjusted: list[AccentPhrase] = []
    for phrase in accent_phrases:
        last = phrase.moras[-1] if phrase.moras else None
        if not phrase.is_interrogative or last is None or last.pitch <= 0.0:
            adjusted.append(phrase)
            continue
        rising = Mora(
            text=MORA_TEXT_BY_PHONEMES.get((None, last.vowel), last.text),
            vowel=last.vowel,
            vowel_length=UPSPEAK_LENGTH,
            pitch=min(last.pitch + UPSPEAK_PITCH_DELTA, MAX_PITCH),
        )
        adjusted.append(replace(phrase, moras=phrase.moras + (rising,)))
    return adjusted


class WaveformStage:
    """Decode audio queries into sample arrays for a target style."""

    def __init__(self, registry: ModelRegistry, backend: ExecutionBackend) -> None:
        self._registry = registry
        self._backend = backend

    def decode(
        self,
        query: AudioQuery,
        style_id: StyleId,
        options: SynthesisOptions | None = None,
    ) -> np.ndarray:
        """Render `query` with `style_id`.

        Returns:
            `float32` samples at `query.output_sampling_rate`, shaped `(n,)`,
            or `(n, 2)` when `query.output_stereo` is set.

        Raises:
            StyleNotFoundError: If no loaded model provides `style_id`.
            IncompleteQueryError: If the query is malformed or out of range.
        """

        resolved_options = options if options is not None else SynthesisOptions()
        weights = self._registry.resolve_style(style_id).weights
        validate_query(query)

        phrases: Sequence[AccentPhrase] = query.accent_phrases
        if resolved_options.enable_interrogative_upspeak:
            phrases = apply_interrogative_upspeak(phrases)

        phonemes, lengths, pitches = self._flatten(phrases, query)
        frame_counts = [round(length * FRAME_RATE) for length in lengths]
        voice = self._render(weights, phonemes, pitches, frame_counts)

        if query.output_sampling_rate != DEFAULT_SAMPLING_RATE and voice.numel() > 0:
            target_length = round(
                voice.numel() * query.output_sampling_rate / DEFAULT_SAMPLING_RATE
            )
            voice = F.interpolate(
                voice.view(1, 1, -1),
                size=max(1, target_length),
                mode="linear",
                align_corners=False,
            ).view(-1)
        voice = voice * query.volume_scale

        samples = voice.cpu().numpy().astype(np.float32)
        leading = np.zeros(
            round(query.pre_phoneme_length * query.output_sampling_rate), dtype=np.float32
        )
        trailing = np.zeros(
            round(query.post_phoneme_length * query.output_sampling_rate), dtype=np.float32
        )
        samples = np.concatenate([leading, samples, trailing])
        if query.output_stereo:
            samples = np.stack([samples, samples], axis=1)
        return samples

    def _flatten(
        self, phrases: Sequence[AccentPhrase], query: AudioQuery
    ) -> tuple[list[str], list[float], list[float]]:
        """Expand phrases into per-phoneme (phoneme, length, pitch) sequences."""

        phonemes: list[str] = []
        lengths: list[float] = []
        pitches: list[float] = []
        for phrase in phrases:
            for mora in phrase.moras:
                pitch = 0.0 if is_unvoiced(mora.vowel) else mora.pitch
                if mora.consonant is not None:
                    phonemes.append(mora.consonant)
                    lengths.append((mora.consonant_length or 0.0) / query.speed_scale)
                    pitches.append(pitch)
                phonemes.append(mora.vowel)
                lengths.append(mora.vowel_length / query.speed_scale)
                pitches.append(pitch)
            if phrase.pause_mora is not None:
                phonemes.append(PAUSE)
                lengths.append(phrase.pause_mora.vowel_length / query.speed_scale)
                pitches.append(0.0)

        try:
            scale = 2.0**query.pitch_scale
        except OverflowError as exc:
            raise IncompleteQueryError(
                f"`pitch_scale` {query.pitch_scale} is out of range."
            ) from exc
        voiced = [pitch * scale for pitch in pitches if pitch > 0.0]
        if voiced:
            mean = sum(voiced) / len(voiced)
            pitches = [
                (pitch * scale - mean) * query.intonation_scale + mean if pitch > 0.0 else 0.0
                for pitch in pitches
            ]
        _require(
            all(pitch < MAX_LOG_F0 for pitch in pitches),
            f"Scaled pitch exceeds {MAX_LOG_F0:.2f} (log-F0 of the Nyquist frequency); "
            "lower `pitch_scale` or `intonation_scale`.",
        )
        return phonemes, lengths, pitches

    def _render(
        self,
        weights: StyleWeights,
        phonemes: list[str],
        pitches: list[float],
        frame_counts: list[int],
    ) -> torch.Tensor:
        """Render frame-level parameters into a 24 kHz sample tensor."""

        frame_ids = [
            PHONEME_INDEX[phoneme]
            for phoneme, count in zip(phonemes, frame_counts)
            for _ in range(count)
        ]
        frame_pitches = [
            pitch for pitch, count in zip(pitches, frame_counts) for _ in range(count)
        ]
        if not frame_ids:
            return self._backend.tensor([])

        ids = self._backend.tensor(frame_ids, torch.long)
        log_f0 = self._backend.tensor(frame_pitches)
        harmonics = weights.harmonic_count
        with torch.no_grad():
            embedded = weights.phoneme_embedding[ids]
            audible = (ids != PHONEME_INDEX[PAUSE]).to(torch.float32)
            amplitudes = F.softplus(embedded @ weights.harmonic_projection + weights.timbre)
            amplitudes = amplitudes * audible.unsqueeze(1) / harmonics
            noise_level = torch.sigmoid(embedded @ weights.noise_projection) * audible * 0.1
            f0 = torch.where(log_f0 > 0.0, torch.exp(log_f0), torch.zeros_like(log_f0))

            f0 = f0.repeat_interleave(HOP_LENGTH)
            amplitudes = amplitudes.repeat_interleave(HOP_LENGTH, dim=0)
            noise_level = noise_level.repeat_interleave(HOP_LENGTH)

            phase = torch.cumsum(2.0 * math.pi * f0 / DEFAULT_SAMPLING_RATE, dim=0)
            orders = self._backend.tensor(range(1, harmonics + 1))
            below_nyquist = (f0.unsqueeze(1) * orders < DEFAULT_SAMPLING_RATE / 2).to(
                torch.float32
            )
            voiced = (f0 > 0.0).to(torch.float32)
            harmonic = (
                amplitudes * torch.sin(phase.unsqueeze(1) * orders) * below_nyquist
            ).sum(dim=1) * voiced

            generator = torch.Generator(device="cpu").manual_seed(NOISE_SEED)
            noise = torch.randn(f0.numel(), generator=generator).to(self._backend.device)
            noise_gain = voiced * _VOICED_NOISE_RATIO + (1.0 - voiced)
            return harmonic + noise * noise_level * noise_gain
