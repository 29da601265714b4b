"""Duration and pitch prediction for accent phrase sequences.

Responsibilities:
- Predict consonant/vowel/pause lengths with a style's duration sub-model.
- Predict per-mora pitch with a style's pitch sub-model, conditioned on
  accent markers and current mora durations.
- Return fresh accent phrase sequences and never touch the input sequence.

Both sub-models embed their input sequence, mix neighbor context with one
width-3 convolution, and project each position to a scalar. The sequences are
padded with a leading and trailing pause so edge positions also see context.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace

import torch
import torch.nn.functional as F

from ..backend import ExecutionBackend
from ..errors import IncompleteQueryError
from ..models.datatypes import AccentPhrase, Mora, StyleId
from ..models.voice_model import StyleWeights
from ..registry import ModelRegistry
from ..text.phonemes import PAUSE, PHONEME_INDEX, is_unvoiced

MIN_PHONEME_LENGTH = 0.01
PHONEME_LENGTH_RANGE = 0.2
PITCH_FLOOR = 5.0
PITCH_RANGE = 1.0
_DURATION_FEATURE_SCALE = 10.0


def _phoneme_id(phoneme: str) -> int:
    """Return the inventory index of a phoneme."""

    try:
        return PHONEME_INDEX[phoneme]
    except KeyError as exc:
        raise IncompleteQueryError(f"Unknown phoneme `{phoneme}`.") from exc


def _context(hidden: torch.Tensor, kernel: torch.Tensor, bias: torch.Tensor) -> torch.Tensor:
    """Mix each position with its neighbors: `(L, H)` -> `(L, H)`."""

    mixed = F.conv1d(hidden.T.unsqueeze(0), kernel, bias, padding=1)
    return torch.tanh(mixed.squeeze(0).T)


class ProsodyStage:
    """Re-predict mora durations and pitches for a target style."""

    def __init__(self, registry: ModelRegistry, backend: ExecutionBackend) -> None:
        self._registry = registry
        self._backend = backend

    def predict_duration(
        self, accent_phrases: Sequence[AccentPhrase], style_id: StyleId
    ) -> list[AccentPhrase]:
        """Return phrases with consonant, vowel, and pause lengths re-predicted.

        Pitch values are carried over unchanged.
        """

        weights = self._registry.resolve_style(style_id).weights
        phrases = list(accent_phrases)
        if not phrases:
            return []

        phonemes = [PAUSE]
        for phrase in phrases:
            for mora in phrase.moras:
                if mora.consonant is not None:
                    phonemes.append(mora.consonant)
                phonemes.append(mora.vowel)
            if phrase.pause_mora is not None:
                phonemes.append(PAUSE)
        phonemes.append(PAUSE)

        lengths = self._run_duration(weights, phonemes)

        cursor = 1
        updated: list[AccentPhrase] = []
        for phrase in phrases:
            moras: list[Mora] = []
            for mora in phrase.moras:
                consonant_length = None
                if mora.consonant is not None:
                    consonant_length = lengths[cursor]
                    cursor += 1
                moras.append(
                    replace(
                        mora,
                        consonant_length=consonant_length,
                        vowel_length=lengths[cursor],
                    )
                )
                cursor += 1
            pause = phrase.pause_mora
            if pause is not None:
                pause = replace(pause, vowel_length=lengths[cursor], pitch=0.0)
                cursor += 1
            updated.append(replace(phrase, moras=tuple(moras), pause_mora=pause))
        return updated

    def predict_pitch(
        self, accent_phrases: Sequence[AccentPhrase], style_id: StyleId
    ) -> list[AccentPhrase]:
        """Return phrases with mora pitches re-predicted; durations are kept.

        Unvoiced moras receive pitch `0.0`.
        """

        weights = self._registry.resolve_style(style_id).weights
        phrases = list(accent_phrases)
        if not phrases:
            return []

        pause_entry = (PAUSE, None, (0.0, 0.0, 0.0, 0.0, 0.0))
        entries: list[tuple[str, str | None, tuple[float, ...]]] = [pause_entry]
        for phrase in phrases:
            accent_start = 0 if phrase.accent == 1 else 1
            last_index = len(phrase.moras) - 1
            for index, mora in enumerate(phrase.moras):
                features = (
                    1.0 if index == accent_start else 0.0,
                    1.0 if index == phrase.accent - 1 else 0.0,
                    1.0 if index == 0 else 0.0,
                    1.0 if index == last_index else 0.0,
                    mora.duration * _DURATION_FEATURE_SCALE,
                )
                entries.append((mora.vowel, mora.consonant, features))
            if phrase.pause_mora is not None:
                entries.append(pause_entry)
        entries.append(pause_entry)

        pitches = self._run_pitch(weights, entries)

        cursor = 1
        updated: list[AccentPhrase] = []
        for phrase in phrases:
            moras: list[Mora] = []
            for mora in phrase.moras:
                pitch = 0.0 if is_unvoiced(mora.vowel) else pitches[cursor]
                moras.append(replace(mora, pitch=pitch))
                cursor += 1
            if phrase.pause_mora is not None:
                cursor += 1
            updated.append(replace(phrase, moras=tuple(moras)))
        return updated

    def predict_both(
        self, accent_phrases: Sequence[AccentPhrase], style_id: StyleId
    ) -> list[AccentPhrase]:
        """Predict durations, then pitches conditioned on the new durations."""

        with_lengths = self.predict_duration(accent_phrases, style_id)
        return self.predict_pitch(with_lengths, style_id)

    def _run_duration(self, weights: StyleWeights, phonemes: list[str]) -> list[float]:
        """Run the duration sub-model over a padded phoneme sequence."""

        ids = self._backend.tensor([_phoneme_id(phoneme) for phoneme in phonemes], torch.long)
        with torch.no_grad():
            hidden = _context(
                weights.phoneme_embedding[ids],
                weights.duration_kernel,
                weights.duration_bias,
            )
            logits = hidden @ weights.duration_projection + weights.duration_offset
            lengths = MIN_PHONEME_LENGTH + PHONEME_LENGTH_RANGE * torch.sigmoid(logits)
        return lengths.cpu().tolist()

    def _run_pitch(
        self,
        weights: StyleWeights,
        entries: list[tuple[str, str | None, tuple[float, ...]]],
    ) -> list[float]:
        """Run the pitch sub-model over a padded mora sequence."""

        vowel_ids = self._backend.tensor(
            [_phoneme_id(vowel) for vowel, _, _ in entries], torch.long
        )
        consonant_ids = self._backend.tensor(
            [_phoneme_id(consonant) if consonant else 0 for _, consonant, _ in entries],
            torch.long,
        )
        has_consonant = self._backend.tensor(
            [[1.0] if consonant else [0.0] for _, consonant, _ in entries]
        )
        features = self._backend.tensor([feature for _, _, feature in entries])
        with torch.no_grad():
            embedded = (
                weights.phoneme_embedding[vowel_ids]
                + weights.phoneme_embedding[consonant_ids] * has_consonant
                + features @ weights.pitch_features
            )
            hidden = _context(embedded, weights.pitch_kernel, weights.pitch_bias)
            logits = hidden @ weights.pitch_projection + weights.pitch_offset
            pitches = PITCH_FLOOR + PITCH_RANGE * torch.sigmoid(logits)
        return pitches.cpu().tolist()
