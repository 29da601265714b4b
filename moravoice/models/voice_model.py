"""Voice model bundles and per-style acoustic weights.

Responsibilities:
- Hold the immutable weights of the duration, pitch, and decoder sub-models.
- Validate that a voice model declares unique styles backed by weights.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Mapping

import torch

from ..errors import InvalidModelError
from ..text.phonemes import PHONEMES
from .datatypes import SpeakerMeta, StyleId, StyleMeta, VoiceModelId

PITCH_FEATURE_COUNT = 5


@dataclass(frozen=True)
class StyleWeights:
    """Acoustic sub-model weights bound to one style.

    Shapes use `P` phonemes, `H` hidden units, and `K` decoder harmonics.

    Attributes:
        phoneme_embedding: `(P, H)` phoneme embedding table shared by all stages.
        duration_kernel: `(H, H, 3)` context convolution of the duration model.
        duration_bias: `(H,)` context convolution bias.
        duration_projection: `(H,)` output projection to one length per phoneme.
        duration_offset: `()` output offset.
        pitch_features: `(5, H)` projection of accent/phrase markers and mora length.
        pitch_kernel: `(H, H, 3)` context convolution of the pitch model.
        pitch_bias: `(H,)` context convolution bias.
        pitch_projection: `(H,)` output projection to one pitch per mora.
        pitch_offset: `()` output offset.
        harmonic_projection: `(H, K)` projection to harmonic amplitudes.
        timbre: `(K,)` style-specific harmonic tilt.
        noise_projection: `(H,)` projection to aperiodic amplitude.
    """

    phoneme_embedding: torch.Tensor
    duration_kernel: torch.Tensor
    duration_bias: torch.Tensor
    duration_projection: torch.Tensor
    duration_offset: torch.Tensor
    pitch_features: torch.Tensor
    pitch_kernel: torch.Tensor
    pitch_bias: torch.Tensor
    pitch_projection: torch.Tensor
    pitch_offset: torch.Tensor
    harmonic_projection: torch.Tensor
    timbre: torch.Tensor
    noise_projection: torch.Tensor

    @property
    def hidden_size(self) -> int:
        return int(self.phoneme_embedding.shape[1])

    @property
    def harmonic_count(self) -> int:
        return int(self.harmonic_projection.shape[1])

    def tensors(self) -> dict[str, torch.Tensor]:
        """Return all weight tensors keyed by field name."""

        return {item.name: getattr(self, item.name) for item in fields(self)}

    def to(self, device: torch.device) -> StyleWeights:
        """Return a copy with every tensor placed on `device`."""

        return StyleWeights(
            **{name: tensor.to(device) for name, tensor in self.tensors().items()}
        )

    @classmethod
    def from_tensors(cls, tensors: Mapping[str, torch.Tensor]) -> StyleWeights:
        """Build validated float32 weights from a name -> tensor mapping."""

        expected = {item.name for item in fields(cls)}
        missing = sorted(expected.difference(tensors))
        if missing:
            raise InvalidModelError(f"Style weights are missing tensor(s): {', '.join(missing)}.")
        weights = cls(
            **{
                name: torch.as_tensor(tensors[name], dtype=torch.float32)
                for name in sorted(expected)
            }
        )
        weights.validate()
        return weights

    def validate(self) -> None:
        """Check tensor shapes against each other and the phoneme inventory."""

        if self.phoneme_embedding.dim() != 2:
            raise InvalidModelError("`phoneme_embedding` must be a 2-D tensor.")
        hidden = self.hidden_size
        if self.harmonic_projection.dim() != 2:
            raise InvalidModelError("`harmonic_projection` must be a 2-D tensor.")
        harmonics = self.harmonic_count
        expected_shapes = {
            "phoneme_embedding": (len(PHONEMES), hidden),
            "duration_kernel": (hidden, hidden, 3),
            "duration_bias": (hidden,),
            "duration_projection": (hidden,),
            "duration_offset": (),
            "pitch_features": (PITCH_FEATURE_COUNT, hidden),
            "pitch_kernel": (hidden, hidden, 3),
            "pitch_bias": (hidden,),
            "pitch_projection": (hidden,),
            "pitch_offset": (),
            "harmonic_projection": (hidden, harmonics),
            "timbre": (harmonics,),
            "noise_projection": (hidden,),
        }
        for name, shape in expected_shapes.items():
            actual = tuple(getattr(self, name).shape)
            if actual != shape:
                raise InvalidModelError(
                    f"Style weight `{name}` has shape {actual}; expected {shape}."
                )


@dataclass(frozen=True)
class VoiceModel:
    """Immutable voice model: identity, speaker metadata, and per-style weights."""

    id: VoiceModelId
    speakers: tuple[SpeakerMeta, ...]
    weights: Mapping[StyleId, StyleWeights]

    def __post_init__(self) -> None:
        """Reject duplicate style ids and styles without weights."""

        if not str(self.id).strip():
            raise InvalidModelError("Voice model id must be non-empty.")
        seen: set[int] = set()
        for style in self.style_metas:
            if style.id < 0:
                raise InvalidModelError(
                    f"Voice model `{self.id}` declares negative style id `{style.id}`."
                )
            if style.id in seen:
                raise InvalidModelError(
                    f"Voice model `{self.id}` declares style `{style.id}` more than once."
                )
            seen.add(style.id)
            if style.id not in self.weights:
                raise InvalidModelError(
                    f"Voice model `{self.id}` has no weights for style `{style.id}`."
                )
        if not seen:
            raise InvalidModelError(f"Voice model `{self.id}` declares no styles.")
        undeclared = sorted(set(self.weights).difference(seen))
        if undeclared:
            raise InvalidModelError(
                f"Voice model `{self.id}` has weights for undeclared style(s): {undeclared}."
            )

    @property
    def style_metas(self) -> tuple[StyleMeta, ...]:
        """All styles of all speakers, in declaration order."""

        return tuple(style for speaker in self.speakers for style in speaker.styles)

    @classmethod
    def from_path(cls, path: Path) -> VoiceModel:
        """Read a voice model bundle from disk."""

        from ..io.bundle import read_voice_model

        return read_voice_model(path)
