"""Core datatypes shared across moravoice modules.

Responsibilities:
- Represent immutable prosodic records exchanged between pipeline stages.
- Represent voice model metadata (speakers and styles) exposed to callers.

Key types:
- `Mora`, `AccentPhrase`, `AudioQuery`, `StyleMeta`, `SpeakerMeta`,
  `SynthesisOptions`, and `AccelerationMode`.

All records are frozen; stages derive new records with `dataclasses.replace`
instead of mutating their inputs.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import NewType

StyleId = NewType("StyleId", int)
VoiceModelId = NewType("VoiceModelId", str)

DEFAULT_SAMPLING_RATE = 24000


class AccelerationMode(str, Enum):
    """Requested execution backend for a synthesizer instance."""

    AUTO = "AUTO"
    CPU = "CPU"
    GPU = "GPU"


@dataclass(frozen=True, slots=True)
class Mora:
    """Smallest timed prosodic unit.

    Attributes:
        text: Kana text this mora was read from.
        vowel: Vowel phoneme (uppercase vowels are devoiced).
        vowel_length: Vowel duration in seconds.
        pitch: Log-F0 pitch value; `0.0` denotes an unvoiced mora.
        consonant: Optional leading consonant phoneme.
        consonant_length: Consonant duration in seconds, present iff `consonant` is.
    """

    text: str
    vowel: str
    vowel_length: float = 0.0
    pitch: float = 0.0
    consonant: str | None = None
    consonant_length: float | None = None

    @property
    def duration(self) -> float:
        """Total mora duration in seconds."""

        return (self.consonant_length or 0.0) + self.vowel_length


@dataclass(frozen=True, slots=True)
class AccentPhrase:
    """Prosodic group of moras sharing one accent nucleus.

    Attributes:
        moras: Ordered moras of the phrase.
        accent: 1-based position of the accented mora.
        pause_mora: Optional trailing pause rendered after the phrase.
        is_interrogative: Whether the phrase ends with a question intonation.
    """

    moras: tuple[Mora, ...]
    accent: int
    pause_mora: Mora | None = None
    is_interrogative: bool = False


@dataclass(frozen=True, slots=True)
class AudioQuery:
    """Complete, self-sufficient synthesis request."""

    accent_phrases: tuple[AccentPhrase, ...]
    speed_scale: float = 1.0
    pitch_scale: float = 0.0
    intonation_scale: float = 1.0
    volume_scale: float = 1.0
    pre_phoneme_length: float = 0.1
    post_phoneme_length: float = 0.1
    output_sampling_rate: int = DEFAULT_SAMPLING_RATE
    output_stereo: bool = False
    kana: str | None = None


@dataclass(frozen=True, slots=True)
class StyleMeta:
    """Metadata for one synthesizable style.

    Attributes:
        id: Process-wide unique style id.
        name: Human-readable style label.
        type: Style type tag (`talk` for regular speech).
    """

    id: StyleId
    name: str
    type: str = "talk"


@dataclass(frozen=True, slots=True)
class SpeakerMeta:
    """Metadata for one speaker and the styles it provides."""

    name: str
    speaker_uuid: str
    styles: tuple[StyleMeta, ...]
    version: str = "0.0.0"


@dataclass(frozen=True, slots=True)
class SynthesisOptions:
    """Options applied when decoding an audio query."""

    enable_interrogative_upspeak: bool = True

