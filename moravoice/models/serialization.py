"""JSON payload conversion for accent phrases and audio queries.

Responsibilities:
- Convert prosodic records to deterministic JSON-compatible mappings.
- Rebuild records from payloads with `IncompleteQueryError` on malformed input.
"""

from __future__ import annotations

from typing import Any, Mapping

from ..errors import IncompleteQueryError
from .datatypes import AccentPhrase, AudioQuery, Mora


def mora_payload(mora: Mora) -> dict[str, Any]:
    """Serialize one mora."""

    return {
        "text": mora.text,
        "consonant": mora.consonant,
        "consonant_length": mora.consonant_length,
        "vowel": mora.vowel,
        "vowel_length": mora.vowel_length,
        "pitch": mora.pitch,
    }


def accent_phrase_payload(phrase: AccentPhrase) -> dict[str, Any]:
    """Serialize one accent phrase."""

    return {
        "moras": [mora_payload(mora) for mora in phrase.moras],
        "accent": phrase.accent,
        "pause_mora": mora_payload(phrase.pause_mora) if phrase.pause_mora else None,
        "is_interrogative": phrase.is_interrogative,
    }


def audio_query_payload(query: AudioQuery) -> dict[str, Any]:
    """Serialize an audio query."""

    return {
        "accent_phrases": [accent_phrase_payload(phrase) for phrase in query.accent_phrases],
        "speed_scale": query.speed_scale,
        "pitch_scale": query.pitch_scale,
        "intonation_scale": query.intonation_scale,
        "volume_scale": query.volume_scale,
        "pre_phoneme_length": query.pre_phoneme_length,
        "post_phoneme_length": query.post_phoneme_length,
        "output_sampling_rate": query.output_sampling_rate,
        "output_stereo": query.output_stereo,
        "kana": query.kana,
    }


def mora_from_payload(payload: Mapping[str, Any]) -> Mora:
    """Rebuild one mora from its payload."""

    consonant = payload.get("consonant")
    consonant_length = payload.get("consonant_length")
    return Mora(
        text=str(payload["text"]),
        vowel=str(payload["vowel"]),
        vowel_length=float(payload["vowel_length"]),
        pitch=float(payload["pitch"]),
        consonant=None if consonant is None else str(consonant),
        consonant_length=None if consonant_length is None else float(consonant_length),
    )


def accent_phrase_from_payload(payload: Mapping[str, Any]) -> AccentPhrase:
    """Rebuild one accent phrase from its payload."""

    pause = payload.get("pause_mora")
    return AccentPhrase(
        moras=tuple(mora_from_payload(mora) for mora in payload["moras"]),
        accent=int(payload["accent"]),
        pause_mora=None if pause is None else mora_from_payload(pause),
        is_interrogative=bool(payload.get("is_interrogative", False)),
    )


def audio_query_from_payload(payload: Mapping[str, Any]) -> AudioQuery:
    """Rebuild an audio query from its payload.

    Raises:
        IncompleteQueryError: If required fields are missing or mistyped.
    """

    defaults = AudioQuery(accent_phrases=())
    try:
        kana = payload.get("kana")
        return AudioQuery(
            accent_phrases=tuple(
                accent_phrase_from_payload(phrase) for phrase in payload["accent_phrases"]
            ),
            speed_scale=float(payload.get("speed_scale", defaults.speed_scale)),
            pitch_scale=float(payload.get("pitch_scale", defaults.pitch_scale)),
            intonation_scale=float(payload.get("intonation_scale", defaults.intonation_scale)),
            volume_scale=float(payload.get("volume_scale", defaults.volume_scale)),
            pre_phoneme_length=float(
                payload.get("pre_phoneme_length", defaults.pre_phoneme_length)
            ),
            post_phoneme_length=float(
                payload.get("post_phoneme_length", defaults.post_phoneme_length)
            ),
            output_sampling_rate=int(
                payload.get("output_sampling_rate", defaults.output_sampling_rate)
            ),
            output_stereo=bool(payload.get("output_stereo", defaults.output_stereo)),
            kana=None if kana is None else str(kana),
        )
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise IncompleteQueryError(f"Malformed audio query payload: {exc}") from exc
