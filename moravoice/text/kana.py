"""AquesTalk-like kana notation parser and renderer.

Responsibilities:
- Parse kana notation into zero-prosody accent phrases.
- Render accent phrases back into canonical kana notation.

Notation rules:
- `/` separates accent phrases, `、` separates them with a pause.
- Each phrase carries exactly one `'` placed right after its accented mora.
- `_` before a mora devoices its vowel.
- A trailing `？` marks an interrogative phrase.
"""

from __future__ import annotations

from ..errors import KanaParseError
from ..models.datatypes import AccentPhrase, Mora
from .phonemes import (
    LONG_VOWEL_MARK,
    MORA_TABLE,
    PAUSE,
    devoice,
    voice,
)

PHRASE_DELIMITER = "/"
PAUSE_DELIMITER = "、"
ACCENT_MARK = "'"
DEVOICE_MARK = "_"
INTERROGATIVE_MARK = "？"


def pause_mora() -> Mora:
    """Return a fresh zero-length pause mora."""

    return Mora(text=PAUSE_DELIMITER, vowel=PAUSE)


def parse_kana(text: str) -> list[AccentPhrase]:
    """Parse kana notation into accent phrases with zero-valued prosody.

    Raises:
        KanaParseError: If the text violates the notation rules.
    """

    if not text:
        raise KanaParseError("Kana text is empty.")

    phrases: list[AccentPhrase] = []
    phrase_start = 0
    for index, character in enumerate(text):
        if character not in (PHRASE_DELIMITER, PAUSE_DELIMITER):
            continue
        phrase = _parse_phrase(text[phrase_start:index], position=phrase_start)
        if character == PAUSE_DELIMITER:
            phrase = AccentPhrase(
                moras=phrase.moras,
                accent=phrase.accent,
                pause_mora=pause_mora(),
                is_interrogative=phrase.is_interrogative,
            )
        phrases.append(phrase)
        phrase_start = index + 1
    phrases.append(_parse_phrase(text[phrase_start:], position=phrase_start))
    return phrases


def _parse_phrase(phrase_text: str, position: int) -> AccentPhrase:
    """Parse one accent phrase; `position` is its offset in the full text."""

    if not phrase_text:
        raise KanaParseError(
            f"Empty accent phrase at position {position}.",
            hint="Remove duplicated `/` or `、` delimiters.",
        )

    moras: list[Mora] = []
    accent: int | None = None
    devoice_next = False
    is_interrogative = False
    index = 0
    while index < len(phrase_text):
        character = phrase_text[index]
        location = position + index
        if is_interrogative:
            raise KanaParseError(
                f"`{INTERROGATIVE_MARK}` must end its accent phrase (position {location})."
            )
        if character == ACCENT_MARK:
            if not moras:
                raise KanaParseError(
                    f"Accent mark at position {location} does not follow a mora."
                )
            if accent is not None:
                raise KanaParseError(
                    f"Accent phrase at position {position} has more than one accent mark."
                )
            accent = len(moras)
            index += 1
            continue
        if character == DEVOICE_MARK:
            if devoice_next:
                raise KanaParseError(f"Repeated devoicing mark at position {location}.")
            devoice_next = True
            index += 1
            continue
        if character == INTERROGATIVE_MARK:
            is_interrogative = True
            index += 1
            continue

        mora, consumed = _read_mora(phrase_text, index, moras, location)
        if devoice_next:
            devoiced = devoice(mora.vowel)
            if devoiced == mora.vowel:
                raise KanaParseError(
                    f"Mora `{mora.text}` at position {location} cannot be devoiced."
                )
            mora = Mora(
                text=mora.text,
                vowel=devoiced,
                consonant=mora.consonant,
                consonant_length=mora.consonant_length,
            )
            devoice_next = False
        moras.append(mora)
        index += consumed

    if devoice_next:
        raise KanaParseError(
            f"Devoicing mark at the end of accent phrase at position {position}."
        )
    if not moras:
        raise KanaParseError(f"Accent phrase at position {position} has no moras.")
    if accent is None:
        raise KanaParseError(
            f"Accent phrase at position {position} has no accent mark.",
            hint=f"Place `{ACCENT_MARK}` right after the accented mora.",
        )
    return AccentPhrase(moras=tuple(moras), accent=accent, is_interrogative=is_interrogative)


def _read_mora(
    phrase_text: str, index: int, previous: list[Mora], location: int
) -> tuple[Mora, int]:
    """Read the longest mora spelling at `index` and return it with its width."""

    if phrase_text[index] == LONG_VOWEL_MARK:
        if not previous or voice(previous[-1].vowel) not in {"a", "i", "u", "e", "o"}:
            raise KanaParseError(
                f"Long vowel mark at position {location} does not follow a vowel."
            )
        return Mora(text=LONG_VOWEL_MARK, vowel=voice(previous[-1].vowel)), 1

    for width in (2, 1):
        spelling = phrase_text[index : index + width]
        if len(spelling) == width and spelling in MORA_TABLE:
            consonant, vowel = MORA_TABLE[spelling]
            return (
                Mora(
                    text=spelling,
                    vowel=vowel,
                    consonant=consonant,
                    consonant_length=0.0 if consonant is not None else None,
                ),
                width,
            )
    raise KanaParseError(
        f"Unknown kana `{phrase_text[index]}` at position {location}.",
        hint="Kana notation accepts katakana plus `/`, `、`, `'`, `_`, and `？`.",
    )


def create_kana(accent_phrases: list[AccentPhrase] | tuple[AccentPhrase, ...]) -> str:
    """Render accent phrases as canonical kana notation."""

    parts: list[str] = []
    for phrase_index, phrase in enumerate(accent_phrases):
        for mora_index, mora in enumerate(phrase.moras):
            if mora.vowel in {"A", "I", "U", "E", "O"}:
                parts.append(DEVOICE_MARK)
            parts.append(mora.text)
            if mora_index + 1 == phrase.accent:
                parts.append(ACCENT_MARK)
        if phrase.is_interrogative:
            parts.append(INTERROGATIVE_MARK)
        if phrase_index + 1 < len(accent_phrases):
            parts.append(PAUSE_DELIMITER if phrase.pause_mora is not None else PHRASE_DELIMITER)
    return "".join(parts)
