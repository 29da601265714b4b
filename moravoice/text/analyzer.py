"""Text analyzers producing zero-prosody accent phrase skeletons.

Responsibilities:
- Define the analyzer protocol consumed by the synthesis pipeline.
- Provide a kana-notation analyzer and a user-dictionary driven analyzer.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Protocol

from ..errors import KanaParseError, TextAnalysisError
from ..models.datatypes import AccentPhrase, Mora
from .kana import parse_kana, pause_mora
from .phonemes import LONG_VOWEL_MARK, MORA_TABLE, split_moras, to_katakana
from .user_dict import UserDict, UserDictWord, UserDictWordType

_PAUSE_PUNCTUATION = frozenset("、。,.!！")
_QUESTION_PUNCTUATION = frozenset("?？")


class TextAnalyzer(Protocol):
    """Protocol for text front-ends feeding the synthesis pipeline."""

    def analyze(self, text: str) -> list[AccentPhrase]:
        """Return accent phrases with zero-valued duration and pitch."""


class KanaTextAnalyzer:
    """Analyzer whose input text is already written in kana notation."""

    def analyze(self, text: str) -> list[AccentPhrase]:
        """Parse kana notation into accent phrases."""

        return parse_kana(text)


class DictionaryTextAnalyzer:
    """Analyzer matching user dictionary surfaces and plain kana runs.

    Dictionary words become one accent phrase each (suffix words extend the
    preceding phrase). Unmatched kana runs become flat accent phrases.
    Whitespace separates phrases and punctuation inserts pauses.
    """

    def __init__(self, user_dict: UserDict | None = None) -> None:
        self._user_dict = user_dict if user_dict is not None else UserDict()

    def analyze(self, text: str) -> list[AccentPhrase]:
        """Analyze text into accent phrases.

        Raises:
            TextAnalysisError: If text contains characters with no known reading.
        """

        normalized = to_katakana(text)
        words = self._words_by_first_character()
        phrases: list[AccentPhrase] = []
        index = 0
        while index < len(normalized):
            character = normalized[index]
            if character.isspace():
                index += 1
                continue
            if character in _PAUSE_PUNCTUATION or character in _QUESTION_PUNCTUATION:
                if phrases:
                    phrases[-1] = replace(
                        phrases[-1],
                        pause_mora=pause_mora(),
                        is_interrogative=(
                            phrases[-1].is_interrogative or character in _QUESTION_PUNCTUATION
                        ),
                    )
                index += 1
                continue

            word = self._match_word(normalized, index, words)
            if word is not None:
                self._append_word(phrases, word)
                index += len(word.surface)
                continue

            run_end = self._kana_run_end(normalized, index, words)
            if run_end == index:
                raise TextAnalysisError(
                    f"No reading for character `{text[index]}` at position {index}.",
                    hint="Add the word to the user dictionary or write it in kana.",
                )
            moras = self._moras_for(normalized[index:run_end], position=index)
            phrases.append(AccentPhrase(moras=moras, accent=len(moras)))
            index = run_end

        if not phrases:
            raise TextAnalysisError("Text contains no pronounceable content.")
        if phrases[-1].pause_mora is not None:
            phrases[-1] = replace(phrases[-1], pause_mora=None)
        return phrases

    def _words_by_first_character(self) -> dict[str, list[UserDictWord]]:
        """Index dictionary words by the katakana form of their first character."""

        index: dict[str, list[UserDictWord]] = {}
        for word in self._user_dict.words.values():
            surface = to_katakana(word.surface)
            index.setdefault(surface[0], []).append(word)
        for candidates in index.values():
            candidates.sort(key=lambda word: (-len(word.surface), -word.priority))
        return index

    @staticmethod
    def _match_word(
        text: str, index: int, words: dict[str, list[UserDictWord]]
    ) -> UserDictWord | None:
        """Return the longest (then highest priority) word matching at `index`."""

        for word in words.get(text[index], ()):
            surface = to_katakana(word.surface)
            if text.startswith(surface, index):
                return word
        return None

    def _kana_run_end(
        self, text: str, index: int, words: dict[str, list[UserDictWord]]
    ) -> int:
        """Return the end of a kana run starting at `index`, stopping at dictionary words."""

        end = index
        while end < len(text):
            character = text[end]
            if character not in MORA_TABLE and character != LONG_VOWEL_MARK:
                break
            if end > index and self._match_word(text, end, words) is not None:
                break
            end += 1
        return end

    @staticmethod
    def _moras_for(katakana: str, position: int) -> tuple[Mora, ...]:
        """Convert a katakana run into zero-prosody moras."""

        phrases = parse_kana_run(katakana)
        if phrases is None:
            raise TextAnalysisError(
                f"Kana run `{katakana}` at position {position} cannot be split into moras."
            )
        return phrases

    def _append_word(self, phrases: list[AccentPhrase], word: UserDictWord) -> None:
        """Append a dictionary word as a new phrase or extend the last phrase for suffixes."""

        moras = parse_kana_run(word.pronunciation)
        if moras is None:
            raise TextAnalysisError(f"Word `{word.surface}` has an unreadable pronunciation.")
        if word.word_type is UserDictWordType.SUFFIX and phrases and phrases[-1].pause_mora is None:
            previous = phrases[-1]
            phrases[-1] = replace(previous, moras=previous.moras + moras)
            return
        accent = word.accent_type if word.accent_type > 0 else len(moras)
        phrases.append(AccentPhrase(moras=moras, accent=accent))


def parse_kana_run(katakana: str) -> tuple[Mora, ...] | None:
    """Convert plain katakana (no notation marks) into moras, or `None` if unreadable."""

    spellings = split_moras(katakana)
    if not spellings:
        return None
    try:
        phrase = parse_kana(f"{''.join(spellings[:1])}'{''.join(spellings[1:])}")[0]
    except KanaParseError:
        return None
    return phrase.moras
