"""User dictionary of surface forms with pronunciations and accent types.

Responsibilities:
- Validate user dictionary words at construction.
- Keep words keyed by UUID in insertion order.
- Persist dictionaries as deterministic JSON documents.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import json
from pathlib import Path
import threading
from typing import Any, Mapping
from uuid import UUID, uuid4

from ..errors import UserDictError
from .phonemes import split_moras

MIN_PRIORITY = 0
MAX_PRIORITY = 10


class UserDictWordType(str, Enum):
    """Part-of-speech category of a user dictionary word."""

    PROPER_NOUN = "PROPER_NOUN"
    COMMON_NOUN = "COMMON_NOUN"
    VERB = "VERB"
    ADJECTIVE = "ADJECTIVE"
    SUFFIX = "SUFFIX"


@dataclass(frozen=True, slots=True)
class UserDictWord:
    """One user dictionary entry.

    Attributes:
        surface: Written form matched in input text.
        pronunciation: Katakana reading of the surface.
        accent_type: Accented mora position (0 means flat).
        word_type: Part-of-speech category.
        priority: Match priority from 0 (lowest) to 10 (highest).
    """

    surface: str
    pronunciation: str
    accent_type: int = 0
    word_type: UserDictWordType = UserDictWordType.COMMON_NOUN
    priority: int = 5

    def __post_init__(self) -> None:
        """Validate word fields and raise `UserDictError` on invalid values."""

        if not self.surface.strip():
            raise UserDictError("User dictionary word surface must be non-empty.")
        moras = split_moras(self.pronunciation) if self.pronunciation else None
        if not moras:
            raise UserDictError(
                f"Pronunciation `{self.pronunciation}` is not valid katakana.",
                hint="Use katakana only, for example `コンニチワ`.",
            )
        if not MIN_PRIORITY <= self.priority <= MAX_PRIORITY:
            raise UserDictError(
                f"Priority {self.priority} is outside {MIN_PRIORITY}..{MAX_PRIORITY}."
            )
        if not 0 <= self.accent_type <= len(moras):
            raise UserDictError(
                f"Accent type {self.accent_type} is outside 0..{len(moras)} "
                f"for pronunciation `{self.pronunciation}`."
            )

    @property
    def mora_count(self) -> int:
        """Number of moras in the pronunciation."""

        return len(split_moras(self.pronunciation) or ())

    def to_payload(self) -> dict[str, Any]:
        """Serialize the word as a JSON-compatible mapping."""

        return {
            "surface": self.surface,
            "pronunciation": self.pronunciation,
            "accent_type": self.accent_type,
            "word_type": self.word_type.value,
            "priority": self.priority,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> UserDictWord:
        """Build a validated word from a JSON mapping."""

        try:
            return cls(
                surface=str(payload["surface"]),
                pronunciation=str(payload["pronunciation"]),
                accent_type=int(payload.get("accent_type", 0)),
                word_type=UserDictWordType(payload.get("word_type", "COMMON_NOUN")),
                priority=int(payload.get("priority", 5)),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise UserDictError(f"Invalid user dictionary word payload: {exc}") from exc


class UserDict:
    """Insertion-ordered user dictionary keyed by word UUID."""

    def __init__(self) -> None:
        self._words: dict[UUID, UserDictWord] = {}
        self._lock = threading.Lock()

    @property
    def words(self) -> dict[UUID, UserDictWord]:
        """Snapshot of all words in insertion order."""

        with self._lock:
            return dict(self._words)

    def add_word(self, word: UserDictWord) -> UUID:
        """Add a word and return its newly assigned UUID."""

        word_uuid = uuid4()
        with self._lock:
            self._words[word_uuid] = word
        return word_uuid

    def update_word(self, word_uuid: UUID, new_word: UserDictWord) -> None:
        """Replace the word stored under an existing UUID."""

        with self._lock:
            if word_uuid not in self._words:
                raise UserDictError(f"User dictionary has no word `{word_uuid}`.")
            self._words[word_uuid] = new_word

    def remove_word(self, word_uuid: UUID) -> UserDictWord:
        """Remove and return the word stored under a UUID."""

        with self._lock:
            if word_uuid not in self._words:
                raise UserDictError(f"User dictionary has no word `{word_uuid}`.")
            return self._words.pop(word_uuid)

    def import_dict(self, other: UserDict) -> None:
        """Copy every word of another dictionary, overwriting equal UUIDs."""

        incoming = other.words
        with self._lock:
            self._words.update(incoming)

    def save(self, store_path: Path) -> Path:
        """Write the dictionary as JSON and return the written path."""

        payload = {str(word_uuid): word.to_payload() for word_uuid, word in self.words.items()}
        store_path.parent.mkdir(parents=True, exist_ok=True)
        store_path.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        return store_path

    def load(self, store_path: Path) -> None:
        """Merge words from a JSON file written by `save`.

        Nothing is merged when any entry of the file is invalid.
        """

        try:
            raw = json.loads(store_path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise UserDictError(f"User dictionary file not found: `{store_path}`.") from exc
        except (OSError, json.JSONDecodeError) as exc:
            raise UserDictError(
                f"Failed to read user dictionary `{store_path}`: {exc}"
            ) from exc
        if not isinstance(raw, Mapping):
            raise UserDictError(
                f"User dictionary `{store_path}` must contain a top-level mapping/object."
            )

        loaded: dict[UUID, UserDictWord] = {}
        for raw_uuid, raw_word in raw.items():
            try:
                word_uuid = UUID(str(raw_uuid))
            except ValueError as exc:
                raise UserDictError(
                    f"User dictionary `{store_path}` has invalid UUID `{raw_uuid}`."
                ) from exc
            if not isinstance(raw_word, Mapping):
                raise UserDictError(
                    f"User dictionary `{store_path}` entry `{raw_uuid}` must be a mapping."
                )
            loaded[word_uuid] = UserDictWord.from_payload(raw_word)

        with self._lock:
            self._words.update(loaded)
