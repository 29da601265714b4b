"""Unit tests for user dictionary word validation and persistence."""

from __future__ import annotations

import json
from pathlib import Path
from uuid import uuid4

import pytest

from moravoice.errors import UserDictError
from moravoice.text.user_dict import UserDict, UserDictWord, UserDictWordType


def test_user_dict_word_rejects_invalid_fields() -> None:
    """Word construction should reject blank surfaces, bad readings, and out-of-range values."""

    with pytest.raises(UserDictError):
        UserDictWord(surface=" ", pronunciation="テスト")
    with pytest.raises(UserDictError):
        UserDictWord(surface="test", pronunciation="test")
    with pytest.raises(UserDictError):
        UserDictWord(surface="test", pronunciation="テスト", priority=11)
    with pytest.raises(UserDictError):
        UserDictWord(surface="test", pronunciation="テスト", accent_type=4)


def test_user_dict_word_counts_moras() -> None:
    """Mora count should treat youon spellings as one mora."""

    word = UserDictWord(surface="東京", pronunciation="トーキョー", accent_type=0)

    assert word.mora_count == 4


def test_user_dict_add_update_remove_keeps_insertion_order() -> None:
    """Dictionary operations should preserve insertion order and report unknown uuids."""

    user_dict = UserDict()
    first = user_dict.add_word(UserDictWord(surface="猫", pronunciation="ネコ", accent_type=1))
    second = user_dict.add_word(UserDictWord(surface="犬", pronunciation="イヌ", accent_type=2))

    user_dict.update_word(first, UserDictWord(surface="猫", pronunciation="ネコ", priority=9))

    assert list(user_dict.words) == [first, second]
    assert user_dict.words[first].priority == 9
    assert user_dict.remove_word(second).surface == "犬"
    assert list(user_dict.words) == [first]
    with pytest.raises(UserDictError):
        user_dict.remove_word(second)
    with pytest.raises(UserDictError):
        user_dict.update_word(uuid4(), UserDictWord(surface="鳥", pronunciation="トリ"))


def test_user_dict_import_copies_words() -> None:
    """Importing another dictionary should copy all of its words."""

    source = UserDict()
    word_uuid = source.add_word(
        UserDictWord(surface="さん", pronunciation="サン", word_type=UserDictWordType.SUFFIX)
    )
    target = UserDict()

    target.import_dict(source)

    assert target.words[word_uuid].word_type is UserDictWordType.SUFFIX


def test_user_dict_save_and_load_merge_words(tmp_path: Path) -> None:
    """Saved dictionaries should load back into another dictionary unchanged."""

    user_dict = UserDict()
    word_uuid = user_dict.add_word(
        UserDictWord(surface="東京", pronunciation="トーキョー", accent_type=3, priority=7)
    )
    store_path = user_dict.save(tmp_path / "dict" / "user_dict.json")

    loaded = UserDict()
    loaded.load(store_path)

    assert loaded.words == {word_uuid: user_dict.words[word_uuid]}


def test_user_dict_load_is_all_or_nothing(tmp_path: Path) -> None:
    """An invalid entry should leave the dictionary untouched."""

    store_path = tmp_path / "user_dict.json"
    store_path.write_text(
        json.dumps(
            {
                str(uuid4()): {"surface": "猫", "pronunciation": "ネコ"},
                str(uuid4()): {"surface": "犬", "pronunciation": "dog"},
            }
        ),
        encoding="utf-8",
    )
    user_dict = UserDict()

    with pytest.raises(UserDictError):
        user_dict.load(store_path)
    with pytest.raises(UserDictError, match="not found"):
        user_dict.load(tmp_path / "missing.json")

    assert user_dict.words == {}
