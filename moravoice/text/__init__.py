"""Text front-end: phoneme inventory, kana notation, user dictionary, and analyzers.

This package turns input text into zero-prosody accent phrase skeletons for
the synthesis pipeline.
"""

from .analyzer import DictionaryTextAnalyzer, KanaTextAnalyzer, TextAnalyzer
from .kana import create_kana, parse_kana
from .user_dict import UserDict, UserDictWord, UserDictWordType

__all__ = [
    "DictionaryTextAnalyzer",
    "KanaTextAnalyzer",
    "TextAnalyzer",
    "UserDict",
    "UserDictWord",
    "UserDictWordType",
    "create_kana",
    "parse_kana",
]
