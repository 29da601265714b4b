"""Internal phoneme inventory and katakana mora table.

Responsibilities:
- Define the fixed phoneme inventory indexed by acoustic sub-model embeddings.
- Map katakana mora spellings to consonant/vowel phoneme pairs.
"""

from __future__ import annotations

PAUSE = "pau"
SILENT_VOWELS = frozenset({"A", "I", "U", "E", "O", "cl", PAUSE})
VOICED_VOWELS = frozenset({"a", "i", "u", "e", "o", "N"})

PHONEMES: tuple[str, ...] = (
    PAUSE,
    "A", "E", "I", "N", "O", "U",
    "a", "b", "by", "ch", "cl", "d", "dy", "e", "f", "g", "gw", "gy",
    "h", "hy", "i", "j", "k", "kw", "ky", "m", "my", "n", "ny", "o",
    "p", "py", "r", "ry", "s", "sh", "t", "ts", "ty", "u", "v", "w", "y", "z",
)
PHONEME_INDEX: dict[str, int] = {phoneme: index for index, phoneme in enumerate(PHONEMES)}

_MORA_TABLE_SOURCE = """
ア:-:a イ:-:i ウ:-:u エ:-:e オ:-:o
カ:k:a キ:k:i ク:k:u ケ:k:e コ:k:o
ガ:g:a ギ:g:i グ:g:u ゲ:g:e ゴ:g:o
サ:s:a シ:sh:i ス:s:u セ:s:e ソ:s:o
ザ:z:a ジ:j:i ズ:z:u ゼ:z:e ゾ:z:o
タ:t:a チ:ch:i ツ:ts:u テ:t:e ト:t:o
ダ:d:a ヂ:j:i ヅ:z:u デ:d:e ド:d:o
ナ:n:a ニ:n:i ヌ:n:u ネ:n:e ノ:n:o
ハ:h:a ヒ:h:i フ:f:u ヘ:h:e ホ:h:o
バ:b:a ビ:b:i ブ:b:u ベ:b:e ボ:b:o
パ:p:a ピ:p:i プ:p:u ペ:p:e ポ:p:o
マ:m:a ミ:m:i ム:m:u メ:m:e モ:m:o
ヤ:y:a ユ:y:u ヨ:y:o
ラ:r:a リ:r:i ル:r:u レ:r:e ロ:r:o
ワ:w:a ヰ:-:i ヱ:-:e ヲ:-:o ン:-:N ッ:-:cl ヴ:v:u
ァ:-:a ィ:-:i ゥ:-:u ェ:-:e ォ:-:o ャ:y:a ュ:y:u ョ:y:o ヮ:w:a
キャ:ky:a キュ:ky:u キョ:ky:o キェ:ky:e
ギャ:gy:a ギュ:gy:u ギョ:gy:o ギェ:gy:e
シャ:sh:a シュ:sh:u ショ:sh:o シェ:sh:e
ジャ:j:a ジュ:j:u ジョ:j:o ジェ:j:e
チャ:ch:a チュ:ch:u チョ:ch:o チェ:ch:e
ニャ:ny:a ニュ:ny:u ニョ:ny:o ニェ:ny:e
ヒャ:hy:a ヒュ:hy:u ヒョ:hy:o ヒェ:hy:e
ビャ:by:a ビュ:by:u ビョ:by:o ビェ:by:e
ピャ:py:a ピュ:py:u ピョ:py:o ピェ:py:e
ミャ:my:a ミュ:my:u ミョ:my:o ミェ:my:e
リャ:ry:a リュ:ry:u リョ:ry:o リェ:ry:e
ティ:t:i トゥ:t:u ディ:d:i ドゥ:d:u テュ:ty:u デュ:dy:u
ファ:f:a フィ:f:i フェ:f:e フォ:f:o
ウィ:w:i ウェ:w:e ウォ:w:o イェ:y:e
ツァ:ts:a ツィ:ts:i ツェ:ts:e ツォ:ts:o
ヴァ:v:a ヴィ:v:i ヴェ:v:e ヴォ:v:o
クヮ:kw:a グヮ:gw:a
"""


def _build_mora_table(source: str) -> dict[str, tuple[str | None, str]]:
    """Parse the compact `text:consonant:vowel` table into a lookup mapping."""

    table: dict[str, tuple[str | None, str]] = {}
    for token in source.split():
        text, consonant, vowel = token.split(":")
        table[text] = (None if consonant == "-" else consonant, vowel)
    return table


MORA_TABLE: dict[str, tuple[str | None, str]] = _build_mora_table(_MORA_TABLE_SOURCE)
MORA_TEXT_BY_PHONEMES: dict[tuple[str | None, str], str] = {}
for _text, _phonemes in MORA_TABLE.items():
    MORA_TEXT_BY_PHONEMES.setdefault(_phonemes, _text)
del _text, _phonemes

LONG_VOWEL_MARK = "ー"


def is_unvoiced(vowel: str) -> bool:
    """Return whether a vowel phoneme carries no pitch."""

    return vowel in SILENT_VOWELS


def devoice(vowel: str) -> str:
    """Return the devoiced form of a vowel (`a` -> `A`); other phonemes pass through."""

    if vowel in {"a", "i", "u", "e", "o"}:
        return vowel.upper()
    return vowel


def voice(vowel: str) -> str:
    """Return the voiced form of a devoiced vowel (`A` -> `a`)."""

    if vowel in {"A", "I", "U", "E", "O"}:
        return vowel.lower()
    return vowel


def to_katakana(text: str) -> str:
    """Convert hiragana characters to katakana, leaving other characters unchanged."""

    return "".join(
        chr(ord(character) + 0x60) if "ぁ" <= character <= "ゖ" else character
        for character in text
    )


def split_moras(text: str) -> list[str] | None:
    """Split a katakana run into mora spellings by longest match.

    Returns `None` when any character cannot be consumed by the mora table.
    """

    moras: list[str] = []
    index = 0
    while index < len(text):
        if text[index] == LONG_VOWEL_MARK:
            moras.append(LONG_VOWEL_MARK)
            index += 1
            continue
        pair = text[index : index + 2]
        if len(pair) == 2 and pair in MORA_TABLE:
            moras.append(pair)
            index += 2
            continue
        if text[index] in MORA_TABLE:
            moras.append(text[index])
            index += 1
            continue
        return None
    return moras
