"""Closed language table and the presentation rules derived from it."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TextDirection(str, Enum):
    LTR = "ltr"
    RTL = "rtl"


class Script(str, Enum):
    LATIN = "latin"
    CYRILLIC = "cyrillic"
    GREEK = "greek"
    ARABIC = "arabic"
    HEBREW = "hebrew"
    HAN = "han"
    JAPANESE = "japanese"
    HANGUL = "hangul"
    DEVANAGARI = "devanagari"
    THAI = "thai"


class Language(str, Enum):
    ENGLISH = "english"
    GERMAN = "german"
    FRENCH = "french"
    SPANISH = "spanish"
    ITALIAN = "italian"
    PORTUGUESE = "portuguese"
    DUTCH = "dutch"
    POLISH = "polish"
    RUSSIAN = "russian"
    UKRAINIAN = "ukrainian"
    KAZAKH = "kazakh"
    TATAR = "tatar"
    GREEK = "greek"
    TURKISH = "turkish"
    ARABIC = "arabic"
    PERSIAN = "persian"
    URDU = "urdu"
    HEBREW = "hebrew"
    HINDI = "hindi"
    THAI = "thai"
    CHINESE = "chinese"
    JAPANESE = "japanese"
    KOREAN = "korean"


@dataclass(frozen=True, slots=True)
class Presentation:
    direction: TextDirection
    script: Script


DEFAULT_PRESENTATION = Presentation(direction=TextDirection.LTR, script=Script.LATIN)

_PRESENTATION: dict[Language, Presentation] = {
    Language.RUSSIAN: Presentation(TextDirection.LTR, Script.CYRILLIC),
    Language.UKRAINIAN: Presentation(TextDirection.LTR, Script.CYRILLIC),
    Language.KAZAKH: Presentation(TextDirection.LTR, Script.CYRILLIC),
    Language.TATAR: Presentation(TextDirection.LTR, Script.CYRILLIC),
    Language.GREEK: Presentation(TextDirection.LTR, Script.GREEK),
    Language.ARABIC: Presentation(TextDirection.RTL, Script.ARABIC),
    Language.PERSIAN: Presentation(TextDirection.RTL, Script.ARABIC),
    Language.URDU: Presentation(TextDirection.RTL, Script.ARABIC),
    Language.HEBREW: Presentation(TextDirection.RTL, Script.HEBREW),
    Language.HINDI: Presentation(TextDirection.LTR, Script.DEVANAGARI),
    Language.THAI: Presentation(TextDirection.LTR, Script.THAI),
    Language.CHINESE: Presentation(TextDirection.LTR, Script.HAN),
    Language.JAPANESE: Presentation(TextDirection.LTR, Script.JAPANESE),
    Language.KOREAN: Presentation(TextDirection.LTR, Script.HANGUL),
}

# ISO 639-1 and 639-2 (bibliographic and terminology) codes
LANGUAGE_CODES: dict[str, Language] = {
    "en": Language.ENGLISH, "eng": Language.ENGLISH,
    "de": Language.GERMAN, "deu": Language.GERMAN, "ger": Language.GERMAN,
    "fr": Language.FRENCH, "fra": Language.FRENCH, "fre": Language.FRENCH,
    "es": Language.SPANISH, "spa": Language.SPANISH,
    "it": Language.ITALIAN, "ita": Language.ITALIAN,
    "pt": Language.PORTUGUESE, "por": Language.PORTUGUESE,
    "nl": Language.DUTCH, "nld": Language.DUTCH, "dut": Language.DUTCH,
    "pl": Language.POLISH, "pol": Language.POLISH,
    "ru": Language.RUSSIAN, "rus": Language.RUSSIAN,
    "uk": Language.UKRAINIAN, "ukr": Language.UKRAINIAN,
    "kk": Language.KAZAKH, "kaz": Language.KAZAKH,
    "tt": Language.TATAR, "tat": Language.TATAR,
    "el": Language.GREEK, "ell": Language.GREEK, "gre": Language.GREEK,
    "tr": Language.TURKISH, "tur": Language.TURKISH,
    "ar": Language.ARABIC, "ara": Language.ARABIC,
    "fa": Language.PERSIAN, "fas": Language.PERSIAN, "per": Language.PERSIAN,
    "ur": Language.URDU, "urd": Language.URDU,
    "he": Language.HEBREW, "heb": Language.HEBREW, "iw": Language.HEBREW,
    "hi": Language.HINDI, "hin": Language.HINDI,
    "th": Language.THAI, "tha": Language.THAI,
    "zh": Language.CHINESE, "zho": Language.CHINESE, "chi": Language.CHINESE,
    "ja": Language.JAPANESE, "jpn": Language.JAPANESE,
    "ko": Language.KOREAN, "kor": Language.KOREAN,
}


def language_for_code(code: str | None) -> Language | None:
    """Map a classifier or manifest code onto the closed table.

    Region and script subtags are ignored (``en-US`` and ``zh_Hant`` map to
    their primary language). Unmapped codes return ``None``.
    """

    if not code:
        return None
    primary = code.strip().replace("_", "-").split("-", 1)[0].lower()
    return LANGUAGE_CODES.get(primary)


def presentation_for(language: Language | None) -> Presentation:
    if language is None:
        return DEFAULT_PRESENTATION
    return _PRESENTATION.get(language, DEFAULT_PRESENTATION)
