"""Local language classifier backed by lingua."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Protocol, runtime_checkable

_LINGUA_TO_ISO: dict[str, str] = {
    "ENGLISH": "en",
    "GERMAN": "de",
    "FRENCH": "fr",
    "SPANISH": "es",
    "ITALIAN": "it",
    "PORTUGUESE": "pt",
    "DUTCH": "nl",
    "POLISH": "pl",
    "RUSSIAN": "ru",
    "UKRAINIAN": "uk",
    "KAZAKH": "kk",
    "TATAR": "tt",
    "GREEK": "el",
    "TURKISH": "tr",
    "ARABIC": "ar",
    "PERSIAN": "fa",
    "URDU": "ur",
    "HEBREW": "he",
    "HINDI": "hi",
    "THAI": "th",
    "CHINESE": "zh",
    "JAPANESE": "ja",
    "KOREAN": "ko",
}


@dataclass(frozen=True, slots=True)
class ClassifierResponse:
    """Raw classifier answer; ``language`` is an arbitrary code string."""

    language: str


@runtime_checkable
class LanguageClassifier(Protocol):
    """Anything able to name the language of a text sample, local or remote."""

    def classify(self, text: str) -> ClassifierResponse:
        """Return the detected language code for *text*."""


@lru_cache(maxsize=1)
def _get_detector():
    from lingua import Language, LanguageDetectorBuilder

    languages = [getattr(Language, name) for name in _LINGUA_TO_ISO if hasattr(Language, name)]
    return (
        LanguageDetectorBuilder.from_languages(*languages)
        .with_minimum_relative_distance(0.1)
        .build()
    )


class LinguaClassifier:
    """Classifier running lingua in-process on up to *sample_chars* characters."""

    def __init__(self, *, sample_chars: int = 3000) -> None:
        if sample_chars < 1:
            raise ValueError("sample_chars must be >= 1")
        self._sample_chars = sample_chars

    def classify(self, text: str) -> ClassifierResponse:
        sample = text[: self._sample_chars].strip()
        if not sample:
            return ClassifierResponse(language="")

        result = _get_detector().detect_language_of(sample)
        if result is None:
            return ClassifierResponse(language="")
        return ClassifierResponse(language=_LINGUA_TO_ISO.get(result.name.upper(), ""))
