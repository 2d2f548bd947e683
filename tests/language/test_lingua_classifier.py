"""Tests for the lingua-backed classifier (without lingua installed)."""

from __future__ import annotations

import sys
import types
from typing import Iterator

import pytest

from pagewise.language import detection
from pagewise.language.detection import LanguageClassifier, LinguaClassifier


def _make_lingua_stub(detected_name: str | None, calls: list[str] | None = None) -> types.ModuleType:
    """Build a minimal lingua stub that returns a fixed detection result."""
    lingua = types.ModuleType("lingua")

    class Language:
        ENGLISH = "en"
        RUSSIAN = "ru"
        HEBREW = "he"
        ARABIC = "ar"

    class _Result:
        def __init__(self, name: str) -> None:
            self.name = name

    class _Detector:
        def detect_language_of(self, text: str):
            if calls is not None:
                calls.append(text)
            if detected_name is None:
                return None
            return _Result(detected_name)

    class _Builder:
        def with_minimum_relative_distance(self, _):
            return self

        def build(self):
            return _Detector()

    class LanguageDetectorBuilder:
        @staticmethod
        def from_languages(*_args):
            return _Builder()

    lingua.Language = Language
    lingua.LanguageDetectorBuilder = LanguageDetectorBuilder
    return lingua


@pytest.fixture(autouse=True)
def _fresh_detector() -> Iterator[None]:
    # the detector is cached per process
    detection._get_detector.cache_clear()
    yield
    detection._get_detector.cache_clear()


def test_detects_english(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "lingua", _make_lingua_stub("ENGLISH"))

    assert LinguaClassifier().classify("a long english text for detection").language == "en"


def test_detects_hebrew(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "lingua", _make_lingua_stub("HEBREW"))

    assert LinguaClassifier().classify("טקסט ארוך בעברית").language == "he"


def test_whitespace_only_returns_empty_code(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []
    monkeypatch.setitem(sys.modules, "lingua", _make_lingua_stub("ENGLISH", calls))

    assert LinguaClassifier().classify("   \n\t  ").language == ""
    assert calls == []


def test_inconclusive_result_returns_empty_code(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "lingua", _make_lingua_stub(None))

    assert LinguaClassifier().classify("some text").language == ""


def test_unknown_language_name_returns_empty_code(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "lingua", _make_lingua_stub("UZBEK"))

    assert LinguaClassifier().classify("matn").language == ""


def test_sample_chars_limits_input(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []
    monkeypatch.setitem(sys.modules, "lingua", _make_lingua_stub("RUSSIAN", calls))

    LinguaClassifier(sample_chars=100).classify("а" * 10_000)

    assert calls and len(calls[-1]) <= 100


def test_rejects_non_positive_sample_size() -> None:
    with pytest.raises(ValueError):
        LinguaClassifier(sample_chars=0)


def test_satisfies_classifier_protocol() -> None:
    assert isinstance(LinguaClassifier(), LanguageClassifier)
