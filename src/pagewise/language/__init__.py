"""Language classification and presentation defaults."""

from .classifier import classify, classify_document
from .codes import Language, TextDirection, language_for_code, presentation_for
from .detection import ClassifierResponse, LanguageClassifier, LinguaClassifier
from .excerpt import find_excerpt

__all__ = [
    "ClassifierResponse",
    "Language",
    "LanguageClassifier",
    "LinguaClassifier",
    "TextDirection",
    "classify",
    "classify_document",
    "find_excerpt",
    "language_for_code",
    "presentation_for",
]
