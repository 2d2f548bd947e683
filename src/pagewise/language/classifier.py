"""Adapter between a language classifier and the closed language table."""

from __future__ import annotations

import logging
from typing import Sequence

from pagewise.config import ReaderSettings
from pagewise.ingestion.errors import ClassificationError, ClassificationErrorKind
from pagewise.ingestion.models import Chapter
from pagewise.language.codes import Language, language_for_code
from pagewise.language.detection import LanguageClassifier
from pagewise.language.excerpt import find_excerpt
from pagewise.render.converter import ChapterRenderer

logger = logging.getLogger(__name__)


def classify(excerpt: str, classifier: LanguageClassifier) -> Language | None:
    """Classify *excerpt*; unmapped codes resolve to ``None``."""

    try:
        response = classifier.classify(excerpt)
    except Exception as exc:
        raise ClassificationError(
            ClassificationErrorKind.SERVICE_FAILURE,
            f"Language classifier failed: {exc}",
        ) from exc

    code = getattr(response, "language", None)
    language = language_for_code(code if isinstance(code, str) else None)
    if language is None:
        logger.info("Classifier returned unmapped language code %r", code)
    return language


def classify_document(
    chapters: Sequence[Chapter],
    classifier: LanguageClassifier,
    *,
    renderer: ChapterRenderer | None = None,
    settings: ReaderSettings | None = None,
) -> Language | None:
    """Pick an excerpt from the early chapters and classify it."""

    settings = settings or ReaderSettings()
    excerpt = find_excerpt(
        chapters,
        renderer,
        min_length=settings.excerpt_min_chars,
        max_scan=settings.excerpt_scan_chapters,
    )
    logger.debug("Classifying excerpt of %d characters", len(excerpt))
    return classify(excerpt, classifier)
