"""Excerpt selection for language classification."""

from __future__ import annotations

from typing import Iterator, Sequence

from pagewise.config import DEFAULT_EXCERPT_MIN_CHARS, DEFAULT_EXCERPT_SCAN_CHAPTERS
from pagewise.ingestion.errors import ClassificationError, ClassificationErrorKind
from pagewise.ingestion.models import Chapter
from pagewise.ingestion.normalization import normalize_whitespace
from pagewise.render.converter import ChapterRenderer
from pagewise.render.nodes import NodeKind, RenderNode


def scan_order(chapter_count: int, max_scan: int) -> list[int]:
    """Chapter indices to scan: early chapters after the first, the first last.

    The first chapter is usually a cover or title page and is only used when
    nothing else qualifies.
    """

    limit = min(chapter_count, max_scan)
    if limit <= 0:
        return []
    return list(range(1, limit)) + [0]


def paragraphs(tree: RenderNode) -> Iterator[str]:
    """Yield normalized paragraph texts in document order."""

    for node in tree.walk():
        if node.kind is NodeKind.PARAGRAPH:
            text = normalize_whitespace(node.plain_text())
            if text:
                yield text


def find_excerpt(
    chapters: Sequence[Chapter],
    renderer: ChapterRenderer | None = None,
    *,
    min_length: int = DEFAULT_EXCERPT_MIN_CHARS,
    max_scan: int = DEFAULT_EXCERPT_SCAN_CHAPTERS,
) -> str:
    """Return the first paragraph of at least *min_length* characters.

    Headings, list items and short fragments never qualify. Raises
    ``ClassificationError`` when no scanned chapter has such a paragraph.
    """

    renderer = renderer or ChapterRenderer()
    for index in scan_order(len(chapters), max_scan):
        for text in paragraphs(renderer.render(chapters[index])):
            if len(text) >= min_length:
                return text

    raise ClassificationError(
        ClassificationErrorKind.NO_EXCERPT,
        f"No paragraph of at least {min_length} characters in the first {min(len(chapters), max_scan)} chapter(s)",
    )
