"""Chapter loading in reading order with per-chapter failure isolation."""

from __future__ import annotations

import logging
from pathlib import Path
import posixpath
import re
from typing import Iterable
from urllib.parse import unquote, urlparse

from bs4 import BeautifulSoup
from charset_normalizer import from_bytes

from pagewise.ingestion.errors import ChapterIOError, ChapterIOErrorKind, ErrorInfo
from pagewise.ingestion.models import Chapter, ChapterFailure, SpineEntry
from pagewise.ingestion.normalization import normalize_whitespace

logger = logging.getLogger(__name__)

_TITLE_HEADINGS = ["h1", "h2", "h3"]
_XML_DECLARATION_RE = re.compile(r"^\s*<\?xml[^?]*\?>")
_XHTML_NAMESPACE = "http://www.w3.org/1999/xhtml"


def _decode(raw: bytes, path: Path) -> str:
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        pass

    best = from_bytes(raw).best()
    if best is not None and best.encoding:
        return raw.decode(best.encoding, errors="replace")
    raise ChapterIOError(ChapterIOErrorKind.UNREADABLE, str(path), "Could not detect chapter encoding")


def load_chapter(path: str | Path) -> str:
    """Return the raw markup of the chapter stored at *path*."""

    chapter_path = Path(path)
    try:
        raw = chapter_path.read_bytes()
    except FileNotFoundError as exc:
        raise ChapterIOError(ChapterIOErrorKind.NOT_FOUND, str(chapter_path), "Chapter file is missing") from exc
    except PermissionError as exc:
        raise ChapterIOError(ChapterIOErrorKind.PERMISSION, str(chapter_path), "Chapter file is not readable") from exc
    except OSError as exc:
        raise ChapterIOError(ChapterIOErrorKind.UNREADABLE, str(chapter_path), f"Chapter read failed: {exc}") from exc
    return _decode(raw, chapter_path)


def _soup(markup: str) -> BeautifulSoup:
    declaration = _XML_DECLARATION_RE.match(markup)
    if declaration is None and _XHTML_NAMESPACE not in markup[:4096]:
        return BeautifulSoup(markup, "lxml")
    if declaration is not None:
        markup = markup[declaration.end() :]
    return BeautifulSoup(markup, "xml")


def chapter_title(markup: str) -> str | None:
    """Pick a display title: document ``<title>``, else the first heading.

    XHTML chapters go through the XML builder, plain HTML through lxml's
    HTML builder.
    """

    soup = _soup(markup)
    if soup.title is not None:
        title = normalize_whitespace(soup.title.get_text(" ", strip=True))
        if title:
            return title

    heading = soup.find(_TITLE_HEADINGS)
    if heading is not None:
        text = normalize_whitespace(heading.get_text(" ", strip=True))
        if text:
            return text
    return None


def resolve_chapter_path(content_root: Path, extraction_root: Path, href: str) -> Path:
    """Resolve a manifest-relative href, refusing paths outside the extraction."""

    candidate = (content_root / href).resolve()
    if not candidate.is_relative_to(extraction_root.resolve()):
        raise ChapterIOError(ChapterIOErrorKind.NOT_FOUND, href, "Chapter path escapes the package")
    return candidate


def load_chapters(
    entries: Iterable[SpineEntry],
    *,
    content_root: Path,
    extraction_root: Path,
) -> tuple[list[Chapter], list[ChapterFailure]]:
    """Load every reading-order entry; unreadable entries are recorded, not raised."""

    chapters: list[Chapter] = []
    failures: list[ChapterFailure] = []

    for position, entry in enumerate(entries):
        try:
            path = resolve_chapter_path(content_root, extraction_root, entry.href)
            markup = load_chapter(path)
        except ChapterIOError as exc:
            logger.warning("Skipping chapter %d (%s): %s", position, entry.href, exc)
            failures.append(ChapterFailure(index=position, href=entry.href, error=ErrorInfo.from_exception("load", exc)))
            continue

        chapters.append(
            Chapter(
                index=len(chapters),
                href=entry.href,
                path=path,
                raw_markup=markup,
                title=chapter_title(markup),
            )
        )

    return chapters, failures


def resolve_resource(chapter: Chapter, reference: str, extraction_root: Path) -> Path | None:
    """Resolve an image or other resource reference found in *chapter*.

    Remote and data URLs, and references escaping the extraction root,
    resolve to ``None``.
    """

    parsed = urlparse(reference)
    if parsed.scheme or parsed.netloc or not parsed.path:
        return None

    relative = posixpath.normpath(unquote(parsed.path))
    candidate = (chapter.path.parent / relative).resolve()
    if not candidate.is_relative_to(extraction_root.resolve()):
        return None
    return candidate
