"""Canonical data structures handed between pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from pagewise.ingestion.errors import ErrorInfo

if TYPE_CHECKING:
    from pagewise.language.codes import Language


@dataclass(frozen=True, slots=True)
class ExtractionResult:
    """Outcome of unpacking an archive into a session directory."""

    output_path: Path | None
    success: bool
    error: ErrorInfo | None = None


@dataclass(frozen=True, slots=True)
class PackageMetadata:
    """Package-level metadata; ``language`` is filled by classification."""

    title: str | None = None
    author: str | None = None
    language_hint: str | None = None
    language: Language | None = None


@dataclass(frozen=True, slots=True)
class SpineEntry:
    """One reading-order position resolved against the manifest item table."""

    idref: str
    href: str
    media_type: str | None = None
    linear: bool = True


@dataclass(frozen=True, slots=True)
class ManifestDocument:
    """Parsed package manifest."""

    spine: tuple[SpineEntry, ...]
    metadata: PackageMetadata = field(default_factory=PackageMetadata)

    @property
    def chapter_paths(self) -> list[str]:
        return [entry.href for entry in self.spine]


@dataclass(frozen=True, slots=True)
class Chapter:
    """A loaded chapter in reading order; conversion happens on demand."""

    index: int
    href: str
    path: Path
    raw_markup: str
    title: str | None = None


@dataclass(frozen=True, slots=True)
class ChapterFailure:
    """A reading-order position that could not be loaded."""

    index: int
    href: str
    error: ErrorInfo


@dataclass(frozen=True, slots=True)
class ProcessResult:
    """Single artifact handed from ingestion to the presentation boundary."""

    success: bool
    chapters: tuple[Chapter, ...] = ()
    metadata: PackageMetadata | None = None
    error: ErrorInfo | None = None
    failures: tuple[ChapterFailure, ...] = ()
    output_path: Path | None = None
    content_root: Path | None = None

    def __post_init__(self) -> None:
        if self.success and (not self.chapters or self.metadata is None):
            raise ValueError("Successful ProcessResult requires chapters and metadata")
