"""Error taxonomy for the ingestion pipeline and its collaborators."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ExtractionErrorKind(str, Enum):
    CORRUPT = "corrupt"
    PATH_TRAVERSAL = "path_traversal"
    IO_FAILURE = "io_failure"
    TOO_LARGE = "too_large"
    CANCELLED = "cancelled"


class ManifestErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    MALFORMED = "malformed"
    MISSING_REFERENCE = "missing_reference"


class ChapterIOErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    PERMISSION = "permission"
    UNREADABLE = "unreadable"


class ClassificationErrorKind(str, Enum):
    NO_EXCERPT = "no_excerpt"
    SERVICE_FAILURE = "service_failure"


class ConversionWarningKind(str, Enum):
    UNSUPPORTED_TAG = "unsupported_tag"
    MALFORMED_MARKUP = "malformed_markup"


@dataclass(slots=True)
class ExtractionError(Exception):
    """Archive could not be unpacked into a usable directory."""

    kind: ExtractionErrorKind
    message: str
    entry: str | None = None

    def __str__(self) -> str:
        if self.entry is not None:
            return f"{self.message} (kind={self.kind.value}, entry={self.entry})"
        return f"{self.message} (kind={self.kind.value})"


@dataclass(slots=True)
class ManifestError(Exception):
    """Package manifest is missing, unparsable or inconsistent."""

    kind: ManifestErrorKind
    message: str
    reference: str | None = None

    def __str__(self) -> str:
        if self.reference is not None:
            return f"{self.message} (kind={self.kind.value}, reference={self.reference})"
        return f"{self.message} (kind={self.kind.value})"


@dataclass(slots=True)
class ChapterIOError(Exception):
    """A chapter resource could not be read."""

    kind: ChapterIOErrorKind
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.message} (kind={self.kind.value}, path={self.path})"


@dataclass(slots=True)
class ClassificationError(Exception):
    """Language could not be determined for the document."""

    kind: ClassificationErrorKind
    message: str

    def __str__(self) -> str:
        return f"{self.message} (kind={self.kind.value})"


@dataclass(frozen=True, slots=True)
class ConversionWarning:
    """Non-fatal issue met while converting markup into a render tree."""

    kind: ConversionWarningKind
    tag: str
    detail: str


@dataclass(frozen=True, slots=True)
class ErrorInfo:
    """User-facing description of a failed stage."""

    stage: str
    kind: str
    message: str

    @classmethod
    def from_exception(cls, stage: str, exc: Exception) -> "ErrorInfo":
        kind = getattr(exc, "kind", None)
        kind_value = kind.value if isinstance(kind, Enum) else type(exc).__name__
        return cls(stage=stage, kind=kind_value, message=str(exc))
