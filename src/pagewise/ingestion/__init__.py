"""Ingestion package interfaces."""

from .errors import (
    ChapterIOError,
    ClassificationError,
    ConversionWarning,
    ErrorInfo,
    ExtractionError,
    ManifestError,
)
from .models import Chapter, ChapterFailure, ExtractionResult, PackageMetadata, ProcessResult

__all__ = [
    "Chapter",
    "ChapterFailure",
    "ChapterIOError",
    "ClassificationError",
    "ConversionWarning",
    "ErrorInfo",
    "ExtractionError",
    "ExtractionResult",
    "ManifestError",
    "PackageMetadata",
    "ProcessResult",
]
