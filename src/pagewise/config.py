"""Runtime configuration for ingestion, rendering and navigation."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
import tempfile
from typing import Mapping


DEFAULT_MAX_ARCHIVE_ENTRIES = 10_000
DEFAULT_MAX_UNCOMPRESSED_BYTES = 512 * 1024 * 1024
DEFAULT_MANIFEST_SEARCH_DEPTH = 4
DEFAULT_RENDER_MAX_DEPTH = 64
DEFAULT_END_TAG_LOOKBACK = 8
DEFAULT_EXCERPT_MIN_CHARS = 200
DEFAULT_EXCERPT_SCAN_CHAPTERS = 6
DEFAULT_SWIPE_VELOCITY = 500.0
DEFAULT_SWIPE_DISTANCE = 150.0
DEFAULT_NEW_GESTURE_DISTANCE = 75.0


def _parse_positive_int(*, name: str, raw_value: str, minimum: int = 1) -> int:
    value = int(raw_value)
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _parse_positive_float(*, name: str, raw_value: str, minimum: float = 0.001) -> float:
    value = float(raw_value)
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _read(source: Mapping[str, str], name: str, default: object) -> str:
    raw = source.get(name, str(default)).strip()
    if not raw:
        raise ValueError(f"{name} cannot be empty")
    return raw


@dataclass(frozen=True, slots=True)
class ReaderSettings:
    """Validated reader settings shared by the pipeline and the session."""

    work_dir: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))
    max_archive_entries: int = DEFAULT_MAX_ARCHIVE_ENTRIES
    max_uncompressed_bytes: int = DEFAULT_MAX_UNCOMPRESSED_BYTES
    manifest_search_depth: int = DEFAULT_MANIFEST_SEARCH_DEPTH
    render_max_depth: int = DEFAULT_RENDER_MAX_DEPTH
    end_tag_lookback: int = DEFAULT_END_TAG_LOOKBACK
    excerpt_min_chars: int = DEFAULT_EXCERPT_MIN_CHARS
    excerpt_scan_chapters: int = DEFAULT_EXCERPT_SCAN_CHAPTERS
    swipe_velocity: float = DEFAULT_SWIPE_VELOCITY
    swipe_distance: float = DEFAULT_SWIPE_DISTANCE
    new_gesture_distance: float = DEFAULT_NEW_GESTURE_DISTANCE

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ReaderSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        work_dir = _read(source, "PAGEWISE_WORK_DIR", tempfile.gettempdir())

        return cls(
            work_dir=Path(work_dir),
            max_archive_entries=_parse_positive_int(
                name="PAGEWISE_MAX_ARCHIVE_ENTRIES",
                raw_value=_read(source, "PAGEWISE_MAX_ARCHIVE_ENTRIES", DEFAULT_MAX_ARCHIVE_ENTRIES),
            ),
            max_uncompressed_bytes=_parse_positive_int(
                name="PAGEWISE_MAX_UNCOMPRESSED_BYTES",
                raw_value=_read(source, "PAGEWISE_MAX_UNCOMPRESSED_BYTES", DEFAULT_MAX_UNCOMPRESSED_BYTES),
            ),
            manifest_search_depth=_parse_positive_int(
                name="PAGEWISE_MANIFEST_SEARCH_DEPTH",
                raw_value=_read(source, "PAGEWISE_MANIFEST_SEARCH_DEPTH", DEFAULT_MANIFEST_SEARCH_DEPTH),
                minimum=0,
            ),
            render_max_depth=_parse_positive_int(
                name="PAGEWISE_RENDER_MAX_DEPTH",
                raw_value=_read(source, "PAGEWISE_RENDER_MAX_DEPTH", DEFAULT_RENDER_MAX_DEPTH),
                minimum=2,
            ),
            end_tag_lookback=_parse_positive_int(
                name="PAGEWISE_END_TAG_LOOKBACK",
                raw_value=_read(source, "PAGEWISE_END_TAG_LOOKBACK", DEFAULT_END_TAG_LOOKBACK),
            ),
            excerpt_min_chars=_parse_positive_int(
                name="PAGEWISE_EXCERPT_MIN_CHARS",
                raw_value=_read(source, "PAGEWISE_EXCERPT_MIN_CHARS", DEFAULT_EXCERPT_MIN_CHARS),
            ),
            excerpt_scan_chapters=_parse_positive_int(
                name="PAGEWISE_EXCERPT_SCAN_CHAPTERS",
                raw_value=_read(source, "PAGEWISE_EXCERPT_SCAN_CHAPTERS", DEFAULT_EXCERPT_SCAN_CHAPTERS),
            ),
            swipe_velocity=_parse_positive_float(
                name="PAGEWISE_SWIPE_VELOCITY",
                raw_value=_read(source, "PAGEWISE_SWIPE_VELOCITY", DEFAULT_SWIPE_VELOCITY),
            ),
            swipe_distance=_parse_positive_float(
                name="PAGEWISE_SWIPE_DISTANCE",
                raw_value=_read(source, "PAGEWISE_SWIPE_DISTANCE", DEFAULT_SWIPE_DISTANCE),
            ),
            new_gesture_distance=_parse_positive_float(
                name="PAGEWISE_NEW_GESTURE_DISTANCE",
                raw_value=_read(source, "PAGEWISE_NEW_GESTURE_DISTANCE", DEFAULT_NEW_GESTURE_DISTANCE),
            ),
        )
