"""Archive extraction from an opaque content handle into a session directory."""

from __future__ import annotations

import io
import logging
from pathlib import Path, PurePosixPath
import shutil
import struct
import tempfile
import threading
import uuid
import zipfile
import zlib

from pagewise.config import ReaderSettings
from pagewise.ingestion.errors import ErrorInfo, ExtractionError, ExtractionErrorKind
from pagewise.ingestion.handles import ContentHandle, HandleReader
from pagewise.ingestion.models import ExtractionResult

logger = logging.getLogger(__name__)

_READ_BUFFER_SIZE = 64 * 1024


def _check_entry_name(name: str) -> None:
    if name.startswith(("/", "\\")):
        raise ExtractionError(ExtractionErrorKind.PATH_TRAVERSAL, "Absolute path in archive", entry=name)
    if len(name) > 1 and name[1] == ":":
        raise ExtractionError(ExtractionErrorKind.PATH_TRAVERSAL, "Drive-qualified path in archive", entry=name)
    parts = PurePosixPath(name.replace("\\", "/")).parts
    if ".." in parts:
        raise ExtractionError(ExtractionErrorKind.PATH_TRAVERSAL, "Path traversal in archive", entry=name)


def _target_for(root: Path, name: str) -> Path:
    target = (root / name.replace("\\", "/")).resolve()
    if not target.is_relative_to(root):
        raise ExtractionError(ExtractionErrorKind.PATH_TRAVERSAL, "Entry resolves outside destination", entry=name)
    return target


def discard_directory(path: Path | None) -> None:
    """Remove an extraction directory; missing directories are ignored."""

    if path is None or not path.exists():
        return
    try:
        shutil.rmtree(path)
    except OSError:
        logger.exception("Failed to remove extraction directory %s", path)


class ArchiveExtractor:
    """Unpack a zip container into a fresh directory under *work_dir*.

    Every entry name is validated before anything is written. Entries are
    written into a hidden staging directory which is renamed to the final
    location only when all entries were extracted, so callers never see a
    half-populated output directory.
    """

    def __init__(
        self,
        work_dir: str | Path | None = None,
        *,
        max_entries: int | None = None,
        max_uncompressed_bytes: int | None = None,
    ) -> None:
        defaults = ReaderSettings()
        self._work_dir = Path(work_dir) if work_dir is not None else defaults.work_dir
        self._max_entries = max_entries or defaults.max_archive_entries
        self._max_uncompressed_bytes = max_uncompressed_bytes or defaults.max_uncompressed_bytes

    @classmethod
    def from_settings(cls, settings: ReaderSettings) -> "ArchiveExtractor":
        return cls(
            settings.work_dir,
            max_entries=settings.max_archive_entries,
            max_uncompressed_bytes=settings.max_uncompressed_bytes,
        )

    def extract(
        self,
        handle: ContentHandle,
        *,
        cancel_event: threading.Event | None = None,
    ) -> ExtractionResult:
        """Extract *handle* and report the outcome without raising domain errors."""

        try:
            output = self.extract_or_raise(handle, cancel_event=cancel_event)
        except ExtractionError as exc:
            logger.error("Archive extraction failed: %s", exc)
            return ExtractionResult(output_path=None, success=False, error=ErrorInfo.from_exception("extract", exc))
        return ExtractionResult(output_path=output, success=True)

    def extract_or_raise(
        self,
        handle: ContentHandle,
        *,
        cancel_event: threading.Event | None = None,
    ) -> Path:
        try:
            self._work_dir.mkdir(parents=True, exist_ok=True)
            staging = Path(tempfile.mkdtemp(prefix=".pagewise-staging-", dir=self._work_dir)).resolve()
        except OSError as exc:
            raise ExtractionError(ExtractionErrorKind.IO_FAILURE, f"Cannot create staging directory: {exc}") from exc

        try:
            self._extract_into(handle, staging, cancel_event)
            output = staging.parent / f"pagewise-{uuid.uuid4().hex}"
            try:
                staging.rename(output)
            except OSError as exc:
                raise ExtractionError(ExtractionErrorKind.IO_FAILURE, f"Cannot publish extraction: {exc}") from exc
        except BaseException:
            discard_directory(staging)
            raise

        logger.info("Extracted archive into %s", output)
        return output

    def _extract_into(self, handle: ContentHandle, root: Path, cancel_event: threading.Event | None) -> None:
        try:
            stream = io.BufferedReader(HandleReader(handle), buffer_size=_READ_BUFFER_SIZE)
        except OSError as exc:
            raise ExtractionError(ExtractionErrorKind.IO_FAILURE, f"Cannot read content handle: {exc}") from exc

        try:
            with zipfile.ZipFile(stream, "r") as archive:
                infos = archive.infolist()
                self._validate(infos, root)
                for info in infos:
                    if cancel_event is not None and cancel_event.is_set():
                        raise ExtractionError(ExtractionErrorKind.CANCELLED, "Extraction cancelled")
                    self._write_entry(archive, info, root)
        except ExtractionError:
            raise
        except (zipfile.BadZipFile, zlib.error, struct.error, EOFError, NotImplementedError) as exc:
            raise ExtractionError(ExtractionErrorKind.CORRUPT, f"Invalid or corrupt archive: {exc}") from exc
        except OSError as exc:
            raise ExtractionError(ExtractionErrorKind.IO_FAILURE, f"Extraction I/O failure: {exc}") from exc

    def _validate(self, infos: list[zipfile.ZipInfo], root: Path) -> None:
        if len(infos) > self._max_entries:
            raise ExtractionError(
                ExtractionErrorKind.TOO_LARGE,
                f"Archive has {len(infos)} entries (limit {self._max_entries})",
            )

        total = 0
        for info in infos:
            _check_entry_name(info.filename)
            _target_for(root, info.filename)
            total += info.file_size

        if total > self._max_uncompressed_bytes:
            raise ExtractionError(
                ExtractionErrorKind.TOO_LARGE,
                f"Total uncompressed {total} exceeds limit {self._max_uncompressed_bytes}",
            )

    def _write_entry(self, archive: zipfile.ZipFile, info: zipfile.ZipInfo, root: Path) -> None:
        target = _target_for(root, info.filename)
        if info.is_dir():
            target.mkdir(parents=True, exist_ok=True)
            return

        target.parent.mkdir(parents=True, exist_ok=True)
        with archive.open(info, "r") as source, target.open("wb") as sink:
            shutil.copyfileobj(source, sink)


def extract(handle: ContentHandle, settings: ReaderSettings | None = None) -> ExtractionResult:
    """Extract *handle* with the given (or default) settings."""

    return ArchiveExtractor.from_settings(settings or ReaderSettings()).extract(handle)
