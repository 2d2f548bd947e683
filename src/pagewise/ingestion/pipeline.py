"""Staged async ingestion: extract, resolve manifest, load chapters, classify."""

from __future__ import annotations

import asyncio
from pathlib import Path
import logging
import threading

from pagewise.config import ReaderSettings
from pagewise.ingestion.chapters import load_chapters
from pagewise.ingestion.errors import (
    ChapterIOError,
    ChapterIOErrorKind,
    ClassificationError,
    ErrorInfo,
    ExtractionError,
    ManifestError,
    ManifestErrorKind,
)
from pagewise.ingestion.extractor import ArchiveExtractor, discard_directory
from pagewise.ingestion.handles import ContentHandle
from pagewise.ingestion.manifest import find_manifest, read_manifest
from pagewise.ingestion.models import Chapter, ChapterFailure, ManifestDocument, PackageMetadata, ProcessResult
from pagewise.language.classifier import classify_document
from pagewise.language.codes import Language
from pagewise.language.detection import LanguageClassifier, LinguaClassifier
from pagewise.render.converter import ChapterRenderer, MarkupConverter

logger = logging.getLogger(__name__)

_FATAL_STAGES: dict[type[Exception], str] = {
    ExtractionError: "extract",
    ManifestError: "manifest",
    ChapterIOError: "load",
}


class IngestionPipeline:
    """Run the ingestion stages for one document at a time.

    Extraction and manifest failures abort the run; chapter failures are
    collected and only abort when nothing could be loaded; classification
    failures leave the language unset. Blocking work runs in worker threads.
    Cancelling the awaiting task discards the extraction directory.
    """

    def __init__(
        self,
        settings: ReaderSettings | None = None,
        *,
        classifier: LanguageClassifier | None = None,
        classify: bool = True,
        renderer: ChapterRenderer | None = None,
    ) -> None:
        self._settings = settings or ReaderSettings()
        self._extractor = ArchiveExtractor.from_settings(self._settings)
        self._classify = classify
        self._classifier = classifier
        self._renderer = renderer or ChapterRenderer(
            MarkupConverter(
                max_depth=self._settings.render_max_depth,
                end_tag_lookback=self._settings.end_tag_lookback,
            )
        )

    @property
    def renderer(self) -> ChapterRenderer:
        return self._renderer

    @property
    def settings(self) -> ReaderSettings:
        return self._settings

    async def run(self, handle: ContentHandle) -> ProcessResult:
        cancel_event = threading.Event()
        output: Path | None = None
        try:
            output = await self._extract(handle, cancel_event)
            manifest_path, manifest = await self._resolve_manifest(output)
            chapters, failures = await self._load_chapters(manifest_path, manifest, output)
            language = await self._classify_language(chapters)
            await asyncio.to_thread(self._renderer.render, chapters[0])
        except asyncio.CancelledError:
            cancel_event.set()
            logger.info("Ingestion cancelled; discarding %s", output)
            discard_directory(output)
            raise
        except (ExtractionError, ManifestError, ChapterIOError) as exc:
            stage = _FATAL_STAGES[type(exc)]
            logger.error("Ingestion failed at stage %s: %s", stage, exc)
            discard_directory(output)
            return ProcessResult(success=False, error=ErrorInfo.from_exception(stage, exc))

        metadata = PackageMetadata(
            title=manifest.metadata.title,
            author=manifest.metadata.author,
            language_hint=manifest.metadata.language_hint,
            language=language,
        )
        logger.info(
            "Ingested %d chapter(s), %d skipped, language=%s",
            len(chapters),
            len(failures),
            language.value if language else None,
        )
        return ProcessResult(
            success=True,
            chapters=tuple(chapters),
            metadata=metadata,
            failures=tuple(failures),
            output_path=output,
            content_root=manifest_path.parent,
        )

    async def _extract(self, handle: ContentHandle, cancel_event: threading.Event) -> Path:
        task = asyncio.ensure_future(
            asyncio.to_thread(self._extractor.extract_or_raise, handle, cancel_event=cancel_event)
        )
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            cancel_event.set()
            try:
                finished = await task
            except ExtractionError:
                finished = None
            discard_directory(finished)
            raise

    async def _resolve_manifest(self, root: Path) -> tuple[Path, ManifestDocument]:
        manifest_path = await asyncio.to_thread(
            find_manifest, root, max_depth=self._settings.manifest_search_depth
        )
        if manifest_path is None:
            raise ManifestError(ManifestErrorKind.NOT_FOUND, "No package manifest in archive")
        manifest = await asyncio.to_thread(read_manifest, manifest_path)
        return manifest_path, manifest

    async def _load_chapters(
        self,
        manifest_path: Path,
        manifest: ManifestDocument,
        root: Path,
    ) -> tuple[list[Chapter], list[ChapterFailure]]:
        chapters, failures = await asyncio.to_thread(
            load_chapters,
            manifest.spine,
            content_root=manifest_path.parent,
            extraction_root=root,
        )
        if not chapters:
            raise ChapterIOError(
                ChapterIOErrorKind.NOT_FOUND,
                str(manifest_path),
                f"No chapter could be loaded ({len(failures)} failed)",
            )
        return chapters, failures

    async def _classify_language(self, chapters: list[Chapter]) -> Language | None:
        if not self._classify:
            return None
        if self._classifier is None:
            self._classifier = LinguaClassifier()
        try:
            return await asyncio.to_thread(
                classify_document,
                chapters,
                self._classifier,
                renderer=self._renderer,
                settings=self._settings,
            )
        except ClassificationError as exc:
            logger.warning("Language classification skipped: %s", exc)
            return None


async def process_document(
    handle: ContentHandle,
    settings: ReaderSettings | None = None,
    *,
    classifier: LanguageClassifier | None = None,
    classify: bool = True,
) -> ProcessResult:
    """Ingest *handle* with a fresh pipeline and return the process result."""

    pipeline = IngestionPipeline(settings, classifier=classifier, classify=classify)
    return await pipeline.run(handle)
