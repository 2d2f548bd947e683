"""Presentation boundary for one open document."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path

from pagewise.config import ReaderSettings
from pagewise.ingestion.chapters import resolve_resource
from pagewise.ingestion.extractor import discard_directory
from pagewise.ingestion.handles import ContentHandle
from pagewise.ingestion.models import Chapter, ProcessResult
from pagewise.ingestion.pipeline import IngestionPipeline
from pagewise.language.codes import Presentation, presentation_for
from pagewise.language.detection import LanguageClassifier
from pagewise.navigation.state_machine import ChapterNavigator, GestureEvent, GestureThresholds
from pagewise.render.converter import ChapterRenderer
from pagewise.render.nodes import RenderNode

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TocEntry:
    index: int
    title: str
    current: bool


class ReadingSession:
    """Owns a successful ``ProcessResult``, its render cache and navigation."""

    def __init__(
        self,
        result: ProcessResult,
        *,
        renderer: ChapterRenderer | None = None,
        settings: ReaderSettings | None = None,
    ) -> None:
        if not result.success:
            raise ValueError("Cannot open a session on a failed ProcessResult")
        settings = settings or ReaderSettings()
        self._result = result
        self._renderer = renderer or ChapterRenderer()
        self._navigator = ChapterNavigator(
            len(result.chapters),
            thresholds=GestureThresholds.from_settings(settings),
        )
        self._closed = False

    @classmethod
    async def open(
        cls,
        handle: ContentHandle,
        settings: ReaderSettings | None = None,
        *,
        classifier: LanguageClassifier | None = None,
        classify: bool = True,
    ) -> tuple["ReadingSession | None", ProcessResult]:
        """Ingest *handle*; the session is ``None`` when ingestion failed."""

        pipeline = IngestionPipeline(settings, classifier=classifier, classify=classify)
        result = await pipeline.run(handle)
        if not result.success:
            return None, result
        return cls(result, renderer=pipeline.renderer, settings=pipeline.settings), result

    @property
    def result(self) -> ProcessResult:
        return self._result

    @property
    def chapter_index(self) -> int:
        return self._navigator.chapter_index

    @property
    def current_chapter(self) -> Chapter:
        return self._result.chapters[self._navigator.chapter_index]

    def current_tree(self) -> RenderNode:
        return self._renderer.render(self.current_chapter)

    def presentation(self) -> Presentation:
        metadata = self._result.metadata
        return presentation_for(metadata.language if metadata else None)

    def table_of_contents(self) -> list[TocEntry]:
        current = self._navigator.chapter_index
        return [
            TocEntry(index=chapter.index, title=chapter.title or f"Chapter {chapter.index + 1}", current=chapter.index == current)
            for chapter in self._result.chapters
        ]

    def handle_gesture(self, event: GestureEvent) -> int | None:
        return self._navigator.handle_gesture(event)

    def release_gesture(self) -> None:
        self._navigator.release()

    def select_chapter(self, index: int) -> int:
        return self._navigator.select(index)

    def resource_path(self, reference: str) -> Path | None:
        """Resolve an image reference from the current chapter to a file."""

        if self._result.output_path is None:
            return None
        return resolve_resource(self.current_chapter, reference, self._result.output_path)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        discard_directory(self._result.output_path)
        logger.debug("Closed session for %s", self._result.output_path)

    def __enter__(self) -> "ReadingSession":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()
