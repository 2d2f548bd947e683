from __future__ import annotations

from io import BytesIO
from pathlib import Path
import zipfile

import pytest

from pagewise.config import ReaderSettings
from pagewise.ingestion.errors import ErrorInfo
from pagewise.ingestion.handles import BytesContentHandle
from pagewise.ingestion.models import ProcessResult
from pagewise.language.codes import TextDirection
from pagewise.language.detection import ClassifierResponse
from pagewise.navigation.state_machine import GestureEvent
from pagewise.render.nodes import NodeKind
from pagewise.session import ReadingSession

_HEBREW = "הנהר עלה במשך שלושה ימים לפני שמישהו בעמק חשב להעביר את הבהמות. " * 5


class _StubClassifier:
    def __init__(self, code: str) -> None:
        self._code = code

    def classify(self, text: str) -> ClassifierResponse:
        return ClassifierResponse(language=self._code)


def _archive() -> bytes:
    opf = (
        '<package xmlns="http://www.idpf.org/2007/opf" xmlns:dc="http://purl.org/dc/elements/1.1/">'
        "<metadata><dc:title>Session Book</dc:title><dc:language>he</dc:language></metadata>"
        "<manifest>"
        '<item id="cover" href="text/cover.xhtml" media-type="application/xhtml+xml"/>'
        '<item id="one" href="text/one.xhtml" media-type="application/xhtml+xml"/>'
        '<item id="two" href="text/two.xhtml" media-type="application/xhtml+xml"/>'
        "</manifest>"
        '<spine><itemref idref="cover"/><itemref idref="one"/><itemref idref="two"/></spine>'
        "</package>"
    )
    container = (
        '<container xmlns="urn:oasis:names:tc:opendocument:xmlns:container"><rootfiles>'
        '<rootfile full-path="OPS/book.opf" media-type="application/oebps-package+xml"/>'
        "</rootfiles></container>"
    )
    buffer = BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("mimetype", "application/epub+zip")
        archive.writestr("META-INF/container.xml", container)
        archive.writestr("OPS/book.opf", opf)
        archive.writestr("OPS/text/cover.xhtml", '<p><img src="../images/cover.png" alt="Cover"/></p>')
        archive.writestr("OPS/text/one.xhtml", f"<html><head><title>Beginning</title></head><body><p>{_HEBREW}</p></body></html>")
        archive.writestr("OPS/text/two.xhtml", "<h2>Ending</h2><p>סוף.</p>")
        archive.writestr("OPS/images/cover.png", b"\x89PNG\r\n\x1a\n")
    return buffer.getvalue()


async def _open(tmp_path: Path, code: str = "he") -> ReadingSession:
    session, result = await ReadingSession.open(
        BytesContentHandle(_archive()),
        ReaderSettings(work_dir=tmp_path),
        classifier=_StubClassifier(code),
    )
    assert result.success
    assert session is not None
    return session


@pytest.mark.asyncio
async def test_session_exposes_chapters_and_presentation(tmp_path: Path) -> None:
    session = await _open(tmp_path)

    with session:
        assert session.chapter_index == 0
        assert session.current_chapter.href == "text/cover.xhtml"
        assert session.presentation().direction is TextDirection.RTL
        assert [(entry.title, entry.current) for entry in session.table_of_contents()] == [
            ("Chapter 1", True),
            ("Beginning", False),
            ("Ending", False),
        ]


@pytest.mark.asyncio
async def test_unmapped_language_falls_back_to_default_direction(tmp_path: Path) -> None:
    session = await _open(tmp_path, code="tlh")

    with session:
        assert session.result.metadata.language is None
        assert session.result.metadata.language_hint == "he"
        assert session.presentation().direction is TextDirection.LTR


@pytest.mark.asyncio
async def test_session_navigation_renders_current_chapter(tmp_path: Path) -> None:
    session = await _open(tmp_path)

    with session:
        swipe_left = GestureEvent(velocity_x=-900, velocity_y=0, translation_x=-300, absolute_x=400)
        assert session.handle_gesture(swipe_left) == 1
        assert session.handle_gesture(swipe_left) is None
        session.release_gesture()
        assert session.handle_gesture(swipe_left) == 2

        tree = session.current_tree()
        assert tree.children[0].kind is NodeKind.HEADING
        assert session.table_of_contents()[2].current

        assert session.select_chapter(0) == 0
        with pytest.raises(ValueError):
            session.select_chapter(3)


@pytest.mark.asyncio
async def test_resource_paths_resolve_inside_extraction(tmp_path: Path) -> None:
    session = await _open(tmp_path)

    with session:
        image = next(node for node in session.current_tree().walk() if node.kind is NodeKind.IMAGE)
        path = session.resource_path(image.source)

        assert path is not None
        assert path.read_bytes().startswith(b"\x89PNG")
        assert session.resource_path("../../../../../etc/passwd") is None


@pytest.mark.asyncio
async def test_close_discards_extraction_once(tmp_path: Path) -> None:
    session = await _open(tmp_path)
    output = session.result.output_path

    session.close()
    session.close()

    assert not output.exists()
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_failed_ingestion_yields_no_session(tmp_path: Path) -> None:
    session, result = await ReadingSession.open(BytesContentHandle(b"nope"), ReaderSettings(work_dir=tmp_path))

    assert session is None
    assert not result.success
    assert result.error.stage == "extract"


def test_session_rejects_failed_result() -> None:
    failed = ProcessResult(success=False, error=ErrorInfo(stage="manifest", kind="not_found", message="missing"))

    with pytest.raises(ValueError):
        ReadingSession(failed)
