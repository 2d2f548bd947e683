from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from pagewise.ingestion.models import Chapter
from pagewise.render.converter import ChapterRenderer, ConversionResult, MarkupConverter
from pagewise.render.nodes import NodeKind


class _CountingConverter(MarkupConverter):
    def __init__(self) -> None:
        super().__init__()
        self.calls = 0

    def convert(self, markup: str) -> ConversionResult:
        self.calls += 1
        return super().convert(markup)


def _chapter(index: int, markup: str) -> Chapter:
    return Chapter(index=index, href=f"ch{index}.xhtml", path=Path(f"/book/ch{index}.xhtml"), raw_markup=markup)


def test_render_is_lazy_and_cached() -> None:
    converter = _CountingConverter()
    renderer = ChapterRenderer(converter)
    chapter = _chapter(0, "<p>Once</p>")

    assert not renderer.is_rendered(chapter)
    first = renderer.render(chapter)
    second = renderer.render(chapter)

    assert renderer.is_rendered(chapter)
    assert first is second
    assert converter.calls == 1
    assert first.children[0].kind is NodeKind.PARAGRAPH


def test_chapters_are_cached_independently() -> None:
    renderer = ChapterRenderer()
    one = _chapter(0, "<p>one</p>")
    two = _chapter(1, "<h1>two</h1>")

    renderer.render(one)

    assert renderer.is_rendered(one)
    assert not renderer.is_rendered(two)
    assert renderer.render(two).children[0].kind is NodeKind.HEADING


def test_result_keeps_conversion_warnings() -> None:
    renderer = ChapterRenderer()

    result = renderer.result(_chapter(0, "<p>a</div></p>"))

    assert len(result.warnings) == 1
    assert renderer.result(_chapter(0, "ignored")) is result


def test_concurrent_renders_agree_on_one_tree() -> None:
    renderer = ChapterRenderer()
    chapter = _chapter(3, "<p>" + "word " * 2000 + "</p>")

    with ThreadPoolExecutor(max_workers=8) as pool:
        trees = list(pool.map(lambda _: renderer.render(chapter), range(32)))

    assert all(tree is trees[0] for tree in trees)
