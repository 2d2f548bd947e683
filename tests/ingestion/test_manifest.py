from __future__ import annotations

import os
from pathlib import Path

from hypothesis import given
from hypothesis import strategies as st
import pytest

from pagewise.ingestion.errors import ManifestError, ManifestErrorKind
from pagewise.ingestion.manifest import find_manifest, parse_manifest, read_manifest


_CONTAINER = """<?xml version="1.0"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="{path}" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>
"""


def _opf(items: list[tuple[str, str]], spine: list[str], metadata: str = "") -> bytes:
    item_xml = "\n".join(
        f'<item id="{item_id}" href="{href}" media-type="application/xhtml+xml"/>' for item_id, href in items
    )
    spine_xml = "\n".join(f'<itemref idref="{idref}"/>' for idref in spine)
    return f"""<?xml version="1.0" encoding="utf-8"?>
<package xmlns="http://www.idpf.org/2007/opf" xmlns:dc="http://purl.org/dc/elements/1.1/" version="3.0">
  <metadata>{metadata}</metadata>
  <manifest>{item_xml}</manifest>
  <spine>{spine_xml}</spine>
</package>
""".encode("utf-8")


def test_find_manifest_follows_container_pointer(tmp_path: Path) -> None:
    (tmp_path / "META-INF").mkdir()
    (tmp_path / "META-INF" / "container.xml").write_text(_CONTAINER.format(path="OPS/package.opf"), encoding="utf-8")
    (tmp_path / "OPS").mkdir()
    (tmp_path / "OPS" / "package.opf").write_bytes(_opf([], []))
    (tmp_path / "content.opf").write_bytes(_opf([], []))

    assert find_manifest(tmp_path) == (tmp_path / "OPS" / "package.opf").resolve()


def test_find_manifest_falls_back_when_pointer_missing(tmp_path: Path) -> None:
    nested = tmp_path / "book" / "OEBPS"
    nested.mkdir(parents=True)
    (nested / "other.opf").write_bytes(_opf([], []))
    (nested / "content.opf").write_bytes(_opf([], []))

    assert find_manifest(tmp_path) == (nested / "content.opf").resolve()


def test_find_manifest_falls_back_when_pointer_is_broken(tmp_path: Path) -> None:
    (tmp_path / "META-INF").mkdir()
    (tmp_path / "META-INF" / "container.xml").write_text("<container><rootfiles>", encoding="utf-8")
    (tmp_path / "OEBPS").mkdir()
    (tmp_path / "OEBPS" / "content.opf").write_bytes(_opf([], []))

    assert find_manifest(tmp_path) == (tmp_path / "OEBPS" / "content.opf").resolve()


def test_find_manifest_ignores_pointer_escaping_root(tmp_path: Path) -> None:
    root = tmp_path / "root"
    (root / "META-INF").mkdir(parents=True)
    (tmp_path / "outside.opf").write_bytes(_opf([], []))
    (root / "META-INF" / "container.xml").write_text(_CONTAINER.format(path="../outside.opf"), encoding="utf-8")

    assert find_manifest(root) is None


def test_find_manifest_respects_depth_bound(tmp_path: Path) -> None:
    deep = tmp_path / "a" / "b" / "c"
    deep.mkdir(parents=True)
    (deep / "content.opf").write_bytes(_opf([], []))

    assert find_manifest(tmp_path, max_depth=2) is None
    assert find_manifest(tmp_path, max_depth=3) == (deep / "content.opf").resolve()


def test_find_manifest_returns_none_when_absent(tmp_path: Path) -> None:
    (tmp_path / "text").mkdir()
    (tmp_path / "text" / "ch1.xhtml").write_text("<p/>", encoding="utf-8")

    assert find_manifest(tmp_path) is None


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
def test_find_manifest_does_not_follow_symlinks_outside_root(tmp_path: Path) -> None:
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "content.opf").write_bytes(_opf([], []))
    root = tmp_path / "root"
    root.mkdir()
    (root / "linked").symlink_to(outside, target_is_directory=True)
    (root / "loop").symlink_to(root, target_is_directory=True)
    (root / "escaped.opf").symlink_to(outside / "content.opf")

    assert find_manifest(root) is None


def test_parse_manifest_resolves_spine_against_items() -> None:
    raw = _opf(
        items=[("c3", "text/three.xhtml"), ("c1", "text/one.xhtml"), ("c2", "text/two.xhtml")],
        spine=["c1", "c2", "c3"],
        metadata="<dc:title>A Book</dc:title><dc:creator>Ann Author</dc:creator><dc:language>en-GB</dc:language>",
    )

    document = parse_manifest(raw)

    assert document.chapter_paths == ["text/one.xhtml", "text/two.xhtml", "text/three.xhtml"]
    assert [entry.idref for entry in document.spine] == ["c1", "c2", "c3"]
    assert document.metadata.title == "A Book"
    assert document.metadata.author == "Ann Author"
    assert document.metadata.language_hint == "en-GB"
    assert document.metadata.language is None


def test_parse_manifest_tolerates_missing_metadata() -> None:
    document = parse_manifest(_opf(items=[("c1", "one.xhtml")], spine=["c1"]))

    assert document.metadata.title is None
    assert document.metadata.author is None
    assert document.chapter_paths == ["one.xhtml"]


def test_parse_manifest_joins_multiple_creators() -> None:
    raw = _opf(
        items=[("c1", "one.xhtml")],
        spine=["c1"],
        metadata="<dc:creator>First</dc:creator><dc:creator>Second</dc:creator>",
    )

    assert parse_manifest(raw).metadata.author == "First, Second"


def test_parse_manifest_decodes_hrefs_and_keeps_linear_flag() -> None:
    raw = b"""<?xml version="1.0"?>
<package xmlns="http://www.idpf.org/2007/opf">
  <manifest>
    <item id="a" href="Text/Chapter%201.xhtml#start" media-type="application/xhtml+xml"/>
    <item id="b" href="./notes.xhtml" media-type="application/xhtml+xml"/>
  </manifest>
  <spine><itemref idref="a"/><itemref idref="b" linear="no"/></spine>
</package>"""

    document = parse_manifest(raw)

    assert document.chapter_paths == ["Text/Chapter 1.xhtml", "notes.xhtml"]
    assert [entry.linear for entry in document.spine] == [True, False]


def test_parse_manifest_rejects_undeclared_reference() -> None:
    raw = _opf(items=[("c1", "one.xhtml")], spine=["c1", "ghost"])

    with pytest.raises(ManifestError) as excinfo:
        parse_manifest(raw)

    assert excinfo.value.kind is ManifestErrorKind.MISSING_REFERENCE
    assert excinfo.value.reference == "ghost"


@pytest.mark.parametrize("raw", [b"", b"<package><manifest>", b"not xml at all"])
def test_parse_manifest_rejects_malformed_xml(raw: bytes) -> None:
    with pytest.raises(ManifestError) as excinfo:
        parse_manifest(raw)

    assert excinfo.value.kind is ManifestErrorKind.MALFORMED


def test_parse_manifest_requires_spine() -> None:
    raw = b'<package xmlns="http://www.idpf.org/2007/opf"><manifest/></package>'

    with pytest.raises(ManifestError) as excinfo:
        parse_manifest(raw)

    assert excinfo.value.kind is ManifestErrorKind.MALFORMED


def test_read_manifest_reports_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ManifestError) as excinfo:
        read_manifest(tmp_path / "missing.opf")

    assert excinfo.value.kind is ManifestErrorKind.NOT_FOUND


_IDS = st.text(alphabet="abcdefghij", min_size=1, max_size=6)


@given(ids=st.lists(_IDS, min_size=1, max_size=12, unique=True), data=st.data())
def test_spine_order_and_length_match_declaration(ids: list[str], data: st.DataObject) -> None:
    spine = data.draw(st.lists(st.sampled_from(ids), min_size=0, max_size=20))
    shuffled = data.draw(st.permutations(ids))
    raw = _opf(items=[(item_id, f"text/{item_id}.xhtml") for item_id in shuffled], spine=spine)

    document = parse_manifest(raw)

    assert document.chapter_paths == [f"text/{idref}.xhtml" for idref in spine]


@given(ids=st.lists(_IDS, min_size=1, max_size=8, unique=True), ghost=st.text(alphabet="klmnop", min_size=1, max_size=4))
def test_undeclared_reference_always_fails(ids: list[str], ghost: str) -> None:
    raw = _opf(items=[(item_id, f"{item_id}.xhtml") for item_id in ids], spine=ids + [ghost])

    with pytest.raises(ManifestError) as excinfo:
        parse_manifest(raw)

    assert excinfo.value.kind is ManifestErrorKind.MISSING_REFERENCE
