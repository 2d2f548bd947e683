"""Package manifest discovery and reading-order resolution."""

from __future__ import annotations

from collections import deque
import logging
import os
from pathlib import Path
import posixpath
from urllib.parse import unquote

from lxml import etree

from pagewise.ingestion.errors import ManifestError, ManifestErrorKind
from pagewise.ingestion.models import ManifestDocument, PackageMetadata, SpineEntry
from pagewise.ingestion.normalization import normalize_whitespace

logger = logging.getLogger(__name__)

CONTAINER_PATH = Path("META-INF") / "container.xml"
PACKAGE_MEDIA_TYPE = "application/oebps-package+xml"
PREFERRED_MANIFEST_NAME = "content.opf"
MANIFEST_SUFFIX = ".opf"


def _xml_parser() -> etree.XMLParser:
    return etree.XMLParser(resolve_entities=False, no_network=True, load_dtd=False, huge_tree=False)


def _first_text(nodes: list[object]) -> str | None:
    for node in nodes:
        if hasattr(node, "itertext"):
            text = normalize_whitespace(" ".join(node.itertext()))
        else:
            text = normalize_whitespace(str(node))
        if text:
            return text
    return None


def _inside(root: Path, candidate: Path) -> bool:
    try:
        return candidate.resolve().is_relative_to(root)
    except OSError:
        return False


def _manifest_from_container(root: Path) -> Path | None:
    container = root / CONTAINER_PATH
    try:
        raw = container.read_bytes()
    except OSError:
        return None

    try:
        tree = etree.fromstring(raw, parser=_xml_parser())
    except etree.XMLSyntaxError as exc:
        logger.warning("Unreadable container pointer %s: %s", container, exc)
        return None

    rootfiles = tree.xpath("//*[local-name()='rootfile']")
    preferred = [node for node in rootfiles if node.get("media-type") == PACKAGE_MEDIA_TYPE]
    for node in preferred + [node for node in rootfiles if node not in preferred]:
        full_path = unquote(node.get("full-path") or "").strip()
        if not full_path:
            continue
        candidate = root / full_path
        if _inside(root, candidate) and candidate.is_file():
            return candidate
        logger.warning("Container points at missing manifest %s", full_path)
    return None


def _search_manifest(root: Path, max_depth: int) -> Path | None:
    pending: deque[tuple[Path, int]] = deque([(root, 0)])
    while pending:
        directory, depth = pending.popleft()
        try:
            entries = sorted(os.scandir(directory), key=lambda entry: entry.name)
        except OSError:
            continue

        files = [
            Path(entry.path)
            for entry in entries
            if entry.name.lower().endswith(MANIFEST_SUFFIX) and entry.is_file(follow_symlinks=True)
        ]
        files = [path for path in files if _inside(root, path)]
        files.sort(key=lambda path: (path.name.lower() != PREFERRED_MANIFEST_NAME, path.name))
        if files:
            return files[0]

        if depth >= max_depth:
            continue
        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                pending.append((Path(entry.path), depth + 1))
    return None


def find_manifest(root_dir: str | Path, *, max_depth: int = 4) -> Path | None:
    """Locate the package manifest under *root_dir*.

    The container pointer file wins; otherwise a breadth-first search bounded
    by *max_depth* looks for ``content.opf`` or any ``*.opf`` file. Symbolic
    links to directories are never followed. Returns ``None`` when nothing
    is found.
    """

    root = Path(root_dir).resolve()
    manifest = _manifest_from_container(root)
    if manifest is not None:
        return manifest

    manifest = _search_manifest(root, max_depth)
    if manifest is None:
        logger.warning("No package manifest found under %s", root)
    return manifest


def _normalize_href(href: str) -> str:
    path = unquote(href.split("#", 1)[0]).strip()
    return posixpath.normpath(path) if path else ""


def _extract_metadata(tree: etree._Element) -> PackageMetadata:
    title = _first_text(tree.xpath("//*[local-name()='metadata']/*[local-name()='title']"))

    creators: list[str] = []
    for node in tree.xpath("//*[local-name()='metadata']/*[local-name()='creator']"):
        name = _first_text([node])
        if name and name not in creators:
            creators.append(name)

    language = _first_text(tree.xpath("//*[local-name()='metadata']/*[local-name()='language']"))
    return PackageMetadata(
        title=title,
        author=", ".join(creators) if creators else None,
        language_hint=language,
    )


def _item_table(tree: etree._Element) -> dict[str, tuple[str, str | None]]:
    items: dict[str, tuple[str, str | None]] = {}
    for item in tree.xpath("//*[local-name()='manifest']/*[local-name()='item']"):
        item_id = (item.get("id") or "").strip()
        href = _normalize_href(item.get("href") or "")
        if not item_id or not href:
            continue
        if item_id in items:
            logger.warning("Duplicate manifest item id %s; keeping first declaration", item_id)
            continue
        items[item_id] = (href, item.get("media-type"))
    return items


def parse_manifest(xml_bytes: bytes) -> ManifestDocument:
    """Parse manifest XML into the ordered reading sequence and metadata.

    Items and reading order are declared in different sections, so the item
    table is collected first and the spine is resolved against it. Raises
    ``ManifestError`` when the XML is malformed, the spine is absent, or a
    spine entry references an undeclared item.
    """

    try:
        tree = etree.fromstring(xml_bytes, parser=_xml_parser())
    except (etree.XMLSyntaxError, ValueError) as exc:
        raise ManifestError(ManifestErrorKind.MALFORMED, f"Manifest is not well-formed XML: {exc}") from exc
    if tree is None:
        raise ManifestError(ManifestErrorKind.MALFORMED, "Manifest is empty")

    spines = tree.xpath("//*[local-name()='spine']")
    if not spines:
        raise ManifestError(ManifestErrorKind.MALFORMED, "Manifest declares no reading order")

    items = _item_table(tree)
    entries: list[SpineEntry] = []
    for itemref in spines[0].xpath("./*[local-name()='itemref']"):
        idref = (itemref.get("idref") or "").strip()
        if idref not in items:
            raise ManifestError(
                ManifestErrorKind.MISSING_REFERENCE,
                "Reading order references an undeclared resource",
                reference=idref,
            )
        href, media_type = items[idref]
        entries.append(
            SpineEntry(
                idref=idref,
                href=href,
                media_type=media_type,
                linear=(itemref.get("linear") or "yes").strip().lower() != "no",
            )
        )

    return ManifestDocument(spine=tuple(entries), metadata=_extract_metadata(tree))


def read_manifest(path: str | Path) -> ManifestDocument:
    """Read and parse the manifest at *path*."""

    manifest_path = Path(path)
    try:
        raw = manifest_path.read_bytes()
    except OSError as exc:
        raise ManifestError(ManifestErrorKind.NOT_FOUND, f"Cannot read manifest: {exc}") from exc
    return parse_manifest(raw)
