"""Tag-name to render-node mapping table.

New tag coverage is added here; the converter's control flow never changes.
A rule with ``kind=None`` is transparent: the element itself produces no
node and its children are attached to the enclosing node.
"""

from __future__ import annotations

from dataclasses import dataclass

from pagewise.render.nodes import NodeKind


@dataclass(frozen=True, slots=True)
class TagRule:
    kind: NodeKind | None = None
    level: int | None = None
    ordered: bool | None = None
    void: bool = False
    structural_only: bool = False
    closes: frozenset[str] = frozenset()


_CLOSES_PARAGRAPH = frozenset({"p"})
_CLOSES_ITEM = frozenset({"li", "p"})

TRANSPARENT = TagRule()
TRANSPARENT_BLOCK = TagRule(closes=_CLOSES_PARAGRAPH)
VOID = TagRule(void=True)
STRUCTURAL = TagRule(structural_only=True)

TAG_RULES: dict[str, TagRule] = {
    "p": TagRule(NodeKind.PARAGRAPH, closes=_CLOSES_PARAGRAPH),
    "blockquote": TagRule(NodeKind.PARAGRAPH, closes=_CLOSES_PARAGRAPH),
    "pre": TagRule(NodeKind.PARAGRAPH, closes=_CLOSES_PARAGRAPH),
    **{
        f"h{level}": TagRule(NodeKind.HEADING, level=level, closes=_CLOSES_PARAGRAPH)
        for level in range(1, 7)
    },
    "em": TagRule(NodeKind.EMPHASIS),
    "i": TagRule(NodeKind.EMPHASIS),
    "cite": TagRule(NodeKind.EMPHASIS),
    "dfn": TagRule(NodeKind.EMPHASIS),
    "var": TagRule(NodeKind.EMPHASIS),
    "strong": TagRule(NodeKind.STRONG_EMPHASIS),
    "b": TagRule(NodeKind.STRONG_EMPHASIS),
    "ul": TagRule(NodeKind.LIST, ordered=False, closes=_CLOSES_PARAGRAPH),
    "ol": TagRule(NodeKind.LIST, ordered=True, closes=_CLOSES_PARAGRAPH),
    "li": TagRule(NodeKind.LIST_ITEM, closes=_CLOSES_ITEM),
    "img": TagRule(NodeKind.IMAGE, void=True),
    "image": TagRule(NodeKind.IMAGE, void=True),
    "br": TagRule(NodeKind.LINE_BREAK, void=True),
    "hr": TagRule(NodeKind.LINE_BREAK, void=True, closes=_CLOSES_PARAGRAPH),
    # structural-only: content never reaches the reader
    "head": STRUCTURAL,
    "title": STRUCTURAL,
    "script": STRUCTURAL,
    "style": STRUCTURAL,
    "template": STRUCTURAL,
    # containers flattened into their parent
    **{
        tag: TRANSPARENT_BLOCK
        for tag in (
            "div", "section", "article", "aside", "nav", "header", "footer", "main",
            "figure", "figcaption", "table", "thead", "tbody", "tfoot", "tr", "dl",
            "dt", "dd", "center", "address", "details", "summary",
        )
    },
    **{
        tag: TRANSPARENT
        for tag in (
            "html", "body", "span", "a", "small", "big", "sub", "sup", "u", "s",
            "strike", "del", "ins", "code", "tt", "kbd", "samp", "abbr", "acronym",
            "mark", "q", "label", "font", "td", "th", "caption", "svg", "ruby",
            "rb", "rt", "rp", "bdi", "bdo", "time", "noscript",
        )
    },
    **{
        tag: VOID
        for tag in (
            "meta", "link", "base", "wbr", "col", "area", "input", "source",
            "track", "embed", "param",
        )
    },
}


# start tags that end a structural-only region left unclosed
STRUCTURAL_TERMINATORS: dict[str, frozenset[str]] = {
    "head": frozenset({"body"}),
    "title": frozenset({"body"}),
}
