"""Presentation-independent render tree."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator


class NodeKind(str, Enum):
    DOCUMENT = "document"
    TEXT = "text"
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    EMPHASIS = "emphasis"
    STRONG_EMPHASIS = "strong_emphasis"
    LIST = "list"
    LIST_ITEM = "list_item"
    IMAGE = "image"
    LINE_BREAK = "line_break"
    UNKNOWN = "unknown"


BLOCK_KINDS = frozenset(
    {
        NodeKind.DOCUMENT,
        NodeKind.PARAGRAPH,
        NodeKind.HEADING,
        NodeKind.LIST,
        NodeKind.LIST_ITEM,
    }
)


@dataclass(frozen=True, slots=True)
class RenderNode:
    """One structural element; leaves (text, image, line break) have no children."""

    kind: NodeKind
    children: tuple["RenderNode", ...] = ()
    text: str | None = None
    level: int | None = None
    ordered: bool | None = None
    source: str | None = None
    alt: str | None = None

    @property
    def is_block(self) -> bool:
        return self.kind in BLOCK_KINDS

    def walk(self) -> Iterator["RenderNode"]:
        """Yield nodes depth-first in document order."""

        stack: list[RenderNode] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def plain_text(self) -> str:
        return "".join(node.text or "" for node in self.walk() if node.kind is NodeKind.TEXT)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"kind": self.kind.value}
        if self.text is not None:
            payload["text"] = self.text
        if self.level is not None:
            payload["level"] = self.level
        if self.ordered is not None:
            payload["ordered"] = self.ordered
        if self.source is not None:
            payload["source"] = self.source
        if self.alt is not None:
            payload["alt"] = self.alt
        if self.children:
            payload["children"] = [child.to_dict() for child in self.children]
        return payload
