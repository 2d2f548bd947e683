"""Single-pass markup to render-tree conversion tolerant of malformed input."""

from __future__ import annotations

from dataclasses import dataclass, field
from html.parser import HTMLParser
import logging
import threading
from typing import Mapping

from pagewise.config import DEFAULT_END_TAG_LOOKBACK, DEFAULT_RENDER_MAX_DEPTH
from pagewise.ingestion.errors import ConversionWarning, ConversionWarningKind
from pagewise.ingestion.models import Chapter
from pagewise.render.nodes import BLOCK_KINDS, NodeKind, RenderNode
from pagewise.render.tags import STRUCTURAL_TERMINATORS, TAG_RULES, TRANSPARENT, TagRule

logger = logging.getLogger(__name__)

_IMAGE_SOURCE_ATTRS = ("src", "xlink:href", "href")


def _local_name(raw: str) -> str:
    return raw.rsplit(":", 1)[-1].lower()


def _parse_attrs(raw: list[tuple[str, str | None]]) -> dict[str, str]:
    attrs: dict[str, str] = {}
    for name, value in raw:
        attrs.setdefault(name.lower(), value or "")
    return attrs


@dataclass(slots=True)
class _Draft:
    kind: NodeKind
    depth: int
    level: int | None = None
    ordered: bool | None = None
    source: str | None = None
    alt: str | None = None
    text: list[str] | None = None
    children: list["_Draft"] = field(default_factory=list)

    def freeze(self) -> RenderNode:
        if self.kind is NodeKind.TEXT:
            return RenderNode(kind=NodeKind.TEXT, text="".join(self.text or ()))
        return RenderNode(
            kind=self.kind,
            children=tuple(child.freeze() for child in self.children),
            level=self.level,
            ordered=self.ordered,
            source=self.source,
            alt=self.alt,
        )


@dataclass(slots=True)
class _Frame:
    tag: str
    target: _Draft
    node: _Draft | None


@dataclass(frozen=True, slots=True)
class ConversionResult:
    tree: RenderNode
    warnings: tuple[ConversionWarning, ...] = ()


def _is_whitespace_draft(draft: _Draft) -> bool:
    return draft.kind is NodeKind.TEXT and "".join(draft.text or ()).isspace()


class _TreeBuilder:
    def __init__(self, rules: Mapping[str, TagRule], max_depth: int, lookback: int) -> None:
        self._rules = rules
        self._max_depth = max_depth
        self._lookback = lookback
        self.root = _Draft(NodeKind.DOCUMENT, depth=1)
        self.warnings: list[ConversionWarning] = []
        self._stack: list[_Frame] = []
        self._skip_tag: str | None = None
        self._skip_nesting = 0

    @property
    def _target(self) -> _Draft:
        return self._stack[-1].target if self._stack else self.root

    def _warn(self, kind: ConversionWarningKind, tag: str, detail: str) -> None:
        self.warnings.append(ConversionWarning(kind=kind, tag=tag, detail=detail))

    def _overflow_target(self, target: _Draft) -> _Draft:
        if target.kind is NodeKind.UNKNOWN:
            return target
        if target.children and target.children[-1].kind is NodeKind.UNKNOWN:
            return target.children[-1]
        overflow = _Draft(NodeKind.UNKNOWN, depth=target.depth + 1)
        target.children.append(overflow)
        return overflow

    def _attach(self, draft: _Draft) -> _Draft | None:
        """Attach a new element draft; returns ``None`` when depth is exhausted."""

        target = self._target
        if target.kind is NodeKind.UNKNOWN or target.depth + 1 >= self._max_depth:
            return None
        draft.depth = target.depth + 1
        if draft.kind in BLOCK_KINDS and target.children and _is_whitespace_draft(target.children[-1]):
            target.children.pop()
        target.children.append(draft)
        return draft

    def text(self, value: str) -> None:
        if not value or self._skip_tag is not None:
            return
        target = self._target
        last = target.children[-1] if target.children else None
        if value.isspace():
            # dropped at a block's start and after a block; kept between inline runs
            if last is None and target.kind in BLOCK_KINDS:
                return
            if last is not None and last.kind in BLOCK_KINDS:
                return
        if last is not None and last.kind is NodeKind.TEXT:
            last.text.append(value)
            return
        target.children.append(_Draft(NodeKind.TEXT, depth=target.depth + 1, text=[value]))

    def start(self, raw_tag: str, raw_attrs: list[tuple[str, str | None]], self_closing: bool = False) -> None:
        tag = _local_name(raw_tag)

        if self._skip_tag is not None:
            if tag == self._skip_tag and not self_closing:
                self._skip_nesting += 1
            elif tag in STRUCTURAL_TERMINATORS.get(self._skip_tag, ()):
                self._skip_tag = None
                self._skip_nesting = 0
            if self._skip_tag is not None:
                return

        rule = self._rules.get(tag)
        if rule is None:
            self._warn(ConversionWarningKind.UNSUPPORTED_TAG, tag, "Unsupported tag flattened into parent")
            rule = TRANSPARENT

        if rule.structural_only:
            if not self_closing:
                self._skip_tag = tag
                self._skip_nesting = 1
            return

        self._implicit_close(rule)

        if rule.void or self_closing:
            if rule.kind in (NodeKind.IMAGE, NodeKind.LINE_BREAK):
                leaf = self._leaf(rule, _parse_attrs(raw_attrs))
                if self._attach(leaf) is None:
                    overflow = self._overflow_target(self._target)
                    leaf.depth = overflow.depth + 1
                    overflow.children.append(leaf)
            return

        node: _Draft | None = None
        if rule.kind is not None:
            node = self._attach(_Draft(rule.kind, depth=0, level=rule.level, ordered=rule.ordered))
            if node is None:
                self._stack.append(_Frame(tag=tag, target=self._overflow_target(self._target), node=None))
                return
        self._stack.append(_Frame(tag=tag, target=node or self._target, node=node))

    def _leaf(self, rule: TagRule, attrs: dict[str, str]) -> _Draft:
        if rule.kind is NodeKind.IMAGE:
            source = next((attrs[name] for name in _IMAGE_SOURCE_ATTRS if attrs.get(name)), None)
            return _Draft(NodeKind.IMAGE, depth=0, source=source, alt=attrs.get("alt"))
        return _Draft(NodeKind.LINE_BREAK, depth=0)

    def _implicit_close(self, rule: TagRule) -> None:
        if not rule.closes:
            return
        closed = 0
        while self._stack and closed < self._lookback and self._stack[-1].tag in rule.closes:
            self._stack.pop()
            closed += 1

    def end(self, raw_tag: str) -> None:
        tag = _local_name(raw_tag)

        if self._skip_tag is not None:
            if tag == self._skip_tag:
                self._skip_nesting -= 1
                if self._skip_nesting == 0:
                    self._skip_tag = None
            return

        rule = self._rules.get(tag)
        if rule is not None and (rule.void or rule.structural_only):
            return

        floor = max(len(self._stack) - self._lookback, 0)
        for position in range(len(self._stack) - 1, floor - 1, -1):
            if self._stack[position].tag == tag:
                if position != len(self._stack) - 1:
                    skipped = ", ".join(frame.tag for frame in self._stack[position + 1 :])
                    self._warn(ConversionWarningKind.MALFORMED_MARKUP, tag, f"Auto-closed unclosed tags: {skipped}")
                del self._stack[position:]
                return

        self._warn(ConversionWarningKind.MALFORMED_MARKUP, tag, "Closing tag without matching open tag ignored")

    def finish(self) -> RenderNode:
        unclosed = [frame.tag for frame in self._stack if frame.node is not None]
        if unclosed:
            self._warn(ConversionWarningKind.MALFORMED_MARKUP, unclosed[-1], f"{len(unclosed)} tag(s) closed at end of input")
        self._stack.clear()
        return self.root.freeze()


class _MarkupParser(HTMLParser):
    """Forward tokenizer events to a ``_TreeBuilder`` without rebalancing."""

    def __init__(self, builder: _TreeBuilder) -> None:
        super().__init__(convert_charrefs=True)
        self._builder = builder

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self._builder.start(tag, attrs)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self._builder.start(tag, attrs, self_closing=True)

    def handle_endtag(self, tag: str) -> None:
        self._builder.end(tag)

    def handle_data(self, data: str) -> None:
        self._builder.text(data)

    def unknown_decl(self, data: str) -> None:
        if data.startswith("CDATA["):
            self._builder.text(data[len("CDATA[") :])

    def handle_comment(self, data: str) -> None:
        # newer parsers report CDATA sections in HTML content as bogus comments
        if data.startswith("[CDATA[") and data.endswith("]]"):
            self._builder.text(data[len("[CDATA[") : -2])


class MarkupConverter:
    """Convert chapter markup into a ``RenderNode`` tree.

    Tags are dispatched through ``TAG_RULES``. Unknown tags are flattened,
    stray closing tags close the innermost open tag of the same name found
    within ``end_tag_lookback`` frames or are ignored, and elements nested
    beyond ``max_depth`` collapse into a single ``UNKNOWN`` node holding
    their text.
    """

    def __init__(
        self,
        *,
        max_depth: int = DEFAULT_RENDER_MAX_DEPTH,
        end_tag_lookback: int = DEFAULT_END_TAG_LOOKBACK,
        rules: Mapping[str, TagRule] | None = None,
    ) -> None:
        if max_depth < 2:
            raise ValueError("max_depth must be >= 2")
        if end_tag_lookback < 1:
            raise ValueError("end_tag_lookback must be >= 1")
        self._max_depth = max_depth
        self._lookback = end_tag_lookback
        self._rules = TAG_RULES if rules is None else rules

    def convert(self, markup: str) -> ConversionResult:
        builder = _TreeBuilder(self._rules, self._max_depth, self._lookback)
        parser = _MarkupParser(builder)
        parser.feed(markup)
        parser.close()

        tree = builder.finish()
        for warning in builder.warnings:
            logger.debug("Conversion warning %s <%s>: %s", warning.kind.value, warning.tag, warning.detail)
        return ConversionResult(tree=tree, warnings=tuple(builder.warnings))


def convert_markup(markup: str, **options: int) -> RenderNode:
    """Convert *markup* with default rules and return only the tree."""

    return MarkupConverter(**options).convert(markup).tree


class ChapterRenderer:
    """Lazy, idempotent per-chapter conversion cache safe for concurrent callers."""

    def __init__(self, converter: MarkupConverter | None = None) -> None:
        self._converter = converter or MarkupConverter()
        self._cache: dict[tuple[int, str], ConversionResult] = {}
        self._lock = threading.Lock()

    def is_rendered(self, chapter: Chapter) -> bool:
        with self._lock:
            return (chapter.index, chapter.href) in self._cache

    def result(self, chapter: Chapter) -> ConversionResult:
        key = (chapter.index, chapter.href)
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached

        converted = self._converter.convert(chapter.raw_markup)
        if converted.warnings:
            logger.debug("Chapter %d (%s) converted with %d warning(s)", chapter.index, chapter.href, len(converted.warnings))
        with self._lock:
            return self._cache.setdefault(key, converted)

    def render(self, chapter: Chapter) -> RenderNode:
        return self.result(chapter).tree
