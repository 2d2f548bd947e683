"""Markup to render-tree conversion."""

from .converter import ChapterRenderer, ConversionResult, MarkupConverter, convert_markup
from .nodes import NodeKind, RenderNode

__all__ = [
    "ChapterRenderer",
    "ConversionResult",
    "MarkupConverter",
    "NodeKind",
    "RenderNode",
    "convert_markup",
]
