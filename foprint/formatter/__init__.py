"""
XSL-FO formatting engine.

Receives formatting objects as SAX events and renders them to PDF bytes or to
a :class:`~foprint.formatter.renderers.Renderer`.
"""

from .agent import UserAgent
from .engine import Formatter, FormatterFactory, OutputFormat
from .fonts import FontRegistry
from .handler import FoTreeBuilder
from .layout import DocumentLayout
from .renderers import PreviewRenderer, RenderedPage, Renderer
from .tree import FO_NAMESPACE, FoNode

__all__ = [
    "DocumentLayout",
    "FO_NAMESPACE",
    "FoNode",
    "FoTreeBuilder",
    "FontRegistry",
    "Formatter",
    "FormatterFactory",
    "OutputFormat",
    "PreviewRenderer",
    "RenderedPage",
    "Renderer",
    "UserAgent",
]
