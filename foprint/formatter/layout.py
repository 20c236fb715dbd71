"""
Page layout
===========

Turns a formatting-object tree into reportlab page templates and flowables
and renders them to PDF bytes.

Every ``fo:page-sequence`` becomes a page template whose frame is the body
region of its page master; ``fo:static-content`` for the before and after
regions is drawn on each page of its sequence. Input that is not rooted in
``fo:root`` is laid out with the default page master, one paragraph per
element containing text.
"""
from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple
from urllib.parse import unquote, urlparse
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY, TA_LEFT, TA_RIGHT
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.utils import ImageReader
from reportlab.platypus import (
    BaseDocTemplate,
    Frame,
    Indenter,
    KeepTogether,
    NextPageTemplate,
    PageBreak,
    PageTemplate,
    Paragraph,
    Spacer,
    Table,
    TableStyle,
)
from reportlab.platypus.doctemplate import LayoutError

from ..config import FormatterConfig
from ..exceptions import FormattingError
from ..units import parse_font_size, parse_length
from .fonts import FontRegistry
from .tree import KNOWN_ELEMENTS, FoNode

LOGGER = logging.getLogger(__name__)

BLOCK_LEVEL = frozenset(
    {"block", "block-container", "table", "table-and-caption", "table-caption", "list-block"}
)
# Formatting objects that produce nothing in the flow.
SILENT = frozenset({"page-number-citation", "marker", "retrieve-marker", "footnote-body", "title"})

_ALIGNMENT = {
    "start": TA_LEFT,
    "left": TA_LEFT,
    "inside": TA_LEFT,
    "center": TA_CENTER,
    "end": TA_RIGHT,
    "right": TA_RIGHT,
    "outside": TA_RIGHT,
    "justify": TA_JUSTIFY,
}
_VALIGN = {"before": "TOP", "auto": "TOP", "center": "MIDDLE", "after": "BOTTOM"}
_PROPORTIONAL_RE = re.compile(r"^\s*proportional-column-width\(\s*([\d.]+)\s*\)\s*$")
_URL_RE = re.compile(r"^\s*url\(\s*['\"]?(.*?)['\"]?\s*\)\s*$")
_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class TextStyle:
    """Inherited text properties."""

    family: str = "sans-serif"
    size: float = 12.0
    bold: bool = False
    italic: bool = False
    color: colors.Color = colors.black
    align: str = "start"
    line_factor: float = 1.2
    line_height: Optional[float] = None
    underline: bool = False
    strike: bool = False
    baseline: str = "baseline"

    @property
    def leading(self) -> float:
        return self.line_height if self.line_height is not None else self.size * self.line_factor


@dataclass(frozen=True)
class PageMaster:
    """Geometry of an ``fo:simple-page-master``; all values in points."""

    name: str
    width: float
    height: float
    margins: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 0.0)
    body_margins: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 0.0)
    before_extent: float = 0.0
    after_extent: float = 0.0
    before_name: str = "xsl-region-before"
    after_name: str = "xsl-region-after"

    def body_rect(self) -> Tuple[float, float, float, float]:
        top, right, bottom, left = self.margins
        b_top, b_right, b_bottom, b_left = self.body_margins
        width = self.width - left - right - b_left - b_right
        height = self.height - top - bottom - b_top - b_bottom
        if width <= 0 or height <= 0:
            raise FormattingError(f"Page master {self.name!r} leaves no room for the body region")
        return left + b_left, bottom + b_bottom, width, height

    def before_rect(self) -> Tuple[float, float, float, float]:
        top, right, _, left = self.margins
        return left, self.height - top - self.before_extent, self.width - left - right, self.before_extent

    def after_rect(self) -> Tuple[float, float, float, float]:
        _, right, bottom, left = self.margins
        return left, bottom, self.width - left - right, self.after_extent


@dataclass
class _Sequence:
    master: PageMaster
    content: List[FoNode]
    statics: Dict[str, FoNode] = field(default_factory=dict)


@dataclass(frozen=True)
class _Context:
    page_number: Optional[int] = None
    in_table: bool = False


def _collapse(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text)


def _attr(value: str) -> str:
    return escape(value, {'"': "&quot;"})


def _hex(color: colors.Color) -> str:
    return "#" + color.hexval()[2:]


def _strip_url(value: str) -> str:
    match = _URL_RE.match(value)
    return match.group(1) if match else value.strip()


class DocumentLayout:
    """Lays out one formatting-object tree."""

    def __init__(
        self,
        root: FoNode,
        config: FormatterConfig,
        fonts: FontRegistry,
        *,
        strict: bool = False,
    ) -> None:
        self.root = root
        self.config = config
        self.fonts = fonts
        self.strict = strict
        self.base_style = TextStyle()
        self._warned: set = set()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def render(self, *, title: Optional[str] = None, author: Optional[str] = None) -> bytes:
        """Lay out the tree and return the PDF bytes."""
        sequences = self._sequences(self._page_masters())
        templates: List[PageTemplate] = []
        story: list = []
        for index, sequence in enumerate(sequences):
            template_id = f"sequence-{index}"
            master = sequence.master
            x, y, width, height = master.body_rect()
            frame = Frame(
                x, y, width, height,
                leftPadding=0, bottomPadding=0, rightPadding=0, topPadding=0,
                id=f"{template_id}-body",
            )
            templates.append(
                PageTemplate(
                    id=template_id,
                    frames=[frame],
                    onPage=self._static_painter(sequence),
                    pagesize=(master.width, master.height),
                )
            )
            if index:
                story.extend([NextPageTemplate(template_id), PageBreak()])
            story.extend(self._block_children(sequence.content, self.base_style, width, _Context()))

        if not story:
            story.append(Spacer(1, 1))

        first = sequences[0].master
        buffer = io.BytesIO()
        document = BaseDocTemplate(
            buffer,
            pagesize=(first.width, first.height),
            pageTemplates=templates,
            title=title or "",
            author=author or "",
        )
        try:
            document.build(story)
        except LayoutError as exc:
            raise FormattingError(f"Layout failed: {exc}") from exc
        return buffer.getvalue()

    def _static_painter(self, sequence: _Sequence):
        master = sequence.master
        regions = (
            (master.before_name, master.before_rect()),
            (master.after_name, master.after_rect()),
        )

        def paint(canvas, document) -> None:
            page_number = canvas.getPageNumber()
            for region_name, rect in regions:
                node = sequence.statics.get(region_name)
                if node is None or rect[3] <= 0:
                    continue
                flowables = self._block_children(
                    node.children, self.base_style, rect[2], _Context(page_number=page_number)
                )
                frame = Frame(
                    *rect,
                    leftPadding=0, bottomPadding=0, rightPadding=0, topPadding=0,
                    showBoundary=0,
                )
                canvas.saveState()
                frame.addFromList(flowables, canvas)
                canvas.restoreState()

        return paint

    # ------------------------------------------------------------------
    # Page masters and sequences
    # ------------------------------------------------------------------
    def _default_master(self) -> PageMaster:
        inch = 72.0
        return PageMaster(
            name="default",
            width=self.config.page_width,
            height=self.config.page_height,
            margins=(0.5 * inch, 0.5 * inch, 0.5 * inch, 0.5 * inch),
        )

    def _box(self, node: Optional[FoNode], prefix: str, reference: float) -> Tuple[float, float, float, float]:
        """Resolve the ``margin`` shorthand and its per-side overrides."""
        if node is None:
            return (0.0, 0.0, 0.0, 0.0)
        values = [0.0, 0.0, 0.0, 0.0]
        shorthand = node.get(prefix)
        if shorthand:
            tokens = [self._length(token, reference=reference) for token in shorthand.split()]
            if len(tokens) == 1:
                values = tokens * 4
            elif len(tokens) == 2:
                values = [tokens[0], tokens[1], tokens[0], tokens[1]]
            elif len(tokens) == 3:
                values = [tokens[0], tokens[1], tokens[2], tokens[1]]
            else:
                values = tokens[:4]
        for index, side in enumerate(("top", "right", "bottom", "left")):
            specific = node.get(f"{prefix}-{side}")
            if specific is not None:
                values[index] = self._length(specific, reference=reference)
        return tuple(values)

    def _page_masters(self) -> Dict[str, PageMaster]:
        if not self.root.is_element("root"):
            return {}
        layout = self.root.find("layout-master-set")
        if layout is None:
            if self.strict:
                raise FormattingError("fo:root requires an fo:layout-master-set")
            return {}

        masters: Dict[str, PageMaster] = {}
        for node in layout.elements("simple-page-master"):
            name = node.get("master-name")
            if not name:
                raise FormattingError("fo:simple-page-master requires a master-name")
            width = self._page_length(node.get("page-width"), self.config.page_width)
            height = self._page_length(node.get("page-height"), self.config.page_height)
            before = node.find("region-before")
            after = node.find("region-after")
            masters[name] = PageMaster(
                name=name,
                width=width,
                height=height,
                margins=self._box(node, "margin", width),
                body_margins=self._box(node.find("region-body"), "margin", width),
                before_extent=self._length(before.get("extent") if before is not None else None),
                after_extent=self._length(after.get("extent") if after is not None else None),
                before_name=(before.get("region-name") if before is not None else None)
                or "xsl-region-before",
                after_name=(after.get("region-name") if after is not None else None)
                or "xsl-region-after",
            )

        for node in layout.elements("page-sequence-master"):
            name = node.get("master-name")
            reference = self._first_master_reference(node)
            if reference not in masters:
                raise FormattingError(
                    f"Page sequence master {name!r} refers to unknown page master {reference!r}"
                )
            masters[name] = replace(masters[reference], name=name)
        return masters

    @staticmethod
    def _first_master_reference(node: FoNode) -> Optional[str]:
        # Only the first referenced simple-page-master is used for every page.
        for child in node.elements():
            if child.name in ("single-page-master-reference", "repeatable-page-master-reference"):
                return child.get("master-reference")
            if child.name == "repeatable-page-master-alternatives":
                conditional = child.find("conditional-page-master-reference")
                if conditional is not None:
                    return conditional.get("master-reference")
        return None

    def _page_length(self, value: Optional[str], default: float) -> float:
        if value is None or value.strip() in ("auto", "indefinite"):
            return default
        return self._length(value, default=default)

    def _sequences(self, masters: Dict[str, PageMaster]) -> List[_Sequence]:
        if not self.root.is_element("root"):
            LOGGER.warning(
                "Input root <%s> is not fo:root; formatting element text with the default page layout",
                self.root.name,
            )
            return [_Sequence(self._default_master(), [self.root])]

        sequences = []
        for node in self.root.elements("page-sequence"):
            reference = node.get("master-reference")
            master = masters.get(reference)
            if master is None:
                if masters or self.strict:
                    raise FormattingError(f"No page master named {reference!r}")
                master = self._default_master()
            flow = node.find("flow")
            statics = {
                static.get("flow-name"): static for static in node.elements("static-content")
            }
            sequences.append(_Sequence(master, list(flow.children) if flow is not None else [], statics))

        if not sequences:
            if self.strict:
                raise FormattingError("fo:root requires at least one fo:page-sequence")
            LOGGER.warning("Document contains no fo:page-sequence; producing an empty page")
            first = next(iter(masters.values()), None) or self._default_master()
            sequences.append(_Sequence(first, []))
        return sequences

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    def _warn_once(self, key: str, message: str, *args) -> None:
        if key not in self._warned:
            self._warned.add(key)
            LOGGER.warning(message, *args)

    def _length(
        self,
        value: Optional[str],
        *,
        style: Optional[TextStyle] = None,
        reference: Optional[float] = None,
        default: float = 0.0,
    ) -> float:
        if value is None or value.strip() == "auto":
            return default
        try:
            return parse_length(
                value,
                font_size=(style or self.base_style).size,
                reference=reference,
                source_resolution=self.config.source_resolution,
            )
        except FormattingError:
            if self.strict:
                raise
            self._warn_once(f"length:{value}", "Ignoring invalid length %r", value)
            return default

    def _space(self, node: FoNode, name: str, style: TextStyle, reference: float) -> float:
        for key in (name, f"{name}.optimum", f"{name}.minimum"):
            if node.get(key) is not None:
                return self._length(node.get(key), style=style, reference=reference)
        return 0.0

    def _color(self, value: str) -> Optional[colors.Color]:
        if value.strip().lower() == "transparent":
            return None
        try:
            return colors.toColor(value.strip())
        except ValueError:
            if self.strict:
                raise FormattingError(f"Invalid color: {value!r}")
            self._warn_once(f"color:{value}", "Ignoring invalid color %r", value)
            return None

    def _style(self, node: FoNode, parent: TextStyle) -> TextStyle:
        attributes = node.attributes
        changes = {}
        if "font-family" in attributes:
            changes["family"] = attributes["font-family"]
        if "font-size" in attributes:
            try:
                changes["size"] = parse_font_size(
                    attributes["font-size"], parent.size, self.config.source_resolution
                )
            except FormattingError:
                if self.strict:
                    raise
                self._warn_once(
                    f"font-size:{attributes['font-size']}",
                    "Ignoring invalid font-size %r",
                    attributes["font-size"],
                )
        if "font-weight" in attributes:
            weight = attributes["font-weight"].strip().lower()
            changes["bold"] = weight in ("bold", "bolder") or (weight.isdigit() and int(weight) >= 600)
        if "font-style" in attributes:
            changes["italic"] = attributes["font-style"].strip().lower() in ("italic", "oblique")
        if "color" in attributes:
            color = self._color(attributes["color"])
            if color is not None:
                changes["color"] = color
        if "text-align" in attributes:
            align = attributes["text-align"].strip().lower()
            if align in _ALIGNMENT:
                changes["align"] = align
        if "line-height" in attributes:
            changes.update(self._line_height(attributes["line-height"], changes.get("size", parent.size)))
        if "text-decoration" in attributes:
            decoration = attributes["text-decoration"].lower()
            changes["underline"] = "underline" in decoration and "no-underline" not in decoration
            changes["strike"] = "line-through" in decoration and "no-line-through" not in decoration
        if "baseline-shift" in attributes:
            changes["baseline"] = attributes["baseline-shift"].strip().lower()
        return replace(parent, **changes) if changes else parent

    def _line_height(self, value: str, size: float) -> dict:
        value = value.strip().lower()
        if value == "normal":
            return {"line_factor": 1.2, "line_height": None}
        try:
            return {"line_factor": float(value), "line_height": None}
        except ValueError:
            pass
        return {"line_height": self._length(value, reference=size, default=size * 1.2)}

    def _font_name(self, style: TextStyle) -> str:
        return self.fonts.resolve(style.family, style.bold, style.italic)

    def _paragraph_style(self, style: TextStyle, **extra) -> ParagraphStyle:
        return ParagraphStyle(
            "fo-block",
            fontName=self._font_name(style),
            fontSize=style.size,
            leading=style.leading,
            autoLeading="max",
            textColor=style.color,
            alignment=_ALIGNMENT[style.align],
            **extra,
        )

    # ------------------------------------------------------------------
    # Block-level content
    # ------------------------------------------------------------------
    def _is_block_level(self, node: FoNode) -> bool:
        if not node.is_fo:
            return True
        return node.name in BLOCK_LEVEL or node.name not in KNOWN_ELEMENTS

    def _block_children(
        self,
        children: Iterable,
        style: TextStyle,
        width: float,
        context: _Context,
        paragraph_options: Optional[dict] = None,
    ) -> list:
        flowables: list = []
        pending: List[str] = []

        def flush() -> None:
            markup = "".join(pending).strip()
            pending.clear()
            if markup:
                flowables.append(
                    Paragraph(markup, self._paragraph_style(style, **(paragraph_options or {})))
                )

        for child in children:
            if isinstance(child, str):
                pending.append(escape(_collapse(child)))
            elif self._is_block_level(child):
                flush()
                flowables.extend(self._block_level(child, style, width, context))
            else:
                pending.append(self._inline(child, style, context))
        flush()
        return flowables

    def _block_level(self, node: FoNode, style: TextStyle, width: float, context: _Context) -> list:
        if node.is_fo:
            if node.name == "table":
                return self._table(node, style, width, context)
            if node.name == "list-block":
                return self._list(node, style, width, context)
            if node.name not in KNOWN_ELEMENTS:
                self._warn_once(
                    f"element:{node.name}",
                    "Unsupported formatting object fo:%s, formatting its content as a block",
                    node.name,
                )
        return self._block(node, style, width, context)

    def _block(self, node: FoNode, parent: TextStyle, width: float, context: _Context) -> list:
        style = self._style(node, parent)
        left = self._length(node.get("start-indent") or node.get("margin-left"), style=style, reference=width)
        right = self._length(node.get("end-indent") or node.get("margin-right"), style=style, reference=width)
        space_before = self._space(node, "space-before", style, width) or self._length(
            node.get("margin-top"), style=style, reference=width
        )
        space_after = self._space(node, "space-after", style, width) or self._length(
            node.get("margin-bottom"), style=style, reference=width
        )
        options = {}
        if node.get("text-indent"):
            options["firstLineIndent"] = self._length(node.get("text-indent"), style=style, reference=width)
        background = node.get("background-color")
        if background:
            color = self._color(background)
            if color is not None:
                options["backColor"] = color
        border = self._border(node, style)
        if border is not None:
            options["borderWidth"], options["borderColor"] = border
            options["borderPadding"] = self._length(node.get("padding"), style=style, reference=width)

        inner = width - left - right
        body = self._block_children(node.children, style, inner, context, options)
        if len(body) == 1 and isinstance(body[0], Paragraph):
            body[0].style.spaceBefore = max(body[0].style.spaceBefore, space_before)
            body[0].style.spaceAfter = max(body[0].style.spaceAfter, space_after)
        elif body:
            if space_before:
                body.insert(0, Spacer(1, space_before))
            if space_after:
                body.append(Spacer(1, space_after))
        elif space_before or space_after:
            body.append(Spacer(1, space_before + space_after))

        keep = node.get("keep-together.within-page") or node.get("keep-together")
        if body and keep == "always" and not context.in_table:
            body = [KeepTogether(body)]
        if body and (left or right):
            body = [Indenter(left, right), *body, Indenter(-left, -right)]

        if not context.in_table:
            if node.get("break-before") in ("page", "odd-page", "even-page"):
                body.insert(0, PageBreak())
            if node.get("break-after") in ("page", "odd-page", "even-page"):
                body.append(PageBreak())
        return body

    def _border(self, node: FoNode, style: TextStyle) -> Optional[Tuple[float, colors.Color]]:
        """Return ``(width, color)`` for the ``border`` properties, or ``None`` without a border."""
        width: Optional[float] = None
        color: colors.Color = colors.black
        border_style = None
        shorthand = node.get("border")
        if shorthand:
            for token in shorthand.split():
                lowered = token.lower()
                if lowered in ("none", "hidden", "solid", "dotted", "dashed", "double", "groove", "ridge", "inset", "outset"):
                    border_style = lowered
                elif lowered in ("thin", "medium", "thick"):
                    width = {"thin": 0.5, "medium": 1.0, "thick": 2.0}[lowered]
                elif lowered[0].isdigit() or lowered[0] == ".":
                    width = self._length(token, style=style)
                else:
                    color = self._color(token) or color
        if node.get("border-style"):
            border_style = node.get("border-style").strip().lower()
        if node.get("border-width"):
            width = self._length(node.get("border-width"), style=style)
        if node.get("border-color"):
            color = self._color(node.get("border-color")) or color
        if border_style in (None, "none", "hidden"):
            return None
        return (width if width is not None else 1.0), color

    # ------------------------------------------------------------------
    # Inline content
    # ------------------------------------------------------------------
    def _inline(self, node: FoNode, parent: TextStyle, context: _Context) -> str:
        name = node.name if node.is_fo else None
        if name == "page-number":
            if context.page_number is None:
                LOGGER.debug("fo:page-number is only rendered in static content")
                return ""
            return str(context.page_number)
        if name == "character":
            return escape(node.get("character", ""))
        if name == "leader":
            return self._leader(node, parent)
        if name == "external-graphic":
            return self._graphic(node, parent)
        if name in SILENT:
            return ""
        if name == "footnote":
            inline = node.find("inline")
            return self._inline(inline, parent, context) if inline is not None else ""

        style = self._style(node, parent)
        inner = []
        for child in node.children:
            if isinstance(child, str):
                inner.append(escape(_collapse(child)))
            else:
                inner.append(self._inline(child, style, context))
        markup = "".join(inner)

        font_name = self._font_name(style)
        if (font_name, style.size, style.color) != (self._font_name(parent), parent.size, parent.color):
            markup = '<font name="{name}" size="{size:g}" color="{color}">{markup}</font>'.format(
                name=_attr(font_name), size=style.size, color=_hex(style.color), markup=markup
            )
        if style.underline and not parent.underline:
            markup = f"<u>{markup}</u>"
        if style.strike and not parent.strike:
            markup = f"<strike>{markup}</strike>"
        if style.baseline != parent.baseline:
            if style.baseline == "super":
                markup = f"<super>{markup}</super>"
            elif style.baseline == "sub":
                markup = f"<sub>{markup}</sub>"
        if name == "basic-link" and node.get("external-destination"):
            target = _strip_url(node.get("external-destination"))
            markup = f'<a href="{_attr(target)}">{markup}</a>'
        return markup

    def _leader(self, node: FoNode, style: TextStyle) -> str:
        length = self._length(
            node.get("leader-length.optimum") or node.get("leader-length"), style=style, default=12.0
        )
        pattern = (node.get("leader-pattern") or "space").strip().lower()
        if pattern == "dots":
            glyph, advance = ".", style.size * 0.28
        elif pattern == "rule":
            glyph, advance = "_", style.size * 0.56
        else:
            glyph, advance = "&nbsp;", style.size * 0.28
        return glyph * max(1, int(length / advance))

    def _resolve_source(self, src: str) -> Optional[Path]:
        value = _strip_url(src)
        parsed = urlparse(value)
        if parsed.scheme == "file":
            path = Path(unquote(parsed.path))
        elif parsed.scheme and len(parsed.scheme) > 1:
            self._warn_once(f"src:{value}", "Only local images are supported, skipping %s", value)
            return None
        else:
            path = Path(value)
        if not path.is_absolute():
            path = (self.config.base_dir or Path.cwd()) / path
        return path

    def _graphic(self, node: FoNode, style: TextStyle) -> str:
        src = node.get("src")
        path = self._resolve_source(src) if src else None
        if path is None or not path.is_file():
            self._warn_once(f"image:{src}", "Image not found: %s", src)
            return ""
        try:
            pixel_width, pixel_height = ImageReader(str(path)).getSize()
        except (OSError, ValueError) as exc:
            self._warn_once(f"image:{src}", "Unable to read image %s: %s", path, exc)
            return ""
        scale = 72.0 / self.config.source_resolution
        intrinsic_width, intrinsic_height = pixel_width * scale, pixel_height * scale

        width_value = node.get("content-width") or node.get("width")
        height_value = node.get("content-height") or node.get("height")
        width = height = None
        if width_value and width_value not in ("auto", "scale-to-fit"):
            width = self._length(width_value, style=style, reference=intrinsic_width)
        if height_value and height_value not in ("auto", "scale-to-fit"):
            height = self._length(height_value, style=style, reference=intrinsic_height)
        if width is None and height is None:
            width, height = intrinsic_width, intrinsic_height
        elif width is None:
            width = intrinsic_width * height / intrinsic_height
        elif height is None:
            height = intrinsic_height * width / intrinsic_width
        return '<img src="{src}" width="{width:.2f}" height="{height:.2f}"/>'.format(
            src=_attr(str(path)), width=width, height=height
        )

    # ------------------------------------------------------------------
    # Tables and lists
    # ------------------------------------------------------------------
    def _column_widths(self, node: FoNode, style: TextStyle, width: float, count: int) -> List[float]:
        specs: List[Optional[str]] = []
        for column in node.elements("table-column"):
            repeat = int(column.get("number-columns-repeated", "1") or 1)
            specs.extend([column.get("column-width")] * repeat)
        specs.extend([None] * (count - len(specs)))

        fixed: Dict[int, float] = {}
        proportions: Dict[int, float] = {}
        for index, spec in enumerate(specs):
            match = _PROPORTIONAL_RE.match(spec) if spec else None
            if match:
                proportions[index] = float(match.group(1))
            elif spec and spec.strip() != "auto":
                fixed[index] = self._length(spec, style=style, reference=width)
            else:
                proportions[index] = 1.0
        remaining = max(width - sum(fixed.values()), 0.0)
        total = sum(proportions.values())
        if not total:
            proportions = dict.fromkeys(proportions, 1.0)
            total = float(len(proportions))
        return [
            fixed[index] if index in fixed else remaining * proportions[index] / total
            for index in range(len(specs))
        ]

    @staticmethod
    def _rows(section: FoNode) -> List[Tuple[Optional[FoNode], List[FoNode]]]:
        """``(row, cells)`` pairs; ``row`` is ``None`` for cells placed directly in the section."""
        rows: List[Tuple[Optional[FoNode], List[FoNode]]] = [
            (row, list(row.elements("table-cell"))) for row in section.elements("table-row")
        ]
        loose: List[FoNode] = []
        for cell in section.elements("table-cell"):
            loose.append(cell)
            if cell.get("ends-row") == "true":
                rows.append((None, loose))
                loose = []
        if loose:
            rows.append((None, loose))
        return rows

    def _table(self, node: FoNode, parent: TextStyle, width: float, context: _Context) -> list:
        style = self._style(node, parent)
        header = [row for section in node.elements("table-header") for row in self._rows(section)]
        body = [row for section in node.elements("table-body") for row in self._rows(section)]
        footer = [row for section in node.elements("table-footer") for row in self._rows(section)]
        rows = header + body + footer
        if not rows:
            LOGGER.debug("Skipping fo:table without rows")
            return []

        placements: List[Tuple[int, int, int, int, FoNode]] = []
        occupied = set()
        for row_index, (_, cells) in enumerate(rows):
            column = 0
            for cell in cells:
                if cell.get("column-number"):
                    column = int(cell.get("column-number")) - 1
                while (row_index, column) in occupied:
                    column += 1
                colspan = max(1, int(cell.get("number-columns-spanned", "1") or 1))
                rowspan = max(1, int(cell.get("number-rows-spanned", "1") or 1))
                rowspan = min(rowspan, len(rows) - row_index)
                for r in range(row_index, row_index + rowspan):
                    for c in range(column, column + colspan):
                        occupied.add((r, c))
                placements.append((row_index, column, colspan, rowspan, cell))
                column += colspan

        if not placements:
            LOGGER.debug("Skipping fo:table without cells")
            return []
        column_count = max(column + colspan for _, column, colspan, _, _ in placements)
        column_count = max(column_count, sum(
            int(c.get("number-columns-repeated", "1") or 1) for c in node.elements("table-column")
        ))
        widths = self._column_widths(node, style, width, column_count)

        data = [[""] * column_count for _ in rows]
        commands = [
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("LEFTPADDING", (0, 0), (-1, -1), 0),
            ("RIGHTPADDING", (0, 0), (-1, -1), 0),
            ("TOPPADDING", (0, 0), (-1, -1), 0),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 0),
        ]
        table_border = self._border(node, style)
        if table_border is not None:
            commands.append(("BOX", (0, 0), (-1, -1), table_border[0], table_border[1]))
        table_background = node.get("background-color") and self._color(node.get("background-color"))
        if table_background:
            commands.append(("BACKGROUND", (0, 0), (-1, -1), table_background))

        row_styles = []
        for row_index, (row_node, _) in enumerate(rows):
            if row_node is None:
                row_styles.append(style)
                continue
            row_styles.append(self._style(row_node, style))
            row_background = row_node.get("background-color") and self._color(row_node.get("background-color"))
            if row_background:
                commands.append(("BACKGROUND", (0, row_index), (-1, row_index), row_background))

        cell_context = replace(context, in_table=True)
        for row_index, column, colspan, rowspan, cell in placements:
            row_style = row_styles[row_index]
            cell_style = self._style(cell, row_style)
            start, end = (column, row_index), (column + colspan - 1, row_index + rowspan - 1)
            if colspan > 1 or rowspan > 1:
                commands.append(("SPAN", start, end))

            padding = self._box(cell, "padding", width)
            for name, value in zip(("TOPPADDING", "RIGHTPADDING", "BOTTOMPADDING", "LEFTPADDING"), padding):
                if value:
                    commands.append((name, start, end, value))
            border = self._border(cell, cell_style)
            if border is not None:
                commands.append(("BOX", start, end, border[0], border[1]))
            background = cell.get("background-color") and self._color(cell.get("background-color"))
            if background:
                commands.append(("BACKGROUND", start, end, background))
            display_align = (cell.get("display-align") or "before").strip().lower()
            commands.append(("VALIGN", start, end, _VALIGN.get(display_align, "TOP")))

            cell_width = sum(widths[column:column + colspan]) - padding[1] - padding[3]
            content = self._block_children(cell.children, cell_style, max(cell_width, 1.0), cell_context)
            data[row_index][column] = content or ""

        table = Table(data, colWidths=widths, repeatRows=len(header), hAlign="LEFT")
        table.setStyle(TableStyle(commands))
        flowables: list = [table]
        space_before = self._space(node, "space-before", style, width)
        space_after = self._space(node, "space-after", style, width)
        if space_before:
            flowables.insert(0, Spacer(1, space_before))
        if space_after:
            flowables.append(Spacer(1, space_after))
        if not context.in_table and node.get("break-before") in ("page", "odd-page", "even-page"):
            flowables.insert(0, PageBreak())
        return flowables

    def _list(self, node: FoNode, parent: TextStyle, width: float, context: _Context) -> list:
        style = self._style(node, parent)
        label_width = self._length(
            node.get("provisional-distance-between-starts"), style=style, reference=width, default=24.0
        )
        separation = self._length(
            node.get("provisional-label-separation"), style=style, reference=width, default=6.0
        )
        label_width = min(label_width, width)
        body_width = max(width - label_width, 1.0)
        cell_context = replace(context, in_table=True)

        rows = []
        for item in node.elements("list-item"):
            item_style = self._style(item, style)
            label = item.find("list-item-label")
            body = item.find("list-item-body")
            label_flow = (
                self._block_children(
                    label.children, self._style(label, item_style),
                    max(label_width - separation, 1.0), cell_context,
                )
                if label is not None else []
            )
            body_flow = (
                self._block_children(body.children, self._style(body, item_style), body_width, cell_context)
                if body is not None else []
            )
            rows.append([label_flow or "", body_flow or ""])
        if not rows:
            return []

        table = Table(rows, colWidths=[label_width, body_width], hAlign="LEFT")
        table.setStyle(
            TableStyle(
                [
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("LEFTPADDING", (0, 0), (-1, -1), 0),
                    ("RIGHTPADDING", (0, 0), (-1, -1), 0),
                    ("TOPPADDING", (0, 0), (-1, -1), 0),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 0),
                ]
            )
        )
        flowables: list = [table]
        space_before = self._space(node, "space-before", style, width)
        space_after = self._space(node, "space-after", style, width)
        if space_before:
            flowables.insert(0, Spacer(1, space_before))
        if space_after:
            flowables.append(Spacer(1, space_after))
        return flowables
