"""
Formatter factory and formatter.

A :class:`Formatter` exposes a SAX :attr:`~Formatter.default_handler`. Once
the handler has seen the end of the document the formatting-object tree is
laid out, the PDF is finished with pypdf and the result is either written to
the output stream or handed page by page to the renderer override of the
user agent.
"""
from __future__ import annotations

import enum
import io
import logging
from pathlib import Path
from typing import BinaryIO, Optional

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PdfReadError

from ..config import FormatterConfig, load_formatter_config
from ..exceptions import FormattingError
from ..utils import time_block
from .agent import UserAgent
from .fonts import FontRegistry
from .handler import FoTreeBuilder
from .layout import DocumentLayout
from .renderers import RenderedPage
from .tree import FoNode

LOGGER = logging.getLogger(__name__)


class OutputFormat(str, enum.Enum):
    """Output formats a formatter can produce."""

    PDF = "application/pdf"
    PREVIEW = "application/x-foprint-preview"


class FormatterFactory:
    """
    Creates formatters sharing one configuration.

    Example:
        >>> factory = FormatterFactory()
        >>> agent = factory.new_user_agent()
        >>> with open("out.pdf", "wb") as out:
        ...     formatter = factory.new_formatter(OutputFormat.PDF, agent, out)
    """

    def __init__(self, config: Optional[FormatterConfig] = None) -> None:
        self.config = config or FormatterConfig()
        self.fonts = FontRegistry()
        self._strict_validation = self.config.strict_validation
        self.fonts.register_all(self.config.fonts)

    @property
    def strict_validation(self) -> bool:
        return self._strict_validation

    @strict_validation.setter
    def strict_validation(self, value: bool) -> None:
        self._strict_validation = bool(value)

    def apply_user_config(self, config_path: Path) -> None:
        """
        Load ``config_path`` and use it for every formatter created afterwards.

        Raises:
            ConfigurationError: If the configuration is invalid or a font cannot be loaded
        """
        config = load_formatter_config(config_path)
        fonts = FontRegistry()
        fonts.register_all(config.fonts)
        self.config = config
        self.fonts = fonts
        self._strict_validation = config.strict_validation

    def new_user_agent(self) -> UserAgent:
        return UserAgent()

    def new_formatter(
        self,
        output_format: OutputFormat,
        user_agent: UserAgent,
        output: Optional[BinaryIO] = None,
    ) -> "Formatter":
        """
        Create a formatter for one document.

        Raises:
            FormattingError: If the output format has no destination
        """
        output_format = OutputFormat(output_format)
        if output_format is OutputFormat.PDF and output is None:
            raise FormattingError("PDF output requires an output stream")
        if output_format is OutputFormat.PREVIEW and user_agent.renderer_override is None:
            raise FormattingError("Preview output requires a renderer override on the user agent")
        return Formatter(self, output_format, user_agent, output)


class Formatter:
    """Formats one XSL-FO document received as SAX events."""

    def __init__(
        self,
        factory: FormatterFactory,
        output_format: OutputFormat,
        user_agent: UserAgent,
        output: Optional[BinaryIO] = None,
    ) -> None:
        self.output_format = output_format
        self.user_agent = user_agent
        self.output = output
        self.page_count: Optional[int] = None
        self._config = factory.config
        self._fonts = factory.fonts
        self._strict = factory.strict_validation
        self.default_handler = FoTreeBuilder(self._format, strict=self._strict)

    def _format(self, root: FoNode) -> None:
        with time_block(LOGGER, f"Formatting {self.output_format.name} output"):
            layout = DocumentLayout(root, self._config, self._fonts, strict=self._strict)
            raw = layout.render(title=self.user_agent.title, author=self.user_agent.author)
            reader, document = self._finish(raw)
            self.page_count = len(reader.pages)
            if self.output_format is OutputFormat.PDF:
                self.output.write(document)
                LOGGER.debug("Wrote %d pages (%d bytes)", self.page_count, len(document))
            else:
                self._render_pages(reader)

    def _finish(self, raw: bytes):
        try:
            writer = PdfWriter(clone_from=PdfReader(io.BytesIO(raw)))
        except PdfReadError as exc:
            raise FormattingError(f"Formatter produced an unreadable PDF: {exc}") from exc
        writer.add_metadata(self.user_agent.pdf_metadata())
        buffer = io.BytesIO()
        writer.write(buffer)
        document = buffer.getvalue()
        return PdfReader(io.BytesIO(document)), document

    def _render_pages(self, reader: PdfReader) -> None:
        renderer = self.user_agent.renderer_override
        renderer.start_renderer()
        try:
            for number, page in enumerate(reader.pages, start=1):
                box = page.mediabox
                renderer.render_page(
                    RenderedPage(number=number, width=float(box.width), height=float(box.height), page=page)
                )
        finally:
            renderer.stop_renderer()
