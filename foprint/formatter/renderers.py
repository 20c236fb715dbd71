"""Renderers receiving formatted pages instead of a PDF byte stream."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, BinaryIO, List, Optional

from pypdf import PageObject, PdfWriter

if TYPE_CHECKING:  # pragma: no cover
    from .agent import UserAgent

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderedPage:
    """
    A single formatted page.

    Attributes:
        number: 1-based page number
        width: Page width in points
        height: Page height in points
        page: The page as a pypdf page object
    """
    number: int
    width: float
    height: float
    page: PageObject

    def extract_text(self) -> str:
        return self.page.extract_text() or ""


class Renderer(ABC):
    """
    Base class for renderers used for print preview and direct printing.

    The formatter calls :meth:`start_renderer`, then :meth:`render_page` once
    per page in document order, then :meth:`stop_renderer`.
    """

    def __init__(self) -> None:
        self.user_agent: Optional["UserAgent"] = None

    def set_user_agent(self, user_agent: "UserAgent") -> None:
        self.user_agent = user_agent

    def start_renderer(self) -> None:
        """Hook called before the first page."""

    @abstractmethod
    def render_page(self, page: RenderedPage) -> None:
        raise NotImplementedError

    def stop_renderer(self) -> None:
        """Hook called after the last page."""


class PreviewRenderer(Renderer):
    """Collects rendered pages so a viewer can page through them or print them."""

    def __init__(self) -> None:
        super().__init__()
        self.pages: List[RenderedPage] = []

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def start_renderer(self) -> None:
        self.pages = []

    def render_page(self, page: RenderedPage) -> None:
        LOGGER.debug("Preview received page %d (%.0fx%.0fpt)", page.number, page.width, page.height)
        self.pages.append(page)

    def write(self, stream: BinaryIO) -> None:
        """Write the collected pages to ``stream`` as a PDF document."""
        writer = PdfWriter()
        for rendered in self.pages:
            writer.add_page(rendered.page)
        if self.user_agent is not None:
            writer.add_metadata(self.user_agent.pdf_metadata())
        writer.write(stream)
