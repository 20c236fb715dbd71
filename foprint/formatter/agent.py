"""Per-run user agent carrying document metadata and the renderer override."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Dict, Optional

from ..utils import format_pdf_date

if TYPE_CHECKING:  # pragma: no cover
    from .renderers import Renderer


@dataclass
class UserAgent:
    """
    Metadata and options for a single formatter invocation.

    Attributes:
        producer: Application that produced the document
        creator: Application that created the source document
        author: Document author
        title: Document title
        keywords: Keywords written into the document information
        creation_date: Creation timestamp
        renderer_override: Renderer receiving pages in preview mode
    """
    producer: Optional[str] = None
    creator: Optional[str] = None
    author: Optional[str] = None
    title: Optional[str] = None
    keywords: Optional[str] = None
    creation_date: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))
    renderer_override: Optional["Renderer"] = None

    def pdf_metadata(self) -> Dict[str, str]:
        """Return the document information dictionary for this agent."""
        metadata = {"/CreationDate": format_pdf_date(self.creation_date)}
        for key, value in (
            ("/Producer", self.producer),
            ("/Creator", self.creator),
            ("/Author", self.author),
            ("/Title", self.title),
            ("/Keywords", self.keywords),
        ):
            if value:
                metadata[key] = value
        return metadata
