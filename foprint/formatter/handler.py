"""SAX content handler building the formatting-object tree."""
from __future__ import annotations

import logging
from typing import Callable, List, Optional, Tuple
from xml.sax.handler import ContentHandler

from ..exceptions import FormattingError
from .tree import FO_NAMESPACE, KNOWN_ELEMENTS, FoNode

LOGGER = logging.getLogger(__name__)


def _attribute_key(name: Tuple[Optional[str], str]) -> str:
    namespace, local = name
    return local if not namespace else f"{{{namespace}}}{local}"


class FoTreeBuilder(ContentHandler):
    """
    Receives SAX events for an XSL-FO document and hands the finished tree to
    ``on_complete`` when the document ends.

    Both namespace-aware (``startElementNS``) and plain (``startElement``)
    events are accepted. With ``strict`` set, the first element must be
    ``fo:root`` and unknown ``fo:`` elements are rejected.
    """

    def __init__(self, on_complete: Callable[[FoNode], None], *, strict: bool = False) -> None:
        super().__init__()
        self._on_complete = on_complete
        self.strict = strict
        self.root: Optional[FoNode] = None
        self._stack: List[FoNode] = []
        self._prefixes: dict = {}

    def startDocument(self) -> None:
        self.root = None
        self._stack = []

    def startPrefixMapping(self, prefix, uri) -> None:
        self._prefixes[prefix] = uri

    def endPrefixMapping(self, prefix) -> None:
        self._prefixes.pop(prefix, None)

    def startElementNS(self, name, qname, attrs) -> None:
        namespace, local = name
        attributes = {_attribute_key(key): value for key, value in attrs.items()}
        self._open(namespace, local, attributes)

    def endElementNS(self, name, qname) -> None:
        self._close()

    def startElement(self, name, attrs) -> None:
        # Without namespace processing the declarations arrive as attributes.
        for key, value in attrs.items():
            if key == "xmlns":
                self._prefixes[None] = value
            elif key.startswith("xmlns:"):
                self._prefixes[key[len("xmlns:"):]] = value
        prefix, _, local = name.rpartition(":")
        namespace = self._prefixes.get(prefix or None)
        attributes = {key: value for key, value in attrs.items() if not key.startswith("xmlns")}
        self._open(namespace, local, attributes)

    def endElement(self, name) -> None:
        self._close()

    def characters(self, content: str) -> None:
        if self._stack:
            self._stack[-1].append_text(content)

    def endDocument(self) -> None:
        if self.root is None:
            raise FormattingError("The formatter received a document without elements")
        self._on_complete(self.root)

    def _open(self, namespace: Optional[str], local: str, attributes: dict) -> None:
        node = FoNode(namespace, local, attributes)
        if self.root is None:
            if self.strict and not node.is_element("root"):
                raise FormattingError(
                    f"First element must be the fo:root formatting object, found {local!r}"
                )
            self.root = node
        elif self._stack:
            self._stack[-1].children.append(node)

        if self.strict:
            if namespace != FO_NAMESPACE:
                raise FormattingError(f"Element {local!r} is not in the XSL-FO namespace")
            if local not in KNOWN_ELEMENTS:
                raise FormattingError(f"Unknown formatting object fo:{local}")
        self._stack.append(node)

    def _close(self) -> None:
        if not self._stack:
            raise FormattingError("Unbalanced end of element")
        self._stack.pop()
