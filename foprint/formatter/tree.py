"""In-memory representation of the formatting objects received from the transform."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Union

FO_NAMESPACE = "http://www.w3.org/1999/XSL/Format"

KNOWN_ELEMENTS = frozenset(
    {
        "root",
        "layout-master-set",
        "simple-page-master",
        "region-body",
        "region-before",
        "region-after",
        "region-start",
        "region-end",
        "page-sequence-master",
        "single-page-master-reference",
        "repeatable-page-master-reference",
        "repeatable-page-master-alternatives",
        "conditional-page-master-reference",
        "declarations",
        "page-sequence",
        "title",
        "flow",
        "static-content",
        "block",
        "block-container",
        "inline",
        "wrapper",
        "basic-link",
        "character",
        "leader",
        "page-number",
        "page-number-citation",
        "external-graphic",
        "table-and-caption",
        "table-caption",
        "table",
        "table-column",
        "table-header",
        "table-footer",
        "table-body",
        "table-row",
        "table-cell",
        "list-block",
        "list-item",
        "list-item-label",
        "list-item-body",
        "footnote",
        "footnote-body",
        "marker",
        "retrieve-marker",
    }
)


@dataclass
class FoNode:
    """An element of the formatting-object tree."""

    namespace: Optional[str]
    name: str
    attributes: Dict[str, str] = field(default_factory=dict)
    children: List[Union["FoNode", str]] = field(default_factory=list)

    @property
    def is_fo(self) -> bool:
        return self.namespace == FO_NAMESPACE

    def is_element(self, name: str) -> bool:
        return self.namespace == FO_NAMESPACE and self.name == name

    def get(self, attribute: str, default: Optional[str] = None) -> Optional[str]:
        return self.attributes.get(attribute, default)

    def elements(self, name: Optional[str] = None) -> Iterator["FoNode"]:
        for child in self.children:
            if isinstance(child, FoNode) and (name is None or child.is_element(name)):
                yield child

    def find(self, name: str) -> Optional["FoNode"]:
        return next(self.elements(name), None)

    def text(self) -> str:
        return "".join(
            child if isinstance(child, str) else child.text() for child in self.children
        )

    def append_text(self, content: str) -> None:
        if self.children and isinstance(self.children[-1], str):
            self.children[-1] += content
        else:
            self.children.append(content)

    def __repr__(self) -> str:
        prefix = "fo:" if self.is_fo else ""
        return f"<{prefix}{self.name} children={len(self.children)}>"
