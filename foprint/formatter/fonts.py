"""Font selection for the formatter."""
from __future__ import annotations

import logging
from typing import Dict, Iterable, Tuple

from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFError, TTFont

from ..config import FontSpec
from ..exceptions import ConfigurationError

LOGGER = logging.getLogger(__name__)

# (regular, bold, italic, bold-italic)
_STANDARD_FAMILIES = {
    "helvetica": ("Helvetica", "Helvetica-Bold", "Helvetica-Oblique", "Helvetica-BoldOblique"),
    "times": ("Times-Roman", "Times-Bold", "Times-Italic", "Times-BoldItalic"),
    "courier": ("Courier", "Courier-Bold", "Courier-Oblique", "Courier-BoldOblique"),
    "symbol": ("Symbol",) * 4,
    "zapfdingbats": ("ZapfDingbats",) * 4,
}

_ALIASES = {
    "sans-serif": "helvetica",
    "sans": "helvetica",
    "arial": "helvetica",
    "serif": "times",
    "times-roman": "times",
    "times new roman": "times",
    "monospace": "courier",
    "courier new": "courier",
}

DEFAULT_FAMILY = "helvetica"


def _variant(bold: bool, italic: bool) -> int:
    return (1 if bold else 0) + (2 if italic else 0)


class FontRegistry:
    """Maps XSL-FO font properties onto reportlab font names."""

    def __init__(self) -> None:
        self._custom: Dict[Tuple[str, bool, bool], str] = {}

    def register(self, spec: FontSpec) -> str:
        """Register a TrueType font and return its reportlab name."""
        suffix = {0: "", 1: "-Bold", 2: "-Italic", 3: "-BoldItalic"}[_variant(spec.bold, spec.italic)]
        font_name = f"{spec.family}{suffix}"
        try:
            pdfmetrics.registerFont(TTFont(font_name, str(spec.path)))
        except (TTFError, OSError) as exc:
            raise ConfigurationError(f"Unable to load font {spec.path}: {exc}") from exc
        self._custom[(spec.family.lower(), spec.bold, spec.italic)] = font_name
        LOGGER.debug("Registered font %s from %s", font_name, spec.path)
        return font_name

    def register_all(self, specs: Iterable[FontSpec]) -> None:
        for spec in specs:
            self.register(spec)

    def resolve(self, family: str, bold: bool = False, italic: bool = False) -> str:
        """
        Pick a font for a ``font-family`` value such as ``"Arial, sans-serif"``.

        The first family that is known wins; unknown families fall back to
        Helvetica.
        """
        for candidate in family.split(","):
            name = candidate.strip().strip("'\"").lower()
            if not name:
                continue
            if (name, bold, italic) in self._custom:
                return self._custom[(name, bold, italic)]
            if (name, False, False) in self._custom:
                return self._custom[(name, False, False)]
            standard = _STANDARD_FAMILIES.get(_ALIASES.get(name, name))
            if standard is not None:
                return standard[_variant(bold, italic)]
        return _STANDARD_FAMILIES[DEFAULT_FAMILY][_variant(bold, italic)]
