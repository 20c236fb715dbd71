"""Length and font-size parsing for XSL-FO property values."""
from __future__ import annotations

import re
from typing import Optional

from reportlab.lib.units import cm, inch, mm

from .exceptions import FormattingError

_LENGTH_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+))\s*([a-z%]*)\s*$", re.IGNORECASE)

_ABSOLUTE_UNITS = {
    "": 1.0,
    "pt": 1.0,
    "pc": 12.0,
    "in": inch,
    "cm": cm,
    "mm": mm,
}

# CSS2 absolute-size keywords, relative to the 12pt "medium" size.
FONT_SIZE_KEYWORDS = {
    "xx-small": 7.0,
    "x-small": 8.3,
    "small": 10.0,
    "medium": 12.0,
    "large": 14.4,
    "x-large": 17.3,
    "xx-large": 20.7,
}

FONT_SIZE_STEP = 1.2


def parse_length(
    value: str,
    *,
    font_size: float = 12.0,
    reference: Optional[float] = None,
    source_resolution: float = 72.0,
) -> float:
    """
    Convert an XSL-FO length to points.

    Args:
        value: Length expression such as ``"10pt"``, ``"2.5cm"`` or ``"50%"``
        font_size: Font size in points used to resolve ``em`` lengths
        reference: Length in points that percentages refer to
        source_resolution: Pixels per inch used to resolve ``px`` lengths

    Returns:
        The length in points

    Raises:
        FormattingError: If the value is not a supported length
    """
    match = _LENGTH_RE.match(value or "")
    if not match:
        raise FormattingError(f"Invalid length: {value!r}")
    number = float(match.group(1))
    unit = match.group(2).lower()

    if unit in _ABSOLUTE_UNITS:
        return number * _ABSOLUTE_UNITS[unit]
    if unit == "px":
        return number * 72.0 / source_resolution
    if unit == "em":
        return number * font_size
    if unit == "%":
        if reference is None:
            raise FormattingError(f"Percentage {value!r} is not allowed here")
        return number * reference / 100.0
    raise FormattingError(f"Unsupported length unit {unit!r} in {value!r}")


def parse_font_size(value: str, parent_size: float, source_resolution: float = 72.0) -> float:
    """Resolve an XSL-FO ``font-size`` against the inherited size."""
    keyword = value.strip().lower()
    if keyword in FONT_SIZE_KEYWORDS:
        return FONT_SIZE_KEYWORDS[keyword]
    if keyword == "larger":
        return parent_size * FONT_SIZE_STEP
    if keyword == "smaller":
        return parent_size / FONT_SIZE_STEP
    return parse_length(
        value,
        font_size=parent_size,
        reference=parent_size,
        source_resolution=source_resolution,
    )
