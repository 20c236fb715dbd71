"""
Configuration
=============

Application settings and the optional formatter user configuration.

The formatter configuration lives in a file named ``fop.xconf`` inside the
output-sheets directory. It is looked up again for every task so edits take
effect without restarting the application.

Example ``fop.xconf``::

    <fop version="1.0">
      <strict-validation>false</strict-validation>
      <source-resolution>96</source-resolution>
      <default-page-settings width="210mm" height="297mm"/>
      <renderers>
        <renderer mime="application/pdf">
          <fonts>
            <font embed-url="fonts/DejaVuSans.ttf">
              <font-triplet name="DejaVu Sans" style="normal" weight="normal"/>
            </font>
          </fonts>
        </renderer>
      </renderers>
    </fop>
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional, Tuple
from urllib.parse import unquote, urlparse

from lxml import etree

from .exceptions import ConfigurationError, FormattingError
from .transform import TransformerFactory
from .units import parse_length

LOGGER = logging.getLogger(__name__)

ENV_OUTPUT_SHEETS_DIR = "FOPRINT_OUTPUT_SHEETS_DIR"
DEFAULT_CONFIG_FILE_NAME = "fop.xconf"
DEFAULT_PRODUCER = "foprint"

DEFAULT_PAGE_WIDTH = 8.26 * 72
DEFAULT_PAGE_HEIGHT = 11.0 * 72

_TRUE = {"true", "yes", "1", "on"}
_FALSE = {"false", "no", "0", "off"}


@dataclass(frozen=True)
class Settings:
    """
    Application-level settings handed to every transform task.

    Attributes:
        output_sheets_dir: Directory searched for the formatter configuration
        config_file_name: Name of the formatter configuration file
        producer: Producer name written into generated documents
        transformer_factory: Factory used to build transformers
    """
    output_sheets_dir: Optional[Path] = None
    config_file_name: str = DEFAULT_CONFIG_FILE_NAME
    producer: str = DEFAULT_PRODUCER
    transformer_factory: TransformerFactory = field(default_factory=TransformerFactory)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "Settings":
        """Create settings from ``FOPRINT_OUTPUT_SHEETS_DIR`` plus explicit overrides."""
        environ = os.environ if environ is None else environ
        directory = environ.get(ENV_OUTPUT_SHEETS_DIR)
        if directory and "output_sheets_dir" not in overrides:
            overrides["output_sheets_dir"] = Path(directory).expanduser()
        return cls(**overrides)

    def user_config_path(self) -> Optional[Path]:
        if self.output_sheets_dir is None:
            return None
        return Path(self.output_sheets_dir) / self.config_file_name


@dataclass(frozen=True)
class FontSpec:
    """A TrueType font registered from the user configuration."""

    path: Path
    family: str
    bold: bool = False
    italic: bool = False


@dataclass(frozen=True)
class FormatterConfig:
    """
    Formatter settings, either defaults or loaded from ``fop.xconf``.

    Attributes:
        strict_validation: Reject input that is not valid XSL-FO
        base_dir: Directory relative resources (images) are resolved against
        source_resolution: Pixels per inch used for ``px`` lengths
        page_width: Page width in points when no page master applies
        page_height: Page height in points when no page master applies
        fonts: Fonts to register before formatting
        source: File the configuration was loaded from
    """
    strict_validation: bool = False
    base_dir: Optional[Path] = None
    source_resolution: float = 72.0
    page_width: float = DEFAULT_PAGE_WIDTH
    page_height: float = DEFAULT_PAGE_HEIGHT
    fonts: Tuple[FontSpec, ...] = ()
    source: Optional[Path] = None


def _parse_bool(text: Optional[str], element: str, default: bool) -> bool:
    if text is None:
        return default
    value = text.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigurationError(f"<{element}> must be true or false, got {text!r}")


def _resolve_url(value: str, base: Path) -> Path:
    parsed = urlparse(value)
    if parsed.scheme == "file":
        candidate = Path(unquote(parsed.path))
    elif parsed.scheme and len(parsed.scheme) > 1:
        raise ConfigurationError(f"Unsupported URL scheme in {value!r}")
    else:
        candidate = Path(value)
    if not candidate.is_absolute():
        candidate = base / candidate
    return candidate.resolve()


def _length(value: Optional[str], name: str, default: float, resolution: float) -> float:
    if value is None:
        return default
    try:
        return parse_length(value, source_resolution=resolution)
    except FormattingError as exc:
        raise ConfigurationError(f"Invalid {name} in default-page-settings: {value!r}") from exc


def _load_fonts(root: etree._Element, font_base: Path) -> Tuple[FontSpec, ...]:
    fonts = []
    for font in root.iter("font"):
        embed_url = font.get("embed-url")
        if not embed_url:
            raise ConfigurationError(f"<font> on line {font.sourceline} has no embed-url")
        path = _resolve_url(embed_url, font_base)
        if not path.is_file():
            raise ConfigurationError(f"Font file not found: {path}")
        triplets = font.findall("font-triplet")
        if not triplets:
            raise ConfigurationError(f"<font> for {embed_url} has no font-triplet")
        for triplet in triplets:
            name = triplet.get("name")
            if not name:
                raise ConfigurationError(f"font-triplet for {embed_url} has no name")
            weight = (triplet.get("weight") or "normal").strip().lower()
            style = (triplet.get("style") or "normal").strip().lower()
            bold = weight == "bold" or (weight.isdigit() and int(weight) >= 600)
            fonts.append(
                FontSpec(path=path, family=name, bold=bold, italic=style in {"italic", "oblique"})
            )
    return tuple(fonts)


def load_formatter_config(config_path: Path) -> FormatterConfig:
    """
    Load the formatter configuration from ``config_path``.

    Args:
        config_path: Path to a ``fop.xconf`` file

    Returns:
        FormatterConfig object

    Raises:
        ConfigurationError: If the file cannot be read or is not a valid configuration
    """
    config_path = Path(config_path)
    try:
        tree = etree.parse(str(config_path))
    except (OSError, etree.XMLSyntaxError) as exc:
        raise ConfigurationError(f"Unable to read configuration {config_path}: {exc}") from exc

    root = tree.getroot()
    if etree.QName(root).localname != "fop":
        raise ConfigurationError(
            f"Configuration root element must be <fop>, found <{etree.QName(root).localname}>"
        )

    config_dir = config_path.resolve().parent
    base_text = root.findtext("base")
    base_dir = _resolve_url(base_text.strip(), config_dir) if base_text else config_dir
    font_base_text = root.findtext("font-base")
    font_base = _resolve_url(font_base_text.strip(), config_dir) if font_base_text else base_dir

    resolution_text = root.findtext("source-resolution")
    try:
        resolution = float(resolution_text) if resolution_text else 72.0
    except ValueError as exc:
        raise ConfigurationError(f"Invalid source-resolution: {resolution_text!r}") from exc
    if resolution <= 0:
        raise ConfigurationError(f"source-resolution must be positive, got {resolution_text!r}")

    page_settings = root.find("default-page-settings")
    width = height = None
    if page_settings is not None:
        width = page_settings.get("width")
        height = page_settings.get("height")

    config = FormatterConfig(
        strict_validation=_parse_bool(root.findtext("strict-validation"), "strict-validation", False),
        base_dir=base_dir,
        source_resolution=resolution,
        page_width=_length(width, "width", DEFAULT_PAGE_WIDTH, resolution),
        page_height=_length(height, "height", DEFAULT_PAGE_HEIGHT, resolution),
        fonts=_load_fonts(root, font_base),
        source=config_path,
    )
    LOGGER.debug("Loaded formatter configuration from %s", config_path)
    return config
