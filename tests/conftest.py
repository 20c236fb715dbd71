from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Callable, List, Optional
import sys

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from foprint.config import Settings  # noqa: E402
from foprint.formatter.renderers import RenderedPage, Renderer  # noqa: E402

FO_NS = "http://www.w3.org/1999/XSL/Format"

MINIMAL_FO = f"""<?xml version="1.0" encoding="UTF-8"?>
<fo:root xmlns:fo="{FO_NS}">
  <fo:layout-master-set>
    <fo:simple-page-master master-name="page" page-width="210mm" page-height="297mm" margin="1cm">
      <fo:region-body/>
    </fo:simple-page-master>
  </fo:layout-master-set>
  <fo:page-sequence master-reference="page">
    <fo:flow flow-name="xsl-region-body">
      <fo:block>Hello from foprint</fo:block>
    </fo:flow>
  </fo:page-sequence>
</fo:root>
"""

SHEET_XML = """<?xml version="1.0" encoding="UTF-8"?>
<character>
  <name>Aragorn</name>
  <class>Ranger</class>
  <level>9</level>
</character>
"""

SHEET_XSL = f"""<?xml version="1.0" encoding="UTF-8"?>
<xsl:stylesheet version="1.0"
    xmlns:xsl="http://www.w3.org/1999/XSL/Transform"
    xmlns:fo="{FO_NS}">
  <xsl:template match="/character">
    <fo:root>
      <fo:layout-master-set>
        <fo:simple-page-master master-name="sheet" page-width="8.5in" page-height="11in" margin="0.5in">
          <fo:region-body margin-top="0.5in"/>
          <fo:region-before extent="0.4in"/>
        </fo:simple-page-master>
      </fo:layout-master-set>
      <fo:page-sequence master-reference="sheet">
        <fo:static-content flow-name="xsl-region-before">
          <fo:block>Page <fo:page-number/></fo:block>
        </fo:static-content>
        <fo:flow flow-name="xsl-region-body">
          <fo:block font-size="18pt" font-weight="bold"><xsl:value-of select="name"/></fo:block>
          <fo:block><xsl:value-of select="class"/> level <xsl:value-of select="level"/></fo:block>
        </fo:flow>
      </fo:page-sequence>
    </fo:root>
  </xsl:template>
</xsl:stylesheet>
"""


class TrackingSink(BytesIO):
    """BytesIO that remembers its content and how often it was closed."""

    def __init__(self) -> None:
        super().__init__()
        self.close_count = 0
        self.saved = b""

    def close(self) -> None:
        if not self.closed:
            self.saved = self.getvalue()
        self.close_count += 1
        super().close()


class RecordingRenderer(Renderer):
    def __init__(self) -> None:
        super().__init__()
        self.events: List[str] = []
        self.pages: List[RenderedPage] = []
        self.agent_at_start = None

    def start_renderer(self) -> None:
        self.agent_at_start = self.user_agent
        self.events.append("start")

    def render_page(self, page: RenderedPage) -> None:
        self.events.append(f"page {page.number}")
        self.pages.append(page)

    def stop_renderer(self) -> None:
        self.events.append("stop")


@pytest.fixture()
def fo_file(tmp_path: Path) -> Path:
    path = tmp_path / "minimal.fo"
    path.write_text(MINIMAL_FO, encoding="utf-8")
    return path


@pytest.fixture()
def fo_factory(tmp_path: Path) -> Callable[..., Path]:
    """Write an XSL-FO document whose flow holds ``body`` and return its path."""

    def _create(
        body: str,
        *,
        name: str = "doc.fo",
        master: str = '<fo:simple-page-master master-name="page" page-width="200pt" '
        'page-height="300pt" margin="10pt"><fo:region-body/></fo:simple-page-master>',
        statics: str = "",
    ) -> Path:
        path = tmp_path / name
        path.write_text(
            f"""<?xml version="1.0" encoding="UTF-8"?>
<fo:root xmlns:fo="{FO_NS}">
  <fo:layout-master-set>{master}</fo:layout-master-set>
  <fo:page-sequence master-reference="page">{statics}
    <fo:flow flow-name="xsl-region-body">{body}</fo:flow>
  </fo:page-sequence>
</fo:root>
""",
            encoding="utf-8",
        )
        return path

    return _create


@pytest.fixture()
def sheet_files(tmp_path: Path) -> tuple:
    xml_path = tmp_path / "character.xml"
    xsl_path = tmp_path / "sheet.xsl"
    xml_path.write_text(SHEET_XML, encoding="utf-8")
    xsl_path.write_text(SHEET_XSL, encoding="utf-8")
    return xml_path, xsl_path


@pytest.fixture()
def sink() -> TrackingSink:
    return TrackingSink()


@pytest.fixture()
def recording_renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    sheets = tmp_path / "outputsheets"
    sheets.mkdir()
    return Settings(output_sheets_dir=sheets, producer="foprint-tests")


@pytest.fixture()
def write_config(settings: Settings) -> Callable[[str], Path]:
    def _write(content: str, name: Optional[str] = None) -> Path:
        path = settings.output_sheets_dir / (name or settings.config_file_name)
        path.write_text(content, encoding="utf-8")
        return path

    return _write
