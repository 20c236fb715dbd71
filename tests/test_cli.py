from __future__ import annotations

from pathlib import Path

from click.testing import CliRunner
from pypdf import PdfReader

from foprint.cli import cli

BROKEN_XSL = """<xsl:stylesheet version="1.0" xmlns:xsl="http://www.w3.org/1999/XSL/Transform">
  <xsl:template match="/"><xsl:message terminate="yes">cannot render</xsl:message></xsl:template>
</xsl:stylesheet>"""


def test_pdf_command_writes_file(sheet_files: tuple, tmp_path: Path) -> None:
    xml_path, xsl_path = sheet_files
    output = tmp_path / "sheet.pdf"

    result = CliRunner().invoke(cli, ["pdf", str(xml_path), "-x", str(xsl_path), "-o", str(output)])

    assert result.exit_code == 0, result.output
    assert "Wrote 1 page(s)" in result.output
    assert len(PdfReader(str(output)).pages) == 1


def test_pdf_command_default_output(fo_file: Path) -> None:
    result = CliRunner().invoke(cli, ["pdf", str(fo_file)])

    assert result.exit_code == 0, result.output
    assert fo_file.with_suffix(".pdf").exists()


def test_pdf_command_missing_stylesheet(fo_file: Path, tmp_path: Path) -> None:
    output = tmp_path / "out.pdf"

    result = CliRunner().invoke(
        cli, ["pdf", str(fo_file), "-x", str(tmp_path / "missing.xsl"), "-o", str(output)]
    )

    assert result.exit_code == 1
    assert "not found" in result.output
    assert not output.exists()


def test_pdf_command_reports_errors(fo_file: Path, tmp_path: Path) -> None:
    xsl = tmp_path / "broken.xsl"
    xsl.write_text(BROKEN_XSL, encoding="utf-8")
    output = tmp_path / "out.pdf"

    result = CliRunner().invoke(cli, ["pdf", str(fo_file), "-x", str(xsl), "-o", str(output)])

    assert result.exit_code == 1
    assert "could not be produced" in result.output
    assert not output.exists()


def test_pdf_command_uses_config_dir(fo_file: Path, tmp_path: Path) -> None:
    config_dir = tmp_path / "sheets"
    config_dir.mkdir()
    (config_dir / "fop.xconf").write_text(
        "<fop><strict-validation>true</strict-validation></fop>", encoding="utf-8"
    )
    plain = tmp_path / "plain.xml"
    plain.write_text("<character/>", encoding="utf-8")

    result = CliRunner().invoke(
        cli, ["pdf", str(plain), "--config-dir", str(config_dir), "-o", str(tmp_path / "out.pdf")]
    )

    assert result.exit_code == 1
    assert "fo:root" in result.output


def test_preview_command_lists_pages(sheet_files: tuple) -> None:
    xml_path, xsl_path = sheet_files

    result = CliRunner().invoke(cli, ["preview", str(xml_path), "-x", str(xsl_path)])

    assert result.exit_code == 0, result.output
    assert "Rendered Pages" in result.output
    assert "612 x 792" in result.output
