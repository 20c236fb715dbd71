from __future__ import annotations

import logging
import os
import threading
from io import BytesIO, StringIO
from pathlib import Path
from unittest import mock

import pytest
from pypdf import PdfReader

from foprint.config import Settings
from foprint.exceptions import FoPrintError, StylesheetNotFoundError
from foprint.formatter import OutputFormat, PreviewRenderer
from foprint.task import PDF_KEYWORDS, PREVIEW_KEYWORDS, TransformTask, new_task
from foprint.transform import TransformerFactory
from foprint.types import ByteSink, RenderTarget, Severity, TaskConfig
from foprint.utils import current_user

from conftest import RecordingRenderer, TrackingSink

TERMINATING_XSL = """<xsl:stylesheet version="1.0" xmlns:xsl="http://www.w3.org/1999/XSL/Transform">
  <xsl:template match="/"><xsl:message terminate="yes">sheet is broken</xsl:message></xsl:template>
</xsl:stylesheet>"""


def test_identity_transform_writes_pdf(fo_file: Path, sink: TrackingSink, settings: Settings) -> None:
    task = TransformTask.to_stream(fo_file, None, sink, settings=settings)

    result = task.run()

    assert result.success
    assert result.errors == ()
    assert result.page_count == 1
    assert result.output_format == OutputFormat.PDF.value
    assert task.get_error_messages() == ""
    assert sink.close_count == 1
    assert sink.saved.startswith(b"%PDF-")
    assert b"%%EOF" in sink.saved


def test_stylesheet_transform(sheet_files: tuple, sink: TrackingSink, settings: Settings) -> None:
    xml_path, xsl_path = sheet_files

    result = TransformTask.to_stream(xml_path, xsl_path, sink, settings=settings).run()

    assert result.success
    text = PdfReader(BytesIO(sink.saved)).pages[0].extract_text()
    assert "Aragorn" in text
    assert "Page 1" in text


def test_pdf_metadata(fo_file: Path, sink: TrackingSink, settings: Settings) -> None:
    TransformTask.to_stream(fo_file, None, sink, settings=settings).run()

    metadata = PdfReader(BytesIO(sink.saved)).metadata
    assert metadata["/Producer"] == "foprint-tests"
    assert metadata["/Keywords"] == PDF_KEYWORDS
    if current_user():
        assert metadata["/Author"] == current_user()


def test_plain_xml_without_stylesheet_succeeds(
    tmp_path: Path, sink: TrackingSink, settings: Settings
) -> None:
    xml_path = tmp_path / "plain.xml"
    xml_path.write_text("<character><name>Bob</name></character>", encoding="utf-8")

    result = TransformTask.to_stream(xml_path, None, sink, settings=settings).run()

    assert result.success
    assert task_text(sink) == "Bob"


def task_text(sink: TrackingSink) -> str:
    return PdfReader(BytesIO(sink.saved)).pages[0].extract_text().strip()


def test_stream_input(sink: TrackingSink, settings: Settings) -> None:
    source = BytesIO(b"<note>streamed</note>")

    result = TransformTask.to_stream(source, None, sink, settings=settings).run()

    assert result.success
    assert task_text(sink) == "streamed"


def test_character_stream_with_encoding_declaration(sink: TrackingSink, settings: Settings) -> None:
    source = StringIO('<?xml version="1.0" encoding="UTF-8"?><note>hi</note>')

    result = TransformTask.to_stream(source, None, sink, settings=settings).run()

    assert result.success, result.errors
    assert task_text(sink) == "hi"


def test_missing_stylesheet_fails_at_construction(tmp_path: Path, fo_file: Path) -> None:
    missing = tmp_path / "nope.xsl"
    sink = TrackingSink()

    with pytest.raises(StylesheetNotFoundError) as excinfo:
        TransformTask.to_stream(fo_file, missing, sink)

    assert isinstance(excinfo.value, FileNotFoundError)
    assert isinstance(excinfo.value, FoPrintError)
    assert str(excinfo.value) == f"xsl file {missing.absolute()} not found"

    with pytest.raises(StylesheetNotFoundError):
        TransformTask.to_renderer(fo_file, missing, RecordingRenderer())


def test_transform_error_is_captured(
    tmp_path: Path,
    fo_file: Path,
    sink: TrackingSink,
    settings: Settings,
    caplog: pytest.LogCaptureFixture,
) -> None:
    xsl = tmp_path / "broken.xsl"
    xsl.write_text(TERMINATING_XSL, encoding="utf-8")
    task = TransformTask.to_stream(fo_file, xsl, sink, settings=settings)

    with caplog.at_level(logging.ERROR):
        result = task.run()

    assert not result.success
    assert len(result.errors) == 1
    assert result.page_count is None
    assert sink.close_count == 1
    assert sink.saved == b""
    assert "Exception in TransformTask.run" in caplog.text
    messages = task.get_error_messages()
    assert messages.endswith(os.linesep)
    assert task.get_error_messages() == messages
    assert result.diagnostics[-1].severity in (Severity.ERROR, Severity.FATAL)


def test_malformed_input_is_captured(tmp_path: Path, sink: TrackingSink, settings: Settings) -> None:
    xml_path = tmp_path / "bad.xml"
    xml_path.write_text("<character><name></character>", encoding="utf-8")

    result = TransformTask.to_stream(xml_path, None, sink, settings=settings).run()

    assert not result.success
    assert result.diagnostics[0].severity is Severity.FATAL
    assert result.diagnostics[0].location.line == 1
    assert sink.close_count == 1


def test_missing_input_file_is_captured(tmp_path: Path, sink: TrackingSink, settings: Settings) -> None:
    result = TransformTask.to_stream(tmp_path / "missing.xml", None, sink, settings=settings).run()

    assert not result.success
    assert "missing.xml" in result.errors[0]
    assert sink.close_count == 1


def test_unexpected_exception_uses_class_name(
    fo_file: Path, sink: TrackingSink, tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    factory = mock.MagicMock(spec=TransformerFactory)
    factory.new_transformer.side_effect = RuntimeError("")
    settings = Settings(output_sheets_dir=tmp_path, transformer_factory=factory)

    with caplog.at_level(logging.ERROR):
        result = TransformTask.to_stream(fo_file, None, sink, settings=settings).run()

    assert result.errors == ("RuntimeError",)
    assert "Unexpected exception in TransformTask.run" in caplog.text
    assert sink.close_count == 1


def test_renderer_run(fo_file: Path, recording_renderer: RecordingRenderer, settings: Settings) -> None:
    task = TransformTask.to_renderer(fo_file, None, recording_renderer, settings=settings)

    result = task.run()

    assert result.success
    assert result.output_format == OutputFormat.PREVIEW.value
    assert result.page_count == 1
    assert recording_renderer.events == ["start", "page 1", "stop"]
    agent = recording_renderer.agent_at_start
    assert agent is not None
    assert agent.keywords == PREVIEW_KEYWORDS
    assert agent.renderer_override is recording_renderer
    assert agent.producer == "foprint-tests"


class JammedRenderer(RecordingRenderer):
    def render_page(self, page) -> None:
        super().render_page(page)
        raise RuntimeError("printer jammed")


def test_renderer_is_stopped_when_a_page_fails(fo_file: Path, settings: Settings) -> None:
    renderer = JammedRenderer()

    result = TransformTask.to_renderer(fo_file, None, renderer, settings=settings).run()

    assert result.errors == ("printer jammed",)
    assert renderer.events == ["start", "page 1", "stop"]


def test_preview_renderer_collects_pages(sheet_files: tuple, settings: Settings) -> None:
    xml_path, xsl_path = sheet_files
    renderer = PreviewRenderer()

    TransformTask.to_renderer(xml_path, xsl_path, renderer, settings=settings).run()

    assert renderer.page_count == 1
    assert "Aragorn" in renderer.pages[0].extract_text()


def test_config_discovery_is_logged(
    fo_file: Path, sink: TrackingSink, settings: Settings, write_config, caplog: pytest.LogCaptureFixture
) -> None:
    config_path = write_config("<fop><strict-validation>false</strict-validation></fop>")

    with caplog.at_level(logging.INFO, logger="foprint.task"):
        result = TransformTask.to_stream(fo_file, None, sink, settings=settings).run()

    assert result.success
    assert f"Checking for config file at {config_path}" in caplog.text
    assert "using config file" in caplog.text


def test_config_absent_is_logged_without_use(
    fo_file: Path, sink: TrackingSink, settings: Settings, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger="foprint.task"):
        TransformTask.to_stream(fo_file, None, sink, settings=settings).run()

    assert "Checking for config file at" in caplog.text
    assert "using config file" not in caplog.text


def test_invalid_config_falls_back_to_defaults(
    fo_file: Path, sink: TrackingSink, settings: Settings, write_config, caplog: pytest.LogCaptureFixture
) -> None:
    write_config("<fop><strict-validation>sometimes</strict-validation></fop>")

    with caplog.at_level(logging.ERROR, logger="foprint.task"):
        result = TransformTask.to_stream(fo_file, None, sink, settings=settings).run()

    assert result.success
    assert "Unable to apply config file" in caplog.text


def test_strict_config_rejects_plain_xml(
    tmp_path: Path, sink: TrackingSink, settings: Settings, write_config
) -> None:
    write_config("<fop><strict-validation>true</strict-validation></fop>")
    xml_path = tmp_path / "plain.xml"
    xml_path.write_text("<character/>", encoding="utf-8")

    result = TransformTask.to_stream(xml_path, None, sink, settings=settings).run()

    assert not result.success
    assert "fo:root" in result.errors[0]
    assert sink.close_count == 1


def test_config_is_reread_for_every_task(
    tmp_path: Path, settings: Settings, write_config
) -> None:
    xml_path = tmp_path / "plain.xml"
    xml_path.write_text("<character>text</character>", encoding="utf-8")

    write_config("<fop><strict-validation>true</strict-validation></fop>")
    first = TransformTask.to_stream(xml_path, None, TrackingSink(), settings=settings).run()
    write_config("<fop><strict-validation>false</strict-validation></fop>")
    second = TransformTask.to_stream(xml_path, None, TrackingSink(), settings=settings).run()

    assert not first.success
    assert second.success


def test_second_run_returns_first_result(
    fo_file: Path, sink: TrackingSink, settings: Settings, caplog: pytest.LogCaptureFixture
) -> None:
    task = TransformTask.to_stream(fo_file, None, sink, settings=settings)
    assert task.result is None
    assert task.get_error_messages() == ""

    first = task.run()
    with caplog.at_level(logging.ERROR, logger="foprint.task"):
        second = task.run()

    assert second is first
    assert task.result is first
    assert sink.close_count == 1
    assert "called more than once" in caplog.text


def test_task_runs_on_worker_thread(fo_file: Path, sink: TrackingSink, settings: Settings) -> None:
    task = TransformTask.to_stream(fo_file, None, sink, settings=settings)

    worker = threading.Thread(target=task)
    worker.start()
    worker.join(timeout=60)

    assert task.result is not None
    assert task.result.success


def test_new_task_dispatch(fo_file: Path, settings: Settings) -> None:
    renderer = RecordingRenderer()

    assert new_task(fo_file, None, renderer, settings=settings).output_format is OutputFormat.PREVIEW
    assert (
        new_task(fo_file, None, RenderTarget(renderer), settings=settings).output_format
        is OutputFormat.PREVIEW
    )
    assert new_task(fo_file, None, BytesIO(), settings=settings).output_format is OutputFormat.PDF
    assert (
        new_task(fo_file, None, ByteSink(BytesIO()), settings=settings).output_format
        is OutputFormat.PDF
    )
    with pytest.raises(TypeError):
        new_task(fo_file, None, object(), settings=settings)


def test_destination_must_be_a_known_kind(fo_file: Path) -> None:
    with pytest.raises(TypeError):
        TaskConfig(fo_file, None, BytesIO())
    with pytest.raises(TypeError):
        ByteSink(object())
    with pytest.raises(TypeError):
        RenderTarget(object())
