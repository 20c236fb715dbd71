from __future__ import annotations

import logging
from types import SimpleNamespace

import pytest
from lxml import etree

from foprint.diagnostics import (
    UNKNOWN_LOCATION,
    DiagnosticListener,
    diagnostic_from_log_entry,
    diagnostic_from_syntax_error,
    format_location,
)
from foprint.exceptions import TransformError
from foprint.types import Diagnostic, Severity, SourceLocation


def _entry(level, message="boom", filename="<string>", line=0, column=0):
    return SimpleNamespace(level=level, message=message, filename=filename, line=line, column=column)


@pytest.mark.parametrize(
    "location, expected",
    [
        (None, UNKNOWN_LOCATION),
        (SourceLocation(), "Unknown; "),
        (SourceLocation(line=12), "Line#: 12; "),
        (SourceLocation(column=0), "Column#: 0; "),
        (SourceLocation("sheet.xsl", 3, 7), "sheet.xsl; Line#: 3; Column#: 7; "),
        (SourceLocation("sheet.xsl"), "sheet.xsl; "),
    ],
)
def test_format_location(location, expected) -> None:
    assert format_location(location) == expected


def test_warning_logs_and_does_not_raise(caplog: pytest.LogCaptureFixture) -> None:
    listener = DiagnosticListener()
    diagnostic = Diagnostic(Severity.WARNING, "unused template", SourceLocation(line=4))

    with caplog.at_level(logging.WARNING, logger="foprint.diagnostics"):
        listener.warning(diagnostic)

    assert listener.diagnostics == [diagnostic]
    assert "Line#: 4; unused template" in caplog.text


@pytest.mark.parametrize(
    "method, prefix",
    [("error", "Transform error"), ("fatal_error", "Transform fatal error")],
)
def test_errors_log_and_raise(caplog: pytest.LogCaptureFixture, method: str, prefix: str) -> None:
    listener = DiagnosticListener()
    diagnostic = Diagnostic(Severity.ERROR, "bad select", None)

    with caplog.at_level(logging.ERROR, logger="foprint.diagnostics"):
        with pytest.raises(TransformError) as excinfo:
            getattr(listener, method)(diagnostic)

    assert excinfo.value.diagnostic is diagnostic
    assert str(excinfo.value) == "bad select"
    assert listener.diagnostics == [diagnostic]
    assert f"{prefix} bad select at Unknown; " in caplog.text


def test_report_dispatches_by_severity() -> None:
    listener = DiagnosticListener()
    listener.report(Diagnostic(Severity.WARNING, "just a warning"))
    with pytest.raises(TransformError):
        listener.report(Diagnostic(Severity.FATAL, "stop"))

    assert [d.severity for d in listener.diagnostics] == [Severity.WARNING, Severity.FATAL]


def test_listener_uses_injected_logger(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("foprint.tests.custom")
    listener = DiagnosticListener(logger)

    with caplog.at_level(logging.WARNING, logger="foprint.tests.custom"):
        listener.warning(Diagnostic(Severity.WARNING, "custom"))

    assert any(record.name == "foprint.tests.custom" for record in caplog.records)


def test_diagnostic_from_log_entry_maps_unknown_fields() -> None:
    diagnostic = diagnostic_from_log_entry(_entry(etree.ErrorLevels.ERROR, " no such variable \n"))

    assert diagnostic.severity is Severity.ERROR
    assert diagnostic.message == "no such variable"
    assert diagnostic.location == SourceLocation()
    assert format_location(diagnostic.location) == UNKNOWN_LOCATION


def test_diagnostic_from_log_entry_keeps_position_and_override() -> None:
    entry = _entry(etree.ErrorLevels.FATAL, filename="/sheets/a.xsl", line=10, column=2)

    assert diagnostic_from_log_entry(entry).severity is Severity.FATAL
    diagnostic = diagnostic_from_log_entry(entry, Severity.WARNING)
    assert diagnostic.severity is Severity.WARNING
    assert diagnostic.location == SourceLocation("/sheets/a.xsl", 10, 2)


def test_diagnostic_from_syntax_error() -> None:
    with pytest.raises(etree.XMLSyntaxError) as excinfo:
        etree.fromstring(b"<root>\n  <open>\n</root>")

    diagnostic = diagnostic_from_syntax_error(excinfo.value)

    assert diagnostic.severity is Severity.FATAL
    assert diagnostic.message
    assert diagnostic.location.line == 3
    assert diagnostic.location.system_id is None
