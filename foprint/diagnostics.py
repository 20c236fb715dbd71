"""Transform diagnostics: the listener installed on every transformer."""
from __future__ import annotations

import logging
from typing import List, Optional

from lxml import etree

from .exceptions import TransformError
from .types import Diagnostic, Severity, SourceLocation

LOGGER = logging.getLogger(__name__)

UNKNOWN_LOCATION = "Unknown; "

# lxml reports documents parsed from memory under this pseudo file name.
_ANONYMOUS_SOURCES = {"<string>", ""}


def format_location(location: Optional[SourceLocation]) -> str:
    """Render the known parts of ``location``, or :data:`UNKNOWN_LOCATION`."""
    if location is None or not location.is_known:
        return UNKNOWN_LOCATION
    parts = []
    if location.system_id is not None:
        parts.append(f"{location.system_id}; ")
    if location.line > -1:
        parts.append(f"Line#: {location.line}; ")
    if location.column > -1:
        parts.append(f"Column#: {location.column}; ")
    return "".join(parts)


def _location(filename: Optional[str], line: Optional[int], column: Optional[int]) -> SourceLocation:
    system_id = filename if filename not in _ANONYMOUS_SOURCES else None
    return SourceLocation(
        system_id=system_id,
        line=line if line and line > 0 else -1,
        column=column if column and column > 0 else -1,
    )


def severity_of(entry) -> Severity:
    """Map an lxml error-log level onto a :class:`Severity`."""
    if entry.level >= etree.ErrorLevels.FATAL:
        return Severity.FATAL
    if entry.level >= etree.ErrorLevels.ERROR:
        return Severity.ERROR
    return Severity.WARNING


def diagnostic_from_log_entry(entry, severity: Optional[Severity] = None) -> Diagnostic:
    """Convert an lxml ``_LogEntry`` into a :class:`Diagnostic`."""
    return Diagnostic(
        severity=severity or severity_of(entry),
        message=(entry.message or "").strip(),
        location=_location(entry.filename, entry.line, entry.column),
    )


def diagnostic_from_syntax_error(exc: etree.XMLSyntaxError) -> Diagnostic:
    """Convert an XML parse failure into a fatal :class:`Diagnostic`."""
    line, column = exc.position if exc.position else (None, None)
    return Diagnostic(
        severity=Severity.FATAL,
        message=exc.msg or str(exc),
        location=_location(exc.filename, line, column),
    )


class DiagnosticListener:
    """
    Listens for issues raised while transforming a document.

    Warnings are logged and recorded. Errors and fatal errors are logged,
    recorded and then raised as :class:`TransformError` so the transform is
    aborted.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or LOGGER
        self.diagnostics: List[Diagnostic] = []

    def warning(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)
        self.logger.warning("%s%s", format_location(diagnostic.location), diagnostic.message)

    def error(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)
        self.logger.error(
            "Transform error %s at %s", diagnostic.message, format_location(diagnostic.location)
        )
        raise TransformError(diagnostic=diagnostic)

    def fatal_error(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)
        self.logger.error(
            "Transform fatal error %s at %s", diagnostic.message, format_location(diagnostic.location)
        )
        raise TransformError(diagnostic=diagnostic)

    def report(self, diagnostic: Diagnostic) -> None:
        """Dispatch ``diagnostic`` to the callback matching its severity."""
        if diagnostic.severity is Severity.FATAL:
            self.fatal_error(diagnostic)
        elif diagnostic.severity is Severity.ERROR:
            self.error(diagnostic)
        else:
            self.warning(diagnostic)
