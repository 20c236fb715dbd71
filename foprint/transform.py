"""
XSLT transform engine.

Compiles stylesheets with lxml and streams the transform result into a SAX
content handler. Problems reported by lxml are routed through a
:class:`~foprint.diagnostics.DiagnosticListener`.
"""
from __future__ import annotations

import io
import logging
import os
from pathlib import Path
from typing import Optional

from lxml import etree
from lxml import sax as lxml_sax

from .diagnostics import (
    DiagnosticListener,
    diagnostic_from_log_entry,
    diagnostic_from_syntax_error,
)
from .exceptions import TransformError
from .types import Diagnostic, InputSource, Severity, TransformOutcome, describe

LOGGER = logging.getLogger(__name__)


def _default_parser(**options) -> etree.XMLParser:
    return etree.XMLParser(no_network=True, **options)


def _parse(source, parser: etree.XMLParser, listener: DiagnosticListener) -> etree._ElementTree:
    base_url = None
    if isinstance(source, os.PathLike):
        source = os.fspath(source)
    elif hasattr(source, "read"):
        base_url = getattr(source, "name", None)
        data = source.read()
        if isinstance(data, str):
            # decoded text; the declared encoding no longer applies
            data = data.encode("utf-8")
            parser = _default_parser(encoding="utf-8")
        source = io.BytesIO(data)
    if not isinstance(base_url, str):
        base_url = None
    try:
        return etree.parse(source, parser, base_url=base_url)
    except etree.XMLSyntaxError as exc:
        listener.fatal_error(diagnostic_from_syntax_error(exc))
        raise  # pragma: no cover - fatal_error always raises


class Transformer:
    """
    A compiled transform bound to one task.

    Use :meth:`TransformerFactory.new_transformer` to create instances.
    """

    def __init__(
        self,
        xslt: Optional[etree.XSLT],
        *,
        stylesheet: Optional[Path] = None,
        parser: Optional[etree.XMLParser] = None,
        error_listener: Optional[DiagnosticListener] = None,
    ) -> None:
        self._xslt = xslt
        self.stylesheet = stylesheet
        self._parser = parser or _default_parser()
        self.error_listener = error_listener or DiagnosticListener()

    @property
    def is_identity(self) -> bool:
        return self._xslt is None

    def transform(self, source: InputSource, content_handler) -> TransformOutcome:
        """
        Transform ``source`` and push the result into ``content_handler``.

        Errors reported by the transform engine end up in the returned
        outcome; exceptions raised by ``content_handler`` propagate.
        """
        listener = self.error_listener
        try:
            document = _parse(source, self._parser, listener)
            result = document if self._xslt is None else self._apply(document)
            if result.getroot() is None:
                listener.fatal_error(
                    Diagnostic(Severity.FATAL, "Transform produced no XML result tree")
                )
        except TransformError as exc:
            return TransformOutcome(diagnostics=tuple(listener.diagnostics), error=exc)

        LOGGER.debug("Streaming transform result of %s into formatter", describe(source))
        lxml_sax.saxify(result, content_handler)
        return TransformOutcome(diagnostics=tuple(listener.diagnostics))

    def _apply(self, document: etree._ElementTree) -> etree._XSLTResultTree:
        listener = self.error_listener
        try:
            result = self._xslt(document)
        except etree.XSLTApplyError as exc:
            # The last entry describes the failure; earlier ones are output
            # the transform produced before it stopped.
            entries = list(self._xslt.error_log)
            for entry in entries[:-1]:
                listener.warning(diagnostic_from_log_entry(entry, Severity.WARNING))
            if entries:
                listener.report(diagnostic_from_log_entry(entries[-1]))
            listener.fatal_error(Diagnostic(Severity.FATAL, str(exc) or "XSLT transformation failed"))
            raise  # pragma: no cover - fatal_error always raises

        # The transform completed, so anything it logged (xsl:message output
        # included) is informational.
        for entry in self._xslt.error_log:
            listener.warning(diagnostic_from_log_entry(entry, Severity.WARNING))
        return result


class TransformerFactory:
    """Creates :class:`Transformer` objects. Stateless and safe to share."""

    def __init__(self, parser: Optional[etree.XMLParser] = None) -> None:
        self._parser = parser

    def _new_parser(self) -> etree.XMLParser:
        # XMLParser instances are not thread-safe; hand each transformer its own.
        return self._parser.copy() if self._parser is not None else _default_parser()

    def new_transformer(
        self,
        stylesheet: Optional[Path] = None,
        error_listener: Optional[DiagnosticListener] = None,
    ) -> Transformer:
        """
        Compile ``stylesheet``, or create an identity transformer when it is ``None``.

        Raises:
            TransformError: If the stylesheet cannot be parsed or compiled
        """
        listener = error_listener or DiagnosticListener()
        parser = self._new_parser()
        if stylesheet is None:
            LOGGER.debug("Using identity transformer")
            return Transformer(None, parser=parser, error_listener=listener)

        LOGGER.info("Loading XSLT stylesheet: %s", stylesheet)
        xslt_doc = _parse(stylesheet, parser, listener)
        try:
            xslt = etree.XSLT(xslt_doc)
        except etree.XSLTParseError as exc:
            for entry in exc.error_log:
                listener.report(diagnostic_from_log_entry(entry))
            listener.fatal_error(Diagnostic(Severity.FATAL, str(exc) or "Invalid XSLT stylesheet"))
            raise  # pragma: no cover - fatal_error always raises
        return Transformer(xslt, stylesheet=stylesheet, parser=parser, error_listener=listener)
