"""Custom exceptions for foprint."""
from __future__ import annotations


class FoPrintError(RuntimeError):
    """Base class for all foprint exceptions."""


class StylesheetNotFoundError(FoPrintError, FileNotFoundError):
    """Raised when a task is created with a stylesheet path that does not exist."""


class ConfigurationError(FoPrintError):
    """Raised when the formatter user configuration cannot be applied."""


class TransformError(FoPrintError):
    """Raised when the XSLT transform reports an error or fatal error."""

    def __init__(self, message: str = "", diagnostic=None) -> None:
        if not message and diagnostic is not None:
            message = diagnostic.message
        super().__init__(message)
        self.diagnostic = diagnostic


class FormattingError(FoPrintError):
    """Raised when the formatting engine cannot lay out the XSL-FO input."""
