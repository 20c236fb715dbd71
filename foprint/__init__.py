"""
foprint - XML to PDF through XSLT and XSL-FO.

This library transforms an XML document with an optional XSLT stylesheet and
formats the resulting XSL-FO either into a PDF byte stream or into pages for a
renderer, capturing every error instead of raising it.

Quick Start:
    >>> from foprint import TransformTask
    >>> task = TransformTask.to_stream('sheet.xml', 'sheet.xsl', open('sheet.pdf', 'wb'))
    >>> result = task.run()
    >>> result.success
    True

Main Classes:
    - TransformTask: Runs the transform and formatting pipeline once
    - DiagnosticListener: Logs and records transform diagnostics
    - TransformerFactory: Compiles stylesheets with lxml
    - FormatterFactory: Creates formatters from the user configuration

Data Classes:
    - TaskConfig: Input, stylesheet and destination of a task
    - TaskResult: Errors, diagnostics and page count of a run
    - Diagnostic / SourceLocation: Transform warnings and errors

Exceptions:
    - FoPrintError: Base exception
    - StylesheetNotFoundError: Stylesheet path does not exist
    - ConfigurationError: Invalid fop.xconf
    - TransformError: Transform error or fatal error
    - FormattingError: Formatting failure

For CLI usage, use the 'foprint' command after installation.
"""

__version__ = "1.0.0"

# Core classes
from foprint.task import TransformTask, new_task, create_formatter_factory
from foprint.diagnostics import DiagnosticListener, format_location, UNKNOWN_LOCATION
from foprint.transform import Transformer, TransformerFactory
from foprint.formatter import (
    FormatterFactory,
    OutputFormat,
    PreviewRenderer,
    RenderedPage,
    Renderer,
    UserAgent,
)
from foprint.config import Settings, FormatterConfig, load_formatter_config

# Data types
from foprint.types import (
    ByteSink,
    Diagnostic,
    RenderTarget,
    Severity,
    SourceLocation,
    TaskConfig,
    TaskResult,
    TransformOutcome,
)

# Exceptions
from foprint.exceptions import (
    FoPrintError,
    StylesheetNotFoundError,
    ConfigurationError,
    TransformError,
    FormattingError,
)

__all__ = [
    # Main classes
    "TransformTask",
    "new_task",
    "create_formatter_factory",
    "DiagnosticListener",
    "format_location",
    "UNKNOWN_LOCATION",
    "Transformer",
    "TransformerFactory",
    "FormatterFactory",
    "OutputFormat",
    "PreviewRenderer",
    "RenderedPage",
    "Renderer",
    "UserAgent",
    "Settings",
    "FormatterConfig",
    "load_formatter_config",
    # Data types
    "ByteSink",
    "Diagnostic",
    "RenderTarget",
    "Severity",
    "SourceLocation",
    "TaskConfig",
    "TaskResult",
    "TransformOutcome",
    # Exceptions
    "FoPrintError",
    "StylesheetNotFoundError",
    "ConfigurationError",
    "TransformError",
    "FormattingError",
    # Version info
    "__version__",
]
