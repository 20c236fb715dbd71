"""
Transform task
==============

A :class:`TransformTask` turns an XML document into a PDF byte stream or into
pages for a renderer. The optional XSLT stylesheet is applied first; its
XSL-FO result is streamed into the formatter.

The task is a unit of synchronous work meant to be executed on a worker
thread::

    task = TransformTask.to_stream("sheet.xml", "sheet.xsl", open("sheet.pdf", "wb"))
    threading.Thread(target=task).start()

Only construction problems are raised. Everything that goes wrong while the
task runs is logged and collected in the :class:`~foprint.types.TaskResult`.
"""
from __future__ import annotations

import logging
from contextlib import ExitStack
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, List, Optional, Union

from .config import Settings
from .diagnostics import DiagnosticListener
from .exceptions import (
    ConfigurationError,
    FormattingError,
    StylesheetNotFoundError,
    TransformError,
)
from .formatter import Formatter, FormatterFactory, OutputFormat, Renderer
from .types import (
    ByteSink,
    Destination,
    InputSource,
    RenderTarget,
    TaskConfig,
    TaskResult,
    describe,
)
from .utils import PathLike, current_user

LOGGER = logging.getLogger(__name__)

PREVIEW_KEYWORDS = "FOPRINT PREVIEW"
PDF_KEYWORDS = "FOPRINT PDF"


def resolve_stylesheet(stylesheet: Optional[PathLike]) -> Optional[Path]:
    """Absolute stylesheet path, or ``None`` for the identity transform."""
    if stylesheet is None:
        return None
    path = Path(stylesheet).expanduser().absolute()
    if not path.is_file():
        raise StylesheetNotFoundError(f"xsl file {path} not found")
    return path


def create_formatter_factory(settings: Settings) -> FormatterFactory:
    """
    Build a formatter factory, applying the user configuration when present.

    The configuration file is looked up on every call. An invalid
    configuration is logged and the factory keeps its defaults.
    """
    factory = FormatterFactory()
    factory.strict_validation = False
    config_path = settings.user_config_path()
    if config_path is None:
        return factory

    LOGGER.info("Checking for config file at %s", config_path)
    if config_path.is_file():
        LOGGER.info("using config file %s", config_path)
        try:
            factory.apply_user_config(config_path)
        except ConfigurationError:
            LOGGER.exception("Unable to apply config file %s, using defaults", config_path)
    return factory


class TransformTask:
    """
    Transform an XML document and format the result.

    Create tasks with :meth:`to_stream`, :meth:`to_renderer` or
    :func:`new_task`. A task runs once; calling :meth:`run` again returns the
    first result.
    """

    def __init__(self, config: TaskConfig, settings: Optional[Settings] = None) -> None:
        self.config = config
        self.settings = settings if settings is not None else Settings.from_env()
        self._errors: List[str] = []
        self._result: Optional[TaskResult] = None

    @classmethod
    def to_stream(
        cls,
        input_xml: InputSource,
        stylesheet: Optional[PathLike],
        output_stream: BinaryIO,
        *,
        settings: Optional[Settings] = None,
    ) -> "TransformTask":
        """
        Create a task writing PDF bytes to ``output_stream``.

        The task owns the stream and closes it when it finishes.

        Raises:
            StylesheetNotFoundError: If ``stylesheet`` is given but does not exist
        """
        config = TaskConfig(input_xml, resolve_stylesheet(stylesheet), ByteSink(output_stream))
        return cls(config, settings)

    @classmethod
    def to_renderer(
        cls,
        input_xml: InputSource,
        stylesheet: Optional[PathLike],
        renderer: Renderer,
        *,
        settings: Optional[Settings] = None,
    ) -> "TransformTask":
        """
        Create a task handing formatted pages to ``renderer``.

        Raises:
            StylesheetNotFoundError: If ``stylesheet`` is given but does not exist
        """
        config = TaskConfig(input_xml, resolve_stylesheet(stylesheet), RenderTarget(renderer))
        return cls(config, settings)

    @property
    def result(self) -> Optional[TaskResult]:
        return self._result

    @property
    def output_format(self) -> OutputFormat:
        if isinstance(self.config.destination, RenderTarget):
            return OutputFormat.PREVIEW
        return OutputFormat.PDF

    def get_error_messages(self) -> str:
        """Return every recorded error, each terminated by the line separator."""
        if self._result is None:
            return ""
        return self._result.error_messages

    def __call__(self) -> TaskResult:
        return self.run()

    def run(self) -> TaskResult:
        """Run the transform and the formatter. Never raises for pipeline failures."""
        if self._result is not None:
            LOGGER.error("TransformTask.run called more than once; returning the first result")
            return self._result

        listener = DiagnosticListener()
        formatter: Optional[Formatter] = None
        destination = self.config.destination
        LOGGER.debug("Running transform task for %s", describe(self.config.input_source))

        with ExitStack() as stack:
            if isinstance(destination, ByteSink):
                stack.callback(self._close_sink, destination)
            try:
                formatter = self._new_formatter(destination)
                transformer = self.settings.transformer_factory.new_transformer(
                    self.config.stylesheet, listener
                )
                outcome = transformer.transform(self.config.input_source, formatter.default_handler)
                outcome.raise_for_error()
            except (TransformError, FormattingError, OSError) as exc:
                self._record(exc)
                LOGGER.exception("Exception in TransformTask.run")
            except Exception as exc:
                self._record(exc)
                LOGGER.exception("Unexpected exception in TransformTask.run")

        self._result = TaskResult(
            output_format=self.output_format.value,
            errors=tuple(self._errors),
            diagnostics=tuple(listener.diagnostics),
            page_count=formatter.page_count if formatter is not None else None,
        )
        return self._result

    def _new_formatter(self, destination: Destination) -> Formatter:
        factory = create_formatter_factory(self.settings)
        user_agent = factory.new_user_agent()
        user_agent.producer = self.settings.producer
        user_agent.author = current_user()
        user_agent.creation_date = datetime.now(tz=timezone.utc)

        if isinstance(destination, RenderTarget):
            user_agent.keywords = PREVIEW_KEYWORDS
            user_agent.renderer_override = destination.renderer
            destination.renderer.set_user_agent(user_agent)
            return factory.new_formatter(OutputFormat.PREVIEW, user_agent)

        user_agent.keywords = PDF_KEYWORDS
        return factory.new_formatter(OutputFormat.PDF, user_agent, destination.stream)

    def _close_sink(self, sink: ByteSink) -> None:
        try:
            sink.stream.close()
        except OSError as exc:
            self._record(exc)
            LOGGER.exception("Exception in TransformTask.run")

    def _record(self, exc: BaseException) -> None:
        self._errors.append(str(exc) or type(exc).__name__)


def new_task(
    input_xml: InputSource,
    stylesheet: Optional[PathLike],
    destination: Union[Destination, Renderer, BinaryIO],
    *,
    settings: Optional[Settings] = None,
) -> TransformTask:
    """
    Create a task for either kind of destination.

    A :class:`~foprint.formatter.Renderer` or :class:`~foprint.types.RenderTarget`
    selects page rendering; a :class:`~foprint.types.ByteSink` or any object with
    a ``write`` method selects PDF output.

    Raises:
        StylesheetNotFoundError: If ``stylesheet`` is given but does not exist
        TypeError: If ``destination`` is neither kind
    """
    if isinstance(destination, RenderTarget):
        destination = destination.renderer
    if isinstance(destination, Renderer):
        return TransformTask.to_renderer(input_xml, stylesheet, destination, settings=settings)
    if isinstance(destination, ByteSink):
        destination = destination.stream
    if callable(getattr(destination, "write", None)):
        return TransformTask.to_stream(input_xml, stylesheet, destination, settings=settings)
    raise TypeError(
        f"destination must be a Renderer or a writable stream, got {type(destination).__name__}"
    )
