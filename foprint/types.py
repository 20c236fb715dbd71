"""
Type definitions and dataclasses for foprint.

This module defines the data structures shared by the transform task, the
transform engine and the diagnostics listener.
"""
from __future__ import annotations

import enum
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, BinaryIO, Optional, TextIO, Tuple, Union

if TYPE_CHECKING:  # pragma: no cover
    from .exceptions import TransformError
    from .formatter.renderers import Renderer


class Severity(enum.Enum):
    """Severity of a diagnostic reported by the transform engine."""

    WARNING = "warning"
    ERROR = "error"
    FATAL = "fatal"


@dataclass(frozen=True)
class SourceLocation:
    """
    Position in a source document.

    Attributes:
        system_id: URI or file name of the document, if known
        line: Line number, ``-1`` when unknown
        column: Column number, ``-1`` when unknown
    """
    system_id: Optional[str] = None
    line: int = -1
    column: int = -1

    @property
    def is_known(self) -> bool:
        return self.system_id is not None or self.line > -1 or self.column > -1


@dataclass(frozen=True)
class Diagnostic:
    """A warning or error reported while transforming a document."""

    severity: Severity
    message: str
    location: Optional[SourceLocation] = None


@dataclass(frozen=True)
class ByteSink:
    """Output destination writing PDF bytes to a stream owned by the task."""

    stream: BinaryIO

    def __post_init__(self) -> None:
        if not callable(getattr(self.stream, "write", None)):
            raise TypeError("ByteSink requires a writable stream")


@dataclass(frozen=True)
class RenderTarget:
    """Output destination handing formatted pages to a caller-owned renderer."""

    renderer: "Renderer"

    def __post_init__(self) -> None:
        if not callable(getattr(self.renderer, "render_page", None)):
            raise TypeError("RenderTarget requires a Renderer")


Destination = Union[ByteSink, RenderTarget]
InputSource = Union[BinaryIO, TextIO, str, os.PathLike]


@dataclass(frozen=True)
class TaskConfig:
    """
    Immutable configuration of a transform task.

    Attributes:
        input_source: Readable XML byte or character stream, or path to the XML input
        stylesheet: XSLT stylesheet path, ``None`` for the identity transform
        destination: Either a :class:`ByteSink` or a :class:`RenderTarget`
    """
    input_source: InputSource
    stylesheet: Optional[Path]
    destination: Destination

    def __post_init__(self) -> None:
        if not isinstance(self.destination, (ByteSink, RenderTarget)):
            raise TypeError(
                "destination must be a ByteSink or a RenderTarget, "
                f"got {type(self.destination).__name__}"
            )


@dataclass(frozen=True)
class TaskResult:
    """
    Result of running a transform task.

    Attributes:
        output_format: Output format the task produced
        errors: One message per caught failure, in order
        diagnostics: Diagnostics reported by the transform engine
        page_count: Number of formatted pages, ``None`` if formatting did not finish
    """
    output_format: str
    errors: Tuple[str, ...] = ()
    diagnostics: Tuple[Diagnostic, ...] = ()
    page_count: Optional[int] = None

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def error_messages(self) -> str:
        return "".join(f"{message}{os.linesep}" for message in self.errors)

    @property
    def warnings(self) -> Tuple[Diagnostic, ...]:
        return tuple(d for d in self.diagnostics if d.severity is Severity.WARNING)

    def __str__(self) -> str:
        if self.success:
            return f"TaskResult(success=True, pages={self.page_count})"
        return f"TaskResult(success=False, errors={len(self.errors)})"


@dataclass(frozen=True)
class TransformOutcome:
    """
    Outcome of a single transform attempt.

    Attributes:
        diagnostics: Every diagnostic reported during the attempt
        error: The error that aborted the transform, if any
    """
    diagnostics: Tuple[Diagnostic, ...] = field(default_factory=tuple)
    error: Optional["TransformError"] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


def describe(value: Any) -> str:
    """Return a short description of an input source for log messages."""
    name = getattr(value, "name", None)
    if isinstance(name, str):
        return name
    if isinstance(value, (str, os.PathLike)):
        return os.fspath(value)
    return f"<{type(value).__name__}>"
