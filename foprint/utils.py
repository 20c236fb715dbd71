"""Utility helpers for foprint."""
from __future__ import annotations

import getpass
import logging
import os
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Union

PathLike = Union[str, os.PathLike]


def configure_logging(level: int = logging.INFO) -> None:
    """Configure package-wide logging."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


@contextmanager
def time_block(logger: logging.Logger, message: str) -> Iterator[None]:
    """Context manager that logs the execution time of a code block."""
    start = datetime.now(tz=timezone.utc)
    logger.debug("Starting %s", message)
    try:
        yield
    finally:
        end = datetime.now(tz=timezone.utc)
        elapsed = (end - start).total_seconds()
        logger.info("%s completed in %.2fs", message, elapsed)


def current_user() -> str:
    """Return the name of the OS user running the process, or an empty string."""
    try:
        return getpass.getuser()
    except (KeyError, OSError):  # no passwd entry and no USER/LOGNAME variables
        return ""


def format_pdf_date(value: datetime) -> str:
    """Format a :class:`datetime` as a PDF date string (``D:YYYYMMDDHHmmSS+HH'mm'``)."""
    if value.tzinfo is None:
        value = value.astimezone()
    offset = value.utcoffset()
    minutes = int(offset.total_seconds() // 60) if offset is not None else 0
    sign = "+" if minutes >= 0 else "-"
    minutes = abs(minutes)
    return "D:{stamp}{sign}{hours:02d}'{mins:02d}'".format(
        stamp=value.strftime("%Y%m%d%H%M%S"),
        sign=sign,
        hours=minutes // 60,
        mins=minutes % 60,
    )
