"""Logger setup for roxdoc commands and reporting of collected diagnostics."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterable

from .errors import Diagnostic, Severity

_LOGGER_NAME = "roxdoc"
_CONSOLE_FORMAT = "[roxdoc] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_SEVERITY_LEVELS = {
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a component logger under the ``roxdoc`` hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, quiet: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Send roxdoc logs to stderr and, optionally, to a log file.

    ``quiet`` limits the console to warnings and errors; ``verbose`` overrides
    it. The log file always records debug output so a failed build can be
    inspected after the fact.
    """
    if verbose:
        console_level = logging.DEBUG
    elif quiet:
        console_level = logging.WARNING
    else:
        console_level = logging.INFO

    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(logging.DEBUG if log_file is not None else console_level)
    logger.propagate = False

    # stdout carries rendered topics, so handlers are rebuilt on every call.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        logger.addHandler(file_handler)

    return logger


def log_diagnostics(logger: logging.Logger, diagnostics: Iterable[Diagnostic]) -> int:
    """Log each diagnostic at its severity, warnings first; returns the count."""
    ordered = sorted(diagnostics, key=lambda item: item.severity is Severity.ERROR)
    for diagnostic in ordered:
        logger.log(_SEVERITY_LEVELS[diagnostic.severity], "%s", diagnostic)
    return len(ordered)


__all__ = ["configure_logging", "get_logger", "log_diagnostics"]
