"""Logging utilities for nx-affected runs.

Console logs go to stderr so stdout stays free for the JSON result and the
``::group::`` markers. Inside GitHub Actions the console handler prefixes
records with the matching workflow command, so debug lines fold into the
runner's step debug log and warnings and errors become annotations.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

_LOGGER_NAME = "nx_affected"
_CONSOLE_FORMAT = "[nx-affected] %(levelname)s %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a module-scoped logger under the nx_affected hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


class ActionsFormatter(logging.Formatter):
    """Render records as GitHub Actions workflow commands where one exists."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if record.levelno >= logging.ERROR:
            command = "error"
        elif record.levelno >= logging.WARNING:
            command = "warning"
        elif record.levelno <= logging.DEBUG:
            command = "debug"
        else:
            return message
        # Workflow commands are single-line.
        escaped = message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
        return f"::{command}::{escaped}"


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None, actions: bool = False
) -> logging.Logger:
    """Configure the nx_affected logger with stderr output and optional file sink."""
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Reset handlers to avoid duplicate output when the CLI runs more than once.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(level)
    if actions:
        stream_handler.setFormatter(ActionsFormatter("%(message)s"))
    else:
        stream_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    logger.addHandler(stream_handler)

    if log_file is not None:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


__all__ = ["ActionsFormatter", "configure_logging", "get_logger"]
