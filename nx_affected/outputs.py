"""GitHub Actions workflow commands: step outputs, log groups and errors."""

from __future__ import annotations

import json
import os
import sys
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator, Mapping, Optional, Sequence

from .logging import get_logger

_LOGGER = get_logger("outputs")


def in_actions(environ: Mapping[str, str] | None = None) -> bool:
    environ = os.environ if environ is None else environ
    return environ.get("GITHUB_ACTIONS") == "true"


@contextmanager
def log_group(
    title: str,
    *,
    environ: Mapping[str, str] | None = None,
    stream: IO[str] | None = None,
) -> Iterator[None]:
    """Fold the enclosed log lines under ``title`` in the Actions log viewer."""
    if not in_actions(environ):
        _LOGGER.info(title)
        yield
        return
    out = stream or sys.stdout
    out.write(f"::group::{title}\n")
    out.flush()
    try:
        yield
    finally:
        out.write("::endgroup::\n")
        out.flush()


def set_output(
    name: str,
    value: str,
    *,
    environ: Mapping[str, str] | None = None,
) -> Optional[Path]:
    """Append ``name=value`` to ``$GITHUB_OUTPUT``; returns the file written, if any."""
    environ = os.environ if environ is None else environ
    target = environ.get("GITHUB_OUTPUT")
    if not target:
        return None
    path = Path(target)
    delimiter = f"ghadelimiter_{uuid.uuid4()}"
    with path.open("a", encoding="utf-8") as handle:
        handle.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
    _LOGGER.info("Setting %s output to %s", name, value)
    return path


def publish_affected(
    apps: Sequence[str],
    *,
    environ: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Publish the ``affected`` (JSON) and ``affectedString`` (comma-joined) outputs."""
    outputs = {
        "affected": json.dumps(list(apps)),
        "affectedString": ",".join(apps),
    }
    for name, value in outputs.items():
        set_output(name, value, environ=environ)
    return outputs


def report_failure(message: str, *, stream: IO[str] | None = None) -> None:
    out = stream or sys.stdout
    # Workflow commands are single-line.
    escaped = message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
    out.write(f"::error::{escaped}\n")
    out.flush()


__all__ = ["in_actions", "log_group", "publish_affected", "report_failure", "set_output"]
