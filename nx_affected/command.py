"""Process invocation helpers used to drive the Nx CLI."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterable, List, Optional, Sequence, Tuple

from .errors import CommandError
from .logging import get_logger

if TYPE_CHECKING:
    from .version import NxVersion

Runner = Callable[..., str]

_LOGGER = get_logger("command")


def default_runner(args: Iterable[str], *, cwd: Path) -> str:
    """Run ``args`` in ``cwd`` and return stdout, raising on failure."""
    argv = list(args)
    try:
        completed = subprocess.run(
            argv,
            cwd=str(cwd),
            check=False,
            text=True,
            capture_output=True,
        )
    except OSError as exc:
        raise CommandError(argv, stderr=str(exc)) from exc
    if completed.returncode != 0:
        raise CommandError(argv, returncode=completed.returncode, stderr=completed.stderr or "")
    return completed.stdout or ""


def normalize_args(*groups: Sequence[str]) -> List[str]:
    """Concatenate argument groups, trimming tokens and dropping blank ones."""
    result: List[str] = []
    for group in groups:
        for arg in group:
            stripped = arg.strip()
            if stripped:
                result.append(stripped)
    return result


def split_lines(output: str) -> List[str]:
    return [line.strip() for line in output.splitlines() if line.strip()]


@dataclass(frozen=True)
class CommandWrapper:
    """Runs a fixed program and argument prefix with caller-supplied arguments."""

    command: str
    prefix: Tuple[str, ...] = ()
    cwd: Path = field(default_factory=Path.cwd)
    runner: Runner = field(default=default_runner, compare=False, repr=False)
    # Version already reported by Nx while building this wrapper, if any.
    known_version: Optional[NxVersion] = field(default=None, compare=False)

    def __call__(self, args: Optional[Sequence[str]] = None) -> List[str]:
        argv = [self.command, *normalize_args(self.prefix, args or ())]
        _LOGGER.debug("Running %s", " ".join(argv))
        output = self.runner(argv, cwd=self.cwd)
        lines = split_lines(output)
        _LOGGER.debug("Captured %d output lines", len(lines))
        return lines


class CommandBuilder:
    """Fluent builder for :class:`CommandWrapper` instances."""

    def __init__(self, cwd: Path | None = None, runner: Runner | None = None) -> None:
        self._command = ""
        self._args: List[str] = []
        self._cwd = cwd
        self._runner = runner or default_runner

    def with_command(self, command: str) -> "CommandBuilder":
        self._command = command
        return self

    def with_args(self, *args: str) -> "CommandBuilder":
        self._args.extend(args)
        return self

    def build(self) -> CommandWrapper:
        if not self._command:
            raise ValueError("No command given to CommandBuilder")
        return CommandWrapper(
            command=self._command,
            prefix=tuple(self._args),
            cwd=self._cwd if self._cwd is not None else Path.cwd(),
            runner=self._runner,
        )


__all__ = [
    "CommandBuilder",
    "CommandWrapper",
    "Runner",
    "default_runner",
    "normalize_args",
    "split_lines",
]
