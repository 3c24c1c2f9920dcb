"""Exception hierarchy raised by the affected-app resolution pipeline."""

from __future__ import annotations

from typing import Sequence


class NxAffectedError(RuntimeError):
    """Base class for every failure surfaced to the calling pipeline."""


class ConfigError(NxAffectedError):
    """Raised when the configuration file cannot be parsed."""


class PackageJsonError(NxAffectedError):
    """Raised when package.json is missing or cannot be parsed."""


class MissingNxScriptError(NxAffectedError):
    """Raised when package.json does not declare an `nx` script."""


class PackageManagerNotDetectedError(NxAffectedError):
    """Raised when no supported lock file exists in the workspace."""


class CommandError(NxAffectedError):
    """Raised when an external command cannot start or exits non-zero."""

    def __init__(
        self,
        args: Sequence[str],
        *,
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        self.command = list(args)
        self.returncode = returncode
        self.stderr = stderr
        rendered = " ".join(self.command)
        if returncode is None:
            message = f"Unable to run '{rendered}'"
        else:
            message = f"'{rendered}' failed with exit code {returncode}"
        detail = stderr.strip()
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class NxVersionError(NxAffectedError):
    """Raised when the Nx version is unparseable or older than supported."""


class AffectedParseError(NxAffectedError):
    """Raised when Nx output lacks the expected structured payload."""


class UnsupportedWorkspaceError(NxAffectedError):
    """Raised when tags are requested from a workspace layout that has none."""


class GitHubLookupError(NxAffectedError):
    """Raised when the GitHub workflow run lookup fails."""


__all__ = [
    "AffectedParseError",
    "CommandError",
    "ConfigError",
    "GitHubLookupError",
    "MissingNxScriptError",
    "NxAffectedError",
    "NxVersionError",
    "PackageJsonError",
    "PackageManagerNotDetectedError",
    "UnsupportedWorkspaceError",
]
