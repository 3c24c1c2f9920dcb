"""Nx version discovery and semantic-version comparison."""

from __future__ import annotations

import operator
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Optional, Tuple

from packaging.version import InvalidVersion, Version

from .command import CommandWrapper
from .errors import NxVersionError
from .logging import get_logger

_LOGGER = get_logger("version")

_LOCAL_PATTERN = re.compile(r"^(?:-\s*)?Local:\s*(?P<value>.+)$", re.IGNORECASE)
_GLOBAL_PATTERN = re.compile(r"^(?:-\s*)?Global:\s*(?P<value>.+)$", re.IGNORECASE)
_BARE_PATTERN = re.compile(r"^v?(?P<value>\d+\.\d+\.\d+\S*)")
_SEMVER_PATTERN = re.compile(
    r"^v?(?P<core>\d+(?:\.\d+){0,2})"
    r"(?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+[0-9A-Za-z.-]*)?$"
)

_OPERATORS: Dict[str, Callable[[SemVer, SemVer], bool]] = {
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
    "=": operator.eq,
    "==": operator.eq,
}


@dataclass(frozen=True)
class NxVersion:
    """Versions reported by ``nx --version``; the local install wins."""

    local: Optional[str] = None
    global_: Optional[str] = None

    @property
    def effective(self) -> Optional[str]:
        return self.local or self.global_

    def satisfies(self, op: str, other: str) -> bool:
        """Compare the effective version; an unknown version satisfies nothing."""
        if self.effective is None:
            return False
        return compare_versions(self.effective, op, other)


def resolve_version(nx: CommandWrapper) -> NxVersion:
    """Run ``nx --version`` and parse the report, unless ``nx`` already knows it."""
    if nx.known_version is not None:
        return nx.known_version
    version = parse_version_output(nx(["--version"]))
    _LOGGER.info(
        "Detected Nx version local=%s global=%s", version.local, version.global_
    )
    return version


def parse_version_output(lines: Iterable[str]) -> NxVersion:
    local: Optional[str] = None
    global_: Optional[str] = None
    for raw in lines:
        line = raw.strip()
        match = _LOCAL_PATTERN.match(line)
        if match:
            local = _clean_value(match.group("value"))
            continue
        match = _GLOBAL_PATTERN.match(line)
        if match:
            global_ = _clean_value(match.group("value"))
            continue
        match = _BARE_PATTERN.match(line)
        if match:
            # Single-line report from older releases: no local/global split.
            local = match.group("value")
            break
    return NxVersion(local=local, global_=global_)


def _clean_value(value: str) -> Optional[str]:
    cleaned = value.strip()
    if not cleaned or cleaned.lower() == "not found":
        return None
    if cleaned[:1] in {"v", "V"}:
        cleaned = cleaned[1:]
    return cleaned or None


@dataclass(frozen=True, order=True)
class SemVer:
    """Semantic-version sort key: release, then prerelease identifiers.

    A release sorts above any of its prereleases. Prerelease identifiers
    compare field by field, numeric ones as numbers and below alphanumeric
    ones, and a shorter identifier list sorts first when it is a prefix.
    """

    release: Tuple[int, int, int]
    is_release: bool
    prerelease: Tuple[Tuple[int, int, str], ...] = ()
    raw: str = field(default="", compare=False)


def parse_semver(value: str) -> SemVer:
    """Parse an npm-style version string; build metadata is ignored."""
    match = _SEMVER_PATTERN.match(value.strip())
    if not match:
        raise NxVersionError(f"Unable to parse Nx version '{value}'")
    try:
        release = Version(match.group("core")).release
    except InvalidVersion as exc:
        raise NxVersionError(f"Unable to parse Nx version '{value}'") from exc
    padded = tuple(release) + (0,) * (3 - len(release))
    pre = match.group("pre")
    identifiers = tuple(_identifier_key(part) for part in pre.split(".")) if pre else ()
    return SemVer(
        release=(padded[0], padded[1], padded[2]),
        is_release=not identifiers,
        prerelease=identifiers,
        raw=value,
    )


def _identifier_key(part: str) -> Tuple[int, int, str]:
    if part.isdigit():
        return (0, int(part), "")
    return (1, 0, part)


def compare_versions(left: str, op: str, right: str) -> bool:
    try:
        compare = _OPERATORS[op]
    except KeyError as exc:
        raise ValueError(f"Unsupported version operator '{op}'") from exc
    return compare(parse_semver(left), parse_semver(right))


__all__ = [
    "NxVersion",
    "SemVer",
    "compare_versions",
    "parse_semver",
    "parse_version_output",
    "resolve_version",
]
