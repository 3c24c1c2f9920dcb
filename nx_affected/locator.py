"""Package-manager detection for the workspace's Nx installation."""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Dict, Sequence

from .command import CommandBuilder, CommandWrapper, Runner
from .errors import MissingNxScriptError, PackageJsonError, PackageManagerNotDetectedError
from .logging import get_logger
from .version import resolve_version

_LOGGER = get_logger("locator")

NX_SCRIPT = "nx"

# pnpm forwarded a literal "--" to scripts for Nx releases before this one.
PNPM_SEPARATOR_BEFORE = "16.0.0"


@dataclass(frozen=True)
class PackageManagerCandidate:
    """A package manager recognised by the lock file it leaves behind."""

    name: str
    marker: str
    factory: Callable[[Path, Runner | None], CommandWrapper]


def _npm_factory(root: Path, runner: Runner | None) -> CommandWrapper:
    return CommandBuilder(root, runner).with_command("npm").with_args("run", NX_SCRIPT, "--").build()


def _yarn_factory(root: Path, runner: Runner | None) -> CommandWrapper:
    return CommandBuilder(root, runner).with_command("yarn").with_args(NX_SCRIPT).build()


def _pnpm_factory(root: Path, runner: Runner | None) -> CommandWrapper:
    nx = CommandBuilder(root, runner).with_command("pnpm").with_args("run", NX_SCRIPT).build()
    version = resolve_version(nx)
    if version.satisfies("<", PNPM_SEPARATOR_BEFORE):
        _LOGGER.debug("Nx %s under pnpm needs the '--' separator", version.effective)
        nx = (
            CommandBuilder(root, runner)
            .with_command("pnpm")
            .with_args("run", NX_SCRIPT, "--")
            .build()
        )
    return replace(nx, known_version=version)


DEFAULT_CANDIDATES: Sequence[PackageManagerCandidate] = (
    PackageManagerCandidate("npm", "package-lock.json", _npm_factory),
    PackageManagerCandidate("yarn", "yarn.lock", _yarn_factory),
    PackageManagerCandidate("pnpm", "pnpm-lock.yaml", _pnpm_factory),
)


def load_package_json(root: Path) -> Dict[str, object]:
    """Return the parsed package.json, raising when it is unusable."""
    package_json = root / "package.json"
    try:
        data = json.loads(package_json.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise PackageJsonError(
            f"Failed to load the 'package.json' file in {root}, did you set up your project correctly?"
        ) from exc
    if not isinstance(data, dict):
        raise PackageJsonError(f"'package.json' in {root} must contain a JSON object")
    return data


def assert_has_nx_script(root: Path) -> None:
    package_json = load_package_json(root)
    _LOGGER.info("Found package.json file")
    scripts = package_json.get("scripts")
    if not isinstance(scripts, dict) or not isinstance(scripts.get(NX_SCRIPT), str):
        raise MissingNxScriptError(
            "Failed to locate the 'nx' script in package.json, did you set up your project with Nx's CLI?"
        )
    _LOGGER.info("Found 'nx' script inside package.json file")


def locate_nx(
    root: Path,
    *,
    runner: Runner | None = None,
    candidates: Sequence[PackageManagerCandidate] = DEFAULT_CANDIDATES,
) -> CommandWrapper:
    """Return a wrapper that runs Nx through the workspace's package manager."""
    assert_has_nx_script(root)

    for candidate in candidates:
        if not (root / candidate.marker).exists():
            continue
        _LOGGER.info("Using %s as package manager", candidate.name)
        return candidate.factory(root, runner)

    names = ", ".join(candidate.name for candidate in candidates)
    raise PackageManagerNotDetectedError(
        f"Failed to detect your package manager, are you using one of: {names}?"
    )


__all__ = [
    "DEFAULT_CANDIDATES",
    "PackageManagerCandidate",
    "assert_has_nx_script",
    "load_package_json",
    "locate_nx",
]
