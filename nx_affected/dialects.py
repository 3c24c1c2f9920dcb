"""Version-bound Nx query dialects and their output parsers."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence

from .command import CommandWrapper
from .errors import AffectedParseError, NxVersionError
from .logging import get_logger
from .version import NxVersion, resolve_version

_LOGGER = get_logger("dialects")

QueryBuilder = Callable[[Optional[str], str], List[str]]
Parser = Callable[[Sequence[str]], List[str]]


@dataclass(frozen=True)
class Dialect:
    """A version predicate bound to a query builder and output parser."""

    name: str
    matches: Callable[[NxVersion], bool]
    build_query: QueryBuilder
    parse: Parser


def _range_args(base: Optional[str], head: str) -> List[str]:
    if base:
        return [f"--base={base}", f"--head={head}"]
    return ["--all"]


def _show_projects_query(base: Optional[str], head: str) -> List[str]:
    args = ["show", "projects", "--type", "app", "--json"]
    if base:
        args.extend(["--affected", f"--base={base}", f"--head={head}"])
    return args


def _print_affected_query(base: Optional[str], head: str) -> List[str]:
    return ["print-affected", "--type=app", *_range_args(base, head)]


def _affected_apps_query(base: Optional[str], head: str) -> List[str]:
    return ["affected:apps", "--plain", *_range_args(base, head)]


def parse_structured_payload(lines: Sequence[str]) -> object:
    """Decode the JSON payload that ends Nx's output.

    Package managers print banners before the payload, so parsing starts at
    the first line that opens an array or object.
    """
    start = next(
        (index for index, line in enumerate(lines) if line.lstrip().startswith(("[", "{"))),
        None,
    )
    if start is None:
        raise AffectedParseError("Nx output did not contain a JSON payload")
    payload_text = "\n".join(lines[start:])
    try:
        payload = json.loads(payload_text)
    except json.JSONDecodeError as exc:
        raise AffectedParseError(f"Nx output contained malformed JSON: {exc}") from exc
    return payload


def parse_structured_output(lines: Sequence[str]) -> List[str]:
    """Extract project names from a `show projects` array or `print-affected` object."""
    payload = parse_structured_payload(lines)
    projects = payload.get("projects") if isinstance(payload, dict) else payload
    if not isinstance(projects, list) or not all(isinstance(item, str) for item in projects):
        raise AffectedParseError("Nx JSON payload did not contain a list of project names")
    return unique(projects)


def parse_plain_output(lines: Sequence[str], *, subcommand: str = "affected:apps") -> List[str]:
    """Extract project names from ``affected:apps --plain`` output.

    The payload is the line after the echoed command, accepted only when a
    ``Done in`` line follows it directly or is absent altogether.
    """
    cleaned = [line.strip() for line in lines if line.strip()]
    echo_index = next(
        (
            index
            for index, line in enumerate(cleaned)
            if "nx" in line and subcommand in line
        ),
        None,
    )
    if echo_index is None or echo_index + 1 >= len(cleaned):
        _LOGGER.debug("No payload line found in plain Nx output")
        return []

    payload_index = echo_index + 1
    has_done = any(line.startswith("Done in") for line in cleaned)
    followed_by_done = payload_index + 1 < len(cleaned) and cleaned[payload_index + 1].startswith(
        "Done in"
    )
    if has_done and not followed_by_done:
        _LOGGER.debug("Plain Nx output has trailing noise; treating as empty")
        return []
    return unique(token for token in cleaned[payload_index].split() if token)


def unique(items: Iterable[str]) -> List[str]:
    seen: set[str] = set()
    result: List[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


SHOW_PROJECTS = Dialect(
    name="show-projects",
    matches=lambda version: version.satisfies(">=", "16.0.0"),
    build_query=_show_projects_query,
    parse=parse_structured_output,
)

PRINT_AFFECTED = Dialect(
    name="print-affected",
    matches=lambda version: version.satisfies(">=", "12.0.0"),
    build_query=_print_affected_query,
    parse=parse_structured_output,
)

AFFECTED_APPS = Dialect(
    name="affected-apps",
    matches=lambda version: True,
    build_query=_affected_apps_query,
    parse=parse_plain_output,
)

DIALECTS: Sequence[Dialect] = (SHOW_PROJECTS, PRINT_AFFECTED, AFFECTED_APPS)


def select_dialect(version: NxVersion, dialects: Sequence[Dialect] = DIALECTS) -> Dialect:
    for dialect in dialects:
        if dialect.matches(version):
            return dialect
    raise NxVersionError(f"No query dialect supports Nx {version.effective}")


def get_affected_apps(
    base_commit: Optional[str],
    nx: CommandWrapper,
    *,
    version: NxVersion | None = None,
    head: str = "HEAD",
    minimum_version: str | None = None,
) -> List[str]:
    """Return the applications Nx reports as affected since ``base_commit``.

    Without a base commit every application is returned.
    """
    if version is None:
        version = resolve_version(nx)

    if version.effective is None:
        if minimum_version:
            raise NxVersionError(
                f"Unable to determine the Nx version; at least {minimum_version} is required"
            )
        _LOGGER.warning("Unable to determine the Nx version; using the legacy query")
    elif minimum_version and not version.satisfies(">=", minimum_version):
        raise NxVersionError(
            f"Nx {version.effective} is older than the minimum supported version {minimum_version}"
        )

    dialect = select_dialect(version)
    args = dialect.build_query(base_commit, head)
    _LOGGER.info("Querying affected apps with the %s dialect", dialect.name)
    output = nx(args)
    _LOGGER.debug("Nx output: %s", output)
    apps = dialect.parse(output)
    _LOGGER.info("Nx reported %d affected app(s)", len(apps))
    return apps


__all__ = [
    "AFFECTED_APPS",
    "DIALECTS",
    "Dialect",
    "PRINT_AFFECTED",
    "SHOW_PROJECTS",
    "get_affected_apps",
    "parse_plain_output",
    "parse_structured_payload",
    "parse_structured_output",
    "select_dialect",
    "unique",
]
