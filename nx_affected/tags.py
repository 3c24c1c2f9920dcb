"""Tag expression filtering for affected applications."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence, Tuple

from .command import CommandWrapper
from .logging import get_logger
from .manifest import WorkspaceManifest, resolve_manifest

_LOGGER = get_logger("tags")

NEGATION_PREFIX = "-:"


@dataclass(frozen=True)
class TagQuery:
    """Positive tags that must all be present and negative tags that must be absent."""

    include: Tuple[str, ...] = ()
    exclude: Tuple[str, ...] = ()

    @classmethod
    def parse(cls, expressions: Sequence[str]) -> "TagQuery":
        include: List[str] = []
        exclude: List[str] = []
        for expression in expressions:
            tag = expression.strip()
            if not tag:
                continue
            if tag.startswith(NEGATION_PREFIX):
                negated = tag[len(NEGATION_PREFIX) :].strip()
                if negated:
                    exclude.append(negated)
            else:
                include.append(tag)
        return cls(include=tuple(include), exclude=tuple(exclude))

    def __bool__(self) -> bool:
        return bool(self.include or self.exclude)

    def matches(self, tags: Sequence[str]) -> bool:
        present = set(tags)
        if any(tag in present for tag in self.exclude):
            return False
        return all(tag in present for tag in self.include)


def filter_by_tags(
    apps: Sequence[str],
    tags: Sequence[str],
    *,
    root: Path,
    nx: CommandWrapper | None = None,
    manifest: WorkspaceManifest | None = None,
) -> List[str]:
    """Keep the applications whose tags satisfy every tag expression."""
    query = TagQuery.parse(tags)
    if not query or not apps:
        return list(apps)

    if manifest is None:
        manifest = resolve_manifest(root, nx)

    result: List[str] = []
    for app in apps:
        app_tags = manifest.lookup_tags(app)
        if query.matches(app_tags):
            result.append(app)
        else:
            _LOGGER.debug("Dropping %s (tags: %s)", app, ", ".join(app_tags) or "none")
    _LOGGER.info("Tag filter kept %d of %d app(s)", len(result), len(apps))
    return result


__all__ = ["NEGATION_PREFIX", "TagQuery", "filter_by_tags"]
