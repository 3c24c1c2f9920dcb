"""Pipeline orchestration for affected-app resolution."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .command import CommandWrapper, Runner
from .config import AffectedConfig
from .dialects import get_affected_apps
from .github import CommitVerifier, LastSuccessfulCommitLookup
from .locator import locate_nx
from .logging import get_logger
from .outputs import log_group
from .tags import filter_by_tags
from .version import resolve_version

LookupFactory = Callable[[AffectedConfig], Optional[LastSuccessfulCommitLookup]]


@dataclass
class AffectedResult:
    """Outcome of a pipeline run."""

    apps: List[str]
    base: Optional[str]
    tags: List[str] = field(default_factory=list)

    @property
    def as_string(self) -> str:
        return ",".join(self.apps)


def _default_lookup(config: AffectedConfig) -> Optional[LastSuccessfulCommitLookup]:
    github = config.github
    if not github.enabled:
        return None
    return LastSuccessfulCommitLookup(
        github.token or "", github.repository or "", api_url=github.api_url
    )


class Orchestrator:
    """Coordinates Nx location, version detection, querying and tag filtering."""

    def __init__(
        self,
        root: Path,
        *,
        runner: Runner | None = None,
        head: str = "HEAD",
        minimum_nx_version: str | None = None,
        locator: Callable[..., CommandWrapper] = locate_nx,
    ) -> None:
        self.root = root
        self.runner = runner
        self.head = head
        self.minimum_nx_version = minimum_nx_version
        self._locator = locator
        self.logger = get_logger("orchestrator")

    @classmethod
    def from_config(cls, config: AffectedConfig, *, runner: Runner | None = None) -> "Orchestrator":
        return cls(
            config.root,
            runner=runner,
            head=config.head,
            minimum_nx_version=config.minimum_nx_version,
        )

    def resolve_affected(self, base_commit: Optional[str], tags: Sequence[str]) -> List[str]:
        """Return affected applications since ``base_commit`` that match ``tags``."""
        with log_group("Ensuring Nx is available"):
            nx = self._locator(self.root, runner=self.runner)
            version = resolve_version(nx)

        if base_commit:
            self.logger.info("Computing apps affected since %s", base_commit)
        else:
            self.logger.info("No base commit available; listing all apps")

        apps = get_affected_apps(
            base_commit,
            nx,
            version=version,
            head=self.head,
            minimum_version=self.minimum_nx_version,
        )
        if tags:
            apps = filter_by_tags(apps, tags, root=self.root, nx=nx)
        return apps


def resolve_base_commit(
    config: AffectedConfig,
    *,
    lookup_factory: LookupFactory = _default_lookup,
    verifier: CommitVerifier | None = None,
) -> Optional[str]:
    """Use the explicit base, else the last successful build's commit when it exists locally."""
    logger = get_logger("orchestrator")
    if config.base:
        return config.base

    lookup = lookup_factory(config)
    if lookup is None:
        logger.info("GitHub lookup not configured; no base commit")
        return None

    github = config.github
    with log_group("Get commit with last successful build"):
        sha = lookup.fetch(github.workflow_id or "", github.branch or "")
    if not sha:
        return None

    verifier = verifier or CommitVerifier()
    if not verifier.exists(config.root, sha):
        logger.warning(
            "Commit %s is not available locally (shallow clone?); listing all apps", sha
        )
        return None
    return sha


def run_pipeline(
    config: AffectedConfig,
    *,
    runner: Runner | None = None,
    lookup_factory: LookupFactory = _default_lookup,
    verifier: CommitVerifier | None = None,
) -> AffectedResult:
    """Resolve the base commit, then the affected apps, for ``config``."""
    base = resolve_base_commit(config, lookup_factory=lookup_factory, verifier=verifier)
    orchestrator = Orchestrator.from_config(config, runner=runner)
    apps = orchestrator.resolve_affected(base, config.tags)
    return AffectedResult(apps=apps, base=base, tags=list(config.tags))


__all__ = [
    "AffectedResult",
    "Orchestrator",
    "resolve_base_commit",
    "run_pipeline",
]
