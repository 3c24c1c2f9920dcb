"""Workspace manifest layouts that carry per-project tags."""

from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence

from .command import CommandWrapper
from .dialects import parse_structured_payload
from .errors import UnsupportedWorkspaceError
from .logging import get_logger

_LOGGER = get_logger("manifest")

CONSOLIDATED_MANIFESTS: Sequence[str] = ("workspace.json", "angular.json")
PROJECT_MANIFEST = "project.json"
APPLICATION_TYPE = "application"

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".nx",
    ".angular",
    ".cache",
    "node_modules",
    "dist",
    "tmp",
    "coverage",
}


class WorkspaceManifest(ABC):
    """Answers tag lookups for projects of one workspace."""

    @abstractmethod
    def lookup_tags(self, app: str) -> List[str]:
        """Return the tags declared for ``app``; empty when it is unknown."""


class ConsolidatedManifest(WorkspaceManifest):
    """A single ``workspace.json`` / ``angular.json`` document."""

    def __init__(self, root: Path, path: Path, data: Dict[str, object]) -> None:
        self.root = root
        self.path = path
        self.version = data.get("version")
        projects = data.get("projects")
        self.projects: Dict[str, object] = projects if isinstance(projects, dict) else {}

    def lookup_tags(self, app: str) -> List[str]:
        if not isinstance(self.version, int) or self.version < 2:
            raise UnsupportedWorkspaceError(
                f"Unsupported workspace version for tag filtering in {self.path.name} "
                f"(version={self.version!r}); migrate to workspace version 2 or project.json files"
            )
        entry = self.projects.get(app)
        if isinstance(entry, str):
            # Split layout: the entry points at the directory holding project.json.
            entry = read_json(self.root / entry / PROJECT_MANIFEST)
        if not isinstance(entry, dict):
            return []
        return as_tag_list(entry.get("tags"))


class ProjectScanManifest(WorkspaceManifest):
    """Index of ``project.json`` files declaring application projects."""

    def __init__(self, projects: Dict[str, List[str]]) -> None:
        self.projects = projects

    @classmethod
    def scan(cls, root: Path) -> "ProjectScanManifest":
        projects: Dict[str, List[str]] = {}
        for path in iter_project_files(root):
            data = read_json(path)
            if not isinstance(data, dict):
                continue
            if data.get("projectType") != APPLICATION_TYPE:
                continue
            name = data.get("name")
            if not isinstance(name, str) or not name:
                continue
            projects[name] = as_tag_list(data.get("tags"))
        _LOGGER.debug("Indexed %d application project.json files", len(projects))
        return cls(projects)

    def lookup_tags(self, app: str) -> List[str]:
        return list(self.projects.get(app, []))


class ProjectGraphManifest(WorkspaceManifest):
    """Reads tags from ``nx show project <name> --json``."""

    def __init__(self, nx: CommandWrapper) -> None:
        self._nx = nx

    def lookup_tags(self, app: str) -> List[str]:
        payload = parse_structured_payload(self._nx(["show", "project", app, "--json"]))
        if not isinstance(payload, dict):
            return []
        return as_tag_list(payload.get("tags"))


def resolve_manifest(root: Path, nx: CommandWrapper | None = None) -> WorkspaceManifest:
    """Pick the manifest layout present in ``root``."""
    for name in CONSOLIDATED_MANIFESTS:
        path = root / name
        if not path.is_file():
            continue
        data = read_json(path)
        if isinstance(data, dict):
            _LOGGER.info("Reading project tags from %s", name)
            return ConsolidatedManifest(root, path, data)
        _LOGGER.warning("Ignoring %s: not a JSON object", name)

    scanned = ProjectScanManifest.scan(root)
    if scanned.projects or nx is None:
        _LOGGER.info("Reading project tags from project.json files")
        return scanned

    _LOGGER.info("No project.json applications found; reading tags from the Nx project graph")
    return ProjectGraphManifest(nx)


def iter_project_files(root: Path) -> Iterator[Path]:
    for current, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(name for name in dirnames if name not in _EXCLUDED_DIRS)
        if PROJECT_MANIFEST in filenames:
            yield Path(current) / PROJECT_MANIFEST


def read_json(path: Path) -> Optional[object]:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, json.JSONDecodeError) as exc:
        _LOGGER.warning("Unable to read %s: %s", path, exc)
        return None


def as_tag_list(value: object) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


__all__ = [
    "ConsolidatedManifest",
    "ProjectGraphManifest",
    "ProjectScanManifest",
    "WorkspaceManifest",
    "resolve_manifest",
]
