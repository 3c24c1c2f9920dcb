"""Helper utilities for constructing temporary Nx workspaces in tests."""

from __future__ import annotations

import json
import textwrap
from pathlib import Path
from typing import Iterable, List, Mapping, Tuple, Union

Response = Union[str, Exception]


class WorkspaceBuilder:
    """Utility for writing files into a throwaway workspace."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "workspace"
        self.root.mkdir()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries into the workspace."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def write_json(self, relative: str, data: object) -> None:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def nx_package(self, lock_file: str | None = "package-lock.json") -> None:
        """Write a package.json with an `nx` script and an optional lock file."""
        self.write_json("package.json", {"name": "workspace", "scripts": {"nx": "nx"}})
        if lock_file:
            self.write({lock_file: ""})

    def project(self, directory: str, name: str, *, tags: Iterable[str] = (), project_type: str = "application") -> None:
        self.write_json(
            f"{directory}/project.json",
            {"name": name, "projectType": project_type, "tags": list(tags)},
        )

    def path(self) -> Path:
        """Return the workspace root path."""
        return self.root


class FakeRunner:
    """Stands in for subprocess execution, answering by exact command line."""

    def __init__(self, responses: Mapping[str, Response] | None = None) -> None:
        self.responses = dict(responses or {})
        self.calls: List[Tuple[List[str], Path]] = []

    def __call__(self, args, *, cwd):  # type: ignore[no-untyped-def]
        argv = list(args)
        self.calls.append((argv, Path(cwd)))
        response = self.responses.get(" ".join(argv), "")
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def commands(self) -> List[str]:
        return [" ".join(argv) for argv, _ in self.calls]


__all__ = ["FakeRunner", "WorkspaceBuilder"]
