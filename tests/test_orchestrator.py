"""End-to-end tests for the affected-app pipeline with a fake Nx."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import pytest

from nx_affected.config import AffectedConfig, GitHubConfig
from nx_affected.errors import CommandError, PackageManagerNotDetectedError
from nx_affected.orchestrator import Orchestrator, resolve_base_commit, run_pipeline
from tests._fixtures.workspace_builder import FakeRunner, WorkspaceBuilder

MODERN_VERSION = "Nx Version:\n- Local: v18.2.0\n- Global: Not found\n"


@pytest.fixture
def nx_workspace(workspace: WorkspaceBuilder) -> WorkspaceBuilder:
    workspace.nx_package("package-lock.json")
    workspace.project("apps/app-a", "app-a", tags=["team-x", "web"])
    workspace.project("apps/app-b", "app-b", tags=["team-y"])
    return workspace


def _modern_runner(base: Optional[str] = None) -> FakeRunner:
    query = "npm run nx -- show projects --type app --json"
    if base:
        query += f" --affected --base={base} --head=HEAD"
    return FakeRunner(
        {
            "npm run nx -- --version": MODERN_VERSION,
            query: "\n> ws@1.0.0 nx\n> nx show projects --type app --json\n\n[\"app-a\",\"app-b\"]\n",
        }
    )


def test_resolve_affected_with_base(nx_workspace: WorkspaceBuilder) -> None:
    runner = _modern_runner("abc123")

    apps = Orchestrator(nx_workspace.path(), runner=runner).resolve_affected("abc123", [])

    assert apps == ["app-a", "app-b"]
    assert all(cwd == nx_workspace.path() for _, cwd in runner.calls)


def test_resolve_affected_filters_tags(nx_workspace: WorkspaceBuilder) -> None:
    orchestrator = Orchestrator(nx_workspace.path(), runner=_modern_runner())

    assert orchestrator.resolve_affected(None, ["team-x"]) == ["app-a"]
    assert orchestrator.resolve_affected(None, ["-:web"]) == ["app-b"]


def test_resolve_affected_is_idempotent(nx_workspace: WorkspaceBuilder) -> None:
    orchestrator = Orchestrator(nx_workspace.path(), runner=_modern_runner("abc"))

    first = orchestrator.resolve_affected("abc", ["team-x", "-:deprecated"])
    second = orchestrator.resolve_affected("abc", ["team-x", "-:deprecated"])

    assert set(first) == set(second)


def test_empty_affected_set_with_tags(workspace: WorkspaceBuilder) -> None:
    workspace.nx_package("yarn.lock")
    workspace.write_json("angular.json", {"projects": {}})
    runner = FakeRunner(
        {
            "yarn nx --version": "- Local: v17.0.0",
            "yarn nx show projects --type app --json": "[]",
        }
    )

    assert Orchestrator(workspace.path(), runner=runner).resolve_affected(None, ["web"]) == []


def test_legacy_workspace(workspace: WorkspaceBuilder) -> None:
    workspace.nx_package("yarn.lock")
    runner = FakeRunner(
        {
            "yarn nx --version": "11.6.3\n",
            "yarn nx affected:apps --plain --all": (
                "yarn run v1.22.19\n$ nx affected:apps --plain --all\napp-a app-b\nDone in 2.05s.\n"
            ),
        }
    )

    apps = Orchestrator(workspace.path(), runner=runner).resolve_affected(None, [])

    assert apps == ["app-a", "app-b"]


def test_tool_failure_propagates(nx_workspace: WorkspaceBuilder) -> None:
    runner = FakeRunner(
        {
            "npm run nx -- --version": MODERN_VERSION,
            "npm run nx -- show projects --type app --json": CommandError(
                ["npm", "run", "nx"], returncode=1, stderr="Could not find Nx modules"
            ),
        }
    )

    with pytest.raises(CommandError, match="Could not find Nx modules"):
        Orchestrator(nx_workspace.path(), runner=runner).resolve_affected(None, [])


def test_precondition_failure_propagates(workspace: WorkspaceBuilder) -> None:
    workspace.nx_package(lock_file=None)

    with pytest.raises(PackageManagerNotDetectedError):
        Orchestrator(workspace.path(), runner=FakeRunner()).resolve_affected(None, [])


class _StubLookup:
    def __init__(self, sha: Optional[str]) -> None:
        self.sha = sha
        self.calls: list[tuple[str, str]] = []

    def fetch(self, workflow_id: str, branch: str) -> Optional[str]:
        self.calls.append((workflow_id, branch))
        return self.sha


class _StubVerifier:
    def __init__(self, exists: bool) -> None:
        self._exists = exists

    def exists(self, repo: Path, sha: str) -> bool:
        return self._exists


def _github_config(root: Path, **kwargs) -> AffectedConfig:  # type: ignore[no-untyped-def]
    github = GitHubConfig(token="t", workflow_id="ci.yml", branch="main", repository="acme/repo")
    return AffectedConfig(root=root, github=github, **kwargs)


def test_explicit_base_skips_lookup(tmp_path: Path) -> None:
    lookup = _StubLookup("remote")

    base = resolve_base_commit(
        _github_config(tmp_path, base="local"), lookup_factory=lambda config: lookup
    )

    assert base == "local"
    assert lookup.calls == []


def test_base_from_last_successful_build(tmp_path: Path) -> None:
    lookup = _StubLookup("abc123")

    base = resolve_base_commit(
        _github_config(tmp_path),
        lookup_factory=lambda config: lookup,
        verifier=_StubVerifier(True),  # type: ignore[arg-type]
    )

    assert base == "abc123"
    assert lookup.calls == [("ci.yml", "main")]


def test_missing_local_commit_means_no_base(tmp_path: Path) -> None:
    base = resolve_base_commit(
        _github_config(tmp_path),
        lookup_factory=lambda config: _StubLookup("abc123"),
        verifier=_StubVerifier(False),  # type: ignore[arg-type]
    )

    assert base is None


def test_lookup_not_configured(tmp_path: Path) -> None:
    assert resolve_base_commit(AffectedConfig(root=tmp_path)) is None


def test_run_pipeline_without_previous_build(nx_workspace: WorkspaceBuilder) -> None:
    config = _github_config(nx_workspace.path(), tags=["team-y"])

    result = run_pipeline(
        config,
        runner=_modern_runner(),
        lookup_factory=lambda config: _StubLookup(None),  # type: ignore[arg-type,return-value]
    )

    assert result.base is None
    assert result.apps == ["app-b"]
    assert result.as_string == "app-b"


def test_pnpm_workspace_reads_nx_version_once(workspace: WorkspaceBuilder) -> None:
    workspace.nx_package("pnpm-lock.yaml")
    runner = FakeRunner(
        {
            "pnpm run nx --version": MODERN_VERSION,
            "pnpm run nx show projects --type app --json": '["app-a"]',
        }
    )

    apps = Orchestrator(workspace.path(), runner=runner).resolve_affected(None, [])

    assert apps == ["app-a"]
    assert runner.commands == [
        "pnpm run nx --version",
        "pnpm run nx show projects --type app --json",
    ]
