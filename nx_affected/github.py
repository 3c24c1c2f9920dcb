"""Lookup of the last successful workflow run through the GitHub REST API."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Callable, Iterable, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from .config import DEFAULT_API_URL
from .errors import GitHubLookupError
from .logging import get_logger

_LOGGER = get_logger("github")


class LastSuccessfulCommitLookup:
    """Finds the head commit of the latest successful push run on a branch."""

    def __init__(
        self,
        token: str,
        repository: str,
        *,
        api_url: str = DEFAULT_API_URL,
        request_timeout: float = 30.0,
    ) -> None:
        owner, _, repo = repository.partition("/")
        if not owner or not repo:
            raise GitHubLookupError(
                f"Repository must look like 'owner/repo', got '{repository}'"
            )
        self.owner = owner
        self.repo = repo
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.request_timeout = request_timeout

    def fetch(self, workflow_id: str, branch: str) -> Optional[str]:
        """Return the commit SHA, or ``None`` when the branch has no successful run."""
        query = urlencode(
            {
                "status": "success",
                "branch": branch,
                "event": "push",
                "per_page": 1,
            }
        )
        endpoint = (
            f"{self.api_url}/repos/{quote(self.owner)}/{quote(self.repo)}"
            f"/actions/workflows/{quote(workflow_id, safe='')}/runs?{query}"
        )
        headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self.token}",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        request = Request(endpoint, headers=headers, method="GET")

        try:
            with urlopen(request, timeout=self.request_timeout) as response:  # type: ignore[arg-type]
                raw = response.read()
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="ignore") if hasattr(exc, "read") else ""
            message = detail.strip() or exc.reason
            raise GitHubLookupError(
                f"GitHub workflow run lookup failed with status {exc.code}: {message}"
            ) from exc
        except URLError as exc:
            raise GitHubLookupError(f"GitHub workflow run lookup failed: {exc.reason}") from exc

        try:
            payload = json.loads(raw.decode("utf-8"))
        except json.JSONDecodeError as exc:
            raise GitHubLookupError("GitHub returned invalid JSON for workflow runs") from exc

        commit = _extract_head_commit(payload)
        _LOGGER.info("Last successful build: %s", commit)
        return commit


def _extract_head_commit(payload: object) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    runs = payload.get("workflow_runs")
    if not isinstance(runs, list) or not runs:
        return None
    first = runs[0]
    if not isinstance(first, dict):
        return None
    head_commit = first.get("head_commit")
    if isinstance(head_commit, dict) and isinstance(head_commit.get("id"), str):
        return head_commit["id"]
    head_sha = first.get("head_sha")
    if isinstance(head_sha, str) and head_sha:
        return head_sha
    return None


class CommitVerifier:
    """Checks that a commit exists in the local clone."""

    def __init__(self, runner: Callable[..., str] | None = None) -> None:
        self._runner = runner or self._default_runner

    def exists(self, repo: Path, sha: str) -> bool:
        try:
            self._runner(["git", "cat-file", "-e", f"{sha}^{{commit}}"], cwd=repo)
        except (subprocess.CalledProcessError, OSError) as exc:
            _LOGGER.debug("git cat-file failed for %s: %s", sha, exc)
            return False
        return True

    @staticmethod
    def _default_runner(args: Iterable[str], *, cwd: Path) -> str:
        completed = subprocess.run(
            list(args),
            cwd=str(cwd),
            check=True,
            text=True,
            capture_output=True,
        )
        return completed.stdout


__all__ = ["CommitVerifier", "LastSuccessfulCommitLookup"]
