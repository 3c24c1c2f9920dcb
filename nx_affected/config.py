"""Configuration loading for nx-affected (.nx-affected.yml and action inputs)."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from .errors import ConfigError

CONFIG_FILENAME = ".nx-affected.yml"
DEFAULT_API_URL = "https://api.github.com"


@dataclass
class GitHubConfig:
    """Settings for the last-successful-build lookup."""

    token: Optional[str] = None
    workflow_id: Optional[str] = None
    branch: Optional[str] = None
    repository: Optional[str] = None
    api_url: str = DEFAULT_API_URL

    @property
    def enabled(self) -> bool:
        return bool(self.token and self.workflow_id and self.branch and self.repository)


@dataclass
class AffectedConfig:
    """Effective settings for one affected-apps resolution."""

    root: Path
    base: Optional[str] = None
    head: str = "HEAD"
    tags: List[str] = field(default_factory=list)
    minimum_nx_version: Optional[str] = None
    github: GitHubConfig = field(default_factory=GitHubConfig)


def load_config(config_path: Path) -> AffectedConfig:
    """Load configuration from disk; a missing file yields defaults."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return AffectedConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    workspace = _as_str(data.get("workspace"))
    if workspace:
        root = (root / workspace).resolve()

    github_data = _as_dict(data.get("github"))
    github = GitHubConfig(
        workflow_id=_as_str(github_data.get("workflow_id")),
        branch=_as_str(github_data.get("branch")),
        repository=_as_str(github_data.get("repository")),
        api_url=_as_str(github_data.get("api_url")) or DEFAULT_API_URL,
    )
    if _as_str(github_data.get("token")):
        raise ConfigError(
            f"Do not store tokens in {CONFIG_FILENAME}; pass --github-token or INPUT_GITHUB_TOKEN"
        )

    return AffectedConfig(
        root=root,
        head=_as_str(data.get("head")) or "HEAD",
        tags=_as_tag_list(data.get("tags")),
        minimum_nx_version=_as_str(data.get("minimum_nx_version")),
        github=github,
    )


def apply_environment(config: AffectedConfig, environ: Mapping[str, str]) -> AffectedConfig:
    """Overlay GitHub Actions inputs (``INPUT_*``) and repository identity."""
    github = config.github
    github = replace(
        github,
        token=_env(environ, "INPUT_GITHUB_TOKEN") or _env(environ, "GITHUB_TOKEN") or github.token,
        workflow_id=_env(environ, "INPUT_WORKFLOW_ID") or github.workflow_id,
        branch=_env(environ, "INPUT_BRANCH") or github.branch,
        repository=github.repository or _env(environ, "GITHUB_REPOSITORY"),
        api_url=_env(environ, "GITHUB_API_URL") or github.api_url,
    )
    tags = config.tags
    env_tags = _env(environ, "INPUT_TAGS")
    if env_tags:
        tags = _as_tag_list(env_tags)
    return replace(
        config,
        base=_env(environ, "INPUT_BASE") or config.base,
        tags=tags,
        github=github,
    )


def _env(environ: Mapping[str, str], key: str) -> Optional[str]:
    value = environ.get(key, "").strip()
    return value or None


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (str, int, float)):
        text = str(value).strip()
        return text or None
    return None


def _as_tag_list(value: Any) -> List[str]:
    """Accept a YAML list or a comma / newline separated string."""
    if value is None:
        return []
    if isinstance(value, str):
        parts: Sequence[str] = value.replace("\n", ",").split(",")
    elif isinstance(value, Sequence):
        parts = [str(item) for item in value if isinstance(item, (str, int, float))]
    else:
        return []
    return [part.strip() for part in parts if part.strip()]


__all__ = [
    "AffectedConfig",
    "CONFIG_FILENAME",
    "ConfigError",
    "GitHubConfig",
    "apply_environment",
    "load_config",
]
