"""CLI entrypoint for nx-affected."""

from __future__ import annotations

import argparse
import dataclasses
import json
import os
import sys
from pathlib import Path
from typing import Mapping, Sequence

from .config import AffectedConfig, apply_environment, load_config
from .errors import NxAffectedError
from .logging import configure_logging
from .orchestrator import run_pipeline
from .outputs import in_actions, publish_affected, report_failure


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nx-affected",
        description="List the Nx applications affected since the last successful build.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Increase log verbosity for troubleshooting.",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write logs to this file.",
    )
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the Nx workspace root (defaults to current directory).",
    )
    parser.add_argument(
        "--base",
        default=None,
        help="Commit to compare against; skips the GitHub lookup.",
    )
    parser.add_argument(
        "--head",
        default=None,
        help="Commit or ref to compare to (defaults to HEAD).",
    )
    parser.add_argument(
        "-t",
        "--tag",
        dest="tags",
        action="append",
        default=None,
        help=(
            "Keep apps carrying this tag; prefix with '-:' to drop apps carrying it "
            "(--tag=-:legacy or -t -:legacy). Repeatable."
        ),
    )
    parser.add_argument(
        "--minimum-nx-version",
        default=None,
        help="Fail when the installed Nx is older than this version.",
    )
    github = parser.add_argument_group("last successful build lookup")
    github.add_argument("--github-token", default=None, help="Token for the GitHub API.")
    github.add_argument("--workflow-id", default=None, help="Workflow file name or id.")
    github.add_argument("--branch", default=None, help="Branch whose runs are inspected.")
    github.add_argument(
        "--repository",
        default=None,
        help="Repository as owner/repo (defaults to $GITHUB_REPOSITORY).",
    )
    return parser


_TAG_FLAGS = ("-t", "--tag")


def _glue_tag_values(argv: Sequence[str]) -> list[str]:
    """Attach the value after each tag flag as '--tag=<value>'.

    Negated tags start with '-', which argparse would otherwise read as an option.
    """
    glued: list[str] = []
    index = 0
    while index < len(argv):
        arg = argv[index]
        if arg == "--":
            glued.extend(argv[index:])
            break
        if arg in _TAG_FLAGS and index + 1 < len(argv):
            glued.append(f"--tag={argv[index + 1]}")
            index += 2
            continue
        glued.append(arg)
        index += 1
    return glued


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    argv = sys.argv[1:] if argv is None else argv
    return _build_parser().parse_args(_glue_tag_values(argv))


def build_config(args: argparse.Namespace, environ: Mapping[str, str]) -> AffectedConfig:
    """Merge the config file, action inputs and CLI flags, in increasing precedence."""
    config = apply_environment(load_config(Path(args.path)), environ)
    github = dataclasses.replace(
        config.github,
        token=args.github_token or config.github.token,
        workflow_id=args.workflow_id or config.github.workflow_id,
        branch=args.branch or config.github.branch,
        repository=args.repository or config.github.repository,
    )
    return dataclasses.replace(
        config,
        base=args.base or config.base,
        head=args.head or config.head,
        tags=list(args.tags) if args.tags else config.tags,
        minimum_nx_version=args.minimum_nx_version or config.minimum_nx_version,
        github=github,
    )


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for nx-affected."""
    parser = _build_parser()
    args = parse_args(argv)
    environ = os.environ

    configure_logging(
        verbose=bool(args.verbose),
        log_file=args.log_file,
        actions=in_actions(environ),
    )

    try:
        config = build_config(args, environ)
        result = run_pipeline(config)
    except NxAffectedError as exc:
        if in_actions(environ):
            report_failure(str(exc))
        parser.exit(1, f"nx-affected failed: {exc}\nRun with --verbose for more details.\n")

    outputs = publish_affected(result.apps, environ=environ)
    if not environ.get("GITHUB_OUTPUT"):
        print(json.dumps(outputs, indent=2))


if __name__ == "__main__":
    main(sys.argv[1:])
