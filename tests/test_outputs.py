"""Tests for GitHub Actions workflow command helpers."""

from __future__ import annotations

import io
import json
from pathlib import Path

from nx_affected.outputs import log_group, publish_affected, report_failure, set_output


def test_set_output_without_github_output_is_noop() -> None:
    assert set_output("affected", "[]", environ={}) is None


def test_publish_affected_writes_both_outputs(tmp_path: Path) -> None:
    output_file = tmp_path / "output"
    output_file.write_text("", encoding="utf-8")

    outputs = publish_affected(["app-a", "app-b"], environ={"GITHUB_OUTPUT": str(output_file)})

    assert outputs == {"affected": json.dumps(["app-a", "app-b"]), "affectedString": "app-a,app-b"}
    lines = output_file.read_text(encoding="utf-8").splitlines()
    assert lines[0].startswith("affected<<ghadelimiter_")
    assert lines[1] == '["app-a", "app-b"]'
    assert lines[2] == lines[0].split("<<", 1)[1]
    assert lines[3].startswith("affectedString<<")
    assert lines[4] == "app-a,app-b"


def test_log_group_emits_markers_in_actions() -> None:
    stream = io.StringIO()

    with log_group("Ensuring Nx is available", environ={"GITHUB_ACTIONS": "true"}, stream=stream):
        stream.write("inside\n")

    assert stream.getvalue() == "::group::Ensuring Nx is available\ninside\n::endgroup::\n"


def test_log_group_outside_actions_writes_nothing() -> None:
    stream = io.StringIO()

    with log_group("title", environ={}, stream=stream):
        pass

    assert stream.getvalue() == ""


def test_report_failure_escapes_newlines() -> None:
    stream = io.StringIO()

    report_failure("first\nsecond 100%", stream=stream)

    assert stream.getvalue() == "::error::first%0Asecond 100%25\n"
