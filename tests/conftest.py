"""Shared fixtures and helpers for watchdogctl tests."""

import json
import os

from watchdogctl.config import Config


def make_config(tmp_path, **overrides):
    """Build a Config rooted in tmp_path with a workflow identity filled in."""
    values = {
        "workdir": str(tmp_path / ".watchdog"),
        "search_root": str(tmp_path),
        "workflow": "CI",
        "run_id": "1001",
        "run_attempt": "1",
        "ref": "refs/heads/main",
        "sha": "abc123def456",
        "actor": "octocat",
        "event_name": "push",
        "repository": "org/repo",
        "create_issues": "true",
        "create_fixes": "false",
        "rerun_tests": "false",
        "severity_threshold": "medium",
    }
    values.update(overrides)
    return Config(**values)


def make_runs(conclusions):
    """Generate a newest-first run history from a list of conclusions."""
    runs = []
    for i, conclusion in enumerate(conclusions):
        run_number = len(conclusions) - i
        runs.append({
            "id": 5000 + run_number,
            "run_number": run_number,
            "status": "completed",
            "conclusion": conclusion,
            "created_at": f"2025-01-{run_number:02d}T10:00:00Z",
            "head_sha": f"sha{run_number:04d}",
            "head_commit": {"message": f"commit {run_number}", "author": "dev"},
        })
    return runs


def write_artifact(workdir, name, data):
    """Write a JSON (dict/list) or text artifact into workdir."""
    os.makedirs(workdir, exist_ok=True)
    path = os.path.join(workdir, name)
    with open(path, "w") as f:
        if isinstance(data, str):
            f.write(data)
        else:
            json.dump(data, f)
    return path


def read_artifact(workdir, name):
    with open(os.path.join(workdir, name)) as f:
        text = f.read()
    return json.loads(text) if name.endswith(".json") else text


# Sample data constants

SAMPLE_ISSUE = {
    "number": 42,
    "title": "Watchdog [CI] flaky login test",
    "created_at": "2025-01-10T08:00:00Z",
    "updated_at": "2025-01-12T09:30:00Z",
    "labels": ["flaky", "watchdog"],
    "body": "test_login times out intermittently",
}

SAMPLE_PR = {
    "number": 43,
    "title": "Watchdog [CI] fix login timeout",
    "created_at": "2025-01-12T10:00:00Z",
    "updated_at": "2025-01-12T11:00:00Z",
    "head": "watchdog/fix-login-timeout",
    "body": "Raises the timeout to 10s",
}

SAMPLE_COMMIT = {
    "sha": "abc12345",
    "message": "Refactor session handling",
    "author": "dev",
    "date": "2025-01-14T12:00:00Z",
}
