#!/usr/bin/env python3
"""Gather context data for the analysis agent.

Collects repository permissions, related open issues and PRs, recent
commits, workflow run history and test result files, and writes each as
an artifact in the working directory. Operating modes, checked in order:

- limited access: the gh auth probe failed. Every remote-sourced artifact
  is written empty and no further GitHub calls are made.
- safe mode: issues, PRs and commits are withheld (written empty); run
  history and test files are still collected.
- normal: everything is queried.

Test file discovery runs in every mode. context-summary.json is written
last.
"""

import contextlib
import logging
import os
import shutil
import tempfile
from datetime import UTC, datetime
from glob import glob

from watchdogctl.classify import analyze_failures, empty_analysis
from watchdogctl.config import (
    COMMITS_FILE,
    FAILURE_ANALYSIS_FILE,
    ISSUES_FILE,
    PERMISSIONS_FILE,
    PRS_FILE,
    RUNS_FILE,
    SUMMARY_FILE,
    TEST_FILES_FILE,
    TEST_OUTPUTS_DIR,
    WORKFLOW_ID_FILE,
    Config,
)
from watchdogctl.github import GitHubReader, check_auth, gh_cli_available, title_tag
from watchdogctl.readers import write_json, write_text

logger = logging.getLogger(__name__)

STATUS_OK = 0
STATUS_ERROR = 1

STATUS_COMPLETE = "complete"
STATUS_LIMITED = "limited_context"

WARNING_NONE = "none"
WARNING_GH_CLI_MISSING = "gh_cli_missing"
WARNING_GH_AUTH_MISSING = "gh_auth_missing"

TEST_FILE_EXTENSIONS = (".xml", ".json", ".log", ".tap", ".trx")
TEST_FILE_KEYWORDS = ("test", "spec", "junit", "report", "result")
MAX_SCANNED_FILES = 10

# Directories holding installed dependencies rather than this repo's output.
DEPENDENCY_DIRS = frozenset({
    "node_modules", "bower_components", "vendor",
    "site-packages", ".venv", "venv", ".tox", "__pycache__",
})


# ---------------------------------------------------------------------------
# Remote context
# ---------------------------------------------------------------------------

def probe_access() -> str:
    """Return the access warning: none, gh_cli_missing or gh_auth_missing."""
    if not gh_cli_available():
        return WARNING_GH_CLI_MISSING
    if not check_auth():
        return WARNING_GH_AUTH_MISSING
    return WARNING_NONE


def build_permissions(push: bool, create_fixes: bool, warning: str = WARNING_NONE) -> dict:
    """Collapse repository access into the capability snapshot.

    Issues, branches and PRs all follow the single push permission.
    """
    return {
        "can_create_branches": push,
        "can_create_issues": push,
        "can_create_prs": push,
        "create_fixes_enabled": create_fixes and push,
        "validation_warnings": warning,
    }


def limited_state(warning: str) -> dict:
    return {
        "permissions": build_permissions(False, False, warning),
        "issues": [],
        "prs": [],
        "commits": [],
        "workflow_id": None,
        "runs": [],
        "analysis": empty_analysis(),
    }


def collect_remote(config: Config, reader: GitHubReader) -> dict:
    """Query GitHub for everything the context document needs."""
    logger.info("Checking permissions...")
    perms = reader.get_permissions()
    push = bool(perms and perms.get("push"))
    permissions = build_permissions(push, config.create_fixes_enabled)

    if config.safe_mode:
        logger.info("Safe mode enabled - skipping external content")
        issues, prs, commits = [], [], []
    else:
        logger.info("Gathering existing issues and PRs...")
        tag = title_tag(config.workflow)
        issues = reader.list_open_issues(tag) or []
        prs = reader.list_open_pulls(tag) or []
        commits = reader.list_recent_commits() or []

    logger.info("Gathering workflow run history...")
    workflow_id = reader.find_workflow_id(config.workflow)
    runs = []
    if workflow_id is not None:
        runs = reader.list_workflow_runs(workflow_id) or []
    else:
        logger.warning("Workflow %r not found, no run history", config.workflow)

    analysis = analyze_failures(runs)
    logger.debug(
        "Analysis - Total: %d, Failed: %d, Rate: %d%%, Pattern: %s",
        analysis["total_runs"], analysis["failed_runs"],
        analysis["failure_rate_percent"], analysis["pattern"],
    )
    return {
        "permissions": permissions,
        "issues": issues,
        "prs": prs,
        "commits": commits,
        "workflow_id": workflow_id,
        "runs": runs,
        "analysis": analysis,
    }


def write_remote_artifacts(config: Config, state: dict) -> None:
    write_json(config.path(PERMISSIONS_FILE), state["permissions"])
    write_json(config.path(ISSUES_FILE), state["issues"])
    write_json(config.path(PRS_FILE), state["prs"])
    write_json(config.path(COMMITS_FILE), state["commits"])
    write_json(config.path(RUNS_FILE), state["runs"])
    write_json(config.path(FAILURE_ANALYSIS_FILE), state["analysis"])
    workflow_id = state["workflow_id"]
    write_text(config.path(WORKFLOW_ID_FILE), "" if workflow_id is None else str(workflow_id))


# ---------------------------------------------------------------------------
# Test files
# ---------------------------------------------------------------------------

def sanitize_name(path: str) -> str:
    """Flatten a path into a single file name.

    'reports/junit/results.xml' -> 'reports_junit_results.xml'
    '/tmp/out.log' -> 'tmp_out.log'
    """
    name = os.path.normpath(path).replace(os.sep, "_").replace("/", "_")
    return name[1:] if name.startswith("_") else name


def _in_dependency_dir(path: str) -> bool:
    parts = os.path.normpath(path).replace("\\", "/").split("/")
    return any(part in DEPENDENCY_DIRS for part in parts)


def scan_test_files(root: str, exclude: tuple[str, ...] = (), limit: int = MAX_SCANNED_FILES) -> list[str]:
    """Best-effort scan for test/report files under root, for reference only.

    Walks in sorted order so repeated scans agree. Skips .git, dependency
    directories and any directory in exclude.
    """
    excluded = {os.path.abspath(p) for p in exclude}
    found = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(
            d for d in dirnames
            if d != ".git"
            and d not in DEPENDENCY_DIRS
            and os.path.abspath(os.path.join(dirpath, d)) not in excluded
        )
        for name in sorted(filenames):
            if not name.endswith(TEST_FILE_EXTENSIONS):
                continue
            path = os.path.join(dirpath, name)
            rel = os.path.relpath(path, root).lower()
            if any(keyword in rel for keyword in TEST_FILE_KEYWORDS):
                found.append(path)
                if len(found) >= limit:
                    return found
    return found


def expand_test_paths(pattern: str) -> list[str]:
    """Expand whitespace-separated globs (** allowed), deduplicated, in order."""
    seen: set[str] = set()
    paths = []
    for part in pattern.split():
        for match in sorted(glob(os.path.expanduser(part), recursive=True)):
            if match not in seen:
                seen.add(match)
                paths.append(match)
    return paths


@contextlib.contextmanager
def replacing_dir(final: str):
    """Yield a staging directory that replaces final on success.

    On error the staging directory is removed and final is left untouched,
    so readers never see a mix of old and new files.
    """
    parent = os.path.dirname(os.path.abspath(final))
    os.makedirs(parent, exist_ok=True)
    staging = tempfile.mkdtemp(prefix=".staging-", dir=parent)
    try:
        yield staging
    except BaseException:
        shutil.rmtree(staging, ignore_errors=True)
        raise

    retired = None
    if os.path.exists(final):
        retired = tempfile.mkdtemp(prefix=".retired-", dir=parent)
        os.replace(final, os.path.join(retired, "old"))
    os.replace(staging, final)
    if retired:
        shutil.rmtree(retired, ignore_errors=True)


def copy_test_results(pattern: str, dest_dir: str) -> int:
    """Copy files matching pattern into a freshly replaced dest_dir.

    Returns the number of files copied. Files under dependency directories
    are skipped; copy failures are logged and skipped.
    """
    paths = expand_test_paths(pattern) if pattern else []
    copied = 0
    with replacing_dir(dest_dir) as staging:
        used: set[str] = set()
        for path in paths:
            if not os.path.isfile(path):
                continue
            if _in_dependency_dir(path):
                logger.info("Skipping dependency file: %s", path)
                continue
            name = sanitize_name(path)
            if name in used:
                logger.warning("Skipping %s: name %s already taken", path, name)
                continue
            try:
                shutil.copyfile(path, os.path.join(staging, name))
            except OSError as e:
                logger.warning("Could not copy %s: %s", path, e)
                continue
            used.add(name)
            copied += 1
            logger.info("Found test result file: %s", path)
    return copied


def collect_test_files(config: Config) -> tuple[list[str], int]:
    """Scan for reference files and copy the configured test results."""
    logger.info("Finding test output files...")
    scanned = scan_test_files(config.search_root, exclude=(config.workdir,))
    write_text(config.path(TEST_FILES_FILE), "\n".join(scanned))

    dest = config.path(TEST_OUTPUTS_DIR)
    if config.test_results_path:
        logger.info("Looking for test results at: %s", config.test_results_path)
    else:
        logger.warning("No test results path specified")
    try:
        copied = copy_test_results(config.test_results_path, dest)
    except OSError as e:
        logger.warning("Could not prepare %s: %s", dest, e)
        copied = 0

    if config.test_results_path and copied == 0:
        logger.warning("No test result files found at pattern: %s", config.test_results_path)
    elif copied:
        logger.info("Copied %d test result file(s) to %s", copied, dest)
        for name in sorted(os.listdir(dest)):
            logger.debug("  %s (%d bytes)", name, os.path.getsize(os.path.join(dest, name)))
    return scanned, copied


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------

def _utc_timestamp() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_summary(config: Config, state: dict, scanned: int, copied: int, status: str) -> dict:
    return {
        "workflow": config.workflow,
        "run_id": config.run_id,
        "run_attempt": config.run_attempt,
        "repository": config.repository,
        "ref": config.ref,
        "sha": config.sha,
        "actor": config.actor,
        "event_name": config.event_name,
        "existing_issues_count": len(state["issues"]),
        "existing_prs_count": len(state["prs"]),
        "recent_failures": sum(1 for r in state["runs"] if r.get("conclusion") == "failure"),
        "test_files_found": scanned,
        "test_results_files": copied,
        "status": status,
        "timestamp": _utc_timestamp(),
    }


def run(config: Config) -> int:
    """Collect all context artifacts. Returns status code."""
    logger.info("Gathering context data...")
    try:
        os.makedirs(config.workdir, exist_ok=True)
    except OSError as e:
        logger.error("Could not create working directory %s: %s", config.workdir, e)
        return STATUS_ERROR

    access = probe_access()
    if access == WARNING_NONE:
        reader = GitHubReader(config.repository, config.github_token)
        state = collect_remote(config, reader)
        status = STATUS_COMPLETE
    else:
        logger.warning("Limited GitHub access (%s) - creating minimal context", access)
        state = limited_state(access)
        status = STATUS_LIMITED

    write_remote_artifacts(config, state)
    scanned, copied = collect_test_files(config)

    summary = build_summary(config, state, len(scanned), copied, status)
    write_json(config.path(SUMMARY_FILE), summary)

    analysis = state["analysis"]
    logger.info("Context gathering complete (%s):", status)
    logger.info("  - %d existing issues found", summary["existing_issues_count"])
    logger.info("  - %d existing PRs found", summary["existing_prs_count"])
    logger.info("  - %d recent failures in last %d runs",
                summary["recent_failures"], analysis["total_runs"])
    logger.info("  - %d test files found", summary["test_files_found"])
    logger.info("  - %d test result files collected", summary["test_results_files"])
    logger.info("  - Failure rate: %d%% (%s pattern)",
                analysis["failure_rate_percent"], analysis["pattern"])
    return STATUS_OK
