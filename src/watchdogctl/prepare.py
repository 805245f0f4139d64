#!/usr/bin/env python3
"""Render collected artifacts into context-data.md for the analysis agent.

Every section is always present so the agent sees the same document shape
on every run: an empty section says "No ... available", a section withheld
by safe mode says so explicitly.
"""

import json
import logging
import os

from watchdogctl.config import (
    COMMITS_FILE,
    CONTEXT_DOCUMENT_FILE,
    FAILURE_ANALYSIS_FILE,
    ISSUES_FILE,
    PRS_FILE,
    SUMMARY_FILE,
    TEST_FILES_FILE,
    TEST_OUTPUTS_DIR,
    Config,
)
from watchdogctl.readers import read_json, read_text, write_text

logger = logging.getLogger(__name__)

STATUS_OK = 0
STATUS_ERROR = 1

REDACTED_NOTICE = "Skipped in safe mode (security precaution)"
MAX_COMMITS_SHOWN = 10
MAX_TEST_OUTPUT_CHARS = 100_000

SECTION_WORKFLOW = "Workflow Information"
SECTION_FAILURES = "Failure Pattern Analysis"
SECTION_ISSUES = "Existing Related Issues"
SECTION_PRS = "Existing Related PRs"
SECTION_COMMITS = "Recent Commits (Potential Causes)"
SECTION_TEST_OUTPUT = "Test Output Content"
SECTION_TEST_FILES = "Available Test Files (for reference)"


def _placeholder(title: str) -> str:
    return f"No {title.lower()} available"


def json_section(title: str, data) -> list[str]:
    lines = [f"### {title}"]
    if data:
        lines += ["```json", json.dumps(data, indent=2, ensure_ascii=False), "```"]
    else:
        lines.append(_placeholder(title))
    lines.append("")
    return lines


def text_section(title: str, text: str | None) -> list[str]:
    lines = [f"### {title}"]
    if text:
        lines += ["```", text, "```"]
    else:
        lines.append(_placeholder(title))
    lines.append("")
    return lines


def redacted_section(title: str) -> list[str]:
    return [f"### {title}", REDACTED_NOTICE, ""]


def render_test_outputs(outputs_dir: str, budget: int = MAX_TEST_OUTPUT_CHARS) -> list[str]:
    """Inline copied test outputs, sharing one character budget.

    A file that overflows the remaining budget is cut with a marker; files
    after the budget is spent are listed as omitted.
    """
    lines = [f"### {SECTION_TEST_OUTPUT}"]
    try:
        names = sorted(os.listdir(outputs_dir)) if os.path.isdir(outputs_dir) else []
    except OSError as e:
        logger.warning("Could not read test outputs directory: %s", e)
        names = []
    logger.info("Found %d files in %s", len(names), outputs_dir)

    remaining = budget
    omitted = []
    shown = 0
    for name in names:
        text = read_text(os.path.join(outputs_dir, name))
        if not text:
            continue
        if remaining <= 0:
            omitted.append(name)
            continue
        if len(text) > remaining:
            text = text[:remaining] + f"\n... (truncated, {len(text) - remaining} more chars)"
            remaining = 0
        else:
            remaining -= len(text)
        lines += ["", f"#### {name}", "```", text, "```"]
        shown += 1

    if omitted:
        lines += ["", f"Omitted (size limit reached): {', '.join(omitted)}"]
    if not shown and not omitted:
        lines.append(_placeholder(SECTION_TEST_OUTPUT))
    lines.append("")
    return lines


def build_document(config: Config) -> str:
    """Assemble the full context document from the working directory."""
    lines = [
        "# Test Failure Analysis Context",
        "",
        "## Configuration",
        f"- Create issues: {config.create_issues}",
        f"- Create fixes: {config.create_fixes}",
        f"- Rerun tests: {config.rerun_tests}",
        f"- Severity threshold: {config.severity_threshold}",
        f"- Safe mode: {'true' if config.safe_mode else 'false'}",
        "",
        "## Context Data",
        "",
    ]

    lines += json_section(SECTION_WORKFLOW, read_json(config.path(SUMMARY_FILE)))
    lines += json_section(SECTION_FAILURES, read_json(config.path(FAILURE_ANALYSIS_FILE)))

    if config.safe_mode:
        lines += redacted_section(SECTION_ISSUES)
        lines += redacted_section(SECTION_PRS)
        lines += redacted_section(SECTION_COMMITS)
    else:
        lines += json_section(SECTION_ISSUES, read_json(config.path(ISSUES_FILE)))
        lines += json_section(SECTION_PRS, read_json(config.path(PRS_FILE)))
        commits = read_json(config.path(COMMITS_FILE))
        if isinstance(commits, list):
            commits = commits[:MAX_COMMITS_SHOWN]
        lines += json_section(SECTION_COMMITS, commits)

    lines += render_test_outputs(config.path(TEST_OUTPUTS_DIR))
    lines += text_section(SECTION_TEST_FILES, read_text(config.path(TEST_FILES_FILE)))
    return "\n".join(lines)


def run(config: Config) -> int:
    """Write context-data.md. Returns status code."""
    logger.info("Preparing context data for analysis...")
    try:
        os.makedirs(config.workdir, exist_ok=True)
    except OSError as e:
        logger.error("Could not create working directory %s: %s", config.workdir, e)
        return STATUS_ERROR

    document = build_document(config)
    path = config.path(CONTEXT_DOCUMENT_FILE)
    if not write_text(path, document):
        logger.error("Failed to write context document %s", path)
        return STATUS_ERROR
    logger.info("Context file: %s (%d lines)", path, document.count("\n") + 1)
    return STATUS_OK
