#!/usr/bin/env python3
"""Pre-flight validation: credentials, gh CLI access and turn budget.

A missing Anthropic API key is fatal. A missing or unauthenticated gh CLI
is only a warning; the collect step then runs in limited-access mode.
"""

import logging

from watchdogctl.collect import (
    WARNING_GH_AUTH_MISSING,
    WARNING_GH_CLI_MISSING,
    WARNING_NONE,
    probe_access,
)
from watchdogctl.config import Config, MissingCredentialError
from watchdogctl.readers import append_key_values

logger = logging.getLogger(__name__)

STATUS_OK = 0
STATUS_ERROR = 1

BASE_TURNS = 12
ISSUE_TURNS = 10
FIX_TURNS = 18
RERUN_TURNS = 8


def calculate_max_turns(config: Config) -> int:
    """Size the agent's turn budget from the enabled features."""
    turns = BASE_TURNS
    if config.create_issues_enabled:
        turns += ISSUE_TURNS
    if config.create_fixes_enabled:
        turns += FIX_TURNS
    if config.rerun_tests_enabled:
        turns += RERUN_TURNS
    return turns


def check_gh() -> str:
    """Return the gh CLI warning for this environment."""
    logger.info("Checking GitHub CLI...")
    warning = probe_access()
    if warning == WARNING_GH_CLI_MISSING:
        logger.warning("GitHub CLI not found - some features may be limited")
    elif warning == WARNING_GH_AUTH_MISSING:
        logger.warning("GitHub CLI not authenticated - will use limited permissions")
    return warning


def run(config: Config) -> int:
    """Validate the environment and export derived settings. Returns status code."""
    logger.info("Running validation checks...")
    try:
        config.require_api_key()
    except MissingCredentialError as e:
        logger.error("%s", e)
        if config.env_file:
            try:
                append_key_values(config.env_file, [("VALIDATION_FAILED", "api_key_missing")])
            except OSError as write_err:
                logger.warning("Could not write %s: %s", config.env_file, write_err)
        return STATUS_ERROR

    warning = check_gh()
    max_turns = calculate_max_turns(config)

    exports = []
    if warning != WARNING_NONE:
        exports.append(("VALIDATION_WARNINGS", warning))
    exports.append(("DYNAMIC_MAX_TURNS", str(max_turns)))
    if config.env_file:
        try:
            append_key_values(config.env_file, exports)
        except OSError as e:
            logger.warning("Could not write %s: %s", config.env_file, e)

    logger.info("Validation complete:")
    logger.info("  - GitHub CLI: %s", "authenticated" if warning == WARNING_NONE else warning)
    logger.info("  - API key: provided")
    logger.info("  - Max turns: %d (issues %s, fixes %s, rerun %s)",
                max_turns, config.create_issues, config.create_fixes, config.rerun_tests)
    return STATUS_OK
