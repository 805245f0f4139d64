"""Tests for watchdogctl.validate -- credentials, gh probe and turn budget."""

from unittest.mock import patch

import pytest
from conftest import make_config

from watchdogctl.validate import calculate_max_turns, check_gh, run

# ---------------------------------------------------------------------------
# calculate_max_turns
# ---------------------------------------------------------------------------

class TestCalculateMaxTurns:
    @pytest.mark.parametrize("issues,fixes,rerun,expected", [
        ("false", "false", "false", 12),
        ("true", "false", "false", 22),
        ("false", "true", "false", 30),
        ("false", "false", "true", 20),
        ("true", "true", "true", 48),
        ("unknown", "yes", "1", 12),
    ])
    def test_budget(self, tmp_path, issues, fixes, rerun, expected):
        config = make_config(
            tmp_path, create_issues=issues, create_fixes=fixes, rerun_tests=rerun,
        )
        assert calculate_max_turns(config) == expected


# ---------------------------------------------------------------------------
# check_gh
# ---------------------------------------------------------------------------

class TestCheckGh:
    def test_missing_cli(self):
        with patch("watchdogctl.collect.gh_cli_available", return_value=False):
            assert check_gh() == "gh_cli_missing"

    def test_not_authenticated(self):
        with patch("watchdogctl.collect.gh_cli_available", return_value=True), \
                patch("watchdogctl.collect.check_auth", return_value=False):
            assert check_gh() == "gh_auth_missing"

    def test_ready(self):
        with patch("watchdogctl.collect.gh_cli_available", return_value=True), \
                patch("watchdogctl.collect.check_auth", return_value=True):
            assert check_gh() == "none"


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------

class TestRun:
    def test_missing_api_key_is_fatal(self, tmp_path):
        env_file = tmp_path / "github_env"
        config = make_config(tmp_path, env_file=str(env_file))
        with patch("watchdogctl.validate.check_gh") as probe:
            assert run(config) == 1
        probe.assert_not_called()
        assert env_file.read_text() == "VALIDATION_FAILED=api_key_missing\n"

    def test_missing_api_key_without_env_file(self, tmp_path):
        config = make_config(tmp_path)
        assert run(config) == 1

    def test_exports_max_turns(self, tmp_path):
        env_file = tmp_path / "github_env"
        config = make_config(tmp_path, env_file=str(env_file), anthropic_api_key="sk-test")
        with patch("watchdogctl.validate.check_gh", return_value="none"):
            assert run(config) == 0
        assert env_file.read_text().splitlines() == ["DYNAMIC_MAX_TURNS=22"]

    def test_exports_gh_warning(self, tmp_path):
        env_file = tmp_path / "github_env"
        config = make_config(tmp_path, env_file=str(env_file), anthropic_api_key="sk-test")
        with patch("watchdogctl.validate.check_gh", return_value="gh_auth_missing"):
            assert run(config) == 0
        assert env_file.read_text().splitlines() == [
            "VALIDATION_WARNINGS=gh_auth_missing",
            "DYNAMIC_MAX_TURNS=22",
        ]

    def test_unwritable_env_file_is_not_fatal(self, tmp_path):
        config = make_config(tmp_path, env_file=str(tmp_path), anthropic_api_key="sk-test")
        with patch("watchdogctl.validate.check_gh", return_value="none"):
            assert run(config) == 0
