"""Run configuration, built once from the workflow environment.

Every stage receives a Config instead of reading environment variables on
its own. Fallbacks mirror what GitHub Actions leaves unset outside a
workflow: identity fields become "unknown", paths become "".
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace

DEFAULT_WORKDIR = ".watchdog"

PERMISSIONS_FILE = "permissions.json"
ISSUES_FILE = "existing-issues.json"
PRS_FILE = "existing-prs.json"
COMMITS_FILE = "recent-commits.json"
RUNS_FILE = "recent-runs.json"
FAILURE_ANALYSIS_FILE = "failure-analysis.json"
WORKFLOW_ID_FILE = "workflow-id.txt"
TEST_FILES_FILE = "test-files.txt"
SUMMARY_FILE = "context-summary.json"
TEST_OUTPUTS_DIR = "test-outputs"
CONTEXT_DOCUMENT_FILE = "context-data.md"
ANALYSIS_RESULT_FILE = "analysis-result.json"
DEFAULT_EXECUTION_FILE = "execution-output.json"


class MissingCredentialError(RuntimeError):
    """A secret the pipeline cannot run without is not configured."""


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() == "true"


@dataclass(frozen=True)
class Config:
    workdir: str = DEFAULT_WORKDIR
    search_root: str = "."
    safe_mode: bool = False
    test_results_path: str = ""

    workflow: str = "unknown"
    run_id: str = "unknown"
    run_attempt: str = "unknown"
    ref: str = "unknown"
    sha: str = "unknown"
    actor: str = "unknown"
    event_name: str = "unknown"
    repository: str = "unknown"

    # Raw strings: the context document shows them as given.
    create_issues: str = "unknown"
    create_fixes: str = "unknown"
    rerun_tests: str = "unknown"
    severity_threshold: str = "unknown"

    execution_file: str = ""
    output_file: str = ""
    env_file: str = ""
    github_token: str = field(default="", repr=False)
    anthropic_api_key: str = field(default="", repr=False)
    model: str = "sonnet"
    debug: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides) -> "Config":
        """Build a Config from an environment mapping (os.environ by default).

        Keyword overrides (typically CLI flags) win over the environment;
        None values are ignored so argparse defaults can pass through.
        """
        env = os.environ if environ is None else environ

        def get(name: str, default: str = "unknown") -> str:
            return env.get(name) or default

        cfg = cls(
            safe_mode=_flag(env.get("SAFE_MODE")),
            test_results_path=get("TEST_RESULTS_PATH", ""),
            workflow=get("GITHUB_WORKFLOW"),
            run_id=get("GITHUB_RUN_ID"),
            run_attempt=get("GITHUB_RUN_ATTEMPT"),
            ref=get("GITHUB_REF"),
            sha=get("GITHUB_SHA"),
            actor=get("GITHUB_ACTOR"),
            event_name=get("GITHUB_EVENT_NAME"),
            repository=get("GITHUB_REPOSITORY"),
            create_issues=get("CREATE_ISSUES"),
            create_fixes=get("CREATE_FIXES"),
            rerun_tests=get("RERUN_TESTS"),
            severity_threshold=get("SEVERITY_THRESHOLD"),
            execution_file=get("EXECUTION_FILE", ""),
            output_file=get("GITHUB_OUTPUT", ""),
            env_file=get("GITHUB_ENV", ""),
            github_token=get("GITHUB_TOKEN", "") or get("GH_TOKEN", ""),
            anthropic_api_key=get("ANTHROPIC_API_KEY", "").strip(),
            debug=_flag(env.get("WATCHDOG_DEBUG")) or _flag(env.get("DEBUG")),
        )
        return cfg.with_overrides(**overrides)

    def with_overrides(self, **overrides) -> "Config":
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self

    @property
    def create_issues_enabled(self) -> bool:
        return _flag(self.create_issues)

    @property
    def create_fixes_enabled(self) -> bool:
        return _flag(self.create_fixes)

    @property
    def rerun_tests_enabled(self) -> bool:
        return _flag(self.rerun_tests)

    @property
    def telemetry_path(self) -> str:
        return self.execution_file or os.path.join(self.workdir, DEFAULT_EXECUTION_FILE)

    def path(self, name: str) -> str:
        """Return the path of a named artifact inside the working directory."""
        return os.path.join(self.workdir, name)

    def require_api_key(self) -> None:
        if not self.anthropic_api_key:
            raise MissingCredentialError(
                "Anthropic API key required. Set ANTHROPIC_API_KEY in the repository secrets."
            )
