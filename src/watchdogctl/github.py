"""Read-only GitHub access using PyGithub.

All GitHub API calls go through GitHubReader. Every query is one logical
request and returns None on any transport, auth or lookup failure; callers
treat None as "no data". The gh CLI is only used for the auth probe and,
when no token is configured, to borrow its stored token.
"""

import functools
import logging
import shutil

import requests
from github import Auth, Github, GithubException

from watchdogctl.readers import run_command

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30
MAX_RUNS = 20
MAX_COMMITS = 30
MAX_OPEN_ITEMS = 100


def title_tag(workflow: str) -> str:
    """Return the title marker used for issues and PRs about a workflow."""
    return f"Watchdog [{workflow}]"


def gh_cli_available() -> bool:
    return shutil.which("gh") is not None


def check_auth() -> bool:
    """Probe `gh auth status`. False means limited access."""
    out, err = run_command(["gh", "auth", "status"])
    if out is None:
        logger.warning("gh auth status failed: %s", err)
        return False
    return True


def resolve_token(token: str) -> str:
    """Return the configured token, falling back to the gh CLI's token."""
    if token:
        return token
    out, err = run_command(["gh", "auth", "token"])
    if out is None:
        logger.debug("gh auth token unavailable: %s", err)
        return ""
    return out


def _validate_repo(repo_slug: str) -> None:
    """Validate that repo_slug is in 'owner/name' format."""
    if not repo_slug or repo_slug.count("/") != 1:
        raise ValueError(
            f"Invalid repo format: '{repo_slug}'. Expected 'owner/name'."
        )


def _iso(dt) -> str:
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ") if dt else ""


def _absent_on_error(fn):
    """Turn any GitHub, network or lookup failure into None."""
    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except (GithubException, requests.RequestException, RuntimeError, ValueError) as e:
            logger.warning("GitHub query %s failed: %s", fn.__name__, e)
            return None
    return wrapper


class GitHubReader:
    """One repository's read-only queries.

    The client is created on first use so constructing a reader never
    touches the network.
    """

    def __init__(self, repo_slug: str, token: str = "", timeout: int = REQUEST_TIMEOUT):
        self.repo_slug = repo_slug
        self._token = token
        self._timeout = timeout
        self._repo = None

    def _get_repo(self):
        if self._repo is None:
            _validate_repo(self.repo_slug)
            token = resolve_token(self._token)
            if not token:
                raise RuntimeError(
                    "GitHub token not found. Set GITHUB_TOKEN or GH_TOKEN, or log in with gh."
                )
            client = Github(auth=Auth.Token(token), timeout=self._timeout, per_page=MAX_OPEN_ITEMS)
            self._repo = client.get_repo(self.repo_slug)
        return self._repo

    @_absent_on_error
    def get_permissions(self) -> dict | None:
        """Return the caller's repository permissions: push, admin."""
        perms = self._get_repo().permissions
        if perms is None:
            return None
        return {"push": perms.push is True, "admin": perms.admin is True}

    @_absent_on_error
    def list_open_issues(self, tag: str) -> list[dict] | None:
        """Open issues (not PRs) whose title contains tag."""
        results = []
        for issue in self._get_repo().get_issues(state="open")[:MAX_OPEN_ITEMS]:
            if issue.pull_request is not None or tag not in (issue.title or ""):
                continue
            results.append({
                "number": issue.number,
                "title": issue.title,
                "created_at": _iso(issue.created_at),
                "updated_at": _iso(issue.updated_at),
                "labels": [label.name for label in issue.labels],
                "body": issue.body or "",
            })
        return results

    @_absent_on_error
    def list_open_pulls(self, tag: str) -> list[dict] | None:
        """Open pull requests whose title contains tag."""
        results = []
        for pr in self._get_repo().get_pulls(state="open")[:MAX_OPEN_ITEMS]:
            if tag not in (pr.title or ""):
                continue
            results.append({
                "number": pr.number,
                "title": pr.title,
                "created_at": _iso(pr.created_at),
                "updated_at": _iso(pr.updated_at),
                "head": pr.head.ref,
                "body": pr.body or "",
            })
        return results

    @_absent_on_error
    def list_recent_commits(self, limit: int = MAX_COMMITS) -> list[dict] | None:
        """Most recent commits on the default branch, newest first."""
        results = []
        for commit in self._get_repo().get_commits()[:limit]:
            author = commit.commit.author
            results.append({
                "sha": commit.sha[:8],
                "message": commit.commit.message,
                "author": author.name if author else "",
                "date": _iso(author.date) if author else "",
            })
        return results

    @_absent_on_error
    def find_workflow_id(self, name: str) -> int | None:
        """Return the id of the workflow with exactly this name."""
        for wf in self._get_repo().get_workflows():
            if wf.name == name:
                return wf.id
        return None

    @_absent_on_error
    def list_workflow_runs(self, workflow_id: int, limit: int = MAX_RUNS) -> list[dict] | None:
        """Most recent runs of a workflow, newest first, capped at limit."""
        workflow = self._get_repo().get_workflow(workflow_id)
        results = []
        for run in workflow.get_runs()[:limit]:
            head = run.head_commit
            author = getattr(head, "author", None)
            results.append({
                "id": run.id,
                "run_number": run.run_number,
                "status": run.status,
                "conclusion": run.conclusion,
                "created_at": _iso(run.created_at),
                "head_sha": run.head_sha,
                "head_commit": {
                    "message": getattr(head, "message", "") or "",
                    "author": getattr(author, "name", "") or "",
                },
            })
        return results
