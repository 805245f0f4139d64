"""Failure pattern classification over recent workflow run history."""

import math

PATTERN_CHRONIC = "chronic"
PATTERN_FREQUENT = "frequent"
PATTERN_INTERMITTENT = "intermittent"
PATTERN_ISOLATED = "isolated"
PATTERN_UNKNOWN = "unknown"

# (exclusive lower bound, pattern), checked top to bottom
THRESHOLDS = [
    (80, PATTERN_CHRONIC),
    (50, PATTERN_FREQUENT),
    (20, PATTERN_INTERMITTENT),
]


def empty_analysis() -> dict:
    return {
        "total_runs": 0,
        "failed_runs": 0,
        "success_runs": 0,
        "failure_rate_percent": 0,
        "pattern": PATTERN_UNKNOWN,
    }


def failure_rate(failed: int, total: int) -> int:
    """Percentage of failed runs, rounded half up. 0 when there are no runs."""
    if total <= 0:
        return 0
    return math.floor(failed * 100 / total + 0.5)


def classify_rate(rate: int) -> str:
    for bound, pattern in THRESHOLDS:
        if rate > bound:
            return pattern
    return PATTERN_ISOLATED


def analyze_failures(runs: list[dict] | None) -> dict:
    """Summarize a run history (newest first) into a FailureAnalysis dict.

    Defined for every input: an empty or missing history yields the
    "unknown" pattern with a zero rate.
    """
    if not runs:
        return empty_analysis()

    total = len(runs)
    failed = sum(1 for r in runs if r.get("conclusion") == "failure")
    succeeded = sum(1 for r in runs if r.get("conclusion") == "success")
    rate = failure_rate(failed, total)

    return {
        "total_runs": total,
        "failed_runs": failed,
        "success_runs": succeeded,
        "failure_rate_percent": rate,
        "pattern": classify_rate(rate),
    }
