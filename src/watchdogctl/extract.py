#!/usr/bin/env python3
"""Extract workflow outputs from the agent's analysis result.

Reads analysis-result.json and the optional execution telemetry file and
appends a fixed set of key=value lines to the workflow output file:

- severity, action_taken, issue_number, pr_number, tests_passing
- input_tokens, output_tokens, total_cost, turns_used

Every key is always written. Missing or malformed inputs fall back to
defaults; the string "null" from upstream JSON is treated as absent.
"""

import logging
import math

from watchdogctl.config import ANALYSIS_RESULT_FILE, Config
from watchdogctl.readers import append_key_values, read_json

logger = logging.getLogger(__name__)

STATUS_OK = 0
STATUS_ERROR = 1

RESULT_KEYS = ("severity", "action_taken", "issue_number", "pr_number", "tests_passing")
TELEMETRY_KEYS = ("input_tokens", "output_tokens", "total_cost", "turns_used")
OUTPUT_KEYS = RESULT_KEYS + TELEMETRY_KEYS

# Used when the agent produced no readable result at all.
FAILED_RESULT = {
    "severity": "unknown",
    "action_taken": "analysis_failed",
    "issue_number": "",
    "pr_number": "",
    "tests_passing": "",
}

_NULL_STRINGS = frozenset({"null", "undefined"})


def normalize_value(value) -> str:
    """Render a scalar JSON value as an output string.

    None, nested objects and the "null"/"undefined" sentinels become "".
    """
    if value is None or isinstance(value, (dict, list)):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    if text.lower() in _NULL_STRINGS:
        return ""
    return text


def parse_analysis_result(data) -> dict:
    """Map a parsed result object to the five result fields."""
    if not isinstance(data, dict):
        logger.warning("Analysis result is not a JSON object, using fallback values")
        return dict(FAILED_RESULT)
    return {key: normalize_value(data.get(key)) for key in RESULT_KEYS}


def load_analysis_result(path: str) -> dict:
    data = read_json(path)
    if data is None:
        logger.warning("No readable analysis result at %s - the agent may have failed", path)
        return dict(FAILED_RESULT)
    logger.info("Found analysis result file")
    return parse_analysis_result(data)


def _number(value) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        try:
            value = float(value)
        except ValueError:
            return None
    try:
        finite = isinstance(value, (int, float)) and math.isfinite(value)
    except OverflowError:
        return None
    return value if finite else None


def _int_string(value) -> str:
    n = _number(value)
    return "" if n is None else str(int(n))


def _find_result_message(data):
    """Pick the result record out of an execution file.

    The file is either one result object or the full message list, in which
    case the last message of type "result" is used.
    """
    if isinstance(data, dict):
        return data
    if isinstance(data, list):
        for item in reversed(data):
            if isinstance(item, dict) and item.get("type") == "result":
                return item
    return None


def parse_telemetry(data) -> dict:
    """Map an execution record to the four telemetry fields."""
    empty = dict.fromkeys(TELEMETRY_KEYS, "")
    record = _find_result_message(data)
    if record is None:
        return empty

    usage = record.get("usage")
    usage = usage if isinstance(usage, dict) else {}
    cost = _number(record.get("total_cost_usd", record.get("cost_usd")))
    return {
        "input_tokens": _int_string(usage.get("input_tokens")),
        "output_tokens": _int_string(usage.get("output_tokens")),
        "total_cost": "" if cost is None else f"${cost:.4f}",
        "turns_used": _int_string(record.get("num_turns")),
    }


def load_telemetry(path: str) -> dict:
    if not path:
        return dict.fromkeys(TELEMETRY_KEYS, "")
    return parse_telemetry(read_json(path))


def format_output_lines(result: dict, telemetry: dict) -> list[tuple[str, str]]:
    merged = {**result, **telemetry}
    return [(key, merged.get(key, "")) for key in OUTPUT_KEYS]


def run(config: Config) -> int:
    """Write analysis outputs to the workflow output file. Returns status code."""
    logger.info("Extracting outputs from analysis...")
    result = load_analysis_result(config.path(ANALYSIS_RESULT_FILE))
    telemetry = load_telemetry(config.telemetry_path)
    pairs = format_output_lines(result, telemetry)

    if not config.output_file:
        logger.error("GITHUB_OUTPUT is not set, cannot write outputs")
        return STATUS_ERROR
    try:
        append_key_values(config.output_file, pairs)
    except OSError as e:
        logger.error("Failed to write outputs to %s: %s", config.output_file, e)
        return STATUS_ERROR

    logger.info("Outputs set: severity=%s, action_taken=%s",
                result["severity"], result["action_taken"])
    if telemetry["total_cost"]:
        logger.info("Analysis cost %s over %s turns",
                    telemetry["total_cost"], telemetry["turns_used"] or "?")
    return STATUS_OK
