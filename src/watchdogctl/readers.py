"""Failure-tolerant filesystem and process readers.

Readers never raise past this module: a missing, empty or unreadable
source comes back as None and the reason is logged. Writers of
intermediate artifacts report success as a bool. Only append_key_values
raises, because losing the final output channel must fail the run.
"""

import json
import logging
import os
import subprocess

logger = logging.getLogger(__name__)

COMMAND_TIMEOUT = 60


def run_command(args: list[str], timeout: int = COMMAND_TIMEOUT) -> tuple[str | None, str]:
    """Run a command without a shell.

    Returns (stripped stdout, "") on exit code 0, otherwise (None, error text).
    """
    logger.debug("Running: %s", " ".join(args))
    try:
        result = subprocess.run(
            args, capture_output=True, text=True, timeout=timeout,
        )
    except FileNotFoundError:
        return None, f"{args[0]}: command not found"
    except subprocess.TimeoutExpired:
        return None, f"Command timed out after {timeout} seconds"
    except OSError as e:
        return None, str(e)

    if result.returncode != 0:
        err = result.stderr.strip() or result.stdout.strip()
        return None, f"exit {result.returncode}: {err}"
    return result.stdout.strip(), ""


def _non_empty_file(path: str) -> bool:
    try:
        return os.path.isfile(path) and os.path.getsize(path) > 0
    except OSError:
        return False


def read_text(path: str) -> str | None:
    """Return file text, or None when the file is missing or empty."""
    if not _non_empty_file(path):
        return None
    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            return f.read()
    except OSError as e:
        logger.warning("Could not read %s: %s", path, e)
        return None


def read_json(path: str):
    """Return parsed JSON, or None when missing, empty or malformed."""
    text = read_text(path)
    if text is None:
        return None
    # ValueError covers JSONDecodeError and over-long integer literals
    try:
        return json.loads(text)
    except (ValueError, RecursionError) as e:
        logger.warning("Could not parse %s: %s", path, e)
        return None


def write_text(path: str, text: str) -> bool:
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        return True
    except OSError as e:
        logger.warning("Failed to write %s: %s", path, e)
        return False


def write_json(path: str, data) -> bool:
    return write_text(path, json.dumps(data, indent=2, ensure_ascii=False))


def append_key_values(path: str, pairs: list[tuple[str, str]]) -> None:
    """Append key=value lines to a workflow file such as GITHUB_OUTPUT.

    Raises OSError if the file cannot be written.
    """
    lines = []
    for key, value in pairs:
        value = " ".join(str(value).splitlines())
        lines.append(f"{key}={value}\n")
    with open(path, "a", encoding="utf-8") as f:
        f.writelines(lines)
