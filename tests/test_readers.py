"""Tests for watchdogctl.readers -- process and filesystem readers."""

import subprocess
import sys
from unittest.mock import patch

import pytest

from watchdogctl.readers import (
    append_key_values,
    read_json,
    read_text,
    run_command,
    write_json,
    write_text,
)

# ---------------------------------------------------------------------------
# run_command
# ---------------------------------------------------------------------------

class TestRunCommand:
    def test_success_returns_trimmed_stdout(self):
        out, err = run_command([sys.executable, "-c", "print('  hello  ')"])
        assert out == "hello"
        assert err == ""

    def test_nonzero_exit_returns_none_and_error(self):
        out, err = run_command([
            sys.executable, "-c", "import sys; sys.stderr.write('boom'); sys.exit(3)",
        ])
        assert out is None
        assert "exit 3" in err
        assert "boom" in err

    def test_missing_binary(self):
        out, err = run_command(["watchdogctl-no-such-binary-xyz"])
        assert out is None
        assert "not found" in err

    def test_timeout(self):
        with patch(
            "watchdogctl.readers.subprocess.run",
            side_effect=subprocess.TimeoutExpired(["gh"], 5),
        ):
            out, err = run_command(["gh", "auth", "status"], timeout=5)
        assert out is None
        assert "timed out after 5 seconds" in err


# ---------------------------------------------------------------------------
# read_text / read_json
# ---------------------------------------------------------------------------

class TestReadText:
    def test_missing_file(self, tmp_path):
        assert read_text(str(tmp_path / "missing.txt")) is None

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.txt"
        path.write_text("")
        assert read_text(str(path)) is None

    def test_content(self, tmp_path):
        path = tmp_path / "a.txt"
        path.write_text("line1\nline2")
        assert read_text(str(path)) == "line1\nline2"

    def test_directory_is_absent(self, tmp_path):
        assert read_text(str(tmp_path)) is None


class TestReadJson:
    def test_valid(self, tmp_path):
        path = tmp_path / "a.json"
        path.write_text('{"a": 1}')
        assert read_json(str(path)) == {"a": 1}

    def test_empty_list_is_data(self, tmp_path):
        path = tmp_path / "a.json"
        path.write_text("[]")
        assert read_json(str(path)) == []

    def test_malformed(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        assert read_json(str(path)) is None

    def test_zero_bytes(self, tmp_path):
        path = tmp_path / "zero.json"
        path.write_text("")
        assert read_json(str(path)) is None

    def test_missing(self, tmp_path):
        assert read_json(str(tmp_path / "nope.json")) is None

    def test_oversized_integer(self, tmp_path):
        path = tmp_path / "big.json"
        path.write_text('{"issue_number": ' + "9" * 5000 + "}")
        assert read_json(str(path)) is None

    def test_deeply_nested(self, tmp_path):
        path = tmp_path / "deep.json"
        path.write_text("[" * 200_000 + "]" * 200_000)
        assert read_json(str(path)) is None


# ---------------------------------------------------------------------------
# writers
# ---------------------------------------------------------------------------

class TestWriters:
    def test_write_json_round_trip(self, tmp_path):
        path = str(tmp_path / "out.json")
        assert write_json(path, {"x": [1, 2]}) is True
        assert read_json(path) == {"x": [1, 2]}

    def test_write_into_missing_dir_returns_false(self, tmp_path):
        assert write_text(str(tmp_path / "no" / "such" / "dir.txt"), "x") is False


class TestAppendKeyValues:
    def test_appends_in_order(self, tmp_path):
        path = tmp_path / "output"
        path.write_text("existing=1\n")
        append_key_values(str(path), [("a", "1"), ("b", "")])
        assert path.read_text() == "existing=1\na=1\nb=\n"

    def test_newlines_collapsed(self, tmp_path):
        path = tmp_path / "output"
        append_key_values(str(path), [("msg", "line one\nline two")])
        assert path.read_text() == "msg=line one line two\n"

    def test_unwritable_raises(self, tmp_path):
        with pytest.raises(OSError):
            append_key_values(str(tmp_path), [("a", "1")])
