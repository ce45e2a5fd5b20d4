# tests/test_reaper.py
"""Tests for output recovery and hung-process reaping."""

import logging
import threading

import pytest

from outputwatch.config import WatchdogConfig
from outputwatch.errors import (
    WATCHDOG_STABLE_OUTPUT_CODE,
    OutputStabilizedError,
    OutputWatchError,
    StableOutputTimeout,
)
from outputwatch.reaper import (
    RECOVERY_MIN_SIZE,
    ReapResult,
    prefer_file_output,
    recover_existing_output,
    run_with_watchdog,
    wait_for_stable_output,
)

FAST = WatchdogConfig(poll_interval=0.02, stability_window=0.1, min_size=10)


class TestRecoverExistingOutput:
    """Tests for recovering output left by a previous attempt."""

    def test_missing_file_returns_none(self, tmp_path):
        assert recover_existing_output(tmp_path / "missing.md") is None

    def test_file_at_threshold_is_not_recovered(self, tmp_path):
        output = tmp_path / "out.md"
        output.write_text("x" * RECOVERY_MIN_SIZE)

        assert recover_existing_output(output) is None

    def test_file_above_threshold_is_recovered(self, tmp_path, caplog):
        output = tmp_path / "out.md"
        output.write_text("x" * (RECOVERY_MIN_SIZE + 1))

        caplog.set_level(logging.INFO, logger="outputwatch.reaper")
        content = recover_existing_output(output)

        assert content == "x" * (RECOVERY_MIN_SIZE + 1)
        assert "previous attempt" in caplog.text

    def test_custom_minimum(self, tmp_path):
        output = tmp_path / "out.md"
        output.write_text("short but enough")

        assert recover_existing_output(output, min_size=5) == "short but enough"

    def test_directory_is_not_recovered(self, tmp_path):
        directory = tmp_path / "out.md"
        directory.mkdir()

        assert recover_existing_output(directory, min_size=-1) is None


class TestPreferFileOutput:
    """Tests for falling back to the output file when stdout is empty."""

    def test_non_blank_output_wins(self, tmp_path):
        output = tmp_path / "out.md"
        output.write_text("file content")

        assert prefer_file_output("stdout content", output) == "stdout content"

    def test_blank_output_uses_file(self, tmp_path):
        output = tmp_path / "out.md"
        output.write_text("file content")

        assert prefer_file_output("  \n", output) == "file content"
        assert prefer_file_output(None, output) == "file content"

    def test_blank_file_keeps_output(self, tmp_path):
        output = tmp_path / "out.md"
        output.write_text("\n\n")

        assert prefer_file_output("", output) == ""

    def test_missing_file_keeps_output(self, tmp_path):
        assert prefer_file_output(None, tmp_path / "missing.md") is None


class TestWaitForStableOutput:
    """Tests for the blocking wait helper."""

    def test_returns_stable_content(self, tmp_path):
        output = tmp_path / "out.md"
        output.write_text("analysis complete\n")

        content = wait_for_stable_output(output, FAST, timeout=2.0)

        assert content == "analysis complete\n"

    def test_timeout_raises(self, tmp_path):
        output = tmp_path / "missing.md"

        with pytest.raises(StableOutputTimeout) as exc_info:
            wait_for_stable_output(output, FAST, timeout=0.2)

        error = exc_info.value
        assert isinstance(error, OutputWatchError)
        assert error.path == output
        assert error.timeout == 0.2
        assert "suggested_action" in error.details


class TestRunWithWatchdog:
    """Tests for reaping a hung process once its output settles."""

    def test_normal_completion_returns_result(self, tmp_path):
        result = run_with_watchdog(
            lambda cancel: "stdout result", tmp_path / "out.md", FAST
        )

        assert result == ReapResult(output="stdout result")
        assert result.reaped is False

    def test_hung_process_is_reaped(self, tmp_path):
        output = tmp_path / "out.md"
        cancelled = threading.Event()

        def execute(cancel):
            output.write_text("moderator verdict " * 4)
            # Simulate an agent that never exits on its own
            if cancel.wait(timeout=5.0):
                cancelled.set()
                raise RuntimeError("process killed")
            return "unexpected"

        result = run_with_watchdog(execute, output, FAST)

        assert cancelled.is_set()
        assert result.reaped is True
        assert result.output == "moderator verdict " * 4
        assert isinstance(result.cause, OutputStabilizedError)
        assert result.cause.details["code"] == WATCHDOG_STABLE_OUTPUT_CODE
        assert result.cause.details["size"] == len("moderator verdict " * 4)

    def test_cause_reports_on_disk_size(self, tmp_path):
        output = tmp_path / "out.bin"
        raw = b"\xff\xfe not utf-8 \x80" * 4

        def execute(cancel):
            output.write_bytes(raw)
            if cancel.wait(timeout=5.0):
                raise RuntimeError("process killed")
            return "unexpected"

        result = run_with_watchdog(execute, output, FAST)

        assert result.reaped is True
        assert result.cause.details["size"] == len(raw)
        assert len(result.output.encode("utf-8")) != len(raw)

    def test_failure_without_output_propagates(self, tmp_path):
        def execute(cancel):
            raise ValueError("agent crashed")

        with pytest.raises(ValueError, match="agent crashed"):
            run_with_watchdog(execute, tmp_path / "out.md", FAST)

    def test_small_output_is_not_reaped(self, tmp_path):
        output = tmp_path / "out.md"

        def execute(cancel):
            output.write_text("tiny")
            if cancel.wait(timeout=0.3):
                return "cancelled"
            raise TimeoutError("deadline exceeded")

        with pytest.raises(TimeoutError):
            run_with_watchdog(execute, output, FAST)


class TestErrors:
    def test_output_stabilized_error_details(self, tmp_path):
        error = OutputStabilizedError(tmp_path / "out.md", 42)

        assert error.code == WATCHDOG_STABLE_OUTPUT_CODE
        assert error.details == {
            "code": WATCHDOG_STABLE_OUTPUT_CODE,
            "path": str(tmp_path / "out.md"),
            "size": 42,
        }
        assert "reaping hung agent process" in str(error)
