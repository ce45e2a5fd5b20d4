"""Custom exceptions for outputwatch with structured error information."""

from pathlib import Path

# Error code carried by the cancellation cause when a hung process is reaped
WATCHDOG_STABLE_OUTPUT_CODE = "WATCHDOG_STABLE_OUTPUT"


class OutputWatchError(Exception):
    """Base exception for all outputwatch errors.

    Provides structured error information with actionable messages.
    """

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.details = details or {}


class OutputStabilizedError(OutputWatchError):
    """Cancellation cause used when a process is reaped after its output settled."""

    code = WATCHDOG_STABLE_OUTPUT_CODE

    def __init__(self, path: Path, size: int):
        message = "output file stabilized; reaping hung agent process"
        details = {
            "code": self.code,
            "path": str(path),
            "size": size,
        }
        super().__init__(message, details)


class StableOutputTimeout(OutputWatchError):
    """Raised when an output file does not settle before the caller's deadline."""

    def __init__(self, path: Path, timeout: float):
        self.path = path
        self.timeout = timeout
        message = f"Output file '{path}' did not stabilize within {timeout} seconds"
        details = {
            "path": str(path),
            "timeout": timeout,
            "suggested_action": (
                "Check that the producing process is still writing, or raise "
                "the timeout"
            ),
        }
        super().__init__(message, details)
