# src/outputwatch/reaper.py
"""Recover output from external processes that write to disk.

This module provides:
- Recovery of output left behind by a previous attempt
- Falling back to the output file when a process printed nothing
- Blocking waits for an output file to settle
- Reaping a hung process once its output file has settled
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from .config import WatchdogConfig
from .errors import OutputStabilizedError, StableOutputTimeout
from .watchdog import OutputWatchdog

# Output files larger than this are trusted without waiting for stability
RECOVERY_MIN_SIZE = 1024


@dataclass
class ReapResult:
    """Result of running a process under a watchdog."""

    output: Any
    reaped: bool = False
    cause: OutputStabilizedError | None = None


def recover_existing_output(
    path: Path,
    min_size: int = RECOVERY_MIN_SIZE,
    logger: logging.Logger | None = None,
) -> str | None:
    """Return output written by a previous attempt, if there is enough of it.

    Args:
        path: Output file the process writes to
        min_size: The file must be strictly larger than this many bytes
        logger: Logger for diagnostics (module logger if None)

    Returns:
        File content, or None if the file is missing, too small or unreadable
    """
    logger = logger or logging.getLogger(__name__)
    try:
        size = path.stat().st_size
    except OSError:
        return None

    if size <= min_size:
        return None

    try:
        content = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.debug(f"Could not read existing output {path}: {e}")
        return None

    logger.info(
        f"Recovered output from file written by previous attempt: {path}",
        extra={"path": str(path), "size": size},
    )
    return content


def prefer_file_output(
    output: str | None,
    path: Path,
    logger: logging.Logger | None = None,
) -> str | None:
    """Use the output file's content when the process printed nothing.

    Some tools write their result to a file and leave stdout empty. If
    ``output`` is blank and the file holds non-blank text, the file wins.
    """
    if output is not None and output.strip():
        return output

    logger = logger or logging.getLogger(__name__)
    try:
        content = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return output

    if not content.strip():
        return output

    logger.info(
        f"Using output file content (stdout empty): {path}",
        extra={"path": str(path), "size": len(content)},
    )
    return content


def wait_for_stable_output(
    path: Path,
    config: WatchdogConfig | None = None,
    timeout: float | None = None,
    logger: logging.Logger | None = None,
) -> str:
    """Block until ``path`` settles and return its content.

    Args:
        path: Output file to watch
        config: Polling parameters (defaults if None)
        timeout: Maximum time to wait, None to wait indefinitely
        logger: Logger for diagnostics (module logger if None)

    Returns:
        The file's content at the time it was declared stable

    Raises:
        StableOutputTimeout: If the file doesn't settle within timeout
    """
    watchdog = OutputWatchdog(path, config, logger)
    with watchdog:
        try:
            return watchdog.result_channel.get(timeout=timeout)
        except queue.Empty:
            raise StableOutputTimeout(watchdog.path, timeout) from None


def run_with_watchdog(
    execute: Callable[[threading.Event], Any],
    path: Path,
    config: WatchdogConfig | None = None,
    logger: logging.Logger | None = None,
) -> ReapResult:
    """Run ``execute`` while watching its output file.

    ``execute`` receives a cancel event. If the output file settles while
    ``execute`` is still running, the event is set so the process can be
    torn down. When ``execute`` then raises, the settled content is returned
    in place of the error.

    Args:
        execute: Callable running the external process; should return
            promptly once the cancel event is set
        path: Output file the process writes to
        config: Watchdog polling parameters (defaults if None)
        logger: Logger for diagnostics (module logger if None)

    Returns:
        ReapResult with either the callable's return value or the stable
        file content (``reaped=True``)

    Raises:
        Exception: Whatever ``execute`` raised, if no stable output was captured
    """
    logger = logger or logging.getLogger(__name__)
    watchdog = OutputWatchdog(path, config, logger)
    cancel_event = threading.Event()
    captured: queue.Queue[tuple[str, OutputStabilizedError]] = queue.Queue(maxsize=1)

    def forward_stable_output() -> None:
        # The poller exits after delivering or after stop(), whichever is first
        watchdog.wait()
        try:
            content = watchdog.result_channel.get_nowait()
        except queue.Empty:
            return
        try:
            size = watchdog.path.stat().st_size
        except OSError:
            size = len(content.encode("utf-8"))
        cause = OutputStabilizedError(watchdog.path, size)
        captured.put_nowait((content, cause))
        cancel_event.set()

    forwarder = threading.Thread(
        target=forward_stable_output, name="outputwatch-reaper", daemon=True
    )
    watchdog.start()
    forwarder.start()
    try:
        result = execute(cancel_event)
    except Exception:
        watchdog.stop()
        forwarder.join()
        if captured.empty():
            raise
        content, cause = captured.get_nowait()
        logger.info(
            f"Watchdog reap: using stable output file {watchdog.path}",
            extra={"path": str(watchdog.path), "size": cause.details["size"]},
        )
        return ReapResult(output=content, reaped=True, cause=cause)
    finally:
        watchdog.stop()

    return ReapResult(output=result)
