# src/outputwatch/watchdog.py
"""Output file watchdog.

Polls a single path in a background thread and hands the file's content to
the caller once the file has stopped growing. This lets a caller recover the
result of an external process that wrote its output but never reported
completion (for example an agent that hung after writing).

Example:
    watchdog = OutputWatchdog(Path("out/moderator.md"))
    watchdog.start()
    try:
        content = watchdog.result_channel.get(timeout=600)
    finally:
        watchdog.stop()
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from pathlib import Path
from typing import Callable

from .config import WatchdogConfig, default_watchdog_config
from .stability import StabilityTracker


class ResultChannel:
    """Read-only view of a watchdog's single-slot result queue.

    Holds at most one value. Consumers can wait on it but cannot write to it.
    """

    def __init__(self, results: queue.Queue[str]):
        self._results = results

    def get(self, timeout: float | None = None) -> str:
        """Block until stable content is available.

        Raises:
            queue.Empty: If ``timeout`` elapses first
        """
        return self._results.get(timeout=timeout)

    def get_nowait(self) -> str:
        """Return stable content if already delivered.

        Raises:
            queue.Empty: If nothing has been delivered
        """
        return self._results.get_nowait()

    def empty(self) -> bool:
        return self._results.empty()


class OutputWatchdog:
    """Watch one output file and deliver its content once it is stable.

    The watchdog is start-once: ``start()`` spawns a single poller and later
    calls do nothing. ``stop()`` may be called any number of times from any
    thread and only ever signals the poller once. After one successful
    delivery the poller exits on its own and the instance is inert.
    """

    def __init__(
        self,
        path: Path | str,
        config: WatchdogConfig | None = None,
        logger: logging.Logger | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Create an unstarted watchdog.

        Args:
            path: File to watch
            config: Polling parameters (defaults if None)
            logger: Sink for diagnostics; the module logger is used if None
            clock: Monotonic time source, injectable for tests
        """
        self._path = Path(path)
        self.config = config or default_watchdog_config()
        self._logger = logger if logger is not None else logging.getLogger(__name__)
        self._clock = clock

        self._results: queue.Queue[str] = queue.Queue(maxsize=1)
        self._result_channel = ResultChannel(self._results)

        self._lock = threading.Lock()
        self._started = False
        self._stopped = False
        self._stop_event = threading.Event()
        self._done = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def result_channel(self) -> ResultChannel:
        return self._result_channel

    @property
    def is_running(self) -> bool:
        return self._thread is not None and not self._done.is_set()

    def start(self) -> None:
        """Start polling in a background thread."""
        with self._lock:
            if self._started:
                self._logger.debug(
                    f"Watchdog for {self._path} already started",
                    extra={"path": str(self._path)},
                )
                return
            self._started = True
            self._thread = threading.Thread(
                target=self._watch_loop,
                name=f"outputwatch-{self._path.name}",
                daemon=True,
            )
            self._thread.start()

    def stop(self) -> None:
        """Ask the poller to exit. Does not wait for it."""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            self._stop_event.set()

    def wait(self, timeout: float | None = None) -> bool:
        """Wait for the poller to exit.

        Returns:
            True if no poller is running anymore, False on timeout
        """
        if self._thread is None:
            return True
        return self._done.wait(timeout)

    def __enter__(self) -> OutputWatchdog:
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def _watch_loop(self) -> None:
        """Main poll loop that runs in the background thread."""
        tracker = StabilityTracker(
            stability_window=self.config.stability_window,
            min_size=self.config.min_size,
        )
        try:
            # Wait for poll interval or stop signal
            while not self._stop_event.wait(self.config.poll_interval):
                if self._poll(tracker):
                    break
        finally:
            self._done.set()
            self._logger.debug(
                f"Watchdog for {self._path} exited",
                extra={"path": str(self._path)},
            )

    def _poll(self, tracker: StabilityTracker) -> bool:
        """Run one observation. Returns True once content has been delivered."""
        now = self._clock()
        try:
            size = self._path.stat().st_size
        except (OSError, ValueError):
            # ValueError: the path itself is unusable (e.g. embedded NUL byte)
            size = None

        if not tracker.observe(size, now):
            return False

        try:
            content = self._path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            # Size is unchanged, so the next tick declares stability again
            self._logger.warning(
                f"Failed to read stable output file {self._path}: {e}",
                extra={"path": str(self._path), "error": str(e)},
            )
            return False

        self._logger.info(
            f"Output file {self._path} stable at {size} bytes "
            f"after {tracker.elapsed(now):.1f}s",
            extra={"path": str(self._path), "size": size},
        )
        self._deliver(content)
        return True

    def _deliver(self, content: str) -> None:
        try:
            self._results.put_nowait(content)
        except queue.Full:
            # An unread result is already buffered; never block the poller
            self._logger.debug(
                f"Dropped duplicate result for {self._path}",
                extra={"path": str(self._path)},
            )
