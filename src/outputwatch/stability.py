"""Size-based stability tracking for a single output file.

A file is considered stable once its size has stayed the same across
consecutive observations for at least ``stability_window`` seconds and the
size is at or above ``min_size``. Only byte counts are compared; contents are
never hashed, so a size that changes and later returns to an earlier value
still restarts the clock.
"""

from __future__ import annotations

# Sentinel for "no size observed yet"
UNKNOWN_SIZE = -1


class StabilityTracker:
    """Poll state for one watch target.

    Owned by exactly one polling routine. It is not thread-safe and does not
    need to be.

    Example:
        tracker = StabilityTracker(stability_window=3.0, min_size=10)
        tracker.observe(20, now=1.0)   # False, clock starts
        tracker.observe(20, now=4.0)   # True, 3s at the same size
    """

    def __init__(self, stability_window: float, min_size: int):
        self.stability_window = stability_window
        self.min_size = min_size
        self.last_size = UNKNOWN_SIZE
        self.stable_since: float | None = None

    def reset(self) -> None:
        """Forget everything observed so far."""
        self.last_size = UNKNOWN_SIZE
        self.stable_since = None

    def observe(self, size: int | None, now: float) -> bool:
        """Record one observation and report whether the file is now stable.

        Args:
            size: Current size in bytes, or None if the file is missing or
                could not be stat'ed
            now: Monotonic timestamp of the observation

        Returns:
            True once the size has been unchanged for the stability window.
            Keeps returning True on later calls at the same size, so a caller
            that failed to act on it can retry on the next tick.
        """
        if size is None:
            self.reset()
            return False

        if size < self.min_size:
            # Placeholder or partial output, not meaningful yet
            self.last_size = size
            self.stable_since = None
            return False

        if size != self.last_size:
            self.last_size = size
            self.stable_since = now
            return False

        if self.stable_since is None:
            self.stable_since = now
            return False

        return now - self.stable_since >= self.stability_window

    def elapsed(self, now: float) -> float:
        """Seconds spent at the current size, or 0.0 if the clock isn't running."""
        if self.stable_since is None:
            return 0.0
        return now - self.stable_since
