"""outputwatch: detect when an externally written output file has settled."""

from .config import WatchdogConfig, default_watchdog_config
from .version import get_package_version
from .watchdog import OutputWatchdog, ResultChannel

__version__ = get_package_version()
__author__ = "outputwatch contributors"
__description__ = "Detect when an externally written output file has settled"

__all__ = [
    "OutputWatchdog",
    "ResultChannel",
    "WatchdogConfig",
    "default_watchdog_config",
]
