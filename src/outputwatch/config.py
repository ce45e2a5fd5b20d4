# src/outputwatch/config.py
"""Configuration management for outputwatch."""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path

import tomllib


class ConfigError(Exception):
    """Configuration error."""

    pass


DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_STABILITY_WINDOW = 15.0
DEFAULT_MIN_SIZE = 512


@dataclass(frozen=True)
class WatchdogConfig:
    """Polling parameters for an output watchdog.

    Values are taken as given; a zero or negative interval is the caller's
    responsibility.
    """

    poll_interval: float = DEFAULT_POLL_INTERVAL
    stability_window: float = DEFAULT_STABILITY_WINDOW
    min_size: int = DEFAULT_MIN_SIZE


def default_watchdog_config() -> WatchdogConfig:
    """Return the defaults: 5s poll interval, 15s stability window, 512 bytes."""
    return WatchdogConfig()


def _coerce(key: str, value: object, expected: type) -> float | int:
    # bool is an int subclass, but `min_size = true` is never intended
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(
            f"Invalid value for '{key}' in [watchdog]: expected a number, "
            f"got {type(value).__name__}"
        )
    if expected is int:
        if isinstance(value, float) and not value.is_integer():
            raise ConfigError(
                f"Invalid value for '{key}' in [watchdog]: expected a whole "
                f"number of bytes, got {value}"
            )
        return int(value)
    return float(value)


def load_config(config_path: Path) -> WatchdogConfig:
    """Load watchdog configuration from a TOML file.

    Reads the ``[watchdog]`` table. Keys that are absent keep their defaults
    and unknown keys are ignored.
    """
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read config file {config_path}: {e}") from e

    watchdog_data = data.get("watchdog", {})
    if not isinstance(watchdog_data, dict):
        raise ConfigError("[watchdog] must be a table")

    values = {}
    for item in fields(WatchdogConfig):
        if item.name in watchdog_data:
            expected = int if item.name == "min_size" else float
            values[item.name] = _coerce(item.name, watchdog_data[item.name], expected)

    return WatchdogConfig(**values)


def get_default_config_path() -> Path:
    """Get the default config file path."""
    return Path.home() / ".outputwatch" / "config.toml"
