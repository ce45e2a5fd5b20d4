"""Command-line interface for outputwatch."""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from . import __version__
from .config import ConfigError, WatchdogConfig, get_default_config_path, load_config
from .errors import OutputWatchError
from .reaper import RECOVERY_MIN_SIZE, recover_existing_output, wait_for_stable_output


def _print_error(args, error: Exception) -> None:
    if args.json:
        error_result = {
            "error": {
                "type": type(error).__name__,
                "message": str(error),
                "details": getattr(error, "details", {}),
            },
            "status": "error",
        }
        print(json.dumps(error_result, indent=2))
    else:
        print(f"Error: {error}", file=sys.stderr)
        details = getattr(error, "details", {})
        if "suggested_action" in details:
            print(f"Suggestion: {details['suggested_action']}", file=sys.stderr)


def _print_content(args, path: Path, content: str) -> None:
    if args.json:
        result = {
            "path": str(path),
            "size": len(content.encode("utf-8")),
            "content": content,
            "status": "stable",
        }
        print(json.dumps(result, indent=2))
    else:
        sys.stdout.write(content)


def build_watchdog_config(args) -> WatchdogConfig:
    """Merge the config file with command line overrides.

    Uses ``--config`` when given, otherwise the default config file if it
    exists, otherwise built-in defaults.
    """
    if args.config:
        config = load_config(Path(args.config).expanduser())
    elif get_default_config_path().exists():
        config = load_config(get_default_config_path())
    else:
        config = WatchdogConfig()

    overrides = {}
    if args.poll_interval is not None:
        overrides["poll_interval"] = args.poll_interval
    if args.stability_window is not None:
        overrides["stability_window"] = args.stability_window
    if args.min_size is not None:
        overrides["min_size"] = args.min_size
    return replace(config, **overrides)


def handle_watch_command(args) -> int:
    """Handle the watch subcommand.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (0 once stable content was printed, 1 for error or timeout)
    """
    path = Path(args.output_file)

    try:
        config = build_watchdog_config(args)
        content = wait_for_stable_output(path, config=config, timeout=args.timeout)
    except (ConfigError, OutputWatchError) as e:
        _print_error(args, e)
        return 1

    _print_content(args, path, content)
    return 0


def handle_recover_command(args) -> int:
    """Handle the recover subcommand.

    Returns:
        Exit code (0 if output was recovered, 1 otherwise)
    """
    path = Path(args.output_file)
    content = recover_existing_output(path, min_size=args.min_size)

    if content is None:
        if args.json:
            print(json.dumps({"path": str(path), "status": "missing"}, indent=2))
        else:
            print(
                f"No recoverable output at {path} (needs more than "
                f"{args.min_size} bytes)",
                file=sys.stderr,
            )
        return 1

    _print_content(args, path, content)
    return 0


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="outputwatch",
        description="Wait for an externally written output file to settle",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"outputwatch {__version__}",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging on stderr",
    )

    # Also accepted after the subcommand; SUPPRESS keeps a root-level -v intact
    verbose_parent = argparse.ArgumentParser(add_help=False)
    verbose_parent.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Enable debug logging on stderr",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Watch subcommand
    watch_parser = subparsers.add_parser(
        "watch",
        parents=[verbose_parent],
        help="Wait until an output file stops growing and print it",
    )
    watch_parser.add_argument("output_file", type=str, help="Path to the output file")
    watch_parser.add_argument(
        "--poll-interval",
        type=float,
        default=None,
        help="Seconds between size checks (default: 5)",
    )
    watch_parser.add_argument(
        "--stability-window",
        type=float,
        default=None,
        help="Seconds the size must stay unchanged (default: 15)",
    )
    watch_parser.add_argument(
        "--min-size",
        type=int,
        default=None,
        help="Ignore files smaller than this many bytes (default: 512)",
    )
    watch_parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Give up after this many seconds (default: wait forever)",
    )
    watch_parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="TOML file with a [watchdog] table",
    )
    watch_parser.add_argument(
        "--json",
        action="store_true",
        help="Output results in machine-readable JSON format",
    )

    # Recover subcommand
    recover_parser = subparsers.add_parser(
        "recover",
        parents=[verbose_parent],
        help="Print output left by a previous run if it is large enough",
    )
    recover_parser.add_argument("output_file", type=str, help="Path to the output file")
    recover_parser.add_argument(
        "--min-size",
        type=int,
        default=RECOVERY_MIN_SIZE,
        help=f"Require more than this many bytes (default: {RECOVERY_MIN_SIZE})",
    )
    recover_parser.add_argument(
        "--json",
        action="store_true",
        help="Output results in machine-readable JSON format",
    )

    args = parser.parse_args(argv)

    # Route to appropriate handler
    if args.command == "watch":
        configure_logging(args.verbose)
        return handle_watch_command(args)
    elif args.command == "recover":
        configure_logging(args.verbose)
        return handle_recover_command(args)
    else:
        # No subcommand provided, show help
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
