#!/usr/bin/env python3
"""Main entry point for vpsrun."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .banner import print_banner, print_version
from .config import DEFAULT_CONFIG_PATH, load_config
from .executor import ExecutionOutcome, Executor
from .report import report, write_logs
from .selector import SelectionError, Single, parse_selection, resolve

logger = logging.getLogger(__name__)

EPILOG = """\
Either -i or -l must be provided (not both).
Examples:
  vpsrun -i 42 -c "uptime"
  vpsrun -i 52,42,53 -c "tmux ls"
  vpsrun -l 1-20 -c "df -h"
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vpsrun",
        description="Run a command on selected SSH hosts in parallel",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-i",
        dest="index",
        default="",
        help="Host index(es): single number or comma-separated (e.g., 42 or 52,42,53)",
    )
    parser.add_argument("-l", dest="range", default="", help="Host range (e.g., 1-20)")
    parser.add_argument("-c", dest="command", default="", help="Command to execute (required)")
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to the host credentials file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--known-hosts",
        type=Path,
        help="Verify host keys against this known_hosts file instead of accepting any key",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        help="Also write each host's result to a timestamped directory here",
    )
    parser.add_argument(
        "--dashboard",
        action="store_true",
        help="Run with the TUI dashboard",
    )
    parser.add_argument("--silent", action="store_true", help="Silent mode.")
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print the version of the tool and exit.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def _usage_error(parser: argparse.ArgumentParser, message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    parser.print_usage(sys.stderr)
    return 1


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.version:
        print_banner()
        print_version()
        return 0

    if not args.silent:
        print_banner()

    # Validate arguments
    if not args.index and not args.range:
        return _usage_error(parser, "either -i or -l must be provided")
    if args.index and args.range:
        return _usage_error(parser, "-i and -l cannot be used together")
    if not args.command.strip():
        return _usage_error(parser, "-c is required and must be non-empty")

    # Load configuration
    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    # Resolve targets before touching the network
    try:
        selection = parse_selection(args.index, args.range)
        targets, not_found = resolve(config.hosts, selection)
    except SelectionError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not_found:
        print(f"Warning: host numbers not found: {not_found}", file=sys.stderr)

    known_hosts = args.known_hosts or config.defaults.known_hosts
    logger.debug("Dispatching %r to %d host(s)", args.command, len(targets))

    if args.dashboard:
        results = _run_dashboard(targets, args.command, known_hosts)
        if results is None:
            print("Dashboard closed before all hosts finished", file=sys.stderr)
            return 1
    else:
        executor = Executor(args.command, known_hosts=known_hosts)
        results = asyncio.run(executor.dispatch(targets))

    logs_failed = False
    if args.log_dir:
        try:
            run_dir = write_logs(results, args.log_dir, config.source_path)
        except OSError as e:
            print(f"Error: failed to write logs: {e}", file=sys.stderr)
            logs_failed = True
        else:
            print(f"Logs written to {run_dir}", file=sys.stderr)

    # A single index reports without separators
    code = report(results, separate=not isinstance(selection, Single))
    return 1 if logs_failed else code


def _run_dashboard(targets, command: str, known_hosts: Path | None) -> list[ExecutionOutcome] | None:
    """Run the dispatch inside the dashboard; None if it was quit early."""
    from .dashboard import Dashboard

    app = Dashboard(targets, command, known_hosts=known_hosts)
    app.run()
    return app.results


if __name__ == "__main__":
    sys.exit(main())
