#!/usr/bin/env python3
"""
Downloads Janitor - CLI Entry Point
===================================

Usage:
    python -m downloads_janitor run --config config/rules.json
    python -m downloads_janitor once --progress
    python -m downloads_janitor rules
"""

import argparse
import sys
from pathlib import Path

from .config import ConfigError, default_config_path, load_config, validate_watch_folder
from .organizer import Organizer
from .utils import console, print_error, print_header, print_rules_table, print_success, print_warning
from .watcher import DEFAULT_DEBOUNCE_SECONDS, DEFAULT_POLL_INTERVAL, WatchdogChangeSignal, WatchError, watch_loop


def _load(args):
    """Load config and validate the watch folder; returns (config, watch_folder) or None."""
    config_path = args.config or default_config_path()
    try:
        config = load_config(config_path)
    except ConfigError as e:
        print_error(str(e))
        print_error("Failed to load configuration. Exiting.")
        return None

    try:
        watch_folder = validate_watch_folder(config.watch_folder)
    except ConfigError as e:
        print_error(str(e))
        return None

    if not config.rules:
        print_warning("No rules loaded; the janitor will not move files until rules are provided.")

    return config, watch_folder


# =============================================================================
# Subcommands
# =============================================================================

def cmd_run(args) -> int:
    """Run command - organize on startup, then on every change."""
    loaded = _load(args)
    if loaded is None:
        return 1
    config, watch_folder = loaded

    mode = "polling" if args.polling else "native notifications"
    print_header("Downloads Janitor", f"Watching: {watch_folder}\nRules: {len(config.rules)}\nMode: {mode}")

    organizer = Organizer(watch_folder, config.rules)
    signal = WatchdogChangeSignal(watch_folder, polling=args.polling, poll_interval=args.poll_interval)

    try:
        with signal:
            watch_loop(organizer, signal, debounce=args.debounce)
    except WatchError as e:
        print_error(str(e))
        print_error("File monitoring stopped unexpectedly.")
        return 1
    except KeyboardInterrupt:
        print("\n[ABORT] Stopped by user")
        return 130

    # watch_loop only returns when bounded; an unbounded loop ending is abnormal
    print_error("File monitoring stopped unexpectedly.")
    return 1


def cmd_once(args) -> int:
    """Once command - a single organize pass."""
    loaded = _load(args)
    if loaded is None:
        return 1
    config, watch_folder = loaded

    organizer = Organizer(watch_folder, config.rules, progress=args.progress)
    try:
        ok = organizer.organize_once()
    except KeyboardInterrupt:
        print("\n[ABORT] Operation cancelled by user")
        return 130

    if ok:
        print_success("Organize pass complete")
        return 0

    print_error("One or more files failed to move during processing.")
    return 1


def cmd_rules(args) -> int:
    """Rules command - show loaded rules and the effective extension lookup."""
    config_path = args.config or default_config_path()
    try:
        config = load_config(config_path)
    except ConfigError as e:
        print_error(str(e))
        return 1

    organizer = Organizer(config.watch_folder, config.rules)
    console.print(f"Watch folder: {config.watch_folder}")
    print_rules_table(config.rules, organizer.index.items())
    return 0


# =============================================================================
# Main
# =============================================================================

def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Downloads Janitor - Sort files dropped into a folder by extension",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    config_help = "Path to rules.json (default: $DOWNLOADS_JANITOR_CONFIG or ./config/rules.json)"

    # --- RUN command ---
    run_parser = subparsers.add_parser("run", help="Organize now, then keep watching for changes")
    run_parser.add_argument("--config", type=Path, help=config_help)
    run_parser.add_argument("--debounce", type=float, default=DEFAULT_DEBOUNCE_SECONDS, metavar="SECONDS",
                            help=f"Delay after each pass to coalesce bursts (default: {DEFAULT_DEBOUNCE_SECONDS})")
    run_parser.add_argument("--polling", action="store_true",
                            help="Poll the folder instead of using native notifications (e.g. network shares)")
    run_parser.add_argument("--poll-interval", type=float, default=DEFAULT_POLL_INTERVAL, metavar="SECONDS",
                            help=f"Polling interval with --polling (default: {DEFAULT_POLL_INTERVAL})")
    run_parser.set_defaults(func=cmd_run)

    # --- ONCE command ---
    once_parser = subparsers.add_parser("once", help="Run a single organize pass and exit")
    once_parser.add_argument("--config", type=Path, help=config_help)
    once_parser.add_argument("--progress", action="store_true", help="Show a progress bar")
    once_parser.set_defaults(func=cmd_once)

    # --- RULES command ---
    rules_parser = subparsers.add_parser("rules", help="Show the loaded rules and extension lookup")
    rules_parser.add_argument("--config", type=Path, help=config_help)
    rules_parser.set_defaults(func=cmd_rules)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
