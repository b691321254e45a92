"""CLI entry point for the Google Photos -> postcard daemon."""

from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from postcard_sync.daemon import LOOP_NAMES, Daemon, build_loops


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Download new Google Photos album items and send them one per day as postcards."
    )
    parser.add_argument(
        "--only",
        choices=LOOP_NAMES,
        default=os.getenv("GPSC_ONLY") or None,
        help="Run just one of the loops (default: both)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single iteration of each loop and exit",
    )
    parser.add_argument(
        "--log-file",
        default=os.getenv("GPSC_LOGFILE") or None,
        help="Also write plain-text logs to this file",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output",
    )
    return parser


def _setup_logging(verbose: bool, console: Console, log_filename: str | None) -> None:
    """Configure rich console logging plus an optional plain-text log file."""
    log_level = logging.DEBUG if verbose else logging.INFO
    plain_format = "[%(asctime)s %(levelname)-8s] %(threadName)s - %(message)s"

    root = logging.getLogger()
    root.setLevel(log_level)

    rich_handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    rich_handler.setLevel(log_level)
    rich_handler.setFormatter(logging.Formatter("%(threadName)s - %(message)s"))
    root.addHandler(rich_handler)

    if log_filename:
        Path(log_filename).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_filename, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter(plain_format))
        root.addHandler(file_handler)

    # Token refreshes and every page request are noise at INFO
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("google").setLevel(logging.WARNING)


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    args = _build_parser().parse_args(argv)

    use_color = sys.stdout.isatty() and not args.no_color and not os.getenv("NO_COLOR")
    console = Console(force_terminal=use_color, no_color=not use_color)
    _setup_logging(args.verbose, console, args.log_file)

    loops = build_loops(only=args.only)
    if not loops:
        logging.error("Nothing to run: no loop has a complete configuration.")
        return 1

    daemon = Daemon(loops)

    def _handle_signal(signum, frame):  # noqa: ANN001
        daemon.stop()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    names = ", ".join(loop.name for loop in loops)
    console.print(Panel(f"postcard-sync: {names}", style="bold blue", padding=(0, 2)))

    ok = daemon.run(once=args.once)
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
