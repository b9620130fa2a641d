"""
portzap command line.

    portzap                      scan the default development ports
    portzap 3000-3010,8080       scan a custom port list
    portzap --dry-run            show what would be terminated
    portzap --yes --json         terminate without prompting, print a JSON report

Exit codes: 0 success, 1 operation error or failed termination, 130 cancelled.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import List, Optional, Sequence

import orjson

from .config import ConfigurationError, UserConfig, get_settings
from .exceptions import PortRangeError, PortzapError, ScanCancelledError
from .logging_config import FAIL, INFO, EventLog, setup_logging
from .port_killer import PortKiller
from .port_killer_helpers import BatchReport
from .port_ranges import DEFAULT_DEV_PORTS, parse_port_range
from .port_scanner_helpers import CancelToken

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CANCELLED = 130

# Set while stdin is being read for a confirmation; SIGINT then aborts the read.
_PROMPT_OPEN = threading.Event()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="portzap",
        description="Find and stop processes listening on development ports",
    )
    parser.add_argument(
        "ports",
        nargs="?",
        help="Ports or ranges to scan, e.g. 3000-3010,8080 (default: common dev ports)",
    )
    parser.add_argument("--ports", dest="ports_option", metavar="EXPR", help="Same as the positional argument")
    parser.add_argument(
        "-y",
        "--yes",
        action="store_true",
        help="Terminate every unprotected listener without asking",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be terminated without sending any signal",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print a JSON report instead of progress lines (never prompts)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show diagnostic details")
    parser.add_argument("--log-file", type=Path, help="Also write diagnostics to this file")
    return parser


def resolve_ports(args: argparse.Namespace, parser: argparse.ArgumentParser) -> List[int]:
    if args.ports and args.ports_option:
        parser.error("give the port expression either positionally or with --ports, not both")
    expression = args.ports_option or args.ports
    if not expression:
        return list(DEFAULT_DEV_PORTS)
    return parse_port_range(expression)


def read_confirmation() -> bool:
    """Read y/yes from stdin; anything else, or a closed stdin, means no."""
    _PROMPT_OPEN.set()
    try:
        response = sys.stdin.readline()
    except (OSError, ValueError):  # policy_guard: allow-silent-handler
        return False
    finally:
        _PROMPT_OPEN.clear()
    return response.strip().lower() in ("y", "yes")


def _print_json(payload: dict) -> None:
    sys.stdout.write(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode() + "\n")
    sys.stdout.flush()


def _exit_code(report: BatchReport) -> int:
    if report.cancelled:
        return EXIT_CANCELLED
    if report.failed:
        return EXIT_ERROR
    return EXIT_OK


def _cancel_on_interrupt(token: CancelToken):
    """First Ctrl-C cancels cooperatively; a second one, or one during a prompt, interrupts."""

    def handler(signum, frame):
        if token.cancelled or _PROMPT_OPEN.is_set():
            token.cancel()
            raise KeyboardInterrupt
        logger.debug("Interrupt received; cancelling")
        token.cancel()

    return handler


async def run_batch(args: argparse.Namespace, ports: Sequence[int], events: EventLog) -> int:
    settings = get_settings()
    user_config = UserConfig.load()
    token = CancelToken()

    previous_handler = signal.signal(signal.SIGINT, _cancel_on_interrupt(token))

    confirm = read_confirmation if not args.json else (lambda: False)
    killer = PortKiller(settings, user_config, confirm=confirm, events=events)
    try:
        report = await killer.run(ports, yes=args.yes, dry_run=args.dry_run, cancel=token)
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    if args.json:
        _print_json(report.to_dict())
    return _exit_code(report)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose, user_friendly=not args.verbose, log_file=args.log_file)
    events = EventLog(verbose=args.verbose, enabled=not args.json)

    try:
        ports = resolve_ports(args, parser)
        return asyncio.run(run_batch(args, ports, events))
    except PortRangeError as exc:  # policy_guard: allow-silent-handler
        return _fail(args, events, f"Invalid port range: {exc}")
    except ConfigurationError as exc:  # policy_guard: allow-silent-handler
        return _fail(args, events, f"Invalid configuration: {exc}")
    except ScanCancelledError:  # policy_guard: allow-silent-handler
        events(INFO, "operation cancelled")
        if args.json:
            _print_json({"error": "operation cancelled", "cancelled": True})
        return EXIT_CANCELLED
    except KeyboardInterrupt:  # policy_guard: allow-silent-handler
        events(INFO, "operation cancelled")
        return EXIT_CANCELLED
    except PortzapError as exc:  # policy_guard: allow-silent-handler
        return _fail(args, events, f"Failed to scan ports: {exc}")


def _fail(args: argparse.Namespace, events: EventLog, message: str) -> int:
    events(FAIL, "%s", message)
    if args.json:
        _print_json({"error": message})
    return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
