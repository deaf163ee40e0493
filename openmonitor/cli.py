"""
Command-line entry point: parse options, set up logging, fetch the directory,
resolve the watch list and run the monitor.

Exit codes: 0 when every watched server has opened (or on --help/--list);
1 on bad arguments or any fatal monitoring error; 130 when interrupted.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .config import DEFAULT_INTERVAL_MS, DIRECTORY_URL, SOUND_FILE, CONNECT_TIMEOUT_SEC, LOG_FORMAT
from .directory import fetch_directory
from .errors import MonitorError
from .monitor import AvailabilityProber, WatchOrchestrator
from .notifier import Notifier, SoundPlayer
from .resolver import resolve
from .utils import get_resource_path

logger = logging.getLogger(__name__)


class ArgumentParser(argparse.ArgumentParser):
    """argparse, but a usage error exits with status 1."""

    def error(self, message: str):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def _non_negative_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {text!r}")
    if value < 0:
        raise argparse.ArgumentTypeError("must be >= 0")
    return value


def _positive_float(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {text!r}")
    if value <= 0:
        raise argparse.ArgumentTypeError("must be > 0")
    return value


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="open-monitor",
        description="Watch game servers and get notified the moment each one opens.",
    )
    parser.add_argument("-s", "--server", dest="servers", action="append", metavar="SERVER",
                        help="server to watch (repeat for several; watched in the given order)")
    parser.add_argument("-i", "--interval", type=_non_negative_int, default=DEFAULT_INTERVAL_MS, metavar="MS",
                        help=f"delay between connection attempts in milliseconds (default: {DEFAULT_INTERVAL_MS})")
    parser.add_argument("--connect-timeout", type=_positive_float, default=CONNECT_TIMEOUT_SEC, metavar="SEC",
                        help="give up on a single connection attempt after SEC seconds (default: OS timeout)")
    parser.add_argument("--list", action="store_true",
                        help="print the server names in the directory and exit")
    parser.add_argument("--directory-url", default=DIRECTORY_URL, metavar="URL",
                        help="server directory to download")
    parser.add_argument("--sound", default=None, metavar="PATH",
                        help=f"WAV file to play when a server opens (default: bundled {SOUND_FILE})")
    parser.add_argument("--no-sound", action="store_true", help="don't play a sound")
    parser.add_argument("-v", "--verbose", action="store_true", help="log every connection attempt")
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.list and not args.servers:
        parser.error("at least one -s/--server is required")
    return args


def build_notifier(args: argparse.Namespace) -> Notifier:
    sound = None
    if not args.no_sound:
        sound = SoundPlayer(args.sound or get_resource_path(SOUND_FILE))
    return Notifier(sound=sound)


async def run(args: argparse.Namespace, *, fetch=None, prober=None, notifier=None) -> int:
    fetch = fetch or fetch_directory
    directory = await fetch(args.directory_url)

    if args.list:
        for name in directory:
            print(name)
        return 0

    targets = resolve(directory, args.servers)
    logger.info("Watching %d server(s): %s", len(targets), ", ".join(t.name for t in targets))
    logger.info("Retry interval %d ms", args.interval)

    if prober is None:
        prober = AvailabilityProber(args.interval / 1000, connect_timeout=args.connect_timeout)
    if notifier is None:
        notifier = build_notifier(args)
    opened = await WatchOrchestrator(prober, notifier).run(targets)
    logger.info("All %d watched server(s) are open", opened)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format=LOG_FORMAT)
    try:
        return asyncio.run(run(args))
    except MonitorError as exc:
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Cancelled")
        return 130
