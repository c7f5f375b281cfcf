"""Command line interface for porty.

Commands:
    (none)          Dev servers and unclassified listeners
    all             Every listening port
    dev             Dev servers only
    prod            Dev servers and containers
    port N          Process details for port N
    free N          Check whether port N is available
    kill N          Show (or with --force, terminate) the process on port N

Usage:
    porty --colors
    porty port 3000
    porty kill 3000 --force
"""

import argparse
import asyncio
import logging
import sys

from rich.console import Console

from porty import __version__
from porty.classifier import filter_default, filter_dev, filter_prod
from porty.config import settings
from porty.details import get_detailed_port_info
from porty.discovery import discover_ports
from porty.exceptions import DiscoveryError
from porty.logging_config import setup_logging
from porty.models import PortEntry
from porty.render import (
    make_console,
    print_banner,
    print_detailed_port_info,
    print_free,
    print_table,
)
from porty.terminator import kill_targets, select_kill_targets

logger = logging.getLogger(__name__)

LIST_VIEWS = {
    None: filter_default,
    "all": list,
    "dev": filter_dev,
    "prod": filter_prod,
}


def port_number(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid port: {value!r}")
    if not 1 <= port <= 65535:
        raise argparse.ArgumentTypeError(f"port out of range: {port}")
    return port


def _add_global_flags(parser: argparse.ArgumentParser, default) -> None:
    parser.add_argument("-v", "--verbose", action="store_true", default=default,
                        help="Show verbose output including executable paths")
    parser.add_argument("-c", "--colors", action="store_true", default=default,
                        help="Enable colored output")
    parser.add_argument("--debug", action="store_true", default=default,
                        help="Enable debug logging")
    parser.add_argument("--json-logs", action="store_true", default=default,
                        help="Emit logs as JSON")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="porty", description="Local port inspector")
    parser.add_argument("--version", action="version", version=f"porty {__version__}")
    _add_global_flags(parser, False)

    # Subparsers accept the global flags too, without clobbering the top-level values
    common = argparse.ArgumentParser(add_help=False)
    _add_global_flags(common, argparse.SUPPRESS)

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("all", parents=[common], help="Show all listening ports")
    subparsers.add_parser("dev", parents=[common], help="Show only dev servers")
    subparsers.add_parser("prod", parents=[common], help="Show dev servers and containers")

    port_parser = subparsers.add_parser("port", parents=[common], help="Show process info for a port")
    port_parser.add_argument("port", type=port_number)

    free_parser = subparsers.add_parser("free", parents=[common], help="Check if a port is available")
    free_parser.add_argument("port", type=port_number)

    kill_parser = subparsers.add_parser("kill", parents=[common], help="Kill the process on a port")
    kill_parser.add_argument("port", type=port_number)
    kill_parser.add_argument("-f", "--force", action="store_true",
                             help="Skip the dry run and kill immediately")

    return parser


async def load_entries(stderr: Console) -> list[PortEntry]:
    """Discover listeners; a discovery failure shows as an empty table."""
    try:
        return await discover_ports()
    except DiscoveryError as e:
        stderr.print(f"discovery error: {e}")
        return []


async def cmd_port(console: Console, entries: list[PortEntry], port: int, verbose: bool, colors: bool) -> int:
    found = [e for e in entries if e.port == port]
    if not found:
        console.print(f"No listener found on port {port}")
        return 0

    entry = found[0]
    if entry.pid is not None:
        detailed = await get_detailed_port_info(port, entry.pid, entry.kind)
        print_detailed_port_info(console, detailed, colors)
        return 0

    print_table(console, found, verbose, colors)
    return 0


async def cmd_kill(console: Console, entries: list[PortEntry], port: int, force: bool) -> int:
    if not any(e.port == port for e in entries):
        console.print(f"No process found on port {port}")
        return 0

    targets = select_kill_targets(entries, port)
    if not targets:
        console.print(f"No killable process found on port {port}")
        return 0

    console.print(f"Process(es) on port {port}:")
    for target in targets:
        console.print(f"  {target.process} (PID {target.pid})", markup=False)

    if not force:
        console.print("\nDry run mode. Use --force to actually kill the process(es).")
        console.print(f"Example: porty kill {port} --force")
        return 0

    console.print("\nKilling process(es)...")
    outcomes = await kill_targets(targets)
    exit_code = 0
    for outcome in outcomes:
        if outcome.success:
            console.print(f"Killed {outcome.target.process} (PID {outcome.target.pid})", markup=False)
        else:
            console.print(f"Failed to kill process: {outcome.error}", markup=False)
            exit_code = 1
    return exit_code


async def run(args: argparse.Namespace) -> int:
    console = make_console(args.colors)
    stderr = Console(stderr=True, no_color=not args.colors, highlight=False)

    entries = await load_entries(stderr)

    if args.command in LIST_VIEWS:
        print_banner(console, args.colors)
        print_table(console, LIST_VIEWS[args.command](entries), args.verbose, args.colors)
        return 0
    if args.command == "port":
        print_banner(console, args.colors)
        return await cmd_port(console, entries, args.port, args.verbose, args.colors)
    if args.command == "free":
        print_free(console, entries, args.port)
        return 0
    if args.command == "kill":
        return await cmd_kill(console, entries, args.port, args.force)

    raise ValueError(f"Unhandled command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(
        debug=args.debug or settings.debug,
        json_logs=args.json_logs or settings.json_logs,
    )

    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
