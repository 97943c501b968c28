"""
Command-line interface for the grid autopilot.

Usage:
    python -m autopilot.cli run                 Play until level 1000
    python -m autopilot.cli run --max-cycles 5  Play five boards
    python -m autopilot.cli step                Play the current board once
    python -m autopilot.cli discover            Print the board as seen by discovery
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from autopilot.api.models import LoopStopReason
from autopilot.config import Config, load_config, setup_logging
from autopilot.runlog import setup_run_logging, teardown_run_logging

logger = logging.getLogger(__name__)


async def _run(config: Config, args: argparse.Namespace) -> int:
    from autopilot.api.browser import open_browser_surface
    from autopilot.automation import AutomationLoop

    async with open_browser_surface(config.browser) as surface:
        loop = AutomationLoop(surface, config.automation, config.monitor)
        result = await loop.run_loop(delay=args.delay, level_poll_interval=args.level_poll)

    print(f"Stopped: {result.reason.value} after {result.cycles} boards (level {result.last_level})")
    return 0 if result.reason in (LoopStopReason.STOP_LEVEL, LoopStopReason.MAX_CYCLES) else 1


async def _step(config: Config, args: argparse.Namespace) -> int:
    from autopilot.api.browser import open_browser_surface
    from autopilot.automation import AutomationLoop

    async with open_browser_surface(config.browser) as surface:
        loop = AutomationLoop(surface, config.automation, config.monitor)
        result = await loop.run_step(delay=args.delay)

    if not result:
        print(f"Step failed: {result.outcome.value} {result.message}".rstrip())
        return 1
    print(f"Sent {result.keys_sent} moves: {' '.join(d.value for d in result.path)}")
    return 0


async def _discover(config: Config, args: argparse.Namespace) -> int:
    from autopilot.api.browser import open_browser_surface
    from autopilot.automation import AutomationLoop

    async with open_browser_surface(config.browser) as surface:
        loop = AutomationLoop(surface, config.automation, config.monitor)
        grid = await loop.discover_grid()
        level = await loop.read_level()

    if grid is None:
        print("No board found.")
        return 1
    print(f"Level: {level if level is not None else '?'}")
    print(f"Board: {grid.width}x{grid.height} via {grid.source}")
    print(f"Player {grid.agent} -> Apple {grid.goal}, {len(grid.blocked)} blocked")
    print(grid.render())
    return 0


def cmd_run(config: Config, args: argparse.Namespace) -> int:
    """Play until the stop level."""
    if args.max_cycles is not None:
        config.automation.max_cycles = args.max_cycles
    log_file = setup_run_logging()
    logger.info(f"Logging run to {log_file}")
    try:
        return asyncio.run(_run(config, args))
    except KeyboardInterrupt:
        print("Interrupted.")
        return 1
    finally:
        teardown_run_logging()


def cmd_step(config: Config, args: argparse.Namespace) -> int:
    """Play the current board once."""
    return asyncio.run(_step(config, args))


def cmd_discover(config: Config, args: argparse.Namespace) -> int:
    """Print the discovered board."""
    return asyncio.run(_discover(config, args))


def build_parser() -> argparse.ArgumentParser:
    """Argument parser for all commands."""
    # --url may also follow the command; SUPPRESS leaves the top-level value
    # in place when it does not
    url_parent = argparse.ArgumentParser(add_help=False)
    url_parent.add_argument(
        "--url",
        type=str,
        default=argparse.SUPPRESS,
        help="Game page URL (overrides config)",
    )

    parser = argparse.ArgumentParser(
        description="Grid autopilot - walks the player to the apple, level after level",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--log-level",
        "-l",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level override",
    )
    parser.add_argument(
        "--url",
        type=str,
        default=None,
        help="Game page URL (overrides config)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # run command
    run_parser = subparsers.add_parser("run", parents=[url_parent], help="Play until the stop level")
    run_parser.add_argument("--delay", type=float, default=None, help="Seconds between key presses")
    run_parser.add_argument(
        "--level-poll",
        type=float,
        default=None,
        help="Seconds between level checks while waiting for the next level",
    )
    run_parser.add_argument("--max-cycles", type=int, default=None, help="Stop after this many boards")
    run_parser.set_defaults(func=cmd_run)

    # step command
    step_parser = subparsers.add_parser("step", parents=[url_parent], help="Play the current board once")
    step_parser.add_argument("--delay", type=float, default=None, help="Seconds between key presses")
    step_parser.set_defaults(func=cmd_step)

    # discover command
    discover_parser = subparsers.add_parser("discover", parents=[url_parent], help="Print the discovered board")
    discover_parser.set_defaults(func=cmd_discover)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Load config and set up logging
    config = load_config(args.config)
    if args.log_level:
        config.logging.level = args.log_level
    if args.url:
        config.browser.url = args.url
    setup_logging(config.logging)

    if args.command is None:
        parser.print_help()
        return 1

    return args.func(config, args)


if __name__ == "__main__":
    sys.exit(main())
